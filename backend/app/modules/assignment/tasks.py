"""Celery tasks for file assignment.

The periodic sweep hands paid files that nobody picked up to the least
loaded active agents.
"""

import asyncio
import logging

from app.core.celery_app import celery_app
from app.core.database import async_session_maker, engine
from app.core.logging import log_info, log_warning

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    name="assignment.assign_unassigned_paid_files",
)
def assign_unassigned_paid_files_task(self):
    """Auto-assign unassigned paid files as the background service.

    Scheduled by Celery beat. A store outage is retried; every other
    outcome is returned as the result payload.
    """
    from app.modules.assignment.errors import StoreUnavailableError

    try:
        return asyncio.run(_assign_unassigned_paid_files())
    except StoreUnavailableError as exc:
        raise self.retry(exc=exc)


async def _assign_unassigned_paid_files() -> dict:
    """Async implementation of the sweep."""
    from app.core.cache import ResponseCache
    from app.modules.admin.middleware import SYSTEM_ADMIN
    from app.modules.assignment.errors import NoEligibleAgentsError, PartialWriteFailureError
    from app.modules.assignment.service import AssignmentService

    # The worker's cache is private to this run; API processes see the
    # new assignments once their own entries expire.
    cache = ResponseCache()
    try:
        async with async_session_maker() as session:
            service = AssignmentService(session, cache)
            try:
                result = await service.assign_unassigned_paid_files(SYSTEM_ADMIN)
            except NoEligibleAgentsError as e:
                log_warning(logger, "Background assignment skipped", reason=str(e))
                return {"success": False, "message": str(e), "assigned_count": 0}
            except PartialWriteFailureError as e:
                log_warning(
                    logger,
                    "Background assignment partially failed",
                    assigned=len(e.assigned_file_ids),
                    failed=len(e.failed_file_ids),
                )
                if e.result is not None:
                    return e.result.model_dump(mode="json")
                return {"success": False, "message": str(e), "assigned_count": len(e.assigned_file_ids)}

        log_info(
            logger,
            "Background assignment finished",
            assigned=result.assigned_count,
            planned=result.planned_count,
        )
        return result.model_dump(mode="json")
    finally:
        # Pooled connections are bound to this run's event loop.
        await engine.dispose()
