"""Cached admin file listing."""

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import ResponseCache, make_key
from app.core.config import settings
from app.core.metrics import record_cache_lookup
from app.modules.file.repository import FileRepository
from app.modules.file.schemas import FileInfo, FileListFilters, FileListResponse

FILES_CACHE_RESOURCE = "files"
ANY_FILTER = "*"


class FileService:
    """Serves file listings through the response cache.

    Every filter combination gets its own key under the ``files``
    namespace; writers invalidate the namespace by prefix because they
    cannot know which pages went stale.
    """

    def __init__(self, session: AsyncSession, cache: ResponseCache):
        self.session = session
        self.cache = cache
        self.file_repo = FileRepository(session)

    async def list_files(
        self,
        filters: FileListFilters,
        page: int = 1,
        page_size: int = 50,
    ) -> FileListResponse:
        status = filters.status.value if filters.status else None
        # Unset filters keep their slot so agent and owner filters cannot collide.
        cache_key = make_key(
            FILES_CACHE_RESOURCE,
            [
                status or ANY_FILTER,
                filters.assigned_agent_id or ANY_FILTER,
                filters.user_id or ANY_FILTER,
                page,
                page_size,
            ],
        )
        cached = self.cache.get(cache_key)
        record_cache_lookup(FILES_CACHE_RESOURCE, cached is not None)
        if cached is not None:
            return cached

        files, total = await self.file_repo.list_files(
            status=status,
            assigned_agent_id=filters.assigned_agent_id,
            user_id=filters.user_id,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        response = FileListResponse(
            files=[FileInfo.model_validate(f) for f in files],
            total=total,
            page=page,
            page_size=page_size,
            has_more=page * page_size < total,
        )
        self.cache.set(cache_key, response, settings.FILE_LIST_TTL_SECONDS)
        return response
