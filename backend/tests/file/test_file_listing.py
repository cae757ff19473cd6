"""Tests for the cached admin file listing."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.core.cache import ResponseCache
from app.modules.file.models import DocumentFile, FileStatus, normalize_status, stored_status_values
from app.modules.file.repository import FileRepository
from app.modules.file.schemas import FileListFilters
from app.modules.file.service import FileService


def make_file(file_id: str, status: str = "paid"):
    now = datetime.now(timezone.utc)
    return SimpleNamespace(
        id=file_id,
        user_id="user-1",
        filename=f"{file_id}.pdf",
        status=status,
        assigned_agent_id=None,
        assigned_at=None,
        uploaded_at=now,
        updated_at=now,
    )


def create_service(cache: ResponseCache, files=(), total: int = 0) -> FileService:
    service = FileService(AsyncMock(), cache)
    service.file_repo = AsyncMock()
    service.file_repo.list_files.return_value = (list(files), total)
    return service


class TestFileListing:
    """Listings are paginated and cached per filter combination."""

    @pytest.mark.asyncio
    async def test_page_metadata(self):
        service = create_service(ResponseCache(), files=[make_file("f1"), make_file("f2")], total=5)

        response = await service.list_files(FileListFilters(), page=1, page_size=2)

        assert [f.id for f in response.files] == ["f1", "f2"]
        assert response.total == 5
        assert response.has_more
        kwargs = service.file_repo.list_files.await_args.kwargs
        assert (kwargs["offset"], kwargs["limit"]) == (0, 2)

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self):
        cache = ResponseCache()
        service = create_service(cache, files=[make_file("f1")], total=1)
        filters = FileListFilters(status=FileStatus.PAID)

        first = await service.list_files(filters, page=1, page_size=50)
        second = await service.list_files(filters, page=1, page_size=50)

        assert first is second
        assert service.file_repo.list_files.await_count == 1
        assert cache.keys() == ["admin:files:paid:*:*:1:50"]

    @pytest.mark.asyncio
    async def test_agent_and_owner_filters_do_not_share_entries(self):
        cache = ResponseCache()
        service = create_service(cache)

        await service.list_files(FileListFilters(assigned_agent_id="x1"))
        await service.list_files(FileListFilters(user_id="x1"))

        assert service.file_repo.list_files.await_count == 2
        assert len(cache) == 2


class TestStatusNormalization:
    """Stored statuses map onto the current vocabulary."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("paid", FileStatus.PAID),
            ("processing", FileStatus.PROCESSING),
            ("in_progress", FileStatus.PROCESSING),
            ("archived", None),
            (None, None),
        ],
    )
    def test_normalize_status(self, raw, expected):
        assert normalize_status(raw) == expected

    @pytest.mark.parametrize(
        "status, expected",
        [
            ("processing", ["processing", "in_progress"]),
            ("paid", ["paid"]),
        ],
    )
    def test_stored_status_values_include_legacy_spellings(self, status, expected):
        assert stored_status_values(status) == expected


class TestStatusFilterInStore:
    """Filtering by status matches rows still stored under a legacy value."""

    @pytest.mark.asyncio
    async def test_processing_filter_includes_in_progress_rows(self, store):
        _, session_maker = store
        async with session_maker() as session:
            session.add_all([
                DocumentFile(id="f1", status="processing"),
                DocumentFile(id="f2", status="in_progress"),
                DocumentFile(id="f3", status="paid"),
            ])
            await session.commit()

        async with session_maker() as session:
            files, total = await FileRepository(session).list_files(status="processing")

        assert total == 2
        assert sorted(f.id for f in files) == ["f1", "f2"]
        assert {normalize_status(f.status) for f in files} == {FileStatus.PROCESSING}
