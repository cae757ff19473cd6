"""File module for uploaded documents and the admin file listing."""

from app.modules.file.models import DocumentFile, FileStatus
from app.modules.file.repository import FileRepository

__all__ = [
    "DocumentFile",
    "FileStatus",
    "FileRepository",
]
