"""Core module for configuration and utilities."""

from app.core.cache import ResponseCache, get_response_cache, make_key
from app.core.config import settings
from app.core.database import Base, get_session

__all__ = [
    "settings",
    "Base",
    "get_session",
    "ResponseCache",
    "get_response_cache",
    "make_key",
]
