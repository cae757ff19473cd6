"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
No sensitive values should be hardcoded here.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "Document Desk Admin API"
    VERSION: str = "0.1.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False

    # Database - REQUIRED
    DATABASE_URL: str

    # Redis - REQUIRED (Celery broker and result backend)
    REDIS_URL: str

    # Security - REQUIRED (no defaults for sensitive values)
    SECRET_KEY: str
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 480
    ADMIN_TOKEN_COOKIE: str = "admin_token"

    # CORS
    CORS_ORIGINS: list[str] = []

    # Response cache
    CACHE_MAX_ENTRIES: int = 300
    ASSIGN_STATS_TTL_SECONDS: float = 120.0
    FILE_LIST_TTL_SECONDS: float = 60.0

    # Assignment
    ASSIGNMENT_BATCH_SIZE: int = 500  # Store limit on writes per batch
    UNASSIGNED_SCAN_LIMIT: int = 1000
    STORE_TIMEOUT_SECONDS: float = 10.0

    # Background assignment sweep
    BACKGROUND_ASSIGNMENT_TOKEN: str = ""
    BACKGROUND_ASSIGNMENT_INTERVAL_SECONDS: int = 300

    # Tracing
    OTLP_ENDPOINT: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
