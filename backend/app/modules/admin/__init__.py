"""Admin module: identity verification for dashboard endpoints."""

from app.modules.admin.middleware import (
    SYSTEM_ADMIN,
    AdminAccessDenied,
    AdminAuthenticationRequired,
    AdminIdentity,
    create_admin_token,
    verify_admin_access,
    verify_background_token,
)

__all__ = [
    "SYSTEM_ADMIN",
    "AdminAccessDenied",
    "AdminAuthenticationRequired",
    "AdminIdentity",
    "create_admin_token",
    "verify_admin_access",
    "verify_background_token",
]
