"""Admin identity verification.

Admin sessions are HS256 JWTs issued by the login flow and sent either
as a Bearer token or in the admin session cookie.
"""

import hmac
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from app.core.config import settings

ALGORITHM = "HS256"
ADMIN_TOKEN_TYPE = "admin"

SYSTEM_ADMIN_ID = "system"
SYSTEM_ADMIN_NAME = "Background Service"

bearer_scheme = HTTPBearer(auto_error=False)


class AdminIdentity(BaseModel):
    """Verified admin performing a request."""

    admin_id: str
    name: str = "Admin"


SYSTEM_ADMIN = AdminIdentity(admin_id=SYSTEM_ADMIN_ID, name=SYSTEM_ADMIN_NAME)


class AdminAccessDenied(HTTPException):
    """Exception raised when admin access is denied."""

    def __init__(self, detail: str = "Admin access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class AdminAuthenticationRequired(HTTPException):
    """Exception raised when no valid admin session is present."""

    def __init__(self, detail: str = "Admin authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def create_admin_token(
    admin_id: str,
    name: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed admin session token.

    Args:
        admin_id: Admin identifier (token subject)
        name: Admin display name, carried for audit entries
        expires_delta: Token lifetime, defaults to ADMIN_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ADMIN_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": admin_id,
        "name": name,
        "type": ADMIN_TOKEN_TYPE,
        "iat": now,
        "exp": expire,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_admin_token(token: str) -> AdminIdentity:
    """Validate an admin session token.

    Raises:
        AdminAuthenticationRequired: If the token is malformed, expired or forged
        AdminAccessDenied: If the token is valid but not an admin session
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise AdminAuthenticationRequired("Invalid or expired admin session")

    if payload.get("type") != ADMIN_TOKEN_TYPE:
        raise AdminAccessDenied("User does not have admin privileges")

    admin_id = payload.get("sub")
    if not admin_id:
        raise AdminAuthenticationRequired("Invalid or expired admin session")

    return AdminIdentity(admin_id=admin_id, name=payload.get("name") or "Admin")


async def verify_admin_access(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AdminIdentity:
    """Resolve the admin behind the current request.

    The Authorization header wins over the session cookie when both are sent.
    """
    token = credentials.credentials if credentials else request.cookies.get(settings.ADMIN_TOKEN_COOKIE)
    if not token:
        raise AdminAuthenticationRequired()
    return decode_admin_token(token)


def verify_background_token(request: Request) -> AdminIdentity:
    """Authorize the cron-driven assignment sweep.

    The sweep is disabled entirely while BACKGROUND_ASSIGNMENT_TOKEN is unset.
    """
    expected = settings.BACKGROUND_ASSIGNMENT_TOKEN
    provided = request.headers.get("authorization") or ""
    if not expected or not hmac.compare_digest(provided.encode(), f"Bearer {expected}".encode()):
        raise AdminAuthenticationRequired("Invalid background assignment token")
    return SYSTEM_ADMIN
