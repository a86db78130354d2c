# =============================================================================
# API Dependencies — Admin Gate, Service Wiring, Key Authentication
# =============================================================================
#
# 1. require_admin_token()  — static shared-secret check for admin routes
# 2. get_key_service()      — AccountKeyService over the request's session
# 3. get_user_directory()   — SqlUserDirectory over the request's session
# 4. get_current_account()  — Bearer account key → owning user id
#
# All of these are plain FastAPI dependencies, so tests swap any of them
# through app.dependency_overrides.
# =============================================================================

from __future__ import annotations

import logging
import secrets
import uuid

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from accountkeys.config import Settings, get_settings
from accountkeys.db.engine import get_async_session
from accountkeys.services.directory import SqlUserDirectory, UserDirectory
from accountkeys.services.errors import StoreUnavailableError, UnauthorizedKeyError
from accountkeys.services.key_service import AccountKeyService
from accountkeys.services.keystore import SqlKeyStore

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI docs (shows "Authorize" button in Swagger UI)
_bearer_scheme = HTTPBearer(auto_error=False)


async def require_admin_token(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Reject the request unless Authorization equals the admin token.

    The header carries the raw token (no "Bearer" scheme). An empty
    configured token disables the administrative API entirely.

    Raises:
        HTTPException 401: Missing or wrong token, or admin API disabled.
    """
    expected = settings.admin_auth_token
    if not expected:
        logger.warning("Admin request rejected: ADMIN_AUTH_TOKEN is not set")
        raise HTTPException(status_code=401, detail="Unauthorized.")

    if authorization is None or not secrets.compare_digest(
        authorization.encode("utf-8"), expected.encode("utf-8"),
    ):
        raise HTTPException(status_code=401, detail="Unauthorized.")


def get_key_service(
    session: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> AccountKeyService:
    """Build the key service for this request."""
    return AccountKeyService(
        SqlKeyStore(session),
        settings.account_keys_default_expiration,
        hash_secret=settings.key_hash_secret,
    )


def get_user_directory(
    session: AsyncSession = Depends(get_async_session),
) -> UserDirectory:
    """Build the user directory for this request."""
    return SqlUserDirectory(session)


async def get_current_account(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    service: AccountKeyService = Depends(get_key_service),
) -> uuid.UUID:
    """
    Resolve `Authorization: Bearer <account key>` to the owning user id.

    Raises:
        HTTPException 401: Missing, unknown, revoked or expired key.
        HTTPException 503: Key store unavailable.
    """
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Missing API key. Provide "
            "'Authorization: Bearer <key>' header.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return await service.get_user_from_key(credentials.credentials)
    except UnauthorizedKeyError:
        raise HTTPException(
            status_code=401,
            detail="Invalid API key.",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except StoreUnavailableError:
        raise HTTPException(
            status_code=503, detail="Key store unavailable.",
        ) from None
