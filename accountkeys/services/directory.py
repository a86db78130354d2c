# =============================================================================
# User Directory — Resolve an Email or Id to a User Id
# =============================================================================
#
# Account records belong to the platform's user service. Key issuance only
# needs to confirm that a user exists and learn its stable id, so the
# directory is a two-method protocol with a read-only SQL implementation
# over the shared `users` table.
# =============================================================================

from __future__ import annotations

import logging
import uuid
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accountkeys.db.models import User
from accountkeys.services.errors import StoreUnavailableError, UserNotFoundError

logger = logging.getLogger(__name__)


class UserDirectory(Protocol):
    """Lookups the key API performs against the account directory."""

    async def get_user_id_by_email(self, email: str) -> uuid.UUID:
        """Raises UserNotFoundError if no account has this email."""
        ...

    async def get_user_id(self, user_id: uuid.UUID) -> uuid.UUID:
        """Raises UserNotFoundError if no account has this id."""
        ...


class SqlUserDirectory:
    """UserDirectory over the `users` table. Emails match case-insensitively."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_user_id_by_email(self, email: str) -> uuid.UUID:
        stmt = select(User.id).where(func.lower(User.email) == email.lower())
        return await self._scalar_or_404(stmt, email)

    async def get_user_id(self, user_id: uuid.UUID) -> uuid.UUID:
        stmt = select(User.id).where(User.id == user_id)
        return await self._scalar_or_404(stmt, str(user_id))

    async def _scalar_or_404(self, stmt, ref: str) -> uuid.UUID:
        try:
            result = await self._session.execute(stmt)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("User lookup failed: %s", exc)
            raise StoreUnavailableError("user directory unavailable") from exc

        user_id = result.scalar_one_or_none()
        if user_id is None:
            raise UserNotFoundError(f"user {ref!r} not found")
        return user_id


async def resolve_user_ref(directory: UserDirectory, ref: str) -> uuid.UUID:
    """
    Resolve a path segment that is either an email or a user UUID.

    Anything containing "@" is treated as an email; otherwise it must parse
    as a UUID. Unparsable references raise UserNotFoundError.
    """
    if "@" in ref:
        return await directory.get_user_id_by_email(ref)
    try:
        user_id = uuid.UUID(ref)
    except ValueError:
        raise UserNotFoundError(f"user {ref!r} not found") from None
    return await directory.get_user_id(user_id)
