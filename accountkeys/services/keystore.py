# =============================================================================
# Key Store — Persistence Protocol for Credential Records
# =============================================================================
#
# The key service only needs three things from storage: insert a record,
# look one up by digest, and delete one by digest.
# Every backend exposes exactly that, and translates its own failures into
# the key service error taxonomy.
#
# ARCHITECTURE:
#   KeyStore (Protocol)
#   ├── SqlKeyStore       — oauth_tokens table via AsyncSession
#   └── InMemoryKeyStore  — dict keyed by digest (tests, local experiments)
#
# Uniqueness lives in the store: the table's primary key (or the dict key)
# is the digest, so two concurrent inserts of the same digest cannot both
# succeed and no in-process locking is needed.
#
# All timestamps crossing this boundary are timezone-aware UTC. SQLite
# hands back naive datetimes, so reads are normalised.
# =============================================================================

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accountkeys.db.models import OAuthToken, TokenKind, User
from accountkeys.services.errors import (
    KeyConflictError,
    KeyNotFoundError,
    KeyServiceError,
    StoreUnavailableError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyRecord:
    """A persisted credential record. Never carries the plaintext key."""

    digest: str
    user_id: uuid.UUID
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime


def _as_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime (naive values are UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _short(digest: str) -> str:
    """Digest prefix for log lines."""
    return digest[:8]


def _as_kind(value: int) -> TokenKind:
    """Map a stored kind to TokenKind; kinds added by other writers are UNKNOWN."""
    try:
        return TokenKind(value)
    except ValueError:
        return TokenKind.UNKNOWN


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class KeyStore(Protocol):
    """Storage operations the key service depends on."""

    async def insert(self, record: KeyRecord) -> datetime:
        """
        Persist a new record.

        Returns:
            The stored expires_at (UTC).

        Raises:
            KeyConflictError: A record with this digest already exists.
            UserNotFoundError: The owning user no longer exists.
            StoreUnavailableError: Backend failure; nothing was stored.
        """
        ...

    async def lookup_by_digest(self, digest: str) -> KeyRecord:
        """
        Fetch the record for a digest.

        Raises:
            KeyNotFoundError: No record has this digest.
            StoreUnavailableError: Backend failure.
        """
        ...

    async def delete_by_digest(
        self, digest: str, kind: TokenKind | None = None,
    ) -> None:
        """
        Delete the record for a digest, optionally only if it has `kind`.

        Not idempotent: deleting an absent record raises KeyNotFoundError.
        """
        ...


# ---------------------------------------------------------------------------
# SQL Implementation
# ---------------------------------------------------------------------------


class SqlKeyStore:
    """
    KeyStore backed by the oauth_tokens table.

    Each write commits on the session it was given, so callers see a
    durable row (or an exception) before they act on the result.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def insert(self, record: KeyRecord) -> datetime:
        expires_at = _as_utc(record.expires_at)
        self._session.add(OAuthToken(
            token=record.digest,
            user_id=record.user_id,
            kind=int(record.kind),
            created_at=_as_utc(record.issued_at),
            expires_at=expires_at,
        ))
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            logger.warning(
                "Key insert rejected by the store: digest=%s…",
                _short(record.digest),
            )
            raise await self._integrity_failure(record) from exc
        except (SQLAlchemyError, OSError) as exc:
            await self._session.rollback()
            logger.error("Key insert failed: %s", exc)
            raise StoreUnavailableError("key store unavailable") from exc

        logger.debug(
            "Stored key record: digest=%s…, kind=%s, user_id=%s",
            _short(record.digest), record.kind.name, record.user_id,
        )
        return expires_at

    async def _integrity_failure(self, record: KeyRecord) -> KeyServiceError:
        """
        Work out which constraint rejected an insert.

        Only an existing row with the same digest is a conflict. A missing
        owner means the user went away between lookup and insert.
        """
        try:
            digest_taken = await self._session.scalar(
                select(OAuthToken.token).where(OAuthToken.token == record.digest)
            )
            if digest_taken is not None:
                return KeyConflictError("key digest already exists")
            owner = await self._session.scalar(
                select(User.id).where(User.id == record.user_id)
            )
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Key insert diagnosis failed: %s", exc)
            return StoreUnavailableError("key store unavailable")

        if owner is None:
            return UserNotFoundError(str(record.user_id))
        logger.error(
            "Key insert violated an unexpected constraint: digest=%s…",
            _short(record.digest),
        )
        return StoreUnavailableError("key store rejected the record")

    async def lookup_by_digest(self, digest: str) -> KeyRecord:
        stmt = select(OAuthToken).where(OAuthToken.token == digest)
        try:
            result = await self._session.execute(stmt)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Key lookup failed: %s", exc)
            raise StoreUnavailableError("key store unavailable") from exc

        row = result.scalar_one_or_none()
        if row is None:
            raise KeyNotFoundError("no key with this digest")

        return KeyRecord(
            digest=row.token,
            user_id=row.user_id,
            kind=_as_kind(row.kind),
            issued_at=_as_utc(row.created_at),
            expires_at=_as_utc(row.expires_at),
        )

    async def delete_by_digest(
        self, digest: str, kind: TokenKind | None = None,
    ) -> None:
        stmt = delete(OAuthToken).where(OAuthToken.token == digest)
        if kind is not None:
            stmt = stmt.where(OAuthToken.kind == int(kind))

        try:
            result = await self._session.execute(stmt)
            await self._session.commit()
        except (SQLAlchemyError, OSError) as exc:
            await self._session.rollback()
            logger.error("Key delete failed: %s", exc)
            raise StoreUnavailableError("key store unavailable") from exc

        if result.rowcount == 0:
            raise KeyNotFoundError("no key with this digest")
        logger.debug("Deleted key record: digest=%s…", _short(digest))


# ---------------------------------------------------------------------------
# In-Memory Implementation
# ---------------------------------------------------------------------------


class InMemoryKeyStore:
    """
    KeyStore held in a dict.

    Check-and-set happens without an intervening await, so concurrent
    coroutines on one event loop see the same uniqueness guarantees as the
    SQL store.
    """

    def __init__(self) -> None:
        self._records: dict[str, KeyRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def insert(self, record: KeyRecord) -> datetime:
        if record.digest in self._records:
            raise KeyConflictError("key digest already exists")
        stored = KeyRecord(
            digest=record.digest,
            user_id=record.user_id,
            kind=record.kind,
            issued_at=_as_utc(record.issued_at),
            expires_at=_as_utc(record.expires_at),
        )
        self._records[record.digest] = stored
        return stored.expires_at

    async def lookup_by_digest(self, digest: str) -> KeyRecord:
        try:
            return self._records[digest]
        except KeyError:
            raise KeyNotFoundError("no key with this digest") from None

    async def delete_by_digest(
        self, digest: str, kind: TokenKind | None = None,
    ) -> None:
        record = self._records.get(digest)
        if record is None or (kind is not None and record.kind != kind):
            raise KeyNotFoundError("no key with this digest")
        del self._records[digest]
