# =============================================================================
# Account Key Service — Issue, Resolve, Revoke
# =============================================================================
#
# Composes key generation, hashing, the expiration policy and a KeyStore.
#
# ISSUE:    generate → hash → resolve expiry → insert → return plaintext
# RESOLVE:  hash → lookup → reject missing / foreign kind / expired → user id
# REVOKE:   hash → delete (this kind only) → KeyNotFoundError if nothing
#
# Invariants:
# - The plaintext key is returned only from create(), and only after the
#   store accepted its digest.
# - Expiry is resolved before touching the store, so a bad expiration
#   leaves nothing behind.
# - Nothing is cached: each resolve is a fresh lookup, so a revoke is
#   visible to the very next request.
# - Expired rows are rejected here whether or not the sweeper has run.
# - Nothing is retried. Callers re-issue on KeyConflictError; a new
#   random key is generated each time.
# =============================================================================

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from accountkeys.db.models import TokenKind
from accountkeys.services.errors import (
    InvalidExpirationError,
    KeyNotFoundError,
    UnauthorizedKeyError,
)
from accountkeys.services.expiration import resolve_expiration
from accountkeys.services.keygen import generate_api_key, hash_api_key
from accountkeys.services.keystore import KeyRecord, KeyStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class IssuedKey:
    """Result of create(): the only place the plaintext key ever appears."""

    api_key: str
    expires_at: datetime


class AccountKeyService:
    """
    Lifecycle of account management API keys for one token kind.

    Args:
        store: Where records live. The service holds no other state.
        default_expiration: Lifetime used when a request names none.
        kind: Token kind written and accepted by this service.
        hash_secret: Optional HMAC key for digests (see keygen.hash_api_key).
        clock: Returns the current aware UTC time. Injected by tests.
    """

    def __init__(
        self,
        store: KeyStore,
        default_expiration: timedelta,
        *,
        kind: TokenKind = TokenKind.ACCOUNT_MANAGEMENT_V0,
        hash_secret: str = "",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._default_expiration = default_expiration
        self._kind = kind
        self._hash_secret = hash_secret
        self._clock = clock

    @property
    def kind(self) -> TokenKind:
        return self._kind

    def hash_key(self, api_key: str) -> str:
        """Digest of `api_key` as stored by this service."""
        return hash_api_key(api_key, self._hash_secret)

    async def create(
        self, user_id: uuid.UUID, expiration: str | None = None,
    ) -> IssuedKey:
        """
        Issue a new key for `user_id`.

        Args:
            user_id: Owner; must already exist in the directory.
            expiration: Duration string ("3h"); None or "" for the default.

        Raises:
            InvalidExpirationError: Bad expiration; nothing stored.
            KeyConflictError: Digest collision; safe to call again.
            StoreUnavailableError: Store failure; nothing returned.
        """
        now = self._clock()
        expires_at = resolve_expiration(expiration, now, self._default_expiration)

        api_key = generate_api_key()
        digest = self.hash_key(api_key)

        stored_expires_at = await self._store.insert(KeyRecord(
            digest=digest,
            user_id=user_id,
            kind=self._kind,
            issued_at=now,
            expires_at=expires_at,
        ))

        logger.info(
            "Account key issued: user_id=%s, digest=%s…, expires_at=%s",
            user_id, digest[:8], stored_expires_at.isoformat(),
        )
        return IssuedKey(api_key=api_key, expires_at=stored_expires_at)

    async def insert(
        self,
        user_id: uuid.UUID,
        digest: str,
        issued_at: datetime,
        lifetime: timedelta,
    ) -> datetime:
        """
        Store a pre-hashed key issued at `issued_at` for `lifetime`.

        Returns the stored expires_at. Used for administrative seeding,
        where the caller already holds the plaintext key.
        """
        if lifetime <= timedelta(0):
            raise InvalidExpirationError("lifetime must be positive")

        return await self._store.insert(KeyRecord(
            digest=digest,
            user_id=user_id,
            kind=self._kind,
            issued_at=issued_at,
            expires_at=issued_at + lifetime,
        ))

    async def get_user_from_key(self, api_key: str) -> uuid.UUID:
        """
        Exchange a presented key for the id of the user it was issued to.

        Raises:
            UnauthorizedKeyError: Unknown, revoked, expired, or not ours.
            StoreUnavailableError: Store failure.
        """
        digest = self.hash_key(api_key)
        try:
            record = await self._store.lookup_by_digest(digest)
        except KeyNotFoundError:
            raise UnauthorizedKeyError("invalid API key") from None

        if record.kind != self._kind:
            raise UnauthorizedKeyError("invalid API key")

        if record.expires_at <= self._clock():
            logger.debug("Rejected expired account key: digest=%s…", digest[:8])
            raise UnauthorizedKeyError("invalid API key")

        return record.user_id

    async def revoke(self, api_key: str) -> None:
        """
        Delete the record for `api_key`.

        Raises:
            KeyNotFoundError: Never issued, or already revoked.
            StoreUnavailableError: Store failure.
        """
        digest = self.hash_key(api_key)
        await self._store.delete_by_digest(digest, kind=self._kind)
        logger.info("Account key revoked: digest=%s…", digest[:8])
