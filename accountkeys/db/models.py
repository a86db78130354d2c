# =============================================================================
# Database Models — SQLAlchemy ORM
# =============================================================================
#
# SCHEMA OVERVIEW:
#
# ┌──────────────┐       ┌──────────────────────────────────┐
# │  users       │       │  oauth_tokens                    │
# ├──────────────┤       ├──────────────────────────────────┤
# │ id (PK)      │──1:N─▶│ token (PK, digest)               │
# │ email        │       │ user_id (FK → users.id)          │
# │ created_at   │       │ kind (int)                       │
# └──────────────┘       │ created_at                       │
#                        │ expires_at                       │
#                        └──────────────────────────────────┘
#
# `users` is owned by the account directory; this service only reads it.
#
# `oauth_tokens` holds every bearer-token class the platform issues, told
# apart by `kind`. The primary key is the digest, so digests are unique
# across all kinds and a lookup never needs the kind to find a row.
# Plaintext tokens are never stored.
# =============================================================================

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


class TokenKind(enum.IntEnum):
    """
    Discriminator for rows sharing the oauth_tokens table.

    Stored as a plain integer. Values are part of the persisted layout;
    append new kinds, never renumber.
    """

    UNKNOWN = 0
    ACCESS_TOKEN = 1
    REFRESH_TOKEN = 2
    ACCOUNT_MANAGEMENT_V0 = 3


class User(Base):
    """A platform account, as far as key issuance needs to know it."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(320), nullable=False, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class OAuthToken(Base):
    """
    A stored bearer-token record.

    `token` is the hex digest of the credential handed to the client.
    """

    __tablename__ = "oauth_tokens"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # TokenKind value
    kind: Mapped[int] = mapped_column(Integer, nullable=False)

    # Issue time, set by the service (not server_default) so expires_at is
    # always measured from the same clock reading.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    __table_args__ = (
        # Sweeper: DELETE ... WHERE kind = ? AND expires_at <= now()
        Index("ix_oauth_tokens_kind_expires_at", "kind", "expires_at"),
        Index("ix_oauth_tokens_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<OAuthToken(token='{self.token[:8]}…', user_id={self.user_id}, "
            f"kind={self.kind}, expires_at={self.expires_at})>"
        )
