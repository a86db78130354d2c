# =============================================================================
# Unit Tests — Expired Key Purge Task & Settings
# =============================================================================
#
# The Celery task is called directly (no broker, no worker); the sync
# session is replaced with a mock, or with a session on in-memory SQLite
# where row-level effects matter.
# =============================================================================

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from accountkeys.config import Settings
from accountkeys.db.models import Base, OAuthToken, TokenKind, User
from accountkeys.workers.celery_app import celery_app
from accountkeys.workers.tasks import purge_expired_account_keys


@contextmanager
def _fake_sync_session(session):
    yield session


class TestPurgeExpiredAccountKeys:
    """Tests for the purge_expired_account_keys Celery task."""

    def test_deletes_expired_rows_of_account_kind(self):
        session = MagicMock()
        session.execute.return_value.rowcount = 4

        with patch(
            "accountkeys.workers.tasks.get_sync_session",
            return_value=_fake_sync_session(session),
        ):
            summary = purge_expired_account_keys()

        assert summary["deleted"] == 4
        assert summary["kind"] == int(TokenKind.ACCOUNT_MANAGEMENT_V0)

        stmt = session.execute.call_args.args[0]
        sql = str(stmt)
        assert "DELETE FROM oauth_tokens" in sql
        assert "oauth_tokens.kind" in sql
        assert "oauth_tokens.expires_at <=" in sql

    def test_only_expired_rows_of_its_kind_are_removed(self):
        engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        Base.metadata.create_all(engine)
        now = datetime.now(UTC)
        user_id = uuid.uuid4()

        with Session(engine) as session:
            session.add(User(id=user_id, email="owner@example.com"))
            session.add_all([
                OAuthToken(
                    token="expired-account-key", user_id=user_id,
                    kind=int(TokenKind.ACCOUNT_MANAGEMENT_V0),
                    created_at=now - timedelta(hours=2),
                    expires_at=now - timedelta(hours=1),
                ),
                OAuthToken(
                    token="live-account-key", user_id=user_id,
                    kind=int(TokenKind.ACCOUNT_MANAGEMENT_V0),
                    created_at=now, expires_at=now + timedelta(hours=1),
                ),
                OAuthToken(
                    token="expired-refresh-token", user_id=user_id,
                    kind=int(TokenKind.REFRESH_TOKEN),
                    created_at=now - timedelta(hours=2),
                    expires_at=now - timedelta(hours=1),
                ),
            ])
            session.commit()

        @contextmanager
        def _real_sync_session():
            with Session(engine) as session:
                yield session
                session.commit()

        with patch(
            "accountkeys.workers.tasks.get_sync_session",
            side_effect=_real_sync_session,
        ):
            summary = purge_expired_account_keys()

        with Session(engine) as session:
            remaining = set(session.scalars(select(OAuthToken.token)))
        engine.dispose()

        assert summary["deleted"] == 1
        assert remaining == {"live-account-key", "expired-refresh-token"}

    def test_other_kind_can_be_purged(self):
        session = MagicMock()
        session.execute.return_value.rowcount = 0

        with patch(
            "accountkeys.workers.tasks.get_sync_session",
            return_value=_fake_sync_session(session),
        ):
            summary = purge_expired_account_keys(kind=int(TokenKind.REFRESH_TOKEN))

        assert summary == {
            "kind": int(TokenKind.REFRESH_TOKEN),
            "cutoff": summary["cutoff"],
            "deleted": 0,
        }

    def test_database_error_is_raised(self):
        """Called directly (outside a worker), retry re-raises the error."""
        with patch(
            "accountkeys.workers.tasks.get_sync_session",
            side_effect=ConnectionError("db down"),
        ):
            with pytest.raises(ConnectionError):
                purge_expired_account_keys()

    def test_task_is_scheduled(self):
        schedule = celery_app.conf.beat_schedule
        assert schedule["purge-expired-account-keys"]["task"] == (
            "purge_expired_account_keys"
        )


class TestSettings:
    """Tests for the account key settings."""

    def test_default_expiration_is_720h(self):
        assert Settings().account_keys_default_expiration == timedelta(hours=720)

    def test_duration_string_accepted(self):
        settings = Settings(account_keys_default_expiration="48h")
        assert settings.account_keys_default_expiration == timedelta(hours=48)

    def test_seconds_accepted(self):
        settings = Settings(account_keys_default_expiration=3600)
        assert settings.account_keys_default_expiration == timedelta(hours=1)

    def test_iso_8601_accepted(self):
        settings = Settings(account_keys_default_expiration="P2D")
        assert settings.account_keys_default_expiration == timedelta(days=2)

    @pytest.mark.parametrize("value", ["-1h", "0s", 0])
    def test_non_positive_rejected(self, value):
        with pytest.raises(ValidationError):
            Settings(account_keys_default_expiration=value)

    def test_env_variable(self, monkeypatch):
        monkeypatch.setenv("ACCOUNT_KEYS_DEFAULT_EXPIRATION", "3h")
        monkeypatch.setenv("ADMIN_AUTH_TOKEN", "from-env")
        settings = Settings()
        assert settings.account_keys_default_expiration == timedelta(hours=3)
        assert settings.admin_auth_token == "from-env"
