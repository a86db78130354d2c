# =============================================================================
# Database Engine & Session Management
# =============================================================================
#
# Async SQLAlchemy engine (asyncpg) for FastAPI, lazily created sync engine
# (psycopg2) for Celery workers. Both connect to the same schema.
#
# SESSION LIFECYCLE (FastAPI):
# 1. Request arrives, `get_async_session` opens a session
# 2. Route handler and services use it
# 3. Session commits on exit, rolls back on exception, then closes
#
# COMMIT POLICY:
# The SQL key store commits its own writes so a credential is only handed
# back after its row is durable. The commit at dependency exit is then a
# no-op. Celery tasks use `get_sync_session()`, which commits on exit.
# =============================================================================

from collections.abc import AsyncGenerator, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from accountkeys.config import settings
from accountkeys.db.models import Base

# ---------------------------------------------------------------------------
# Async Engine
# ---------------------------------------------------------------------------
# echo=True in debug logs every SQL statement. Key digests appear in those
# logs; plaintext keys never reach the database and so never appear.
# ---------------------------------------------------------------------------
async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_size=5,
    max_overflow=10,
)

# expire_on_commit=False: loaded attributes stay readable after commit
# without a lazy refresh, which would fail outside an awaited context.
async_session_factory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Sync Engine — For Celery Workers (Lazy Initialization)
# ---------------------------------------------------------------------------
# psycopg2 is only needed by workers, so the engine is created on first use.
# ---------------------------------------------------------------------------

_sync_engine = None
_sync_session_factory = None


def _get_sync_engine():
    """Sync engine on psycopg2, built on the first sweep."""
    global _sync_engine
    if _sync_engine is None:
        _sync_engine = create_engine(
            settings.database_url_sync,
            echo=settings.debug,
            pool_size=5,
            max_overflow=10,
        )
    return _sync_engine


def _get_sync_session_factory():
    """Session factory over the sync engine, cached after first use."""
    global _sync_session_factory
    if _sync_session_factory is None:
        _sync_session_factory = sessionmaker(
            bind=_get_sync_engine(),
            class_=Session,
            expire_on_commit=False,
        )
    return _sync_session_factory


@contextmanager
def get_sync_session() -> Generator[Session, None, None]:
    """
    Sync session for the expired-key sweeper, committed on clean exit.

        with get_sync_session() as session:
            session.execute(
                delete(OAuthToken).where(OAuthToken.expires_at <= now)
            )
    """
    session = _get_sync_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Per-request session for the key store and user directory.

    Wired in by accountkeys.api.deps:

        async def get_key_service(
            session: AsyncSession = Depends(get_async_session),
        ) -> AccountKeyService:
            return AccountKeyService(SqlKeyStore(session), ...)

    SqlKeyStore has already committed its own writes by the time the
    request ends; anything left pending is rolled back on error.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create any missing tables. Called once at application start-up."""
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
