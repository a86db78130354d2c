# =============================================================================
# Celery Task Definitions — Expired Key Purge
# =============================================================================
#
# IMPORTANT: Celery workers are SYNCHRONOUS.
# - Do NOT use `async/await` in Celery tasks
# - Do NOT use the async SQLAlchemy engine (use get_sync_session instead)
#
# RETRY STRATEGY:
# max_retries=3, 60s apart. Covers dropped DB connections; the next beat
# tick would catch up anyway.
# =============================================================================

import logging
from datetime import UTC, datetime

from sqlalchemy import delete

from accountkeys.db.engine import get_sync_session
from accountkeys.db.models import OAuthToken, TokenKind
from accountkeys.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="purge_expired_account_keys",
    max_retries=3,
    default_retry_delay=60,
)
def purge_expired_account_keys(
    self,
    kind: int = int(TokenKind.ACCOUNT_MANAGEMENT_V0),
) -> dict:
    """
    Delete oauth_tokens rows of `kind` whose expires_at has passed.

    Args:
        self: Celery task instance (bound task, provides self.request.id).
        kind: TokenKind value to purge. Other kinds sharing the table are
            left to their own owners.

    Returns:
        dict with the purge cut-off and number of rows removed.
    """
    task_id = self.request.id
    now = datetime.now(UTC)

    try:
        with get_sync_session() as session:
            result = session.execute(
                delete(OAuthToken)
                .where(OAuthToken.kind == kind)
                .where(OAuthToken.expires_at <= now)
            )
            deleted = result.rowcount
    except Exception as exc:
        logger.exception("[%s] Expired key purge failed: %s", task_id, exc)
        raise self.retry(exc=exc)

    summary = {
        "kind": kind,
        "cutoff": now.isoformat(),
        "deleted": deleted,
    }
    logger.info("[%s] Expired key purge complete: %s", task_id, summary)
    return summary
