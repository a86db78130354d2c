# =============================================================================
# Celery Application Configuration
# =============================================================================
#
# Celery runs the periodic maintenance for issued keys: purging rows whose
# expires_at has passed. Key resolution never depends on this having run;
# it only keeps the oauth_tokens table from growing without bound.
#
# ARCHITECTURE:
# ┌──────────────┐     ┌───────┐     ┌──────────────┐     ┌──────────┐
# │ Celery beat  │────▶│ Redis │────▶│ Celery worker│────▶│ Postgres │
# │ (scheduler)  │     │(broker)│    │ (sync engine) │    │          │
# └──────────────┘     └───────┘     └──────────────┘     └──────────┘
#
# Run:
#   celery -A accountkeys.workers.celery_app worker --loglevel=info
#   celery -A accountkeys.workers.celery_app beat --loglevel=info
# =============================================================================

from celery import Celery

from accountkeys.config import settings

celery_app = Celery(
    "accountkeys.workers",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # --- Serialization ---
    # JSON only; pickle can execute code during deserialization.
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # --- Reliability ---
    # Acknowledge after completion so a crashed worker's task is re-queued.
    # The purge is a single idempotent DELETE, so a re-run is harmless.
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    # --- Timeouts ---
    task_soft_time_limit=120,
    task_time_limit=300,

    # --- Results ---
    result_expires=3600,

    # --- Schedule ---
    beat_schedule={
        "purge-expired-account-keys": {
            "task": "purge_expired_account_keys",
            "schedule": float(settings.expired_key_sweep_interval_seconds),
        },
    },

    # --- Task Discovery ---
    include=["accountkeys.workers.tasks"],
)
