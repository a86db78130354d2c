# =============================================================================
# Account Management API Keys
# =============================================================================
# Issues time-boxed bearer API keys for platform accounts, stores only their
# digests, exchanges keys back into the owning user id, and revokes them.
#
# Package structure:
#   accountkeys/
#   ├── api/          → FastAPI router and dependencies (admin gate, wiring)
#   ├── db/           → Database engine, sessions, and ORM models
#   ├── models/       → Pydantic V2 request/response schemas
#   ├── services/     → Key lifecycle: generation, hashing, expiration,
#   │                    storage, user directory, orchestration
#   └── workers/      → Celery app and the expired-key purge task
# =============================================================================
