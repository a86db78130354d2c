# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Request/response schemas for the API, separate from the ORM models in
# accountkeys/db/models.py. Key digests never appear in any response schema.
# =============================================================================
