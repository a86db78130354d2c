# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data going OUT of the API. Field names on the wire follow the
# established client contract (camelCase), via aliases.
# =============================================================================

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AccountKeyCreatedResponse(BaseModel):
    """
    Response for POST /api/accountmanagementapikeys/{email_or_id}.

    WARNING: `apikey` is only returned in this response. It is never
    stored or retrievable after creation.
    """

    apikey: str = Field(
        description=(
            "The full API key. Store it securely, "
            "it will NOT be shown again."
        ),
    )
    expires_at: datetime = Field(
        alias="expiresAt",
        description="RFC 3339 timestamp after which the key stops working.",
    )

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    """Body of 4xx/5xx responses."""

    detail: str
