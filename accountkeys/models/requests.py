# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data coming INTO the API. Validation failures on these models
# are rendered as 400 by the application's exception handler.
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field


class CreateAccountKeyRequest(BaseModel):
    """
    Request body for POST /api/accountmanagementapikeys/{email_or_id}.

    Example:
        {"expiration": "3h"}

    An empty string, null, or a missing field applies the configured
    default lifetime. The value is only checked for type here; the
    duration grammar and positivity are enforced by the expiration policy.
    """

    expiration: str | None = Field(
        default=None,
        max_length=64,
        description=(
            "Key lifetime such as '3h' or '1h30m'. Leave empty for the "
            "server default."
        ),
        examples=["3h", ""],
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"expiration": ""},
                {"expiration": "3h"},
            ]
        }
    )
