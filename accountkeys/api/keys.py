# =============================================================================
# Account Management API Keys — Admin Endpoints
# =============================================================================
#
#   POST /api/accountmanagementapikeys/{email_or_id}        issue a key
#   PUT  /api/accountmanagementapikeys/{apikey}/revoke      revoke a key
#
# Every route sits behind require_admin_token. Handlers resolve the target
# user, call AccountKeyService, and map the service's error taxonomy to
# status codes. The plaintext key appears only in the POST response.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import TypeAdapter, ValidationError

from accountkeys.api.deps import (
    get_key_service,
    get_user_directory,
    require_admin_token,
)
from accountkeys.models.requests import CreateAccountKeyRequest
from accountkeys.models.responses import AccountKeyCreatedResponse, ErrorResponse
from accountkeys.services.directory import UserDirectory, resolve_user_ref
from accountkeys.services.errors import (
    InvalidExpirationError,
    KeyConflictError,
    KeyNotFoundError,
    KeyServiceError,
    StoreUnavailableError,
    UnauthorizedKeyError,
    UserNotFoundError,
)
from accountkeys.services.key_service import AccountKeyService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/accountmanagementapikeys",
    tags=["Account Management API Keys"],
    dependencies=[Depends(require_admin_token)],
    responses={
        401: {"model": ErrorResponse, "description": "Bad admin token"},
        503: {"model": ErrorResponse, "description": "Store unavailable"},
    },
)


# ---------------------------------------------------------------------------
# POST /api/accountmanagementapikeys/{email_or_id} — Issue Key
# ---------------------------------------------------------------------------


@router.post(
    "/{email_or_id}",
    response_model=AccountKeyCreatedResponse,
    summary="Issue an account management API key",
    description=(
        "Mint a new API key for the user identified by email or id. The "
        "raw key is only returned in this response. Store it securely."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid expiration"},
        404: {"model": ErrorResponse, "description": "Unknown user"},
    },
    openapi_extra={
        "requestBody": {
            "required": False,
            "content": {
                "application/json": {
                    "schema": CreateAccountKeyRequest.model_json_schema(),
                },
            },
        },
    },
)
async def create_account_key(
    email_or_id: str,
    request: Request,
    directory: UserDirectory = Depends(get_user_directory),
    service: AccountKeyService = Depends(get_key_service),
) -> AccountKeyCreatedResponse:
    """Issue a key for a user and return it (once)."""
    body = await _read_create_request(request)
    expiration = body.expiration if body is not None else None

    try:
        user_id = await resolve_user_ref(directory, email_or_id)
        issued = await service.create(user_id, expiration)
    except KeyServiceError as exc:
        raise _to_http_error(exc) from exc

    return AccountKeyCreatedResponse(
        apikey=issued.api_key,
        expires_at=issued.expires_at,
    )


# ---------------------------------------------------------------------------
# PUT /api/accountmanagementapikeys/{apikey}/revoke — Revoke Key
# ---------------------------------------------------------------------------


@router.put(
    "/{apikey}/revoke",
    status_code=200,
    response_class=Response,
    summary="Revoke an account management API key",
    responses={404: {"model": ErrorResponse, "description": "Unknown key"}},
)
async def revoke_account_key(
    apikey: str,
    service: AccountKeyService = Depends(get_key_service),
) -> Response:
    """Delete the key's record. Responds with an empty body."""
    try:
        await service.revoke(apikey)
    except KeyServiceError as exc:
        raise _to_http_error(exc) from exc

    return Response(status_code=200)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_create_request_adapter = TypeAdapter(CreateAccountKeyRequest | None)


async def _read_create_request(request: Request) -> CreateAccountKeyRequest | None:
    """
    Parse the optional issue body as JSON whatever its Content-Type.

    Existing clients post `{"expiration": "3h"}` without a Content-Type
    header. An empty body or `null` means "use the default lifetime".
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return _create_request_adapter.validate_json(raw)
    except ValidationError as exc:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request.") if errors else "Invalid request."
        raise HTTPException(status_code=400, detail=message) from exc


def _to_http_error(exc: KeyServiceError) -> HTTPException:
    """Map a key service error to the HTTPException the client sees."""
    if isinstance(exc, InvalidExpirationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, UserNotFoundError):
        return HTTPException(status_code=404, detail="User not found.")
    if isinstance(exc, KeyNotFoundError):
        return HTTPException(status_code=404, detail="API key not found.")
    if isinstance(exc, UnauthorizedKeyError):
        return HTTPException(status_code=401, detail="Invalid API key.")
    if isinstance(exc, StoreUnavailableError):
        return HTTPException(status_code=503, detail="Key store unavailable.")
    if isinstance(exc, KeyConflictError):
        logger.error("Account key digest collision; client should retry")
        return HTTPException(
            status_code=500, detail="Key collision, please retry.",
        )
    logger.exception("Unmapped key service error: %s", exc)
    return HTTPException(status_code=500, detail="Internal error.")
