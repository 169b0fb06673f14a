"""
FastAPI routes for the phone identity-verification proxy.
"""

from __future__ import annotations

import hmac
import logging
from http import HTTPStatus
from typing import Annotated, Any, List
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse, RedirectResponse

from idverify.core.logging import mask_secret, preview_token
from idverify.dependencies import (
    get_app_settings,
    get_auth_session_service,
    get_provider_oauth_client,
    get_signed_token_service,
    get_status_reconciler,
    get_token_cache,
    get_verification_service,
)
from idverify.clients.provider_oauth import ProviderAuthError
from idverify.models.verification import VerificationRecord
from idverify.schemas import (
    FormDefaultsResponse,
    OAuthTokenResponse,
    StatusResponse,
    UpdateStatusRequest,
    VerificationRequest,
    VerificationResponse,
    WebhookPayload,
)
from idverify.services.identifiers import append_random_suffix
from idverify.services.reconciliation import StatusUpdateValidationError, UpdateChannel
from idverify.services.signed_tokens import InvalidTokenError

router = APIRouter()
logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": error, "message": message}
    )


def _status_response(record: VerificationRecord) -> StatusResponse:
    return StatusResponse(
        status=record.status,
        timestamp=record.timestamp,
        error_message=record.error_message,
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post("/verify", status_code=HTTPStatus.OK)
async def verify(
    request: VerificationRequest,
    service: Annotated[Any, Depends(get_verification_service)],
) -> Any:
    """Send one verification request to the provider and record the outcome."""
    record = await service.verify(request)
    if record.succeeded:
        return {"status": "success"}
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={
            "status": "error",
            "message": record.error_message or "Verification failed",
        },
    )


@router.post("/verify/test", status_code=HTTPStatus.OK)
async def verify_test(
    request: VerificationRequest,
    service: Annotated[Any, Depends(get_verification_service)],
    dry_run: bool = Query(
        False,
        alias="dryRun",
        description="When true, record a mock success without calling the provider.",
    ),
) -> Any:
    """Like ``/verify`` but echoes the transaction id and supports dry runs."""
    dry_run_flag = "true" if dry_run else "false"
    record = await service.verify(request, dry_run=dry_run)
    if record.succeeded:
        return {
            "status": "success",
            "dryRun": dry_run_flag,
            "transactionId": record.transaction_id,
        }
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={
            "status": "error",
            "dryRun": dry_run_flag,
            "message": record.error_message or "Verification failed",
        },
    )


@router.get(
    "/verifications",
    status_code=HTTPStatus.OK,
    response_model=List[VerificationResponse],
)
async def list_verifications(
    service: Annotated[Any, Depends(get_verification_service)],
) -> List[VerificationResponse]:
    return [
        VerificationResponse.model_validate(record)
        for record in service.list_verifications()
    ]


@router.get(
    "/verifications/{record_id}",
    status_code=HTTPStatus.OK,
    response_model=VerificationResponse,
)
async def get_verification(
    record_id: int,
    service: Annotated[Any, Depends(get_verification_service)],
) -> VerificationResponse:
    record = service.get_verification(record_id)
    if record is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="Verification not found."
        )
    return VerificationResponse.model_validate(record)


@router.get(
    "/status/reference/{reference_id}",
    status_code=HTTPStatus.OK,
    response_model=StatusResponse,
    response_model_exclude_none=True,
)
async def status_by_reference(
    reference_id: str,
    service: Annotated[Any, Depends(get_verification_service)],
) -> StatusResponse:
    """Latest status recorded for a caller reference id."""
    record = service.latest_status_by_reference(reference_id)
    if record is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail="No verification found for this reference id.",
        )
    return _status_response(record)


@router.get(
    "/status/transaction/{transaction_id}",
    status_code=HTTPStatus.OK,
    response_model=StatusResponse,
    response_model_exclude_none=True,
)
async def status_by_transaction(
    transaction_id: str,
    service: Annotated[Any, Depends(get_verification_service)],
) -> StatusResponse:
    """Latest status recorded for a transaction id, webhook updates included."""
    record = service.latest_status_by_transaction(transaction_id)
    if record is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail="No verification found for this transaction id.",
        )
    return _status_response(record)


@router.post("/updateStatus", status_code=HTTPStatus.OK)
async def update_status(
    payload: UpdateStatusRequest,
    reconciler: Annotated[Any, Depends(get_status_reconciler)],
) -> Any:
    """Record a status change reported without webhook authentication."""
    logger.info(
        "Status update for transaction %s (event=%s, status=%s)",
        payload.transaction_id,
        payload.event,
        payload.status,
    )
    try:
        record = reconciler.handle_event(
            transaction_id=payload.transaction_id,
            event=payload.event,
            status=payload.status,
            payload=payload.model_dump(by_alias=True),
            channel=UpdateChannel.STATUS_UPDATE,
        )
    except StatusUpdateValidationError as exc:
        return _error(HTTPStatus.BAD_REQUEST, "Validation Error", str(exc))

    return {
        "status": "success",
        "message": "Status updated",
        "transactionId": record.transaction_id,
        "resolvedStatus": record.status,
        "recordId": record.id,
    }


@router.post("/webhook", status_code=HTTPStatus.OK)
async def webhook(
    payload: WebhookPayload,
    reconciler: Annotated[Any, Depends(get_status_reconciler)],
    token_service: Annotated[Any, Depends(get_signed_token_service)],
    authorization: str | None = Header(None),
) -> Any:
    """Receive provider progress notifications signed with an issued token."""
    logger.info(
        "Webhook received for transaction %s (event=%s)",
        payload.transaction_id,
        payload.event,
    )
    if not authorization:
        logger.warning("Webhook rejected: missing Authorization header")
        return _error(
            HTTPStatus.UNAUTHORIZED, "Unauthorized", "Missing Authorization header"
        )
    if not authorization.startswith(_BEARER_PREFIX):
        logger.warning("Webhook rejected: Authorization header is not a bearer token")
        return _error(
            HTTPStatus.UNAUTHORIZED,
            "Unauthorized",
            "Authorization header must start with 'Bearer '",
        )

    try:
        token_service.verify(authorization[len(_BEARER_PREFIX):])
    except InvalidTokenError as exc:
        logger.warning("Webhook rejected: %s", exc)
        return _error(
            HTTPStatus.UNAUTHORIZED, "Unauthorized", f"Invalid or expired token: {exc}"
        )

    record = reconciler.handle_event(
        transaction_id=payload.transaction_id,
        event=payload.event,
        payload=payload.model_dump(by_alias=True),
        channel=UpdateChannel.WEBHOOK,
    )
    return {
        "status": "success",
        "message": "Webhook received and processed",
        "transactionId": record.transaction_id,
        "event": payload.event,
        "recordId": record.id,
    }


@router.get("/getAuth")
async def get_auth(
    settings: Annotated[Any, Depends(get_app_settings)],
    sessions: Annotated[Any, Depends(get_auth_session_service)],
    auth_key: str | None = Query(None, description="Shared operator secret."),
) -> Any:
    """Trade the shared auth key for a one-time exchange key via redirect."""
    if not auth_key:
        logger.warning("getAuth rejected: missing auth_key parameter")
        return _error(HTTPStatus.FORBIDDEN, "Forbidden", "Missing auth_key parameter")

    expected = settings.security.auth_key
    if not expected or not hmac.compare_digest(
        auth_key.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning("getAuth rejected: invalid auth_key")
        return _error(HTTPStatus.FORBIDDEN, "Forbidden", "Invalid auth_key")

    pair = sessions.issue()
    return RedirectResponse(
        url=f"/?jwt_key={quote(pair.exchange_key, safe='')}",
        status_code=HTTPStatus.FOUND,
    )


@router.get("/session", status_code=HTTPStatus.OK)
async def redeem_session(
    sessions: Annotated[Any, Depends(get_auth_session_service)],
    jwt_key: str | None = Query(None, description="One-time exchange key."),
) -> Any:
    """Redeem an exchange key for its session token, once."""
    token = sessions.redeem(jwt_key)
    if token is None:
        return _error(
            HTTPStatus.FORBIDDEN, "Forbidden", "Invalid, expired or already used key"
        )
    return {"status": "success", "token": token}


@router.get("/defaults", status_code=HTTPStatus.OK, response_model=FormDefaultsResponse)
async def form_defaults(
    settings: Annotated[Any, Depends(get_app_settings)],
) -> FormDefaultsResponse:
    """Pre-filled verification values, with a fresh suffix on the transaction id."""
    defaults = settings.form_defaults
    transaction_id = (
        append_random_suffix(defaults.transaction) if defaults.transaction else None
    )
    return FormDefaultsResponse(
        phone_code=defaults.phone_code or "",
        phone_number=defaults.phone_number or "",
        reference_id=defaults.reference_id or "",
        transaction_id=transaction_id,
        name=defaults.name,
        supplied_first_name=defaults.supplied_first_name,
    )


@router.post("/3.5/oauthToken", status_code=HTTPStatus.OK)
async def mock_oauth_token(
    settings: Annotated[Any, Depends(get_app_settings)],
) -> Any:
    """Stand-in for the provider token endpoint, serving a configured token."""
    token = settings.provider.mock_oauth_token
    if not token:
        logger.error("OAUTHTOKEN not configured; mock token endpoint unavailable")
        error = OAuthTokenResponse(
            error="invalid_configuration",
            error_description="OAUTHTOKEN not configured",
            message="Please set OAUTHTOKEN in your .env file",
        )
        return JSONResponse(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            content=error.model_dump(exclude_none=True),
        )
    logger.debug("Returning mock OAuth token (%d characters)", len(token))
    grant = OAuthTokenResponse(token_type="Bearer", expires_in=900, access_token=token)
    return grant.model_dump(exclude_none=True)


@router.get("/test/oauth")
async def test_oauth(
    oauth_client: Annotated[Any, Depends(get_provider_oauth_client)],
    verbose: str | None = Query(None, description="Pass 'debug' for request details."),
) -> JSONResponse:
    """Request a fresh provider token, bypassing the cache, and report on it."""
    is_debug = (verbose or "").lower() == "debug"
    logger.info("Testing OAuth token retrieval (verbose=%s)", is_debug)
    result = await oauth_client.check_connection(verbose=is_debug)

    status = result.get("status")
    if status == "SUCCESS":
        status_code = HTTPStatus.OK
    elif status == "ERROR":
        status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    else:
        status_code = HTTPStatus.BAD_REQUEST
    return JSONResponse(status_code=status_code, content=result)


@router.post("/test/oauth/clear", status_code=HTTPStatus.OK)
async def clear_oauth_token(
    token_cache: Annotated[Any, Depends(get_token_cache)],
) -> dict:
    logger.info("Clearing cached OAuth token")
    token_cache.clear()
    return {"status": "SUCCESS", "message": "OAuth token cache cleared"}


@router.get("/test/config", status_code=HTTPStatus.OK)
async def test_config(
    settings: Annotated[Any, Depends(get_app_settings)],
    token_cache: Annotated[Any, Depends(get_token_cache)],
) -> dict:
    """Check that the configured credentials can obtain a token."""
    logger.info(
        "Testing provider configuration for client %s",
        mask_secret(settings.provider.client_id),
    )
    try:
        token = await token_cache.get_token()
    except ProviderAuthError as exc:
        return {"status": "FAILURE", "message": f"Configuration error: {exc}"}
    return {
        "status": "SUCCESS",
        "message": "Configuration is valid and OAuth token obtained",
        "token_preview": preview_token(token),
    }


__all__ = ["router"]
