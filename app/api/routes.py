"""
FastAPI routes for the shipment enrichment service.
"""

from __future__ import annotations

import logging
import uuid
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from app.clients.shipbob_auth import InvalidOAuthStateError
from app.dependencies import (
    get_app_settings,
    get_enrichment_pipeline,
    get_log_buffer,
    get_oauth_state_encoder,
    get_shipbob_oauth_client,
    get_token_manager,
)
from app.schemas import OAuthCallbackResult, WebhookAck
from app.services.enrichment import EnrichmentWriteFailed, EventValidationError
from app.services.token_manager import AuthorizationCodeExchangeFailed

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/shipbob")
async def start_shipbob_oauth_flow(
    oauth_client: Annotated[Any, Depends(get_shipbob_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
) -> RedirectResponse:
    """Send the user agent to ShipBob's consent page."""
    state = state_encoder.encode({"nonce": uuid.uuid4().hex})
    authorization_url = oauth_client.build_authorization_url(state=state)
    logger.info("Redirecting to ShipBob consent page")
    return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)


@router.get("/oauth/callback", response_model=OAuthCallbackResult)
async def handle_shipbob_oauth_callback(
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_manager: Annotated[Any, Depends(get_token_manager)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: str | None = Query(None, description="Authorization code returned by ShipBob."),
    state: str | None = Query(None, description="State issued by /auth/shipbob."),
    error: str | None = Query(None, description="Error reported by the provider."),
) -> OAuthCallbackResult:
    """Verify the state, exchange the code, and store the credential."""
    if error:
        logger.warning("ShipBob reported an OAuth error: %s", error)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail=f"Authorization failed: {error}"
        )
    if not code:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="No code provided")
    if not state:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="No state provided")

    try:
        state_encoder.decode(state, max_age_seconds=settings.shipbob.state_ttl)
    except InvalidOAuthStateError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc

    try:
        record = await token_manager.exchange_authorization_code(code)
    except AuthorizationCodeExchangeFailed as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="Failed to exchange authorization code.",
        ) from exc

    return OAuthCallbackResult(status="connected", expires_at=record.expires_at)


@router.post(
    "/webhooks/shipbob/order-shipped",
    response_model=WebhookAck,
    status_code=HTTPStatus.OK,
)
async def shipbob_order_shipped(
    request: Request,
    pipeline: Annotated[Any, Depends(get_enrichment_pipeline)],
) -> WebhookAck:
    """Enrich the shipped order with device, registration, and SIM details."""
    try:
        payload = await request.json()
    except ValueError as exc:
        logger.warning("Rejected webhook: body is not valid JSON")
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="Webhook body must be valid JSON."
        ) from exc

    if not isinstance(payload, dict):
        logger.warning("Rejected webhook: body is not a JSON object")
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="Webhook body must be a JSON object."
        )

    try:
        outcome = await pipeline.handle(payload)
    except EventValidationError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except EnrichmentWriteFailed as exc:
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc

    logger.info("Webhook for order %s processed successfully", outcome.order_reference)
    return WebhookAck(
        success=True,
        order_id=outcome.order_reference,
        imei=outcome.serial_number,
        attributes=outcome.attribute_status(),
    )


@router.get("/logs", status_code=HTTPStatus.OK)
async def recent_logs(
    log_buffer: Annotated[Any, Depends(get_log_buffer)],
    limit: int = Query(200, ge=1, le=5000, description="Most recent lines to return."),
) -> dict:
    """Return the most recent log lines for operational inspection."""
    lines = log_buffer.lines(limit)
    return {"count": len(lines), "lines": lines}


__all__ = ["router"]
