"""WhatsApp webhook routes - Meta Cloud API integration.

Security:
- PII (phone, text) exists only in memory and in the salon's own tables
- Logs contain NO PII

IMPORTANT: POST always returns 200 to Meta, even on errors. Meta retries
on non-2xx responses, which would only produce duplicates.
"""

import os
import threading
from typing import Any

from fastapi import APIRouter, Header, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from salonbot.observability.correlation import get_correlation_id
from salonbot.observability.logging import get_logger
from salonbot.observability.redaction import safe_log_context
from salonbot.services.router import WebhookRouter, build_webhook_router
from salonbot.whatsapp.meta_adapter import (
    WHATSAPP_OBJECT,
    SignatureVerificationError,
    verify_signature,
)

router = APIRouter(prefix="/webhooks/whatsapp", tags=["webhooks"])

logger = get_logger(__name__)

_webhook_router: WebhookRouter | None = None
_webhook_router_lock = threading.Lock()


def _get_router() -> WebhookRouter:
    """Get the webhook router, built on first use (tests override this)."""
    global _webhook_router
    if _webhook_router is None:
        with _webhook_router_lock:
            if _webhook_router is None:
                _webhook_router = build_webhook_router()
    return _webhook_router


@router.get("")
def verify_webhook(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_verify_token: str = Query(None, alias="hub.verify_token"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
) -> Response:
    """Meta webhook verification endpoint.

    Meta sends GET request during webhook setup to verify ownership.
    We must return hub.challenge if hub.verify_token matches.

    Returns:
        200 with hub.challenge if valid.
        403 if invalid.
    """
    expected_token = os.environ.get("META_VERIFY_TOKEN", "")

    if hub_mode == "subscribe" and expected_token and hub_verify_token == expected_token:
        logger.info(
            "meta webhook verification successful",
            extra={"extra_fields": safe_log_context(hub_mode=hub_mode)},
        )
        return Response(status_code=200, content=hub_challenge or "")

    logger.warning(
        "meta webhook verification failed",
        extra={
            "extra_fields": safe_log_context(
                hub_mode=hub_mode or "missing",
                token_match=hub_verify_token == expected_token if expected_token else "no_token_configured",
            )
        },
    )
    return Response(status_code=403, content="verification failed")


@router.post("")
async def receive_webhook(
    request: Request,
    x_hub_signature_256: str | None = Header(None, alias="X-Hub-Signature-256"),
) -> Response:
    """Receive Meta Cloud API webhook.

    Args:
        request: FastAPI request object.
        x_hub_signature_256: HMAC signature from Meta.

    Returns:
        200 OK always (Meta requirement).
    """
    correlation_id = get_correlation_id()

    # 1. Read raw body for signature verification
    try:
        body_bytes = await request.body()
    except Exception:
        logger.warning(
            "failed to read request body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=200, content="ok")

    # 2. Verify signature (if META_APP_SECRET configured)
    app_secret = os.environ.get("META_APP_SECRET", "")
    if app_secret:
        try:
            verify_signature(body_bytes, x_hub_signature_256 or "", app_secret)
        except SignatureVerificationError as e:
            logger.warning(
                "meta signature verification failed",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=correlation_id,
                        error=str(e),
                    )
                },
            )
            return Response(status_code=200, content="ok")

    # 3. Parse JSON
    try:
        payload: dict[str, Any] = await request.json()
    except Exception:
        logger.warning(
            "invalid json body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=200, content="ok")

    # 4. Only WhatsApp Business Account deliveries are routed
    obj_type = payload.get("object") if isinstance(payload, dict) else None
    if obj_type != WHATSAPP_OBJECT:
        logger.debug(
            "non-whatsapp webhook ignored",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    object_type=obj_type or "missing",
                )
            },
        )
        return Response(status_code=200, content="ok")

    # 5. Route; the router blocks on the database and collaborators
    try:
        await run_in_threadpool(_get_router().process_webhook_event, payload)
    except Exception:
        logger.exception(
            "meta webhook processing failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )

    return Response(status_code=200, content="ok")
