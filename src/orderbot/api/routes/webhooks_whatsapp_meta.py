"""WhatsApp webhook routes - Meta Cloud API integration.

Security:
- PII (sender phone, profile name, text) exists only in memory during
  webhook processing
- Logs contain NO PII
"""

from typing import Any

from fastapi import APIRouter, Header, Query, Request, Response
from fastapi.concurrency import run_in_threadpool

from orderbot.infra.settings import get_settings
from orderbot.observability.correlation import get_correlation_id
from orderbot.observability.logging import get_logger
from orderbot.observability.redaction import safe_log_context
from orderbot.services.order_intake import OrderIntakeService
from orderbot.whatsapp.meta_adapter import (
    InvalidPayloadError,
    SignatureVerificationError,
    normalize,
    to_message_context,
    verify_signature,
)

router = APIRouter(prefix="/webhooks/whatsapp", tags=["webhooks"])

logger = get_logger(__name__)

_OK = "ok"


def _get_intake(request: Request) -> OrderIntakeService:
    return request.app.state.intake


def _message_id_prefix(message_id: str) -> str:
    return message_id[:8] if len(message_id) >= 8 else message_id


@router.get("/meta")
async def meta_webhook_verify(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_verify_token: str = Query(None, alias="hub.verify_token"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
) -> Response:
    """Meta webhook verification endpoint.

    Meta sends a GET during webhook setup; hub.challenge is echoed back
    when hub.verify_token matches META_VERIFY_TOKEN.

    Returns:
        200 with hub.challenge if valid.
        403 if invalid.
    """
    expected_token = get_settings().meta_verify_token

    if expected_token and hub_mode == "subscribe" and hub_verify_token == expected_token:
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


@router.post("/meta")
async def meta_webhook(
    request: Request,
    x_hub_signature_256: str | None = Header(None, alias="X-Hub-Signature-256"),
) -> Response:
    """Receive Meta Cloud API webhook and run the message through order intake.

    IMPORTANT: Always return 200 to Meta, even on errors.
    Meta will retry on non-2xx responses, causing duplicate orders.
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
        return Response(status_code=200, content=_OK)

    # 2. Verify signature (if META_APP_SECRET configured)
    app_secret = get_settings().meta_app_secret
    if app_secret:
        try:
            verify_signature(body_bytes, x_hub_signature_256 or "", app_secret)
        except SignatureVerificationError as e:
            logger.warning(
                "meta signature verification failed",
                extra={"extra_fields": safe_log_context(correlationId=correlation_id, error=str(e))},
            )
            return Response(status_code=200, content=_OK)

    # 3. Parse JSON
    try:
        payload: dict[str, Any] = await request.json()
    except Exception:
        logger.warning(
            "invalid json body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=200, content=_OK)

    # 4. Only message webhooks
    obj_type = payload.get("object") if isinstance(payload, dict) else None
    if obj_type != "whatsapp_business_account":
        logger.debug(
            "non-message webhook ignored",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    object_type=obj_type or "missing",
                )
            },
        )
        return Response(status_code=200, content=_OK)

    # 5. Normalize payload (PII in memory only)
    try:
        inbound = normalize(payload)
    except InvalidPayloadError:
        # Status updates (sent/delivered/read) carry no message
        logger.debug(
            "non-message meta payload",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=200, content=_OK)

    if not inbound.has_text:
        logger.info(
            "non-text message ignored",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    message_id_prefix=_message_id_prefix(inbound.message_id),
                    kind=inbound.kind,
                )
            },
        )
        return Response(status_code=200, content=_OK)

    # 6. Order intake (extraction + sheet/database writes)
    intake = _get_intake(request)
    try:
        result = await run_in_threadpool(intake.handle, inbound.text, to_message_context(inbound))
    except Exception:
        logger.exception(
            "order intake failed",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    message_id_prefix=_message_id_prefix(inbound.message_id),
                )
            },
        )
        return Response(status_code=200, content=_OK)

    logger.info(
        "meta webhook processed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                message_id_prefix=_message_id_prefix(inbound.message_id),
                kind=inbound.kind,
                accepted=result.accepted,
                reason=result.reason,
                sheet_written=result.sheet_written,
                stored=result.stored,
                provider="meta",
            )
        },
    )
    return Response(status_code=200, content=_OK)
