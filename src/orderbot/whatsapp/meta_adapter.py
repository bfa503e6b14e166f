"""Meta Cloud API adapter - validate and normalize webhook payloads.

Handles Meta WhatsApp Business API webhook payloads, including
signature verification and conversion to the extractor's MessageContext.
"""

from datetime import datetime, timezone
import hashlib
import hmac
from typing import Any

from orderbot.domain.orders import MessageContext

from .models import InboundText

SIGNATURE_PREFIX = "sha256="


class InvalidPayloadError(Exception):
    """Raised when Meta payload has invalid shape."""

    pass


class SignatureVerificationError(Exception):
    """Raised when HMAC signature verification fails."""

    pass


def verify_signature(payload_bytes: bytes, signature_header: str, app_secret: str) -> None:
    """Verify Meta webhook signature (HMAC-SHA256, "sha256=<hex>").

    Args:
        payload_bytes: Raw request body bytes.
        signature_header: X-Hub-Signature-256 header value.
        app_secret: Meta App Secret.

    Raises:
        SignatureVerificationError: If signature is invalid or missing.
    """
    if not signature_header:
        raise SignatureVerificationError("missing signature header")

    if not signature_header.startswith(SIGNATURE_PREFIX):
        raise SignatureVerificationError("invalid signature format")

    expected_sig = signature_header[len(SIGNATURE_PREFIX):]
    computed_sig = hmac.new(
        key=app_secret.encode("utf-8"),
        msg=payload_bytes,
        digestmod=hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(computed_sig, expected_sig):
        raise SignatureVerificationError("signature mismatch")


def normalize(payload: dict[str, Any]) -> InboundText:
    """Extract the first message of a Meta webhook payload.

    Text is only filled for "text" messages; other kinds (image, audio,
    reactions) come back with text=None.

    Raises:
        InvalidPayloadError: If there is no message, or it lacks an id or sender.
    """
    value = _first_change_value(payload)
    messages = value.get("messages") if value else None
    if not messages or not isinstance(messages, list) or not isinstance(messages[0], dict):
        raise InvalidPayloadError("no message found in payload")
    message = messages[0]

    message_id = message.get("id")
    if not message_id or not isinstance(message_id, str):
        raise InvalidPayloadError("missing or invalid message_id")

    sender_phone = message.get("from")
    if not sender_phone or not isinstance(sender_phone, str):
        raise InvalidPayloadError("missing sender phone number")

    message_type = str(message.get("type", "unknown"))
    text = None
    if message_type == "text":
        text_obj = message.get("text", {})
        text = text_obj.get("body") if isinstance(text_obj, dict) else None

    return InboundText(
        message_id=message_id,
        sender_phone=sender_phone,
        received_at=datetime.now(timezone.utc),
        kind=message_type,
        text=text,
        sender_name=_profile_name(value),
        timestamp=message.get("timestamp"),
    )


def to_message_context(inbound: InboundText, group_name: str | None = None) -> MessageContext:
    """Sender metadata for the order extractor."""
    return MessageContext(
        sender_phone=inbound.sender_phone,
        sender_display_name=inbound.sender_name,
        group_name=group_name,
        message_id=inbound.message_id,
        timestamp=inbound.timestamp,
    )


def _profile_name(value: dict[str, Any]) -> str | None:
    contacts = value.get("contacts") or []
    if not contacts or not isinstance(contacts[0], dict):
        return None
    profile = contacts[0].get("profile") or {}
    name = profile.get("name") if isinstance(profile, dict) else None
    if not isinstance(name, str) or not name.strip():
        return None
    return name.strip()


def _first_change_value(payload: dict[str, Any]) -> dict[str, Any] | None:
    """Return entry[0].changes[0].value of a Meta webhook payload.

    Meta payload structure:
    {
      "object": "whatsapp_business_account",
      "entry": [{
        "changes": [{
          "value": {
            "contacts": [{"profile": {"name": "..."}, "wa_id": "PHONE"}],
            "messages": [{"from": "PHONE", "id": "MSG_ID", "timestamp": "...",
                          "type": "text", "text": {"body": "..."}}]
          },
          "field": "messages"
        }]
      }]
    }
    """
    try:
        entry = payload.get("entry", [])
        if not entry:
            return None

        changes = entry[0].get("changes", [])
        if not changes:
            return None

        value = changes[0].get("value", {})
        return value if isinstance(value, dict) else None
    except (IndexError, KeyError, TypeError, AttributeError):
        return None
