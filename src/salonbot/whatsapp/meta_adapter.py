"""Meta Cloud API adapter - validate and unpack webhook payloads.

Handles Meta WhatsApp Business API webhook payloads, including
signature verification and splitting a delivery into its changes.
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from typing import Any, Iterator

from .models import InboundEvent, StatusEvent, parse_inbound_message, parse_status

WHATSAPP_OBJECT = "whatsapp_business_account"
MESSAGES_FIELD = "messages"


class InvalidPayloadError(Exception):
    """Raised when Meta payload has invalid shape."""

    pass


class SignatureVerificationError(Exception):
    """Raised when HMAC signature verification fails."""

    pass


@dataclass(frozen=True)
class WebhookChange:
    """One `entry[].changes[]` element of a Meta delivery."""

    field: str
    phone_number_id: str | None
    messages: list[InboundEvent] = field(default_factory=list)
    statuses: list[StatusEvent] = field(default_factory=list)

    def is_messages(self) -> bool:
        return self.field == MESSAGES_FIELD


def verify_signature(payload_bytes: bytes, signature_header: str, app_secret: str) -> None:
    """Verify Meta webhook signature (HMAC-SHA256).

    Meta signs webhooks with sha256=<hex_signature> format.

    Args:
        payload_bytes: Raw request body bytes.
        signature_header: X-Hub-Signature-256 header value (sha256=...).
        app_secret: Meta App Secret for HMAC verification.

    Raises:
        SignatureVerificationError: If signature is invalid or missing.
    """
    if not signature_header:
        raise SignatureVerificationError("missing signature header")

    if not signature_header.startswith("sha256="):
        raise SignatureVerificationError("invalid signature format")

    expected_sig = signature_header[7:]  # Remove "sha256=" prefix

    computed_sig = hmac.new(
        key=app_secret.encode("utf-8"),
        msg=payload_bytes,
        digestmod=hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(computed_sig, expected_sig):
        raise SignatureVerificationError("signature mismatch")


def iter_changes(payload: dict[str, Any]) -> Iterator[WebhookChange]:
    """Yield every change of a Meta delivery, in payload order.

    Meta payload structure:
    {
      "object": "whatsapp_business_account",
      "entry": [{
        "id": "...",
        "changes": [{
          "value": {
            "messaging_product": "whatsapp",
            "metadata": {"phone_number_id": "..."},
            "messages": [...],
            "statuses": [...]
          },
          "field": "messages"
        }]
      }]
    }

    Args:
        payload: Raw webhook payload.

    Raises:
        InvalidPayloadError: If `entry` or `changes` are not lists.
    """
    entries = payload.get("entry", [])
    if not isinstance(entries, list):
        raise InvalidPayloadError("entry must be a list")

    for entry in entries:
        if not isinstance(entry, dict):
            raise InvalidPayloadError("entry element must be an object")
        changes = entry.get("changes", [])
        if not isinstance(changes, list):
            raise InvalidPayloadError("changes must be a list")

        for change in changes:
            if not isinstance(change, dict):
                raise InvalidPayloadError("change element must be an object")
            yield _unpack_change(change)


def _unpack_change(change: dict[str, Any]) -> WebhookChange:
    value = change.get("value") if isinstance(change.get("value"), dict) else {}
    metadata = value.get("metadata") if isinstance(value.get("metadata"), dict) else {}

    raw_messages = value.get("messages") or []
    if not isinstance(raw_messages, list):
        raw_messages = []
    raw_statuses = value.get("statuses") or []
    if not isinstance(raw_statuses, list):
        raw_statuses = []

    statuses = [parse_status(s) for s in raw_statuses]

    return WebhookChange(
        field=str(change.get("field", "")),
        phone_number_id=metadata.get("phone_number_id"),
        messages=[parse_inbound_message(m) for m in raw_messages],
        statuses=[s for s in statuses if s is not None],
    )


def get_phone_number_id(payload: dict[str, Any]) -> str | None:
    """Extract phone_number_id of the first change from Meta payload.

    Args:
        payload: Raw webhook payload from Meta Cloud API.

    Returns:
        phone_number_id if found, None otherwise.
    """
    try:
        entry = payload.get("entry", [])
        if not entry:
            return None
        changes = entry[0].get("changes", [])
        if not changes:
            return None
        value = changes[0].get("value", {})
        metadata = value.get("metadata", {})
        return metadata.get("phone_number_id")
    except (IndexError, KeyError, TypeError, AttributeError):
        return None
