"""WhatsApp message models.

Inbound events are parsed once from the Meta webhook payload and never
mutated afterwards. Parsing is lenient: a malformed message still yields an
InboundEvent (kind="unknown") so the router can degrade instead of raising.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

MessageKind = Literal["text", "image", "document", "audio", "video", "interactive", "unknown"]

KNOWN_KINDS: set[str] = {"text", "image", "document", "audio", "video", "interactive"}


@dataclass(frozen=True)
class MediaRef:
    """Media attachment reference (id only, media is never downloaded)."""

    id: str | None = None
    caption: str | None = None
    filename: str | None = None


@dataclass(frozen=True)
class InteractiveReply:
    """Button or list selection made by the customer."""

    reply_type: str  # "button_reply", "list_reply" or the raw vendor value
    id: str = ""
    title: str = ""

    def is_reply(self) -> bool:
        return self.reply_type in ("button_reply", "list_reply")


@dataclass(frozen=True)
class InboundEvent:
    """One inbound WhatsApp message.

    ATTENTION PII: `from_phone` and `text` are customer data. Never log them;
    use `observability.redaction.phone_context` and `len(text)` instead.
    """

    message_id: str
    from_phone: str
    kind: MessageKind
    raw_type: str | None = None
    timestamp: str | None = None
    text: str | None = None
    media: MediaRef | None = None
    interactive: InteractiveReply | None = None

    @property
    def body(self) -> str:
        """Text body, empty string for non-text or missing bodies."""
        return self.text or ""


@dataclass(frozen=True)
class StatusEvent:
    """Delivery status update for an outbound message."""

    message_id: str
    status: str
    recipient_id: str | None = None
    timestamp: str | None = None
    errors: list[dict[str, Any]] = field(default_factory=list)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def parse_inbound_message(message: Any) -> InboundEvent:
    """Build an InboundEvent from one entry of `value.messages`.

    Never raises. Missing or unknown `type` maps to kind="unknown"; a missing
    `text.body` on a text message yields an empty body.
    """
    data = _as_dict(message)
    raw_type = _as_str(data.get("type"))
    kind: MessageKind = raw_type if raw_type in KNOWN_KINDS else "unknown"  # type: ignore[assignment]

    text: str | None = None
    media: MediaRef | None = None
    interactive: InteractiveReply | None = None

    if kind == "text":
        text = _as_str(_as_dict(data.get("text")).get("body"))
    elif kind in ("image", "document", "audio", "video"):
        media_obj = _as_dict(data.get(kind))
        media = MediaRef(
            id=_as_str(media_obj.get("id")),
            caption=_as_str(media_obj.get("caption")),
            filename=_as_str(media_obj.get("filename")),
        )
    elif kind == "interactive":
        interactive = _parse_interactive(_as_dict(data.get("interactive")))

    return InboundEvent(
        message_id=_as_str(data.get("id")) or "",
        from_phone=_as_str(data.get("from")) or "",
        kind=kind,
        raw_type=raw_type,
        timestamp=_as_str(data.get("timestamp")),
        text=text,
        media=media,
        interactive=interactive,
    )


def _parse_interactive(obj: dict[str, Any]) -> InteractiveReply:
    reply_type = _as_str(obj.get("type")) or "unknown"

    for key in ("button_reply", "list_reply"):
        reply = obj.get(key)
        if isinstance(reply, dict):
            return InteractiveReply(
                reply_type=key,
                id=_as_str(reply.get("id")) or "",
                title=_as_str(reply.get("title")) or "",
            )

    return InteractiveReply(reply_type=reply_type)


def parse_status(status: Any) -> StatusEvent | None:
    """Build a StatusEvent from one entry of `value.statuses`. None if unusable."""
    data = _as_dict(status)
    message_id = _as_str(data.get("id"))
    if not message_id:
        return None

    errors = data.get("errors")
    return StatusEvent(
        message_id=message_id,
        status=_as_str(data.get("status")) or "",
        recipient_id=_as_str(data.get("recipient_id")),
        timestamp=_as_str(data.get("timestamp")),
        errors=errors if isinstance(errors, list) else [],
    )
