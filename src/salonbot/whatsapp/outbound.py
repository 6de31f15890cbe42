"""Outbound channel - replies to customers on WhatsApp.

The core hands replies to an OutboundChannel; MetaOutboundChannel sends
them through the Meta Cloud API with the salon's own credentials and
stores an OUTBOUND message row keyed by the returned wamid.

Security: NEVER log `to` or `text`. Only log hashes and lengths.
"""

import json
from dataclasses import dataclass
from typing import Any, Protocol

from salonbot.infra.contracts import MessageRecord, MessageStore, SalonDirectory
from salonbot.observability.correlation import get_correlation_id
from salonbot.observability.logging import get_logger
from salonbot.observability.redaction import phone_context, safe_log_context
from salonbot.whatsapp.meta_sender import send_interactive_via_meta, send_text_via_meta

logger = get_logger(__name__)

SYSTEM_SENDER = "system"


@dataclass(frozen=True)
class OutboundText:
    salon_id: str
    to: str
    text: str


@dataclass(frozen=True)
class OutboundInteractive:
    salon_id: str
    to: str
    interactive: dict[str, Any]


class OutboundChannel(Protocol):
    def send_text(self, sender_context: str, message: OutboundText) -> None:
        ...

    def send_interactive(self, sender_context: str, message: OutboundInteractive) -> None:
        ...


class MetaOutboundChannel:
    """OutboundChannel backed by the Meta Cloud API.

    Send failures propagate to the caller. Failing to record the sent
    message is logged and does not fail the send.
    """

    def __init__(self, salons: SalonDirectory, messages: MessageStore) -> None:
        self.salons = salons
        self.messages = messages

    def _credentials(self, salon_id: str) -> tuple[str | None, str | None]:
        salon = self.salons.get_salon(salon_id)
        if salon is None:
            return None, None
        return salon.phone_number_id, salon.access_token

    def send_text(self, sender_context: str, message: OutboundText) -> None:
        phone_number_id, access_token = self._credentials(message.salon_id)
        wamid = send_text_via_meta(
            to_phone=message.to,
            text=message.text,
            correlation_id=get_correlation_id(),
            phone_number_id=phone_number_id,
            access_token=access_token,
        )
        self._record(
            message.salon_id,
            message.to,
            "TEXT",
            message.text,
            wamid,
            sender_context,
        )

    def send_interactive(self, sender_context: str, message: OutboundInteractive) -> None:
        phone_number_id, access_token = self._credentials(message.salon_id)
        wamid = send_interactive_via_meta(
            to_phone=message.to,
            interactive=message.interactive,
            correlation_id=get_correlation_id(),
            phone_number_id=phone_number_id,
            access_token=access_token,
        )
        self._record(
            message.salon_id,
            message.to,
            "INTERACTIVE",
            json.dumps(message.interactive, ensure_ascii=False),
            wamid,
            sender_context,
        )

    def _record(
        self,
        salon_id: str,
        to: str,
        message_type: str,
        content: str,
        wamid: str | None,
        sender_context: str,
    ) -> None:
        try:
            self.messages.create(
                MessageRecord(
                    salon_id=salon_id,
                    direction="OUTBOUND",
                    phone_number=to,
                    message_type=message_type,
                    content=content,
                    whatsapp_id=wamid,
                    status="SENT",
                    metadata={"sender": sender_context},
                )
            )
        except Exception:
            logger.exception(
                "failed to record outbound message",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id,
                        phone_hash=phone_context(to),
                        message_type=message_type,
                    )
                },
            )
