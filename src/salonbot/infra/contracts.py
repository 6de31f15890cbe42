"""Persistence contracts used by the routing core.

The core never talks to Postgres directly; it depends on these protocols.
`salonbot.infra.stores` provides the Postgres implementations, tests use
in-memory fakes.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

MessageDirection = Literal["INBOUND", "OUTBOUND"]
MessageStatus = Literal["SENT", "DELIVERED", "READ", "FAILED"]
WebhookLogStatus = Literal["SUCCESS", "FAILED"]


@dataclass(frozen=True)
class Salon:
    """Tenant resolved from a Meta phone_number_id."""

    id: str
    name: str = ""
    phone_number_id: str | None = None
    access_token: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Conversation:
    """One (salon, customer phone) thread."""

    id: str
    salon_id: str
    phone_number: str
    message_count: int = 0


@dataclass(frozen=True)
class MessageRecord:
    """Row written for every inbound message and every reply we send."""

    salon_id: str
    direction: MessageDirection
    phone_number: str
    message_type: str
    content: str
    whatsapp_id: str | None
    conversation_id: str | None = None
    status: MessageStatus = "DELIVERED"
    metadata: dict[str, Any] = field(default_factory=dict)


class SalonDirectory(Protocol):
    """Tenant lookup."""

    def find_salon_by_phone_number_id(self, phone_number_id: str) -> Salon | None:
        """Never raises; lookup errors are reported as None."""
        ...

    def get_salon(self, salon_id: str) -> Salon | None:
        ...

    def find_active_service(self, salon_id: str) -> str | None:
        """Id of any active service of the salon, used as conflict fallback."""
        ...


class MessageStore(Protocol):
    """Idempotent message persistence keyed by the vendor message id."""

    def exists(self, whatsapp_id: str) -> bool:
        ...

    def claim(self, salon_id: str, whatsapp_id: str) -> bool:
        """Atomic insert-if-absent receipt. False when another delivery won."""
        ...

    def create(self, record: MessageRecord) -> None:
        ...

    def get_status(self, salon_id: str, whatsapp_id: str) -> str | None:
        ...

    def update_status(self, salon_id: str, whatsapp_id: str, status: str) -> None:
        ...


class ConversationStore(Protocol):
    """Conversation upsert and bookkeeping."""

    def get_or_create(self, salon_id: str, phone_number: str) -> Conversation:
        ...

    def touch(self, conversation_id: str) -> None:
        """Bump last_message_at and message_count."""
        ...


class WebhookLog(Protocol):
    """Audit trail of processed webhook deliveries."""

    def record(
        self,
        salon_id: str | None,
        event_type: str,
        payload: dict[str, Any],
        status: WebhookLogStatus,
        error: str | None,
    ) -> None:
        ...
