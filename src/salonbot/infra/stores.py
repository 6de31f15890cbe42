"""Postgres implementations of the persistence contracts.

Each call opens its own short transaction via `txn()`; nothing is held
across calls.
"""

from typing import Any

from salonbot.infra.contracts import Conversation, MessageRecord, Salon
from salonbot.infra.db import txn
from salonbot.infra.repositories.conversations_repository import (
    touch_conversation,
    upsert_conversation,
)
from salonbot.infra.repositories.messages_repository import (
    get_message_status,
    insert_message,
    insert_processed_message,
    message_exists,
    update_message_status,
)
from salonbot.infra.repositories.salons_repository import (
    find_active_service_id,
    get_salon,
    get_salon_by_phone_number_id,
)
from salonbot.infra.repositories.webhook_logs_repository import insert_webhook_log
from salonbot.observability.logging import get_logger
from salonbot.observability.redaction import safe_log_context

logger = get_logger(__name__)


class PostgresSalonDirectory:
    """Tenant lookup backed by the `salons` and `services` tables."""

    def find_salon_by_phone_number_id(self, phone_number_id: str) -> Salon | None:
        try:
            with txn() as cur:
                row = get_salon_by_phone_number_id(cur, phone_number_id=phone_number_id)
        except Exception:
            logger.exception(
                "salon lookup failed",
                extra={"extra_fields": safe_log_context(phone_number_id=phone_number_id)},
            )
            return None
        return Salon(**row) if row else None

    def get_salon(self, salon_id: str) -> Salon | None:
        with txn() as cur:
            row = get_salon(cur, salon_id=salon_id)
        return Salon(**row) if row else None

    def find_active_service(self, salon_id: str) -> str | None:
        with txn() as cur:
            return find_active_service_id(cur, salon_id=salon_id)


class PostgresMessageStore:
    def exists(self, whatsapp_id: str) -> bool:
        with txn() as cur:
            return message_exists(cur, whatsapp_id=whatsapp_id)

    def claim(self, salon_id: str, whatsapp_id: str) -> bool:
        with txn() as cur:
            return insert_processed_message(cur, salon_id=salon_id, whatsapp_id=whatsapp_id)

    def create(self, record: MessageRecord) -> None:
        with txn() as cur:
            insert_message(
                cur,
                salon_id=record.salon_id,
                direction=record.direction,
                phone_number=record.phone_number,
                message_type=record.message_type,
                content=record.content,
                whatsapp_id=record.whatsapp_id,
                status=record.status,
                conversation_id=record.conversation_id,
                metadata=record.metadata,
            )

    def get_status(self, salon_id: str, whatsapp_id: str) -> str | None:
        with txn() as cur:
            return get_message_status(cur, salon_id=salon_id, whatsapp_id=whatsapp_id)

    def update_status(self, salon_id: str, whatsapp_id: str, status: str) -> None:
        with txn() as cur:
            update_message_status(cur, salon_id=salon_id, whatsapp_id=whatsapp_id, status=status)


class PostgresConversationStore:
    def get_or_create(self, salon_id: str, phone_number: str) -> Conversation:
        with txn() as cur:
            conversation_id, message_count = upsert_conversation(
                cur, salon_id=salon_id, phone_number=phone_number
            )
        return Conversation(
            id=conversation_id,
            salon_id=salon_id,
            phone_number=phone_number,
            message_count=message_count,
        )

    def touch(self, conversation_id: str) -> None:
        with txn() as cur:
            touch_conversation(cur, conversation_id=conversation_id)


class PostgresWebhookLog:
    def record(
        self,
        salon_id: str | None,
        event_type: str,
        payload: dict[str, Any],
        status: str,
        error: str | None,
    ) -> None:
        with txn() as cur:
            insert_webhook_log(
                cur,
                salon_id=salon_id,
                event_type=event_type,
                payload=payload,
                status=status,
                error=error,
            )
