"""Shared test helpers for salonbot tests.

This module contains in-memory fakes of the persistence and collaborator
protocols plus Meta payload builders. These are NOT fixtures - they are
regular classes and functions imported by conftest.py and test files.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from salonbot.booking.orchestrator import BookingRequest, OrchestratorResponse
from salonbot.domain.routing import IntentType
from salonbot.infra.contracts import Conversation, MessageRecord, Salon
from salonbot.infra.session_store import ConversationSession
from salonbot.services.intent import IntentClassifier, IntentResult
from salonbot.services.language import LanguageDetector, LanguageResult
from salonbot.services.router import WebhookRouter
from salonbot.whatsapp.outbound import OutboundInteractive, OutboundText

SALON_ID = "salon-1"
PHONE_NUMBER_ID = "123456789"
CUSTOMER_PHONE = "5511888888888"
CUSTOMER_TEXT = "I want to book a haircut tomorrow"


# ---------------------------------------------------------------------------
# Persistence fakes
# ---------------------------------------------------------------------------


class FakeSalonDirectory:
    def __init__(self, salons: list[Salon] | None = None, services: dict[str, str] | None = None):
        self.salons = {salon.id: salon for salon in salons or []}
        self.services = dict(services or {})
        self.service_error: Exception | None = None

    def find_salon_by_phone_number_id(self, phone_number_id: str) -> Salon | None:
        for salon in self.salons.values():
            if salon.phone_number_id == phone_number_id and salon.is_active:
                return salon
        return None

    def get_salon(self, salon_id: str) -> Salon | None:
        return self.salons.get(salon_id)

    def find_active_service(self, salon_id: str) -> str | None:
        if self.service_error is not None:
            raise self.service_error
        return self.services.get(salon_id)


class FakeMessageStore:
    def __init__(self):
        self.records: list[MessageRecord] = []
        self.by_whatsapp_id: dict[str, MessageRecord] = {}
        self.statuses: dict[str, str] = {}
        self.receipts: set[tuple[str, str]] = set()
        self.exists_error: Exception | None = None

    def exists(self, whatsapp_id: str) -> bool:
        if self.exists_error is not None:
            raise self.exists_error
        return whatsapp_id in self.by_whatsapp_id

    def claim(self, salon_id: str, whatsapp_id: str) -> bool:
        key = (salon_id, whatsapp_id)
        if key in self.receipts:
            return False
        self.receipts.add(key)
        return True

    def create(self, record: MessageRecord) -> None:
        if record.whatsapp_id and record.whatsapp_id in self.by_whatsapp_id:
            return
        self.records.append(record)
        if record.whatsapp_id:
            self.by_whatsapp_id[record.whatsapp_id] = record
            self.statuses[record.whatsapp_id] = record.status

    def get_status(self, salon_id: str, whatsapp_id: str) -> str | None:
        record = self.by_whatsapp_id.get(whatsapp_id)
        if record is None or record.salon_id != salon_id:
            return None
        return self.statuses[whatsapp_id]

    def update_status(self, salon_id: str, whatsapp_id: str, status: str) -> None:
        self.statuses[whatsapp_id] = status

    def inbound(self) -> list[MessageRecord]:
        return [r for r in self.records if r.direction == "INBOUND"]


class FakeConversationStore:
    def __init__(self):
        self.conversations: dict[tuple[str, str], Conversation] = {}
        self.touched: list[str] = []

    def get_or_create(self, salon_id: str, phone_number: str) -> Conversation:
        key = (salon_id, phone_number)
        if key not in self.conversations:
            self.conversations[key] = Conversation(
                id=f"conv-{len(self.conversations) + 1}",
                salon_id=salon_id,
                phone_number=phone_number,
            )
        return self.conversations[key]

    def touch(self, conversation_id: str) -> None:
        self.touched.append(conversation_id)


class FakeWebhookLog:
    def __init__(self):
        self.entries: list[dict[str, Any]] = []

    def record(self, salon_id, event_type, payload, status, error) -> None:
        self.entries.append(
            {
                "salon_id": salon_id,
                "event_type": event_type,
                "payload": payload,
                "status": status,
                "error": error,
            }
        )


class FakeSessionStore:
    def __init__(self):
        self.sessions: dict[tuple[str, str], ConversationSession] = {}
        self.deleted: list[tuple[str, str]] = []

    def get(self, salon_id: str, phone: str) -> ConversationSession | None:
        return self.sessions.get((salon_id, phone))

    def save(self, salon_id: str, phone: str, session: ConversationSession) -> None:
        self.sessions[(salon_id, phone)] = session

    def update(self, salon_id: str, phone: str, **changes: Any) -> ConversationSession | None:
        current = self.get(salon_id, phone)
        if current is None:
            return None
        updated = replace(current, **changes)
        self.save(salon_id, phone, updated)
        return updated

    def delete(self, salon_id: str, phone: str) -> None:
        self.sessions.pop((salon_id, phone), None)
        self.deleted.append((salon_id, phone))


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


def text_response(text: str, success: bool = True) -> OrchestratorResponse:
    return OrchestratorResponse(success=success, message_type="text", payload={"text": text})


def card_response(body: str = "Pick a time") -> OrchestratorResponse:
    return OrchestratorResponse(
        success=True,
        message_type="interactive_card",
        payload={
            "interactive": {
                "type": "button",
                "body": {"text": body},
                "action": {
                    "buttons": [
                        {"type": "reply", "reply": {"id": "slot_2025-11-02_11:00_m1", "title": "11:00"}}
                    ]
                },
            }
        },
    )


class FakeOrchestrator:
    """Records every call; answers from `results` (a response or an exception to raise)."""

    def __init__(self):
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.results: dict[str, OrchestratorResponse | Exception] = {}

    def _answer(self, method: str, *args: Any) -> OrchestratorResponse:
        self.calls.append((method, args))
        result = self.results.get(method, text_response(f"{method} ok"))
        if isinstance(result, Exception):
            raise result
        return result

    def called(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    def handle_booking_request(self, request: BookingRequest) -> OrchestratorResponse:
        return self._answer("handle_booking_request", request)

    def handle_button_click(self, button_id, phone, language) -> OrchestratorResponse:
        return self._answer("handle_button_click", button_id, phone, language)

    def select_slot(self, button_id, phone, salon_id, language) -> OrchestratorResponse:
        return self._answer("select_slot", button_id, phone, salon_id, language)

    def confirm_booking(self, button_id, phone, salon_id, language) -> OrchestratorResponse:
        return self._answer("confirm_booking", button_id, phone, salon_id, language)

    def handle_slot_conflict(
        self, date, time, salon_id, service_id, master_id, language
    ) -> OrchestratorResponse:
        return self._answer(
            "handle_slot_conflict", date, time, salon_id, service_id, master_id, language
        )


class FakeOutbound:
    def __init__(self):
        self.texts: list[OutboundText] = []
        self.interactives: list[OutboundInteractive] = []
        self.error: Exception | None = None

    def send_text(self, sender_context: str, message: OutboundText) -> None:
        if self.error is not None:
            raise self.error
        self.texts.append(message)

    def send_interactive(self, sender_context: str, message: OutboundInteractive) -> None:
        if self.error is not None:
            raise self.error
        self.interactives.append(message)

    def sent_texts(self) -> list[str]:
        return [m.text for m in self.texts]


class FakeReminders:
    def __init__(self, pending: dict[tuple[str, str], str] | None = None):
        self.pending = dict(pending or {})
        self.processed: list[tuple[str, str, str]] = []
        self.error: Exception | None = None

    def find_pending_reminder(self, salon_id: str, phone: str) -> str | None:
        if self.error is not None:
            raise self.error
        return self.pending.get((salon_id, phone))

    def process_response(self, booking_id: str, text: str, language: str = "en") -> None:
        self.processed.append((booking_id, text, language))


class FixedLanguageDetector:
    def __init__(self, language: str = "en", confidence: float = 0.9, error: Exception | None = None):
        self.result = LanguageResult(language=language, confidence=confidence)
        self.error = error

    def detect(self, text: str) -> LanguageResult:
        if self.error is not None:
            raise self.error
        return self.result


class FixedIntentClassifier:
    def __init__(
        self,
        intent: IntentType = IntentType.BOOKING_REQUEST,
        confidence: float = 0.9,
        error: Exception | None = None,
    ):
        self.intent = intent
        self.confidence = confidence
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def classify(self, text: str, language: str) -> IntentResult:
        self.calls.append((text, language))
        if self.error is not None:
            raise self.error
        return IntentResult(
            intent=self.intent,
            confidence=self.confidence,
            is_reliable=self.confidence >= 0.7,
        )


@dataclass
class RouterHarness:
    router: WebhookRouter
    salons: FakeSalonDirectory
    messages: FakeMessageStore
    conversations: FakeConversationStore
    webhook_log: FakeWebhookLog
    sessions: FakeSessionStore
    orchestrator: FakeOrchestrator
    outbound: FakeOutbound
    reminders: FakeReminders
    language_detector: LanguageDetector
    intent_classifier: IntentClassifier


def build_harness(
    *,
    language_detector: LanguageDetector | None = None,
    intent_classifier: IntentClassifier | None = None,
    services: dict[str, str] | None = None,
) -> RouterHarness:
    salons = FakeSalonDirectory(
        salons=[
            Salon(
                id=SALON_ID,
                name="Studio One",
                phone_number_id=PHONE_NUMBER_ID,
                access_token="token-1",
            )
        ],
        services=services,
    )
    messages = FakeMessageStore()
    conversations = FakeConversationStore()
    webhook_log = FakeWebhookLog()
    sessions = FakeSessionStore()
    orchestrator = FakeOrchestrator()
    outbound = FakeOutbound()
    reminders = FakeReminders()
    language_detector = language_detector or FixedLanguageDetector()
    intent_classifier = intent_classifier or FixedIntentClassifier()

    router = WebhookRouter(
        salons=salons,
        messages=messages,
        conversations=conversations,
        webhook_log=webhook_log,
        language_detector=language_detector,
        intent_classifier=intent_classifier,
        sessions=sessions,
        orchestrator=orchestrator,
        outbound=outbound,
        reminders=reminders,
    )
    return RouterHarness(
        router=router,
        salons=salons,
        messages=messages,
        conversations=conversations,
        webhook_log=webhook_log,
        sessions=sessions,
        orchestrator=orchestrator,
        outbound=outbound,
        reminders=reminders,
        language_detector=language_detector,
        intent_classifier=intent_classifier,
    )


# ---------------------------------------------------------------------------
# Meta payload builders
# ---------------------------------------------------------------------------


def text_message(
    body: str = CUSTOMER_TEXT,
    message_id: str = "wamid.TEXT1",
    from_phone: str = CUSTOMER_PHONE,
) -> dict[str, Any]:
    return {
        "from": from_phone,
        "id": message_id,
        "timestamp": "1704067200",
        "type": "text",
        "text": {"body": body},
    }


def button_message(
    button_id: str,
    title: str = "10:00",
    message_id: str = "wamid.BTN1",
    reply_type: str = "button_reply",
    from_phone: str = CUSTOMER_PHONE,
) -> dict[str, Any]:
    return {
        "from": from_phone,
        "id": message_id,
        "timestamp": "1704067200",
        "type": "interactive",
        "interactive": {"type": reply_type, reply_type: {"id": button_id, "title": title}},
    }


def status_item(message_id: str, status: str, errors: list[dict] | None = None) -> dict[str, Any]:
    item: dict[str, Any] = {
        "id": message_id,
        "status": status,
        "timestamp": "1704067300",
        "recipient_id": CUSTOMER_PHONE,
    }
    if errors:
        item["errors"] = errors
    return item


def meta_payload(
    messages: list[dict[str, Any]] | None = None,
    statuses: list[dict[str, Any]] | None = None,
    phone_number_id: str = PHONE_NUMBER_ID,
    field: str = "messages",
) -> dict[str, Any]:
    value: dict[str, Any] = {
        "messaging_product": "whatsapp",
        "metadata": {
            "display_phone_number": "5511999999999",
            "phone_number_id": phone_number_id,
        },
        "contacts": [{"profile": {"name": "Test User"}, "wa_id": CUSTOMER_PHONE}],
    }
    if messages is not None:
        value["messages"] = messages
    if statuses is not None:
        value["statuses"] = statuses
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WHATSAPP_BUSINESS_ACCOUNT_ID",
                "changes": [{"value": value, "field": field}],
            }
        ],
    }


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def get_all_logged_content(self) -> str:
        """Concatenate all args and kwargs from all calls into one string."""
        parts = []
        for _level, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)

    def messages(self) -> list[str]:
        return [args[0] for _, args, _ in self.calls if args]
