"""Webhook router - entry point of the inbound pipeline.

For every message of a Meta delivery:

    dedupe -> detect language -> classify -> persist -> dispatch

Nothing raised while handling a delivery escapes `process_webhook_event`;
the HTTP layer always answers 200 so Meta does not redeliver.

Security: customer phones and message text are NEVER logged. Logs carry
`phone_hash` and `text_len` instead (see observability.redaction).
"""

from dataclasses import dataclass
from typing import Any

from salonbot.booking.actions import ButtonActionRouter, send_canned
from salonbot.booking.orchestrator import BookingOrchestrator
from salonbot.domain.buttons import (
    MAX_BUTTON_ID_LENGTH,
    MAX_LIST_ROW_ID_LENGTH,
    ButtonParseError,
    decode,
)
from salonbot.domain.routing import RoutingDecision, keyword_routing, route_for_intent
from salonbot.domain.statuses import map_status, next_status
from salonbot.infra.contracts import (
    ConversationStore,
    MessageRecord,
    MessageStore,
    SalonDirectory,
    WebhookLog,
)
from salonbot.infra.session_store import ConversationSession, SessionStore
from salonbot.observability.correlation import correlation_scope
from salonbot.observability.logging import get_logger
from salonbot.observability.redaction import phone_context, safe_log_context
from salonbot.services.handlers import BookingRequestHandler, ButtonClickHandler, ConversationHandler
from salonbot.services.intent import IntentClassifier
from salonbot.services.language import (
    DEFAULT_LANGUAGE,
    LOW_CONFIDENCE_LANGUAGE,
    LanguageDetector,
    LanguageResult,
)
from salonbot.services.reminders import ReminderResponder
from salonbot.whatsapp.meta_adapter import InvalidPayloadError, iter_changes
from salonbot.whatsapp.models import InboundEvent, StatusEvent
from salonbot.whatsapp.outbound import OutboundChannel

logger = get_logger(__name__)

WEBHOOK_SUCCESS = "SUCCESS"
WEBHOOK_FAILED = "FAILED"
SALON_NOT_FOUND = "Salon not found"


@dataclass
class WebhookResult:
    """Counts for one delivery. Returned for logging and tests only."""

    messages: int = 0
    statuses: int = 0
    failures: int = 0


def inbound_content(message: InboundEvent) -> str:
    """Content stored for a non-interactive inbound message."""
    media = message.media
    if message.kind == "text" and message.text is not None:
        return message.text
    if message.kind == "image" and media:
        return f"IMAGE: {media.id or 'Unknown'} {media.caption or ''}".rstrip()
    if message.kind == "document" and media:
        return f"DOCUMENT: {media.filename or media.id or 'Unknown'} {media.caption or ''}".rstrip()
    if message.kind == "audio" and media:
        return f"AUDIO: {media.id or 'Unknown'}"
    if message.kind == "video" and media:
        return f"VIDEO: {media.id or 'Unknown'} {media.caption or ''}".rstrip()
    return f"UNKNOWN: {message.message_id or 'Unknown'}"


def payload_summary(payload: dict[str, Any]) -> dict[str, Any]:
    """PII-free description of a delivery for the webhook log."""
    entries = payload.get("entry") if isinstance(payload.get("entry"), list) else []
    messages = statuses = 0
    for entry in entries:
        changes = entry.get("changes") if isinstance(entry, dict) else None
        for change in changes if isinstance(changes, list) else []:
            value = change.get("value") if isinstance(change, dict) else None
            if isinstance(value, dict):
                messages += len(value.get("messages") or [])
                statuses += len(value.get("statuses") or [])
    return {
        "object": payload.get("object"),
        "entries": len(entries),
        "messages": messages,
        "statuses": statuses,
    }


class WebhookRouter:
    def __init__(
        self,
        *,
        salons: SalonDirectory,
        messages: MessageStore,
        conversations: ConversationStore,
        webhook_log: WebhookLog,
        language_detector: LanguageDetector,
        intent_classifier: IntentClassifier,
        sessions: SessionStore,
        orchestrator: BookingOrchestrator,
        outbound: OutboundChannel,
        reminders: ReminderResponder,
    ) -> None:
        self.salons = salons
        self.messages = messages
        self.conversations = conversations
        self.webhook_log = webhook_log
        self.language_detector = language_detector
        self.intent_classifier = intent_classifier
        self.sessions = sessions
        self.outbound = outbound

        self.action_router = ButtonActionRouter(orchestrator, sessions, salons, outbound)
        self.button_handler = ButtonClickHandler(orchestrator, sessions, outbound)
        self.booking_handler = BookingRequestHandler(orchestrator, sessions, outbound)
        self.conversation_handler = ConversationHandler(reminders, self.booking_handler)

    # -- delivery level -------------------------------------------------

    def process_webhook_event(self, payload: dict[str, Any]) -> WebhookResult:
        """Process one Meta delivery. Never raises."""
        result = WebhookResult()
        with correlation_scope() as correlation_id:
            try:
                self._process_changes(payload, result)
            except Exception as e:
                logger.exception(
                    "webhook processing failed",
                    extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
                )
                self.log_webhook(None, "messages", payload, WEBHOOK_FAILED, str(e))
                result.failures += 1

            logger.info(
                "webhook processed",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=correlation_id,
                        messages=result.messages,
                        statuses=result.statuses,
                        failures=result.failures,
                    )
                },
            )
        return result

    def _process_changes(self, payload: dict[str, Any], result: WebhookResult) -> None:
        try:
            changes = list(iter_changes(payload))
        except InvalidPayloadError as e:
            logger.warning(
                "invalid webhook payload",
                extra={"extra_fields": safe_log_context(error=str(e))},
            )
            self.log_webhook(None, "messages", payload, WEBHOOK_FAILED, str(e))
            result.failures += 1
            return

        for change in changes:
            if not change.is_messages():
                logger.debug(
                    "webhook change ignored",
                    extra={"extra_fields": safe_log_context(field=change.field or "missing")},
                )
                continue

            salon = None
            if change.phone_number_id:
                salon = self.salons.find_salon_by_phone_number_id(change.phone_number_id)
            if salon is None:
                logger.warning(
                    "salon not found for webhook",
                    extra={
                        "extra_fields": safe_log_context(
                            phone_number_id=change.phone_number_id or "missing"
                        )
                    },
                )
                self.log_webhook(None, change.field, payload, WEBHOOK_FAILED, SALON_NOT_FOUND)
                result.failures += 1
                continue

            try:
                for message in change.messages:
                    self.process_incoming_message(salon.id, message)
                    result.messages += 1
                for status in change.statuses:
                    self.process_status_update(salon.id, status)
                    result.statuses += 1
            except Exception as e:
                logger.exception(
                    "webhook change failed",
                    extra={"extra_fields": safe_log_context(salon_id=salon.id)},
                )
                self.log_webhook(salon.id, change.field, payload, WEBHOOK_FAILED, str(e))
                result.failures += 1
                continue

            self.log_webhook(salon.id, change.field, payload, WEBHOOK_SUCCESS, None)

    def log_webhook(
        self,
        salon_id: str | None,
        event_type: str,
        payload: dict[str, Any],
        status: str,
        error: str | None,
    ) -> None:
        try:
            self.webhook_log.record(salon_id, event_type, payload_summary(payload), status, error)
        except Exception:
            logger.exception(
                "failed to record webhook log",
                extra={"extra_fields": safe_log_context(salon_id=salon_id, status=status)},
            )

    # -- message level --------------------------------------------------

    def process_incoming_message(self, salon_id: str, message: InboundEvent) -> None:
        """Route one inbound message. Never raises."""
        log_ctx = safe_log_context(
            salon_id=salon_id,
            message_id=message.message_id,
            kind=message.kind,
            phone_hash=phone_context(message.from_phone),
        )
        language = DEFAULT_LANGUAGE

        try:
            if self._already_processed(salon_id, message):
                logger.info("duplicate message ignored", extra={"extra_fields": log_ctx})
                return

            language = self._detect_language(salon_id, message)
            decision = self._classify(message, language)

            logger.info(
                "inbound message routed",
                extra={
                    "extra_fields": safe_log_context(
                        **log_ctx, language=language, decision=decision.value
                    )
                },
            )

            if decision is RoutingDecision.BUTTON_CLICK:
                self._handle_interactive(salon_id, message, language)
                return

            self._persist_inbound(salon_id, message, inbound_content(message))

            if decision is RoutingDecision.BOOKING_REQUEST:
                self.booking_handler.handle(salon_id, message.from_phone, message.body, language)
            else:
                self.conversation_handler.handle(salon_id, message, language)
        except Exception:
            logger.exception("inbound message processing failed", extra={"extra_fields": log_ctx})
            if message.from_phone:
                send_canned(self.outbound, salon_id, message.from_phone, "generic_error", language)

    def _already_processed(self, salon_id: str, message: InboundEvent) -> bool:
        if not message.message_id:
            return False
        if self.messages.exists(message.message_id):
            return True
        # Receipt insert is atomic; losing it means a concurrent delivery won.
        return not self.messages.claim(salon_id, message.message_id)

    def _detect_language(self, salon_id: str, message: InboundEvent) -> str:
        if message.kind == "interactive" and message.interactive:
            sample = message.interactive.title
        else:
            sample = message.body

        try:
            detected = self.language_detector.detect(sample)
        except Exception as e:
            logger.warning(
                "language detection failed, using default",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id, error_type=type(e).__name__
                    )
                },
            )
            detected = LanguageResult(language=DEFAULT_LANGUAGE, confidence=0.0)

        if message.kind == "interactive" and detected.confidence < LOW_CONFIDENCE_LANGUAGE:
            session = self._get_session(salon_id, message.from_phone)
            if session is not None and session.language:
                return session.language
        return detected.language

    def _get_session(self, salon_id: str, phone: str) -> ConversationSession | None:
        try:
            return self.sessions.get(salon_id, phone)
        except Exception:
            logger.exception(
                "session lookup failed",
                extra={"extra_fields": safe_log_context(salon_id=salon_id)},
            )
            return None

    def _classify(self, message: InboundEvent, language: str) -> RoutingDecision:
        if message.kind == "interactive":
            return RoutingDecision.BUTTON_CLICK
        text = message.body
        if message.kind != "text" or not text.strip():
            return RoutingDecision.CONVERSATION

        try:
            result = self.intent_classifier.classify(text, language)
        except Exception as e:
            logger.warning(
                "intent classification failed, using keywords",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            return keyword_routing(text)

        return route_for_intent(result.intent, result.confidence)

    def _handle_interactive(self, salon_id: str, message: InboundEvent, language: str) -> None:
        reply = message.interactive
        phone = message.from_phone

        if reply is None or not reply.is_reply():
            reply_type = reply.reply_type if reply else "unknown"
            self._persist_inbound(
                salon_id, message, f"INTERACTIVE: {reply_type} - {message.message_id}"
            )
            logger.info(
                "interactive message without reply ignored",
                extra={"extra_fields": safe_log_context(salon_id=salon_id, reply_type=reply_type)},
            )
            return

        max_length = MAX_LIST_ROW_ID_LENGTH if reply.reply_type == "list_reply" else MAX_BUTTON_ID_LENGTH
        token = decode(reply.id, max_length=max_length)

        if isinstance(token, ButtonParseError):
            self._persist_inbound(
                salon_id,
                message,
                f"INTERACTIVE_ERROR: {reply.title} ({reply.id}) - {token.reason}",
            )
            logger.info(
                "button id not decodable",
                extra={
                    "extra_fields": safe_log_context(salon_id=salon_id, reason=token.reason)
                },
            )
            handled = False
        else:
            result = self.action_router.route(
                salon_id,
                phone,
                token,
                language,
                button_id=reply.id,
                message_id=message.message_id,
            )
            self._persist_inbound(
                salon_id,
                message,
                f"INTERACTIVE_{reply.reply_type.upper()}: [{token.type}] {reply.title} ({reply.id})",
            )
            handled = result.handled

        if not handled and reply.id:
            self.button_handler.handle(salon_id, phone, reply.id, language)

    def _persist_inbound(self, salon_id: str, message: InboundEvent, content: str) -> None:
        try:
            conversation = self.conversations.get_or_create(salon_id, message.from_phone)
            self.messages.create(
                MessageRecord(
                    salon_id=salon_id,
                    direction="INBOUND",
                    phone_number=message.from_phone,
                    message_type=message.kind.upper(),
                    content=content,
                    whatsapp_id=message.message_id or None,
                    conversation_id=conversation.id,
                    status="DELIVERED",
                    metadata={"raw_type": message.raw_type, "timestamp": message.timestamp},
                )
            )
            self.conversations.touch(conversation.id)
        except Exception:
            logger.exception(
                "failed to persist inbound message",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id, message_id=message.message_id
                    )
                },
            )

    # -- status level ---------------------------------------------------

    def process_status_update(self, salon_id: str, status: StatusEvent) -> None:
        """Apply a delivery status to an outbound message. Never raises."""
        log_ctx = safe_log_context(
            salon_id=salon_id,
            message_id=status.message_id,
            status=status.status or "missing",
        )
        try:
            if status.errors:
                logger.warning(
                    "meta reported delivery errors",
                    extra={
                        "extra_fields": safe_log_context(
                            **log_ctx,
                            error_codes=",".join(
                                str(err.get("code")) for err in status.errors if isinstance(err, dict)
                            ),
                        )
                    },
                )

            current = self.messages.get_status(salon_id, status.message_id)
            if current is None:
                logger.warning("status update for unknown message", extra={"extra_fields": log_ctx})
                return

            new_status = next_status(current, map_status(status.status))
            if new_status is None:
                logger.debug("status update skipped", extra={"extra_fields": log_ctx})
                return

            self.messages.update_status(salon_id, status.message_id, new_status)
        except Exception:
            logger.exception("status update failed", extra={"extra_fields": log_ctx})


def build_webhook_router() -> WebhookRouter:
    """Wire the router with the Postgres, Meta and HTTP adapters."""
    from salonbot.booking.http_orchestrator import HttpBookingOrchestrator
    from salonbot.infra.session_store import PostgresSessionStore
    from salonbot.infra.stores import (
        PostgresConversationStore,
        PostgresMessageStore,
        PostgresSalonDirectory,
        PostgresWebhookLog,
    )
    from salonbot.services.intent import build_intent_classifier
    from salonbot.services.language import PatternLanguageDetector
    from salonbot.services.reminders import PostgresReminderResponder
    from salonbot.whatsapp.outbound import MetaOutboundChannel

    salons = PostgresSalonDirectory()
    messages = PostgresMessageStore()
    outbound = MetaOutboundChannel(salons, messages)
    return WebhookRouter(
        salons=salons,
        messages=messages,
        conversations=PostgresConversationStore(),
        webhook_log=PostgresWebhookLog(),
        language_detector=PatternLanguageDetector(),
        intent_classifier=build_intent_classifier(),
        sessions=PostgresSessionStore(),
        orchestrator=HttpBookingOrchestrator(),
        outbound=outbound,
        reminders=PostgresReminderResponder(outbound),
    )
