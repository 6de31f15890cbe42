"""Dispatch handlers for routed inbound messages.

Each handler owns its failure path: errors are logged and the customer
gets a localized apology, so nothing raised here reaches the router.
"""

from salonbot.booking.actions import send_canned, send_response
from salonbot.booking.orchestrator import (
    BookingOrchestrator,
    BookingRequest,
    OrchestratorResponse,
    call_orchestrator,
)
from salonbot.domain.routing import looks_like_booking
from salonbot.infra.session_store import ConversationSession, SessionStore
from salonbot.observability.logging import get_logger
from salonbot.observability.redaction import phone_context, safe_log_context
from salonbot.services.reminders import ReminderResponder
from salonbot.whatsapp.models import InboundEvent
from salonbot.whatsapp.outbound import OutboundChannel

logger = get_logger(__name__)

# Bare ids the orchestrator's click handler answers for the final step.
SESSION_CLOSING_BUTTONS = frozenset({"confirm_booking", "cancel_booking"})


class ButtonClickHandler:
    """Hands a click to the orchestrator's unified click handler.

    A successful confirmation or cancellation ends the booking flow, so the
    customer's session is deleted after the reply goes out.
    """

    def __init__(
        self,
        orchestrator: BookingOrchestrator,
        sessions: SessionStore,
        outbound: OutboundChannel,
    ) -> None:
        self.orchestrator = orchestrator
        self.sessions = sessions
        self.outbound = outbound

    def handle(self, salon_id: str, phone: str, button_id: str, language: str) -> None:
        log_ctx = safe_log_context(salon_id=salon_id, phone_hash=phone_context(phone))
        try:
            outcome = call_orchestrator(
                self.orchestrator.handle_button_click, button_id, phone, language
            )
            if outcome.ok:
                if not send_response(self.outbound, salon_id, phone, outcome.response, language):
                    logger.warning(
                        "button click returned nothing to send", extra={"extra_fields": log_ctx}
                    )
                if closes_session(button_id, outcome.response):
                    self._close_session(salon_id, phone, log_ctx)
                return
            logger.error(
                "button click failed",
                extra={
                    "extra_fields": safe_log_context(
                        **log_ctx,
                        error_type=type(outcome.conflict or outcome.error).__name__,
                    )
                },
            )
        except Exception:
            logger.exception("button click reply failed", extra={"extra_fields": log_ctx})
        send_canned(self.outbound, salon_id, phone, "generic_error", language)

    def _close_session(self, salon_id: str, phone: str, log_ctx: dict) -> None:
        # The reply is already out; a failed delete just lets the session expire.
        try:
            self.sessions.delete(salon_id, phone)
        except Exception:
            logger.exception("failed to close booking session", extra={"extra_fields": log_ctx})
            return
        logger.info("booking session closed", extra={"extra_fields": log_ctx})


def closes_session(button_id: str, response: OrchestratorResponse) -> bool:
    """True when a successful click reply finishes the booking flow."""
    if not response.success:
        return False
    return response.message_type == "booking_confirmed" or button_id in SESSION_CLOSING_BUTTONS


class BookingRequestHandler:
    """Starts a booking flow from free text."""

    def __init__(
        self,
        orchestrator: BookingOrchestrator,
        sessions: SessionStore,
        outbound: OutboundChannel,
    ) -> None:
        self.orchestrator = orchestrator
        self.sessions = sessions
        self.outbound = outbound

    def handle(
        self,
        salon_id: str,
        phone: str,
        text: str,
        language: str,
        apology: str = "booking_error",
    ) -> None:
        log_ctx = safe_log_context(
            salon_id=salon_id,
            phone_hash=phone_context(phone),
            text_len=len(text),
            language=language,
        )
        try:
            # A new request replaces whatever flow was in progress.
            self.sessions.save(salon_id, phone, ConversationSession(salon_id=salon_id, language=language))

            outcome = call_orchestrator(
                self.orchestrator.handle_booking_request,
                BookingRequest(text=text, customer_phone=phone, salon_id=salon_id, language=language),
            )
            if outcome.ok:
                send_response(self.outbound, salon_id, phone, outcome.response, language)
                logger.info("booking request handled", extra={"extra_fields": log_ctx})
                if outcome.response.service_id:
                    self._remember_service(salon_id, phone, outcome.response.service_id)
                return
            logger.error(
                "booking request failed",
                extra={
                    "extra_fields": safe_log_context(
                        **log_ctx,
                        error_type=type(outcome.conflict or outcome.error).__name__,
                    )
                },
            )
        except Exception:
            logger.exception("booking request reply failed", extra={"extra_fields": log_ctx})
        send_canned(self.outbound, salon_id, phone, apology, language)

    def _remember_service(self, salon_id: str, phone: str, service_id: str) -> None:
        """Keep the offered service for conflict recovery on a later slot click."""
        try:
            self.sessions.update(salon_id, phone, selected_service=service_id)
        except Exception:
            logger.exception(
                "failed to store selected service",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id, phone_hash=phone_context(phone)
                    )
                },
            )


class ConversationHandler:
    """Free-form messages.

    Two independent checks run on every text message: a pending reminder
    gets the reply, and booking-like text also starts a booking flow.
    """

    def __init__(self, reminders: ReminderResponder, booking: BookingRequestHandler) -> None:
        self.reminders = reminders
        self.booking = booking

    def handle(self, salon_id: str, message: InboundEvent, language: str) -> None:
        text = message.body
        if message.kind != "text" or not text.strip():
            logger.info(
                "conversation message without text",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id, message_id=message.message_id, kind=message.kind
                    )
                },
            )
            return

        self._process_reminder_reply(salon_id, message.from_phone, text, language)

        if looks_like_booking(text):
            self.booking.handle(
                salon_id, message.from_phone, text, language, apology="conversation_error"
            )

    def _process_reminder_reply(self, salon_id: str, phone: str, text: str, language: str) -> None:
        try:
            booking_id = self.reminders.find_pending_reminder(salon_id, phone)
            if booking_id:
                self.reminders.process_response(booking_id, text, language)
        except Exception:
            logger.exception(
                "reminder reply processing failed",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id, phone_hash=phone_context(phone)
                    )
                },
            )
