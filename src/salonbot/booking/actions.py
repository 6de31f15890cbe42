"""Button action router.

Executes decoded slot and confirm buttons against the booking
orchestrator. A slot conflict is recovered here by offering alternatives
and never reaches the customer as a generic error.
"""

from dataclasses import dataclass

from salonbot.booking.orchestrator import (
    BookingOrchestrator,
    OrchestratorResponse,
    call_orchestrator,
)
from salonbot.domain.buttons import ButtonToken, ConfirmButton, SlotButton
from salonbot.infra.contracts import SalonDirectory
from salonbot.infra.session_store import ConversationSession, SessionStore
from salonbot.observability.logging import get_logger
from salonbot.observability.redaction import phone_context, safe_log_context
from salonbot.whatsapp.outbound import (
    SYSTEM_SENDER,
    OutboundChannel,
    OutboundInteractive,
    OutboundText,
)
from salonbot.whatsapp.templates import render

logger = get_logger(__name__)

CANCEL_ACTION = "cancel"


@dataclass(frozen=True)
class ActionResult:
    """handled=True means a reply for this click was already attempted."""

    handled: bool


def send_response(
    outbound: OutboundChannel,
    salon_id: str,
    phone: str,
    response: OrchestratorResponse,
    language: str,
) -> bool:
    """Deliver an orchestrator response. Returns False when there is nothing to send."""
    if response.message_type == "interactive_card" and response.interactive:
        outbound.send_interactive(
            SYSTEM_SENDER,
            OutboundInteractive(salon_id=salon_id, to=phone, interactive=response.interactive),
        )
        return True

    text = response.text
    if response.message_type == "booking_confirmed" and not text:
        text = render("booking_confirmed", language, {"booking_id": response.booking_id or ""})
    if not text:
        return False

    outbound.send_text(SYSTEM_SENDER, OutboundText(salon_id=salon_id, to=phone, text=text))
    return True


def send_canned(
    outbound: OutboundChannel,
    salon_id: str,
    phone: str,
    template_key: str,
    language: str,
) -> None:
    """Send a localized canned text. Send failures are logged, not raised."""
    try:
        outbound.send_text(
            SYSTEM_SENDER,
            OutboundText(salon_id=salon_id, to=phone, text=render(template_key, language)),
        )
    except Exception:
        logger.exception(
            "failed to send canned reply",
            extra={
                "extra_fields": safe_log_context(
                    salon_id=salon_id,
                    phone_hash=phone_context(phone),
                    template=template_key,
                )
            },
        )


class ButtonActionRouter:
    def __init__(
        self,
        orchestrator: BookingOrchestrator,
        sessions: SessionStore,
        salons: SalonDirectory,
        outbound: OutboundChannel,
    ) -> None:
        self.orchestrator = orchestrator
        self.sessions = sessions
        self.salons = salons
        self.outbound = outbound

    def route(
        self,
        salon_id: str,
        phone: str,
        token: ButtonToken,
        language: str,
        *,
        button_id: str,
        message_id: str | None = None,
    ) -> ActionResult:
        """Execute a decoded button.

        Only slot and confirm buttons are handled here. waitlist, nav and
        action buttons are accepted and logged; the caller decides what to
        do with them.
        """
        log_ctx = safe_log_context(
            salon_id=salon_id,
            phone_hash=phone_context(phone),
            message_id=message_id,
            button_type=token.type,
        )

        if not isinstance(token, (SlotButton, ConfirmButton)):
            logger.info(
                "button action not yet supported",
                extra={"extra_fields": safe_log_context(**log_ctx, **_placeholder_fields(token))},
            )
            return ActionResult(handled=False)

        try:
            if isinstance(token, SlotButton):
                self._select_slot(salon_id, phone, token, button_id, language)
            else:
                self._confirm(salon_id, phone, token, button_id, language)
        except Exception:
            logger.exception("button action failed", extra={"extra_fields": log_ctx})
            send_canned(self.outbound, salon_id, phone, "generic_error", language)

        return ActionResult(handled=True)

    def _select_slot(
        self,
        salon_id: str,
        phone: str,
        token: SlotButton,
        button_id: str,
        language: str,
    ) -> None:
        session = self.sessions.get(salon_id, phone) or ConversationSession(
            salon_id=salon_id, language=language
        )
        session = session.with_slot(token.date, token.time, token.master_id)
        self.sessions.save(salon_id, phone, session)

        outcome = call_orchestrator(
            self.orchestrator.select_slot, button_id, phone, salon_id, language
        )

        if outcome.is_conflict:
            logger.info(
                "slot conflict, searching alternatives",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id,
                        phone_hash=phone_context(phone),
                        date=token.date,
                        time=token.time,
                    )
                },
            )
            self._recover_conflict(salon_id, phone, token, session, language)
            return

        if outcome.error is not None:
            raise outcome.error

        if not send_response(self.outbound, salon_id, phone, outcome.response, language):
            logger.warning(
                "slot selection returned nothing to send",
                extra={"extra_fields": safe_log_context(salon_id=salon_id)},
            )

    def _resolve_service(self, salon_id: str, session: ConversationSession) -> str | None:
        if session.selected_service:
            return session.selected_service
        try:
            return self.salons.find_active_service(salon_id)
        except Exception:
            logger.exception(
                "active service lookup failed",
                extra={"extra_fields": safe_log_context(salon_id=salon_id)},
            )
            return None

    def _recover_conflict(
        self,
        salon_id: str,
        phone: str,
        token: SlotButton,
        session: ConversationSession,
        language: str,
    ) -> None:
        service_id = self._resolve_service(salon_id, session)
        if not service_id:
            send_canned(self.outbound, salon_id, phone, "slot_no_longer_available", language)
            return

        outcome = call_orchestrator(
            self.orchestrator.handle_slot_conflict,
            token.date,
            token.time,
            salon_id,
            service_id,
            token.master_id,
            language,
        )

        if outcome.ok and send_response(self.outbound, salon_id, phone, outcome.response, language):
            return

        if not outcome.ok:
            logger.warning(
                "alternative slot search failed",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id,
                        error_type=type(outcome.conflict or outcome.error).__name__,
                    )
                },
            )
        send_canned(self.outbound, salon_id, phone, "slot_taken", language)

    def _confirm(
        self,
        salon_id: str,
        phone: str,
        token: ConfirmButton,
        button_id: str,
        language: str,
    ) -> None:
        outcome = call_orchestrator(
            self.orchestrator.confirm_booking, button_id, phone, salon_id, language
        )

        if outcome.is_conflict:
            logger.info(
                "confirmation conflict, asking customer to reselect",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id, entity_id=token.entity_id
                    )
                },
            )
            send_canned(self.outbound, salon_id, phone, "confirm_conflict", language)
            return

        if outcome.error is not None:
            raise outcome.error

        response = outcome.response
        send_response(self.outbound, salon_id, phone, response, language)

        if response.success:
            self.sessions.delete(salon_id, phone)
            logger.info(
                "booking session closed",
                extra={
                    "extra_fields": safe_log_context(
                        salon_id=salon_id,
                        phone_hash=phone_context(phone),
                        cancelled=token.action == CANCEL_ACTION,
                    )
                },
            )


def _placeholder_fields(token: ButtonToken) -> dict[str, str]:
    data = token.data
    return {key: str(value) for key, value in data.items() if key in ("action", "direction")}
