"""Reminder replies.

Customers answer appointment reminders in free text ("1", "yes", "отмена",
...). The reply is parsed into a ReminderAction, stored on the reminder,
applied to the booking and acknowledged on WhatsApp.

Security: the raw reply text is NEVER stored or logged; only the parsed
action is.
"""

import re
from enum import Enum
from typing import Protocol

from salonbot.infra.db import txn
from salonbot.infra.repositories.reminders_repository import (
    find_pending_reminder,
    get_booking_customer,
    record_reminder_response,
    update_booking_status,
)
from salonbot.observability.logging import get_logger
from salonbot.observability.redaction import phone_context, safe_log_context
from salonbot.whatsapp.outbound import SYSTEM_SENDER, OutboundChannel, OutboundText
from salonbot.whatsapp.templates import render

logger = get_logger(__name__)


class ReminderAction(str, Enum):
    CONFIRM = "CONFIRM"
    CANCEL = "CANCEL"
    RESCHEDULE = "RESCHEDULE"
    UNKNOWN = "UNKNOWN"


# Checked in order; the first match wins.
_ACTION_PATTERNS: tuple[tuple[ReminderAction, re.Pattern[str]], ...] = (
    (
        ReminderAction.CANCEL,
        re.compile(
            r"^2$|отмен|\bнет\b|\bno\b|cancel|не приду|не буду|\bnão\b|\bnao\b|ביטול|לבטל",
            re.IGNORECASE,
        ),
    ),
    (
        ReminderAction.CONFIRM,
        re.compile(
            r"^1$|подтверж|\bда\b|\bок\b|\bok\b|\byes\b|приду|буду|confirm|\bsí\b|\bsi\b|\bsim\b|\bכן\b|מאשר",
            re.IGNORECASE,
        ),
    ),
    (
        ReminderAction.RESCHEDULE,
        re.compile(
            r"^3$|перенес|reschedule|change|другое время|измен|позже|раньше|cambiar|remarcar",
            re.IGNORECASE,
        ),
    ),
)

_ACTION_BOOKING_STATUS = {
    ReminderAction.CONFIRM: "CONFIRMED",
    ReminderAction.CANCEL: "CANCELLED",
}

_ACTION_TEMPLATE = {
    ReminderAction.CONFIRM: "reminder_confirmed",
    ReminderAction.CANCEL: "reminder_cancelled",
    ReminderAction.RESCHEDULE: "reminder_reschedule",
    ReminderAction.UNKNOWN: "reminder_unknown",
}


def parse_reminder_response(text: str) -> ReminderAction:
    """Classify a reminder reply.

    Negations are checked before confirmations so "не приду" is not read
    as "приду".
    """
    normalized = re.sub(r"\s+", " ", (text or "").strip().lower())
    for action, pattern in _ACTION_PATTERNS:
        if pattern.search(normalized):
            return action
    return ReminderAction.UNKNOWN


class ReminderResponder(Protocol):
    def find_pending_reminder(self, salon_id: str, phone: str) -> str | None:
        """Booking id of a CONFIRMED booking with a SENT, unanswered reminder."""
        ...

    def process_response(self, booking_id: str, text: str, language: str = "en") -> None:
        ...


class PostgresReminderResponder:
    def __init__(self, outbound: OutboundChannel) -> None:
        self.outbound = outbound

    def find_pending_reminder(self, salon_id: str, phone: str) -> str | None:
        with txn() as cur:
            found = find_pending_reminder(cur, salon_id=salon_id, phone_number=phone)
        return found[1] if found else None

    def process_response(self, booking_id: str, text: str, language: str = "en") -> None:
        action = parse_reminder_response(text)

        with txn() as cur:
            updated = record_reminder_response(cur, booking_id=booking_id, response=action.value)
            if updated == 0:
                logger.warning(
                    "no open reminder for booking",
                    extra={"extra_fields": safe_log_context(booking_id=booking_id)},
                )
                return
            status = _ACTION_BOOKING_STATUS.get(action)
            if status:
                update_booking_status(cur, booking_id=booking_id, status=status)
            customer = get_booking_customer(cur, booking_id=booking_id)

        logger.info(
            "reminder response processed",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=booking_id,
                    action=action.value,
                    text_len=len(text or ""),
                )
            },
        )

        if customer is None:
            return
        salon_id, phone = customer
        try:
            self.outbound.send_text(
                SYSTEM_SENDER,
                OutboundText(
                    salon_id=salon_id,
                    to=phone,
                    text=render(_ACTION_TEMPLATE[action], language),
                ),
            )
        except Exception:
            # Response is already stored; acknowledgement is best effort.
            logger.exception(
                "failed to acknowledge reminder response",
                extra={
                    "extra_fields": safe_log_context(
                        booking_id=booking_id, phone_hash=phone_context(phone)
                    )
                },
            )
