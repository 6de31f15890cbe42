"""Routing policy for inbound messages.

Pure functions only: given a message kind, its text and an intent
classification, decide which handler owns the message.
"""

from enum import Enum

INTENT_CONFIDENCE_THRESHOLD = 0.7


class RoutingDecision(str, Enum):
    BUTTON_CLICK = "BUTTON_CLICK"
    BOOKING_REQUEST = "BOOKING_REQUEST"
    CONVERSATION = "CONVERSATION"


class IntentType(str, Enum):
    BOOKING_REQUEST = "BOOKING_REQUEST"
    BOOKING_MODIFY = "BOOKING_MODIFY"
    BOOKING_CANCEL = "BOOKING_CANCEL"
    AVAILABILITY_INQUIRY = "AVAILABILITY_INQUIRY"
    SERVICE_INQUIRY = "SERVICE_INQUIRY"
    PRICE_INQUIRY = "PRICE_INQUIRY"
    LOCATION_INQUIRY = "LOCATION_INQUIRY"
    GENERAL_QUESTION = "GENERAL_QUESTION"
    GREETING = "GREETING"
    THANKS = "THANKS"
    CONFIRMATION = "CONFIRMATION"
    NEGATION = "NEGATION"
    HELP_REQUEST = "HELP_REQUEST"
    FEEDBACK = "FEEDBACK"
    UNKNOWN = "UNKNOWN"


BOOKING_ROUTED_INTENTS: frozenset[IntentType] = frozenset(
    {
        IntentType.BOOKING_REQUEST,
        IntentType.BOOKING_MODIFY,
        IntentType.AVAILABILITY_INQUIRY,
    }
)

# Used when the intent classifier is unavailable.
BOOKING_FALLBACK_KEYWORDS: tuple[str, ...] = (
    "booking",
    "appointment",
    "reservation",
    "book",
    "запись",
    "записаться",
    "хочу",
    "нужно",
    "reserva",
    "cita",
    "agendar",
    "agendamento",
    "marcar",
    "תור",
    "לקבוע",
)

# Broader list checked on plain conversation messages.
BOOKING_CONVERSATION_KEYWORDS: tuple[str, ...] = (
    "book",
    "appointment",
    "schedule",
    "reserve",
    "haircut",
    "manicure",
    "pedicure",
    "massage",
    "tomorrow",
    "today",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
    "morning",
    "afternoon",
    "evening",
)


def _coerce_intent(intent: IntentType | str) -> IntentType:
    if isinstance(intent, IntentType):
        return intent
    try:
        return IntentType(str(intent).upper())
    except ValueError:
        return IntentType.UNKNOWN


def route_for_intent(intent: IntentType | str, confidence: float) -> RoutingDecision:
    """Map a classified intent to a routing decision.

    Confidence at or above INTENT_CONFIDENCE_THRESHOLD is trusted. Only the
    intents in BOOKING_ROUTED_INTENTS reach the booking flow; cancellations
    and everything else stay in conversation.
    """
    if confidence < INTENT_CONFIDENCE_THRESHOLD:
        return RoutingDecision.CONVERSATION
    if _coerce_intent(intent) in BOOKING_ROUTED_INTENTS:
        return RoutingDecision.BOOKING_REQUEST
    return RoutingDecision.CONVERSATION


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def keyword_routing(text: str) -> RoutingDecision:
    """Fallback routing by case-insensitive substring match."""
    if _contains_any(text, BOOKING_FALLBACK_KEYWORDS):
        return RoutingDecision.BOOKING_REQUEST
    return RoutingDecision.CONVERSATION


def looks_like_booking(text: str) -> bool:
    return _contains_any(text, BOOKING_CONVERSATION_KEYWORDS)
