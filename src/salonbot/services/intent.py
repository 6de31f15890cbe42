"""Intent classification.

Two implementations of IntentClassifier:
- KeywordIntentClassifier: deterministic, multilingual keyword scoring. NO LLM.
- RemoteIntentClassifier: JSON POST to INTENT_CLASSIFIER_URL.

`build_intent_classifier()` picks the remote one when the URL is set.
Security: NEVER log raw text (PII).
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from salonbot.domain.routing import INTENT_CONFIDENCE_THRESHOLD, IntentType
from salonbot.observability.correlation import CORRELATION_ID_HEADER, get_correlation_id
from salonbot.observability.logging import get_logger
from salonbot.observability.redaction import safe_log_context

logger = get_logger(__name__)

HTTP_TIMEOUT = 5


class ClassifierUnavailableError(Exception):
    """Raised when the remote classifier cannot produce a result."""

    pass


@dataclass(frozen=True)
class IntentResult:
    intent: IntentType
    confidence: float
    is_reliable: bool
    alternative_intents: list[tuple[IntentType, float]] = field(default_factory=list)
    entities: dict[str, list[str]] = field(default_factory=dict)


class IntentClassifier(Protocol):
    def classify(self, text: str, language: str) -> IntentResult:
        ...


INTENT_KEYWORDS: dict[IntentType, tuple[str, ...]] = {
    IntentType.BOOKING_REQUEST: (
        "book", "booking", "appointment", "reserve", "reservation", "schedule",
        "запис", "хочу", "reservar", "reserva", "cita", "agendar", "marcar",
        "תור", "לקבוע",
    ),
    IntentType.BOOKING_CANCEL: (
        "cancel", "отмен", "cancelar", "לבטל", "ביטול",
    ),
    IntentType.BOOKING_MODIFY: (
        "reschedule", "change my", "move my", "перенес", "перенос", "cambiar",
        "remarcar", "alterar", "לשנות",
    ),
    IntentType.AVAILABILITY_INQUIRY: (
        "available", "availability", "free slot", "any time", "свобод",
        "disponible", "disponível", "disponivel", "פנוי",
    ),
    IntentType.SERVICE_INQUIRY: (
        "services", "do you do", "do you offer", "услуг", "servicios", "serviços",
        "servicos", "שירותים",
    ),
    IntentType.PRICE_INQUIRY: (
        "price", "cost", "how much", "цена", "стоит", "сколько", "precio",
        "cuánto", "cuanto", "preço", "preco", "quanto", "מחיר", "כמה עולה",
    ),
    IntentType.LOCATION_INQUIRY: (
        "where", "address", "location", "адрес", "где", "dirección", "donde",
        "endereço", "onde", "כתובת", "איפה",
    ),
    IntentType.GREETING: (
        "hello", "hi", "hey", "привет", "здравствуйте", "hola", "olá", "ola",
        "שלום",
    ),
    IntentType.THANKS: (
        "thank", "спасибо", "gracias", "obrigad", "תודה",
    ),
    IntentType.CONFIRMATION: (
        "yes", "ok", "sure", "да", "sí", "sim", "כן",
    ),
    IntentType.NEGATION: (
        "no", "nope", "нет", "não", "nao", "לא",
    ),
    IntentType.HELP_REQUEST: (
        "help", "помощ", "помоги", "ayuda", "ajuda", "עזרה",
    ),
    IntentType.FEEDBACK: (
        "complain", "feedback", "жалоб", "queja", "reclamação", "תלונה",
    ),
}

# Cancel and modify messages usually mention the booking too.
_INTENT_WEIGHTS: dict[IntentType, int] = {
    IntentType.BOOKING_CANCEL: 3,
    IntentType.BOOKING_MODIFY: 3,
}

# Short keywords only match whole words; longer ones match as substrings.
_WHOLE_WORD_MAX_LEN = 3

_TIME_RE = re.compile(r"\b\d{1,2}(?::\d{2})?\s?(?:am|pm)\b|\b\d{1,2}:\d{2}\b", re.IGNORECASE)
_DATE_RE = re.compile(r"\b\d{1,2}[/.\-]\d{1,2}(?:[/.\-]\d{2,4})?\b")
_NUMBER_RE = re.compile(r"\b\d+\b")
_DATE_WORDS: tuple[str, ...] = (
    "today", "tomorrow", "monday", "tuesday", "wednesday", "thursday", "friday",
    "saturday", "sunday", "сегодня", "завтра", "hoy", "mañana", "hoje", "amanhã",
    "היום", "מחר",
)
_TIME_WORDS: tuple[str, ...] = ("morning", "afternoon", "evening", "утром", "вечером")


def _matches(keyword: str, lowered: str, words: set[str]) -> bool:
    if len(keyword) <= _WHOLE_WORD_MAX_LEN and " " not in keyword:
        return keyword in words
    return keyword in lowered


def extract_entities(text: str) -> dict[str, list[str]]:
    """Pull simple date/time references and numbers out of a message."""
    lowered = text.lower()
    words = set(re.findall(r"[^\W_]+", lowered))
    times = _TIME_RE.findall(text)
    dates = _DATE_RE.findall(text)

    entities: dict[str, list[str]] = {
        "date_references": dates + [w for w in _DATE_WORDS if w in words],
        "time_references": times + [w for w in _TIME_WORDS if w in words],
    }
    consumed = " ".join(times + dates)
    entities["numbers"] = [n for n in _NUMBER_RE.findall(text) if n not in consumed]
    return {key: value for key, value in entities.items() if value}


class KeywordIntentClassifier:
    """Scores every intent by keyword hits.

    One hit on the best intent gives 0.75, each further hit adds 0.1 up to
    0.95. Ties between different intents lower confidence below the
    routing threshold. Date or time references add weight to booking.
    """

    def classify(self, text: str, language: str) -> IntentResult:
        lowered = (text or "").lower()
        words = set(re.findall(r"[^\W_]+", lowered))
        entities = extract_entities(text or "")

        scores: dict[IntentType, int] = {}
        for intent, keywords in INTENT_KEYWORDS.items():
            hits = sum(1 for keyword in keywords if _matches(keyword, lowered, words))
            if hits:
                scores[intent] = hits * _INTENT_WEIGHTS.get(intent, 1)

        if scores.get(IntentType.BOOKING_REQUEST) and (
            entities.get("date_references") or entities.get("time_references")
        ):
            scores[IntentType.BOOKING_REQUEST] += 1

        if not scores:
            return IntentResult(
                intent=IntentType.UNKNOWN,
                confidence=0.0,
                is_reliable=False,
                entities=entities,
            )

        ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        best_intent, best_hits = ranked[0]
        confidence = min(0.95, 0.75 + 0.1 * (best_hits - 1))
        if len(ranked) > 1 and ranked[1][1] == best_hits:
            confidence = 0.5

        alternatives = [
            (intent, round(confidence * hits / best_hits, 2)) for intent, hits in ranked[1:]
        ]
        return IntentResult(
            intent=best_intent,
            confidence=confidence,
            is_reliable=confidence >= INTENT_CONFIDENCE_THRESHOLD,
            alternative_intents=alternatives,
            entities=entities,
        )


class RemoteIntentClassifier:
    """IntentClassifier backed by an HTTP classification service."""

    def __init__(self, url: str, timeout: float = HTTP_TIMEOUT) -> None:
        self.url = url
        self.timeout = timeout

    def classify(self, text: str, language: str) -> IntentResult:
        correlation_id = get_correlation_id()
        headers = {CORRELATION_ID_HEADER: correlation_id} if correlation_id else {}
        try:
            response = requests.post(
                self.url,
                json={"text": text, "language": language},
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(
                "intent classifier request failed",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=correlation_id,
                        error_type=type(e).__name__,
                        text_len=len(text or ""),
                    )
                },
            )
            raise ClassifierUnavailableError(str(e)) from e

        return parse_intent_result(data)


def parse_intent_result(data: Any) -> IntentResult:
    """Build an IntentResult from the remote classifier's JSON body.

    Raises:
        ClassifierUnavailableError: If the body is not usable.
    """
    if not isinstance(data, dict):
        raise ClassifierUnavailableError("classifier response must be an object")
    try:
        intent = IntentType(str(data.get("intent", "UNKNOWN")).upper())
    except ValueError:
        intent = IntentType.UNKNOWN
    try:
        confidence = float(data.get("confidence", 0.0))
    except (TypeError, ValueError) as e:
        raise ClassifierUnavailableError("confidence must be a number") from e

    alternatives: list[tuple[IntentType, float]] = []
    for alt in data.get("alternative_intents") or []:
        if not isinstance(alt, dict):
            continue
        try:
            alternatives.append((IntentType(str(alt.get("intent")).upper()), float(alt.get("confidence", 0.0))))
        except (TypeError, ValueError):
            continue

    entities = data.get("entities")
    return IntentResult(
        intent=intent,
        confidence=confidence,
        is_reliable=bool(data.get("is_reliable", confidence >= INTENT_CONFIDENCE_THRESHOLD)),
        alternative_intents=alternatives,
        entities=entities if isinstance(entities, dict) else {},
    )


def build_intent_classifier() -> IntentClassifier:
    url = os.environ.get("INTENT_CLASSIFIER_URL", "")
    if url:
        return RemoteIntentClassifier(url)
    return KeywordIntentClassifier()
