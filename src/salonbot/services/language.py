"""Language detection.

Pattern-based: script ranges, language-specific diacritics and common
words. Fast and deterministic; good enough to pick the reply language.
Security: NEVER log the analysed text.
"""

import re
from dataclasses import dataclass
from typing import Protocol

DEFAULT_LANGUAGE = "en"

# Below this, an interactive message keeps the language of its session.
LOW_CONFIDENCE_LANGUAGE = 0.5

_WORD_RE = re.compile(r"[^\W\d_]+", re.UNICODE)
_CYRILLIC_RE = re.compile(r"[Ѐ-ӿ]")
_HEBREW_RE = re.compile(r"[֐-׿]")
_LETTER_RE = re.compile(r"[^\W\d_]", re.UNICODE)
_ASCII_LETTER_RE = re.compile(r"[A-Za-z]")

_SPANISH_ONLY_RE = re.compile(r"[ñ¿¡]", re.IGNORECASE)
_PORTUGUESE_ONLY_RE = re.compile(r"[ãõçâêôà]", re.IGNORECASE)
_SHARED_IBERIAN_RE = re.compile(r"[áéíóú]", re.IGNORECASE)

_WORD_WEIGHT = 0.25
_ASCII_SCRIPT_WEIGHT = 0.4
_DIACRITIC_WEIGHT = 0.3
_SHARED_DIACRITIC_WEIGHT = 0.15

COMMON_WORDS: dict[str, frozenset[str]] = {
    "en": frozenset(
        {
            "hello", "hi", "the", "is", "are", "and", "want", "book", "appointment",
            "salon", "manicure", "haircut", "price", "cost", "how", "what", "when",
            "please", "thanks", "tomorrow", "today",
        }
    ),
    "ru": frozenset(
        {
            "привет", "здравствуйте", "спасибо", "пожалуйста", "добрый", "день",
            "хочу", "запись", "записаться", "салон", "маникюр", "стрижка", "завтра",
        }
    ),
    "es": frozenset(
        {
            "hola", "buenos", "días", "gracias", "por", "favor", "quiero", "cita",
            "salón", "manicura", "corte", "precio", "cuánto", "qué", "cuando",
            "mañana", "reservar",
        }
    ),
    "pt": frozenset(
        {
            "olá", "bom", "dia", "obrigado", "obrigada", "quero", "agendamento",
            "agendar", "salão", "corte", "preço", "quanto", "amanhã", "marcar",
            "você", "horário",
        }
    ),
    "he": frozenset(
        {"שלום", "טוב", "בוקר", "תודה", "בבקשה", "רוצה", "תור", "מניקור", "תספורת", "מחר"}
    ),
}

SUPPORTED_LANGUAGES: tuple[str, ...] = tuple(COMMON_WORDS)


@dataclass(frozen=True)
class LanguageResult:
    language: str
    confidence: float


class LanguageDetector(Protocol):
    def detect(self, text: str) -> LanguageResult:
        ...


def _ratio(pattern: re.Pattern[str], text: str, letters: int) -> float:
    if letters == 0:
        return 0.0
    return len(pattern.findall(text)) / letters


class PatternLanguageDetector:
    """Scores every supported language and returns the best one.

    Empty or letterless text yields DEFAULT_LANGUAGE with confidence 0.
    """

    def detect(self, text: str) -> LanguageResult:
        normalized = (text or "").lower()
        letters = len(_LETTER_RE.findall(normalized))
        if letters == 0:
            return LanguageResult(language=DEFAULT_LANGUAGE, confidence=0.0)

        words = set(_WORD_RE.findall(normalized))
        scores = {
            lang: _WORD_WEIGHT * len(words & vocabulary)
            for lang, vocabulary in COMMON_WORDS.items()
        }

        scores["ru"] += _ratio(_CYRILLIC_RE, normalized, letters)
        scores["he"] += _ratio(_HEBREW_RE, normalized, letters)

        if _SPANISH_ONLY_RE.search(normalized):
            scores["es"] += _DIACRITIC_WEIGHT
        if _PORTUGUESE_ONLY_RE.search(normalized):
            scores["pt"] += _DIACRITIC_WEIGHT
        if _SHARED_IBERIAN_RE.search(normalized):
            scores["es"] += _SHARED_DIACRITIC_WEIGHT
            scores["pt"] += _SHARED_DIACRITIC_WEIGHT

        if _ratio(_ASCII_LETTER_RE, normalized, letters) == 1.0:
            scores["en"] += _ASCII_SCRIPT_WEIGHT

        language = max(scores, key=lambda lang: (scores[lang], lang == DEFAULT_LANGUAGE))
        confidence = min(1.0, scores[language])
        if confidence == 0.0:
            language = DEFAULT_LANGUAGE
        return LanguageResult(language=language, confidence=round(confidence, 3))
