"""Localized canned replies (PII-free).

Templates contain static text with placeholders for non-PII params only.
Text is rendered only in-memory at send time. Every customer-visible
failure goes through one of these texts; raw errors are never sent.
"""

from typing import Any

DEFAULT_LANGUAGE = "en"

SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "ru", "es", "pt", "he")

TEMPLATES: dict[str, dict[str, Any]] = {
    "generic_error": {
        "text": {
            "en": (
                "Sorry, something went wrong processing your selection. "
                "Please try again or contact support."
            ),
            "ru": (
                "Извините, при обработке вашего выбора произошла ошибка. "
                "Попробуйте ещё раз или свяжитесь с салоном."
            ),
            "es": (
                "Lo sentimos, algo salió mal al procesar tu selección. "
                "Inténtalo de nuevo o contacta al salón."
            ),
            "pt": (
                "Desculpe, algo deu errado ao processar sua seleção. "
                "Tente novamente ou entre em contato com o salão."
            ),
            "he": "מצטערים, משהו השתבש בעיבוד הבחירה שלך. אנא נסו שוב או צרו קשר עם הסלון.",
        },
        "allowed_params": [],
    },
    "booking_error": {
        "text": {
            "en": (
                "Sorry, I had trouble processing your booking request. "
                "Please try again or contact support."
            ),
            "ru": (
                "Извините, не удалось обработать ваш запрос на запись. "
                "Попробуйте ещё раз или свяжитесь с салоном."
            ),
            "es": (
                "Lo sentimos, tuve problemas para procesar tu solicitud de cita. "
                "Inténtalo de nuevo o contacta al salón."
            ),
            "pt": (
                "Desculpe, tive problemas para processar seu pedido de agendamento. "
                "Tente novamente ou entre em contato com o salão."
            ),
            "he": "מצטערים, הייתה בעיה בעיבוד בקשת התור שלך. אנא נסו שוב או צרו קשר עם הסלון.",
        },
        "allowed_params": [],
    },
    "conversation_error": {
        "text": {
            "en": (
                "Sorry, I encountered an error processing your message. "
                "Please try again or contact support."
            ),
            "ru": (
                "Извините, при обработке вашего сообщения произошла ошибка. "
                "Попробуйте ещё раз или свяжитесь с салоном."
            ),
            "es": (
                "Lo sentimos, ocurrió un error al procesar tu mensaje. "
                "Inténtalo de nuevo o contacta al salón."
            ),
            "pt": (
                "Desculpe, ocorreu um erro ao processar sua mensagem. "
                "Tente novamente ou entre em contato com o salão."
            ),
            "he": "מצטערים, אירעה שגיאה בעיבוד ההודעה שלך. אנא נסו שוב או צרו קשר עם הסלון.",
        },
        "allowed_params": [],
    },
    "slot_taken": {
        "text": {
            "en": "Sorry, this time is already taken. Please pick another time.",
            "ru": "К сожалению, это время уже занято. Пожалуйста, выберите другое время.",
            "es": "Lo sentimos, este horario ya está ocupado. Por favor, elige otro horario.",
            "pt": "Desculpe, este horário já está ocupado. Por favor, escolha outro horário.",
            "he": "מצטערים, השעה הזו כבר תפוסה. אנא בחרו שעה אחרת.",
        },
        "allowed_params": [],
    },
    "slot_no_longer_available": {
        "text": {
            "en": (
                "Sorry, this time slot is no longer available. "
                "Please try selecting another time."
            ),
            "ru": "Извините, это время больше недоступно. Пожалуйста, выберите другое время.",
            "es": (
                "Lo sentimos, este horario ya no está disponible. "
                "Por favor, intenta seleccionar otro horario."
            ),
            "pt": (
                "Desculpe, este horário não está mais disponível. "
                "Por favor, tente selecionar outro horário."
            ),
            "he": "מצטערים, המשבצת הזו כבר לא זמינה. אנא נסו לבחור שעה אחרת.",
        },
        "allowed_params": [],
    },
    "confirm_conflict": {
        "text": {
            "en": (
                "Sorry, this time slot was just booked by another customer. "
                "Please select a different time slot from the available options."
            ),
            "ru": (
                "Извините, это время только что забронировал другой клиент. "
                "Пожалуйста, выберите другое время из доступных вариантов."
            ),
            "es": (
                "Lo sentimos, otro cliente acaba de reservar este horario. "
                "Por favor, selecciona otro horario de las opciones disponibles."
            ),
            "pt": (
                "Desculpe, outro cliente acabou de reservar este horário. "
                "Por favor, selecione outro horário entre as opções disponíveis."
            ),
            "he": "מצטערים, משבצת הזמן הזו נתפסה הרגע על ידי לקוח אחר. אנא בחרו משבצת אחרת מהאפשרויות הזמינות.",
        },
        "allowed_params": [],
    },
    "booking_confirmed": {
        "text": {
            "en": "Booking confirmed! ID: {booking_id}",
            "ru": "Запись подтверждена! Номер: {booking_id}",
            "es": "¡Cita confirmada! ID: {booking_id}",
            "pt": "Agendamento confirmado! ID: {booking_id}",
            "he": "התור אושר! מזהה: {booking_id}",
        },
        "allowed_params": ["booking_id"],
    },
    "reminder_confirmed": {
        "text": {
            "en": "Thank you! Your appointment is confirmed. See you soon!",
            "ru": "Спасибо! Ваша запись подтверждена. До встречи!",
            "es": "¡Gracias! Tu cita está confirmada. ¡Hasta pronto!",
            "pt": "Obrigado! Seu agendamento está confirmado. Até breve!",
            "he": "תודה! התור שלך אושר. נתראה בקרוב!",
        },
        "allowed_params": [],
    },
    "reminder_cancelled": {
        "text": {
            "en": "Your appointment has been cancelled. We hope to see you another time.",
            "ru": "Ваша запись отменена. Будем рады видеть вас в другой раз.",
            "es": "Tu cita ha sido cancelada. Esperamos verte en otra ocasión.",
            "pt": "Seu agendamento foi cancelado. Esperamos ver você em outra ocasião.",
            "he": "התור שלך בוטל. נשמח לראותך בפעם אחרת.",
        },
        "allowed_params": [],
    },
    "reminder_reschedule": {
        "text": {
            "en": "Sure! Tell us which day and time work better for you.",
            "ru": "Конечно! Напишите, какой день и время вам удобнее.",
            "es": "¡Claro! Dinos qué día y hora te vienen mejor.",
            "pt": "Claro! Diga-nos qual dia e horário são melhores para você.",
            "he": "בשמחה! כתבו לנו איזה יום ושעה נוחים לכם יותר.",
        },
        "allowed_params": [],
    },
    "reminder_unknown": {
        "text": {
            "en": "Sorry, we didn't understand your response. Please reply:\n1 - Confirm\n2 - Cancel\n3 - Reschedule",
            "ru": "Извините, мы не поняли ваш ответ. Пожалуйста, ответьте:\n1 - Подтвердить\n2 - Отменить\n3 - Перенести",
            "es": "Lo sentimos, no entendimos tu respuesta. Responde:\n1 - Confirmar\n2 - Cancelar\n3 - Reprogramar",
            "pt": "Desculpe, não entendemos sua resposta. Responda:\n1 - Confirmar\n2 - Cancelar\n3 - Remarcar",
            "he": "מצטערים, לא הבנו את תשובתך. אנא השיבו:\n1 - אישור\n2 - ביטול\n3 - שינוי מועד",
        },
        "allowed_params": [],
    },
}


def render(template_key: str, language: str | None = None, params: dict[str, Any] | None = None) -> str:
    """Render a template in the customer's language. Validates allowed_params.

    Unsupported or missing languages fall back to English.

    Args:
        template_key: Template identifier.
        language: ISO 639-1 code of the customer's language.
        params: Parameters to interpolate (must be in allowed_params).

    Returns:
        Rendered text string.

    Raises:
        ValueError: If template_key unknown or params contains disallowed keys.
    """
    if template_key not in TEMPLATES:
        raise ValueError(f"Unknown template: {template_key}")

    template = TEMPLATES[template_key]
    params = params or {}
    allowed = set(template["allowed_params"])
    provided = set(params.keys())

    # No extra params (PII leakage guard)
    extras = provided - allowed
    if extras:
        raise ValueError(f"Disallowed params for {template_key}: {extras}")

    texts: dict[str, str] = template["text"]
    text = texts.get(language or DEFAULT_LANGUAGE) or texts[DEFAULT_LANGUAGE]
    return text.format(**params)
