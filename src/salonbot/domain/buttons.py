"""Interactive button id codec.

Button ids are compact strings embedded in WhatsApp reply buttons and list
rows: `{type}_{context}` where type is one of slot, confirm, waitlist,
action, nav. Decoding never raises; unparseable ids yield ButtonParseError.

    slot_2025-11-02_10:00_m1      -> SlotButton("2025-11-02", "10:00", "m1")
    confirm_booking_b456          -> ConfirmButton("booking", "b456")
    waitlist_join_w789            -> WaitlistButton("join", "w789")
    action_call_salon             -> ActionButton("call_salon")
    nav_page_2                    -> NavButton("page", "2")
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, ClassVar, Union

BUTTON_ID_PATTERN = re.compile(r"^(slot|confirm|waitlist|action|nav)_[A-Za-z0-9_:-]+$")
_CONTEXT_PATTERN = re.compile(r"^[A-Za-z0-9_:-]+$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")
_MASTER_ID_PATTERN = re.compile(r"^(m\d+|\d+)$")

MAX_BUTTON_ID_LENGTH = 256
MAX_LIST_ROW_ID_LENGTH = 200

BUTTON_TYPES: tuple[str, ...] = ("slot", "confirm", "waitlist", "action", "nav")


@dataclass(frozen=True)
class SlotButton:
    type: ClassVar[str] = "slot"

    date: str
    time: str
    master_id: str

    @property
    def data(self) -> dict[str, Any]:
        return {"date": self.date, "time": self.time, "master_id": self.master_id}


@dataclass(frozen=True)
class ConfirmButton:
    type: ClassVar[str] = "confirm"

    action: str
    entity_id: str

    @property
    def data(self) -> dict[str, Any]:
        return {"action": self.action, "entity_id": self.entity_id}


@dataclass(frozen=True)
class WaitlistButton:
    type: ClassVar[str] = "waitlist"

    action: str
    waitlist_id: str = ""

    @property
    def data(self) -> dict[str, Any]:
        return {"action": self.action, "waitlist_id": self.waitlist_id}


@dataclass(frozen=True)
class ActionButton:
    type: ClassVar[str] = "action"

    action: str

    @property
    def data(self) -> dict[str, Any]:
        return {"action": self.action}


@dataclass(frozen=True)
class NavButton:
    type: ClassVar[str] = "nav"

    direction: str
    page: str | None = None

    @property
    def data(self) -> dict[str, Any]:
        return {"direction": self.direction, "page": self.page}


@dataclass(frozen=True)
class ButtonParseError:
    """Returned (not raised) when a button id cannot be decoded."""

    type: ClassVar[str] = "error"

    raw: str
    reason: str

    @property
    def data(self) -> dict[str, Any]:
        return {"raw": self.raw, "reason": self.reason}


ButtonToken = Union[SlotButton, ConfirmButton, WaitlistButton, ActionButton, NavButton]


def is_valid_button_id(button_id: str, max_length: int = MAX_BUTTON_ID_LENGTH) -> bool:
    """Check length and overall shape of a button id."""
    if not button_id or len(button_id) > max_length:
        return False
    return BUTTON_ID_PATTERN.match(button_id) is not None


def is_valid_slot_date(value: str) -> bool:
    if not _DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_slot_time(value: str) -> bool:
    if not _TIME_PATTERN.match(value):
        return False
    hours, minutes = (int(part) for part in value.split(":"))
    return 0 <= hours <= 23 and 0 <= minutes <= 59


def decode(button_id: str, max_length: int = MAX_BUTTON_ID_LENGTH) -> ButtonToken | ButtonParseError:
    """Decode a button id into a typed token.

    Args:
        button_id: Raw id from `button_reply.id` / `list_reply.id`.
        max_length: 256 for reply buttons, 200 for list rows.

    Returns:
        The decoded token, or ButtonParseError with a human readable reason.
    """
    raw = button_id if isinstance(button_id, str) else ""
    if not is_valid_button_id(raw, max_length):
        return ButtonParseError(raw=raw, reason="invalid button id format")

    button_type, _, context = raw.partition("_")

    if button_type == "slot":
        return _decode_slot(raw, context)
    if button_type == "confirm":
        action, _, entity_id = context.partition("_")
        if not action or not entity_id:
            return ButtonParseError(raw=raw, reason="confirm button needs action and entity id")
        return ConfirmButton(action=action, entity_id=entity_id)
    if button_type == "waitlist":
        action, sep, waitlist_id = context.partition("_")
        if not action or (sep and not waitlist_id):
            return ButtonParseError(raw=raw, reason="waitlist button needs an action")
        return WaitlistButton(action=action, waitlist_id=waitlist_id)
    if button_type == "action":
        return ActionButton(action=context)

    direction, sep, page = context.partition("_")
    if not direction or (sep and not page):
        return ButtonParseError(raw=raw, reason="nav button needs a direction")
    return NavButton(direction=direction, page=page or None)


def _decode_slot(raw: str, context: str) -> SlotButton | ButtonParseError:
    parts = context.split("_")
    if len(parts) != 3:
        return ButtonParseError(raw=raw, reason="slot button expects date_time_master")

    slot_date, slot_time, master_id = parts
    if not is_valid_slot_date(slot_date):
        return ButtonParseError(raw=raw, reason=f"invalid date {slot_date!r}")
    if not is_valid_slot_time(slot_time):
        return ButtonParseError(raw=raw, reason=f"invalid time {slot_time!r}")
    if not _MASTER_ID_PATTERN.match(master_id):
        return ButtonParseError(raw=raw, reason=f"invalid master id {master_id!r}")
    return SlotButton(date=slot_date, time=slot_time, master_id=master_id)


def encode(token: ButtonToken) -> str:
    """Build the button id for a token.

    Raises:
        ValueError: If the token cannot be represented as a valid button id.
    """
    if isinstance(token, SlotButton):
        context = f"{token.date}_{token.time}_{token.master_id}"
    elif isinstance(token, ConfirmButton):
        if "_" in token.action:
            raise ValueError("confirm action cannot contain '_'")
        context = f"{token.action}_{token.entity_id}"
    elif isinstance(token, WaitlistButton):
        if "_" in token.action:
            raise ValueError("waitlist action cannot contain '_'")
        context = f"{token.action}_{token.waitlist_id}" if token.waitlist_id else token.action
    elif isinstance(token, ActionButton):
        context = token.action
    elif isinstance(token, NavButton):
        if "_" in token.direction:
            raise ValueError("nav direction cannot contain '_'")
        context = f"{token.direction}_{token.page}" if token.page else token.direction
    else:
        raise ValueError(f"cannot encode {type(token).__name__}")

    if not context or not _CONTEXT_PATTERN.match(context):
        raise ValueError(f"invalid button context: {context!r}")

    button_id = f"{token.type}_{context}"
    decoded = decode(button_id)
    if decoded != token:
        raise ValueError(f"button id {button_id!r} does not round-trip")
    return button_id
