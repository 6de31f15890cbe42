"""Conversation session store.

A session carries the booking state of one customer of one salon between
webhook deliveries. At most one session exists per (salon_id, phone);
`save` overwrites, last writer wins. Sessions expire after
SESSION_TTL_SECONDS (default 1800) of inactivity.
"""

import os
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Protocol

from salonbot.infra.db import txn
from salonbot.infra.repositories.sessions_repository import (
    delete_session,
    get_session,
    upsert_session,
)
from salonbot.infra.time import expires_at, is_expired

DEFAULT_SESSION_TTL_SECONDS = 1800


@dataclass(frozen=True)
class ConversationSession:
    salon_id: str
    language: str
    selected_service: str | None = None
    selected_slot: dict[str, str] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def with_slot(self, date: str, time: str, master_id: str) -> "ConversationSession":
        return replace(
            self,
            selected_slot={"date": date, "time": time, "master_id": master_id},
        )

    def to_state(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_state(cls, state: dict[str, Any]) -> "ConversationSession":
        return cls(
            salon_id=str(state.get("salon_id", "")),
            language=str(state.get("language") or "en"),
            selected_service=state.get("selected_service"),
            selected_slot=state.get("selected_slot"),
            extra=state.get("extra") or {},
        )


class SessionStore(Protocol):
    def get(self, salon_id: str, phone: str) -> ConversationSession | None:
        ...

    def save(self, salon_id: str, phone: str, session: ConversationSession) -> None:
        ...

    def update(self, salon_id: str, phone: str, **changes: Any) -> ConversationSession | None:
        """Apply field changes to an existing session. None if there is none."""
        ...

    def delete(self, salon_id: str, phone: str) -> None:
        ...


def get_session_ttl_seconds() -> int:
    raw = os.environ.get("SESSION_TTL_SECONDS", "")
    try:
        ttl = int(raw)
    except ValueError:
        return DEFAULT_SESSION_TTL_SECONDS
    return ttl if ttl > 0 else DEFAULT_SESSION_TTL_SECONDS


class PostgresSessionStore:
    """SessionStore backed by the `booking_sessions` table."""

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = ttl_seconds or get_session_ttl_seconds()

    def get(self, salon_id: str, phone: str) -> ConversationSession | None:
        with txn() as cur:
            found = get_session(cur, salon_id=salon_id, phone_number=phone)
        if found is None:
            return None
        state, deadline = found
        if is_expired(deadline):
            return None
        return ConversationSession.from_state(state)

    def save(self, salon_id: str, phone: str, session: ConversationSession) -> None:
        with txn() as cur:
            upsert_session(
                cur,
                salon_id=salon_id,
                phone_number=phone,
                state=session.to_state(),
                expires_at=expires_at(self.ttl_seconds),
            )

    def update(self, salon_id: str, phone: str, **changes: Any) -> ConversationSession | None:
        current = self.get(salon_id, phone)
        if current is None:
            return None
        updated = replace(current, **changes)
        self.save(salon_id, phone, updated)
        return updated

    def delete(self, salon_id: str, phone: str) -> None:
        with txn() as cur:
            delete_session(cur, salon_id=salon_id, phone_number=phone)
