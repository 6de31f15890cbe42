"""Booking orchestrator boundary.

The orchestrator owns slot search, holds and confirmation. The core talks
to it through BookingOrchestrator and never sees its storage. Slot
conflicts raise SlotConflictError; `call_orchestrator` turns any call into
a BookingOutcome so callers branch on conflict explicitly instead of
catching it alongside every other failure.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Protocol

ResponseType = Literal["text", "interactive_card", "booking_confirmed"]


class SlotConflictError(Exception):
    """Raised when the requested slot was taken by someone else."""

    pass


class OrchestratorUnavailableError(Exception):
    """Raised when the orchestrator cannot be reached or answers garbage."""

    pass


@dataclass(frozen=True)
class BookingRequest:
    """A free-text booking attempt. Not stored."""

    text: str
    customer_phone: str
    salon_id: str
    language: str


@dataclass(frozen=True)
class OrchestratorResponse:
    success: bool
    message_type: ResponseType
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str | None:
        value = self.payload.get("text")
        return str(value) if value else None

    @property
    def interactive(self) -> dict[str, Any] | None:
        value = self.payload.get("interactive")
        return value if isinstance(value, dict) else None

    @property
    def booking_id(self) -> str | None:
        value = self.payload.get("booking_id")
        return str(value) if value else None

    @property
    def service_id(self) -> str | None:
        """Service the offered slots belong to, when the orchestrator resolved one."""
        value = self.payload.get("service_id")
        return str(value) if value else None


class BookingOrchestrator(Protocol):
    def handle_booking_request(self, request: BookingRequest) -> OrchestratorResponse:
        ...

    def handle_button_click(self, button_id: str, phone: str, language: str) -> OrchestratorResponse:
        ...

    def select_slot(
        self, button_id: str, phone: str, salon_id: str, language: str
    ) -> OrchestratorResponse:
        ...

    def confirm_booking(
        self, button_id: str, phone: str, salon_id: str, language: str
    ) -> OrchestratorResponse:
        ...

    def handle_slot_conflict(
        self,
        date: str,
        time: str,
        salon_id: str,
        service_id: str,
        master_id: str,
        language: str,
    ) -> OrchestratorResponse:
        """Search alternatives around a taken slot."""
        ...


@dataclass(frozen=True)
class BookingOutcome:
    """Exactly one of response, conflict or error is set."""

    response: OrchestratorResponse | None = None
    conflict: SlotConflictError | None = None
    error: Exception | None = None

    def __post_init__(self) -> None:
        arms = [arm for arm in (self.response, self.conflict, self.error) if arm is not None]
        if len(arms) != 1:
            raise ValueError("BookingOutcome needs exactly one of response, conflict, error")

    @property
    def ok(self) -> bool:
        return self.response is not None

    @property
    def is_conflict(self) -> bool:
        return self.conflict is not None


def call_orchestrator(call: Callable[..., OrchestratorResponse], *args: Any) -> BookingOutcome:
    """Run an orchestrator call and capture its outcome."""
    try:
        return BookingOutcome(response=call(*args))
    except SlotConflictError as e:
        return BookingOutcome(conflict=e)
    except Exception as e:
        return BookingOutcome(error=e)
