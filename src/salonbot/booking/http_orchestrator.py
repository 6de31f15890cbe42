"""HTTP client for the remote booking orchestrator.

The orchestrator runs as a separate service on the same network. Every
call is a JSON POST; HTTP 409 means the slot was taken and is raised as
SlotConflictError. Anything else that is not a well-formed 2xx answer is
raised as OrchestratorUnavailableError.

Security: payloads carry the customer phone (the orchestrator needs it);
it is NEVER logged.
"""

import os
from typing import Any

import requests

from salonbot.booking.orchestrator import (
    BookingRequest,
    OrchestratorResponse,
    OrchestratorUnavailableError,
    SlotConflictError,
)
from salonbot.observability.correlation import CORRELATION_ID_HEADER, get_correlation_id
from salonbot.observability.logging import get_logger
from salonbot.observability.redaction import safe_log_context

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://booking:8000"
DEFAULT_TIMEOUT = 10

_RESPONSE_TYPES = ("text", "interactive_card", "booking_confirmed")


def _get_timeout() -> float:
    try:
        return float(os.environ.get("BOOKING_ORCHESTRATOR_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        return DEFAULT_TIMEOUT


class HttpBookingOrchestrator:
    """BookingOrchestrator speaking JSON over HTTP."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (
            base_url or os.environ.get("BOOKING_ORCHESTRATOR_URL") or DEFAULT_BASE_URL
        ).rstrip("/")
        self.timeout = timeout or _get_timeout()
        self.session = session or requests.Session()

    def handle_booking_request(self, request: BookingRequest) -> OrchestratorResponse:
        return self._post(
            "/booking/requests",
            {
                "text": request.text,
                "customer_phone": request.customer_phone,
                "salon_id": request.salon_id,
                "language": request.language,
            },
        )

    def handle_button_click(self, button_id: str, phone: str, language: str) -> OrchestratorResponse:
        return self._post(
            "/booking/button-click",
            {"button_id": button_id, "customer_phone": phone, "language": language},
        )

    def select_slot(
        self, button_id: str, phone: str, salon_id: str, language: str
    ) -> OrchestratorResponse:
        return self._post(
            "/booking/slots/select",
            {
                "button_id": button_id,
                "customer_phone": phone,
                "salon_id": salon_id,
                "language": language,
            },
        )

    def confirm_booking(
        self, button_id: str, phone: str, salon_id: str, language: str
    ) -> OrchestratorResponse:
        return self._post(
            "/booking/confirm",
            {
                "button_id": button_id,
                "customer_phone": phone,
                "salon_id": salon_id,
                "language": language,
            },
        )

    def handle_slot_conflict(
        self,
        date: str,
        time: str,
        salon_id: str,
        service_id: str,
        master_id: str,
        language: str,
    ) -> OrchestratorResponse:
        return self._post(
            "/booking/alternatives",
            {
                "date": date,
                "time": time,
                "salon_id": salon_id,
                "service_id": service_id,
                "master_id": master_id,
                "language": language,
            },
        )

    def _post(self, path: str, body: dict[str, Any]) -> OrchestratorResponse:
        url = f"{self.base_url}{path}"
        correlation_id = get_correlation_id()
        headers = {"Content-Type": "application/json"}
        if correlation_id:
            headers[CORRELATION_ID_HEADER] = correlation_id

        log_ctx = safe_log_context(correlationId=correlation_id, path=path)

        try:
            response = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(
                "booking orchestrator request failed",
                extra={"extra_fields": safe_log_context(**log_ctx, error_type=type(e).__name__)},
            )
            raise OrchestratorUnavailableError(str(e)) from e

        if response.status_code == 409:
            logger.info(
                "booking orchestrator reported slot conflict",
                extra={"extra_fields": log_ctx},
            )
            raise SlotConflictError(_error_message(response) or "slot already booked")

        if not 200 <= response.status_code < 300:
            logger.error(
                "booking orchestrator returned error status",
                extra={
                    "extra_fields": safe_log_context(**log_ctx, status_code=response.status_code)
                },
            )
            raise OrchestratorUnavailableError(f"orchestrator returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise OrchestratorUnavailableError("orchestrator returned invalid json") from e

        return parse_response(data)


def _error_message(response: requests.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return None


def parse_response(data: Any) -> OrchestratorResponse:
    """Build an OrchestratorResponse from the orchestrator's JSON body.

    Raises:
        OrchestratorUnavailableError: If the body does not have the expected shape.
    """
    if not isinstance(data, dict):
        raise OrchestratorUnavailableError("orchestrator response must be an object")

    message_type = data.get("message_type") or data.get("messageType")
    if message_type not in _RESPONSE_TYPES:
        raise OrchestratorUnavailableError(f"unknown response type: {message_type!r}")

    payload = data.get("payload")
    return OrchestratorResponse(
        success=bool(data.get("success", True)),
        message_type=message_type,
        payload=payload if isinstance(payload, dict) else {},
    )
