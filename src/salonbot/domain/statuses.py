"""Delivery status mapping for outbound messages."""

SENT = "SENT"
DELIVERED = "DELIVERED"
READ = "READ"
FAILED = "FAILED"

STATUS_MAP: dict[str, str] = {
    "sent": SENT,
    "delivered": DELIVERED,
    "read": READ,
    "failed": FAILED,
}


def map_status(vendor_status: str | None) -> str:
    """Map a Meta status value to ours. Unknown values map to SENT."""
    return STATUS_MAP.get((vendor_status or "").lower(), SENT)


def next_status(current: str | None, incoming: str) -> str | None:
    """Return the status to store, or None to keep the current one.

    A READ message is never downgraded; only FAILED may replace it.
    """
    if current == READ and incoming != FAILED:
        return None
    if current == incoming:
        return None
    return incoming
