"""Reminders repository - appointment reminders and customer replies.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor


def find_pending_reminder(
    cur: PgCursor,
    *,
    salon_id: str,
    phone_number: str,
) -> tuple[str, str] | None:
    """Find the latest sent, unanswered reminder of a confirmed booking.

    Returns:
        Tuple of (reminder_id, booking_id) or None.
    """
    cur.execute(
        """
        SELECT r.id, b.id
        FROM reminders r
        JOIN bookings b ON b.id = r.booking_id
        WHERE b.salon_id = %s
          AND b.customer_phone = %s
          AND b.status = 'CONFIRMED'
          AND r.status = 'SENT'
          AND r.response IS NULL
        ORDER BY r.sent_at DESC NULLS LAST
        LIMIT 1
        """,
        (salon_id, phone_number),
    )
    row = cur.fetchone()
    return (str(row[0]), str(row[1])) if row else None


def record_reminder_response(
    cur: PgCursor,
    *,
    booking_id: str,
    response: str,
) -> int:
    """Store the parsed customer response on every open reminder of a booking."""
    cur.execute(
        """
        UPDATE reminders
        SET response = %s, responded_at = now()
        WHERE booking_id = %s AND status = 'SENT' AND response IS NULL
        """,
        (response, booking_id),
    )
    return cur.rowcount


def update_booking_status(cur: PgCursor, *, booking_id: str, status: str) -> int:
    cur.execute(
        """
        UPDATE bookings
        SET status = %s, updated_at = now()
        WHERE id = %s
        """,
        (status, booking_id),
    )
    return cur.rowcount


def get_booking_customer(cur: PgCursor, *, booking_id: str) -> tuple[str, str] | None:
    """Return (salon_id, customer_phone) of a booking."""
    cur.execute(
        "SELECT salon_id, customer_phone FROM bookings WHERE id = %s",
        (booking_id,),
    )
    row = cur.fetchone()
    return (str(row[0]), row[1]) if row else None
