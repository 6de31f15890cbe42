"""Booking sessions repository - conversational booking state.

Uses raw SQL with psycopg2 (no ORM). State is stored as JSONB.
"""

import json
from datetime import datetime
from typing import Any

from psycopg2.extensions import cursor as PgCursor


def get_session(
    cur: PgCursor,
    *,
    salon_id: str,
    phone_number: str,
) -> tuple[dict[str, Any], datetime] | None:
    """Fetch session state.

    Returns:
        Tuple of (state, expires_at) or None when absent.
    """
    cur.execute(
        """
        SELECT state, expires_at
        FROM booking_sessions
        WHERE salon_id = %s AND phone_number = %s
        """,
        (salon_id, phone_number),
    )
    row = cur.fetchone()
    if row is None:
        return None
    state = row[0]
    if isinstance(state, str):
        state = json.loads(state)
    return state or {}, row[1]


def upsert_session(
    cur: PgCursor,
    *,
    salon_id: str,
    phone_number: str,
    state: dict[str, Any],
    expires_at: datetime,
) -> None:
    """Insert or overwrite session state. Last writer wins."""
    cur.execute(
        """
        INSERT INTO booking_sessions (salon_id, phone_number, state, expires_at)
        VALUES (%s, %s, %s, %s)
        ON CONFLICT (salon_id, phone_number)
        DO UPDATE SET state = EXCLUDED.state,
                      expires_at = EXCLUDED.expires_at,
                      updated_at = now()
        """,
        (salon_id, phone_number, json.dumps(state), expires_at),
    )


def delete_session(cur: PgCursor, *, salon_id: str, phone_number: str) -> int:
    cur.execute(
        "DELETE FROM booking_sessions WHERE salon_id = %s AND phone_number = %s",
        (salon_id, phone_number),
    )
    return cur.rowcount
