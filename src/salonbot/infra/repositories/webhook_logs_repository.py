"""Webhook logs repository - audit trail of webhook deliveries.

Uses raw SQL with psycopg2 (no ORM).
"""

import json
from typing import Any

from psycopg2.extensions import cursor as PgCursor


def insert_webhook_log(
    cur: PgCursor,
    *,
    salon_id: str | None,
    event_type: str,
    payload: dict[str, Any],
    status: str,
    error: str | None = None,
) -> int:
    """Insert one webhook log entry.

    Returns:
        The generated log id.
    """
    cur.execute(
        """
        INSERT INTO webhook_logs (salon_id, event_type, payload, status, error)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (salon_id, event_type, json.dumps(payload), status, error),
    )
    return cur.fetchone()[0]
