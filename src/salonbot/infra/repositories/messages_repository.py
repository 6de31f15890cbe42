"""Messages repository - inbound/outbound message rows and dedupe receipts.

Uses raw SQL with psycopg2 (no ORM).
"""

import json
from typing import Any

from psycopg2.extensions import cursor as PgCursor


def message_exists(cur: PgCursor, *, whatsapp_id: str) -> bool:
    """Check whether a message with this vendor id was already stored."""
    cur.execute(
        "SELECT 1 FROM messages WHERE whatsapp_id = %s LIMIT 1",
        (whatsapp_id,),
    )
    return cur.fetchone() is not None


def insert_processed_message(cur: PgCursor, *, salon_id: str, whatsapp_id: str) -> bool:
    """Insert the dedupe receipt for an inbound message.

    Uses ON CONFLICT DO NOTHING so concurrent deliveries of the same message
    race on the primary key and exactly one of them wins.

    Returns:
        True if this call inserted the receipt, False if it already existed.
    """
    cur.execute(
        """
        INSERT INTO processed_messages (salon_id, whatsapp_id)
        VALUES (%s, %s)
        ON CONFLICT (salon_id, whatsapp_id) DO NOTHING
        """,
        (salon_id, whatsapp_id),
    )
    return cur.rowcount == 1


def insert_message(
    cur: PgCursor,
    *,
    salon_id: str,
    direction: str,
    phone_number: str,
    message_type: str,
    content: str,
    whatsapp_id: str | None,
    status: str,
    conversation_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> str | None:
    """Insert a message row.

    Returns:
        The new message id, or None when a row with the same whatsapp_id exists.
    """
    cur.execute(
        """
        INSERT INTO messages (
            salon_id, conversation_id, direction, phone_number,
            message_type, content, whatsapp_id, status, metadata
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (whatsapp_id) WHERE whatsapp_id IS NOT NULL DO NOTHING
        RETURNING id
        """,
        (
            salon_id,
            conversation_id,
            direction,
            phone_number,
            message_type,
            content,
            whatsapp_id,
            status,
            json.dumps(metadata or {}),
        ),
    )
    row = cur.fetchone()
    return str(row[0]) if row else None


def get_message_status(cur: PgCursor, *, salon_id: str, whatsapp_id: str) -> str | None:
    cur.execute(
        "SELECT status FROM messages WHERE salon_id = %s AND whatsapp_id = %s",
        (salon_id, whatsapp_id),
    )
    row = cur.fetchone()
    return row[0] if row else None


def update_message_status(
    cur: PgCursor,
    *,
    salon_id: str,
    whatsapp_id: str,
    status: str,
) -> int:
    """Set the delivery status of a message.

    Returns:
        Number of rows updated (0 when the message is unknown).
    """
    cur.execute(
        """
        UPDATE messages
        SET status = %s, updated_at = now()
        WHERE salon_id = %s AND whatsapp_id = %s
        """,
        (status, salon_id, whatsapp_id),
    )
    return cur.rowcount
