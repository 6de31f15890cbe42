"""Conversations repository - one row per (salon, customer phone).

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor


def upsert_conversation(
    cur: PgCursor,
    *,
    salon_id: str,
    phone_number: str,
) -> tuple[str, int]:
    """Get or create the conversation for a customer.

    The no-op DO UPDATE makes RETURNING yield the existing row on conflict.

    Returns:
        Tuple of (conversation_id, message_count).
    """
    cur.execute(
        """
        INSERT INTO conversations (salon_id, phone_number)
        VALUES (%s, %s)
        ON CONFLICT (salon_id, phone_number)
        DO UPDATE SET phone_number = EXCLUDED.phone_number
        RETURNING id, message_count
        """,
        (salon_id, phone_number),
    )
    row = cur.fetchone()
    return str(row[0]), int(row[1])


def touch_conversation(cur: PgCursor, *, conversation_id: str) -> None:
    """Record activity on a conversation."""
    cur.execute(
        """
        UPDATE conversations
        SET last_message_at = now(),
            message_count = message_count + 1,
            updated_at = now()
        WHERE id = %s
        """,
        (conversation_id,),
    )
