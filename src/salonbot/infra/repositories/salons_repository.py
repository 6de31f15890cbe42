"""Salons repository - tenant and service lookups.

Uses raw SQL with psycopg2 (no ORM).
"""

from typing import Any

from psycopg2.extensions import cursor as PgCursor

_SALON_COLUMNS = "id, name, phone_number_id, access_token, is_active"


def _row_to_salon(row: tuple[Any, ...]) -> dict[str, Any]:
    return {
        "id": str(row[0]),
        "name": row[1],
        "phone_number_id": row[2],
        "access_token": row[3],
        "is_active": bool(row[4]),
    }


def get_salon_by_phone_number_id(cur: PgCursor, *, phone_number_id: str) -> dict[str, Any] | None:
    """Resolve the active salon owning a Meta phone_number_id."""
    cur.execute(
        f"""
        SELECT {_SALON_COLUMNS}
        FROM salons
        WHERE phone_number_id = %s AND is_active = true
        """,
        (phone_number_id,),
    )
    row = cur.fetchone()
    return _row_to_salon(row) if row else None


def get_salon(cur: PgCursor, *, salon_id: str) -> dict[str, Any] | None:
    cur.execute(
        f"SELECT {_SALON_COLUMNS} FROM salons WHERE id = %s",
        (salon_id,),
    )
    row = cur.fetchone()
    return _row_to_salon(row) if row else None


def find_active_service_id(cur: PgCursor, *, salon_id: str) -> str | None:
    """Return the id of the oldest active service of a salon."""
    cur.execute(
        """
        SELECT id FROM services
        WHERE salon_id = %s AND is_active = true
        ORDER BY created_at, id
        LIMIT 1
        """,
        (salon_id,),
    )
    row = cur.fetchone()
    return str(row[0]) if row else None
