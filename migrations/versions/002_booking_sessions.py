"""Conversational booking sessions.

Revision ID: 002_booking_sessions
Revises: 001_salonbot_schema
"""
from __future__ import annotations
from pathlib import Path
from alembic import op

revision = "002_booking_sessions"
down_revision = "001_salonbot_schema"
branch_labels = None
depends_on = None

def upgrade() -> None:
    sql_path = Path(__file__).resolve().parents[1] / "sql" / "002_booking_sessions.sql"
    sql = sql_path.read_text(encoding="utf-8")
    conn = op.get_bind()
    conn.exec_driver_sql(sql)

def downgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql("DROP TABLE IF EXISTS booking_sessions;")
