"""Tests for database and time helpers."""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from salonbot.infra.db import fetchall, fetchone, get_conn, txn
from salonbot.infra.time import expires_at, is_expired, utc_now


class TestGetConn:
    def test_missing_database_url_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError):
                get_conn()

    def test_connects_with_dsn(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgres://u:p@h/db"}, clear=True), \
             patch("salonbot.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("postgres://u:p@h/db")


class TestTxn:
    def test_commits_on_success(self):
        conn = MagicMock()
        with txn(conn) as cur:
            cur.execute("SELECT 1")
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_not_called()

    def test_rolls_back_on_error(self):
        conn = MagicMock()
        with pytest.raises(ValueError):
            with txn(conn):
                raise ValueError("boom")
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_owned_connection_is_closed(self):
        conn = MagicMock()
        with patch("salonbot.infra.db.get_conn", return_value=conn):
            with txn():
                pass
        conn.close.assert_called_once()


class TestQueryHelpers:
    """Tests for fetchone and fetchall helpers."""

    def test_fetchone(self):
        cur = MagicMock()
        cur.fetchone.return_value = (1,)
        assert fetchone(cur, "SELECT %s", (1,)) == (1,)
        cur.execute.assert_called_once_with("SELECT %s", (1,))

    def test_fetchall(self):
        cur = MagicMock()
        cur.fetchall.return_value = [(1,), (2,)]
        assert fetchall(cur, "SELECT 1") == [(1,), (2,)]


class TestTime:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo == timezone.utc

    def test_expires_at(self):
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert expires_at(1800, now) == now + timedelta(minutes=30)

    def test_is_expired(self):
        now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert is_expired(now - timedelta(seconds=1), now)
        assert is_expired(now, now)
        assert not is_expired(now + timedelta(seconds=1), now)
        assert not is_expired(None, now)

    def test_naive_deadline_is_treated_as_utc(self):
        now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert is_expired(datetime(2025, 1, 1, 11, 59), now)
