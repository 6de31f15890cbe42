"""Tests for the conversation session store."""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from salonbot.infra.session_store import (
    DEFAULT_SESSION_TTL_SECONDS,
    ConversationSession,
    PostgresSessionStore,
    get_session_ttl_seconds,
)
from salonbot.infra.time import utc_now


class TestConversationSession:
    def test_state_round_trip(self):
        session = ConversationSession(
            salon_id="s1", language="ru", selected_service="svc-1"
        ).with_slot("2025-11-02", "10:00", "m1")

        assert ConversationSession.from_state(session.to_state()) == session

    def test_from_partial_state(self):
        session = ConversationSession.from_state({"salon_id": "s1"})
        assert session.language == "en"
        assert session.selected_slot is None
        assert session.extra == {}


class TestTtl:
    def test_default(self, monkeypatch):
        monkeypatch.delenv("SESSION_TTL_SECONDS", raising=False)
        assert get_session_ttl_seconds() == DEFAULT_SESSION_TTL_SECONDS == 1800

    @pytest.mark.parametrize("raw, expected", [("600", 600), ("abc", 1800), ("0", 1800), ("-5", 1800)])
    def test_env(self, monkeypatch, raw, expected):
        monkeypatch.setenv("SESSION_TTL_SECONDS", raw)
        assert get_session_ttl_seconds() == expected


@pytest.fixture
def repo():
    with patch("salonbot.infra.session_store.txn") as txn, \
         patch("salonbot.infra.session_store.get_session") as get_session, \
         patch("salonbot.infra.session_store.upsert_session") as upsert_session, \
         patch("salonbot.infra.session_store.delete_session") as delete_session:
        txn.return_value.__enter__.return_value = MagicMock()
        yield {"get": get_session, "upsert": upsert_session, "delete": delete_session}


class TestPostgresSessionStore:
    def test_live_session_is_returned(self, repo):
        repo["get"].return_value = ({"salon_id": "s1", "language": "es"}, utc_now() + timedelta(minutes=5))

        session = PostgresSessionStore(ttl_seconds=60).get("s1", "5511")

        assert session.language == "es"

    def test_expired_session_is_ignored(self, repo):
        repo["get"].return_value = ({"salon_id": "s1", "language": "es"}, utc_now() - timedelta(seconds=1))

        assert PostgresSessionStore(ttl_seconds=60).get("s1", "5511") is None

    def test_save_sets_expiry_from_ttl(self, repo):
        before = utc_now()

        PostgresSessionStore(ttl_seconds=60).save("s1", "5511", ConversationSession(salon_id="s1", language="en"))

        kwargs = repo["upsert"].call_args.kwargs
        assert kwargs["state"]["language"] == "en"
        assert before + timedelta(seconds=60) <= kwargs["expires_at"] <= utc_now() + timedelta(seconds=60)

    def test_update_changes_existing_session(self, repo):
        repo["get"].return_value = ({"salon_id": "s1", "language": "en"}, utc_now() + timedelta(minutes=5))

        updated = PostgresSessionStore(ttl_seconds=60).update("s1", "5511", selected_service="svc-2")

        assert updated.selected_service == "svc-2"
        assert repo["upsert"].call_args.kwargs["state"]["selected_service"] == "svc-2"

    def test_update_without_session(self, repo):
        repo["get"].return_value = None

        assert PostgresSessionStore(ttl_seconds=60).update("s1", "5511", language="ru") is None
        repo["upsert"].assert_not_called()

    def test_delete(self, repo):
        PostgresSessionStore(ttl_seconds=60).delete("s1", "5511")
        assert repo["delete"].call_args.kwargs == {"salon_id": "s1", "phone_number": "5511"}
