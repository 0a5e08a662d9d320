"""Tests for per-request logging context."""

from app.core.logging import (
    _inject_context_vars,
    bind_query_context,
    conversation_id_var,
    reset_context,
    session_id_var,
    user_id_var,
)


class TestQueryContext:
    def test_guest_leaves_user_unbound(self):
        tokens = bind_query_context("c1", None, "s1")
        try:
            assert conversation_id_var.get() == "c1"
            assert session_id_var.get() == "s1"
            assert user_id_var.get() is None
        finally:
            reset_context(tokens)

    def test_reset_restores_previous_values(self):
        tokens = bind_query_context("c1", "u1")
        reset_context(tokens)
        assert conversation_id_var.get() is None
        assert user_id_var.get() is None

    def test_bound_ids_reach_log_events(self):
        tokens = bind_query_context("c1", "u1")
        try:
            event = _inject_context_vars(None, "info", {"event": "movie_query_received"})
        finally:
            reset_context(tokens)

        assert event["conversation_id"] == "c1"
        assert event["user_id"] == "u1"
        assert "session_id" not in event

    def test_explicit_event_fields_win(self):
        tokens = bind_query_context("c1")
        try:
            event = _inject_context_vars(None, "info", {"event": "x", "conversation_id": "other"})
        finally:
            reset_context(tokens)

        assert event["conversation_id"] == "other"
