"""Tests for the per-request step trace."""

import pytest

from app.core.trace import COST_PER_1K_TOKENS, StepStatus, StepTrace


class TestStepTrace:
    def test_entries_serialize_only_present_fields(self):
        trace = StepTrace()
        trace.start("LOAD_CONVERSATION", {"conversationId": "c1"})
        trace.fail("SEARCH_OMDB", "Network error", error="timeout")

        first, second = trace.to_list()
        assert first["step"] == "LOAD_CONVERSATION"
        assert first["status"] == "START"
        assert first["details"] == {"conversationId": "c1"}
        assert "tokensUsed" not in first
        assert "error" not in first
        assert second["status"] == "ERROR"
        assert second["error"] == "timeout"

    def test_summary_counts_and_cost(self):
        trace = StepTrace()
        trace.success("TITLE_EXTRACTION", tokens_used=600)
        trace.success("RECOMMENDATION_GENERATION", tokens_used=400)
        trace.skip("SEARCH_DATABASE")

        summary = trace.summary()

        assert summary["totalSteps"] == 3
        assert summary["byStatus"][StepStatus.SUCCESS.value] == 2
        assert summary["byStatus"]["SKIP"] == 1
        assert summary["byStatus"]["ERROR"] == 0
        assert summary["totalTokens"] == 1000
        assert summary["estimatedCost"] == pytest.approx(COST_PER_1K_TOKENS)
