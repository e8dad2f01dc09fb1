"""
Unit Tests for AI Token Usage Tracking

Tests cost calculation, token estimation, and the best-effort
TokenUsageTracker.

Usage:
    cd backend && pytest tests/test_token_tracker.py -v
"""

import asyncio
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from grantrelief.models.token_usage import TokenContext
from grantrelief.services.token_tracker import (
    InMemoryTokenEventStore,
    TokenUsageTracker,
    calculate_cost,
    estimate_tokens,
    new_session_id,
)

CONTEXT = TokenContext(user_id="user-1", session_id="assistant-abc", fund_code="E4E")


class TestHelpers:
    @pytest.mark.parametrize("text,expected", [
        ("", 0),
        (None, 0),
        ("abcd", 1),
        ("abcde", 2),
    ])
    def test_estimate_tokens(self, text, expected):
        assert estimate_tokens(text) == expected

    def test_cost_for_known_model(self):
        assert calculate_cost("gpt-4.1", 1000, 1000) == pytest.approx(0.010)

    def test_unknown_model_is_free(self):
        assert calculate_cost("mystery-model", 5000, 5000) == 0

    def test_session_ids_are_prefixed_and_unique(self):
        first, second = new_session_id("decision"), new_session_id("decision")
        assert first.startswith("decision-")
        assert first != second


class TestTokenUsageTracker:
    def test_event_recorded(self):
        store = InMemoryTokenEventStore()
        tracker = TokenUsageTracker(store, environment="Development", account="Acme")

        event = asyncio.run(tracker.log_event(
            CONTEXT, feature="AI Assistant", model="gpt-4.1-mini",
            input_tokens=200, output_tokens=50, cached_input_tokens=10,
        ))

        assert event.total_tokens == 260
        assert event.environment == "Development"
        assert event.account == "Acme"
        assert event.session_id == "assistant-abc"
        assert asyncio.run(store.list_events("user-1")) == [event]
        assert asyncio.run(store.list_events("someone-else")) == []

    def test_store_failure_is_swallowed(self):
        store = MagicMock()
        store.add = AsyncMock(side_effect=RuntimeError("db down"))
        tracker = TokenUsageTracker(store)

        result = asyncio.run(tracker.log_event(
            CONTEXT, feature="Final Decision", model="gpt-4.1",
            input_tokens=1, output_tokens=1,
        ))

        assert result is None

    def test_invalid_counts_are_swallowed(self):
        tracker = TokenUsageTracker(InMemoryTokenEventStore())
        result = asyncio.run(tracker.log_event(
            CONTEXT, feature="Final Decision", model="gpt-4.1",
            input_tokens=-5, output_tokens=1,
        ))
        assert result is None
