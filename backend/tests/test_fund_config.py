"""
Unit Tests for Fund Configuration Lookups

Usage:
    cd backend && pytest tests/test_fund_config.py -v
"""

import os
import sys

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from grantrelief.fund_config import (
    ALL_EVENT_TYPES,
    DEFAULT_LIMITS,
    OTHER_EVENT,
    get_fund_by_code,
    resolve_limits,
)


class TestGetFundByCode:
    @pytest.mark.parametrize("code", ["E4E", "e4e", " jhh "])
    def test_case_insensitive(self, code):
        fund = get_fund_by_code(code)
        assert fund is not None
        assert fund.code == code.strip().upper()

    @pytest.mark.parametrize("code", ["", None, "UNKNOWN"])
    def test_unknown_returns_none(self, code):
        assert get_fund_by_code(code) is None


class TestResolveLimits:
    def test_configured_limits(self):
        limits = resolve_limits(get_fund_by_code("JHH"))
        assert limits.twelve_month_max == 5000
        assert limits.lifetime_max == 20000
        assert limits.single_request_max == 2500

    def test_fund_without_limits_uses_defaults(self):
        assert resolve_limits(get_fund_by_code("SQRT")) == DEFAULT_LIMITS

    def test_missing_fund_uses_defaults(self):
        limits = resolve_limits(None)
        assert (limits.twelve_month_max, limits.lifetime_max, limits.single_request_max) == (
            10000,
            50000,
            10000,
        )


class TestEventCatalogue:
    def test_other_event_is_last(self):
        assert ALL_EVENT_TYPES[-1] == OTHER_EVENT

    def test_no_duplicates(self):
        assert len(ALL_EVENT_TYPES) == len(set(ALL_EVENT_TYPES))
