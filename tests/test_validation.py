"""Tests for input validation."""

import pytest

from quotaledger.errors import InvalidArgument, Unauthenticated
from quotaledger.models import TaskId
from quotaledger.validation import (
    validate_count,
    validate_date_key,
    validate_requested,
    validate_task_id,
    validate_user_id,
)


class TestValidateUserId:
    """Test caller identity validation."""

    def test_valid(self):
        assert validate_user_id("abc123") == "abc123"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        with pytest.raises(Unauthenticated):
            validate_user_id(value)

    @pytest.mark.parametrize("value", [42, "a/b", "x" * 129])
    def test_malformed(self, value):
        with pytest.raises(InvalidArgument):
            validate_user_id(value)


class TestValidateAmounts:
    """Test requested and count coercion."""

    def test_requested_default(self):
        assert validate_requested(None) == 1

    @pytest.mark.parametrize("value,expected", [(1, 1), (3, 3), (2.7, 2), (0, 1), (-5, 1), (0.4, 1)])
    def test_requested_coercion(self, value, expected):
        assert validate_requested(value) == expected

    @pytest.mark.parametrize("value", ["1", True, float("inf"), 10_000])
    def test_requested_invalid(self, value):
        with pytest.raises(InvalidArgument):
            validate_requested(value)

    def test_count(self):
        assert validate_count(None) == 1
        assert validate_count(4.9) == 4
        with pytest.raises(InvalidArgument):
            validate_count(101)


class TestValidateTaskId:
    """Test task id validation."""

    @pytest.mark.parametrize("value", ["instagram", "threads", "submission", "invite", "share"])
    def test_known(self, value):
        assert validate_task_id(value) == TaskId(value)

    @pytest.mark.parametrize("value", ["", None, "facebook", 3])
    def test_unknown(self, value):
        with pytest.raises(InvalidArgument):
            validate_task_id(value)


class TestValidateDateKey:
    """Test date key validation."""

    def test_valid(self):
        assert validate_date_key("2025-01-15") == "2025-01-15"

    @pytest.mark.parametrize("value", ["2025-1-15", "2025-02-30", "today", None])
    def test_invalid(self, value):
        with pytest.raises(InvalidArgument):
            validate_date_key(value)
