"""Tests for duration normalization (billing_engines/duration.py)."""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from billing_engines.duration import (
    format_minutes,
    group_minutes_by_case,
    minutes_to_hours,
    sum_minutes,
    to_minutes,
)
from tests.factories import make_time_entry


class TestToMinutes:
    """Parsing of colon and decimal-hour durations."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2:30", 150),
            ("2.5", 150),
            ("0:45", 45),
            ("1:30:45", 90),
            (" 3:05 ", 185),
            ("3", 180),
            (".5", 30),
            ("1.", 60),
            ("0.25", 15),
        ],
    )
    def test_parses_supported_shapes(self, text, expected):
        assert to_minutes(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", None, "abc", "1:2:3:4", "1,5", "h:mm"])
    def test_unreadable_input_is_zero(self, text):
        assert to_minutes(text) == 0

    def test_decimal_hours_round_half_up(self):
        # 0.0083 h = 0.498 min, 0.0084 h = 0.504 min
        assert to_minutes("0.0083") == 0
        assert to_minutes("0.0084") == 1
        # 0.025 h = 1.5 min
        assert to_minutes("0.025") == 2

    @pytest.mark.parametrize("text", ["-1.5", "-0:30", "NaN", "Infinity", "1e3"])
    def test_negative_or_non_finite_is_zero_with_warning(self, text, captured_logs):
        assert to_minutes(text) == 0
        assert any(
            r["message"] == "duration_unparseable" and r["level"] == "WARNING"
            for r in captured_logs()
        )

    def test_non_string_input_is_stringified(self):
        assert to_minutes(2) == 120
        assert to_minutes(Decimal("1.25")) == 75

    @given(st.text())
    def test_total_over_strings(self, text):
        result = to_minutes(text)
        assert isinstance(result, int)
        assert result >= 0

    @given(st.one_of(st.none(), st.integers(), st.floats(), st.decimals(), st.booleans()))
    def test_total_over_loose_values(self, value):
        assert to_minutes(value) >= 0

    @given(st.integers(min_value=0, max_value=10_000), st.integers(min_value=0, max_value=59))
    def test_colon_form_matches_arithmetic(self, hours, minutes):
        assert to_minutes(f"{hours}:{minutes:02d}") == hours * 60 + minutes


class TestFormatting:
    """Rendering minutes back for display and for cost math."""

    @pytest.mark.parametrize("minutes, expected", [(0, "0:00"), (5, "0:05"), (255, "4:15"), (600, "10:00")])
    def test_format_minutes(self, minutes, expected):
        assert format_minutes(minutes) == expected

    def test_minutes_to_hours_is_unrounded(self):
        assert minutes_to_hours(90) == Decimal("1.5")
        assert minutes_to_hours(20) == Decimal(1) / Decimal(3)

    def test_sum_minutes(self):
        assert sum_minutes(["1:30", "0:45", "2:00"]) == 255
        assert sum_minutes(["1:30", "garbage", None]) == 90


class TestGroupMinutesByCase:
    """Per-case breakdown of worked time."""

    def test_groups_by_case_in_first_seen_order(self):
        case_a, case_b = uuid4(), uuid4()
        entries = [
            make_time_entry("1:00", case_id=case_a),
            make_time_entry("0:30", case_id=case_b),
            make_time_entry("0:45", case_id=case_a),
        ]
        breakdown = group_minutes_by_case(entries)
        assert [c.case_id for c in breakdown] == [case_a, case_b]
        assert breakdown[0].minutes == 105
        assert breakdown[0].label == "1:45"
        assert breakdown[0].entry_count == 2
        assert breakdown[1].hours == Decimal("0.5")

    def test_entries_without_case_group_under_none(self):
        breakdown = group_minutes_by_case([make_time_entry("2:00"), make_time_entry("bad")])
        assert len(breakdown) == 1
        assert breakdown[0].case_id is None
        assert breakdown[0].minutes == 120
        assert breakdown[0].entry_count == 2

    def test_empty(self):
        assert group_minutes_by_case([]) == ()
