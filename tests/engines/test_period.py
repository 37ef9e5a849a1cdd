"""Tests for billing period resolution (billing_engines/period.py)."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from billing_engines.period import (
    BillingPeriod,
    current_period,
    parse_override,
    period_for_month,
    period_from_label,
    resolve_period,
)

CR = ZoneInfo("America/Costa_Rica")


# ============================================================================
# BillingPeriod
# ============================================================================


class TestBillingPeriod:
    """Tests for the BillingPeriod value object."""

    def test_label_and_bounds(self):
        period = period_for_month(2025, 2)
        assert period.label == "2025-02"
        assert period.start_date == date(2025, 2, 1)
        assert period.end_date == date(2025, 2, 28)

    def test_leap_february(self):
        assert period_for_month(2024, 2).end_date == date(2024, 2, 29)

    def test_contains_is_inclusive(self):
        period = period_for_month(2025, 4)
        assert period.contains(date(2025, 4, 1))
        assert period.contains(date(2025, 4, 30))
        assert not period.contains(date(2025, 5, 1))
        assert not period.contains(date(2025, 3, 31))

    def test_previous_wraps_year(self):
        assert period_for_month(2025, 1).previous() == BillingPeriod(2024, 12)

    def test_next_wraps_year(self):
        assert period_for_month(2024, 12).next() == BillingPeriod(2025, 1)

    def test_invalid_month_rejected(self):
        with pytest.raises(ValueError):
            BillingPeriod(2025, 13)


class TestPeriodFromLabel:
    """Tests for parsing YYYY-MM labels."""

    def test_parses_label(self):
        assert period_from_label("2025-07") == BillingPeriod(2025, 7)

    @pytest.mark.parametrize("label", ["2025-7", "2025/07", "", "2025-13", "2025-00", "julio"])
    def test_malformed_label_raises(self, label):
        with pytest.raises(ValueError):
            period_from_label(label)


# ============================================================================
# Resolution
# ============================================================================


class TestResolvePeriod:
    """The billed period is the month before the reference instant."""

    def test_january_resolves_to_previous_december(self):
        period = resolve_period(datetime(2025, 1, 15, 9, 0, tzinfo=CR))
        assert (period.year, period.month) == (2024, 12)
        assert period.label == "2024-12"

    def test_march_resolves_to_february(self):
        period = resolve_period(datetime(2025, 3, 20, 9, 0, tzinfo=CR))
        assert (period.year, period.month) == (2025, 2)
        assert period.start_date == date(2025, 2, 1)
        assert period.end_date == date(2025, 2, 28)

    def test_month_is_read_in_business_timezone(self):
        """03:00 UTC on March 1 is still February 28 in Costa Rica."""
        period = resolve_period(datetime(2025, 3, 1, 3, 0, tzinfo=timezone.utc))
        assert period.label == "2025-01"

    def test_naive_instant_is_business_time(self):
        period = resolve_period(datetime(2025, 3, 1, 0, 30))
        assert period.label == "2025-02"

    def test_current_period_is_the_containing_month(self):
        assert current_period(datetime(2025, 3, 20, tzinfo=CR)).label == "2025-03"


class TestPeriodOverride:
    """Tests for the reference-date override."""

    reference = datetime(2025, 3, 20, 9, 0, tzinfo=CR)

    def test_date_only_override(self):
        assert resolve_period(self.reference, "2025-01-10").label == "2024-12"

    def test_date_only_override_is_read_at_noon(self):
        parsed = parse_override("2025-03-01")
        assert parsed == datetime(2025, 3, 1, 12, 0, tzinfo=CR)
        assert resolve_period(self.reference, "2025-03-01").label == "2025-02"

    def test_timestamp_override_with_zulu(self):
        # 03:00Z on June 1 is May 31 in business time
        assert resolve_period(self.reference, "2025-06-01T03:00:00Z").label == "2025-04"

    def test_timestamp_override_with_offset_and_fraction(self):
        period = resolve_period(self.reference, "2025-08-15T10:30:00.250-06:00")
        assert period.label == "2025-07"

    def test_timestamp_override_without_zone_is_business_time(self):
        assert resolve_period(self.reference, "2025-06-01T00:15").label == "2025-05"

    @pytest.mark.parametrize("override", ["2025-13-01", "2025-02-30", "mañana", "2025-06-01 10:00", "20250601"])
    def test_invalid_override_is_ignored(self, override, captured_logs):
        assert resolve_period(self.reference, override).label == "2025-02"
        ignored = [r for r in captured_logs() if r["message"] == "period_override_ignored"]
        assert len(ignored) == 1
        assert ignored[0]["level"] == "WARNING"

    def test_blank_override_is_silently_ignored(self, captured_logs):
        assert resolve_period(self.reference, "   ").label == "2025-02"
        assert not [r for r in captured_logs() if r["message"] == "period_override_ignored"]
