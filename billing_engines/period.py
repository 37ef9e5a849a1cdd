"""
Billing period resolution.

Clients are billed for the calendar month *preceding* the reference
instant, read in the firm's business timezone.  A test-only override
string may replace the reference instant; whether an override is allowed
at all is decided by the caller.

All functions are pure: the reference instant is always passed in (it
comes from an injected ``Clock``), never read from the system.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from billing_kernel.logging_config import get_logger

logger = get_logger("engines.period")

DEFAULT_BUSINESS_TIMEZONE = "America/Costa_Rica"

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIMESTAMP = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2}(?:\.\d{1,6})?)?(?:Z|[+-]\d{2}:\d{2})?$"
)
_LABEL = re.compile(r"^(\d{4})-(\d{2})$")

# Date-only overrides are read as noon so that no timezone shift can move
# them into the neighbouring day.
_OVERRIDE_TIME_OF_DAY = time(12, 0)


@dataclass(frozen=True)
class BillingPeriod:
    """A calendar month.  Start and end dates are both inclusive."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1..12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise ValueError(f"year out of range: {self.year}")

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def start_date(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end_date(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def previous(self) -> BillingPeriod:
        if self.month == 1:
            return BillingPeriod(self.year - 1, 12)
        return BillingPeriod(self.year, self.month - 1)

    def next(self) -> BillingPeriod:
        if self.month == 12:
            return BillingPeriod(self.year + 1, 1)
        return BillingPeriod(self.year, self.month + 1)

    def __str__(self) -> str:
        return self.label


def period_for_month(year: int, month: int) -> BillingPeriod:
    return BillingPeriod(year, month)


def period_from_label(label: str) -> BillingPeriod:
    """Parse ``YYYY-MM``.  Raises ValueError on anything else."""
    match = _LABEL.match(label or "")
    if match is None:
        raise ValueError(f"Invalid period label: {label!r} (expected YYYY-MM)")
    return BillingPeriod(int(match.group(1)), int(match.group(2)))


def _zone(tz: str | ZoneInfo) -> ZoneInfo:
    return tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)


def to_business_time(instant: datetime, tz: str | ZoneInfo = DEFAULT_BUSINESS_TIMEZONE) -> datetime:
    """Convert to business time.  Naive datetimes are taken as business time already."""
    zone = _zone(tz)
    if instant.tzinfo is None:
        return instant.replace(tzinfo=zone)
    return instant.astimezone(zone)


def parse_override(
    override_text: str | None,
    tz: str | ZoneInfo = DEFAULT_BUSINESS_TIMEZONE,
) -> datetime | None:
    """
    Parse a reference-instant override.

    Accepts ``YYYY-MM-DD`` (noon business time) or an ISO-8601 timestamp
    ``YYYY-MM-DDTHH:MM[:SS[.ffffff]][Z|+HH:MM]``.  Returns None for a blank
    or invalid override; invalid ones are logged.
    """
    if override_text is None:
        return None
    text = override_text.strip()
    if not text:
        return None

    zone = _zone(tz)
    try:
        if _DATE_ONLY.match(text):
            return datetime.combine(date.fromisoformat(text), _OVERRIDE_TIME_OF_DAY, zone)
        if _TIMESTAMP.match(text):
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=zone)
    except ValueError:
        pass

    logger.warning("period_override_ignored", extra={"override_text": override_text})
    return None


def current_period(
    reference_instant: datetime,
    tz: str | ZoneInfo = DEFAULT_BUSINESS_TIMEZONE,
) -> BillingPeriod:
    """The month containing the instant (the not-yet-billed month)."""
    local = to_business_time(reference_instant, tz)
    return BillingPeriod(local.year, local.month)


def resolve_period(
    reference_instant: datetime,
    override_text: str | None = None,
    tz: str | ZoneInfo = DEFAULT_BUSINESS_TIMEZONE,
) -> BillingPeriod:
    """
    The billing period for a reference instant: the month before it.

    An override that parses replaces the reference instant; one that does
    not is ignored with a WARNING.
    """
    instant = parse_override(override_text, tz) or reference_instant
    return current_period(instant, tz).previous()
