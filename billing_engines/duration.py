"""
Duration normalization for time entries.

Time entries store their duration as free text: ``"H:MM"``, ``"H:MM:SS"``
(seconds ignored) or decimal hours (``"2.5"``).  ``to_minutes`` is total:
it never raises, and anything it cannot read counts as zero minutes.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from billing_kernel.domain.records import TimeEntryRecord
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.duration")

_COLON = re.compile(r"^\s*(\d+):(\d{1,2})(?::(\d{1,2}))?\s*$")
_DECIMAL_HOURS = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*$")

_SIXTY = Decimal(60)


def to_minutes(value: Any) -> int:
    """Parse a duration into whole minutes.  Never raises; unreadable input is 0."""
    if value is None:
        return 0
    try:
        text = value if isinstance(value, str) else str(value)
    except Exception:
        logger.warning("duration_unparseable", extra={"value_type": type(value).__name__})
        return 0
    if not text.strip():
        return 0

    match = _COLON.match(text)
    if match:
        try:
            return int(match.group(1)) * 60 + int(match.group(2))
        except ValueError:
            logger.warning("duration_out_of_range", extra={"duration": text[:64]})
            return 0

    match = _DECIMAL_HOURS.match(text)
    if match:
        try:
            minutes = (Decimal(match.group(1)) * _SIXTY).quantize(
                Decimal(1), rounding=ROUND_HALF_UP
            )
        except InvalidOperation:
            logger.warning("duration_out_of_range", extra={"duration": text[:64]})
            return 0
        return int(minutes)

    logger.warning("duration_unparseable", extra={"duration": text[:64]})
    return 0


def sum_minutes(values: Iterable[Any]) -> int:
    return sum(to_minutes(v) for v in values)


def format_minutes(minutes: int) -> str:
    """Render minutes as ``H:MM``."""
    minutes = max(0, int(minutes))
    return f"{minutes // 60}:{minutes % 60:02d}"


def minutes_to_hours(minutes: int) -> Decimal:
    """Decimal hours, unrounded (28-digit context)."""
    return Decimal(int(minutes)) / _SIXTY


@dataclass(frozen=True)
class CaseMinutes:
    """Worked time on one case within a period."""

    case_id: UUID | None
    minutes: int
    entry_count: int

    @property
    def label(self) -> str:
        return format_minutes(self.minutes)

    @property
    def hours(self) -> Decimal:
        return minutes_to_hours(self.minutes)


def group_minutes_by_case(entries: Iterable[TimeEntryRecord]) -> tuple[CaseMinutes, ...]:
    """
    Per-case minute totals, in order of first appearance.  Entries linked
    directly to a client (no case) are grouped under ``case_id=None``.
    """
    totals: dict[UUID | None, list[int]] = {}
    for entry in entries:
        bucket = totals.setdefault(entry.case_id, [0, 0])
        bucket[0] += to_minutes(entry.duration)
        bucket[1] += 1
    return tuple(
        CaseMinutes(case_id=case_id, minutes=minutes, entry_count=count)
        for case_id, (minutes, count) in totals.items()
    )
