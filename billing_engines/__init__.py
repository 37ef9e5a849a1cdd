"""
Module: billing_engines
Responsibility:
    Re-exports the pure calculation engines: period resolution, duration
    normalization, statement aggregation, modality classification, group
    roll-up and roster totals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel.domain, billing_kernel.db.types and
    billing_kernel.logging_config.  MUST NOT import billing_services.

Invariants enforced:
    - Engines NEVER call ``datetime.now()`` or ``date.today()``; the
      reference instant is always a parameter.
    - Decimal-only arithmetic for money.
    - Identical inputs always produce identical outputs.
"""

from billing_engines.aggregation import (
    DEFAULT_HOURLY_RATE,
    DEFAULT_TAX_RATE,
    AggregatedBillingStatement,
    CollectedLineItems,
    InstallmentSummary,
    aggregate_statement,
    split_tax_inclusive,
    zero_statement,
)
from billing_engines.duration import (
    CaseMinutes,
    format_minutes,
    group_minutes_by_case,
    minutes_to_hours,
    sum_minutes,
    to_minutes,
)
from billing_engines.modality import Modality, classify, normalize_tag
from billing_engines.period import (
    DEFAULT_BUSINESS_TIMEZONE,
    BillingPeriod,
    current_period,
    period_for_month,
    period_from_label,
    resolve_period,
)
from billing_engines.rollup import (
    GroupAggregatedStatement,
    MemberFailure,
    MemberStatement,
    roll_up_group,
)
from billing_engines.roster import RosterTotals, sum_statements, totals_by

__all__ = [
    "DEFAULT_HOURLY_RATE",
    "DEFAULT_TAX_RATE",
    "AggregatedBillingStatement",
    "CollectedLineItems",
    "InstallmentSummary",
    "aggregate_statement",
    "split_tax_inclusive",
    "zero_statement",
    "CaseMinutes",
    "format_minutes",
    "group_minutes_by_case",
    "minutes_to_hours",
    "sum_minutes",
    "to_minutes",
    "Modality",
    "classify",
    "normalize_tag",
    "DEFAULT_BUSINESS_TIMEZONE",
    "BillingPeriod",
    "current_period",
    "period_for_month",
    "period_from_label",
    "resolve_period",
    "GroupAggregatedStatement",
    "MemberFailure",
    "MemberStatement",
    "roll_up_group",
    "RosterTotals",
    "sum_statements",
    "totals_by",
]
