"""
Monetary aggregation of a client's billing period.

Responsibility:
    Turns collected line items plus the client's hourly and tax rates into
    one ``AggregatedBillingStatement``.  This is the only implementation of
    the statement arithmetic; every report (single client, group roll-up,
    roster, outstanding dues) goes through ``aggregate_statement``.

Arithmetic:
    hour_cost       = (minutes / 60) * hourly_rate
    expense_total   = sum of non-cancelled expense final charges (never taxed)
    service_total   = sum of non-cancelled service charge totals (never taxed)
    installments    = tax-inclusive amounts split into net + tax portion;
                      tax-exclusive amounts are all net
    subtotal        = hour_cost + expense_total + service_total + installment_net
    tax_on_hours    = hour_cost * tax_rate
    total_tax       = tax_on_hours + installment_tax
    grand_total     = subtotal + total_tax

Invariants enforced:
    - Decimal only.  Accumulation is unrounded; every exposed figure is
      rounded once with ``round_money`` when the statement is built.
    - Unset rates fall back to DEFAULT_HOURLY_RATE / DEFAULT_TAX_RATE and
      are never an error.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from billing_engines.duration import format_minutes, minutes_to_hours, to_minutes
from billing_engines.tracer import traced_engine
from billing_kernel.db.types import ZERO, round_money
from billing_kernel.domain.records import (
    ExpenseRecord,
    InstallmentRecord,
    ServiceChargeRecord,
    TimeEntryRecord,
)
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")

DEFAULT_HOURLY_RATE = Decimal("90000")
DEFAULT_TAX_RATE = Decimal("0.13")

_ONE = Decimal("1")


@dataclass(frozen=True)
class CollectedLineItems:
    """
    Everything billable for one client and period.

    ``installment_requests`` holds only the installment-tagged, non-cancelled
    requests that bill this period.  ``requests`` holds every non-cancelled
    request of the client and is read only by the modality classifier.
    """

    time_entries: tuple[TimeEntryRecord, ...] = field(default_factory=tuple)
    expenses: tuple[ExpenseRecord, ...] = field(default_factory=tuple)
    service_charges: tuple[ServiceChargeRecord, ...] = field(default_factory=tuple)
    installment_requests: tuple[InstallmentRecord, ...] = field(default_factory=tuple)
    requests: tuple[InstallmentRecord, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not (
            self.time_entries
            or self.expenses
            or self.service_charges
            or self.installment_requests
        )


@dataclass(frozen=True)
class InstallmentSummary:
    """One installment request's contribution to the period."""

    request_id: UUID
    title: str | None
    amount: Decimal
    net: Decimal
    tax: Decimal
    amount_includes_tax: bool
    installment_count: int | None = None
    total_payable: Decimal = ZERO
    amount_paid: Decimal = ZERO
    balance: Decimal = ZERO


@dataclass(frozen=True)
class AggregatedBillingStatement:
    """The rounded statement for one client and period."""

    client_id: UUID | None
    period_label: str | None
    hourly_rate: Decimal
    tax_rate: Decimal
    total_minutes: int
    total_hours: Decimal
    hour_cost: Decimal
    expense_total: Decimal
    service_total: Decimal
    installment_net: Decimal
    installment_tax: Decimal
    subtotal: Decimal
    tax_on_hours: Decimal
    total_tax: Decimal
    grand_total: Decimal
    installments: tuple[InstallmentSummary, ...] = field(default_factory=tuple)

    @property
    def hours_label(self) -> str:
        return format_minutes(self.total_minutes)

    @property
    def is_zero(self) -> bool:
        return self.total_minutes == 0 and all(
            v == ZERO
            for v in (
                self.hour_cost,
                self.expense_total,
                self.service_total,
                self.installment_net,
                self.installment_tax,
                self.subtotal,
                self.tax_on_hours,
                self.total_tax,
                self.grand_total,
            )
        )

    @property
    def has_outstanding(self) -> bool:
        return self.grand_total > ZERO


def split_tax_inclusive(amount: Decimal, tax_rate: Decimal) -> tuple[Decimal, Decimal]:
    """Split a tax-inclusive amount into (net, tax), unrounded."""
    net = amount / (_ONE + tax_rate)
    return net, amount - net


def _effective_rates(
    hourly_rate: Decimal | None,
    tax_rate: Decimal | None,
) -> tuple[Decimal, Decimal]:
    hourly = DEFAULT_HOURLY_RATE if hourly_rate is None else Decimal(hourly_rate)
    if tax_rate is None or tax_rate < 0:
        tax = DEFAULT_TAX_RATE
    else:
        tax = Decimal(tax_rate)
    return hourly, tax


def zero_statement(
    client_id: UUID | None = None,
    period_label: str | None = None,
    hourly_rate: Decimal | None = None,
    tax_rate: Decimal | None = None,
) -> AggregatedBillingStatement:
    """A statement for a client with no activity in the period."""
    hourly, tax = _effective_rates(hourly_rate, tax_rate)
    zero = round_money(ZERO)
    return AggregatedBillingStatement(
        client_id=client_id,
        period_label=period_label,
        hourly_rate=hourly,
        tax_rate=tax,
        total_minutes=0,
        total_hours=zero,
        hour_cost=zero,
        expense_total=zero,
        service_total=zero,
        installment_net=zero,
        installment_tax=zero,
        subtotal=zero,
        tax_on_hours=zero,
        total_tax=zero,
        grand_total=zero,
    )


@traced_engine("aggregation", "1.0", fingerprint_fields=("client_id", "period_label"))
def aggregate_statement(
    items: CollectedLineItems,
    hourly_rate: Decimal | None = None,
    tax_rate: Decimal | None = None,
    client_id: UUID | None = None,
    period_label: str | None = None,
) -> AggregatedBillingStatement:
    """
    Compute the statement for one client and period.

    Args:
        items: Collected line items for the period.
        hourly_rate: Client hourly rate, or None for the default.
        tax_rate: Client tax rate, or None (or negative) for the default.
        client_id: Carried onto the statement.
        period_label: Carried onto the statement.
    """
    t0 = time.monotonic()
    hourly, tax = _effective_rates(hourly_rate, tax_rate)

    total_minutes = sum(to_minutes(e.duration) for e in items.time_entries)
    hours = minutes_to_hours(total_minutes)
    hour_cost = hours * hourly

    expense_total = sum(
        (e.final_charge_amount for e in items.expenses if not e.is_cancelled),
        ZERO,
    )
    # Already filtered by the collector; filtered here too so every caller agrees
    service_total = sum(
        (c.total for c in items.service_charges if not c.is_cancelled),
        ZERO,
    )

    installment_net = ZERO
    installment_tax = ZERO
    summaries: list[InstallmentSummary] = []
    for request in items.installment_requests:
        if request.is_cancelled:
            continue
        amount = request.installment_amount
        if request.amount_includes_tax:
            net, tax_portion = split_tax_inclusive(amount, tax)
        else:
            net, tax_portion = amount, ZERO
        installment_net += net
        installment_tax += tax_portion
        summaries.append(
            InstallmentSummary(
                request_id=request.id,
                title=request.title,
                amount=round_money(amount),
                net=round_money(net),
                tax=round_money(tax_portion),
                amount_includes_tax=request.amount_includes_tax,
                installment_count=request.installment_count,
                total_payable=round_money(request.total_payable),
                amount_paid=round_money(request.amount_paid),
                balance=round_money(request.balance),
            )
        )

    subtotal = hour_cost + expense_total + service_total + installment_net
    tax_on_hours = hour_cost * tax
    total_tax = tax_on_hours + installment_tax
    grand_total = subtotal + total_tax

    statement = AggregatedBillingStatement(
        client_id=client_id,
        period_label=period_label,
        hourly_rate=hourly,
        tax_rate=tax,
        total_minutes=total_minutes,
        total_hours=round_money(hours),
        hour_cost=round_money(hour_cost),
        expense_total=round_money(expense_total),
        service_total=round_money(service_total),
        installment_net=round_money(installment_net),
        installment_tax=round_money(installment_tax),
        subtotal=round_money(subtotal),
        tax_on_hours=round_money(tax_on_hours),
        total_tax=round_money(total_tax),
        grand_total=round_money(grand_total),
        installments=tuple(summaries),
    )

    logger.debug(
        "statement_aggregated",
        extra={
            "client_id": str(client_id) if client_id else None,
            "period_label": period_label,
            "total_minutes": total_minutes,
            "grand_total": str(statement.grand_total),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        },
    )
    return statement
