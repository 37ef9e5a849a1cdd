"""
Roster totals.

Cross-client totals are sums of each statement's already-rounded figures,
so a displayed total always equals the sum of the displayed rows.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import TypeVar

from billing_engines.aggregation import AggregatedBillingStatement
from billing_kernel.db.types import ZERO

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class RosterTotals:
    client_count: int = 0
    total_minutes: int = 0
    total_hours: Decimal = ZERO
    hour_cost: Decimal = ZERO
    expense_total: Decimal = ZERO
    service_total: Decimal = ZERO
    installment_net: Decimal = ZERO
    installment_tax: Decimal = ZERO
    subtotal: Decimal = ZERO
    tax_on_hours: Decimal = ZERO
    total_tax: Decimal = ZERO
    grand_total: Decimal = ZERO

    def add(self, statement: AggregatedBillingStatement) -> RosterTotals:
        """Totals with one more statement counted."""
        values = {
            f.name: getattr(self, f.name) + getattr(statement, f.name)
            for f in fields(self)
            if f.name != "client_count"
        }
        return RosterTotals(client_count=self.client_count + 1, **values)


def sum_statements(statements: Iterable[AggregatedBillingStatement]) -> RosterTotals:
    totals = RosterTotals()
    for statement in statements:
        totals = totals.add(statement)
    return totals


def totals_by(
    entries: Iterable[T],
    key: Callable[[T], K],
    statement: Callable[[T], AggregatedBillingStatement] = lambda e: e.statement,
) -> dict[K, RosterTotals]:
    """Totals per key, in order of first appearance."""
    result: dict[K, RosterTotals] = {}
    for entry in entries:
        k = key(entry)
        result[k] = result.get(k, RosterTotals()).add(statement(entry))
    return result
