"""
Corporate group roll-up.

A principal's consolidated statement is its own statement plus one per
member company, each computed with that company's own rates.  Group
figures are straight sums of the per-company rounded figures.  The
registry is trusted: role rules are checked when groups are registered,
not here.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from billing_engines.aggregation import AggregatedBillingStatement
from billing_engines.roster import RosterTotals, sum_statements
from billing_engines.tracer import traced_engine
from billing_kernel.domain.records import ClientInfo


@dataclass(frozen=True)
class MemberStatement:
    client: ClientInfo
    statement: AggregatedBillingStatement


@dataclass(frozen=True)
class MemberFailure:
    """A member whose statement could not be computed."""

    client_id: UUID
    client_name: str | None
    error_code: str
    message: str


@dataclass(frozen=True)
class GroupAggregatedStatement:
    group_id: UUID | None
    group_name: str | None
    principal: AggregatedBillingStatement
    members: tuple[MemberStatement, ...] = field(default_factory=tuple)
    failures: tuple[MemberFailure, ...] = field(default_factory=tuple)
    totals: RosterTotals = field(default_factory=RosterTotals)

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def total_tax(self) -> Decimal:
        return self.totals.total_tax

    @property
    def grand_total(self) -> Decimal:
        return self.totals.grand_total

    @property
    def is_complete(self) -> bool:
        """False when any member's statement is missing from the totals."""
        return not self.failures

    @property
    def is_grouped(self) -> bool:
        return self.group_id is not None


@traced_engine("group_rollup", "1.0", fingerprint_fields=("group_id",))
def roll_up_group(
    principal: AggregatedBillingStatement,
    members: Sequence[MemberStatement] = (),
    failures: Sequence[MemberFailure] = (),
    group_id: UUID | None = None,
    group_name: str | None = None,
) -> GroupAggregatedStatement:
    """Consolidate a principal's statement with its members'."""
    totals = sum_statements([principal, *(m.statement for m in members)])
    return GroupAggregatedStatement(
        group_id=group_id,
        group_name=group_name,
        principal=principal,
        members=tuple(members),
        failures=tuple(failures),
        totals=totals,
    )
