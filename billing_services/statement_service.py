"""
StatementService -- monthly statements for one client, a group, or the roster.

Responsibility:
    Orchestrates period resolution, line-item collection, aggregation,
    modality classification and group roll-up, and annotates results with
    approval state and group membership.  Every figure comes from
    ``aggregate_statement``; this module adds no arithmetic of its own
    beyond summing rounded statements.

Architecture position:
    Services -- imperative shell over the pure engines.  Reads only; the
    approval workflow and group registry are written by the kernel
    services.

Concurrency:
    Per-client work (roster, outstanding dues, group members) runs on a
    thread pool, one store scope (one session) per task.  Each task runs in
    a copy of the caller's ``contextvars`` context so LogContext fields
    follow it.  A task failing with a ``BillingKernelError`` becomes an
    error entry for that client; siblings carry on.

Failure modes:
    - ClientNotFoundError / DataAccessError for single-client and group
      requests about the client itself.
"""

from __future__ import annotations

import contextvars
import time
from collections.abc import Callable, Hashable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from functools import partial
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from billing_config.schema import BillingSettings
from billing_engines.aggregation import (
    AggregatedBillingStatement,
    CollectedLineItems,
    aggregate_statement,
)
from billing_engines.duration import CaseMinutes, group_minutes_by_case
from billing_engines.modality import Modality, classify
from billing_engines.period import BillingPeriod, resolve_period
from billing_engines.rollup import (
    GroupAggregatedStatement,
    MemberFailure,
    MemberStatement,
    roll_up_group,
)
from billing_engines.roster import RosterTotals, sum_statements, totals_by
from billing_kernel.domain.approval import ApprovalStatus
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.records import ClientInfo, CompanyGroupInfo
from billing_kernel.exceptions import BillingKernelError
from billing_kernel.logging_config import LogContext, get_logger
from billing_services.collector import LineItemCollector
from billing_services.store import BillingStore, StoreFactory, sql_store_factory

logger = get_logger("services.statement")

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClientStatementReport:
    """A client's statement annotated for presentation."""

    client: ClientInfo
    period: BillingPeriod
    statement: AggregatedBillingStatement
    modality: Modality
    approval_required: bool = False
    approval_status: ApprovalStatus | None = None
    group_id: UUID | None = None
    group_name: str | None = None
    is_group_principal: bool = False
    case_minutes: tuple[CaseMinutes, ...] = field(default_factory=tuple)

    @property
    def client_id(self) -> UUID:
        return self.client.id

    @property
    def internal_note(self) -> str | None:
        return self.client.internal_note


@dataclass(frozen=True)
class ClientStatementError:
    """A client whose statement could not be computed."""

    client_id: UUID
    client_name: str | None
    error_code: str
    message: str


@dataclass(frozen=True)
class RosterReport:
    period: BillingPeriod
    entries: tuple[ClientStatementReport, ...] = field(default_factory=tuple)
    failures: tuple[ClientStatementError, ...] = field(default_factory=tuple)

    @property
    def grand_totals(self) -> RosterTotals:
        return sum_statements(e.statement for e in self.entries)

    @property
    def totals_by_modality(self) -> dict[Modality, RosterTotals]:
        return totals_by(self.entries, key=lambda e: e.modality)

    @property
    def totals_by_group(self) -> dict[str, RosterTotals]:
        grouped = [e for e in self.entries if e.group_id is not None]
        return totals_by(grouped, key=lambda e: e.group_name)

    @property
    def is_complete(self) -> bool:
        return not self.failures

    def outstanding(self) -> tuple[ClientStatementReport, ...]:
        """Clients owing something this period."""
        return tuple(e for e in self.entries if e.statement.has_outstanding)

    def all_entries(self) -> tuple[ClientStatementReport | ClientStatementError, ...]:
        """Every client, zero statements included, then the failed ones."""
        return (*self.entries, *self.failures)


@dataclass(frozen=True)
class DuesEntry:
    """A client's last billed period and the month in progress."""

    client: ClientInfo
    previous: AggregatedBillingStatement
    current: AggregatedBillingStatement
    group_id: UUID | None = None
    group_name: str | None = None
    is_group_principal: bool = False


@dataclass(frozen=True)
class OutstandingDuesReport:
    previous_period: BillingPeriod
    current_period: BillingPeriod
    entries: tuple[DuesEntry, ...] = field(default_factory=tuple)
    failures: tuple[ClientStatementError, ...] = field(default_factory=tuple)

    @property
    def previous_totals(self) -> RosterTotals:
        return sum_statements(e.previous for e in self.entries)

    @property
    def current_totals(self) -> RosterTotals:
        return sum_statements(e.current for e in self.entries)


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def roster_sort_key(
    client: ClientInfo,
    group: CompanyGroupInfo | None,
    is_principal: bool,
    modality: Modality | None = None,
) -> tuple:
    """
    Corporates before individuals, grouped corporates first (by group name,
    principal first), then by name.  With a modality, modality rank leads.
    """
    return (
        modality.rank if modality is not None else 0,
        0 if client.is_corporate else 1,
        0 if group is not None else 1,
        group.name.casefold() if group is not None else "",
        0 if is_principal else 1,
        client.name.casefold(),
    )


def _group_roles(
    groups: list[CompanyGroupInfo],
) -> dict[UUID, tuple[CompanyGroupInfo, bool]]:
    roles: dict[UUID, tuple[CompanyGroupInfo, bool]] = {}
    for group in groups:
        roles[group.principal_client_id] = (group, True)
        for member_id in group.member_ids:
            roles.setdefault(member_id, (group, False))
    return roles


def _error_entry(client: ClientInfo, exc: BillingKernelError) -> ClientStatementError:
    return ClientStatementError(
        client_id=client.id,
        client_name=client.name,
        error_code=exc.code,
        message=str(exc),
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class StatementService:
    """Computes statements.  Holds no state between calls."""

    def __init__(
        self,
        store_factory: StoreFactory,
        settings: BillingSettings | None = None,
        clock: Clock | None = None,
    ):
        self._store_factory = store_factory
        self._settings = settings or BillingSettings()
        self._clock = clock or SystemClock()

    @classmethod
    def from_session_factory(
        cls,
        session_factory: Callable[[], Session],
        settings: BillingSettings | None = None,
        clock: Clock | None = None,
    ) -> StatementService:
        return cls(sql_store_factory(session_factory), settings=settings, clock=clock)

    # ------------------------------------------------------------------
    # Period
    # ------------------------------------------------------------------

    def resolve_period(self, override_text: str | None = None) -> BillingPeriod:
        """The period to bill now.  Overrides are dropped unless enabled."""
        if override_text and not self._settings.allow_period_override:
            logger.warning(
                "period_override_rejected",
                extra={
                    "environment": self._settings.environment,
                    "override_text": override_text,
                },
            )
            override_text = None
        return resolve_period(self._clock.now(), override_text, self._settings.zone)

    def _period(self, period: BillingPeriod | None, override_text: str | None) -> BillingPeriod:
        return period if period is not None else self.resolve_period(override_text)

    # ------------------------------------------------------------------
    # Single client
    # ------------------------------------------------------------------

    def compute_client_statement(
        self,
        client_id: UUID,
        period: BillingPeriod | None = None,
        override_text: str | None = None,
    ) -> ClientStatementReport:
        """One client's own statement (no group roll-up)."""
        period = self._period(period, override_text)
        with self._store_factory() as store:
            client = store.get_client(client_id)
            group, is_principal = self._group_role(store, client_id)
            report = self._report(store, client, period, group, is_principal)

        logger.info(
            "statement_computed",
            extra={
                "client_id": str(client_id),
                "period_label": period.label,
                "modality": report.modality.value,
                "grand_total": str(report.statement.grand_total),
            },
        )
        return report

    def compute_group_statement(
        self,
        principal_id: UUID,
        period: BillingPeriod | None = None,
        override_text: str | None = None,
    ) -> GroupAggregatedStatement:
        """
        The principal's statement consolidated with its members'.

        A client that leads no group gets its own statement alone.  Member
        failures are recorded and leave the result incomplete; a failure
        for the principal itself raises.
        """
        period = self._period(period, override_text)
        t0 = time.monotonic()

        with LogContext.bind(client_id=principal_id, period_label=period.label):
            with self._store_factory() as store:
                principal = store.get_client(principal_id)
                statement, _ = self._statement_for(store, principal, period)
                group = store.get_group_for_principal(principal_id)
                members = store.get_group_members(group.id) if group is not None else []

            if group is None:
                return roll_up_group(statement)

            results = self._fan_out(
                {m.id: partial(self._member_statement, m, period) for m in members}
            )

            member_statements: list[MemberStatement] = []
            failures: list[MemberFailure] = []
            for member in members:
                outcome = results[member.id]
                if isinstance(outcome, BillingKernelError):
                    failures.append(
                        MemberFailure(
                            client_id=member.id,
                            client_name=member.name,
                            error_code=outcome.code,
                            message=str(outcome),
                        )
                    )
                else:
                    member_statements.append(MemberStatement(member, outcome))

            rolled = roll_up_group(
                principal=statement,
                members=member_statements,
                failures=failures,
                group_id=group.id,
                group_name=group.name,
            )

            logger.info(
                "group_statement_computed",
                extra={
                    "group_id": str(group.id),
                    "member_count": len(members),
                    "failed_members": len(failures),
                    "grand_total": str(rolled.grand_total),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return rolled

    # ------------------------------------------------------------------
    # Roster and dues
    # ------------------------------------------------------------------

    def compute_roster(
        self,
        period: BillingPeriod | None = None,
        override_text: str | None = None,
        active_only: bool = True,
    ) -> RosterReport:
        """Statements for every (active) client, computed concurrently."""
        period = self._period(period, override_text)
        t0 = time.monotonic()

        with LogContext.bind(period_label=period.label):
            with self._store_factory() as store:
                clients = store.list_clients(active_only=active_only)
                roles = _group_roles(store.list_groups())

            results = self._fan_out(
                {
                    c.id: partial(self._roster_entry, c, period, *roles.get(c.id, (None, False)))
                    for c in clients
                }
            )

            entries: list[ClientStatementReport] = []
            failures: list[ClientStatementError] = []
            for client in clients:
                outcome = results[client.id]
                if isinstance(outcome, BillingKernelError):
                    failures.append(_error_entry(client, outcome))
                else:
                    entries.append(outcome)

            entries.sort(
                key=lambda e: roster_sort_key(
                    e.client,
                    roles.get(e.client_id, (None, False))[0],
                    e.is_group_principal,
                    e.modality,
                )
            )
            failures.sort(key=lambda f: (f.client_name or "").casefold())
            report = RosterReport(period=period, entries=tuple(entries), failures=tuple(failures))

            logger.info(
                "roster_computed",
                extra={
                    "client_count": len(clients),
                    "failed_count": len(failures),
                    "outstanding_count": len(report.outstanding()),
                    "grand_total": str(report.grand_totals.grand_total),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return report

    def compute_outstanding_dues(self, override_text: str | None = None) -> OutstandingDuesReport:
        """
        For every client, active or not: the last billed period and the
        month in progress.  Lists clients owing something in either.
        """
        previous = self.resolve_period(override_text)
        current = previous.next()
        t0 = time.monotonic()

        with LogContext.bind(period_label=previous.label):
            with self._store_factory() as store:
                clients = store.list_clients(active_only=False)
                roles = _group_roles(store.list_groups())

            results = self._fan_out(
                {c.id: partial(self._dues_statements, c, previous, current) for c in clients}
            )

            entries: list[DuesEntry] = []
            failures: list[ClientStatementError] = []
            for client in clients:
                outcome = results[client.id]
                if isinstance(outcome, BillingKernelError):
                    failures.append(_error_entry(client, outcome))
                    continue
                prev_statement, cur_statement = outcome
                if not (prev_statement.has_outstanding or cur_statement.has_outstanding):
                    continue
                group, is_principal = roles.get(client.id, (None, False))
                entries.append(
                    DuesEntry(
                        client=client,
                        previous=prev_statement,
                        current=cur_statement,
                        group_id=group.id if group else None,
                        group_name=group.name if group else None,
                        is_group_principal=is_principal,
                    )
                )

            entries.sort(
                key=lambda e: roster_sort_key(
                    e.client,
                    roles.get(e.client.id, (None, False))[0],
                    e.is_group_principal,
                )
            )
            failures.sort(key=lambda f: (f.client_name or "").casefold())
            report = OutstandingDuesReport(
                previous_period=previous,
                current_period=current,
                entries=tuple(entries),
                failures=tuple(failures),
            )

            logger.info(
                "outstanding_dues_computed",
                extra={
                    "client_count": len(clients),
                    "debtor_count": len(entries),
                    "failed_count": len(failures),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _statement_for(
        self,
        store: BillingStore,
        client: ClientInfo,
        period: BillingPeriod,
    ) -> tuple[AggregatedBillingStatement, CollectedLineItems]:
        items = LineItemCollector(store, self._settings).collect(client, period)
        hourly_rate, tax_rate = client.resolve_rates(
            self._settings.standard_hourly_rate,
            self._settings.default_tax_rate,
        )
        statement = aggregate_statement(
            items,
            hourly_rate=hourly_rate,
            tax_rate=tax_rate,
            client_id=client.id,
            period_label=period.label,
        )
        return statement, items

    def _classify(self, items: CollectedLineItems) -> Modality:
        return classify(
            items,
            stage_keywords=self._settings.stage_keywords,
            one_time_keywords=self._settings.one_time_keywords,
            hourly_keywords=self._settings.hourly_keywords,
        )

    def _group_role(
        self,
        store: BillingStore,
        client_id: UUID,
    ) -> tuple[CompanyGroupInfo | None, bool]:
        group = store.get_group_for_principal(client_id)
        if group is not None:
            return group, True
        return store.get_group_for_member(client_id), False

    def _report(
        self,
        store: BillingStore,
        client: ClientInfo,
        period: BillingPeriod,
        group: CompanyGroupInfo | None,
        is_principal: bool,
    ) -> ClientStatementReport:
        with LogContext.bind(client_id=client.id, period_label=period.label):
            statement, items = self._statement_for(store, client, period)

            approval_status = None
            if client.approval_required:
                state = store.get_approval_state(client.id, period.label)
                approval_status = state.status if state is not None else ApprovalStatus.PENDING

            return ClientStatementReport(
                client=client,
                period=period,
                statement=statement,
                modality=self._classify(items),
                approval_required=client.approval_required,
                approval_status=approval_status,
                group_id=group.id if group is not None else None,
                group_name=group.name if group is not None else None,
                is_group_principal=is_principal,
                case_minutes=group_minutes_by_case(items.time_entries),
            )

    def _roster_entry(
        self,
        client: ClientInfo,
        period: BillingPeriod,
        group: CompanyGroupInfo | None,
        is_principal: bool,
    ) -> ClientStatementReport:
        with self._store_factory() as store:
            return self._report(store, client, period, group, is_principal)

    def _member_statement(
        self,
        member: ClientInfo,
        period: BillingPeriod,
    ) -> AggregatedBillingStatement:
        with LogContext.bind(client_id=member.id):
            with self._store_factory() as store:
                statement, _ = self._statement_for(store, member, period)
                return statement

    def _dues_statements(
        self,
        client: ClientInfo,
        previous: BillingPeriod,
        current: BillingPeriod,
    ) -> tuple[AggregatedBillingStatement, AggregatedBillingStatement]:
        with LogContext.bind(client_id=client.id):
            with self._store_factory() as store:
                prev_statement, _ = self._statement_for(store, client, previous)
                cur_statement, _ = self._statement_for(store, client, current)
                return prev_statement, cur_statement

    def _fan_out(self, tasks: dict[K, Callable[[], R]]) -> dict[K, R | BillingKernelError]:
        """Run tasks concurrently; a BillingKernelError becomes that task's result."""
        if not tasks:
            return {}

        results: dict[K, R | BillingKernelError] = {}
        workers = min(self._settings.max_workers, len(tasks))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="billing") as pool:
            futures = {
                pool.submit(contextvars.copy_context().run, task): key
                for key, task in tasks.items()
            }
            for future in as_completed(futures):
                key = futures[future]
                try:
                    results[key] = future.result()
                except BillingKernelError as exc:
                    logger.warning(
                        "client_statement_failed",
                        extra={"failed_client_id": str(key), "error_code": exc.code},
                        exc_info=True,
                    )
                    results[key] = exc
        return results
