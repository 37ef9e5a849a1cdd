"""
The read interface statement computation consumes, and its SQL scope.

``BillingStore`` is structural: ``BillingSelector`` satisfies it, and so
can an in-memory store in tests.  ``store_scope`` opens one session per
scope; concurrent tasks each open their own.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import AbstractContextManager, contextmanager
from datetime import date
from typing import Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from billing_kernel.domain.records import (
    ApprovalStateInfo,
    CaseInfo,
    ClientInfo,
    CompanyGroupInfo,
    ExpenseRecord,
    InstallmentRecord,
    ServiceChargeRecord,
    TimeEntryRecord,
)
from billing_kernel.selectors.billing_selector import BillingSelector


class BillingStore(Protocol):
    def get_client(self, client_id: UUID) -> ClientInfo: ...

    def list_clients(self, active_only: bool = False) -> list[ClientInfo]: ...

    def get_cases_for_client(self, client_id: UUID) -> list[CaseInfo]: ...

    def get_time_entries(
        self,
        start_date: date,
        end_date: date,
        *,
        client_id: UUID | None = None,
        case_ids: Sequence[UUID] | None = None,
    ) -> list[TimeEntryRecord]: ...

    def get_expenses(
        self, client_id: UUID, start_date: date, end_date: date
    ) -> list[ExpenseRecord]: ...

    def get_service_charges(
        self,
        client_id: UUID,
        start_date: date,
        end_date: date,
        exclude_cancelled: bool = True,
    ) -> list[ServiceChargeRecord]: ...

    def get_installment_requests(self, client_id: UUID) -> list[InstallmentRecord]: ...

    def get_group_for_principal(self, client_id: UUID) -> CompanyGroupInfo | None: ...

    def get_group_for_member(self, client_id: UUID) -> CompanyGroupInfo | None: ...

    def get_group_members(self, group_id: UUID) -> list[ClientInfo]: ...

    def list_groups(self) -> list[CompanyGroupInfo]: ...

    def get_approval_state(
        self, client_id: UUID, period_label: str
    ) -> ApprovalStateInfo | None: ...


StoreFactory = Callable[[], AbstractContextManager[BillingStore]]


@contextmanager
def store_scope(session_factory: Callable[[], Session]) -> Iterator[BillingSelector]:
    """A selector on a fresh session, closed on exit."""
    session = session_factory()
    try:
        yield BillingSelector(session)
    finally:
        session.close()


def sql_store_factory(session_factory: Callable[[], Session]) -> StoreFactory:
    return lambda: store_scope(session_factory)
