"""
Module: billing_kernel.selectors.billing_selector
Responsibility: The read interface the billing engine consumes: clients,
    cases, the four line-item categories, group registrations and approval
    state, each returned as frozen domain records.
Architecture position: Kernel > Selectors.  Imports models/ and domain/.

Invariants enforced:
    - Row normalization happens here, once: NULL amounts become 0, unknown
      payment statuses become the pending member, and every such repair is
      logged at WARNING.  Engines never see a loosely-typed row.
    - Any SQLAlchemyError is re-raised as DataAccessError scoped to the
      client being read, chained with ``from``.

Failure modes:
    - ClientNotFoundError from get_client() when the ID doesn't exist.
    - DataAccessError when the database cannot answer.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from billing_kernel.db.types import ZERO, to_decimal
from billing_kernel.domain.approval import parse_status
from billing_kernel.domain.records import (
    ApprovalStateInfo,
    CaseInfo,
    ClientInfo,
    ClientVariant,
    CompanyGroupInfo,
    ExpenseRecord,
    ExpenseStatus,
    InstallmentRecord,
    ServiceChargeRecord,
    ServiceChargeStatus,
    TimeEntryRecord,
)
from billing_kernel.exceptions import ClientNotFoundError, DataAccessError
from billing_kernel.logging_config import get_logger
from billing_kernel.models.approval import ApprovalStateModel
from billing_kernel.models.client import CaseRecord, Client
from billing_kernel.models.company_group import CompanyGroup, CompanyGroupMember
from billing_kernel.models.line_items import (
    Expense,
    InstallmentRequest,
    ServiceCharge,
    TimeEntry,
)
from billing_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.billing")


class BillingSelector(BaseSelector):
    """Read-only queries backing statement computation."""

    @contextmanager
    def _reading(self, operation: str, client_id: UUID | None = None) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.warning(
                "data_access_failed",
                extra={
                    "operation": operation,
                    "client_id": str(client_id) if client_id else None,
                },
                exc_info=True,
            )
            raise DataAccessError(
                str(client_id) if client_id else None, operation, str(exc)
            ) from exc

    # ------------------------------------------------------------------
    # Clients and cases
    # ------------------------------------------------------------------

    def get_client(self, client_id: UUID) -> ClientInfo:
        with self._reading("get_client", client_id):
            client = self.session.get(Client, client_id)
        if client is None:
            raise ClientNotFoundError(str(client_id))
        return _client_to_info(client)

    def list_clients(self, active_only: bool = False) -> list[ClientInfo]:
        stmt = select(Client).order_by(Client.name)
        if active_only:
            stmt = stmt.where(Client.billing_active.is_(True))
        with self._reading("list_clients"):
            rows = self.session.scalars(stmt).all()
        return [_client_to_info(row) for row in rows]

    def get_cases_for_client(self, client_id: UUID) -> list[CaseInfo]:
        stmt = (
            select(CaseRecord)
            .where(CaseRecord.client_id == client_id)
            .order_by(CaseRecord.name)
        )
        with self._reading("get_cases_for_client", client_id):
            rows = self.session.scalars(stmt).all()
        return [
            CaseInfo(
                id=row.id,
                client_id=row.client_id,
                name=row.name,
                file_number=row.file_number,
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    def get_time_entries(
        self,
        start_date: date,
        end_date: date,
        *,
        client_id: UUID | None = None,
        case_ids: Sequence[UUID] | None = None,
    ) -> list[TimeEntryRecord]:
        """
        Time entries in [start_date, end_date], by direct client linkage or
        by case linkage.  Exactly one of ``client_id`` / ``case_ids`` is given.
        """
        if (client_id is None) == (case_ids is None):
            raise ValueError("get_time_entries needs exactly one of client_id or case_ids")
        if case_ids is not None and not case_ids:
            return []

        stmt = select(TimeEntry).where(
            TimeEntry.entry_date >= start_date,
            TimeEntry.entry_date <= end_date,
        )
        if client_id is not None:
            stmt = stmt.where(TimeEntry.client_id == client_id)
        else:
            stmt = stmt.where(TimeEntry.case_id.in_(list(case_ids)))
        stmt = stmt.order_by(TimeEntry.entry_date, TimeEntry.id)

        with self._reading("get_time_entries", client_id):
            rows = self.session.scalars(stmt).all()
        return [
            TimeEntryRecord(
                id=row.id,
                entry_date=row.entry_date,
                duration=row.duration,
                client_id=row.client_id,
                case_id=row.case_id,
                title=row.title,
                description=row.description,
            )
            for row in rows
        ]

    def get_expenses(
        self,
        client_id: UUID,
        start_date: date,
        end_date: date,
    ) -> list[ExpenseRecord]:
        stmt = (
            select(Expense)
            .where(
                Expense.client_id == client_id,
                Expense.expense_date >= start_date,
                Expense.expense_date <= end_date,
            )
            .order_by(Expense.expense_date, Expense.id)
        )
        with self._reading("get_expenses", client_id):
            rows = self.session.scalars(stmt).all()
        return [_expense_to_record(row) for row in rows]

    def get_service_charges(
        self,
        client_id: UUID,
        start_date: date,
        end_date: date,
        exclude_cancelled: bool = True,
    ) -> list[ServiceChargeRecord]:
        stmt = (
            select(ServiceCharge)
            .where(
                ServiceCharge.client_id == client_id,
                ServiceCharge.charge_date >= start_date,
                ServiceCharge.charge_date <= end_date,
            )
            .order_by(ServiceCharge.charge_date, ServiceCharge.id)
        )
        with self._reading("get_service_charges", client_id):
            rows = self.session.scalars(stmt).all()
        records = [_service_charge_to_record(row) for row in rows]
        if exclude_cancelled:
            # Filtered after normalization so unknown statuses are kept
            records = [r for r in records if not r.is_cancelled]
        return records

    def get_installment_requests(self, client_id: UUID) -> list[InstallmentRecord]:
        """Every request of the client, any modality and status."""
        stmt = (
            select(InstallmentRequest)
            .where(InstallmentRequest.client_id == client_id)
            .order_by(InstallmentRequest.created_at, InstallmentRequest.id)
        )
        with self._reading("get_installment_requests", client_id):
            rows = self.session.scalars(stmt).all()
        return [_installment_to_record(row) for row in rows]

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def get_group_for_principal(self, client_id: UUID) -> CompanyGroupInfo | None:
        stmt = select(CompanyGroup).where(CompanyGroup.principal_client_id == client_id)
        with self._reading("get_group_for_principal", client_id):
            group = self.session.scalars(stmt).first()
            return _group_to_info(group) if group is not None else None

    def get_group_for_member(self, client_id: UUID) -> CompanyGroupInfo | None:
        stmt = (
            select(CompanyGroup)
            .join(CompanyGroupMember, CompanyGroupMember.group_id == CompanyGroup.id)
            .where(CompanyGroupMember.client_id == client_id)
        )
        with self._reading("get_group_for_member", client_id):
            group = self.session.scalars(stmt).first()
            return _group_to_info(group) if group is not None else None

    def get_group(self, group_id: UUID) -> CompanyGroupInfo | None:
        with self._reading("get_group"):
            group = self.session.get(CompanyGroup, group_id)
            return _group_to_info(group) if group is not None else None

    def get_group_members(self, group_id: UUID) -> list[ClientInfo]:
        """
        Member companies of a group.  A membership pointing at a missing
        company row is skipped with a WARNING.
        """
        stmt = (
            select(CompanyGroupMember.client_id, Client)
            .outerjoin(Client, Client.id == CompanyGroupMember.client_id)
            .where(CompanyGroupMember.group_id == group_id)
            .order_by(CompanyGroupMember.created_at, CompanyGroupMember.client_id)
        )
        with self._reading("get_group_members"):
            rows = self.session.execute(stmt).all()

        members: list[ClientInfo] = []
        for member_id, client in rows:
            if client is None:
                logger.warning(
                    "group_member_missing",
                    extra={"group_id": str(group_id), "member_id": str(member_id)},
                )
                continue
            members.append(_client_to_info(client))
        return members

    def list_groups(self) -> list[CompanyGroupInfo]:
        with self._reading("list_groups"):
            groups = self.session.scalars(
                select(CompanyGroup).order_by(CompanyGroup.name)
            ).all()
            return [_group_to_info(g) for g in groups]

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    def get_approval_state(
        self,
        client_id: UUID,
        period_label: str,
    ) -> ApprovalStateInfo | None:
        stmt = select(ApprovalStateModel).where(
            ApprovalStateModel.client_id == client_id,
            ApprovalStateModel.period_label == period_label,
        )
        with self._reading("get_approval_state", client_id):
            row = self.session.scalars(stmt).first()
        if row is None:
            return None
        return approval_to_info(row)


# ----------------------------------------------------------------------
# Row -> record conversion
# ----------------------------------------------------------------------


def _client_to_info(client: Client) -> ClientInfo:
    try:
        variant = ClientVariant(client.variant)
    except ValueError:
        logger.warning(
            "client_variant_unrecognised",
            extra={"client_id": str(client.id), "variant": client.variant},
        )
        variant = ClientVariant.INDIVIDUAL
    return ClientInfo(
        id=client.id,
        name=client.name,
        variant=variant,
        tax_id=client.tax_id,
        hourly_rate=client.hourly_rate,
        tax_rate=client.tax_rate,
        billing_active=bool(client.billing_active),
        approval_required=bool(client.approval_required),
        internal_note=client.internal_note,
    )


def _billed_amount(value, record: str, record_id: UUID, field_name: str) -> Decimal:
    """Coerce the amount a line item bills; NULL or garbage bills 0 with a WARNING."""
    amount = to_decimal(value, default=None)
    if amount is None:
        logger.warning(
            "line_item_amount_missing",
            extra={"record": record, "record_id": str(record_id), "field": field_name},
        )
        return ZERO
    return amount


def _expense_to_record(row: Expense) -> ExpenseRecord:
    status = ExpenseStatus.parse(row.payment_status)
    if status is None:
        logger.warning(
            "expense_status_unrecognised",
            extra={"record_id": str(row.id), "payment_status": row.payment_status},
        )
        status = ExpenseStatus.PENDING_CURRENT
    return ExpenseRecord(
        id=row.id,
        client_id=row.client_id,
        expense_date=row.expense_date,
        final_charge_amount=_billed_amount(
            row.final_charge_amount, "expense", row.id, "final_charge_amount"
        ),
        payment_status=status,
        description=row.description,
    )


def _service_charge_to_record(row: ServiceCharge) -> ServiceChargeRecord:
    status = ServiceChargeStatus.parse(row.payment_status)
    if status is None:
        logger.warning(
            "service_charge_status_unrecognised",
            extra={"record_id": str(row.id), "payment_status": row.payment_status},
        )
        status = ServiceChargeStatus.PENDING
    return ServiceChargeRecord(
        id=row.id,
        client_id=row.client_id,
        charge_date=row.charge_date,
        total=_billed_amount(row.total, "service_charge", row.id, "total"),
        payment_status=status,
        case_id=row.case_id,
        description=row.description,
        cost=to_decimal(row.cost),
        expenses_amount=to_decimal(row.expenses_amount),
        tax_amount=to_decimal(row.tax_amount),
    )


def _installment_to_record(row: InstallmentRequest) -> InstallmentRecord:
    return InstallmentRecord(
        id=row.id,
        client_id=row.client_id,
        modality_tag=row.modality_tag,
        installment_amount=to_decimal(row.installment_amount),
        amount_includes_tax=bool(row.amount_includes_tax),
        title=row.title,
        net_cost=to_decimal(row.net_cost),
        tax_amount=to_decimal(row.tax_amount),
        installment_count=row.installment_count,
        total_payable=to_decimal(row.total_payable),
        payment_status=row.payment_status,
        amount_paid=to_decimal(row.amount_paid),
        balance=to_decimal(row.balance),
    )


def _group_to_info(group: CompanyGroup) -> CompanyGroupInfo:
    return CompanyGroupInfo(
        id=group.id,
        name=group.name,
        principal_client_id=group.principal_client_id,
        member_ids=group.member_ids,
    )


def approval_to_info(row: ApprovalStateModel) -> ApprovalStateInfo:
    """Convert an approval row.  Shared with ApprovalService."""
    return ApprovalStateInfo(
        client_id=row.client_id,
        period_label=row.period_label,
        status=parse_status(row.status),
        rejection_reason=row.rejection_reason,
        evidence_path=row.evidence_path,
        approved_at=row.approved_at,
        rejected_at=row.rejected_at,
    )
