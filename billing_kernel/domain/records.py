"""
Records -- Pure domain data transfer objects for billing.

Responsibility:
    Defines the immutable records that cross the collector boundary: the
    client and case descriptors, the four billable line-item categories,
    group registrations and approval state.  Engines accept and return
    these records, never ORM entities.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Produced by ``billing_kernel.selectors.billing_selector`` from ORM rows.

Invariants enforced:
    - Monetary fields are always ``Decimal`` (NULL columns arrive as 0).
    - Payment statuses are always enum members; unrecognised stored values
      are mapped onto the pending member by the selector, so unknown data
      still bills.
    - ``ClientInfo`` keeps NULL rates as ``None``; ``resolve_rates()`` is the
      only place a default rate is substituted.

Failure modes:
    None.  Degraded data is normalized before a record is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from billing_kernel.domain.approval import ApprovalStatus

ZERO = Decimal("0")


class ClientVariant(str, Enum):
    """Individual persons bill directly; corporations bill through cases."""

    INDIVIDUAL = "individual"
    CORPORATE = "corporate"


class ExpenseStatus(str, Enum):
    """
    Payment status of an expense.

    Contract:
        CANCELLED expenses never contribute to a statement.
    """

    PAID = "paid"
    PENDING_CURRENT = "pending_current"
    PENDING_PRIOR = "pending_prior"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: str | None) -> ExpenseStatus | None:
        """Return the matching member, or None when the value is not recognised."""
        if value is None:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ServiceChargeStatus(str, Enum):
    """Payment status of a professional service charge."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: str | None) -> ServiceChargeStatus | None:
        """Return the matching member, or None when the value is not recognised."""
        if value is None:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Client and case descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClientInfo:
    """
    Billing-relevant view of a client.

    ``hourly_rate`` and ``tax_rate`` are None when unset on the record.
    """

    id: UUID
    name: str
    variant: ClientVariant
    tax_id: str | None = None
    hourly_rate: Decimal | None = None
    tax_rate: Decimal | None = None
    billing_active: bool = False
    approval_required: bool = False
    internal_note: str | None = None

    @property
    def is_corporate(self) -> bool:
        return self.variant == ClientVariant.CORPORATE

    def resolve_rates(
        self,
        default_hourly_rate: Decimal,
        default_tax_rate: Decimal,
    ) -> tuple[Decimal, Decimal]:
        """
        Return (hourly_rate, tax_rate) with defaults substituted.

        Only corporate clients carry their own hourly rate; individuals
        always bill at the default.  A NULL/negative tax rate falls back to
        the default.  A stored tax rate of 0 is honored (tax-exempt client).
        """
        if self.is_corporate and self.hourly_rate is not None:
            hourly = self.hourly_rate
        else:
            hourly = default_hourly_rate
        if self.tax_rate is None or self.tax_rate < 0:
            tax = default_tax_rate
        else:
            tax = self.tax_rate
        return hourly, tax


@dataclass(frozen=True)
class CaseInfo:
    """A matter owned by a client."""

    id: UUID
    client_id: UUID
    name: str
    file_number: str | None = None


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeEntryRecord:
    """Hours worked.  ``duration`` is kept as free text for the normalizer."""

    id: UUID
    entry_date: date
    duration: str | None
    client_id: UUID | None = None
    case_id: UUID | None = None
    title: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ExpenseRecord:
    """An expense billed at its final amount, never taxed again."""

    id: UUID
    client_id: UUID
    expense_date: date
    final_charge_amount: Decimal = ZERO
    payment_status: ExpenseStatus = ExpenseStatus.PENDING_CURRENT
    description: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.payment_status == ExpenseStatus.CANCELLED


@dataclass(frozen=True)
class ServiceChargeRecord:
    """A fixed-fee service.  ``total`` is the already-final billable amount."""

    id: UUID
    client_id: UUID
    charge_date: date
    total: Decimal = ZERO
    payment_status: ServiceChargeStatus = ServiceChargeStatus.PENDING
    case_id: UUID | None = None
    description: str | None = None
    cost: Decimal = ZERO
    expenses_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO

    @property
    def is_cancelled(self) -> bool:
        return self.payment_status == ServiceChargeStatus.CANCELLED


@dataclass(frozen=True)
class InstallmentRecord:
    """
    A service request carrying a payment modality tag.

    Only requests tagged with the installment modality are billed every
    period; the rest are read for modality classification.
    """

    id: UUID
    client_id: UUID
    modality_tag: str | None
    installment_amount: Decimal = ZERO
    amount_includes_tax: bool = False
    title: str | None = None
    net_cost: Decimal = ZERO
    tax_amount: Decimal = ZERO
    installment_count: int | None = None
    total_payable: Decimal = ZERO
    payment_status: str | None = None
    amount_paid: Decimal = ZERO
    balance: Decimal = ZERO

    @property
    def is_cancelled(self) -> bool:
        return (self.payment_status or "").strip().lower() == "cancelled"


# ---------------------------------------------------------------------------
# Groups and approvals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompanyGroupInfo:
    """A registered group: one principal and its member companies."""

    id: UUID
    name: str
    principal_client_id: UUID
    member_ids: tuple[UUID, ...] = field(default_factory=tuple)

    def role_of(self, client_id: UUID) -> str | None:
        if client_id == self.principal_client_id:
            return "principal"
        if client_id in self.member_ids:
            return "member"
        return None


@dataclass(frozen=True)
class ApprovalStateInfo:
    """Approval state for one client and period.  Absent rows read as PENDING."""

    client_id: UUID
    period_label: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    rejection_reason: str | None = None
    evidence_path: str | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
