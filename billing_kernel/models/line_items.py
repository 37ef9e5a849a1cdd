"""
Module: billing_kernel.models.line_items
Responsibility: ORM persistence for the four billable categories: time
    entries, expenses, professional service charges and installment requests.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - None at the schema level beyond foreign keys.  Historical rows carry
      free-text durations, NULL amounts and unrecognised status strings;
      the selector normalizes them into domain records.

Audit relevance:
    Expense.final_charge_amount and ServiceCharge.total are already-final
    figures and are never taxed again downstream.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString


class TimeEntry(TrackedBase):
    """
    Hours worked.

    Individuals link through client_id; corporate entries link through
    case_id.  Either column may be NULL on historical rows.
    """

    __tablename__ = "time_entries"

    __table_args__ = (
        Index("idx_time_entry_client_date", "client_id", "entry_date"),
        Index("idx_time_entry_case_date", "case_id", "entry_date"),
    )

    client_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=True,
    )

    case_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("cases.id"),
        nullable=True,
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    # "H:MM", "H:MM:SS" or decimal hours ("2.5")
    duration: Mapped[str | None] = mapped_column(String(32), nullable=True)

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Expense(TrackedBase):
    """A reimbursable expense billed at its final amount."""

    __tablename__ = "expenses"

    __table_args__ = (
        Index("idx_expense_client_date", "client_id", "expense_date"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    expense_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    final_charge_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9),
        nullable=True,
    )

    # paid / pending_current / pending_prior / cancelled
    payment_status: Mapped[str | None] = mapped_column(String(30), nullable=True)


class ServiceCharge(TrackedBase):
    """A fixed-fee professional service.  ``total`` is the billable figure."""

    __tablename__ = "service_charges"

    __table_args__ = (
        Index("idx_service_charge_client_date", "client_id", "charge_date"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    case_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("cases.id"),
        nullable=True,
    )

    charge_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    cost: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    expenses_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    total: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    # pending / paid / cancelled
    payment_status: Mapped[str | None] = mapped_column(String(30), nullable=True)


class InstallmentRequest(TrackedBase):
    """
    A service request with a payment modality.

    Requests tagged with the installment modality ("mensualidad") bill every
    period until cancelled; other tags only feed modality classification.
    """

    __tablename__ = "installment_requests"

    __table_args__ = (
        Index("idx_installment_client", "client_id"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)

    modality_tag: Mapped[str | None] = mapped_column(String(50), nullable=True)

    net_cost: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    amount_includes_tax: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    installment_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    installment_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    total_payable: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    payment_status: Mapped[str | None] = mapped_column(String(30), nullable=True)

    amount_paid: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    balance: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)
