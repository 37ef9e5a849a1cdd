"""
Module: billing_kernel.models.client
Responsibility: ORM persistence for billable clients (individuals and
    corporations) and their case records.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - variant is one of 'individual' / 'corporate' (DB check constraint).
    - hourly_rate and tax_rate are nullable: an unset rate means "use the
      configured default", resolved when a statement is computed.

Audit relevance:
    The billing_active flag decides roster membership; approval_required
    decides whether a period statement is annotated with approval state.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString


class Client(TrackedBase):
    """
    An individual or corporate client of the firm.

    Contract:
        Corporate clients may carry their own hourly_rate and tax_rate;
        individuals bill at the standard rate.  Rates are never validated
        here: tax_rate >= 0 is checked at data entry.
    """

    __tablename__ = "clients"

    __table_args__ = (
        CheckConstraint(
            "variant IN ('individual', 'corporate')",
            name="ck_clients_valid_variant",
        ),
        Index("idx_client_billing_active", "billing_active"),
        Index("idx_client_variant", "variant"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    variant: Mapped[str] = mapped_column(String(20), nullable=False)

    hourly_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9),
        nullable=True,
    )

    tax_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 18),
        nullable=True,
    )

    # Whether the client appears on the monthly payment roster
    billing_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    approval_required: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Admin-only payment note shown next to the roster entry
    internal_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Client {self.name} ({self.variant})>"


class CaseRecord(TrackedBase):
    """A matter handled for a client.  Corporate time entries link through cases."""

    __tablename__ = "cases"

    __table_args__ = (
        Index("idx_case_client", "client_id"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # External court / file number
    file_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<CaseRecord {self.name}>"
