"""
Module: billing_kernel.models.approval
Responsibility: ORM persistence for per-period client approval ("visto bueno")
    of computed hours.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per (client_id, period_label) (UNIQUE constraint).
    - status is one of 'pending' / 'approved' / 'rejected' (check constraint).
    - Transitions are validated by ApprovalService, not here.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString


class ApprovalStateModel(TrackedBase):
    """Approval status of one client for one billing period."""

    __tablename__ = "approval_states"

    __table_args__ = (
        UniqueConstraint("client_id", "period_label", name="uq_approval_client_period"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_approval_states_valid_status",
        ),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    # YYYY-MM
    period_label: Mapped[str] = mapped_column(String(7), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Path of the evidence file uploaded with a rejection
    evidence_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<ApprovalState {self.client_id} {self.period_label}: {self.status}>"
