"""
ApprovalService -- per-period client approval ("visto bueno") of hours.

Responsibility:
    Owns every write to ``approval_states``: client approval, rejection
    with a reason, resubmission of a rejected period, and the admin
    force-approve override.  Also summarizes a period for the admin view.

Architecture position:
    Kernel > Services -- imperative shell.  Statement computation only
    *reads* approval state; it never calls this service.

Invariants enforced:
    - Client-driven transitions follow ``APPROVAL_TRANSITIONS``.
    - Force-approve is only allowed from ``FORCE_APPROVAL_SOURCES``.
    - A missing row is PENDING; the first write creates the row.
    - Approving clears any rejection reason and evidence.
    - Timestamps come from the injected Clock.

Failure modes:
    - ClientNotFoundError: unknown client.
    - InvalidApprovalTransitionError: transition not allowed.
    - ApprovalReasonRequiredError: blank rejection reason.
    - ValueError: malformed period label.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from billing_kernel.domain.approval import (
    DEFAULT_APPROVAL_STATUS,
    FORCE_APPROVAL_SOURCES,
    ApprovalStatus,
    is_valid_transition,
    parse_status,
)
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.records import ApprovalStateInfo, ClientInfo
from billing_kernel.exceptions import (
    ApprovalReasonRequiredError,
    InvalidApprovalTransitionError,
)
from billing_kernel.logging_config import get_logger
from billing_kernel.models.approval import ApprovalStateModel
from billing_kernel.models.client import Client
from billing_kernel.selectors.billing_selector import BillingSelector, approval_to_info
from billing_kernel.services.base import BaseService

logger = get_logger("services.approval")

_PERIOD_LABEL = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@dataclass(frozen=True)
class ApprovalSummary:
    """Clients requiring approval for one period, bucketed by status."""

    period_label: str
    approved: tuple[ApprovalStateInfo, ...] = field(default_factory=tuple)
    rejected: tuple[ApprovalStateInfo, ...] = field(default_factory=tuple)
    pending: tuple[ApprovalStateInfo, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return len(self.approved) + len(self.rejected) + len(self.pending)


class ApprovalService(BaseService):
    """Transitions approval state for (client, period) pairs."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_state(self, client_id: UUID, period_label: str) -> ApprovalStateInfo:
        """Current state; a client with no row reads as PENDING."""
        _check_label(period_label)
        row = self._find(client_id, period_label)
        if row is None:
            return ApprovalStateInfo(client_id=client_id, period_label=period_label)
        return approval_to_info(row)

    def summarize_period(self, period_label: str) -> ApprovalSummary:
        """Bucket every approval-required client for the period by status."""
        _check_label(period_label)
        clients = self.session.scalars(
            select(Client)
            .where(Client.approval_required.is_(True))
            .order_by(Client.name)
        ).all()
        rows = {
            row.client_id: row
            for row in self.session.scalars(
                select(ApprovalStateModel).where(
                    ApprovalStateModel.period_label == period_label
                )
            ).all()
        }

        buckets: dict[ApprovalStatus, list[ApprovalStateInfo]] = {
            status: [] for status in ApprovalStatus
        }
        for client in clients:
            row = rows.get(client.id)
            info = (
                approval_to_info(row)
                if row is not None
                else ApprovalStateInfo(client_id=client.id, period_label=period_label)
            )
            buckets[info.status].append(info)

        return ApprovalSummary(
            period_label=period_label,
            approved=tuple(buckets[ApprovalStatus.APPROVED]),
            rejected=tuple(buckets[ApprovalStatus.REJECTED]),
            pending=tuple(buckets[ApprovalStatus.PENDING]),
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def approve(self, client_id: UUID, period_label: str) -> ApprovalStateInfo:
        """Client approves the period's hours."""
        row, _ = self._load_for_transition(client_id, period_label, ApprovalStatus.APPROVED)
        self._mark_approved(row)
        self.session.flush()
        logger.info(
            "approval_approved",
            extra={"client_id": str(client_id), "period_label": period_label},
        )
        return approval_to_info(row)

    def reject(
        self,
        client_id: UUID,
        period_label: str,
        reason: str,
        evidence_path: str | None = None,
    ) -> ApprovalStateInfo:
        """Client rejects the period's hours, stating why."""
        if not reason or not reason.strip():
            raise ApprovalReasonRequiredError(str(client_id), period_label)
        row, _ = self._load_for_transition(client_id, period_label, ApprovalStatus.REJECTED)
        row.status = ApprovalStatus.REJECTED.value
        row.rejection_reason = reason.strip()
        row.evidence_path = evidence_path
        row.rejected_at = self._clock.now()
        row.approved_at = None
        self.session.flush()
        logger.info(
            "approval_rejected",
            extra={
                "client_id": str(client_id),
                "period_label": period_label,
                "has_evidence": evidence_path is not None,
            },
        )
        return approval_to_info(row)

    def resubmit(self, client_id: UUID, period_label: str) -> ApprovalStateInfo:
        """Put a rejected period back up for review.  The rejection reason is kept."""
        row, _ = self._load_for_transition(client_id, period_label, ApprovalStatus.PENDING)
        row.status = ApprovalStatus.PENDING.value
        self.session.flush()
        logger.info(
            "approval_resubmitted",
            extra={"client_id": str(client_id), "period_label": period_label},
        )
        return approval_to_info(row)

    def force_approve(
        self,
        client_id: UUID,
        period_label: str,
        actor_id: str | None = None,
    ) -> ApprovalStateInfo:
        """Admin override: approve a pending or rejected period."""
        row, current = self._load_for_transition(
            client_id,
            period_label,
            ApprovalStatus.APPROVED,
            allowed_from=FORCE_APPROVAL_SOURCES,
        )
        self._mark_approved(row)
        self.session.flush()
        logger.warning(
            "approval_force_approved",
            extra={
                "client_id": str(client_id),
                "period_label": period_label,
                "from_status": current.value,
                "forced_by": actor_id,
            },
        )
        return approval_to_info(row)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _mark_approved(self, row: ApprovalStateModel) -> None:
        row.status = ApprovalStatus.APPROVED.value
        row.approved_at = self._clock.now()
        row.rejection_reason = None
        row.evidence_path = None
        row.rejected_at = None

    def _load_for_transition(
        self,
        client_id: UUID,
        period_label: str,
        to_status: ApprovalStatus,
        allowed_from: frozenset[ApprovalStatus] | None = None,
    ) -> tuple[ApprovalStateModel, ApprovalStatus]:
        """
        Return the row to update and its current status.

        A missing row reads as pending; it is only added to the session once
        the transition has been accepted.
        """
        self._require_client(client_id)
        _check_label(period_label)
        row = self._find(client_id, period_label)
        current = parse_status(row.status) if row is not None else DEFAULT_APPROVAL_STATUS
        if allowed_from is not None:
            allowed = current in allowed_from
        else:
            allowed = is_valid_transition(current, to_status)
        if not allowed:
            raise InvalidApprovalTransitionError(
                str(client_id), period_label, current.value, to_status.value
            )
        if row is None:
            row = self._new_row(client_id, period_label)
        return row, current

    def _find(self, client_id: UUID, period_label: str) -> ApprovalStateModel | None:
        return self.session.scalars(
            select(ApprovalStateModel).where(
                ApprovalStateModel.client_id == client_id,
                ApprovalStateModel.period_label == period_label,
            )
        ).first()

    def _new_row(self, client_id: UUID, period_label: str) -> ApprovalStateModel:
        row = ApprovalStateModel(
            client_id=client_id,
            period_label=period_label,
            status=ApprovalStatus.PENDING.value,
        )
        self.session.add(row)
        return row

    def _require_client(self, client_id: UUID) -> ClientInfo:
        return BillingSelector(self.session).get_client(client_id)


def _check_label(period_label: str) -> None:
    if not isinstance(period_label, str) or not _PERIOD_LABEL.match(period_label):
        raise ValueError(f"Invalid period label: {period_label!r} (expected YYYY-MM)")
