"""
Period approval domain types (``billing_kernel.domain.approval``).

Responsibility
--------------
The per (client, period) approval lifecycle: statuses, the transition
table, and the admin override path.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``APPROVAL_TRANSITIONS`` defines the only valid client-driven status
  transitions.  APPROVED has no outgoing edges.
* ``FORCE_APPROVAL_SOURCES`` lists the states an administrator may
  force to APPROVED.
* A client with no stored state is PENDING.
"""

from __future__ import annotations

from enum import Enum


class ApprovalStatus(str, Enum):
    """Approval lifecycle states for one client and period."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
    }),
    # Resubmission puts a rejected period back up for review
    ApprovalStatus.REJECTED: frozenset({
        ApprovalStatus.PENDING,
    }),
    ApprovalStatus.APPROVED: frozenset(),
}

FORCE_APPROVAL_SOURCES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.PENDING,
    ApprovalStatus.REJECTED,
})

DEFAULT_APPROVAL_STATUS = ApprovalStatus.PENDING


def is_valid_transition(
    from_status: ApprovalStatus,
    to_status: ApprovalStatus,
) -> bool:
    """Return True if the client-driven transition is allowed."""
    return to_status in APPROVAL_TRANSITIONS.get(from_status, frozenset())


def parse_status(value: str | None) -> ApprovalStatus:
    """Map a stored status string onto ApprovalStatus; unknown or empty is PENDING."""
    if not value:
        return DEFAULT_APPROVAL_STATUS
    try:
        return ApprovalStatus(value.strip().lower())
    except ValueError:
        return DEFAULT_APPROVAL_STATUS
