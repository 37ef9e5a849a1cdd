"""
Pure domain layer.

Immutable records and domain rules with NO dependencies on the ORM, the
database or I/O.  Time enters only through an injected ``Clock``.
"""

from billing_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    FORCE_APPROVAL_SOURCES,
    ApprovalStatus,
    is_valid_transition,
)
from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
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

__all__ = [
    "APPROVAL_TRANSITIONS",
    "FORCE_APPROVAL_SOURCES",
    "ApprovalStatus",
    "is_valid_transition",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ApprovalStateInfo",
    "CaseInfo",
    "ClientInfo",
    "ClientVariant",
    "CompanyGroupInfo",
    "ExpenseRecord",
    "ExpenseStatus",
    "InstallmentRecord",
    "ServiceChargeRecord",
    "ServiceChargeStatus",
    "TimeEntryRecord",
]
