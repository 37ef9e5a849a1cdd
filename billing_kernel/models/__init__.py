"""SQLAlchemy models for the billing kernel."""

from billing_kernel.models.approval import ApprovalStateModel
from billing_kernel.models.client import CaseRecord, Client
from billing_kernel.models.company_group import CompanyGroup, CompanyGroupMember
from billing_kernel.models.line_items import (
    Expense,
    InstallmentRequest,
    ServiceCharge,
    TimeEntry,
)

__all__ = [
    "Client",
    "CaseRecord",
    "CompanyGroup",
    "CompanyGroupMember",
    "TimeEntry",
    "Expense",
    "ServiceCharge",
    "InstallmentRequest",
    "ApprovalStateModel",
]
