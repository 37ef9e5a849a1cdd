"""Kernel write services."""

from billing_kernel.services.approval_service import ApprovalService, ApprovalSummary
from billing_kernel.services.base import BaseService
from billing_kernel.services.group_service import GroupService

__all__ = ["ApprovalService", "ApprovalSummary", "BaseService", "GroupService"]
