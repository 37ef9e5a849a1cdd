"""
GroupService -- registration of corporate company groups.

Responsibility:
    Creates and edits groups: one principal company plus affiliated member
    companies whose statements roll up into the principal's.

Architecture position:
    Kernel > Services -- imperative shell.  The roll-up computation trusts
    this registry and never re-checks roles.

Invariants enforced:
    - Principal and members exist and are corporate clients.
    - A company is the principal of at most one group, a member of at most
      one group, and never both.
    - A company is never a member of the group it leads.
    The UNIQUE constraints on ``company_groups.principal_client_id`` and
    ``company_group_members.client_id`` back the single-role rules.

Failure modes:
    - ClientNotFoundError: unknown principal or member.
    - GroupNotFoundError: unknown group.
    - GroupRoleConflictError: the company cannot take the requested role.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select

from billing_kernel.domain.records import ClientInfo, CompanyGroupInfo
from billing_kernel.exceptions import GroupNotFoundError, GroupRoleConflictError
from billing_kernel.logging_config import get_logger
from billing_kernel.models.company_group import CompanyGroup, CompanyGroupMember
from billing_kernel.selectors.billing_selector import BillingSelector
from billing_kernel.services.base import BaseService

logger = get_logger("services.group")


class GroupService(BaseService):
    """Maintains the company group registry."""

    def _to_dto(self, group: CompanyGroup) -> CompanyGroupInfo:
        return CompanyGroupInfo(
            id=group.id,
            name=group.name,
            principal_client_id=group.principal_client_id,
            member_ids=group.member_ids,
        )

    def _get_by_id(self, group_id: UUID) -> CompanyGroup:
        group = self.session.get(CompanyGroup, group_id)
        if group is None:
            raise GroupNotFoundError(str(group_id))
        return group

    def _require_corporate(self, client_id: UUID) -> ClientInfo:
        client = BillingSelector(self.session).get_client(client_id)
        if not client.is_corporate:
            raise GroupRoleConflictError(
                str(client_id),
                client.variant.value,
                "only corporate clients can join a group",
            )
        return client

    def _principal_group(self, client_id: UUID) -> CompanyGroup | None:
        return self.session.scalars(
            select(CompanyGroup).where(CompanyGroup.principal_client_id == client_id)
        ).first()

    def _membership(self, client_id: UUID) -> CompanyGroupMember | None:
        return self.session.scalars(
            select(CompanyGroupMember).where(CompanyGroupMember.client_id == client_id)
        ).first()

    def _check_can_join(self, client_id: UUID, principal_id: UUID) -> None:
        if client_id == principal_id:
            raise GroupRoleConflictError(
                str(client_id), "principal", "a principal cannot be its own member"
            )
        if self._principal_group(client_id) is not None:
            raise GroupRoleConflictError(str(client_id), "principal")
        if self._membership(client_id) is not None:
            raise GroupRoleConflictError(str(client_id), "member")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_group(self, group_id: UUID) -> CompanyGroupInfo:
        return self._to_dto(self._get_by_id(group_id))

    def find_group_for_principal(self, client_id: UUID) -> CompanyGroupInfo | None:
        group = self._principal_group(client_id)
        return self._to_dto(group) if group is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_group(
        self,
        name: str,
        principal_id: UUID,
        member_ids: Sequence[UUID] = (),
    ) -> CompanyGroupInfo:
        """Register a new group with its principal and initial members."""
        self._require_corporate(principal_id)
        if self._principal_group(principal_id) is not None:
            raise GroupRoleConflictError(str(principal_id), "principal")
        if self._membership(principal_id) is not None:
            raise GroupRoleConflictError(str(principal_id), "member")

        seen: set[UUID] = set()
        for member_id in member_ids:
            if member_id in seen:
                raise GroupRoleConflictError(
                    str(member_id), "member", "listed twice in the same group"
                )
            seen.add(member_id)
            self._require_corporate(member_id)
            self._check_can_join(member_id, principal_id)

        group = CompanyGroup(name=name, principal_client_id=principal_id)
        group.members = [CompanyGroupMember(client_id=m) for m in member_ids]
        self.session.add(group)
        self.session.flush()

        logger.info(
            "company_group_created",
            extra={
                "group_id": str(group.id),
                "principal_id": str(principal_id),
                "member_count": len(member_ids),
            },
        )
        return self._to_dto(group)

    def add_member(self, group_id: UUID, client_id: UUID) -> CompanyGroupInfo:
        group = self._get_by_id(group_id)
        self._require_corporate(client_id)
        self._check_can_join(client_id, group.principal_client_id)

        group.members.append(CompanyGroupMember(client_id=client_id))
        self.session.flush()
        logger.info(
            "company_group_member_added",
            extra={"group_id": str(group_id), "member_id": str(client_id)},
        )
        return self._to_dto(group)

    def remove_member(self, group_id: UUID, client_id: UUID) -> CompanyGroupInfo:
        group = self._get_by_id(group_id)
        membership = next((m for m in group.members if m.client_id == client_id), None)
        if membership is None:
            raise GroupRoleConflictError(
                str(client_id), "none", f"not a member of group {group_id}"
            )
        group.members.remove(membership)
        self.session.flush()
        logger.info(
            "company_group_member_removed",
            extra={"group_id": str(group_id), "member_id": str(client_id)},
        )
        return self._to_dto(group)

    def delete_group(self, group_id: UUID) -> None:
        group = self._get_by_id(group_id)
        self.session.delete(group)
        self.session.flush()
        logger.info("company_group_deleted", extra={"group_id": str(group_id)})
