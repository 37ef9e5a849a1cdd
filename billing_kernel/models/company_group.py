"""
Module: billing_kernel.models.company_group
Responsibility: ORM persistence for corporate groups: one principal company
    and any number of member companies whose statements roll up into it.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - A company is the principal of at most one group
      (UNIQUE principal_client_id).
    - A company is a member of at most one group (UNIQUE client_id on
      company_group_members).
    - "Never principal and member at once" spans both tables and is
      enforced by GroupService at registration time.

Failure modes:
    - IntegrityError on a second group for the same principal or a second
      membership for the same company.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import TrackedBase, UUIDString


class CompanyGroup(TrackedBase):
    """A principal company and its affiliated members."""

    __tablename__ = "company_groups"

    __table_args__ = (
        UniqueConstraint("principal_client_id", name="uq_group_principal"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    principal_client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    members: Mapped[list["CompanyGroupMember"]] = relationship(
        "CompanyGroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def member_ids(self) -> tuple[UUID, ...]:
        return tuple(m.client_id for m in self.members)

    def __repr__(self) -> str:
        return f"<CompanyGroup {self.name} principal={self.principal_client_id}>"


class CompanyGroupMember(TrackedBase):
    """Membership of one company in one group."""

    __tablename__ = "company_group_members"

    __table_args__ = (
        UniqueConstraint("client_id", name="uq_group_member_client"),
    )

    group_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("company_groups.id", ondelete="CASCADE"),
        nullable=False,
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    group: Mapped[CompanyGroup] = relationship(
        "CompanyGroup",
        back_populates="members",
    )
