"""
Module: billing_kernel.db.base
Responsibility: Declarative base for the billing tables: string-stored UUID
    primary keys, the column type map, and audit timestamps.
Architecture position: Kernel > DB.  Every model imports from here; this
    module imports nothing from the rest of the kernel.

Invariants enforced:
    - Every row has a uuid4 primary key stored as String(36), so the same
      schema runs on PostgreSQL and on the SQLite test database.
    - A bare ``Mapped[Decimal]`` column is Numeric(38, 9).  Rates declare
      their own wider scale.
    - Every table carries created_at / updated_at.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID stored as its 36-character string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        # String IDs are accepted as well
        return str(value if isinstance(value, PyUUID) else PyUUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return PyUUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class TrackedBase(Base):
    """
    Abstract base with audit timestamps.

    created_at is set by the database on INSERT; updated_at also moves on
    every UPDATE.  Ordering by created_at alone is not stable on SQLite
    (one-second resolution), so queries add ``id`` as a tie-breaker.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


UUID = PyUUID
