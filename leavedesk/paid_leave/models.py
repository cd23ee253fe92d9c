"""Paid leave ORM model: PaidLeave."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leavedesk.common.constants import PaidLeaveType
from leavedesk.database import Base
from leavedesk.employees.models import Employee


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaidLeave(Base):
    """Days granted to an employee outside the regular entitlement."""

    __tablename__ = "paid_leaves"
    __table_args__ = (
        sa.CheckConstraint("days > 0", name="ck_paid_leaves_days_positive"),
        sa.Index("ix_paid_leaves_employee_id", "employee_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    granted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id", ondelete="SET NULL")
    )
    type: Mapped[PaidLeaveType] = mapped_column(
        sa.Enum(PaidLeaveType, name="paid_leave_type"),
        nullable=False,
        default=PaidLeaveType.bonus,
        server_default=PaidLeaveType.bonus.value,
    )
    days: Mapped[Decimal] = mapped_column(sa.Numeric(4, 1), nullable=False)
    reason: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    # Recorded only; nothing deducts these days later
    deduct_from_balance: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.false()
    )
    granted_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=sa.func.now(),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=sa.func.now(),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(foreign_keys=[employee_id])
    granter: Mapped[Optional[Employee]] = relationship(foreign_keys=[granted_by])
