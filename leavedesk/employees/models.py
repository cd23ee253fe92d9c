"""Employee ORM model.

An employee row doubles as the login account and as the holder of the four
leave-balance counters that the ledger reads and writes.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from leavedesk.common.constants import (
    DEFAULT_ANNUAL_BALANCE,
    DEFAULT_EMERGENCY_BALANCE,
    DEFAULT_PERSONAL_BALANCE,
    DEFAULT_SICK_BALANCE,
    UserRole,
)
from leavedesk.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base):
    """Employee account and leave-balance record."""

    __tablename__ = "employees"

    # ── Primary key ─────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Identity ────────────────────────────────────────────────────
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.employee,
        server_default=UserRole.employee.value,
    )

    # ── Leave balances (days, half-day granularity) ─────────────────
    annual_leave_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(4, 1),
        nullable=False,
        default=DEFAULT_ANNUAL_BALANCE,
        server_default=str(DEFAULT_ANNUAL_BALANCE),
    )
    sick_leave_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(4, 1),
        nullable=False,
        default=DEFAULT_SICK_BALANCE,
        server_default=str(DEFAULT_SICK_BALANCE),
    )
    personal_leave_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(4, 1),
        nullable=False,
        default=DEFAULT_PERSONAL_BALANCE,
        server_default=str(DEFAULT_PERSONAL_BALANCE),
    )
    emergency_leave_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(4, 1),
        nullable=False,
        default=DEFAULT_EMERGENCY_BALANCE,
        server_default=str(DEFAULT_EMERGENCY_BALANCE),
    )

    # ── Preferences / Status ────────────────────────────────────────
    email_notifications: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.true(),
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.true(),
    )

    # ── Timestamps ──────────────────────────────────────────────────
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

    __table_args__ = (
        sa.CheckConstraint("annual_leave_balance >= 0", name="ck_employees_annual_non_negative"),
        sa.CheckConstraint("sick_leave_balance >= 0", name="ck_employees_sick_non_negative"),
        sa.CheckConstraint("personal_leave_balance >= 0", name="ck_employees_personal_non_negative"),
        sa.CheckConstraint("emergency_leave_balance >= 0", name="ck_employees_emergency_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Employee {self.email!r} ({self.role.value})>"
