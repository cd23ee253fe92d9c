"""Paid leave service — grants, listing, per-employee statistics.

A grant with ``deduct_from_balance=False`` credits the employee's annual
balance at grant time. With ``deduct_from_balance=True`` the grant is only
recorded; no code path deducts it later.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavedesk.auth.dependencies import has_role
from leavedesk.common.audit import create_audit_entry, snapshot
from leavedesk.common.constants import LeaveType, UserRole
from leavedesk.common.exceptions import ForbiddenException, NotFoundException
from leavedesk.employees.models import Employee
from leavedesk.employees.service import EmployeeService
from leavedesk.leave.ledger import LeaveBalances, apply_credit, store_balances
from leavedesk.notifications.service import dispatch_safely, notify_paid_leave_granted
from leavedesk.paid_leave.models import PaidLeave
from leavedesk.paid_leave.schemas import (
    PaidLeaveCreate,
    PaidLeaveStats,
    PaidLeaveTypeBreakdown,
    PaidLeaveUpdate,
)

logger = logging.getLogger(__name__)


_AUDITED_FIELDS = ("employee_id", "type", "days", "reason", "notes", "deduct_from_balance")


def _audit_values(grant: PaidLeave) -> dict[str, Any]:
    return snapshot(grant, _AUDITED_FIELDS)


def _base_query():
    return (
        select(PaidLeave)
        .options(
            selectinload(PaidLeave.employee),
            selectinload(PaidLeave.granter),
        )
        .order_by(PaidLeave.granted_at.desc())
    )


# ═════════════════════════════════════════════════════════════════════
# PaidLeaveService
# ═════════════════════════════════════════════════════════════════════


class PaidLeaveService:
    """Async paid-leave grant operations."""

    @staticmethod
    async def grant(
        db: AsyncSession,
        data: PaidLeaveCreate,
        granter: Employee,
    ) -> PaidLeave:
        """Record a grant and, unless deferred, credit the annual balance."""
        employee = await EmployeeService.get_employee(db, data.employee_id, for_update=True)
        balances = None
        if not data.deduct_from_balance:
            balances = apply_credit(
                LeaveBalances.from_employee(employee), LeaveType.annual, data.days,
            )

        grant = PaidLeave(
            employee_id=employee.id,
            granted_by=granter.id,
            type=data.type,
            days=data.days,
            reason=data.reason,
            notes=data.notes,
            deduct_from_balance=data.deduct_from_balance,
        )
        grant.employee = employee
        grant.granter = granter
        db.add(grant)

        if balances is not None:
            store_balances(employee, balances)

        await db.flush()

        await create_audit_entry(
            db,
            action="grant",
            entity_type="paid_leave",
            entity_id=grant.id,
            actor_id=granter.id,
            new_values=_audit_values(grant),
        )
        logger.info(
            "Paid leave %s: %s day(s) %s granted to %s by %s",
            grant.id, grant.days, grant.type.value, employee.id, granter.id,
        )

        await dispatch_safely(db, notify_paid_leave_granted, grant)
        return grant

    @staticmethod
    async def list_all(db: AsyncSession) -> Sequence[PaidLeave]:
        result = await db.execute(_base_query())
        return result.scalars().all()

    @staticmethod
    async def list_for_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Sequence[PaidLeave]:
        result = await db.execute(_base_query().where(PaidLeave.employee_id == employee_id))
        return result.scalars().all()

    @staticmethod
    async def get(db: AsyncSession, grant_id: uuid.UUID) -> PaidLeave:
        result = await db.execute(_base_query().where(PaidLeave.id == grant_id))
        grant = result.scalars().first()
        if grant is None:
            raise NotFoundException("PaidLeave", str(grant_id))
        return grant

    @staticmethod
    async def stats_for_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> PaidLeaveStats:
        """Total days, record count and a per-type breakdown."""
        grants = await PaidLeaveService.list_for_employee(db, employee_id)

        per_type: dict[Any, dict[str, Any]] = defaultdict(lambda: {"days": Decimal("0"), "count": 0})
        total = Decimal("0")
        for grant in grants:
            total += grant.days
            per_type[grant.type]["days"] += grant.days
            per_type[grant.type]["count"] += 1

        return PaidLeaveStats(
            employee_id=employee_id,
            total_days_granted=total,
            total_records=len(grants),
            type_breakdown=[
                PaidLeaveTypeBreakdown(type=t, days=v["days"], count=v["count"])
                for t, v in per_type.items()
            ],
        )

    @staticmethod
    def _ensure_can_modify(grant: PaidLeave, actor: Employee, verb: str) -> None:
        if not has_role(actor, UserRole.admin) and grant.granted_by != actor.id:
            raise ForbiddenException(f"You can only {verb} paid leaves you granted.")

    @staticmethod
    async def update(
        db: AsyncSession,
        grant_id: uuid.UUID,
        data: PaidLeaveUpdate,
        actor: Employee,
    ) -> PaidLeave:
        """Edit the record. The employee's balance is left as it is."""
        grant = await PaidLeaveService.get(db, grant_id)
        PaidLeaveService._ensure_can_modify(grant, actor, "update")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return grant

        old_values = _audit_values(grant)
        for field, value in changes.items():
            setattr(grant, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="paid_leave",
            entity_id=grant.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_audit_values(grant),
        )
        return grant

    @staticmethod
    async def delete(
        db: AsyncSession,
        grant_id: uuid.UUID,
        actor: Employee,
    ) -> None:
        """Remove the record. Credited days stay on the balance."""
        grant = await PaidLeaveService.get(db, grant_id)
        PaidLeaveService._ensure_can_modify(grant, actor, "remove")

        await create_audit_entry(
            db,
            action="delete",
            entity_type="paid_leave",
            entity_id=grant.id,
            actor_id=actor.id,
            old_values=_audit_values(grant),
        )
        await db.delete(grant)
        await db.flush()
