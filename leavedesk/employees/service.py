"""Employee service layer — async CRUD + balance lookup.

Uses:
  - ``paginate()`` from leavedesk.common.pagination
  - ``apply_filters`` from leavedesk.common.filters
  - ``create_audit_entry`` from leavedesk.common.audit
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.service import get_employee_by_email, hash_password, revoke_all_sessions
from leavedesk.common.audit import audit_value, create_audit_entry
from leavedesk.common.constants import PRIVILEGED_ROLES, UserRole
from leavedesk.common.exceptions import ConflictError, NotFoundException
from leavedesk.common.filters import apply_filters
from leavedesk.common.pagination import PaginatedResponse, PaginationParams, paginate
from leavedesk.employees.models import Employee
from leavedesk.employees.schemas import EmployeeCreate, EmployeeUpdate

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── List (paginated, filterable) ────────────────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        """Return a paginated employee list filtered by role / status / name."""
        query = select(Employee).order_by(Employee.name)
        filters: dict[str, Any] = {
            "role": role,
            "is_active": is_active,
            "name__ilike": search,
        }
        query = apply_filters(query, Employee, filters)
        return await paginate(db, query, pagination, model=Employee)

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Employee:
        """Load an employee, optionally locking the row for a balance write."""
        query = select(Employee).where(Employee.id == employee_id)
        if for_update:
            # Re-read under the row lock so balance writes see committed values
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    @staticmethod
    async def get_active_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Employee:
        """Like ``get_employee`` but an inactive account counts as missing."""
        employee = await EmployeeService.get_employee(db, employee_id, for_update=for_update)
        if not employee.is_active:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    @staticmethod
    async def list_privileged(db: AsyncSession) -> Sequence[Employee]:
        """Every active manager and admin — the approver pool."""
        result = await db.execute(
            select(Employee)
            .where(
                Employee.role.in_(PRIVILEGED_ROLES),
                Employee.is_active.is_(True),
            )
            .order_by(Employee.name),
        )
        return result.scalars().all()

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Create a new employee account; unset balances take the defaults."""
        if await get_employee_by_email(db, data.email) is not None:
            raise ConflictError("email", data.email)

        values = data.model_dump(exclude={"password"}, exclude_none=True)
        values["email"] = data.email.lower()
        employee = Employee(**values, password_hash=hash_password(data.password))
        db.add(employee)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude={"password"}),
        )
        logger.info("Employee %s created by %s", employee.id, actor_id)
        return employee

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Partial-update an existing employee."""
        employee = await EmployeeService.get_employee(db, employee_id, for_update=True)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return employee

        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            old_values[field] = audit_value(getattr(employee, field, None))
            setattr(employee, field, value)

        await db.flush()

        if changes.get("is_active") is False:
            await revoke_all_sessions(db, employee.id)

        await create_audit_entry(
            db,
            action="update",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return employee

    # ── Soft delete ─────────────────────────────────────────────────

    @staticmethod
    async def deactivate_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Deactivate the account and revoke its sessions; history is kept."""
        return await EmployeeService.update_employee(
            db, employee_id, EmployeeUpdate(is_active=False), actor_id=actor_id,
        )
