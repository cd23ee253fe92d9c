"""Employee router — account administration and balance lookup.

Routes:
    /employees              — List (manager+), create (admin)
    /employees/me/balances  — Caller's leave balances
    /employees/{id}         — Get (self or manager+), update / deactivate (admin)
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, has_role, require_role
from leavedesk.common.constants import UserRole
from leavedesk.common.exceptions import ForbiddenException
from leavedesk.common.pagination import PaginationParams
from leavedesk.database import get_db
from leavedesk.employees.models import Employee
from leavedesk.employees.schemas import (
    BalancesResponse,
    EmployeeCreate,
    EmployeeResponse,
    EmployeeUpdate,
)
from leavedesk.employees.service import EmployeeService
from leavedesk.leave.ledger import LeaveBalances

router = APIRouter(prefix="", tags=["employees"])


# ── GET /employees - List employees ─────────────────────────────────

@router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Filter by name (substring)"),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None, description="Filter by account status"),
):
    """List employees with pagination and filtering. Requires **manager** or above."""
    result = await EmployeeService.list_employees(
        db, pagination, search=search, role=role, is_active=is_active,
    )
    return {
        "data": [
            EmployeeResponse.model_validate(emp).model_dump(mode="json")
            for emp in result.data
        ],
        "meta": result.meta.model_dump(),
    }


# ── POST /employees - Create employee ──────────────────────────────

@router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.admin)),
):
    """Create an employee account. Requires **admin**."""
    employee = await EmployeeService.create_employee(db, body, actor_id=current_user.id)
    return {
        "data": EmployeeResponse.model_validate(employee).model_dump(mode="json"),
        "message": "Employee created successfully.",
    }


# ── GET /employees/me/balances - Own balances ──────────────────────
# NOTE: defined before /{employee_id} so "me" is not parsed as a UUID.

@router.get("/me/balances")
async def get_my_balances(
    current_user: Employee = Depends(get_current_user),
):
    balances = LeaveBalances.from_employee(current_user)
    return {
        "data": BalancesResponse.model_validate(balances).model_dump(mode="json"),
        "message": "Leave balances retrieved successfully.",
    }


# ── GET /employees/{id} ────────────────────────────────────────────

@router.get("/{employee_id}")
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Retrieve an employee. Employees may only view themselves."""
    if current_user.id != employee_id and not has_role(current_user, UserRole.manager):
        raise ForbiddenException(detail="You can only view your own profile.")

    employee = await EmployeeService.get_employee(db, employee_id)
    return {
        "data": EmployeeResponse.model_validate(employee).model_dump(mode="json"),
        "message": "Employee retrieved successfully.",
    }


# ── PATCH /employees/{id} - Update employee ────────────────────────

@router.patch("/{employee_id}")
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.admin)),
):
    """Partial update of name, role, balances or flags. Requires **admin**."""
    employee = await EmployeeService.update_employee(
        db, employee_id, body, actor_id=current_user.id,
    )
    return {
        "data": EmployeeResponse.model_validate(employee).model_dump(mode="json"),
        "message": "Employee updated successfully.",
    }


# ── DELETE /employees/{id} - Deactivate employee ───────────────────

@router.delete("/{employee_id}")
async def deactivate_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.admin)),
):
    """Soft-delete: the account is deactivated, its leave history is kept."""
    if employee_id == current_user.id:
        raise ForbiddenException(detail="You cannot deactivate your own account.")

    await EmployeeService.deactivate_employee(db, employee_id, actor_id=current_user.id)
    return {"message": "Employee deactivated successfully."}
