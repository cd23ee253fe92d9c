"""Leave router — apply, list, approve/reject, cancel, edit, delete.

All endpoints require authentication. Manager/admin endpoints enforce role checks.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, require_role
from leavedesk.common.constants import LeaveStatus, LeaveType, UserRole
from leavedesk.common.pagination import PaginationParams
from leavedesk.database import get_db
from leavedesk.employees.models import Employee
from leavedesk.leave.schemas import (
    LeaveDecisionRequest,
    LeaveRequestCreate,
    LeaveRequestFilters,
    LeaveRequestOut,
    LeaveRequestUpdate,
    LeaveStatusOverride,
)
from leavedesk.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


def _page(result) -> dict:
    return {
        "data": [item.model_dump(mode="json") for item in result.data],
        "meta": result.meta.model_dump(),
    }


# ── POST / - apply for leave ────────────────────────────────────────

@router.post("", response_model=LeaveRequestOut, status_code=201)
async def apply_leave(
    body: LeaveRequestCreate,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Apply for leave. Sizes the request and checks the balance first."""
    return await LeaveService.create_request(db, employee.id, body)


# ── GET / - own requests ────────────────────────────────────────────

@router.get("")
async def my_requests(
    status: Optional[LeaveStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The authenticated user's leave requests, newest first."""
    result = await LeaveService.list_for_employee(
        db, employee.id, pagination, status=status,
    )
    return _page(result)


# ── GET /all - every request (manager+) ────────────────────────────
# NOTE: defined before /{request_id} so "all" is not parsed as a UUID.

@router.get("/all")
async def all_requests(
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    start_date_from: Optional[date] = Query(None),
    start_date_to: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    filters = LeaveRequestFilters(
        employee_id=employee_id,
        status=status,
        leave_type=leave_type,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
    )
    result = await LeaveService.list_requests(db, pagination, filters)
    return _page(result)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{request_id}", response_model=LeaveRequestOut)
async def get_request(
    request_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_request(db, request_id, employee)


# ── PATCH /{id} - edit details (pending only) ──────────────────────

@router.patch("/{request_id}", response_model=LeaveRequestOut)
async def update_request(
    request_id: uuid.UUID,
    body: LeaveRequestUpdate,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change type, dates, duration or reason while the request is pending."""
    return await LeaveService.update_details(db, request_id, body, employee)


# ── PATCH /{id}/status - status override (manager+) ────────────────

@router.patch("/{request_id}/status", response_model=LeaveRequestOut)
async def override_status(
    request_id: uuid.UUID,
    body: LeaveStatusOverride,
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    """Force a terminal status; balance effects follow the matching transition."""
    return await LeaveService.override_status(db, request_id, body, employee)


# ── PATCH /{id}/approve ────────────────────────────────────────────

@router.patch("/{request_id}/approve", response_model=LeaveRequestOut)
async def approve_request(
    request_id: uuid.UUID,
    body: Optional[LeaveDecisionRequest] = None,
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending leave request. Deducts from balance."""
    return await LeaveService.approve(
        db, request_id, employee, comments=body.comments if body else None,
    )


# ── PATCH /{id}/reject ─────────────────────────────────────────────

@router.patch("/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_request(
    request_id: uuid.UUID,
    body: Optional[LeaveDecisionRequest] = None,
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending leave request."""
    return await LeaveService.reject(
        db, request_id, employee, comments=body.comments if body else None,
    )


# ── PATCH /{id}/cancel ─────────────────────────────────────────────

@router.patch("/{request_id}/cancel", response_model=LeaveRequestOut)
async def cancel_request(
    request_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a request. Employees may only cancel their own."""
    return await LeaveService.cancel(db, request_id, employee)


# ── DELETE /{id} (admin) ───────────────────────────────────────────

@router.delete("/{request_id}")
async def delete_request(
    request_id: uuid.UUID,
    employee: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await LeaveService.delete_request(db, request_id, employee)
    return {"message": "Leave request deleted successfully."}
