"""Paid leave router.

Routes:
    /paid-leave                      — Grant (manager+), list all (manager+)
    /paid-leave/my                   — Caller's grants
    /paid-leave/employee/{id}        — Grants for one employee (self or manager+)
    /paid-leave/stats/{employee_id}  — Totals and per-type breakdown
    /paid-leave/{id}                 — Get, update, delete
"""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, has_role, require_role
from leavedesk.common.constants import UserRole
from leavedesk.common.exceptions import ForbiddenException
from leavedesk.database import get_db
from leavedesk.employees.models import Employee
from leavedesk.paid_leave.schemas import PaidLeaveCreate, PaidLeaveOut, PaidLeaveUpdate
from leavedesk.paid_leave.service import PaidLeaveService

router = APIRouter(prefix="", tags=["paid-leave"])


def _ensure_self_or_manager(current_user: Employee, employee_id: uuid.UUID) -> None:
    if current_user.id != employee_id and not has_role(current_user, UserRole.manager):
        raise ForbiddenException("You can only view your own paid leave.")


def _dump(grants) -> list[dict]:
    return [PaidLeaveOut.model_validate(g).model_dump(mode="json") for g in grants]


# ── POST /paid-leave - grant days ───────────────────────────────────

@router.post("", status_code=201)
async def grant_paid_leave(
    body: PaidLeaveCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
):
    grant = await PaidLeaveService.grant(db, body, current_user)
    return {
        "data": PaidLeaveOut.model_validate(grant).model_dump(mode="json"),
        "message": "Paid leave granted successfully.",
    }


# ── GET /paid-leave - all grants ────────────────────────────────────

@router.get("")
async def list_paid_leave(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
):
    return {"data": _dump(await PaidLeaveService.list_all(db))}


# ── GET /paid-leave/my ──────────────────────────────────────────────

@router.get("/my")
async def my_paid_leave(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return {"data": _dump(await PaidLeaveService.list_for_employee(db, current_user.id))}


# ── GET /paid-leave/employee/{employee_id} ──────────────────────────

@router.get("/employee/{employee_id}")
async def employee_paid_leave(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    _ensure_self_or_manager(current_user, employee_id)
    return {"data": _dump(await PaidLeaveService.list_for_employee(db, employee_id))}


# ── GET /paid-leave/stats/{employee_id} ─────────────────────────────

@router.get("/stats/{employee_id}")
async def paid_leave_stats(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    _ensure_self_or_manager(current_user, employee_id)
    stats = await PaidLeaveService.stats_for_employee(db, employee_id)
    return {"data": stats.model_dump(mode="json")}


# ── GET /paid-leave/{id} ────────────────────────────────────────────

@router.get("/{grant_id}")
async def get_paid_leave(
    grant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    grant = await PaidLeaveService.get(db, grant_id)
    _ensure_self_or_manager(current_user, grant.employee_id)
    return {"data": PaidLeaveOut.model_validate(grant).model_dump(mode="json")}


# ── PATCH /paid-leave/{id} ──────────────────────────────────────────

@router.patch("/{grant_id}")
async def update_paid_leave(
    grant_id: uuid.UUID,
    body: PaidLeaveUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
):
    grant = await PaidLeaveService.update(db, grant_id, body, current_user)
    return {
        "data": PaidLeaveOut.model_validate(grant).model_dump(mode="json"),
        "message": "Paid leave updated successfully.",
    }


# ── DELETE /paid-leave/{id} ─────────────────────────────────────────

@router.delete("/{grant_id}")
async def delete_paid_leave(
    grant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
):
    await PaidLeaveService.delete(db, grant_id, current_user)
    return {"message": "Paid leave removed successfully."}
