"""Leave service layer — request sizing, approvals, cancellation, edits.

Business logic:
  - Day counting with public-holiday exclusion and half-day support
  - Balance sufficiency checked before anything is written
  - Approval debits the matching balance counter; rejection never does
  - Cancellation from any non-cancelled state, with optional refund
  - Separate commands for details edits (pending only) and status overrides

Everything runs inside the request's single transaction (see ``get_db``):
services flush, and any raised exception rolls the whole request back.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavedesk.auth.dependencies import has_role
from leavedesk.common.audit import create_audit_entry, snapshot
from leavedesk.common.constants import LeaveDuration, LeaveStatus, LeaveType, UserRole
from leavedesk.common.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from leavedesk.common.filters import apply_filters
from leavedesk.common.pagination import PaginatedResponse, PaginationParams, paginate
from leavedesk.config import settings
from leavedesk.employees.models import Employee
from leavedesk.employees.service import EmployeeService
from leavedesk.holidays.service import HolidayService
from leavedesk.leave.calendar import compute_days
from leavedesk.leave.ledger import (
    LeaveBalances,
    apply_credit,
    apply_debit,
    check_sufficient,
    is_balance_exempt,
    store_balances,
)
from leavedesk.leave.lifecycle import LeaveAction, ensure_editable, next_status, override_action
from leavedesk.leave.models import LeaveRequest
from leavedesk.leave.schemas import (
    MAX_SPAN_DAYS,
    LeaveRequestCreate,
    LeaveRequestFilters,
    LeaveRequestOut,
    LeaveRequestUpdate,
    LeaveStatusOverride,
)
from leavedesk.notifications.service import (
    dispatch_safely,
    email_leave_decision,
    email_leave_request,
    notify_leave_approved,
    notify_leave_cancelled,
    notify_leave_rejected,
    notify_leave_request,
)

logger = logging.getLogger(__name__)


_AUDITED_FIELDS = (
    "leave_type",
    "start_date",
    "end_date",
    "duration",
    "total_days",
    "reason",
    "status",
)


def _snapshot(req: LeaveRequest) -> dict[str, Any]:
    return snapshot(req, _AUDITED_FIELDS)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: requests, approvals, cancellation, edits."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _load_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> LeaveRequest:
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .options(
                selectinload(LeaveRequest.employee),
                selectinload(LeaveRequest.approver),
            )
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        leave_req = result.scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", str(request_id))
        return leave_req

    @staticmethod
    def _build_request_response(req: LeaveRequest) -> LeaveRequestOut:
        return LeaveRequestOut.model_validate(req)

    @staticmethod
    async def size_request(
        db: AsyncSession,
        start: date,
        end: date,
        duration: LeaveDuration,
    ) -> Decimal:
        """Chargeable days for a date range, net of stored public holidays."""
        holidays = await HolidayService.get_holidays_in_range(
            db, start, end, settings.DEFAULT_HOLIDAY_COUNTRY,
        )
        return compute_days(start, end, duration, holidays)

    @staticmethod
    def _ensure_owner_or_privileged(req: LeaveRequest, actor: Employee, verb: str) -> None:
        if req.employee_id != actor.id and not has_role(actor, UserRole.manager):
            raise ForbiddenException(f"You can only {verb} your own leave requests.")

    @staticmethod
    async def _debit(db: AsyncSession, req: LeaveRequest) -> None:
        """Take the request's days from its owner's balance under a row lock."""
        if is_balance_exempt(req.leave_type):
            return
        employee = await EmployeeService.get_employee(db, req.employee_id, for_update=True)
        balances = apply_debit(
            LeaveBalances.from_employee(employee), req.leave_type, req.total_days,
        )
        store_balances(employee, balances)

    @staticmethod
    async def _refund(db: AsyncSession, req: LeaveRequest) -> None:
        """Give the request's days back to its owner's balance."""
        if is_balance_exempt(req.leave_type):
            return
        employee = await EmployeeService.get_employee(db, req.employee_id, for_update=True)
        balances = apply_credit(
            LeaveBalances.from_employee(employee), req.leave_type, req.total_days,
        )
        store_balances(employee, balances)
        logger.info(
            "Refunded %s %s day(s) to employee %s",
            req.total_days, req.leave_type.value, req.employee_id,
        )

    @staticmethod
    def _record_decision(
        req: LeaveRequest,
        actor: Employee,
        comments: Optional[str],
    ) -> None:
        req.approved_by = actor.id
        req.approver = actor
        req.approved_at = datetime.now(timezone.utc)
        req.approval_comments = comments

    @staticmethod
    async def _notify_cancelled(
        db: AsyncSession,
        req: LeaveRequest,
        actor: Employee,
    ) -> None:
        recipients: list[uuid.UUID] = []
        if req.approved_by is not None and req.approved_by != actor.id:
            recipients.append(req.approved_by)
        if req.employee_id != actor.id and req.employee_id not in recipients:
            recipients.append(req.employee_id)
        for recipient_id in recipients:
            await dispatch_safely(db, notify_leave_cancelled, req, recipient_id)

    # ─────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_request(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: LeaveRequestCreate,
    ) -> LeaveRequestOut:
        """Apply for leave.

        The employee must exist and be active. The request is sized by the
        day counter and checked against the balance before anything is
        written; a failed check persists nothing.
        """
        employee = await EmployeeService.get_active_employee(db, employee_id)

        total_days = await LeaveService.size_request(
            db, data.start_date, data.end_date, data.duration,
        )
        if total_days <= 0:
            raise ValidationException(
                {"dates": ["No chargeable days in the selected range "
                           "(all days may be public holidays)."]}
            )

        check_sufficient(LeaveBalances.from_employee(employee), data.leave_type, total_days)

        leave_request = LeaveRequest(
            employee_id=employee.id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            duration=data.duration,
            total_days=total_days,
            reason=data.reason,
            status=LeaveStatus.pending,
        )
        leave_request.employee = employee
        leave_request.approver = None
        db.add(leave_request)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave_request.id,
            actor_id=employee.id,
            new_values=_snapshot(leave_request),
        )
        logger.info(
            "Leave request %s created: %s %s day(s) for employee %s",
            leave_request.id, data.leave_type.value, total_days, employee.id,
        )

        out = LeaveService._build_request_response(leave_request)

        approvers = await EmployeeService.list_privileged(db)
        await dispatch_safely(
            db, notify_leave_request, leave_request, [a.id for a in approvers],
        )
        for approver in approvers:
            await dispatch_safely(db, email_leave_request, leave_request, employee, approver)
        return out

    # ─────────────────────────────────────────────────────────────────
    # Read
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
    ) -> LeaveRequestOut:
        req = await LeaveService._load_request(db, request_id)
        LeaveService._ensure_owner_or_privileged(req, actor, "view")
        return LeaveService._build_request_response(req)

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        pagination: PaginationParams,
        filters: LeaveRequestFilters,
    ) -> PaginatedResponse:
        """Paginated, filterable list across all employees, newest first."""
        query = (
            select(LeaveRequest)
            .options(
                selectinload(LeaveRequest.employee),
                selectinload(LeaveRequest.approver),
            )
            .order_by(LeaveRequest.created_at.desc())
        )
        query = apply_filters(
            query,
            LeaveRequest,
            {
                "employee_id": filters.employee_id,
                "status": filters.status,
                "leave_type": filters.leave_type,
                "start_date__from": filters.start_date_from,
                "start_date__to": filters.start_date_to,
            },
        )
        return await paginate(
            db, query, pagination,
            model=LeaveRequest,
            transform=LeaveService._build_request_response,
        )

    @staticmethod
    async def list_for_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        status: Optional[LeaveStatus] = None,
    ) -> PaginatedResponse:
        return await LeaveService.list_requests(
            db,
            pagination,
            LeaveRequestFilters(employee_id=employee_id, status=status),
        )

    @staticmethod
    async def get_balances(db: AsyncSession, employee_id: uuid.UUID) -> LeaveBalances:
        employee = await EmployeeService.get_employee(db, employee_id)
        return LeaveBalances.from_employee(employee)

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def approve(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
        *,
        comments: Optional[str] = None,
    ) -> LeaveRequestOut:
        """Approve a pending request and debit the owner's balance."""
        req = await LeaveService._load_request(db, request_id, for_update=True)
        new_status = next_status(req.status, LeaveAction.approve)
        old_status = req.status

        await LeaveService._debit(db, req)
        req.status = new_status
        LeaveService._record_decision(req, actor, comments)
        await db.flush()

        await create_audit_entry(
            db,
            action="approve",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=actor.id,
            old_values={"status": old_status.value},
            new_values={"status": new_status.value, "comments": comments},
        )
        logger.info("Leave request %s approved by %s", req.id, actor.id)

        out = LeaveService._build_request_response(req)
        await dispatch_safely(db, notify_leave_approved, req)
        await dispatch_safely(db, email_leave_decision, req, req.employee)
        return out

    @staticmethod
    async def reject(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
        *,
        comments: Optional[str] = None,
    ) -> LeaveRequestOut:
        """Reject a pending request. Balances are untouched."""
        req = await LeaveService._load_request(db, request_id, for_update=True)
        new_status = next_status(req.status, LeaveAction.reject)
        old_status = req.status

        req.status = new_status
        LeaveService._record_decision(req, actor, comments)
        await db.flush()

        await create_audit_entry(
            db,
            action="reject",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=actor.id,
            old_values={"status": old_status.value},
            new_values={"status": new_status.value, "comments": comments},
        )
        logger.info("Leave request %s rejected by %s", req.id, actor.id)

        out = LeaveService._build_request_response(req)
        await dispatch_safely(db, notify_leave_rejected, req, comments)
        await dispatch_safely(db, email_leave_decision, req, req.employee)
        return out

    # ─────────────────────────────────────────────────────────────────
    # Cancel
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def cancel(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
    ) -> LeaveRequestOut:
        """Cancel a request in any state but cancelled.

        Employees may only cancel their own requests. Days already debited
        by an approval are refunded only when ``REFUND_ON_APPROVED_CANCEL``
        is enabled.
        """
        req = await LeaveService._load_request(db, request_id, for_update=True)
        if actor.role == UserRole.employee and req.employee_id != actor.id:
            raise ForbiddenException("You can only cancel your own leave requests.")

        old_status = req.status
        req.status = next_status(old_status, LeaveAction.cancel)
        req.cancelled_at = datetime.now(timezone.utc)

        refunded = old_status == LeaveStatus.approved and settings.REFUND_ON_APPROVED_CANCEL
        if refunded:
            await LeaveService._refund(db, req)
        await db.flush()

        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=actor.id,
            old_values={"status": old_status.value},
            new_values={"status": req.status.value, "refunded": refunded},
        )
        logger.info("Leave request %s cancelled by %s (was %s)", req.id, actor.id, old_status.value)

        out = LeaveService._build_request_response(req)
        await LeaveService._notify_cancelled(db, req, actor)
        return out

    # ─────────────────────────────────────────────────────────────────
    # Edit - details
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_details(
        db: AsyncSession,
        request_id: uuid.UUID,
        data: LeaveRequestUpdate,
        actor: Employee,
    ) -> LeaveRequestOut:
        """Change type, dates, duration or reason of a pending request.

        total_days is recomputed and re-checked against the balance.
        """
        req = await LeaveService._load_request(db, request_id, for_update=True)
        LeaveService._ensure_owner_or_privileged(req, actor, "edit")
        ensure_editable(req.status)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return LeaveService._build_request_response(req)

        leave_type: LeaveType = changes.get("leave_type", req.leave_type)
        start: date = changes.get("start_date", req.start_date)
        end: date = changes.get("end_date", req.end_date)
        duration: LeaveDuration = changes.get("duration", req.duration)

        if start > end:
            raise ValidationException({"dates": ["start_date must be on or before end_date."]})
        if (end - start).days > MAX_SPAN_DAYS:
            raise ValidationException({"dates": ["Leave request cannot span more than 365 days."]})

        total_days = await LeaveService.size_request(db, start, end, duration)
        if total_days <= 0:
            raise ValidationException(
                {"dates": ["No chargeable days in the selected range "
                           "(all days may be public holidays)."]}
            )
        check_sufficient(LeaveBalances.from_employee(req.employee), leave_type, total_days)

        old_values = _snapshot(req)
        req.leave_type = leave_type
        req.start_date = start
        req.end_date = end
        req.duration = duration
        req.total_days = total_days
        if "reason" in changes:
            req.reason = changes["reason"]
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_snapshot(req),
        )
        return LeaveService._build_request_response(req)

    # ─────────────────────────────────────────────────────────────────
    # Edit - status override
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def override_status(
        db: AsyncSession,
        request_id: uuid.UUID,
        data: LeaveStatusOverride,
        actor: Employee,
    ) -> LeaveRequestOut:
        """Privileged status change, carrying the matching transition's side effects.

        Moving to approved debits the balance. Moving away from approved
        refunds only when ``REFUND_ON_APPROVED_CANCEL`` is enabled, the
        same rule a plain cancellation follows.
        """
        if not has_role(actor, UserRole.manager):
            raise ForbiddenException("Only managers and admins can override a request status.")

        req = await LeaveService._load_request(db, request_id, for_update=True)
        action = override_action(req.status, data.status)
        old_status = req.status

        if action == LeaveAction.approve:
            await LeaveService._debit(db, req)
        elif old_status == LeaveStatus.approved and settings.REFUND_ON_APPROVED_CANCEL:
            await LeaveService._refund(db, req)

        req.status = data.status
        if action == LeaveAction.cancel:
            req.cancelled_at = datetime.now(timezone.utc)
        else:
            req.cancelled_at = None
            LeaveService._record_decision(req, actor, data.comments)
        await db.flush()

        await create_audit_entry(
            db,
            action="override",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=actor.id,
            old_values={"status": old_status.value},
            new_values={"status": data.status.value, "comments": data.comments},
        )
        logger.info(
            "Leave request %s status overridden %s -> %s by %s",
            req.id, old_status.value, data.status.value, actor.id,
        )

        out = LeaveService._build_request_response(req)
        if action == LeaveAction.approve:
            await dispatch_safely(db, notify_leave_approved, req)
            await dispatch_safely(db, email_leave_decision, req, req.employee)
        elif action == LeaveAction.reject:
            await dispatch_safely(db, notify_leave_rejected, req, data.comments)
            await dispatch_safely(db, email_leave_decision, req, req.employee)
        else:
            await LeaveService._notify_cancelled(db, req, actor)
        return out

    # ─────────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def delete_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
    ) -> None:
        """Hard-delete a request. Balances are not adjusted."""
        req = await LeaveService._load_request(db, request_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=actor.id,
            old_values=_snapshot(req),
        )
        await db.delete(req)
        await db.flush()
        logger.info("Leave request %s deleted by %s", request_id, actor.id)
