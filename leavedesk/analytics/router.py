"""Leave analytics router.

Every authenticated user may call it; employees only ever see their own
requests, managers and admins see everything.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.analytics.schemas import AnalyticsFilters, LeaveAnalyticsResponse
from leavedesk.analytics.service import AnalyticsService
from leavedesk.auth.dependencies import get_current_user
from leavedesk.common.constants import LeaveStatus, LeaveType
from leavedesk.common.exceptions import ValidationException
from leavedesk.database import get_db
from leavedesk.employees.models import Employee

router = APIRouter(prefix="", tags=["analytics"])


# ── GET /leave ──────────────────────────────────────────────────────

@router.get("/leave", response_model=LeaveAnalyticsResponse)
async def leave_analytics(
    start_date: Optional[date] = Query(None, description="Submitted on or after"),
    end_date: Optional[date] = Query(None, description="Submitted on or before"),
    employee_id: Optional[uuid.UUID] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Distributions, trends, top users, balance ranges and approver stats."""
    if start_date and end_date and start_date > end_date:
        raise ValidationException({"end_date": ["end_date must be on or after start_date."]})

    filters = AnalyticsFilters(
        start_date=start_date,
        end_date=end_date,
        employee_id=employee_id,
        leave_type=leave_type,
        status=status,
    )
    return await AnalyticsService.get_leave_analytics(db, employee, filters)
