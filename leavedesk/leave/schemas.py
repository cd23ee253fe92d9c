"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update / *Override → request bodies (write)
  - *Out                          → response bodies (read)

Details and status are edited through separate commands: a details update
never touches status, and a status change never touches dates.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from leavedesk.common.constants import LeaveDuration, LeaveStatus, LeaveType
from leavedesk.employees.schemas import EmployeeSummary

MAX_SPAN_DAYS = 365


# ═════════════════════════════════════════════════════════════════════
# Leave Request - Create
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for applying for leave."""

    leave_type: LeaveType
    start_date: date = Field(..., description="Leave start date (inclusive)")
    end_date: date = Field(..., description="Leave end date (inclusive)")
    duration: LeaveDuration = LeaveDuration.full_day
    reason: str = Field(..., min_length=1, max_length=1000, description="Reason for leave")

    @model_validator(mode="after")
    def validate_dates(self) -> "LeaveRequestCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date.")
        if (self.end_date - self.start_date).days > MAX_SPAN_DAYS:
            raise ValueError("Leave request cannot span more than 365 days.")
        return self


# ═════════════════════════════════════════════════════════════════════
# Leave Request - Edit commands
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestUpdate(BaseModel):
    """Details edit, accepted only while the request is pending.

    Only explicitly provided fields change; total_days is recomputed.
    """

    model_config = ConfigDict(extra="forbid")

    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration: Optional[LeaveDuration] = None
    reason: Optional[str] = Field(None, min_length=1, max_length=1000)


class LeaveStatusOverride(BaseModel):
    """Privileged status change with the side effects of the matching transition."""

    model_config = ConfigDict(extra="forbid")

    status: LeaveStatus
    comments: Optional[str] = Field(None, max_length=500)


# ═════════════════════════════════════════════════════════════════════
# Leave Approve / Reject
# ═════════════════════════════════════════════════════════════════════


class LeaveDecisionRequest(BaseModel):
    """Optional approver comments for approve / reject."""

    comments: Optional[str] = Field(None, max_length=500)


# ═════════════════════════════════════════════════════════════════════
# Leave Request - Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    duration: LeaveDuration
    total_days: Decimal
    reason: str
    status: LeaveStatus
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    approval_comments: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    employee: Optional[EmployeeSummary] = None
    approver: Optional[EmployeeSummary] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Request Filters
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestFilters(BaseModel):
    """Query filters for listing leave requests."""

    employee_id: Optional[uuid.UUID] = None
    status: Optional[LeaveStatus] = None
    leave_type: Optional[LeaveType] = None
    start_date_from: Optional[date] = None
    start_date_to: Optional[date] = None
