"""Report filter schema."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel, model_validator

from leavedesk.common.constants import LeaveStatus, LeaveType


class LeaveReportFilters(BaseModel):
    """Narrowing for the leave report; date bounds apply to the leave period."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[LeaveStatus] = None
    leave_type: Optional[LeaveType] = None
    employee_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def _check_range(self) -> "LeaveReportFilters":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    def describe_period(self) -> str:
        if self.start_date and self.end_date:
            return f"Period: {self.start_date.isoformat()} to {self.end_date.isoformat()}"
        if self.start_date:
            return f"From {self.start_date.isoformat()}"
        if self.end_date:
            return f"Until {self.end_date.isoformat()}"
        return "All time"
