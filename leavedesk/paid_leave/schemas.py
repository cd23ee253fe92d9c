"""Paid leave Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from leavedesk.common.constants import PaidLeaveType
from leavedesk.employees.schemas import EmployeeSummary


# ═════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════


class PaidLeaveCreate(BaseModel):
    employee_id: uuid.UUID
    type: PaidLeaveType = PaidLeaveType.bonus
    days: Decimal = Field(..., gt=0, le=365, decimal_places=1)
    reason: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = None
    deduct_from_balance: bool = False


class PaidLeaveUpdate(BaseModel):
    """Record-only edit: the employee's balance is not re-adjusted."""

    model_config = ConfigDict(extra="forbid")

    type: Optional[PaidLeaveType] = None
    days: Optional[Decimal] = Field(None, gt=0, le=365, decimal_places=1)
    reason: Optional[str] = Field(None, min_length=1, max_length=255)
    notes: Optional[str] = None
    deduct_from_balance: Optional[bool] = None


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class PaidLeaveOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    granted_by: Optional[uuid.UUID] = None
    type: PaidLeaveType
    days: Decimal
    reason: str
    notes: Optional[str] = None
    deduct_from_balance: bool
    granted_at: datetime
    created_at: datetime
    updated_at: datetime

    employee: Optional[EmployeeSummary] = None
    granter: Optional[EmployeeSummary] = None


class PaidLeaveTypeBreakdown(BaseModel):
    type: PaidLeaveType
    days: Decimal
    count: int


class PaidLeaveStats(BaseModel):
    employee_id: uuid.UUID
    total_days_granted: Decimal
    total_records: int
    type_breakdown: list[PaidLeaveTypeBreakdown]
