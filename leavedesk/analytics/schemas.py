"""Leave analytics Pydantic v2 schemas — response models for /analytics/leave."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from leavedesk.common.constants import LeaveStatus, LeaveType


# ═════════════════════════════════════════════════════════════════════
# Filters
# ═════════════════════════════════════════════════════════════════════


class AnalyticsFilters(BaseModel):
    """Optional narrowing of the analysed request set."""

    start_date: Optional[date] = Field(None, description="created_at on or after")
    end_date: Optional[date] = Field(None, description="created_at on or before")
    employee_id: Optional[uuid.UUID] = None
    leave_type: Optional[LeaveType] = None
    status: Optional[LeaveStatus] = None


# ═════════════════════════════════════════════════════════════════════
# Distributions
# ═════════════════════════════════════════════════════════════════════


class TypeShare(BaseModel):
    type: LeaveType
    count: int
    percentage: int


class StatusShare(BaseModel):
    status: LeaveStatus
    count: int
    percentage: int


# ═════════════════════════════════════════════════════════════════════
# Time series
# ═════════════════════════════════════════════════════════════════════


class MonthlyLeaveDays(BaseModel):
    """Requested days per leave type for one calendar month (YYYY-MM)."""

    month: str
    days_by_type: dict[str, Decimal]
    total: Decimal


class QuarterlyTrend(BaseModel):
    """Request counts per status for one quarter (YYYY-Qn)."""

    quarter: str
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    cancelled: int = 0


# ═════════════════════════════════════════════════════════════════════
# People
# ═════════════════════════════════════════════════════════════════════


class TopLeaveUser(BaseModel):
    employee_id: uuid.UUID
    employee_name: str
    approved_days: Decimal
    total_requests: int


class BalanceRange(BaseModel):
    balance_range: str
    employee_count: int


class ApproverPerformance(BaseModel):
    approver_id: uuid.UUID
    approver_name: str
    decided_requests: int
    average_response_days: float
    approval_rate: int = Field(..., description="Approved share of decisions, percent")


# ═════════════════════════════════════════════════════════════════════
# Summary
# ═════════════════════════════════════════════════════════════════════


class TotalStats(BaseModel):
    total_requests: int
    total_approved: int
    total_rejected: int
    total_pending: int
    total_cancelled: int
    average_approved_days: float
    average_response_days: float
    most_popular_leave_type: Optional[LeaveType] = None
    peak_month: Optional[str] = None


class LeaveAnalyticsResponse(BaseModel):
    type_distribution: list[TypeShare]
    status_distribution: list[StatusShare]
    monthly_days: list[MonthlyLeaveDays]
    quarterly_trends: list[QuarterlyTrend]
    top_leave_users: list[TopLeaveUser]
    balance_ranges: list[BalanceRange]
    approver_performance: list[ApproverPerformance]
    total_stats: TotalStats
