"""Leave analytics service — read-only aggregation over leave requests.

All methods are static async, following the project convention. The
filtered request set is loaded once and every section is derived from it;
balance ranges are computed over all active employees.
"""

from __future__ import annotations

import calendar
import math
import uuid
from collections import Counter, defaultdict
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavedesk.analytics.schemas import (
    AnalyticsFilters,
    ApproverPerformance,
    BalanceRange,
    LeaveAnalyticsResponse,
    MonthlyLeaveDays,
    QuarterlyTrend,
    StatusShare,
    TopLeaveUser,
    TotalStats,
    TypeShare,
)
from leavedesk.auth.dependencies import has_role
from leavedesk.common.constants import LeaveStatus, LeaveType, UserRole
from leavedesk.employees.models import Employee
from leavedesk.leave.models import LeaveRequest

TOP_USERS_LIMIT = 10

# (label, inclusive upper bound); None means unbounded
BALANCE_RANGES: tuple[tuple[str, Optional[int]], ...] = (
    ("0-10 days", 10),
    ("11-20 days", 20),
    ("21-30 days", 30),
    ("31+ days", None),
)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _percent(part: int, whole: int) -> int:
    return round(part * 100 / whole) if whole else 0


def _response_days(req: LeaveRequest) -> int:
    """Whole days (rounded up) between submission and decision."""
    elapsed = _as_utc(req.approved_at) - _as_utc(req.created_at)
    return max(0, math.ceil(elapsed.total_seconds() / 86400))


def _one_decimal(value: float) -> float:
    return round(value, 1)


class AnalyticsService:
    """Async leave analytics."""

    # ═════════════════════════════════════════════════════════════════
    # Entry point
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_leave_analytics(
        db: AsyncSession,
        actor: Employee,
        filters: AnalyticsFilters,
    ) -> LeaveAnalyticsResponse:
        """Build every analytics section. Non-privileged callers only see their own requests."""
        if not has_role(actor, UserRole.manager):
            filters = filters.model_copy(update={"employee_id": actor.id})

        requests = await AnalyticsService._load_requests(db, filters)
        return LeaveAnalyticsResponse(
            type_distribution=AnalyticsService.type_distribution(requests),
            status_distribution=AnalyticsService.status_distribution(requests),
            monthly_days=AnalyticsService.monthly_days(requests),
            quarterly_trends=AnalyticsService.quarterly_trends(requests),
            top_leave_users=AnalyticsService.top_leave_users(requests),
            balance_ranges=await AnalyticsService.balance_ranges(db),
            approver_performance=AnalyticsService.approver_performance(requests),
            total_stats=AnalyticsService.total_stats(requests),
        )

    @staticmethod
    async def _load_requests(
        db: AsyncSession,
        filters: AnalyticsFilters,
    ) -> Sequence[LeaveRequest]:
        query = (
            select(LeaveRequest)
            .options(
                selectinload(LeaveRequest.employee),
                selectinload(LeaveRequest.approver),
            )
            .order_by(LeaveRequest.created_at)
        )
        if filters.start_date is not None:
            start = datetime.combine(filters.start_date, time.min, tzinfo=timezone.utc)
            query = query.where(LeaveRequest.created_at >= start)
        if filters.end_date is not None:
            end = datetime.combine(
                filters.end_date + timedelta(days=1), time.min, tzinfo=timezone.utc,
            )
            query = query.where(LeaveRequest.created_at < end)
        if filters.employee_id is not None:
            query = query.where(LeaveRequest.employee_id == filters.employee_id)
        if filters.leave_type is not None:
            query = query.where(LeaveRequest.leave_type == filters.leave_type)
        if filters.status is not None:
            query = query.where(LeaveRequest.status == filters.status)

        result = await db.execute(query)
        return result.scalars().all()

    # ═════════════════════════════════════════════════════════════════
    # Distributions
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    def type_distribution(requests: Sequence[LeaveRequest]) -> list[TypeShare]:
        counts = Counter(r.leave_type for r in requests)
        return [
            TypeShare(type=t, count=n, percentage=_percent(n, len(requests)))
            for t, n in counts.most_common()
        ]

    @staticmethod
    def status_distribution(requests: Sequence[LeaveRequest]) -> list[StatusShare]:
        counts = Counter(r.status for r in requests)
        return [
            StatusShare(status=s, count=n, percentage=_percent(n, len(requests)))
            for s, n in counts.most_common()
        ]

    # ═════════════════════════════════════════════════════════════════
    # Time series (bucketed by submission time)
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    def monthly_days(requests: Sequence[LeaveRequest]) -> list[MonthlyLeaveDays]:
        buckets: dict[str, dict[str, Decimal]] = {}
        for req in requests:
            key = _as_utc(req.created_at).strftime("%Y-%m")
            days = buckets.setdefault(key, {t.value: Decimal("0") for t in LeaveType})
            days[req.leave_type.value] += req.total_days

        return [
            MonthlyLeaveDays(month=month, days_by_type=days, total=sum(days.values(), Decimal("0")))
            for month, days in sorted(buckets.items())
        ]

    @staticmethod
    def quarterly_trends(requests: Sequence[LeaveRequest]) -> list[QuarterlyTrend]:
        buckets: dict[str, Counter] = defaultdict(Counter)
        for req in requests:
            created = _as_utc(req.created_at)
            key = f"{created.year}-Q{(created.month - 1) // 3 + 1}"
            buckets[key][req.status.value] += 1

        return [
            QuarterlyTrend(quarter=quarter, **counts)
            for quarter, counts in sorted(buckets.items())
        ]

    # ═════════════════════════════════════════════════════════════════
    # People
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    def top_leave_users(requests: Sequence[LeaveRequest]) -> list[TopLeaveUser]:
        """Employees ranked by approved days; request count covers every status."""
        stats: dict[uuid.UUID, dict] = {}
        for req in requests:
            entry = stats.setdefault(
                req.employee_id,
                {"name": req.employee.name, "days": Decimal("0"), "requests": 0},
            )
            entry["requests"] += 1
            if req.status == LeaveStatus.approved:
                entry["days"] += req.total_days

        ranked = sorted(stats.items(), key=lambda item: item[1]["days"], reverse=True)
        return [
            TopLeaveUser(
                employee_id=employee_id,
                employee_name=entry["name"],
                approved_days=entry["days"],
                total_requests=entry["requests"],
            )
            for employee_id, entry in ranked[:TOP_USERS_LIMIT]
        ]

    @staticmethod
    async def balance_ranges(db: AsyncSession) -> list[BalanceRange]:
        """Active employees bucketed by the sum of their four balances."""
        result = await db.execute(
            select(
                Employee.annual_leave_balance,
                Employee.sick_leave_balance,
                Employee.personal_leave_balance,
                Employee.emergency_leave_balance,
            ).where(Employee.is_active.is_(True))
        )

        counts = {label: 0 for label, _ in BALANCE_RANGES}
        for row in result.all():
            total = sum(row, Decimal("0"))
            for label, upper in BALANCE_RANGES:
                if upper is None or total <= upper:
                    counts[label] += 1
                    break

        return [
            BalanceRange(balance_range=label, employee_count=n)
            for label, n in counts.items()
        ]

    @staticmethod
    def approver_performance(requests: Sequence[LeaveRequest]) -> list[ApproverPerformance]:
        stats: dict[uuid.UUID, dict] = {}
        for req in requests:
            if req.approved_by is None or req.approved_at is None:
                continue
            entry = stats.setdefault(
                req.approved_by,
                {"name": req.approver.name, "decided": 0, "approved": 0, "response": 0},
            )
            entry["decided"] += 1
            entry["response"] += _response_days(req)
            if req.status == LeaveStatus.approved:
                entry["approved"] += 1

        return [
            ApproverPerformance(
                approver_id=approver_id,
                approver_name=entry["name"],
                decided_requests=entry["decided"],
                average_response_days=_one_decimal(entry["response"] / entry["decided"]),
                approval_rate=_percent(entry["approved"], entry["decided"]),
            )
            for approver_id, entry in stats.items()
        ]

    # ═════════════════════════════════════════════════════════════════
    # Summary
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    def total_stats(requests: Sequence[LeaveRequest]) -> TotalStats:
        by_status = Counter(r.status for r in requests)
        approved = [r for r in requests if r.status == LeaveStatus.approved]
        decided = [r for r in requests if r.approved_at is not None]

        average_days = (
            _one_decimal(float(sum(r.total_days for r in approved)) / len(approved))
            if approved else 0.0
        )
        average_response = (
            _one_decimal(sum(_response_days(r) for r in decided) / len(decided))
            if decided else 0.0
        )

        popular = Counter(r.leave_type for r in requests).most_common(1)
        months = Counter(_as_utc(r.created_at).month for r in requests).most_common(1)

        return TotalStats(
            total_requests=len(requests),
            total_approved=by_status[LeaveStatus.approved],
            total_rejected=by_status[LeaveStatus.rejected],
            total_pending=by_status[LeaveStatus.pending],
            total_cancelled=by_status[LeaveStatus.cancelled],
            average_approved_days=average_days,
            average_response_days=average_response,
            most_popular_leave_type=popular[0][0] if popular else None,
            peak_month=calendar.month_name[months[0][0]] if months else None,
        )
