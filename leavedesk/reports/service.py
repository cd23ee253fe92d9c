"""Report service — loads report rows and hands them to the renderers."""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavedesk.employees.models import Employee
from leavedesk.leave.models import LeaveRequest
from leavedesk.reports import builders
from leavedesk.reports.schemas import LeaveReportFilters

logger = logging.getLogger(__name__)


class ReportService:
    """Async report generation. Every method returns raw file bytes."""

    # ── Data loading ────────────────────────────────────────────────

    @staticmethod
    async def load_leave_requests(
        db: AsyncSession,
        filters: LeaveReportFilters,
    ) -> Sequence[LeaveRequest]:
        query = (
            select(LeaveRequest)
            .options(
                selectinload(LeaveRequest.employee),
                selectinload(LeaveRequest.approver),
            )
            .order_by(LeaveRequest.created_at.desc())
        )
        if filters.start_date is not None:
            query = query.where(LeaveRequest.start_date >= filters.start_date)
        if filters.end_date is not None:
            query = query.where(LeaveRequest.end_date <= filters.end_date)
        if filters.status is not None:
            query = query.where(LeaveRequest.status == filters.status)
        if filters.leave_type is not None:
            query = query.where(LeaveRequest.leave_type == filters.leave_type)
        if filters.employee_id is not None:
            query = query.where(LeaveRequest.employee_id == filters.employee_id)

        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def load_employees(db: AsyncSession) -> Sequence[Employee]:
        result = await db.execute(select(Employee).order_by(Employee.name))
        return result.scalars().all()

    # ── Leave report ────────────────────────────────────────────────

    @staticmethod
    async def leave_report_xlsx(db: AsyncSession, filters: LeaveReportFilters) -> bytes:
        requests = await ReportService.load_leave_requests(db, filters)
        logger.info("Rendering leave report XLSX with %d row(s)", len(requests))
        return builders.leave_report_xlsx(requests, filters.describe_period())

    @staticmethod
    async def leave_report_pdf(db: AsyncSession, filters: LeaveReportFilters) -> bytes:
        requests = await ReportService.load_leave_requests(db, filters)
        logger.info("Rendering leave report PDF with %d row(s)", len(requests))
        return builders.leave_report_pdf(requests, filters.describe_period(), date.today())

    # ── Balance report ──────────────────────────────────────────────

    @staticmethod
    async def balance_report_xlsx(db: AsyncSession) -> bytes:
        return builders.balance_report_xlsx(await ReportService.load_employees(db))

    @staticmethod
    async def balance_report_pdf(db: AsyncSession) -> bytes:
        return builders.balance_report_pdf(await ReportService.load_employees(db), date.today())
