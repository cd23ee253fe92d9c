"""Report downloads (manager+).

Routes:
    /reports/leave-report          — XLSX leave report
    /reports/leave-report-pdf      — PDF leave report
    /reports/balance-report        — XLSX balances
    /reports/balance-report-pdf    — PDF balances
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import require_role
from leavedesk.common.constants import LeaveStatus, LeaveType, UserRole
from leavedesk.common.exceptions import ValidationException
from leavedesk.database import get_db
from leavedesk.employees.models import Employee
from leavedesk.reports.builders import PDF_MEDIA_TYPE, XLSX_MEDIA_TYPE
from leavedesk.reports.schemas import LeaveReportFilters
from leavedesk.reports.service import ReportService

router = APIRouter(prefix="", tags=["reports"])


def _leave_filters(
    start_date: Optional[date] = Query(None, description="Leave starts on or after"),
    end_date: Optional[date] = Query(None, description="Leave ends on or before"),
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
) -> LeaveReportFilters:
    try:
        return LeaveReportFilters(
            start_date=start_date,
            end_date=end_date,
            status=status,
            leave_type=leave_type,
            employee_id=employee_id,
        )
    except ValidationError:
        raise ValidationException({"end_date": ["end_date must be on or after start_date."]})


def _attachment(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Leave report ────────────────────────────────────────────────────

@router.get("/leave-report")
async def leave_report_xlsx(
    filters: LeaveReportFilters = Depends(_leave_filters),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
):
    content = await ReportService.leave_report_xlsx(db, filters)
    return _attachment(content, XLSX_MEDIA_TYPE, "leave-report.xlsx")


@router.get("/leave-report-pdf")
async def leave_report_pdf(
    filters: LeaveReportFilters = Depends(_leave_filters),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
):
    content = await ReportService.leave_report_pdf(db, filters)
    return _attachment(content, PDF_MEDIA_TYPE, "leave-report.pdf")


# ── Balance report ──────────────────────────────────────────────────

@router.get("/balance-report")
async def balance_report_xlsx(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
):
    content = await ReportService.balance_report_xlsx(db)
    return _attachment(content, XLSX_MEDIA_TYPE, "leave-balances.xlsx")


@router.get("/balance-report-pdf")
async def balance_report_pdf(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
):
    content = await ReportService.balance_report_pdf(db)
    return _attachment(content, PDF_MEDIA_TYPE, "leave-balances.pdf")
