"""XLSX (openpyxl) and PDF (reportlab) renderers for leave reports.

Pure functions: rows in, bytes out. Nothing here touches the database.
"""

from __future__ import annotations

import io
from collections import Counter
from datetime import date, datetime
from typing import Any, Optional, Sequence
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from leavedesk.common.constants import HALF_DAY_DURATIONS, LeaveStatus
from leavedesk.employees.models import Employee
from leavedesk.leave.models import LeaveRequest

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

LEAVE_HEADERS = [
    "Employee Name",
    "Email",
    "Leave Type",
    "Duration",
    "Start Date",
    "End Date",
    "Total Days",
    "Status",
    "Reason",
    "Approved By",
    "Decided On",
    "Comments",
]

BALANCE_HEADERS = [
    "Employee Name",
    "Email",
    "Role",
    "Annual",
    "Sick",
    "Personal",
    "Emergency",
]

STATUS_COLORS = {
    LeaveStatus.approved: colors.HexColor("#16a34a"),
    LeaveStatus.rejected: colors.HexColor("#dc2626"),
    LeaveStatus.pending: colors.HexColor("#d97706"),
    LeaveStatus.cancelled: colors.HexColor("#6b7280"),
}

_THIN = Side(style="thin")
_HEADER_FONT = Font(bold=True)
_HEADER_FILL = PatternFill(start_color="E0E0E0", end_color="E0E0E0", fill_type="solid")
_HEADER_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_TITLE_FONT = Font(bold=True, size=14)


# ── Row shaping ─────────────────────────────────────────────────────

def _fmt_date(value: Optional[date | datetime]) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def _duration_label(req: LeaveRequest) -> str:
    return "Half Day" if req.duration in HALF_DAY_DURATIONS else "Full Day"


def leave_row(req: LeaveRequest) -> list[Any]:
    return [
        req.employee.name if req.employee else "",
        req.employee.email if req.employee else "",
        req.leave_type.value,
        _duration_label(req),
        _fmt_date(req.start_date),
        _fmt_date(req.end_date),
        float(req.total_days),
        req.status.value,
        req.reason,
        req.approver.name if req.approver else "",
        _fmt_date(req.approved_at),
        req.approval_comments or "",
    ]


def balance_row(employee: Employee) -> list[Any]:
    return [
        employee.name,
        employee.email,
        employee.role.value,
        float(employee.annual_leave_balance),
        float(employee.sick_leave_balance),
        float(employee.personal_leave_balance),
        float(employee.emergency_leave_balance),
    ]


def status_summary(requests: Sequence[LeaveRequest]) -> list[tuple[str, int]]:
    counts = Counter(r.status for r in requests)
    return [
        ("Total Requests", len(requests)),
        ("Approved", counts[LeaveStatus.approved]),
        ("Pending", counts[LeaveStatus.pending]),
        ("Rejected", counts[LeaveStatus.rejected]),
        ("Cancelled", counts[LeaveStatus.cancelled]),
    ]


# ═════════════════════════════════════════════════════════════════════
# XLSX
# ═════════════════════════════════════════════════════════════════════


def _write_header(ws, row: int, headers: list[str]) -> None:
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.border = _HEADER_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center")


def _auto_width(ws) -> None:
    for column_cells in ws.columns:
        length = max(len(str(cell.value or "")) for cell in column_cells)
        ws.column_dimensions[get_column_letter(column_cells[0].column)].width = min(max(length + 2, 12), 50)


def _save(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def leave_report_xlsx(requests: Sequence[LeaveRequest], period: str) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Leave Report"

    ws.append(["Leave Report"])
    ws["A1"].font = _TITLE_FONT
    ws.append([period])

    header_row = 4
    _write_header(ws, header_row, LEAVE_HEADERS)
    for req in requests:
        ws.append(leave_row(req))

    ws.append([])
    ws.append(["Summary"])
    ws.cell(row=ws.max_row, column=1).font = _HEADER_FONT
    for label, value in status_summary(requests):
        ws.append([f"{label}:", value])

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)
    _auto_width(ws)
    return _save(wb)


def balance_report_xlsx(employees: Sequence[Employee]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Leave Balances"

    ws.append(["Employee Leave Balances"])
    ws["A1"].font = _TITLE_FONT
    _write_header(ws, 3, BALANCE_HEADERS)
    for employee in employees:
        ws.append(balance_row(employee))

    _auto_width(ws)
    return _save(wb)


# ═════════════════════════════════════════════════════════════════════
# PDF
# ═════════════════════════════════════════════════════════════════════


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="Cell", parent=styles["Normal"], fontSize=7, leading=9))
    styles.add(ParagraphStyle(name="Meta", parent=styles["Normal"], textColor=colors.grey))
    return styles


def _grid(data: list[list[Any]], col_widths: Optional[list[float]] = None) -> Table:
    table = Table(data, colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f3f4f6")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 7),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#dddddd")),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f9fafb")]),
    ]))
    return table


def _build_pdf(story: list, pagesize, title: str) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=pagesize,
        topMargin=1.2 * cm,
        bottomMargin=1.2 * cm,
        leftMargin=1.2 * cm,
        rightMargin=1.2 * cm,
        title=title,
    )
    doc.build(story)
    return buffer.getvalue()


def leave_report_pdf(
    requests: Sequence[LeaveRequest],
    period: str,
    generated_on: date,
) -> bytes:
    styles = _styles()
    story: list = [
        Paragraph("Leave Requests Report", styles["Title"]),
        Paragraph(f"Generated on {generated_on.isoformat()}", styles["Meta"]),
        Paragraph(escape(period), styles["Meta"]),
        Spacer(1, 12),
    ]

    data: list[list[Any]] = [LEAVE_HEADERS]
    status_cells: list[tuple[int, LeaveStatus]] = []
    for index, req in enumerate(requests, 1):
        row = leave_row(req)
        # free-text columns wrap inside the cell
        for col in (8, 11):
            row[col] = Paragraph(escape(str(row[col])), styles["Cell"])
        row[7] = row[7].upper()
        data.append(row)
        status_cells.append((index, req.status))

    table = _grid(data)
    for row_index, status in status_cells:
        table.setStyle(TableStyle([
            ("TEXTCOLOR", (7, row_index), (7, row_index), STATUS_COLORS[status]),
        ]))
    story.append(table)
    story.append(Spacer(1, 12))

    summary = _grid([["Summary", ""], *[[label, str(value)] for label, value in status_summary(requests)]])
    story.append(summary)

    return _build_pdf(story, landscape(A4), "Leave Requests Report")


def balance_report_pdf(employees: Sequence[Employee], generated_on: date) -> bytes:
    styles = _styles()
    story: list = [
        Paragraph("Employee Leave Balances", styles["Title"]),
        Paragraph(f"Generated on {generated_on.isoformat()}", styles["Meta"]),
        Spacer(1, 12),
        _grid([BALANCE_HEADERS, *[balance_row(e) for e in employees]]),
    ]
    return _build_pdf(story, A4, "Employee Leave Balances")
