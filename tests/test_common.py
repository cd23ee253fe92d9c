"""Tests for common utilities — filters, sorting, pagination, problem details."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.audit import audit_value, snapshot
from leavedesk.common.constants import LeaveStatus, UserRole
from leavedesk.common.exceptions import (
    ConflictError,
    InsufficientBalanceException,
    InvalidTransitionException,
    NotFoundException,
)
from leavedesk.common.filters import _get_column, apply_filters, apply_sorting
from leavedesk.common.pagination import PaginationParams, paginate
from leavedesk.employees.models import Employee
from tests.conftest import create_employee


def _params(page: int = 1, page_size: int = 50, sort=None) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size, sort=sort)


async def _names(db: AsyncSession, query) -> list[str]:
    return [e.name for e in (await db.execute(query)).scalars().all()]


@pytest.fixture
async def staff(db):
    await create_employee(db, name="Anura Bandara", email="anura@leavedesk.io")
    await create_employee(db, name="Chamari Dias", email="chamari@leavedesk.io", role=UserRole.manager)
    await create_employee(db, name="Bimal Jayasuriya", email="bimal@leavedesk.io")


# ═════════════════════════════════════════════════════════════════════
# FILTER TESTS
# ═════════════════════════════════════════════════════════════════════


class TestApplyFilters:

    async def test_filter_by_equality(self, db, staff):
        query = apply_filters(select(Employee), Employee, {"role": UserRole.manager})
        assert await _names(db, query) == ["Chamari Dias"]

    async def test_filter_none_values_skipped(self, db, staff):
        query = apply_filters(select(Employee), Employee, {"role": None})
        assert len(await _names(db, query)) == 3

    async def test_filter_by_ilike(self, db, staff):
        query = apply_filters(select(Employee), Employee, {"name__ilike": "MAL"})
        assert await _names(db, query) == ["Bimal Jayasuriya"]

    async def test_filter_by_from_to_range(self, db):
        await create_employee(db, name="Low", annual_leave_balance=Decimal("5"))
        await create_employee(db, name="Mid", annual_leave_balance=Decimal("15"))
        await create_employee(db, name="High", annual_leave_balance=Decimal("30"))

        query = apply_filters(
            select(Employee), Employee,
            {"annual_leave_balance__from": Decimal("10"), "annual_leave_balance__to": Decimal("20")},
        )
        assert await _names(db, query) == ["Mid"]

    async def test_filter_by_in(self, db, staff):
        query = apply_filters(
            select(Employee).order_by(Employee.name), Employee,
            {"email__in": ["anura@leavedesk.io", "bimal@leavedesk.io"]},
        )
        assert await _names(db, query) == ["Anura Bandara", "Bimal Jayasuriya"]

    async def test_filter_nonexistent_column_ignored(self, db, staff):
        query = apply_filters(select(Employee), Employee, {"department": "HR"})
        assert len(await _names(db, query)) == 3


class TestApplySorting:

    async def test_sort_ascending(self, db, staff):
        query = apply_sorting(select(Employee), Employee, "name")
        assert await _names(db, query) == ["Anura Bandara", "Bimal Jayasuriya", "Chamari Dias"]

    async def test_sort_descending_overrides_default_order(self, db, staff):
        query = apply_sorting(select(Employee).order_by(Employee.email), Employee, "-name")
        assert await _names(db, query) == ["Chamari Dias", "Bimal Jayasuriya", "Anura Bandara"]

    async def test_sort_by_several_columns(self, db, staff):
        await create_employee(db, name="Anura Bandara", email="anura.b@leavedesk.io")
        query = apply_sorting(select(Employee), Employee, "name, -email, bogus")
        emails = [e.email for e in (await db.execute(query)).scalars().all()]
        assert emails[:2] == ["anura@leavedesk.io", "anura.b@leavedesk.io"]

    def test_sort_none_no_op(self):
        query = select(Employee)
        assert apply_sorting(query, Employee, None) is query

    def test_sort_nonexistent_column_ignored(self):
        query = select(Employee)
        assert apply_sorting(query, Employee, "-salary") is query

    def test_get_column(self):
        assert _get_column(Employee, "email") is Employee.email
        assert _get_column(Employee, "nope") is None
        assert _get_column(Employee, "__tablename__") is None


# ═════════════════════════════════════════════════════════════════════
# PAGINATION TESTS
# ═════════════════════════════════════════════════════════════════════


class TestPaginate:

    async def test_paginate_with_sort(self, db, staff):
        page = await paginate(db, select(Employee), _params(sort="-name"), model=Employee)
        assert [e.name for e in page.data] == ["Chamari Dias", "Bimal Jayasuriya", "Anura Bandara"]
        assert page.meta.total == 3
        assert page.meta.total_pages == 1
        assert page.meta.has_next is False
        assert page.meta.has_prev is False

    async def test_paginate_page_2(self, db, staff):
        page = await paginate(
            db, select(Employee).order_by(Employee.name), _params(page=2, page_size=2),
        )
        assert [e.name for e in page.data] == ["Chamari Dias"]
        assert page.meta.total_pages == 2
        assert page.meta.has_prev is True
        assert page.meta.has_next is False

    async def test_paginate_empty_result(self, db):
        page = await paginate(db, select(Employee), _params())
        assert page.data == []
        assert page.meta.total == 0
        assert page.meta.total_pages == 0


# ═════════════════════════════════════════════════════════════════════
# EXCEPTION TESTS
# ═════════════════════════════════════════════════════════════════════


class TestExceptions:

    def test_not_found_detail(self):
        exc = NotFoundException("LeaveRequest", "abc")
        assert exc.status_code == 404
        assert exc.title == "LeaveRequest Not Found"
        assert "abc" in exc.detail

    def test_conflict_lists_field(self):
        exc = ConflictError("email", "a@leavedesk.io")
        assert exc.status_code == 409
        assert exc.errors == {"email": ["'a@leavedesk.io' is already in use."]}

    def test_insufficient_balance_carries_amounts(self):
        exc = InsufficientBalanceException(Decimal("2.0"), Decimal("3.5"))
        assert exc.status_code == 422
        assert exc.detail == "Insufficient leave balance. Available: 2.0 days, Requested: 3.5 days."

    def test_invalid_transition_accepts_enums(self):
        exc = InvalidTransitionException(LeaveStatus.rejected, "approve")
        assert exc.status_code == 409
        assert exc.detail == "Cannot approve a leave request that is rejected."

    async def test_problem_detail_response(self, client, auth_headers):
        resp = await client.get(
            "/api/v1/leave-requests/00000000-0000-0000-0000-000000000000",
            headers=auth_headers,
        )
        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("application/problem+json")
        body = resp.json()
        assert body["type"].endswith("/not-found")
        assert body["status"] == 404
        assert body["instance"] == "/api/v1/leave-requests/00000000-0000-0000-0000-000000000000"

    async def test_request_validation_is_problem_detail(self, client, auth_headers):
        resp = await client.get("/api/v1/leave-requests/not-a-uuid", headers=auth_headers)
        assert resp.status_code == 422
        body = resp.json()
        assert body["title"] == "Validation Error"
        assert "request_id" in body["errors"]

    async def test_unauthorized_is_problem_detail(self, client):
        resp = await client.get("/api/v1/employees/me/balances")
        assert resp.status_code == 401
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert resp.json()["type"].endswith("/unauthorized")


# ═════════════════════════════════════════════════════════════════════
# AUDIT HELPERS
# ═════════════════════════════════════════════════════════════════════


class TestAuditValues:

    def test_audit_value_normalises_column_types(self):
        assert audit_value(LeaveStatus.approved) == "approved"
        assert audit_value(date(2024, 6, 3)) == "2024-06-03"
        assert audit_value(Decimal("2.5")) == "2.5"
        assert audit_value(None) is None
        assert audit_value(True) is True

    async def test_snapshot_reads_named_fields(self, db, staff):
        emp = (await db.execute(select(Employee).where(Employee.name == "Chamari Dias"))).scalar_one()
        assert snapshot(emp, ("email", "role", "annual_leave_balance")) == {
            "email": "chamari@leavedesk.io",
            "role": "manager",
            "annual_leave_balance": "25.0",
        }
