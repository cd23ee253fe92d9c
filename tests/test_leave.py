"""Leave module test suite — day counting, balance ledger, lifecycle table,
service flows (create/approve/reject/cancel/edit/override) and API endpoints.

Tests run against SQLite via the shared conftest.py fixtures.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from leavedesk.common.constants import LeaveDuration, LeaveStatus, LeaveType, UserRole
from leavedesk.common.exceptions import (
    ForbiddenException,
    InsufficientBalanceException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from leavedesk.config import settings
from leavedesk.leave.calendar import compute_days
from leavedesk.leave.ledger import (
    LeaveBalances,
    apply_credit,
    apply_debit,
    check_sufficient,
)
from leavedesk.leave.lifecycle import (
    LeaveAction,
    allowed_actions,
    ensure_editable,
    next_status,
    override_action,
)
from leavedesk.leave.models import LeaveRequest
from leavedesk.leave.schemas import LeaveRequestCreate, LeaveRequestUpdate, LeaveStatusOverride
from leavedesk.leave.service import LeaveService
from leavedesk.notifications.models import Notification
from tests.conftest import (
    auth_headers_for,
    create_employee,
    create_holiday,
    create_leave_request,
    reload_employee,
)

JUNE_3 = date(2024, 6, 3)
JUNE_5 = date(2024, 6, 5)


def _balances(**overrides) -> LeaveBalances:
    values = dict(
        annual=Decimal("25.0"),
        sick=Decimal("10.0"),
        personal=Decimal("3.0"),
        emergency=Decimal("5.0"),
    )
    values.update(overrides)
    return LeaveBalances(**values)


def _create(leave_type=LeaveType.annual, start=JUNE_3, end=JUNE_5,
            duration=LeaveDuration.full_day) -> LeaveRequestCreate:
    return LeaveRequestCreate(
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        duration=duration,
        reason="Family trip",
    )


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


# ═════════════════════════════════════════════════════════════════════
# Day counter
# ═════════════════════════════════════════════════════════════════════


class TestComputeDays:

    def test_same_day_full_day_is_one(self):
        assert compute_days(JUNE_3, JUNE_3, LeaveDuration.full_day) == Decimal("1")

    @pytest.mark.parametrize(
        "duration", [LeaveDuration.half_day_morning, LeaveDuration.half_day_afternoon],
    )
    @pytest.mark.parametrize("span", [0, 1, 10])
    def test_half_day_is_half_regardless_of_range(self, duration, span):
        end = JUNE_3 + timedelta(days=span)
        assert compute_days(JUNE_3, end, duration) == Decimal("0.5")

    def test_inclusive_range(self):
        assert compute_days(JUNE_3, JUNE_5, LeaveDuration.full_day) == Decimal("3")

    def test_holidays_inside_range_are_excluded(self):
        holidays = {date(2024, 6, 4), date(2024, 6, 4), date(2024, 7, 1)}
        assert compute_days(JUNE_3, JUNE_5, LeaveDuration.full_day, holidays) == Decimal("2")

    def test_boundary_holidays_count(self):
        holidays = [JUNE_3, JUNE_5]
        assert compute_days(JUNE_3, JUNE_5, LeaveDuration.full_day, holidays) == Decimal("1")

    def test_never_negative(self):
        holidays = [JUNE_3]
        assert compute_days(JUNE_3, JUNE_3, LeaveDuration.full_day, holidays) == Decimal("0")

    def test_non_increasing_as_holidays_grow(self):
        start, end = date(2024, 6, 1), date(2024, 6, 10)
        holidays: set[date] = set()
        previous = compute_days(start, end, LeaveDuration.full_day, holidays)
        for offset in range(10):
            holidays.add(start + timedelta(days=offset))
            current = compute_days(start, end, LeaveDuration.full_day, holidays)
            assert Decimal("0") <= current <= previous
            previous = current
        assert previous == Decimal("0")

    def test_reversed_range_uses_absolute_span(self):
        assert compute_days(JUNE_5, JUNE_3, LeaveDuration.full_day, {JUNE_5}) == Decimal("3")


# ═════════════════════════════════════════════════════════════════════
# Balance ledger
# ═════════════════════════════════════════════════════════════════════


class TestLedger:

    def test_sufficient_when_within_balance(self):
        check_sufficient(_balances(), LeaveType.annual, Decimal("25"))

    def test_insufficient_carries_available_and_requested(self):
        with pytest.raises(InsufficientBalanceException) as exc_info:
            check_sufficient(_balances(sick=Decimal("2.0")), LeaveType.sick, Decimal("3"))
        assert exc_info.value.available == Decimal("2.0")
        assert exc_info.value.requested == Decimal("3")
        assert exc_info.value.status_code == 422

    @pytest.mark.parametrize("leave_type", [LeaveType.maternity, LeaveType.paternity])
    def test_exempt_types_always_pass_and_never_mutate(self, leave_type):
        balances = _balances(annual=Decimal("0"))
        check_sufficient(balances, leave_type, Decimal("120"))
        assert apply_debit(balances, leave_type, Decimal("120")) == balances
        assert apply_credit(balances, leave_type, Decimal("5")) == balances
        assert balances.for_type(leave_type) is None

    def test_debit_returns_new_value(self):
        before = _balances()
        after = apply_debit(before, LeaveType.annual, Decimal("3"))
        assert after.annual == Decimal("22.0")
        assert before.annual == Decimal("25.0")
        assert after.sick == before.sick

    def test_debit_refuses_overdraft(self):
        with pytest.raises(InsufficientBalanceException):
            apply_debit(_balances(personal=Decimal("0.5")), LeaveType.personal, Decimal("1"))

    def test_credit_half_day(self):
        after = apply_credit(_balances(), LeaveType.emergency, Decimal("0.5"))
        assert after.emergency == Decimal("5.5")

    def test_negative_credit_rejected(self):
        with pytest.raises(ValueError):
            apply_credit(_balances(), LeaveType.annual, Decimal("-1"))

    def test_credit_capped_at_column_capacity(self):
        assert apply_credit(_balances(annual=Decimal("998.5")), LeaveType.annual, Decimal("0.5")).annual == Decimal("999.0")
        with pytest.raises(ValidationException) as exc_info:
            apply_credit(_balances(annual=Decimal("998.5")), LeaveType.annual, Decimal("1"))
        assert "days" in exc_info.value.errors

    def test_balances_are_frozen(self):
        balances = _balances()
        with pytest.raises(Exception):
            balances.annual = Decimal("1")


# ═════════════════════════════════════════════════════════════════════
# Lifecycle table
# ═════════════════════════════════════════════════════════════════════


class TestLifecycle:

    @pytest.mark.parametrize(
        "current,action,expected",
        [
            (LeaveStatus.pending, LeaveAction.approve, LeaveStatus.approved),
            (LeaveStatus.pending, LeaveAction.reject, LeaveStatus.rejected),
            (LeaveStatus.pending, LeaveAction.cancel, LeaveStatus.cancelled),
            (LeaveStatus.approved, LeaveAction.cancel, LeaveStatus.cancelled),
            (LeaveStatus.rejected, LeaveAction.cancel, LeaveStatus.cancelled),
        ],
    )
    def test_allowed(self, current, action, expected):
        assert next_status(current, action) == expected

    @pytest.mark.parametrize(
        "current,action",
        [
            (LeaveStatus.approved, LeaveAction.approve),
            (LeaveStatus.approved, LeaveAction.reject),
            (LeaveStatus.rejected, LeaveAction.approve),
            (LeaveStatus.rejected, LeaveAction.reject),
            (LeaveStatus.cancelled, LeaveAction.approve),
            (LeaveStatus.cancelled, LeaveAction.reject),
            (LeaveStatus.cancelled, LeaveAction.cancel),
        ],
    )
    def test_disallowed(self, current, action):
        with pytest.raises(InvalidTransitionException) as exc_info:
            next_status(current, action)
        assert exc_info.value.current == current.value
        assert exc_info.value.attempted == action.value

    def test_cancelled_has_no_actions(self):
        assert allowed_actions(LeaveStatus.cancelled) == []

    def test_only_pending_is_editable(self):
        ensure_editable(LeaveStatus.pending)
        with pytest.raises(InvalidTransitionException):
            ensure_editable(LeaveStatus.approved)

    def test_override_maps_target_to_action(self):
        assert override_action(LeaveStatus.rejected, LeaveStatus.approved) == LeaveAction.approve
        assert override_action(LeaveStatus.approved, LeaveStatus.cancelled) == LeaveAction.cancel

    @pytest.mark.parametrize(
        "current,target",
        [
            (LeaveStatus.approved, LeaveStatus.approved),
            (LeaveStatus.approved, LeaveStatus.pending),
        ],
    )
    def test_override_rejects_same_or_non_terminal_target(self, current, target):
        with pytest.raises(InvalidTransitionException):
            override_action(current, target)


# ═════════════════════════════════════════════════════════════════════
# Service - create
# ═════════════════════════════════════════════════════════════════════


class TestCreate:

    async def test_three_day_annual_request(self, db, employee):
        out = await LeaveService.create_request(db, employee.id, _create())
        await db.commit()

        assert out.total_days == Decimal("3")
        assert out.status == LeaveStatus.pending
        assert out.approved_by is None

    async def test_half_day_is_half_independent_of_span(self, db, employee):
        out = await LeaveService.create_request(
            db, employee.id,
            _create(start=JUNE_3, end=JUNE_3, duration=LeaveDuration.half_day_morning),
        )
        assert out.total_days == Decimal("0.5")

    async def test_stored_holiday_reduces_days(self, db, employee):
        await create_holiday(db, date(2024, 6, 4))
        await create_holiday(db, date(2024, 6, 4), country="US", name="Other country")

        out = await LeaveService.create_request(db, employee.id, _create())
        assert out.total_days == Decimal("2")

    async def test_insufficient_balance_persists_nothing(self, db):
        worker = await create_employee(db, sick_leave_balance=Decimal("2.0"))

        with pytest.raises(InsufficientBalanceException) as exc_info:
            await LeaveService.create_request(db, worker.id, _create(leave_type=LeaveType.sick))

        assert exc_info.value.available == Decimal("2.0")
        assert exc_info.value.requested == Decimal("3")
        assert await _count(db, LeaveRequest) == 0

    async def test_exempt_type_skips_balance_check(self, db):
        worker = await create_employee(db, annual_leave_balance=Decimal("0"))
        out = await LeaveService.create_request(
            db, worker.id,
            _create(leave_type=LeaveType.maternity, end=JUNE_3 + timedelta(days=89)),
        )
        assert out.total_days == Decimal("90")

    async def test_all_days_holidays_rejected(self, db, employee):
        await create_holiday(db, JUNE_3)
        with pytest.raises(ValidationException):
            await LeaveService.create_request(db, employee.id, _create(end=JUNE_3))

    async def test_unknown_employee(self, db):
        import uuid

        with pytest.raises(NotFoundException):
            await LeaveService.create_request(db, uuid.uuid4(), _create())

    async def test_inactive_employee_counts_as_missing(self, db):
        worker = await create_employee(db)
        worker.is_active = False
        await db.commit()

        with pytest.raises(NotFoundException):
            await LeaveService.create_request(db, worker.id, _create())

    async def test_notifies_every_privileged_user_but_the_owner(self, db, employee, manager, admin):
        await LeaveService.create_request(db, employee.id, _create())
        await db.commit()

        recipients = (await db.execute(select(Notification.recipient_id))).scalars().all()
        assert sorted(map(str, recipients)) == sorted([str(manager.id), str(admin.id)])

    async def test_manager_own_request_does_not_notify_self(self, db, manager):
        await LeaveService.create_request(db, manager.id, _create())
        await db.commit()
        assert await _count(db, Notification) == 0

    def test_reversed_dates_rejected_by_schema(self):
        with pytest.raises(ValueError):
            _create(start=JUNE_5, end=JUNE_3)


# ═════════════════════════════════════════════════════════════════════
# Service - approve / reject
# ═════════════════════════════════════════════════════════════════════


class TestDecisions:

    async def test_approve_debits_matching_counter(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        out = await LeaveService.approve(db, created.id, manager, comments="Enjoy")
        await db.commit()

        assert out.status == LeaveStatus.approved
        assert out.approved_by == manager.id
        assert out.approved_at is not None
        assert out.approval_comments == "Enjoy"

        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("22.0")
        assert fresh.sick_leave_balance == Decimal("10.0")

    async def test_approve_exempt_type_leaves_balances(self, db, employee, manager):
        created = await LeaveService.create_request(
            db, employee.id, _create(leave_type=LeaveType.paternity),
        )
        await LeaveService.approve(db, created.id, manager)
        await db.commit()

        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("25.0")

    async def test_reject_keeps_balance(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        out = await LeaveService.reject(db, created.id, manager, comments="Busy week")
        await db.commit()

        assert out.status == LeaveStatus.rejected
        assert out.approved_by == manager.id
        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("25.0")

    async def test_approve_after_reject_is_invalid(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.reject(db, created.id, manager)
        await db.commit()

        with pytest.raises(InvalidTransitionException) as exc_info:
            await LeaveService.approve(db, created.id, manager)
        assert exc_info.value.current == "rejected"
        assert exc_info.value.attempted == "approve"

        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("25.0")

    async def test_double_approve_debits_once(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.approve(db, created.id, manager)
        await db.commit()

        with pytest.raises(InvalidTransitionException):
            await LeaveService.approve(db, created.id, manager)
        with pytest.raises(InvalidTransitionException):
            await LeaveService.reject(db, created.id, manager)

        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("22.0")

    async def test_approve_revalidates_balance(self, db, manager):
        worker = await create_employee(db, personal_leave_balance=Decimal("3.0"))
        req = await create_leave_request(
            db, worker, leave_type=LeaveType.personal, total_days=Decimal("5"),
        )

        with pytest.raises(InsufficientBalanceException):
            await LeaveService.approve(db, req.id, manager)

    async def test_approve_missing_request(self, db, manager):
        import uuid

        with pytest.raises(NotFoundException):
            await LeaveService.approve(db, uuid.uuid4(), manager)

    async def test_notification_failure_does_not_undo_approval(self, db, employee, manager, monkeypatch):
        async def _boom(*args, **kwargs):
            raise RuntimeError("notification backend down")

        monkeypatch.setattr("leavedesk.leave.service.notify_leave_approved", _boom)

        created = await LeaveService.create_request(db, employee.id, _create())
        out = await LeaveService.approve(db, created.id, manager)
        await db.commit()

        assert out.status == LeaveStatus.approved
        stored = await db.get(LeaveRequest, created.id, populate_existing=True)
        assert stored.status == LeaveStatus.approved
        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("22.0")

    async def test_approval_notifies_owner(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.approve(db, created.id, manager)
        await db.commit()

        titles = (await db.execute(
            select(Notification.title).where(Notification.recipient_id == employee.id)
        )).scalars().all()
        assert titles == ["Leave Request Approved"]


# ═════════════════════════════════════════════════════════════════════
# Service - cancel
# ═════════════════════════════════════════════════════════════════════


class TestCancel:

    async def test_owner_cancels_pending(self, db, employee):
        created = await LeaveService.create_request(db, employee.id, _create())
        out = await LeaveService.cancel(db, created.id, employee)
        assert out.status == LeaveStatus.cancelled
        assert out.cancelled_at is not None

    async def test_employee_cannot_cancel_someone_else(self, db, employee):
        other = await create_employee(db, name="Other Person")
        req = await create_leave_request(db, other)

        with pytest.raises(ForbiddenException):
            await LeaveService.cancel(db, req.id, employee)

    async def test_manager_cancels_someone_else(self, db, employee, manager):
        req = await create_leave_request(db, employee)
        out = await LeaveService.cancel(db, req.id, manager)
        await db.commit()

        assert out.status == LeaveStatus.cancelled
        owner_notes = await db.execute(
            select(Notification).where(Notification.recipient_id == employee.id)
        )
        assert len(owner_notes.scalars().all()) == 1

    async def test_cancel_twice_is_invalid(self, db, employee):
        req = await create_leave_request(db, employee)
        await LeaveService.cancel(db, req.id, employee)
        await db.commit()

        with pytest.raises(InvalidTransitionException):
            await LeaveService.cancel(db, req.id, employee)

    async def test_cancel_rejected_allowed(self, db, employee):
        req = await create_leave_request(db, employee, status=LeaveStatus.rejected)
        out = await LeaveService.cancel(db, req.id, employee)
        assert out.status == LeaveStatus.cancelled

    async def test_cancel_approved_keeps_debit_by_default(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.approve(db, created.id, manager)
        await LeaveService.cancel(db, created.id, employee)
        await db.commit()

        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("22.0")

    async def test_cancel_approved_refunds_when_enabled(self, db, employee, manager, monkeypatch):
        monkeypatch.setattr(settings, "REFUND_ON_APPROVED_CANCEL", True)

        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.approve(db, created.id, manager)
        await LeaveService.cancel(db, created.id, employee)
        await db.commit()

        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("25.0")

    async def test_cancel_approved_notifies_approver(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.approve(db, created.id, manager)
        await LeaveService.cancel(db, created.id, employee)
        await db.commit()

        titles = (await db.execute(
            select(Notification.title).where(Notification.recipient_id == manager.id)
        )).scalars().all()
        assert "Leave Request Cancelled" in titles


# ═════════════════════════════════════════════════════════════════════
# Service - edit commands
# ═════════════════════════════════════════════════════════════════════


class TestEdit:

    async def test_details_update_recomputes_days(self, db, employee):
        created = await LeaveService.create_request(db, employee.id, _create())
        out = await LeaveService.update_details(
            db, created.id,
            LeaveRequestUpdate(end_date=date(2024, 6, 7), reason="Longer trip"),
            employee,
        )
        assert out.total_days == Decimal("5")
        assert out.reason == "Longer trip"
        assert out.status == LeaveStatus.pending

    async def test_details_update_rechecks_balance(self, db):
        worker = await create_employee(db, emergency_leave_balance=Decimal("1.0"))
        created = await LeaveService.create_request(
            db, worker.id, _create(leave_type=LeaveType.emergency, end=JUNE_3),
        )
        with pytest.raises(InsufficientBalanceException):
            await LeaveService.update_details(
                db, created.id, LeaveRequestUpdate(end_date=JUNE_5), worker,
            )

    async def test_details_update_only_while_pending(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.approve(db, created.id, manager)
        await db.commit()

        with pytest.raises(InvalidTransitionException):
            await LeaveService.update_details(
                db, created.id, LeaveRequestUpdate(reason="Changed my mind"), employee,
            )

    async def test_details_update_rejects_reversed_range(self, db, employee):
        created = await LeaveService.create_request(db, employee.id, _create())
        with pytest.raises(ValidationException):
            await LeaveService.update_details(
                db, created.id, LeaveRequestUpdate(start_date=date(2024, 6, 10)), employee,
            )

    async def test_details_update_by_stranger_forbidden(self, db, employee):
        other = await create_employee(db, name="Other Person")
        req = await create_leave_request(db, other)
        with pytest.raises(ForbiddenException):
            await LeaveService.update_details(
                db, req.id, LeaveRequestUpdate(reason="Sneaky"), employee,
            )

    def test_details_update_cannot_carry_status(self):
        with pytest.raises(ValueError):
            LeaveRequestUpdate(status="approved")

    async def test_override_rejected_to_approved_debits(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.reject(db, created.id, manager)
        out = await LeaveService.override_status(
            db, created.id,
            LeaveStatusOverride(status=LeaveStatus.approved, comments="Reconsidered"),
            manager,
        )
        await db.commit()

        assert out.status == LeaveStatus.approved
        assert out.approval_comments == "Reconsidered"
        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("22.0")

    async def test_override_approved_to_rejected_keeps_debit_by_default(self, db, employee, manager):
        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.approve(db, created.id, manager)
        out = await LeaveService.override_status(
            db, created.id, LeaveStatusOverride(status=LeaveStatus.rejected), manager,
        )
        await db.commit()

        assert out.status == LeaveStatus.rejected
        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("22.0")

    async def test_override_to_cancelled_refunds_when_enabled(self, db, employee, manager, monkeypatch):
        monkeypatch.setattr(settings, "REFUND_ON_APPROVED_CANCEL", True)

        created = await LeaveService.create_request(db, employee.id, _create())
        await LeaveService.approve(db, created.id, manager)
        out = await LeaveService.override_status(
            db, created.id, LeaveStatusOverride(status=LeaveStatus.cancelled), manager,
        )
        await db.commit()

        assert out.cancelled_at is not None
        fresh = await reload_employee(db, employee.id)
        assert fresh.annual_leave_balance == Decimal("25.0")

    async def test_override_to_same_status_invalid(self, db, employee, manager):
        req = await create_leave_request(db, employee, status=LeaveStatus.rejected)
        with pytest.raises(InvalidTransitionException):
            await LeaveService.override_status(
                db, req.id, LeaveStatusOverride(status=LeaveStatus.rejected), manager,
            )

    async def test_override_back_to_pending_invalid(self, db, employee, manager):
        req = await create_leave_request(db, employee, status=LeaveStatus.approved)
        with pytest.raises(InvalidTransitionException):
            await LeaveService.override_status(
                db, req.id, LeaveStatusOverride(status=LeaveStatus.pending), manager,
            )

    async def test_override_requires_privilege(self, db, employee):
        req = await create_leave_request(db, employee, status=LeaveStatus.rejected)
        with pytest.raises(ForbiddenException):
            await LeaveService.override_status(
                db, req.id, LeaveStatusOverride(status=LeaveStatus.approved), employee,
            )


# ═════════════════════════════════════════════════════════════════════
# API endpoints
# ═════════════════════════════════════════════════════════════════════


def _body(**overrides) -> dict:
    body = {
        "leave_type": "annual",
        "start_date": "2024-06-03",
        "end_date": "2024-06-05",
        "duration": "full_day",
        "reason": "Family trip",
    }
    body.update(overrides)
    return body


class TestLeaveAPI:

    async def test_apply_and_list_own(self, client, auth_headers):
        resp = await client.post("/api/v1/leave-requests", json=_body(), headers=auth_headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "pending"
        assert float(data["total_days"]) == 3.0

        resp = await client.get("/api/v1/leave-requests", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["meta"]["total"] == 1

    async def test_requires_auth(self, client):
        resp = await client.post("/api/v1/leave-requests", json=_body())
        assert resp.status_code == 401

    async def test_invalid_dates_are_422(self, client, auth_headers):
        resp = await client.post(
            "/api/v1/leave-requests",
            json=_body(start_date="2024-06-10"),
            headers=auth_headers,
        )
        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith("application/problem+json")

    async def test_insufficient_balance_problem_detail(self, client, db):
        worker = await create_employee(db, sick_leave_balance=Decimal("2.0"))
        headers = await auth_headers_for(db, worker)

        resp = await client.post(
            "/api/v1/leave-requests", json=_body(leave_type="sick"), headers=headers,
        )
        assert resp.status_code == 422
        problem = resp.json()
        assert problem["type"].endswith("/insufficient-balance")
        assert "Available: 2.0" in problem["detail"]

    async def test_employee_cannot_list_all(self, client, auth_headers):
        resp = await client.get("/api/v1/leave-requests/all", headers=auth_headers)
        assert resp.status_code == 403

    async def test_manager_approves_and_second_approve_conflicts(
        self, client, db, employee, auth_headers, manager_headers,
    ):
        created = (await client.post(
            "/api/v1/leave-requests", json=_body(), headers=auth_headers,
        )).json()

        resp = await client.patch(
            f"/api/v1/leave-requests/{created['id']}/approve",
            json={"comments": "OK"},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"

        resp = await client.patch(
            f"/api/v1/leave-requests/{created['id']}/approve", headers=manager_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["type"].endswith("/invalid-transition")

        resp = await client.get("/api/v1/employees/me/balances", headers=auth_headers)
        assert float(resp.json()["data"]["annual"]) == 22.0

    async def test_employee_cannot_approve(self, client, db, employee, auth_headers):
        req = await create_leave_request(db, employee)
        resp = await client.patch(
            f"/api/v1/leave-requests/{req.id}/approve", headers=auth_headers,
        )
        assert resp.status_code == 403

    async def test_list_all_filters_by_status(self, client, db, employee, manager_headers):
        await create_leave_request(db, employee)
        await create_leave_request(db, employee, status=LeaveStatus.approved)

        resp = await client.get(
            "/api/v1/leave-requests/all",
            params={"status": "approved"},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["employee"]["name"] == "Nimal Perera"

    async def test_get_other_employees_request_forbidden(self, client, db, auth_headers):
        other = await create_employee(db, name="Other Person")
        req = await create_leave_request(db, other)
        resp = await client.get(f"/api/v1/leave-requests/{req.id}", headers=auth_headers)
        assert resp.status_code == 403

    async def test_status_override_endpoint(self, client, db, employee, manager_headers):
        req = await create_leave_request(db, employee, status=LeaveStatus.rejected)
        resp = await client.patch(
            f"/api/v1/leave-requests/{req.id}/status",
            json={"status": "approved", "comments": "Reconsidered"},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"

    async def test_cancel_endpoint(self, client, db, employee, auth_headers):
        req = await create_leave_request(db, employee)
        resp = await client.patch(f"/api/v1/leave-requests/{req.id}/cancel", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"

    async def test_delete_is_admin_only(self, client, db, employee, manager_headers, admin_headers):
        req = await create_leave_request(db, employee)

        resp = await client.delete(f"/api/v1/leave-requests/{req.id}", headers=manager_headers)
        assert resp.status_code == 403

        resp = await client.delete(f"/api/v1/leave-requests/{req.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert await _count(db, LeaveRequest) == 0

    async def test_unknown_request_is_404(self, client, manager_headers):
        import uuid

        resp = await client.get(f"/api/v1/leave-requests/{uuid.uuid4()}", headers=manager_headers)
        assert resp.status_code == 404
