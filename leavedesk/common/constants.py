"""Enums and constants for LeaveDesk — stored by member name in the database."""

from __future__ import annotations

from decimal import Decimal
import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    admin = "admin"


PRIVILEGED_ROLES: frozenset[UserRole] = frozenset({UserRole.manager, UserRole.admin})


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    annual = "annual"
    sick = "sick"
    maternity = "maternity"
    paternity = "paternity"
    emergency = "emergency"
    personal = "personal"


# Tracked but never checked against, or debited from, a balance counter
BALANCE_EXEMPT_TYPES: frozenset[LeaveType] = frozenset(
    {LeaveType.maternity, LeaveType.paternity}
)


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


TERMINAL_STATUSES: frozenset[LeaveStatus] = frozenset(
    {LeaveStatus.approved, LeaveStatus.rejected, LeaveStatus.cancelled}
)


class LeaveDuration(str, enum.Enum):
    full_day = "full_day"
    half_day_morning = "half_day_morning"
    half_day_afternoon = "half_day_afternoon"


HALF_DAY_DURATIONS: frozenset[LeaveDuration] = frozenset(
    {LeaveDuration.half_day_morning, LeaveDuration.half_day_afternoon}
)


class PaidLeaveType(str, enum.Enum):
    bonus = "bonus"
    compensation = "compensation"
    award = "award"
    other = "other"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    info = "info"
    action_required = "action_required"
    approval = "approval"
    alert = "alert"


# ── Balances ────────────────────────────────────────────────────────

DEFAULT_ANNUAL_BALANCE = Decimal("25.0")
DEFAULT_SICK_BALANCE = Decimal("10.0")
DEFAULT_PERSONAL_BALANCE = Decimal("3.0")
DEFAULT_EMERGENCY_BALANCE = Decimal("5.0")

HALF_DAY = Decimal("0.5")
BALANCE_QUANTUM = Decimal("0.1")
# Largest counter value; balance columns are NUMERIC(4, 1)
MAX_BALANCE = Decimal("999.0")

# ── Public holidays ─────────────────────────────────────────────────

SUPPORTED_HOLIDAY_COUNTRIES: dict[str, str] = {
    "LK": "Sri Lanka",
    "US": "United States",
    "GB": "United Kingdom",
    "AU": "Australia",
    "CA": "Canada",
    "IN": "India",
    "DE": "Germany",
    "FR": "France",
    "JP": "Japan",
    "SG": "Singapore",
    "MY": "Malaysia",
    "TH": "Thailand",
    "NZ": "New Zealand",
    "ZA": "South Africa",
}

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
