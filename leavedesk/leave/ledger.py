"""Balance ledger — pure functions over an immutable balance snapshot.

The service loads a ``LeaveBalances`` value from the employee row, asks the
ledger for a new value, and writes it back with ``store_balances``. Nothing
here touches the database.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict

from leavedesk.common.constants import (
    BALANCE_EXEMPT_TYPES,
    BALANCE_QUANTUM,
    MAX_BALANCE,
    LeaveType,
)
from leavedesk.common.exceptions import InsufficientBalanceException, ValidationException

if TYPE_CHECKING:
    from leavedesk.employees.models import Employee

# Leave type → attribute on both LeaveBalances and the Employee row
_BALANCE_FIELDS: dict[LeaveType, tuple[str, str]] = {
    LeaveType.annual: ("annual", "annual_leave_balance"),
    LeaveType.sick: ("sick", "sick_leave_balance"),
    LeaveType.personal: ("personal", "personal_leave_balance"),
    LeaveType.emergency: ("emergency", "emergency_leave_balance"),
}


def _quantize(value: Decimal) -> Decimal:
    return Decimal(value).quantize(BALANCE_QUANTUM, rounding=ROUND_HALF_UP)


# ═════════════════════════════════════════════════════════════════════
# Value type
# ═════════════════════════════════════════════════════════════════════


class LeaveBalances(BaseModel):
    """Snapshot of one employee's four tracked counters, in days."""

    model_config = ConfigDict(frozen=True)

    annual: Decimal
    sick: Decimal
    personal: Decimal
    emergency: Decimal

    @classmethod
    def from_employee(cls, employee: Employee) -> LeaveBalances:
        return cls(
            annual=_quantize(employee.annual_leave_balance),
            sick=_quantize(employee.sick_leave_balance),
            personal=_quantize(employee.personal_leave_balance),
            emergency=_quantize(employee.emergency_leave_balance),
        )

    def for_type(self, leave_type: LeaveType) -> Optional[Decimal]:
        """Counter for *leave_type*, or None for balance-exempt types."""
        fields = _BALANCE_FIELDS.get(leave_type)
        if fields is None:
            return None
        return getattr(self, fields[0])

    def replace(self, leave_type: LeaveType, value: Decimal) -> LeaveBalances:
        return self.model_copy(update={_BALANCE_FIELDS[leave_type][0]: _quantize(value)})


def store_balances(employee: Employee, balances: LeaveBalances) -> None:
    """Copy *balances* onto the employee row; the caller flushes."""
    for value_field, column in _BALANCE_FIELDS.values():
        setattr(employee, column, getattr(balances, value_field))


def is_balance_exempt(leave_type: LeaveType) -> bool:
    return leave_type in BALANCE_EXEMPT_TYPES


# ═════════════════════════════════════════════════════════════════════
# Operations
# ═════════════════════════════════════════════════════════════════════


def check_sufficient(
    balances: LeaveBalances,
    leave_type: LeaveType,
    requested_days: Decimal,
) -> None:
    """Raise ``InsufficientBalanceException`` if *requested_days* exceeds the counter.

    Maternity and paternity leave are never checked.
    """
    if is_balance_exempt(leave_type):
        return
    available = balances.for_type(leave_type)
    if requested_days > available:
        raise InsufficientBalanceException(available=available, requested=requested_days)


def apply_debit(
    balances: LeaveBalances,
    leave_type: LeaveType,
    days: Decimal,
) -> LeaveBalances:
    """Return a new snapshot with *days* taken from the matching counter.

    Never goes below zero: an overdraft raises instead. Exempt types return
    *balances* unchanged.
    """
    if is_balance_exempt(leave_type):
        return balances
    check_sufficient(balances, leave_type, days)
    return balances.replace(leave_type, balances.for_type(leave_type) - days)


def apply_credit(
    balances: LeaveBalances,
    leave_type: LeaveType,
    days: Decimal,
) -> LeaveBalances:
    """Return a new snapshot with *days* added to the matching counter.

    A credit that would take the counter past ``MAX_BALANCE`` raises
    ``ValidationException`` and leaves *balances* as they were.
    """
    if is_balance_exempt(leave_type):
        return balances
    if days < 0:
        raise ValueError("Credit must not be negative.")
    new_value = balances.for_type(leave_type) + days
    if new_value > MAX_BALANCE:
        raise ValidationException({
            "days": [f"Balance would reach {_quantize(new_value)} days; the maximum is {MAX_BALANCE}."],
        })
    return balances.replace(leave_type, new_value)
