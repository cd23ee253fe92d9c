"""Leave-request state machine.

Every status change goes through this table. Services ask for the next
status and never compare status values themselves.
"""

from __future__ import annotations

import enum

from leavedesk.common.constants import TERMINAL_STATUSES, LeaveStatus
from leavedesk.common.exceptions import InvalidTransitionException


class LeaveAction(str, enum.Enum):
    approve = "approve"
    reject = "reject"
    cancel = "cancel"
    edit = "edit"


# (current status, action) → resulting status
_TRANSITIONS: dict[tuple[LeaveStatus, LeaveAction], LeaveStatus] = {
    (LeaveStatus.pending, LeaveAction.approve): LeaveStatus.approved,
    (LeaveStatus.pending, LeaveAction.reject): LeaveStatus.rejected,
    (LeaveStatus.pending, LeaveAction.cancel): LeaveStatus.cancelled,
    (LeaveStatus.pending, LeaveAction.edit): LeaveStatus.pending,
    (LeaveStatus.approved, LeaveAction.cancel): LeaveStatus.cancelled,
    (LeaveStatus.rejected, LeaveAction.cancel): LeaveStatus.cancelled,
}

# Target status of an override → the action whose side effects it carries
_OVERRIDE_ACTIONS: dict[LeaveStatus, LeaveAction] = {
    LeaveStatus.approved: LeaveAction.approve,
    LeaveStatus.rejected: LeaveAction.reject,
    LeaveStatus.cancelled: LeaveAction.cancel,
}


def next_status(current: LeaveStatus, action: LeaveAction) -> LeaveStatus:
    """Status reached by applying *action* to a request in *current*."""
    try:
        return _TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidTransitionException(current, action) from None


def allowed_actions(current: LeaveStatus) -> list[LeaveAction]:
    return [action for (status, action) in _TRANSITIONS if status == current]


def ensure_editable(current: LeaveStatus) -> None:
    """Details (type, dates, duration, reason) change only while pending."""
    next_status(current, LeaveAction.edit)


def override_action(current: LeaveStatus, target: LeaveStatus) -> LeaveAction:
    """Validate a privileged status override and return the action it implies.

    The target must be a terminal status other than *current*. Unlike the
    ordinary transitions an override may leave a decided request, e.g.
    turning a rejection into an approval.
    """
    if target not in TERMINAL_STATUSES or target == current:
        raise InvalidTransitionException(current, f"set status to {target.value} on")
    return _OVERRIDE_ACTIONS[target]
