"""Notification service: per-employee inbox plus the in-app and email
dispatchers the leave and paid-leave services call after a transition."""

from __future__ import annotations

import html
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Optional

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import NotificationType
from leavedesk.common.exceptions import ForbiddenException, NotFoundException
from leavedesk.common.pagination import PaginationParams, paginate
from leavedesk.config import settings
from leavedesk.notifications.mailer import build_email, email_enabled, send_email_async
from leavedesk.notifications.models import Notification
from leavedesk.notifications.schemas import (
    NotificationListMeta,
    NotificationListResponse,
    NotificationResponse,
)

logger = logging.getLogger(__name__)


def _inbox(employee_id: uuid.UUID) -> Select:
    return select(Notification).where(Notification.recipient_id == employee_id)


def _unread(employee_id: uuid.UUID):
    return (Notification.recipient_id == employee_id, Notification.is_read.is_(False))


class NotificationService:
    """In-app notifications. Every write only flushes; the request commits."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        title: str,
        message: str,
        type: NotificationType = NotificationType.info,
        action_url: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.add(notification)
        await db.flush()
        logger.debug("Notification %r queued for %s", title, recipient_id)
        return notification

    @staticmethod
    async def get_notifications(
        db: AsyncSession,
        employee_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        is_read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
    ) -> NotificationListResponse:
        """One page of the inbox, newest first; ``meta.unread`` ignores the filters."""
        query = _inbox(employee_id).order_by(Notification.created_at.desc())
        if is_read is not None:
            query = query.where(Notification.is_read.is_(is_read))
        if notification_type is not None:
            query = query.where(Notification.type == notification_type)

        page = await paginate(
            db, query, pagination,
            model=Notification,
            transform=NotificationResponse.model_validate,
        )
        unread = await NotificationService.get_unread_count(db, employee_id)
        return NotificationListResponse(
            data=page.data,
            meta=NotificationListMeta(**page.meta.model_dump(), unread=unread),
        )

    @staticmethod
    async def get_owned(
        db: AsyncSession,
        notification_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Notification:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException("Notification", notification_id)
        if notification.recipient_id != employee_id:
            raise ForbiddenException("You can only access your own notifications.")
        return notification

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        notification_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Notification:
        """Mark one notification read; the first read_at is kept on repeat calls."""
        notification = await NotificationService.get_owned(db, notification_id, employee_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, employee_id: uuid.UUID) -> int:
        """Mark every unread notification read; returns how many changed."""
        result = await db.execute(
            update(Notification)
            .where(*_unread(employee_id))
            .values(is_read=True, read_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    @staticmethod
    async def get_unread_count(db: AsyncSession, employee_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count()).select_from(Notification).where(*_unread(employee_id))
        )
        return result.scalar_one()


# ── Fire-and-forget wrapper ─────────────────────────────────────────


async def dispatch_safely(
    db: AsyncSession,
    dispatcher: Callable[..., Awaitable[Any]],
    *args: Any,
) -> bool:
    """Run a dispatcher inside a SAVEPOINT.

    A failing notification is rolled back to the savepoint and logged; the
    caller's transition stays intact. Returns True if it was delivered.
    """
    try:
        async with db.begin_nested():
            await dispatcher(db, *args)
    except Exception:
        logger.exception("Notification %s failed", getattr(dispatcher, "__name__", dispatcher))
        return False
    return True


# ── Cross-module helper dispatchers ─────────────────────────────────
# Imported by the leave / paid-leave services. They accept the ORM object
# directly to avoid tight schema coupling.


def _describe(leave_request) -> str:
    return (
        f"{leave_request.leave_type.value} leave from {leave_request.start_date} to "
        f"{leave_request.end_date} ({leave_request.total_days} day(s))"
    )


async def notify_leave_request(
    db: AsyncSession,
    leave_request,  # leavedesk.leave.models.LeaveRequest
    approver_ids: Iterable[uuid.UUID],
) -> list[Notification]:
    """Notify every approver that a new leave request needs review."""
    notifications = []
    for approver_id in approver_ids:
        if approver_id == leave_request.employee_id:
            continue
        notifications.append(
            await NotificationService.create_notification(
                db,
                recipient_id=approver_id,
                type=NotificationType.action_required,
                title="New Leave Request",
                message=f"A request for {_describe(leave_request)} requires your approval.",
                action_url=f"/leave-requests/{leave_request.id}",
                entity_type="leave_request",
                entity_id=leave_request.id,
            )
        )
    return notifications


async def notify_leave_approved(
    db: AsyncSession,
    leave_request,  # leavedesk.leave.models.LeaveRequest
) -> Notification:
    """Notify the employee that their leave request was approved."""
    return await NotificationService.create_notification(
        db,
        recipient_id=leave_request.employee_id,
        type=NotificationType.approval,
        title="Leave Request Approved",
        message=f"Your request for {_describe(leave_request)} has been approved.",
        action_url=f"/leave-requests/{leave_request.id}",
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_leave_rejected(
    db: AsyncSession,
    leave_request,  # leavedesk.leave.models.LeaveRequest
    comments: Optional[str] = None,
) -> Notification:
    """Notify the employee that their leave request was rejected."""
    message = f"Your request for {_describe(leave_request)} was rejected."
    if comments:
        message += f" Comments: {comments}"
    return await NotificationService.create_notification(
        db,
        recipient_id=leave_request.employee_id,
        type=NotificationType.alert,
        title="Leave Request Rejected",
        message=message,
        action_url=f"/leave-requests/{leave_request.id}",
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_leave_cancelled(
    db: AsyncSession,
    leave_request,  # leavedesk.leave.models.LeaveRequest
    recipient_id: uuid.UUID,
) -> Notification:
    """Tell the approver (or the owner) that a request was cancelled."""
    return await NotificationService.create_notification(
        db,
        recipient_id=recipient_id,
        type=NotificationType.info,
        title="Leave Request Cancelled",
        message=f"The request for {_describe(leave_request)} was cancelled.",
        action_url=f"/leave-requests/{leave_request.id}",
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_paid_leave_granted(
    db: AsyncSession,
    grant,  # leavedesk.paid_leave.models.PaidLeave
) -> Notification:
    """Notify the employee of a paid-leave grant."""
    return await NotificationService.create_notification(
        db,
        recipient_id=grant.employee_id,
        type=NotificationType.info,
        title="Paid Leave Granted",
        message=f"You have been granted {grant.days} day(s) of {grant.type.value} leave: {grant.reason}",
        action_url=f"/paid-leave/{grant.id}",
        entity_type="paid_leave",
        entity_id=grant.id,
    )


# ── Email dispatchers ───────────────────────────────────────────────
# Only sent when SMTP is configured and the recipient has
# email_notifications switched on. Run them through dispatch_safely.


def _wants_email(recipient) -> bool:
    return email_enabled() and bool(recipient.email_notifications)


def _request_details(leave_request, comments: Optional[str] = None) -> list[tuple[str, str]]:
    details = [
        ("Type", leave_request.leave_type.value),
        ("Duration", leave_request.duration.value),
        ("Dates", f"{leave_request.start_date} to {leave_request.end_date}"),
        ("Total days", str(leave_request.total_days)),
    ]
    if comments:
        details.append(("Comments", comments))
    return details


def _render(heading: str, details: list[tuple[str, str]], link: str) -> tuple[str, str]:
    """Text and HTML bodies for one email."""
    text = "\n".join([heading, ""] + [f"{label}: {value}" for label, value in details] + ["", link])
    rows = "".join(
        f"<p><strong>{html.escape(label)}:</strong> {html.escape(value)}</p>"
        for label, value in details
    )
    body_html = (
        f"<h2>{html.escape(heading)}</h2>"
        f"<div>{rows}</div>"
        f'<p><a href="{html.escape(link, quote=True)}">Open in LeaveDesk</a></p>'
    )
    return text, body_html


async def email_leave_request(
    db: AsyncSession,
    leave_request,  # leavedesk.leave.models.LeaveRequest
    requester,  # leavedesk.employees.models.Employee
    approver,  # leavedesk.employees.models.Employee
) -> bool:
    """Email one approver about a new request. Returns False when skipped."""
    if approver.id == requester.id or not _wants_email(approver):
        return False
    details = [("Employee", requester.name)] + _request_details(leave_request)
    details.append(("Reason", leave_request.reason))
    text, body_html = _render(
        "New Leave Request",
        details,
        f"{settings.FRONTEND_URL}/leave-requests/{leave_request.id}",
    )
    await send_email_async(build_email(
        to=approver.email,
        subject=f"New Leave Request from {requester.name}",
        body_text=text,
        body_html=body_html,
    ))
    return True


async def email_leave_decision(
    db: AsyncSession,
    leave_request,  # leavedesk.leave.models.LeaveRequest
    owner,  # leavedesk.employees.models.Employee
) -> bool:
    """Email the owner that their request was approved or rejected."""
    if not _wants_email(owner):
        return False
    status = leave_request.status.value.upper()
    text, body_html = _render(
        f"Leave Request {status}",
        _request_details(leave_request, leave_request.approval_comments),
        f"{settings.FRONTEND_URL}/leave-requests/{leave_request.id}",
    )
    await send_email_async(build_email(
        to=owner.email,
        subject=f"Leave Request {status}",
        body_text=text,
        body_html=body_html,
    ))
    return True
