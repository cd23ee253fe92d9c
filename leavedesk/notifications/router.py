"""Notification endpoints for the signed-in employee.

Routes:
    /notifications                 - Own notifications (paginated, unread count in meta)
    /notifications/unread-count    - Badge count
    /notifications/read-all        - Mark every unread notification read
    /notifications/{id}/read       - Mark one read
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user
from leavedesk.common.constants import NotificationType
from leavedesk.common.pagination import PaginationParams
from leavedesk.database import get_db
from leavedesk.employees.models import Employee
from leavedesk.notifications.schemas import (
    NotificationCount,
    NotificationCountResponse,
    NotificationListResponse,
    NotificationReadResponse,
    NotificationResponse,
)
from leavedesk.notifications.service import NotificationService

router = APIRouter(prefix="", tags=["notifications"])


# ── GET /notifications ──────────────────────────────────────────────

@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    is_read: Optional[bool] = Query(default=None, description="Only read / unread"),
    type: Optional[NotificationType] = Query(default=None, description="Only this type"),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.get_notifications(
        db,
        employee_id=employee.id,
        pagination=pagination,
        is_read=is_read,
        notification_type=type,
    )


# ── GET /notifications/unread-count ─────────────────────────────────
# NOTE: registered before /{notification_id}/read

@router.get("/unread-count", response_model=NotificationCountResponse)
async def unread_count(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService.get_unread_count(db, employee.id)
    return NotificationCountResponse(data=NotificationCount(count=count))


# ── PUT /notifications/read-all ─────────────────────────────────────

@router.put("/read-all", response_model=NotificationCountResponse)
async def mark_all_read(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService.mark_all_read(db, employee.id)
    return NotificationCountResponse(
        data=NotificationCount(count=count),
        message=f"{count} notification(s) marked as read.",
    )


# ── PUT /notifications/{id}/read ────────────────────────────────────

@router.put("/{notification_id}/read", response_model=NotificationReadResponse)
async def mark_read(
    notification_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService.mark_read(db, notification_id, employee.id)
    return NotificationReadResponse(
        data=NotificationResponse.model_validate(notification),
        message="Notification marked as read.",
    )
