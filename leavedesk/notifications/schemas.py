"""Notification schemas: in-app messages about leave requests and paid-leave grants."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from leavedesk.common.constants import NotificationType
from leavedesk.common.pagination import PaginationMeta


class NotificationResponse(BaseModel):
    """One in-app notification.

    ``entity_type`` / ``entity_id`` point at the leave request or paid-leave
    grant that triggered it; ``action_url`` is the matching API path.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    action_url: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[uuid.UUID] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationListMeta(PaginationMeta):
    unread: int


class NotificationListResponse(BaseModel):
    data: list[NotificationResponse]
    meta: NotificationListMeta


class NotificationCount(BaseModel):
    """Number of notifications affected or pending."""

    count: int


class NotificationCountResponse(BaseModel):
    data: NotificationCount
    message: Optional[str] = None


class NotificationReadResponse(BaseModel):
    data: NotificationResponse
    message: str
