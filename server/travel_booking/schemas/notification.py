"""Notification Pydantic schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ListNotificationsRequest(BaseModel):
    unread_only: bool = False
    limit: int = Field(50, ge=1, le=200)


class MarkReadRequest(BaseModel):
    """Request schema for marking notifications read."""

    notification_ids: Optional[list[UUID]] = Field(
        None,
        description="Notifications to mark; all unread ones when omitted"
    )


class Notification(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: Optional[UUID] = None
    title: str
    message: str
    type: str
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: list[Notification]


class UnreadCountResponse(BaseModel):
    unread: int = Field(..., ge=0)


class MarkReadResponse(BaseModel):
    updated: int = Field(..., ge=0)
