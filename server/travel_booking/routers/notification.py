"""Notification router for the caller's notifications."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import SessionContext, SessionDependency
from ..core.database import get_db
from ..core.exceptions import ProblemDetailsException
from ..schemas.notification import (
    ListNotificationsRequest,
    MarkReadRequest,
    MarkReadResponse,
    Notification,
    NotificationListResponse,
    UnreadCountResponse,
)
from ..services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/notification", tags=["notification"])

DB_DEPENDENCY = Depends(get_db)


@router.post("/list", response_model=NotificationListResponse)
async def list_notifications(
    request: ListNotificationsRequest,
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """The caller's notifications, newest first."""
    notification_service = NotificationService(db)

    try:
        notifications = await notification_service.list_for_user(
            session.user_id,
            unread_only=request.unread_only,
            limit=request.limit,
        )
        response_data = NotificationListResponse(
            items=[Notification.model_validate(notification) for notification in notifications]
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error listing notifications",
            extra={"user_id": str(session.user_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """
    Unread notifications of the caller.

    Served from the aggregate cache; a change becomes visible after the
    invalidation debounce window.
    """
    notification_service = NotificationService(db)

    try:
        count = await notification_service.unread_count(session.user_id)
        response_data = UnreadCountResponse(unread=count)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error counting notifications",
            extra={"user_id": str(session.user_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_read(
    request: MarkReadRequest,
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """Mark some or all of the caller's notifications read."""
    notification_service = NotificationService(db)

    try:
        updated = await notification_service.mark_read(session.user_id, request.notification_ids)
        response_data = MarkReadResponse(updated=updated)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error marking notifications read",
            extra={"user_id": str(session.user_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
