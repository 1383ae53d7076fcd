"""Notification inbox endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends

from ..auth.dependencies import get_current_identity
from ..auth.identity import Identity
from ..domain.errors import NotFoundError
from ..repositories.dependencies import get_repository_container
from ..repositories.interfaces import RepositoryContainer
from .schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    ProblemDetails,
)

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    identity: Identity = Depends(get_current_identity),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> NotificationListResponse:
    """Get the caller's notifications, newest first."""
    notifications = await repos.notification.list_for_recipient(identity.id)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=sum(1 for n in notifications if not n.read),
    )


@router.patch("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    identity: Identity = Depends(get_current_identity),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> MarkAllReadResponse:
    """Mark every unread notification of the caller as read."""
    try:
        await repos.begin_write()
        updated = await repos.notification.mark_all_read(identity.id)
        await repos.commit()
    except Exception:
        await repos.rollback()
        raise
    return MarkAllReadResponse(updated=updated)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    responses={404: {"model": ProblemDetails, "description": "Notification not found"}},
)
async def mark_read(
    notification_id: UUID,
    identity: Identity = Depends(get_current_identity),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> NotificationResponse:
    """Mark one of the caller's notifications as read."""
    try:
        await repos.begin_write()
        notification = await repos.notification.get_by_id(notification_id)
        if notification is None or notification.recipient_id != identity.id:
            raise NotFoundError("Notification not found")
        await repos.notification.mark_read(notification)
        await repos.commit()
    except Exception:
        await repos.rollback()
        raise
    return NotificationResponse.model_validate(notification)
