"""Notification emitter: appends durable notification records."""

from typing import Optional
from uuid import UUID

from ..db.models import Notification
from ..repositories.interfaces import NotificationRepository
from ..utils.logging_config import get_logger
from .enums import NotificationKind


class NotificationEmitter:
    """Writes unread notifications through the notification repository.

    Emitting has no effect beyond persistence in the caller's unit of work: it
    does not commit and does not check that the recipient exists.
    """

    def __init__(self, notifications: NotificationRepository):
        self.notifications = notifications
        self.logger = get_logger(__name__)

    async def emit(
        self,
        recipient_id: UUID,
        kind: NotificationKind,
        title: str,
        message: str,
        related_milestone_id: Optional[UUID] = None,
    ) -> Notification:
        notification = await self.notifications.create(
            recipient_id=recipient_id,
            kind=kind,
            title=title,
            message=message,
            related_milestone_id=related_milestone_id,
        )
        self.logger.debug(f"Emitted {kind.value} notification to {recipient_id}")
        return notification
