"""Unit tests for the notification emitter."""

from uuid import uuid4

import pytest

from milestone_tracker.core.enums import NotificationKind
from milestone_tracker.core.notification_emitter import NotificationEmitter
from milestone_tracker.repositories.memory_impl import build_memory_container


@pytest.mark.unit
class TestNotificationEmitter:
    async def test_emit_appends_unread_record(self):
        repos = build_memory_container()
        recipient, milestone_id = uuid4(), uuid4()

        notification = await NotificationEmitter(repos.notification).emit(
            recipient_id=recipient,
            kind=NotificationKind.NEW_TRACKER,
            title="New Tracker",
            message="theo is now tracking your milestone.",
            related_milestone_id=milestone_id,
        )

        assert notification.read is False
        assert notification.kind == NotificationKind.NEW_TRACKER.value
        assert notification.related_milestone_id == milestone_id
        assert await repos.notification.list_for_recipient(recipient) == [notification]

    async def test_emit_does_not_commit(self):
        """The notification belongs to the caller's unit of work."""
        repos = build_memory_container()
        recipient = uuid4()

        await NotificationEmitter(repos.notification).emit(
            recipient, NotificationKind.SYSTEM, "Hello", "Welcome"
        )
        await repos.rollback()

        assert await repos.notification.list_for_recipient(recipient) == []

    async def test_emit_to_unknown_recipient_succeeds(self, db_session):
        from milestone_tracker.repositories.dependencies import build_sqlalchemy_container

        repos = build_sqlalchemy_container(db_session)
        stranger = uuid4()

        await NotificationEmitter(repos.notification).emit(
            stranger, NotificationKind.SYSTEM, "Hello", "Nobody home"
        )
        await repos.commit()

        assert len(await repos.notification.list_for_recipient(stranger)) == 1
