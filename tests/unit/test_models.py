"""Unit tests for database models."""

from uuid import UUID, uuid4

import pytest

from milestone_tracker.core.enums import NotificationKind, UserRole
from milestone_tracker.db.models import GUID, Milestone, Notification, Tracking, User


@pytest.mark.unit
class TestUserModel:
    def test_role_helpers(self):
        owner = User(username="olivia", role=UserRole.OWNER.value)
        tracker = User(username="theo", role=UserRole.TRACKER.value)

        assert owner.is_owner and not owner.is_tracker
        assert tracker.is_tracker and not tracker.is_owner
        assert "olivia" in repr(owner)

    def test_defaults_applied_on_insert(self, db_session, make_user):
        user = make_user(UserRole.TRACKER, username="dana")

        assert user.queue_remaining == 3
        assert user.daily_tracking_limit == 3
        assert user.notify_email is True
        assert user.notify_daily_summary is True
        assert user.notify_push is False
        assert user.interest_categories == []
        assert user.created_at is not None


@pytest.mark.unit
class TestMilestoneModel:
    def test_defaults_and_relationships(self, read_session, owner, tracker, make_milestone, db_session):
        milestone = make_milestone(owner, name="Alpha")
        db_session.add(Tracking(milestone_id=milestone.id, tracker_id=tracker.id))
        db_session.commit()

        with read_session() as session:
            stored = session.get(Milestone, milestone.id)
            assert stored.progress == 0
            assert stored.tracking_count == 0
            assert stored.start_date is not None
            assert stored.owner.username == "olivia"
            assert [t.tracker.username for t in stored.trackings] == ["theo"]


@pytest.mark.unit
class TestNotificationModel:
    def test_defaults(self, db_session, read_session):
        recipient_id = uuid4()
        note = Notification(recipient_id=recipient_id, title="Hi", message="Hello")
        db_session.add(note)
        db_session.commit()

        with read_session() as session:
            stored = session.get(Notification, note.id)
            assert stored.kind == NotificationKind.SYSTEM.value
            assert stored.read is False
            assert stored.recipient_id == recipient_id


@pytest.mark.unit
class TestGUID:
    def test_bind_and_result(self):
        guid = GUID()
        value = uuid4()

        assert guid.process_bind_param(value, None) == str(value)
        assert guid.process_bind_param(None, None) is None
        assert guid.process_result_value(str(value), None) == value
        assert isinstance(guid.process_result_value(value, None), UUID)
