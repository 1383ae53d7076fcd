"""Tests for tracking endpoints."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from milestone_tracker.core.enums import UserRole
from milestone_tracker.db.models import Milestone, Notification, Tracking, User


@pytest.mark.unit
class TestTrackMilestone:
    def test_track_consumes_quota_and_notifies_owner(
        self, client: TestClient, owner, tracker, make_milestone, auth_headers_for, read_session
    ):
        milestone = make_milestone(owner, name="Integration Tests")

        response = client.post(f"/v1/tracking/{milestone.id}", headers=auth_headers_for(tracker))

        assert response.status_code == 201
        assert response.json() == {
            "message": "Now tracking milestone",
            "milestone_id": str(milestone.id),
            "queue_remaining": 2,
        }
        with read_session() as session:
            assert session.get(Milestone, milestone.id).tracking_count == 1
            assert session.get(User, tracker.id).queue_remaining == 2
            note = session.query(Notification).filter_by(recipient_id=owner.id).one()
            assert note.title == "New Tracker"
            assert note.message == 'theo is now tracking your "Integration Tests" milestone.'

    def test_duplicate_is_409(
        self, client: TestClient, owner, tracker, make_milestone, auth_headers_for, read_session
    ):
        milestone = make_milestone(owner)
        client.post(f"/v1/tracking/{milestone.id}", headers=auth_headers_for(tracker))

        response = client.post(f"/v1/tracking/{milestone.id}", headers=auth_headers_for(tracker))

        assert response.status_code == 409
        assert response.json()["kind"] == "already_tracking"
        assert response.json()["detail"] == "Already tracking this milestone"
        with read_session() as session:
            assert session.get(Milestone, milestone.id).tracking_count == 1
            assert session.get(User, tracker.id).queue_remaining == 2

    def test_quota_exhausted_is_400(
        self, client: TestClient, owner, make_user, make_milestone, auth_headers_for, read_session
    ):
        milestone = make_milestone(owner)
        broke = make_user(UserRole.TRACKER, queue_remaining=0)

        response = client.post(f"/v1/tracking/{milestone.id}", headers=auth_headers_for(broke))

        assert response.status_code == 400
        assert response.json()["kind"] == "quota_exhausted"
        with read_session() as session:
            assert session.query(Tracking).count() == 0
            assert session.get(Milestone, milestone.id).tracking_count == 0

    def test_owner_cannot_track(self, client: TestClient, owner, make_milestone, auth_headers_for):
        milestone = make_milestone(owner)

        response = client.post(f"/v1/tracking/{milestone.id}", headers=auth_headers_for(owner))

        assert response.status_code == 403

    def test_unknown_milestone(self, client: TestClient, tracker, auth_headers_for):
        response = client.post(f"/v1/tracking/{uuid4()}", headers=auth_headers_for(tracker))

        assert response.status_code == 404

    def test_malformed_id(self, client: TestClient, tracker, auth_headers_for):
        response = client.post("/v1/tracking/not-a-uuid", headers=auth_headers_for(tracker))

        assert response.status_code == 422


@pytest.mark.unit
class TestTrackingViews:
    def test_my_tracked_milestones(
        self, client: TestClient, owner, tracker, make_milestone, auth_headers_for
    ):
        milestone = make_milestone(owner, name="Docs", progress=30)
        client.post(f"/v1/tracking/{milestone.id}", headers=auth_headers_for(tracker))

        response = client.get("/v1/tracking/mine", headers=auth_headers_for(tracker))

        assert response.status_code == 200
        [entry] = response.json()["milestones"]
        assert entry["milestone_id"] == str(milestone.id)
        assert entry["owner_username"] == "olivia"
        assert entry["progress"] == 30
        assert entry["tracking_since"]

    def test_trackers_of_milestone(
        self, client: TestClient, owner, tracker, make_milestone, auth_headers_for
    ):
        milestone = make_milestone(owner)
        client.post(f"/v1/tracking/{milestone.id}", headers=auth_headers_for(tracker))

        response = client.get(
            f"/v1/tracking/trackers/{milestone.id}", headers=auth_headers_for(owner)
        )

        assert response.status_code == 200
        [entry] = response.json()["trackers"]
        assert entry["username"] == "theo"
        assert entry["tracker_id"] == str(tracker.id)

    @pytest.mark.parametrize("missing", [False, True])
    def test_trackers_forbidden_for_other_owner_or_missing(
        self, client: TestClient, owner, make_user, make_milestone, auth_headers_for, missing
    ):
        milestone = make_milestone(owner)
        stranger = make_user(UserRole.OWNER)
        target = uuid4() if missing else milestone.id

        response = client.get(
            f"/v1/tracking/trackers/{target}", headers=auth_headers_for(stranger)
        )

        assert response.status_code == 403

    def test_total_trackers_counts_unique(
        self, client: TestClient, owner, make_user, make_milestone, auth_headers_for
    ):
        first = make_milestone(owner, name="A")
        second = make_milestone(owner, name="B")
        alice = make_user(UserRole.TRACKER, username="alice")
        bob = make_user(UserRole.TRACKER, username="bob")
        for user, milestone in ((alice, first), (alice, second), (bob, second)):
            client.post(f"/v1/tracking/{milestone.id}", headers=auth_headers_for(user))

        response = client.get("/v1/tracking/total-trackers", headers=auth_headers_for(owner))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert sorted(t["username"] for t in data["trackers"]) == ["alice", "bob"]
