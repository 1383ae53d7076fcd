"""Tests for registration and login endpoints."""

import pytest
from fastapi.testclient import TestClient

from milestone_tracker.core.enums import UserRole
from milestone_tracker.db.models import User


def register(client: TestClient, username="theo", email="theo@example.com", role="tracker", password="hunter22"):
    return client.post(
        "/v1/auth/register",
        json={"username": username, "email": email, "password": password, "role": role},
    )


@pytest.mark.unit
class TestRegister:
    def test_register_tracker(self, client: TestClient, read_session):
        response = register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        user = data["user"]
        assert user["role"] == "tracker"
        assert user["queue_remaining"] == 3
        assert user["daily_tracking_limit"] == 3
        assert user["interest_categories"] == [
            "Requirements Analysis",
            "System Design",
            "Testing",
        ]
        assert "password_hash" not in user
        assert "password_salt" not in user

        with read_session() as session:
            stored = session.query(User).filter_by(username="theo").one()
            assert stored.password_hash != "hunter22"

    def test_register_owner_has_no_categories(self, client: TestClient):
        response = register(client, username="olivia", email="Olivia@Example.com", role="owner")

        assert response.status_code == 201
        assert response.json()["user"]["interest_categories"] == []
        assert response.json()["user"]["email"] == "olivia@example.com"

    @pytest.mark.parametrize(
        "username,email",
        [("theo", "other@example.com"), ("other", "THEO@example.com")],
    )
    def test_duplicate_is_400(self, client: TestClient, username, email):
        assert register(client).status_code == 201

        response = register(client, username=username, email=email)

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.json()["detail"] == "User already exists with that email or username"

    @pytest.mark.parametrize(
        "payload",
        [
            {"username": "x", "email": "x@example.com", "password": "hunter22", "role": "admin"},
            {"username": "x", "email": "not-an-email", "password": "hunter22", "role": "owner"},
            {"username": "   ", "email": "x@example.com", "password": "hunter22", "role": "owner"},
            {"username": "x", "email": "x@example.com", "password": "123", "role": "owner"},
        ],
    )
    def test_invalid_payload_is_422(self, client: TestClient, payload):
        response = client.post("/v1/auth/register", json=payload)

        assert response.status_code == 422
        assert response.json()["title"] == "Validation Error"


@pytest.mark.unit
class TestLogin:
    def test_login_returns_token(self, client: TestClient, make_user, user_password):
        make_user(UserRole.OWNER, username="olivia")

        response = client.post(
            "/v1/auth/login", json={"email": "OLIVIA@example.com", "password": user_password}
        )

        assert response.status_code == 200
        token = response.json()["access_token"]
        profile = client.get("/v1/users/profile", headers={"Authorization": f"Bearer {token}"})
        assert profile.status_code == 200
        assert profile.json()["username"] == "olivia"

    @pytest.mark.parametrize(
        "email,password",
        [("olivia@example.com", "wrong-password"), ("nobody@example.com", None)],
    )
    def test_bad_credentials_are_401(
        self, client: TestClient, make_user, user_password, email, password
    ):
        make_user(UserRole.OWNER, username="olivia")

        response = client.post(
            "/v1/auth/login", json={"email": email, "password": password or user_password}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"


@pytest.mark.unit
class TestBearerAuth:
    def test_missing_token(self, client: TestClient):
        response = client.get("/v1/users/profile")

        assert response.status_code == 401
        assert response.json()["kind"] == "unauthenticated"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_garbage_token(self, client: TestClient):
        response = client.get(
            "/v1/users/profile", headers={"Authorization": "Bearer not.a.jwt"}
        )

        assert response.status_code == 401
