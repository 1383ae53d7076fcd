"""Unit tests for password hashing, access tokens and bearer authentication."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest

from milestone_tracker.auth.dependencies import authenticate
from milestone_tracker.auth.jwt_auth import jwt_manager
from milestone_tracker.auth.security import hash_password, verify_password
from milestone_tracker.core.enums import UserRole
from milestone_tracker.domain.errors import UnauthenticatedError
from milestone_tracker.repositories.memory_impl import build_memory_container


@pytest.mark.unit
class TestPasswordHashing:
    def test_round_trip(self):
        salt_hex, hash_hex = hash_password("s3cret-pass")

        assert verify_password("s3cret-pass", salt_hex, hash_hex)
        assert not verify_password("wrong-pass", salt_hex, hash_hex)

    def test_salts_differ(self):
        assert hash_password("same")[0] != hash_password("same")[0]

    @pytest.mark.parametrize(
        "password,salt_hex,hash_hex",
        [("", "aa", "bb"), ("pw", "", "bb"), ("pw", "not-hex", "bb")],
    )
    def test_malformed_inputs_fail_closed(self, password, salt_hex, hash_hex):
        assert verify_password(password, salt_hex, hash_hex) is False


@pytest.mark.unit
class TestAccessTokens:
    def test_claims(self):
        user_id = uuid4()
        token, expires_at = jwt_manager.create_access_token(user_id, UserRole.TRACKER, "theo")

        payload = jwt_manager.verify_access_token(token)
        assert payload["sub"] == str(user_id)
        assert payload["role"] == "tracker"
        assert payload["username"] == "theo"
        assert payload["type"] == "access"
        assert "jti" in payload
        assert expires_at > datetime.now(timezone.utc) + timedelta(hours=23)

        identity = jwt_manager.extract_identity(token)
        assert identity.id == user_id
        assert identity.role == UserRole.TRACKER

    def test_expired_token(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": str(uuid4()),
                "role": "owner",
                "iat": now - timedelta(days=2),
                "exp": now - timedelta(days=1),
                "type": "access",
            },
            jwt_manager.secret_key,
            algorithm="HS256",
        )

        with pytest.raises(UnauthenticatedError, match="expired"):
            jwt_manager.verify_access_token(token)

    def test_wrong_signature(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "role": "owner", "type": "access"},
            "x" * 64,
            algorithm="HS256",
        )

        with pytest.raises(UnauthenticatedError):
            jwt_manager.verify_access_token(token)

    def test_wrong_type(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "role": "owner", "type": "refresh"},
            jwt_manager.secret_key,
            algorithm="HS256",
        )

        with pytest.raises(UnauthenticatedError, match="type"):
            jwt_manager.verify_access_token(token)

    def test_unknown_role_claim(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "role": "admin", "type": "access"},
            jwt_manager.secret_key,
            algorithm="HS256",
        )

        with pytest.raises(UnauthenticatedError):
            jwt_manager.extract_identity(token)


@pytest.mark.unit
class TestAuthenticate:
    async def test_resolves_existing_user(self):
        repos = build_memory_container()
        user = await repos.user.create(
            username="olivia",
            email="olivia@example.com",
            password_hash="00",
            password_salt="00",
            role=UserRole.OWNER,
            daily_tracking_limit=3,
        )
        token, _ = jwt_manager.create_access_token(user.id, UserRole.OWNER, "olivia")

        identity = await authenticate(token, repos)

        assert identity.id == user.id
        assert identity.is_owner

    @pytest.mark.parametrize("token", [None, "", "garbage"])
    async def test_missing_or_malformed(self, token):
        with pytest.raises(UnauthenticatedError):
            await authenticate(token, build_memory_container())

    async def test_deleted_user(self):
        token, _ = jwt_manager.create_access_token(uuid4(), UserRole.TRACKER, "ghost")

        with pytest.raises(UnauthenticatedError):
            await authenticate(token, build_memory_container())
