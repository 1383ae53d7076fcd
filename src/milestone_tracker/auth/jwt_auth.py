"""JWT access tokens for authenticated API calls."""

import jwt
from datetime import datetime, timezone, timedelta
from typing import Dict, Any, Tuple
from uuid import UUID, uuid4

from ..config import get_config
from ..core.enums import UserRole
from ..domain.errors import UnauthenticatedError
from .identity import Identity


class JWTTokenManager:
    """Issues and verifies HS256 access tokens carrying the caller's role."""

    def __init__(self):
        config = get_config()
        self.secret_key = config.app.jwt_secret_key
        self.algorithm = "HS256"
        self.access_token_expires_minutes = config.app.jwt_access_token_expires_minutes

    def create_access_token(
        self, user_id: UUID, role: UserRole, username: str
    ) -> Tuple[str, datetime]:
        """
        Create a signed access token.

        Returns:
            Tuple of (access_token, expires_at)
        """
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(minutes=self.access_token_expires_minutes)
        payload = {
            "sub": str(user_id),
            "role": UserRole(role).value,
            "username": username,
            "iat": now,
            "exp": expires_at,
            "jti": str(uuid4()),
            "type": "access",
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return token, expires_at

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode an access token.

        Raises:
            UnauthenticatedError: If token is invalid, expired, or wrong type
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise UnauthenticatedError("Access token has expired")
        except jwt.InvalidTokenError:
            raise UnauthenticatedError("Invalid access token")

        if payload.get("type") != "access":
            raise UnauthenticatedError("Invalid token type")

        return payload

    def extract_identity(self, token: str) -> Identity:
        """Resolve the identity claims of a valid access token."""
        payload = self.verify_access_token(token)

        try:
            return Identity(
                id=UUID(payload["sub"]),
                role=UserRole(payload["role"]),
                username=payload.get("username", ""),
            )
        except (KeyError, ValueError, TypeError):
            raise UnauthenticatedError("Invalid or malformed token")


# Global instance
jwt_manager = JWTTokenManager()
