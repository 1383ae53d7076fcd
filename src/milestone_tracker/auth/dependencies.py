"""Authentication dependencies for FastAPI."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..domain.errors import ForbiddenError, UnauthenticatedError
from ..repositories.dependencies import get_repository_container
from ..repositories.interfaces import RepositoryContainer
from ..core.enums import UserRole
from .identity import Identity
from .jwt_auth import jwt_manager

# auto_error=False so a missing header surfaces as our own 401 problem response
security = HTTPBearer(auto_error=False)


async def authenticate(token: Optional[str], repos: RepositoryContainer) -> Identity:
    """
    Resolve a bearer token to the caller's identity.

    The token's role is trusted only if the account still exists and still
    holds that role.

    Raises:
        UnauthenticatedError: Missing, invalid or stale token
    """
    if not token:
        raise UnauthenticatedError("Not authenticated")

    identity = jwt_manager.extract_identity(token)

    user = await repos.user.get_by_id(identity.id)
    if user is None or UserRole(user.role) != identity.role:
        raise UnauthenticatedError("Invalid or expired token")

    return Identity(id=user.id, role=identity.role, username=user.username)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> Identity:
    """Require an authenticated caller."""
    token = credentials.credentials if credentials else None
    try:
        return await authenticate(token, repos)
    finally:
        # No transaction stays open while FastAPI resolves the other dependencies
        await repos.rollback()


async def require_owner(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_owner:
        raise ForbiddenError()
    return identity


async def require_tracker(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_tracker:
        raise ForbiddenError()
    return identity
