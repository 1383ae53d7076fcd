"""User profile and preference endpoints."""

from fastapi import APIRouter, Depends

from ..auth.dependencies import get_current_identity, require_tracker
from ..auth.identity import Identity
from ..core.allocation_engine import AllocationEngine
from ..domain.errors import UnauthenticatedError
from ..repositories.dependencies import get_repository_container
from ..repositories.interfaces import RepositoryContainer
from .dependencies import get_allocation_engine
from .schemas import (
    InterestCategoriesUpdate,
    NotificationSettingsUpdate,
    ProblemDetails,
    QueueResetResponse,
    UserResponse,
)

router = APIRouter(prefix="/v1/users", tags=["users"])

# Request field -> column
NOTIFICATION_SETTING_FIELDS = {
    "email": "notify_email",
    "daily_summary": "notify_daily_summary",
    "push": "notify_push",
}


async def _load_caller(identity: Identity, repos: RepositoryContainer):
    user = await repos.user.get_by_id(identity.id)
    if user is None:
        raise UnauthenticatedError("Invalid or expired token")
    return user


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> UserResponse:
    """Get the caller's profile."""
    return UserResponse.model_validate(await _load_caller(identity, repos))


@router.patch("/notification-settings", response_model=UserResponse)
async def update_notification_settings(
    request: NotificationSettingsUpdate,
    identity: Identity = Depends(get_current_identity),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> UserResponse:
    """Update any subset of the caller's notification preferences."""
    changes = {
        NOTIFICATION_SETTING_FIELDS[name]: value
        for name, value in request.model_dump(exclude_none=True).items()
    }

    try:
        await repos.begin_write()
        user = await _load_caller(identity, repos)
        await repos.user.update_settings(user, changes)
        await repos.commit()
    except Exception:
        await repos.rollback()
        raise

    return UserResponse.model_validate(user)


@router.patch("/interest-categories", response_model=UserResponse)
async def update_interest_categories(
    request: InterestCategoriesUpdate,
    identity: Identity = Depends(require_tracker),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> UserResponse:
    """Replace the caller's interest categories."""
    try:
        await repos.begin_write()
        user = await _load_caller(identity, repos)
        await repos.user.update_settings(user, {"interest_categories": request.categories})
        await repos.commit()
    except Exception:
        await repos.rollback()
        raise

    return UserResponse.model_validate(user)


@router.post(
    "/reset-queue",
    response_model=QueueResetResponse,
    responses={403: {"model": ProblemDetails, "description": "Only trackers have a queue"}},
)
async def reset_queue(
    identity: Identity = Depends(require_tracker),
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> QueueResetResponse:
    """Restore the caller's daily tracking quota to its limit."""
    remaining = await engine.reset_quota(identity)
    return QueueResetResponse(queue_remaining=remaining)
