"""Account registration and login endpoints."""

from fastapi import APIRouter, Depends, status

from ..auth.jwt_auth import jwt_manager
from ..auth.security import hash_password, verify_password
from ..config import get_config
from ..core.enums import UserRole
from ..domain.errors import ConflictError
from ..repositories.dependencies import get_repository_container
from ..repositories.interfaces import RepositoryContainer
from ..utils.logging_config import get_logger
from .middleware import ProblemDetailsException
from .schemas import (
    LoginRequest,
    ProblemDetails,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)

router = APIRouter(prefix="/v1/auth", tags=["auth"])
logger = get_logger("auth")

DEFAULT_TRACKER_CATEGORIES = ["Requirements Analysis", "System Design", "Testing"]


def _token_response(user) -> TokenResponse:
    access_token, expires_at = jwt_manager.create_access_token(
        user.id, UserRole(user.role), user.username
    )
    return TokenResponse(
        access_token=access_token,
        expires_at=expires_at,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ProblemDetails, "description": "User already exists"},
        422: {"model": ProblemDetails, "description": "Invalid registration data"},
    },
)
async def register(
    request: RegisterRequest,
    repos: RepositoryContainer = Depends(get_repository_container),
) -> TokenResponse:
    """
    Create an owner or tracker account and return an access token.

    New accounts start with a full daily tracking quota. Trackers get a
    default set of interest categories.
    """
    salt_hex, hash_hex = hash_password(request.password)
    categories = (
        list(DEFAULT_TRACKER_CATEGORIES) if request.role == UserRole.TRACKER else []
    )

    try:
        await repos.begin_write()
        if await repos.user.get_by_username_or_email(request.username, request.email):
            raise ConflictError("User already exists with that email or username")
        user = await repos.user.create(
            username=request.username,
            email=request.email,
            password_hash=hash_hex,
            password_salt=salt_hex,
            role=request.role,
            daily_tracking_limit=get_config().app.default_daily_tracking_limit,
            interest_categories=categories,
        )
    except ConflictError:
        # Taken already, or lost a race with a concurrent registration
        await repos.rollback()
        raise ProblemDetailsException(
            status_code=status.HTTP_400_BAD_REQUEST,
            title="Registration Failed",
            detail="User already exists with that email or username",
        )
    except Exception:
        await repos.rollback()
        raise

    logger.info(f"Registered {request.role.value} account '{user.username}'")
    return _token_response(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"model": ProblemDetails, "description": "Invalid credentials"}},
)
async def login(
    request: LoginRequest,
    repos: RepositoryContainer = Depends(get_repository_container),
) -> TokenResponse:
    """Exchange email and password for an access token."""
    user = await repos.user.get_by_email(request.email)

    if user is None or not verify_password(
        request.password, user.password_salt, user.password_hash
    ):
        logger.warning(f"Failed login for {request.email.strip().lower()}")
        raise ProblemDetailsException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            title="Authentication Failed",
            detail="Invalid credentials",
        )

    logger.info(f"Login for '{user.username}'")
    return _token_response(user)
