"""Pydantic models for API request/response validation."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.enums import NotificationKind, UserRole


# Base response models
class BaseResponse(BaseModel):
    """Base response model with common fields."""

    model_config = ConfigDict(from_attributes=True)


class ProblemDetails(BaseModel):
    """RFC 9457 Problem Details for HTTP APIs."""

    type: str = Field(description="A URI reference that identifies the problem type")
    title: str = Field(
        description="A short, human-readable summary of the problem type"
    )
    status: int = Field(description="The HTTP status code")
    detail: Optional[str] = Field(
        None, description="A human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None, description="A URI reference that identifies the specific occurrence"
    )
    kind: Optional[str] = Field(None, description="Domain error kind, when applicable")


# Authentication schemas
class RegisterRequest(BaseModel):
    """Schema for account registration."""

    username: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=256)
    role: UserRole

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Username cannot be blank")
        return value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("Invalid email address")
        return value


class LoginRequest(BaseModel):
    """Schema for login request."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)


class UserResponse(BaseResponse):
    """Public view of an account; password fields are never included."""

    id: UUID
    username: str
    email: str
    role: UserRole
    queue_remaining: int
    daily_tracking_limit: int
    notify_email: bool
    notify_daily_summary: bool
    notify_push: bool
    interest_categories: List[str]
    created_at: datetime


class TokenResponse(BaseModel):
    """Schema for issued access tokens."""

    access_token: str = Field(description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_at: datetime = Field(description="Access token expiration timestamp")
    user: UserResponse


# Milestone schemas
class MilestoneCreate(BaseModel):
    """Schema for creating a milestone."""

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    end_date: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name cannot be blank")
        return value


class ProgressUpdate(BaseModel):
    """Schema for a progress update; range checks happen in the engine."""

    progress: int = Field(strict=True)


class MilestoneResponse(BaseResponse):
    """Schema for milestone response."""

    id: UUID
    owner_id: UUID
    name: str
    description: Optional[str] = None
    progress: int
    tracking_count: int
    start_date: datetime
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AvailableMilestoneResponse(MilestoneResponse):
    """A milestone the caller could start tracking."""

    owner_username: str


class MilestoneListResponse(BaseModel):
    """Schema for a list of milestones."""

    milestones: List[MilestoneResponse]


class AvailableMilestoneListResponse(BaseModel):
    milestones: List[AvailableMilestoneResponse]


class ProgressUpdateResponse(BaseModel):
    """Result of a progress update."""

    milestone: MilestoneResponse
    previous_progress: int
    completed: bool
    notified_trackers: int


# Tracking schemas
class TrackResponse(BaseModel):
    """Result of starting to track a milestone."""

    message: str = "Now tracking milestone"
    milestone_id: UUID
    queue_remaining: int


class TrackedMilestoneResponse(BaseModel):
    """A milestone as seen by one of its trackers."""

    milestone_id: UUID
    name: str
    description: Optional[str] = None
    progress: int
    owner_username: str
    end_date: Optional[datetime] = None
    tracking_since: datetime


class TrackedMilestoneListResponse(BaseModel):
    milestones: List[TrackedMilestoneResponse]


class TrackerResponse(BaseModel):
    """A tracker of one of the caller's milestones."""

    tracker_id: UUID
    username: str
    tracking_since: datetime
    last_notified_at: Optional[datetime] = None


class TrackerListResponse(BaseModel):
    milestone_id: UUID
    trackers: List[TrackerResponse]


class TotalTrackersResponse(BaseModel):
    """Unique trackers across all of the caller's milestones."""

    total: int
    trackers: List[TrackerResponse]


# User settings schemas
class NotificationSettingsUpdate(BaseModel):
    """Partial update of notification preferences."""

    email: Optional[bool] = None
    daily_summary: Optional[bool] = None
    push: Optional[bool] = None


class InterestCategoriesUpdate(BaseModel):
    categories: List[str] = Field(max_length=50)

    @field_validator("categories")
    @classmethod
    def clean_categories(cls, value: List[str]) -> List[str]:
        cleaned = []
        for category in value:
            category = category.strip()
            if category and category not in cleaned:
                cleaned.append(category)
        return cleaned


class QueueResetResponse(BaseModel):
    message: str = "Queue position reset"
    queue_remaining: int


# Notification schemas
class NotificationResponse(BaseResponse):
    """Schema for notification response."""

    id: UUID
    title: str
    message: str
    kind: NotificationKind
    read: bool
    related_milestone_id: Optional[UUID] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(BaseModel):
    message: str = "All notifications marked as read"
    updated: int
