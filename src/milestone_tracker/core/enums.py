"""Enums for the Milestone Tracker application."""

from enum import Enum


class UserRole(str, Enum):
    """Roles a user can hold."""

    OWNER = "owner"
    TRACKER = "tracker"


class NotificationKind(str, Enum):
    """Kinds of notification records."""

    MILESTONE_COMPLETED = "milestone_completed"
    NEW_TRACKER = "new_tracker"
    QUEUE_UPDATE = "queue_update"
    SYSTEM = "system"


class ErrorKind(str, Enum):
    """Business error kinds reported to callers verbatim."""

    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    QUOTA_EXHAUSTED = "quota_exhausted"
    ALREADY_TRACKING = "already_tracking"
    CONFLICT = "conflict"
