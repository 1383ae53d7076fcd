"""Domain exceptions raised by the tracking core and its collaborators.

Every exception carries an ``ErrorKind`` tag; the API layer maps kinds to
HTTP status codes. None of these are retried: each one reflects a permission,
state precondition or business rule rather than a transient fault.
"""

from typing import Optional
from uuid import UUID

from ..core.enums import ErrorKind


class MilestoneTrackerError(Exception):
    """Base class for business-rule failures."""

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT
    title: str = "Invalid Request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthenticatedError(MilestoneTrackerError):
    """No identity, or the presented credentials could not be verified."""

    kind = ErrorKind.UNAUTHENTICATED
    title = "Unauthenticated"


class ForbiddenError(MilestoneTrackerError):
    """Caller has the wrong role or does not own the target."""

    kind = ErrorKind.FORBIDDEN
    title = "Forbidden"

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class NotFoundError(MilestoneTrackerError):
    """A referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND
    title = "Not Found"


class InvalidArgumentError(MilestoneTrackerError):
    """Malformed or out-of-range input."""

    kind = ErrorKind.INVALID_ARGUMENT
    title = "Invalid Argument"


class QuotaExhaustedError(MilestoneTrackerError):
    """The tracker has no remaining daily tracking allowance."""

    kind = ErrorKind.QUOTA_EXHAUSTED
    title = "Quota Exhausted"

    def __init__(self, message: str = "Daily tracking limit reached"):
        super().__init__(message)


class AlreadyTrackingError(MilestoneTrackerError):
    """The tracker already holds a relationship for this milestone."""

    kind = ErrorKind.ALREADY_TRACKING
    title = "Already Tracking"

    def __init__(self, message: str = "Already tracking this milestone"):
        super().__init__(message)


class ConflictError(MilestoneTrackerError):
    """Storage-level uniqueness violation.

    Raised by the tracking store when the (milestone, tracker) pair already
    exists, even if the caller's own existence check passed.
    """

    kind = ErrorKind.CONFLICT
    title = "Conflict"

    def __init__(
        self,
        message: str,
        milestone_id: Optional[UUID] = None,
        tracker_id: Optional[UUID] = None,
    ):
        super().__init__(message)
        self.milestone_id = milestone_id
        self.tracker_id = tracker_id
