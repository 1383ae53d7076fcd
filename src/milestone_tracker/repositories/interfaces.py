"""Abstract repository interfaces for data access layer.

Mutating methods flush but do not commit unless noted; the caller owns the
unit of work, opens it with ``begin_write`` and decides when to ``commit`` or
``rollback``. Plain reads need no explicit transaction.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from ..db.models import User, Milestone, Tracking, Notification
from ..core.enums import NotificationKind, UserRole


class BaseRepository(ABC):
    """Base repository interface with common operations."""

    @abstractmethod
    async def save(self, entity) -> None:
        """Save an entity to the repository."""
        pass

    @abstractmethod
    async def begin_write(self) -> None:
        """Start a write unit of work, ending any open read transaction first."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Commit the current unit of work."""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Rollback the current unit of work."""
        pass


class UserRepository(BaseRepository):
    """Repository interface for User entities (owners and trackers)."""

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by (lowercased) email."""
        pass

    @abstractmethod
    async def get_by_username_or_email(self, username: str, email: str) -> Optional[User]:
        """Get a user matching either the username or the email."""
        pass

    @abstractmethod
    async def get_many(self, user_ids: List[UUID]) -> List[User]:
        """Get users by a list of IDs."""
        pass

    @abstractmethod
    async def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        password_salt: str,
        role: UserRole,
        daily_tracking_limit: int,
        interest_categories: Optional[List[str]] = None,
    ) -> User:
        """Create and commit a new user.

        The commit covers the whole unit of work, so changes pending in the
        other repositories of the same container are committed with it.

        Raises:
            ConflictError: If the username or email is already taken
        """
        pass

    @abstractmethod
    async def update_settings(self, user: User, changes: Dict[str, Any]) -> User:
        """Apply profile preference changes (notification flags, interest categories)."""
        pass

    @abstractmethod
    async def consume_quota(self, user_id: UUID) -> Optional[int]:
        """Atomically decrement ``queue_remaining`` if it is positive.

        Returns:
            The new remaining count, or None if nothing was left to consume
        """
        pass

    @abstractmethod
    async def reset_quota(self, user_id: UUID) -> Optional[int]:
        """Set ``queue_remaining`` to ``daily_tracking_limit``.

        Returns:
            The new remaining count, or None if the user does not exist
        """
        pass


class MilestoneRepository(BaseRepository):
    """Repository interface for Milestone entities."""

    @abstractmethod
    async def get_by_id(self, milestone_id: UUID, for_update: bool = False) -> Optional[Milestone]:
        """Get a milestone by ID, optionally locking the row."""
        pass

    @abstractmethod
    async def get_by_owner(self, owner_id: UUID) -> List[Milestone]:
        """Get all milestones owned by a user."""
        pass

    @abstractmethod
    async def list_all(self) -> List[Milestone]:
        """Get all milestones."""
        pass

    @abstractmethod
    async def create(
        self,
        owner_id: UUID,
        name: str,
        description: Optional[str] = None,
        end_date: Optional[datetime] = None,
    ) -> Milestone:
        """Create and commit a new milestone.

        Like ``UserRepository.create``, this commits the whole unit of work.
        """
        pass

    @abstractmethod
    async def set_progress(self, milestone: Milestone, progress: int) -> None:
        """Set a loaded milestone's progress."""
        pass

    @abstractmethod
    async def increment_tracking_count(self, milestone_id: UUID) -> bool:
        """Atomically add one to ``tracking_count``; False if the milestone is gone."""
        pass


class TrackingRepository(BaseRepository):
    """Repository interface for tracking relationships.

    ``create`` is the final authority for (milestone, tracker) uniqueness.
    """

    @abstractmethod
    async def exists(self, milestone_id: UUID, tracker_id: UUID) -> bool:
        """Check whether the tracker already tracks the milestone."""
        pass

    @abstractmethod
    async def create(self, milestone_id: UUID, tracker_id: UUID) -> Tracking:
        """Create a relationship.

        Raises:
            ConflictError: If the pair already exists
        """
        pass

    @abstractmethod
    async def count_by_milestone(self, milestone_id: UUID) -> int:
        """Count relationships referencing a milestone."""
        pass

    @abstractmethod
    async def list_by_milestone(self, milestone_id: UUID) -> List[Tracking]:
        """Get all relationships for a milestone, oldest first."""
        pass

    @abstractmethod
    async def list_by_tracker(self, tracker_id: UUID) -> List[Tracking]:
        """Get all relationships held by a tracker, oldest first."""
        pass

    @abstractmethod
    async def list_by_milestones(self, milestone_ids: List[UUID]) -> List[Tracking]:
        """Get all relationships for any of the given milestones."""
        pass

    @abstractmethod
    async def mark_notified(self, tracking: Tracking, when: datetime) -> None:
        """Record when a tracker was last notified about the milestone."""
        pass


class NotificationRepository(BaseRepository):
    """Repository interface for Notification entities."""

    @abstractmethod
    async def create(
        self,
        recipient_id: UUID,
        kind: NotificationKind,
        title: str,
        message: str,
        related_milestone_id: Optional[UUID] = None,
    ) -> Notification:
        """Append an unread notification."""
        pass

    @abstractmethod
    async def get_by_id(self, notification_id: UUID) -> Optional[Notification]:
        """Get a notification by ID."""
        pass

    @abstractmethod
    async def list_for_recipient(
        self, recipient_id: UUID, kind: Optional[NotificationKind] = None
    ) -> List[Notification]:
        """Get a user's notifications, newest first."""
        pass

    @abstractmethod
    async def mark_read(self, notification: Notification) -> None:
        """Flip the read flag to True (never back)."""
        pass

    @abstractmethod
    async def mark_all_read(self, recipient_id: UUID) -> int:
        """Mark every unread notification of a user as read; returns the count."""
        pass


class RepositoryContainer:
    """Container for all repository interfaces to support dependency injection.

    All repositories in one container share one unit of work, so a commit or
    rollback through any of them applies to all.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        milestone_repo: MilestoneRepository,
        tracking_repo: TrackingRepository,
        notification_repo: NotificationRepository,
    ):
        self.user = user_repo
        self.milestone = milestone_repo
        self.tracking = tracking_repo
        self.notification = notification_repo

    async def begin_write(self) -> None:
        await self.user.begin_write()

    async def commit(self) -> None:
        await self.user.commit()

    async def rollback(self) -> None:
        await self.user.rollback()
