"""In-memory implementations of repository interfaces for testing.

All repositories built by ``build_memory_container`` share one
``MemoryUnitOfWork``: every mutation records an undo step, ``commit`` forgets
them and ``rollback`` replays them in reverse.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from .interfaces import (
    UserRepository,
    MilestoneRepository,
    TrackingRepository,
    NotificationRepository,
    RepositoryContainer,
)
from ..core.enums import NotificationKind, UserRole
from ..db.models import User, Milestone, Tracking, Notification
from ..domain.errors import ConflictError


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryUnitOfWork:
    """Undo journal shared by the in-memory repositories."""

    def __init__(self):
        self.lock = threading.RLock()
        self._undo: List[Callable[[], None]] = []

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def commit(self) -> None:
        self._undo.clear()

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()


class BaseMemoryRepository:
    """Base in-memory repository implementation."""

    def __init__(self, uow: MemoryUnitOfWork):
        self._uow = uow

    async def save(self, entity) -> None:
        """Save an entity to the repository."""
        # Instances are stored by reference; nothing to do
        pass

    async def begin_write(self) -> None:
        """Writes apply under the shared lock; there is no transaction to open."""
        pass

    async def commit(self) -> None:
        """Commit the current unit of work."""
        self._uow.commit()

    async def rollback(self) -> None:
        """Rollback the current unit of work."""
        self._uow.rollback()

    def _set_attr(self, entity, name: str, value) -> None:
        previous = getattr(entity, name)
        setattr(entity, name, value)
        self._uow.record(lambda: setattr(entity, name, previous))


class MemoryUserRepository(BaseMemoryRepository, UserRepository):
    """In-memory implementation of UserRepository."""

    def __init__(self, uow: MemoryUnitOfWork):
        super().__init__(uow)
        self._users: Dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        email = email.strip().lower()
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    async def get_by_username_or_email(self, username: str, email: str) -> Optional[User]:
        """Get a user matching either the username or the email."""
        email = email.strip().lower()
        for user in self._users.values():
            if user.username == username or user.email == email:
                return user
        return None

    async def get_many(self, user_ids: List[UUID]) -> List[User]:
        """Get users by a list of IDs."""
        return [self._users[i] for i in user_ids if i in self._users]

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
        """Create a new user and commit the shared unit of work.

        Any undo steps pending from the other repositories are dropped too, as
        with a session commit.
        """
        with self._uow.lock:
            if await self.get_by_username_or_email(username.strip(), email):
                raise ConflictError("User already exists with that email or username")
            user = User(
                id=uuid4(),
                username=username.strip(),
                email=email.strip().lower(),
                password_hash=password_hash,
                password_salt=password_salt,
                role=role.value,
                queue_remaining=daily_tracking_limit,
                daily_tracking_limit=daily_tracking_limit,
                notify_email=True,
                notify_daily_summary=True,
                notify_push=False,
                interest_categories=list(interest_categories or []),
                created_at=_now(),
            )
            self._users[user.id] = user
            self._uow.commit()
            return user

    async def update_settings(self, user: User, changes: Dict[str, Any]) -> User:
        """Apply preference changes to a stored user."""
        with self._uow.lock:
            for name, value in changes.items():
                self._set_attr(user, name, value)
        return user

    async def consume_quota(self, user_id: UUID) -> Optional[int]:
        """Decrement quota if positive."""
        with self._uow.lock:
            user = self._users.get(user_id)
            if user is None or user.queue_remaining <= 0:
                return None
            self._set_attr(user, "queue_remaining", user.queue_remaining - 1)
            return user.queue_remaining

    async def reset_quota(self, user_id: UUID) -> Optional[int]:
        """Reset quota to the daily limit."""
        with self._uow.lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            self._set_attr(user, "queue_remaining", user.daily_tracking_limit)
            return user.queue_remaining


class MemoryMilestoneRepository(BaseMemoryRepository, MilestoneRepository):
    """In-memory implementation of MilestoneRepository."""

    def __init__(self, uow: MemoryUnitOfWork, users: MemoryUserRepository):
        super().__init__(uow)
        self._milestones: Dict[UUID, Milestone] = {}
        self._users = users

    async def get_by_id(self, milestone_id: UUID, for_update: bool = False) -> Optional[Milestone]:
        """Get a milestone by ID."""
        return self._milestones.get(milestone_id)

    async def get_by_owner(self, owner_id: UUID) -> List[Milestone]:
        """Get all milestones owned by a user."""
        return [m for m in self._milestones.values() if m.owner_id == owner_id]

    async def list_all(self) -> List[Milestone]:
        """Get all milestones."""
        return list(self._milestones.values())

    async def create(
        self,
        owner_id: UUID,
        name: str,
        description: Optional[str] = None,
        end_date: Optional[datetime] = None,
    ) -> Milestone:
        """Create a new milestone and commit the shared unit of work."""
        now = _now()
        milestone = Milestone(
            id=uuid4(),
            owner_id=owner_id,
            name=name.strip(),
            description=description,
            progress=0,
            tracking_count=0,
            start_date=now,
            end_date=end_date,
            created_at=now,
            updated_at=now,
        )
        milestone.owner = await self._users.get_by_id(owner_id)
        self._milestones[milestone.id] = milestone
        self._uow.commit()
        return milestone

    async def set_progress(self, milestone: Milestone, progress: int) -> None:
        """Set a milestone's progress."""
        self._set_attr(milestone, "progress", progress)
        self._set_attr(milestone, "updated_at", _now())

    async def increment_tracking_count(self, milestone_id: UUID) -> bool:
        """Add one to the cached count."""
        with self._uow.lock:
            milestone = self._milestones.get(milestone_id)
            if milestone is None:
                return False
            self._set_attr(milestone, "tracking_count", milestone.tracking_count + 1)
            return True


class MemoryTrackingRepository(BaseMemoryRepository, TrackingRepository):
    """In-memory implementation of TrackingRepository with a uniqueness index."""

    def __init__(self, uow: MemoryUnitOfWork):
        super().__init__(uow)
        self._trackings: Dict[Tuple[UUID, UUID], Tracking] = {}

    async def exists(self, milestone_id: UUID, tracker_id: UUID) -> bool:
        """Check whether the tracker already tracks the milestone."""
        return (milestone_id, tracker_id) in self._trackings

    async def create(self, milestone_id: UUID, tracker_id: UUID) -> Tracking:
        """Insert the relationship, failing on a duplicate pair."""
        key = (milestone_id, tracker_id)
        with self._uow.lock:
            if key in self._trackings:
                raise ConflictError(
                    "Tracking relationship already exists",
                    milestone_id=milestone_id,
                    tracker_id=tracker_id,
                )
            tracking = Tracking(
                id=uuid4(),
                milestone_id=milestone_id,
                tracker_id=tracker_id,
                created_at=_now(),
                last_notified_at=None,
            )
            self._trackings[key] = tracking
            self._uow.record(lambda: self._trackings.pop(key, None))
            return tracking

    async def count_by_milestone(self, milestone_id: UUID) -> int:
        """Count relationships referencing a milestone."""
        return sum(1 for m, _ in self._trackings if m == milestone_id)

    async def list_by_milestone(self, milestone_id: UUID) -> List[Tracking]:
        """Get all relationships for a milestone."""
        return [t for (m, _), t in self._trackings.items() if m == milestone_id]

    async def list_by_tracker(self, tracker_id: UUID) -> List[Tracking]:
        """Get all relationships held by a tracker."""
        return [t for (_, tr), t in self._trackings.items() if tr == tracker_id]

    async def list_by_milestones(self, milestone_ids: List[UUID]) -> List[Tracking]:
        """Get all relationships for any of the given milestones."""
        wanted = set(milestone_ids)
        return [t for (m, _), t in self._trackings.items() if m in wanted]

    async def mark_notified(self, tracking: Tracking, when: datetime) -> None:
        """Record when a tracker was last notified."""
        self._set_attr(tracking, "last_notified_at", when)


class MemoryNotificationRepository(BaseMemoryRepository, NotificationRepository):
    """In-memory implementation of NotificationRepository."""

    def __init__(self, uow: MemoryUnitOfWork):
        super().__init__(uow)
        self._notifications: Dict[UUID, Notification] = {}

    async def create(
        self,
        recipient_id: UUID,
        kind: NotificationKind,
        title: str,
        message: str,
        related_milestone_id: Optional[UUID] = None,
    ) -> Notification:
        """Append an unread notification."""
        notification = Notification(
            id=uuid4(),
            recipient_id=recipient_id,
            kind=kind.value,
            title=title,
            message=message,
            read=False,
            related_milestone_id=related_milestone_id,
            created_at=_now(),
        )
        self._notifications[notification.id] = notification
        self._uow.record(lambda: self._notifications.pop(notification.id, None))
        return notification

    async def get_by_id(self, notification_id: UUID) -> Optional[Notification]:
        """Get a notification by ID."""
        return self._notifications.get(notification_id)

    async def list_for_recipient(
        self, recipient_id: UUID, kind: Optional[NotificationKind] = None
    ) -> List[Notification]:
        """Get a user's notifications, newest first."""
        found = [
            n
            for n in self._notifications.values()
            if n.recipient_id == recipient_id and (kind is None or n.kind == kind.value)
        ]
        return sorted(found, key=lambda n: n.created_at, reverse=True)

    async def mark_read(self, notification: Notification) -> None:
        """Flip the read flag to True."""
        if not notification.read:
            self._set_attr(notification, "read", True)

    async def mark_all_read(self, recipient_id: UUID) -> int:
        """Mark all unread notifications of a user as read."""
        count = 0
        for notification in self._notifications.values():
            if notification.recipient_id == recipient_id and not notification.read:
                self._set_attr(notification, "read", True)
                count += 1
        return count


def build_memory_container() -> RepositoryContainer:
    """Create a container of in-memory repositories sharing one unit of work."""
    uow = MemoryUnitOfWork()
    users = MemoryUserRepository(uow)
    return RepositoryContainer(
        user_repo=users,
        milestone_repo=MemoryMilestoneRepository(uow, users),
        tracking_repo=MemoryTrackingRepository(uow),
        notification_repo=MemoryNotificationRepository(uow),
    )
