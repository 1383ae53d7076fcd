"""SQLAlchemy concrete implementations of repository interfaces."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, desc, func, or_
from sqlalchemy.orm import Session, joinedload

from .interfaces import (
    UserRepository,
    MilestoneRepository,
    TrackingRepository,
    NotificationRepository,
)
from ..core.enums import NotificationKind, UserRole
from ..db.database import WRITE_TRANSACTION_OPTIONS
from ..db.models import User, Milestone, Tracking, Notification
from ..domain.errors import ConflictError
from ..store.integrity_policy import ExpectedIntegrityTag
from ..store.savepoints import expected_conflict_savepoint


class BaseSQLAlchemyRepository:
    """Base SQLAlchemy repository implementation."""

    def __init__(self, session: Session):
        self._session = session

    async def save(self, entity) -> None:
        """Save an entity to the repository."""
        self._session.add(entity)

    async def begin_write(self) -> None:
        """Open a write transaction; on SQLite it takes the write lock at BEGIN."""
        if self._session.in_transaction():
            self._session.rollback()
        self._session.connection(execution_options=WRITE_TRANSACTION_OPTIONS)

    async def commit(self) -> None:
        """Commit the current transaction."""
        self._session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        self._session.rollback()


class SQLAlchemyUserRepository(BaseSQLAlchemyRepository, UserRepository):
    """SQLAlchemy implementation of UserRepository."""

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        return self._session.query(User).filter(User.id == user_id).first()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        return (
            self._session.query(User)
            .filter(User.email == email.strip().lower())
            .first()
        )

    async def get_by_username_or_email(self, username: str, email: str) -> Optional[User]:
        """Get a user matching either the username or the email."""
        return (
            self._session.query(User)
            .filter(or_(User.username == username, User.email == email.strip().lower()))
            .first()
        )

    async def get_many(self, user_ids: List[UUID]) -> List[User]:
        """Get users by a list of IDs."""
        if not user_ids:
            return []
        return self._session.query(User).filter(User.id.in_(user_ids)).all()

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
        """Create a new user."""
        user = User(
            username=username.strip(),
            email=email.strip().lower(),
            password_hash=password_hash,
            password_salt=password_salt,
            role=role.value,
            queue_remaining=daily_tracking_limit,
            daily_tracking_limit=daily_tracking_limit,
            interest_categories=interest_categories or [],
        )
        context = {"operation": "create_user", "entity_id": user.username}
        with expected_conflict_savepoint(
            self._session,
            {ExpectedIntegrityTag.USERNAME_TAKEN, ExpectedIntegrityTag.EMAIL_TAKEN},
            context,
        ):
            await self.save(user)
            self._session.flush()

        if "integrity_tag" in context:
            await self.rollback()
            raise ConflictError("User already exists with that email or username")

        await self.commit()
        self._session.refresh(user)
        return user

    async def update_settings(self, user: User, changes: Dict[str, Any]) -> User:
        """Apply preference changes to a loaded user."""
        for name, value in changes.items():
            setattr(user, name, value)
        self._session.flush()
        return user

    async def consume_quota(self, user_id: UUID) -> Optional[int]:
        """Decrement quota with a guard so concurrent consumers cannot go below zero."""
        updated = (
            self._session.query(User)
            .filter(and_(User.id == user_id, User.queue_remaining > 0))
            .update(
                {User.queue_remaining: User.queue_remaining - 1},
                synchronize_session=False,
            )
        )
        if updated == 0:
            return None
        return self._current_quota(user_id)

    async def reset_quota(self, user_id: UUID) -> Optional[int]:
        """Reset quota to the daily limit in a single statement."""
        updated = (
            self._session.query(User)
            .filter(User.id == user_id)
            .update(
                {User.queue_remaining: User.daily_tracking_limit},
                synchronize_session=False,
            )
        )
        if updated == 0:
            return None
        return self._current_quota(user_id)

    def _current_quota(self, user_id: UUID) -> int:
        remaining = (
            self._session.query(User.queue_remaining)
            .filter(User.id == user_id)
            .scalar()
        )
        # Keep any loaded instance in step with the row
        user = self._session.get(User, user_id)
        if user is not None:
            self._session.expire(user, ["queue_remaining"])
        return remaining


class SQLAlchemyMilestoneRepository(BaseSQLAlchemyRepository, MilestoneRepository):
    """SQLAlchemy implementation of MilestoneRepository."""

    async def get_by_id(self, milestone_id: UUID, for_update: bool = False) -> Optional[Milestone]:
        """Get a milestone by ID."""
        query = self._session.query(Milestone).filter(Milestone.id == milestone_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    async def get_by_owner(self, owner_id: UUID) -> List[Milestone]:
        """Get all milestones owned by a user."""
        return (
            self._session.query(Milestone)
            .filter(Milestone.owner_id == owner_id)
            .order_by(Milestone.created_at)
            .all()
        )

    async def list_all(self) -> List[Milestone]:
        """Get all milestones with their owners."""
        return (
            self._session.query(Milestone)
            .options(joinedload(Milestone.owner))
            .order_by(Milestone.created_at)
            .all()
        )

    async def create(
        self,
        owner_id: UUID,
        name: str,
        description: Optional[str] = None,
        end_date: Optional[datetime] = None,
    ) -> Milestone:
        """Create a new milestone."""
        milestone = Milestone(
            owner_id=owner_id,
            name=name.strip(),
            description=description.strip() if description else None,
            progress=0,
            tracking_count=0,
            end_date=end_date,
        )
        await self.save(milestone)
        await self.commit()
        self._session.refresh(milestone)
        return milestone

    async def set_progress(self, milestone: Milestone, progress: int) -> None:
        """Set a loaded milestone's progress."""
        milestone.progress = progress
        self._session.flush()

    async def increment_tracking_count(self, milestone_id: UUID) -> bool:
        """Add one to the cached count with a relative UPDATE."""
        updated = (
            self._session.query(Milestone)
            .filter(Milestone.id == milestone_id)
            .update(
                {Milestone.tracking_count: Milestone.tracking_count + 1},
                synchronize_session=False,
            )
        )
        milestone = self._session.get(Milestone, milestone_id)
        if milestone is not None:
            self._session.expire(milestone, ["tracking_count", "updated_at"])
        return updated > 0


class SQLAlchemyTrackingRepository(BaseSQLAlchemyRepository, TrackingRepository):
    """SQLAlchemy implementation of TrackingRepository."""

    async def exists(self, milestone_id: UUID, tracker_id: UUID) -> bool:
        """Check whether the tracker already tracks the milestone."""
        return (
            self._session.query(Tracking.id)
            .filter(
                and_(
                    Tracking.milestone_id == milestone_id,
                    Tracking.tracker_id == tracker_id,
                )
            )
            .first()
            is not None
        )

    async def create(self, milestone_id: UUID, tracker_id: UUID) -> Tracking:
        """Insert the relationship; the unique constraint decides races."""
        tracking = Tracking(milestone_id=milestone_id, tracker_id=tracker_id)
        context = {
            "operation": "create_tracking",
            "entity_id": f"{milestone_id}:{tracker_id}",
        }
        with expected_conflict_savepoint(
            self._session, {ExpectedIntegrityTag.TRACKING_ALREADY_EXISTS}, context
        ):
            await self.save(tracking)
            self._session.flush()

        if "integrity_tag" in context:
            raise ConflictError(
                "Tracking relationship already exists",
                milestone_id=milestone_id,
                tracker_id=tracker_id,
            )
        return tracking

    async def count_by_milestone(self, milestone_id: UUID) -> int:
        """Count relationships referencing a milestone."""
        return (
            self._session.query(func.count(Tracking.id))
            .filter(Tracking.milestone_id == milestone_id)
            .scalar()
        )

    async def list_by_milestone(self, milestone_id: UUID) -> List[Tracking]:
        """Get all relationships for a milestone."""
        return (
            self._session.query(Tracking)
            .options(joinedload(Tracking.tracker))
            .filter(Tracking.milestone_id == milestone_id)
            .order_by(Tracking.created_at)
            .all()
        )

    async def list_by_tracker(self, tracker_id: UUID) -> List[Tracking]:
        """Get all relationships held by a tracker."""
        return (
            self._session.query(Tracking)
            .options(joinedload(Tracking.milestone).joinedload(Milestone.owner))
            .filter(Tracking.tracker_id == tracker_id)
            .order_by(Tracking.created_at)
            .all()
        )

    async def list_by_milestones(self, milestone_ids: List[UUID]) -> List[Tracking]:
        """Get all relationships for any of the given milestones."""
        if not milestone_ids:
            return []
        return (
            self._session.query(Tracking)
            .options(joinedload(Tracking.tracker))
            .filter(Tracking.milestone_id.in_(milestone_ids))
            .order_by(Tracking.created_at)
            .all()
        )

    async def mark_notified(self, tracking: Tracking, when: datetime) -> None:
        """Record when a tracker was last notified."""
        tracking.last_notified_at = when
        self._session.flush()


class SQLAlchemyNotificationRepository(BaseSQLAlchemyRepository, NotificationRepository):
    """SQLAlchemy implementation of NotificationRepository."""

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
            recipient_id=recipient_id,
            kind=kind.value,
            title=title,
            message=message,
            read=False,
            related_milestone_id=related_milestone_id,
        )
        await self.save(notification)
        self._session.flush()
        return notification

    async def get_by_id(self, notification_id: UUID) -> Optional[Notification]:
        """Get a notification by ID."""
        return (
            self._session.query(Notification)
            .filter(Notification.id == notification_id)
            .first()
        )

    async def list_for_recipient(
        self, recipient_id: UUID, kind: Optional[NotificationKind] = None
    ) -> List[Notification]:
        """Get a user's notifications, newest first."""
        query = self._session.query(Notification).filter(
            Notification.recipient_id == recipient_id
        )
        if kind:
            query = query.filter(Notification.kind == kind.value)
        return query.order_by(desc(Notification.created_at)).all()

    async def mark_read(self, notification: Notification) -> None:
        """Flip the read flag to True."""
        notification.read = True
        self._session.flush()

    async def mark_all_read(self, recipient_id: UUID) -> int:
        """Mark all unread notifications of a user as read."""
        return (
            self._session.query(Notification)
            .filter(
                and_(
                    Notification.recipient_id == recipient_id,
                    Notification.read.is_(False),
                )
            )
            .update({Notification.read: True}, synchronize_session="fetch")
        )
