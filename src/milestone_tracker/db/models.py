"""SQLAlchemy models for the Milestone Tracker."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    DateTime,
    Boolean,
    JSON,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator, CHAR

from .database import Base
from ..core.enums import UserRole, NotificationKind


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GUID(TypeDecorator):
    """Platform-independent GUID type using String for SQLite."""

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID())
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, UUID):
            return value
        return UUID(value)


class User(Base):
    """An owner or tracker account.

    Trackers carry their daily tracking quota here: ``queue_remaining`` is the
    number of new tracking relationships they may still create before a reset.
    """

    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=uuid4)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    password_salt = Column(String(64), nullable=False)
    role = Column(String(20), nullable=False)
    queue_remaining = Column(Integer, nullable=False, default=3)
    daily_tracking_limit = Column(Integer, nullable=False, default=3)
    notify_email = Column(Boolean, nullable=False, default=True)
    notify_daily_summary = Column(Boolean, nullable=False, default=True)
    notify_push = Column(Boolean, nullable=False, default=False)
    interest_categories = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    # Relationships
    milestones = relationship("Milestone", back_populates="owner")
    trackings = relationship("Tracking", back_populates="tracker")

    __table_args__ = (
        CheckConstraint("daily_tracking_limit > 0", name="ck_user_daily_limit_positive"),
        CheckConstraint(
            "queue_remaining >= 0 AND queue_remaining <= daily_tracking_limit",
            name="ck_user_queue_remaining_bounds",
        ),
        CheckConstraint("role IN ('owner', 'tracker')", name="ck_user_role"),
    )

    @property
    def is_tracker(self) -> bool:
        return self.role == UserRole.TRACKER.value

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER.value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"


class Milestone(Base):
    """A milestone owned by a single owner."""

    __tablename__ = "milestones"

    id = Column(GUID(), primary_key=True, default=uuid4)
    owner_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    progress = Column(Integer, nullable=False, default=0)
    # Cache of the number of trackings rows for this milestone
    tracking_count = Column(Integer, nullable=False, default=0)
    start_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    # Relationships
    owner = relationship("User", back_populates="milestones")
    trackings = relationship("Tracking", back_populates="milestone")

    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_milestone_progress_range"),
        CheckConstraint("tracking_count >= 0", name="ck_milestone_tracking_count_nonneg"),
        Index("ix_milestone_owner_id", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<Milestone(id={self.id}, name='{self.name}', progress={self.progress})>"


class Tracking(Base):
    """A tracker's subscription to one milestone."""

    __tablename__ = "trackings"

    id = Column(GUID(), primary_key=True, default=uuid4)
    milestone_id = Column(GUID(), ForeignKey("milestones.id"), nullable=False)
    tracker_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    last_notified_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    milestone = relationship("Milestone", back_populates="trackings")
    tracker = relationship("User", back_populates="trackings")

    __table_args__ = (
        UniqueConstraint(
            "milestone_id", "tracker_id", name="uq_tracking_milestone_tracker"
        ),
        Index("ix_tracking_tracker_id", "tracker_id"),
    )

    def __repr__(self) -> str:
        return f"<Tracking(milestone_id={self.milestone_id}, tracker_id={self.tracker_id})>"


class Notification(Base):
    """A durable notification record addressed to one user."""

    __tablename__ = "notifications"

    id = Column(GUID(), primary_key=True, default=uuid4)
    # No foreign keys: recipient existence is the emitting caller's concern
    recipient_id = Column(GUID(), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    kind = Column(String(32), nullable=False, default=NotificationKind.SYSTEM.value)
    read = Column(Boolean, nullable=False, default=False)
    related_milestone_id = Column(GUID(), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("ix_notification_recipient_created", "recipient_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, kind='{self.kind}', read={self.read})>"
