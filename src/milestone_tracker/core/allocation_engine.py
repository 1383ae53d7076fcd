"""Tracking allocation engine.

Coordinates the user, milestone, tracking and notification stores so that
starting to track a milestone, updating milestone progress and resetting a
tracker's quota each apply as one consistent unit of work.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from ..auth.identity import Identity
from ..db.models import Milestone
from ..domain.errors import (
    AlreadyTrackingError,
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    QuotaExhaustedError,
)
from ..repositories.interfaces import RepositoryContainer
from ..utils.logging_config import get_logger
from .enums import NotificationKind, UserRole
from .notification_emitter import NotificationEmitter
from .quota_manager import QuotaManager

COMPLETE = 100


@dataclass(frozen=True)
class TrackResult:
    """Outcome of a successful track operation."""

    milestone_id: UUID
    remaining: int


@dataclass
class ProgressResult:
    """Outcome of a successful progress update."""

    milestone: Milestone
    previous_progress: int
    # True when this update was the transition into completion
    completed: bool = False
    notified_tracker_ids: List[UUID] = field(default_factory=list)


def is_completion_transition(old_progress: int, new_progress: int) -> bool:
    """Only the edge from below 100 to exactly 100 counts as completing."""
    return old_progress != COMPLETE and new_progress == COMPLETE


def validate_progress(value) -> int:
    """Return ``value`` if it is an integer percentage, else raise InvalidArgumentError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError("Progress must be an integer")
    if value < 0 or value > COMPLETE:
        raise InvalidArgumentError("Progress must be between 0 and 100")
    return value


class AllocationEngine:
    """Engine for tracking allocation and state-transition notifications."""

    def __init__(self, repos: RepositoryContainer):
        self.repos = repos
        self.emitter = NotificationEmitter(repos.notification)
        self.quota = QuotaManager(repos.user)
        self.logger = get_logger(__name__)

    async def track_milestone(self, identity: Identity, milestone_id: UUID) -> TrackResult:
        """Start tracking a milestone on behalf of a tracker.

        Raises:
            ForbiddenError: Caller is not a tracker
            QuotaExhaustedError: No remaining daily allocation
            NotFoundError: Milestone (or the caller's account) does not exist
            AlreadyTrackingError: The relationship already exists
        """
        if identity.role != UserRole.TRACKER:
            raise ForbiddenError()

        try:
            await self.repos.begin_write()
            tracker = await self.repos.user.get_by_id(identity.id)
            if tracker is None:
                raise NotFoundError("User not found")
            if tracker.queue_remaining <= 0:
                raise QuotaExhaustedError()

            milestone = await self.repos.milestone.get_by_id(milestone_id)
            if milestone is None:
                raise NotFoundError("Milestone not found")

            # Early exit only; the store's unique constraint is what guarantees it
            if await self.repos.tracking.exists(milestone_id, identity.id):
                raise AlreadyTrackingError()

            try:
                await self.repos.tracking.create(milestone_id, identity.id)
            except ConflictError as exc:
                self.logger.info(
                    f"Lost tracking race for milestone {milestone_id} / tracker {identity.id}"
                )
                raise AlreadyTrackingError() from exc

            if not await self.repos.milestone.increment_tracking_count(milestone_id):
                raise NotFoundError("Milestone not found")

            remaining = await self.repos.user.consume_quota(identity.id)
            if remaining is None:
                # A concurrent request spent the last slot after our first read
                raise QuotaExhaustedError()

            await self.emitter.emit(
                recipient_id=milestone.owner_id,
                kind=NotificationKind.NEW_TRACKER,
                title="New Tracker",
                message=f'{tracker.username} is now tracking your "{milestone.name}" milestone.',
                related_milestone_id=milestone_id,
            )

            await self.repos.commit()
        except Exception:
            await self.repos.rollback()
            raise

        self.logger.info(
            f"{identity.username} now tracking milestone {milestone_id} ({remaining} left today)"
        )
        return TrackResult(milestone_id=milestone_id, remaining=remaining)

    async def update_progress(
        self, identity: Identity, milestone_id: UUID, new_progress
    ) -> ProgressResult:
        """Set a milestone's progress, notifying trackers on completion.

        Trackers are notified only when progress moves from below 100 to
        exactly 100; staying at 100 or leaving it emits nothing.

        Raises:
            ForbiddenError: Caller is not an owner, or not this milestone's owner
            InvalidArgumentError: Progress is not an integer in [0, 100]
            NotFoundError: Milestone does not exist
        """
        if identity.role != UserRole.OWNER:
            raise ForbiddenError()
        new_progress = validate_progress(new_progress)

        try:
            await self.repos.begin_write()
            milestone = await self.repos.milestone.get_by_id(milestone_id, for_update=True)
            if milestone is None:
                raise NotFoundError("Milestone not found")
            if milestone.owner_id != identity.id:
                raise ForbiddenError()

            old_progress = milestone.progress
            await self.repos.milestone.set_progress(milestone, new_progress)

            notified: List[UUID] = []
            completed = is_completion_transition(old_progress, new_progress)
            if completed:
                now = datetime.now(timezone.utc)
                for tracking in await self.repos.tracking.list_by_milestone(milestone_id):
                    await self.emitter.emit(
                        recipient_id=tracking.tracker_id,
                        kind=NotificationKind.MILESTONE_COMPLETED,
                        title="Milestone Completed",
                        message=f"{milestone.name} has been marked as complete.",
                        related_milestone_id=milestone_id,
                    )
                    await self.repos.tracking.mark_notified(tracking, now)
                    notified.append(tracking.tracker_id)

            await self.repos.commit()
        except Exception:
            await self.repos.rollback()
            raise

        self.logger.info(
            f"Milestone {milestone_id} progress {old_progress} -> {new_progress}"
            + (f", notified {len(notified)} trackers" if notified else "")
        )
        return ProgressResult(
            milestone=milestone,
            previous_progress=old_progress,
            completed=completed,
            notified_tracker_ids=notified,
        )

    async def reset_quota(self, identity: Identity) -> int:
        """Reset the caller's daily tracking quota."""
        return await self.quota.reset_quota(identity)
