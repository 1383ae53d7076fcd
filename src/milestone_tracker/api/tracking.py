"""Tracking relationship API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..auth.dependencies import require_owner, require_tracker
from ..auth.identity import Identity
from ..core.allocation_engine import AllocationEngine
from ..domain.errors import ForbiddenError
from ..repositories.dependencies import get_repository_container
from ..repositories.interfaces import RepositoryContainer
from .dependencies import get_allocation_engine
from .schemas import (
    ProblemDetails,
    TotalTrackersResponse,
    TrackedMilestoneListResponse,
    TrackedMilestoneResponse,
    TrackerListResponse,
    TrackerResponse,
    TrackResponse,
)

router = APIRouter(prefix="/v1/tracking", tags=["tracking"])


@router.get("/mine", response_model=TrackedMilestoneListResponse)
async def list_tracked_milestones(
    identity: Identity = Depends(require_tracker),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> TrackedMilestoneListResponse:
    """Get the milestones the caller tracks, with their owners and progress."""
    trackings = await repos.tracking.list_by_tracker(identity.id)
    return TrackedMilestoneListResponse(
        milestones=[
            TrackedMilestoneResponse(
                milestone_id=t.milestone.id,
                name=t.milestone.name,
                description=t.milestone.description,
                progress=t.milestone.progress,
                owner_username=t.milestone.owner.username,
                end_date=t.milestone.end_date,
                tracking_since=t.created_at,
            )
            for t in trackings
        ]
    )


@router.post(
    "/{milestone_id}",
    response_model=TrackResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ProblemDetails, "description": "Daily tracking limit reached"},
        403: {"model": ProblemDetails, "description": "Only trackers track milestones"},
        404: {"model": ProblemDetails, "description": "Milestone not found"},
        409: {"model": ProblemDetails, "description": "Already tracking this milestone"},
    },
)
async def track_milestone(
    milestone_id: UUID,
    identity: Identity = Depends(require_tracker),
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> TrackResponse:
    """
    Start tracking a milestone.

    Consumes one unit of the caller's daily quota and notifies the
    milestone's owner.
    """
    result = await engine.track_milestone(identity, milestone_id)
    return TrackResponse(milestone_id=result.milestone_id, queue_remaining=result.remaining)


@router.get(
    "/trackers/{milestone_id}",
    response_model=TrackerListResponse,
    responses={403: {"model": ProblemDetails, "description": "Not the milestone's owner"}},
)
async def list_milestone_trackers(
    milestone_id: UUID,
    identity: Identity = Depends(require_owner),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> TrackerListResponse:
    """Get the trackers of one of the caller's milestones."""
    milestone = await repos.milestone.get_by_id(milestone_id)
    # A missing milestone is reported the same way as someone else's
    if milestone is None or milestone.owner_id != identity.id:
        raise ForbiddenError("Not authorized to view trackers for this milestone")

    trackings = await repos.tracking.list_by_milestone(milestone_id)
    return TrackerListResponse(
        milestone_id=milestone_id,
        trackers=[
            TrackerResponse(
                tracker_id=t.tracker_id,
                username=t.tracker.username,
                tracking_since=t.created_at,
                last_notified_at=t.last_notified_at,
            )
            for t in trackings
        ],
    )


@router.get("/total-trackers", response_model=TotalTrackersResponse)
async def total_trackers(
    identity: Identity = Depends(require_owner),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> TotalTrackersResponse:
    """Count unique trackers across all of the caller's milestones."""
    milestones = await repos.milestone.get_by_owner(identity.id)
    trackings = await repos.tracking.list_by_milestones([m.id for m in milestones])

    # Earliest relationship per tracker
    unique = {}
    for tracking in trackings:
        if tracking.tracker_id not in unique:
            unique[tracking.tracker_id] = TrackerResponse(
                tracker_id=tracking.tracker_id,
                username=tracking.tracker.username,
                tracking_since=tracking.created_at,
                last_notified_at=tracking.last_notified_at,
            )

    return TotalTrackersResponse(total=len(unique), trackers=list(unique.values()))
