"""Milestone management API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..auth.dependencies import require_owner, require_tracker
from ..auth.identity import Identity
from ..core.allocation_engine import AllocationEngine
from ..repositories.dependencies import get_repository_container
from ..repositories.interfaces import RepositoryContainer
from .dependencies import get_allocation_engine
from .schemas import (
    AvailableMilestoneListResponse,
    AvailableMilestoneResponse,
    MilestoneCreate,
    MilestoneListResponse,
    MilestoneResponse,
    ProblemDetails,
    ProgressUpdate,
    ProgressUpdateResponse,
)

router = APIRouter(prefix="/v1/milestones", tags=["milestones"])


@router.get("/mine", response_model=MilestoneListResponse)
async def list_my_milestones(
    identity: Identity = Depends(require_owner),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> MilestoneListResponse:
    """Get the caller's milestones, oldest first."""
    milestones = await repos.milestone.get_by_owner(identity.id)
    return MilestoneListResponse(
        milestones=[MilestoneResponse.model_validate(m) for m in milestones]
    )


@router.post(
    "",
    response_model=MilestoneResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ProblemDetails, "description": "Only owners create milestones"},
        422: {"model": ProblemDetails, "description": "Invalid milestone data"},
    },
)
async def create_milestone(
    request: MilestoneCreate,
    identity: Identity = Depends(require_owner),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> MilestoneResponse:
    """Create a milestone owned by the caller with zero progress and no trackers."""
    try:
        await repos.begin_write()
        milestone = await repos.milestone.create(
            owner_id=identity.id,
            name=request.name,
            description=request.description,
            end_date=request.end_date,
        )
    except Exception:
        await repos.rollback()
        raise
    return MilestoneResponse.model_validate(milestone)


@router.patch(
    "/{milestone_id}/progress",
    response_model=ProgressUpdateResponse,
    responses={
        403: {"model": ProblemDetails, "description": "Not the milestone's owner"},
        404: {"model": ProblemDetails, "description": "Milestone not found"},
        422: {"model": ProblemDetails, "description": "Progress out of range"},
    },
)
async def update_progress(
    milestone_id: UUID,
    request: ProgressUpdate,
    identity: Identity = Depends(require_owner),
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> ProgressUpdateResponse:
    """
    Set a milestone's progress.

    Moving progress to 100 notifies every current tracker once; later updates
    that stay at or return to 100 do not notify again.
    """
    result = await engine.update_progress(identity, milestone_id, request.progress)
    return ProgressUpdateResponse(
        milestone=MilestoneResponse.model_validate(result.milestone),
        previous_progress=result.previous_progress,
        completed=result.completed,
        notified_trackers=len(result.notified_tracker_ids),
    )


@router.get("/available", response_model=AvailableMilestoneListResponse)
async def list_available_milestones(
    identity: Identity = Depends(require_tracker),
    repos: RepositoryContainer = Depends(get_repository_container),
) -> AvailableMilestoneListResponse:
    """Get every milestone the caller is not tracking yet."""
    tracked = {t.milestone_id for t in await repos.tracking.list_by_tracker(identity.id)}
    milestones = [m for m in await repos.milestone.list_all() if m.id not in tracked]

    owners = {u.id: u for u in await repos.user.get_many(list({m.owner_id for m in milestones}))}
    available = []
    for milestone in milestones:
        data = MilestoneResponse.model_validate(milestone).model_dump()
        owner = owners.get(milestone.owner_id)
        data["owner_username"] = owner.username if owner else ""
        available.append(AvailableMilestoneResponse(**data))

    return AvailableMilestoneListResponse(milestones=available)
