"""Request-scoped service construction for route handlers."""

from fastapi import Depends

from ..core.allocation_engine import AllocationEngine
from ..repositories.dependencies import get_repository_container
from ..repositories.interfaces import RepositoryContainer


async def get_allocation_engine(
    repos: RepositoryContainer = Depends(get_repository_container),
) -> AllocationEngine:
    """Allocation engine bound to the request's unit of work."""
    return AllocationEngine(repos)
