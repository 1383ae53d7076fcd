"""Caller identity as resolved from a verified access token."""

from dataclasses import dataclass
from uuid import UUID

from ..core.enums import UserRole


@dataclass(frozen=True)
class Identity:
    """The authenticated caller: who they are and which role they act in."""

    id: UUID
    role: UserRole
    username: str

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER

    @property
    def is_tracker(self) -> bool:
        return self.role == UserRole.TRACKER
