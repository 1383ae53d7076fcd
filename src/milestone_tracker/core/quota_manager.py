"""Daily tracking quota management."""

from ..auth.identity import Identity
from ..domain.errors import ForbiddenError, NotFoundError
from ..repositories.interfaces import UserRepository
from ..utils.logging_config import get_logger
from .enums import UserRole


class QuotaManager:
    """Owns reads and resets of a tracker's remaining daily allocation.

    Consumption happens only inside the allocation engine's track operation,
    through ``UserRepository.consume_quota``.
    """

    def __init__(self, users: UserRepository):
        self.users = users
        self.logger = get_logger(__name__)

    async def reset_quota(self, identity: Identity) -> int:
        """Restore the caller's quota to its daily limit.

        Idempotent: the result is ``daily_tracking_limit`` however many times
        it is called. Emits no notification.

        Returns:
            The caller's remaining quota after the reset
        """
        if identity.role != UserRole.TRACKER:
            raise ForbiddenError()

        try:
            await self.users.begin_write()
            remaining = await self.users.reset_quota(identity.id)
            if remaining is None:
                raise NotFoundError("User not found")
            await self.users.commit()
        except Exception:
            await self.users.rollback()
            raise

        self.logger.info(f"Reset tracking quota for {identity.id} to {remaining}")
        return remaining
