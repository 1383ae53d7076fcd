"""Dependency injection for repository layer."""

from fastapi import Depends
from sqlalchemy.orm import Session

from ..db.database import get_db
from .interfaces import RepositoryContainer
from .sqlalchemy_impl import (
    SQLAlchemyUserRepository,
    SQLAlchemyMilestoneRepository,
    SQLAlchemyTrackingRepository,
    SQLAlchemyNotificationRepository,
)


def build_sqlalchemy_container(db: Session) -> RepositoryContainer:
    """Create a repository container whose repositories share one session."""
    return RepositoryContainer(
        user_repo=SQLAlchemyUserRepository(db),
        milestone_repo=SQLAlchemyMilestoneRepository(db),
        tracking_repo=SQLAlchemyTrackingRepository(db),
        notification_repo=SQLAlchemyNotificationRepository(db),
    )


def get_repository_container(
    db: Session = Depends(get_db),
) -> RepositoryContainer:
    """
    Create and configure a repository container with SQLAlchemy implementations.

    This is the main dependency injection point for repositories.
    """
    return build_sqlalchemy_container(db)
