"""
Integrity policy for classifying and handling expected IntegrityError exceptions.

Distinguishes database constraint violations that mean "a concurrent writer
got there first" from integrity errors that are genuine failures.
"""

from enum import Enum
from typing import Optional, Dict, Any

from sqlalchemy.exc import IntegrityError  # type: ignore

from ..utils.logging_config import get_logger


logger = get_logger("database")


class ExpectedIntegrityTag(Enum):
    """Tags for expected integrity constraint violations."""

    TRACKING_ALREADY_EXISTS = "tracking_already_exists"
    USERNAME_TAKEN = "username_taken"
    EMAIL_TAKEN = "email_taken"


# SQLite reports the column list, PostgreSQL the constraint name
CONSTRAINT_TAG_MAP: Dict[str, ExpectedIntegrityTag] = {
    "trackings.milestone_id, trackings.tracker_id": ExpectedIntegrityTag.TRACKING_ALREADY_EXISTS,
    "uq_tracking_milestone_tracker": ExpectedIntegrityTag.TRACKING_ALREADY_EXISTS,
    "users.username": ExpectedIntegrityTag.USERNAME_TAKEN,
    "users_username_key": ExpectedIntegrityTag.USERNAME_TAKEN,
    "users.email": ExpectedIntegrityTag.EMAIL_TAKEN,
    "users_email_key": ExpectedIntegrityTag.EMAIL_TAKEN,
}


def _error_message(exc: IntegrityError) -> str:
    return str(exc.orig) if exc.orig else str(exc)


def is_unique_violation(exc: IntegrityError) -> bool:
    """Check if the IntegrityError is a unique constraint violation."""
    error_msg = _error_message(exc)
    return (
        "UNIQUE constraint failed" in error_msg
        or "duplicate key value violates unique constraint" in error_msg
    )


def extract_constraint_name(exc: IntegrityError) -> Optional[str]:
    """Extract the constraint identifier from an IntegrityError."""
    error_msg = _error_message(exc)

    # SQLite: "UNIQUE constraint failed: table.column1, table.column2"
    if "UNIQUE constraint failed:" in error_msg:
        return error_msg.split("UNIQUE constraint failed:", 1)[1].strip().splitlines()[0]

    # PostgreSQL: 'duplicate key value violates unique constraint "name"'
    if "violates unique constraint" in error_msg and '"' in error_msg:
        return error_msg.split('"')[1]

    return None


def classify_integrity_error(exc: IntegrityError) -> Optional[ExpectedIntegrityTag]:
    """Map an IntegrityError to an expected tag, or None if it is unexpected."""
    if not is_unique_violation(exc):
        return None

    constraint = extract_constraint_name(exc)
    if constraint is None:
        return None

    return CONSTRAINT_TAG_MAP.get(constraint)


def log_expected_violation(
    tag: ExpectedIntegrityTag, exc: IntegrityError, context: Dict[str, Any]
) -> None:
    """Log an expected violation at INFO; it means the constraint did its job."""
    logger.info(
        f"Expected constraint violation {tag.value} during "
        f"{context.get('operation', 'unknown')} ({context.get('entity_id', '-')})"
    )


def log_unexpected_violation(exc: IntegrityError, context: Dict[str, Any]) -> None:
    """Log an unexpected integrity violation at ERROR."""
    logger.error(
        f"Unexpected integrity error during {context.get('operation', 'unknown')} "
        f"({context.get('entity_id', '-')}): {_error_message(exc)}"
    )
