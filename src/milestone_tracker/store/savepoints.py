"""
Savepoint utilities for handling expected database constraint violations.

Operations that may trip an expected unique constraint run inside a savepoint
so the violation does not poison the surrounding unit of work.
"""

from contextlib import contextmanager
from typing import Set, Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .integrity_policy import (
    ExpectedIntegrityTag,
    classify_integrity_error,
    log_expected_violation,
    log_unexpected_violation,
)


@contextmanager
def expected_conflict_savepoint(
    session: Session,
    expected_tags: Set[ExpectedIntegrityTag],
    operation_context: Dict[str, Any],
):
    """
    Context manager that wraps operations in a savepoint and handles expected IntegrityError.

    Args:
        session: SQLAlchemy session
        expected_tags: Set of expected integrity violation tags to handle gracefully
        operation_context: Context dict; ``integrity_tag`` is set on an expected violation

    Usage:
        context = {"operation": "create_tracking", "entity_id": f"{milestone_id}:{tracker_id}"}
        with expected_conflict_savepoint(session, {ExpectedIntegrityTag.TRACKING_ALREADY_EXISTS}, context):
            session.add(Tracking(...))
            session.flush()

        if "integrity_tag" in context:
            # The pair already existed
            ...
    """
    nested_transaction = session.begin_nested()

    try:
        yield
        nested_transaction.commit()

    except IntegrityError as exc:
        # Rollback the savepoint to keep the outer transaction usable
        nested_transaction.rollback()

        tag = classify_integrity_error(exc)

        if tag and tag in expected_tags:
            operation_context["integrity_tag"] = tag
            log_expected_violation(tag, exc, operation_context)
        else:
            log_unexpected_violation(exc, operation_context)
            raise

    except Exception:
        nested_transaction.rollback()
        raise
