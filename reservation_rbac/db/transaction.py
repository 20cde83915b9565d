"""Commit-or-rollback helper with retry on uniqueness violations."""

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reservation_rbac.core.config import settings
from reservation_rbac.core.exceptions import ResourceConflictError, StorageError, RBACError

logger = logging.getLogger("reservation_rbac")

T = TypeVar("T")


def run_atomic(
    db: Session,
    operation: Callable[[], T],
    attempts: int = None,
    conflict_message: str = "Concurrent modification, please retry",
) -> T:
    """Run ``operation`` and commit it as one unit.

    The operation re-reads whatever it needs, so when a concurrent writer wins
    a unique constraint we roll back and run it again against the new state.
    Domain errors roll back and propagate untouched; exhausting the attempts
    is a conflict.
    """
    attempts = attempts or settings.ASSIGNMENT_RETRY_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
            db.commit()
            return result
        except IntegrityError:
            db.rollback()
            logger.warning("Uniqueness conflict on attempt %d/%d, retrying", attempt, attempts)
        except RBACError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Storage unavailable: {e.__class__.__name__}") from e
    raise ResourceConflictError(conflict_message)
