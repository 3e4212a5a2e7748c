"""
Database error handling utilities.

This module centralizes the common endpoint pattern of:
1. Rolling back the database session on error
2. Logging the error with context
3. Raising an appropriate HTTPException

Domain errors (AssessmentError) and HTTPExceptions pass through untouched so
the application-level exception handlers can render them.

Usage:
    from assessment.core.db_error_handling import handle_db_error

    with handle_db_error(db, "start test session"):
        view = service.start_session(template_id, user_id)
        return view
"""

import logging
from contextlib import contextmanager
from typing import Generator

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from assessment.core.exceptions import AssessmentError


logger = logging.getLogger(__name__)


@contextmanager
def handle_db_error(db: Session, operation_name: str) -> Generator[None, None, None]:
    """Context manager for handling database errors consistently.

    Args:
        db: The SQLAlchemy database session to rollback on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "start test session", "record answer").

    Yields:
        None - the context manager is used for its side effects only.

    Raises:
        HTTPException: 500 on any unexpected exception, with the session rolled
            back. The detail reads "Failed to {operation_name}. Please try
            again later."
        AssessmentError: Re-raised unchanged (after rollback) for the
            application exception handlers.

    Note:
        The endpoint's return statement belongs inside the block so response
        construction failures are logged with the same operation context.
    """
    try:
        yield
    except HTTPException:
        raise
    except AssessmentError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()

        logger.error(
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )

        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {operation_name}. Please try again later.",
        )
