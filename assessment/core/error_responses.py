"""
Standardized error response messages and builders.

User-facing strings live here so the API layer renders domain errors
consistently. Log messages carry the raw ids; these messages stay short and
action-oriented.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include relevant IDs in parentheses when helpful for debugging: "(ID: 123)"
- Use "Please try again later." for transient server errors

Usage:
    from assessment.core.error_responses import ErrorMessages, raise_unauthorized

    raise_unauthorized(ErrorMessages.USER_ID_MISSING)
"""

from typing import Dict, NoReturn, Optional, Type

from fastapi import HTTPException, status

from assessment.core.exceptions import (
    AnswerAlreadyRecordedError,
    AssessmentError,
    DuplicateSessionError,
    InvalidStateError,
    NavigationError,
    NotFoundError,
    NotInSessionError,
    ScoringConfigurationError,
    UnsupportedScoringConfigurationError,
)


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Authentication Errors (401)
    # ==========================================================================
    USER_ID_MISSING = "User identity header is missing."

    # ==========================================================================
    # Authorization Errors (403)
    # ==========================================================================
    SESSION_ACCESS_DENIED = "Not authorized to access this test session."

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    TEST_TEMPLATE_NOT_FOUND = "Test template not found or inactive."
    TEST_SESSION_NOT_FOUND = "Test session not found."
    TEST_RESULT_NOT_FOUND = "Test result not found."
    QUESTION_NOT_FOUND = "Question not found."

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    SCORING_NOT_CONFIGURED = (
        "Scoring is not configured for this test. Please contact support."
    )
    INTERNAL_ERROR = "An unexpected error occurred. Please try again later."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def active_session_exists(session_id: Optional[int]) -> str:
        """Message for when the user already has an in-progress session.

        Includes session_id so clients can offer "Resume session".
        """
        if session_id is None:
            return (
                "A test session is already in progress for this template. "
                "Please complete or abandon it before starting a new one."
            )
        return (
            f"User already has an in-progress session for this template (ID: {session_id}). "
            "Please complete or abandon the existing session before starting a new one."
        )

    @staticmethod
    def session_not_in_progress(status: str) -> str:
        """Message for when trying to modify a non-in-progress session."""
        return f"Only in-progress sessions can be modified (current status: {status})."

    @staticmethod
    def question_not_in_session(question_id: int) -> str:
        """Message for an answer to a question the session never assigned."""
        return f"Question is not part of this test session (ID: {question_id})."

    @staticmethod
    def answer_already_recorded(question_id: int) -> str:
        """Message for a conflicting resubmission."""
        return (
            f"A different answer was already recorded for this question (ID: {question_id})."
        )

    @staticmethod
    def invalid_navigation(reason: str) -> str:
        """Message for a rejected question move or an exhausted question order."""
        return f"Question navigation rejected: {reason}."


_NOT_FOUND_MESSAGES: Dict[str, str] = {
    "TestTemplate": ErrorMessages.TEST_TEMPLATE_NOT_FOUND,
    "TestSession": ErrorMessages.TEST_SESSION_NOT_FOUND,
    "TestResult": ErrorMessages.TEST_RESULT_NOT_FOUND,
    "AssessmentQuestion": ErrorMessages.QUESTION_NOT_FOUND,
}

ERROR_STATUS_CODES: Dict[Type[AssessmentError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateSessionError: status.HTTP_409_CONFLICT,
    InvalidStateError: status.HTTP_409_CONFLICT,
    AnswerAlreadyRecordedError: status.HTTP_409_CONFLICT,
    NotInSessionError: status.HTTP_400_BAD_REQUEST,
    NavigationError: status.HTTP_400_BAD_REQUEST,
    UnsupportedScoringConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ScoringConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(exc: AssessmentError) -> int:
    """HTTP status for a domain error; unknown kinds are server faults."""
    for exc_type in type(exc).__mro__:
        if exc_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[exc_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def detail_for(exc: AssessmentError) -> str:
    """User-facing message for a domain error."""
    if isinstance(exc, NotFoundError):
        return _NOT_FOUND_MESSAGES.get(exc.entity, f"{exc.entity} not found.")
    if isinstance(exc, DuplicateSessionError):
        return ErrorMessages.active_session_exists(exc.existing_session_id)
    if isinstance(exc, InvalidStateError):
        return ErrorMessages.session_not_in_progress(exc.status)
    if isinstance(exc, NotInSessionError):
        return ErrorMessages.question_not_in_session(exc.question_id)
    if isinstance(exc, AnswerAlreadyRecordedError):
        return ErrorMessages.answer_already_recorded(exc.question_id)
    if isinstance(exc, NavigationError):
        return ErrorMessages.invalid_navigation(exc.reason)
    if isinstance(exc, (UnsupportedScoringConfigurationError, ScoringConfigurationError)):
        return ErrorMessages.SCORING_NOT_CONFIGURED
    return ErrorMessages.INTERNAL_ERROR


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def raise_unauthorized(detail: str) -> NoReturn:
    """Raise a 401 Unauthorized exception.

    Use when the upstream identity layer did not forward a user id.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 401 Unauthorized
    """
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
    )


def raise_forbidden(detail: str) -> NoReturn:
    """Raise a 403 Forbidden exception.

    Use when the caller is identified but does not own the resource.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 403 Forbidden
    """
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail,
    )

