"""
Test session endpoints: start, answer, navigate, time updates, complete,
abandon and read back.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from assessment.core.auth import get_current_user_id
from assessment.core.db_error_handling import handle_db_error
from assessment.core.error_responses import ErrorMessages, raise_forbidden
from assessment.core.test_sessions import SessionOrchestrator, SessionView
from assessment.models import SessionStatus, get_db
from assessment.schemas.scoring import ScoreResultResponse
from assessment.schemas.test_sessions import (
    AnswerProgressResponse,
    AnswerSubmission,
    CompleteSessionResponse,
    CurrentQuestionResponse,
    DEFAULT_SESSION_PAGE_SIZE,
    MAX_SESSION_PAGE_SIZE,
    NavigateRequest,
    RecordedAnswerResponse,
    SessionListResponse,
    StartSessionRequest,
    TestSessionResponse,
    TimeRemainingUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator(db: Session = Depends(get_db)) -> SessionOrchestrator:
    """Request-scoped orchestrator bound to the request's database session."""
    return SessionOrchestrator(db)


def verify_session_ownership(
    orchestrator: SessionOrchestrator, session_id: int, user_id: str
) -> None:
    """
    Raise 403 if the session belongs to another user.

    A missing session is left to the orchestrator, which raises NotFoundError.
    """
    test_session = orchestrator.sessions.find_by_id(session_id)
    if test_session is not None and test_session.user_id != user_id:
        logger.warning(
            f"User {user_id} attempted to access session {session_id} "
            f"owned by {test_session.user_id}"
        )
        raise_forbidden(ErrorMessages.SESSION_ACCESS_DENIED)


def _session_response(view: SessionView) -> TestSessionResponse:
    return TestSessionResponse.model_validate(view)


@router.post(
    "",
    response_model=TestSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_session(
    request: StartSessionRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """
    Start a new test session from a template.

    Returns 409 with the existing session id when the user already has an
    in-progress session for the template.
    """
    with handle_db_error(orchestrator.db, "start test session"):
        view = orchestrator.start_session(request.template_id, user_id)
        return _session_response(view)


@router.get("", response_model=SessionListResponse)
def list_my_sessions(
    status_filter: Optional[SessionStatus] = Query(
        default=None,
        alias="status",
        description="Only return sessions in this status",
    ),
    limit: int = Query(
        default=DEFAULT_SESSION_PAGE_SIZE,
        ge=1,
        le=MAX_SESSION_PAGE_SIZE,
        description=f"Maximum number of sessions to return (default {DEFAULT_SESSION_PAGE_SIZE}, max {MAX_SESSION_PAGE_SIZE})",
    ),
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of sessions to skip for pagination",
    ),
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """
    The caller's sessions, newest first, with live answer counts.

    Args:
        status_filter: Optional status to filter on
        limit: Maximum number of sessions per page
        offset: Number of sessions to skip
        user_id: Caller identity
        orchestrator: Session orchestrator

    Returns:
        Paginated sessions with total count and has_more
    """
    with handle_db_error(orchestrator.db, "list test sessions"):
        page = orchestrator.list_user_sessions(
            user_id, status=status_filter, limit=limit, offset=offset
        )
        return SessionListResponse.model_validate(page)


@router.get("/active", response_model=Optional[TestSessionResponse])
def get_active_session(
    template_id: int = Query(..., ge=1, description="Template to look up"),
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """
    The caller's in-progress session on a template, if any.

    Returns null when there is nothing to resume.
    """
    with handle_db_error(orchestrator.db, "retrieve active test session"):
        view = orchestrator.find_in_progress_session(user_id, template_id)
        if view is None:
            return None
        return _session_response(view)


@router.get("/{session_id}", response_model=TestSessionResponse)
def get_session(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """Session details with live progress."""
    with handle_db_error(orchestrator.db, "retrieve test session"):
        verify_session_ownership(orchestrator, session_id, user_id)
        return _session_response(orchestrator.get_session(session_id))


@router.post("/{session_id}/answers", response_model=AnswerProgressResponse)
def submit_answer(
    session_id: int,
    submission: AnswerSubmission,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """
    Record the answer to one question.

    Re-sending the same answer is accepted and reported with recorded=false.
    """
    with handle_db_error(orchestrator.db, "record answer"):
        verify_session_ownership(orchestrator, session_id, user_id)
        progress = orchestrator.record_answer(
            session_id, submission.question_id, submission.to_response()
        )
        return AnswerProgressResponse.model_validate(progress)


@router.get("/{session_id}/answers", response_model=List[RecordedAnswerResponse])
def get_session_answers(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """Recorded answers in the order they were given."""
    with handle_db_error(orchestrator.db, "retrieve session answers"):
        verify_session_ownership(orchestrator, session_id, user_id)
        answers = orchestrator.get_session_answers(session_id)
        return [RecordedAnswerResponse.model_validate(a) for a in answers]


@router.get("/{session_id}/current-question", response_model=CurrentQuestionResponse)
def get_current_question(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """
    The question at the session's current index.

    Includes the previously recorded response so clients can restore it.
    """
    with handle_db_error(orchestrator.db, "retrieve current question"):
        verify_session_ownership(orchestrator, session_id, user_id)
        current = orchestrator.get_current_question(session_id)
        return CurrentQuestionResponse.model_validate(current)


@router.post("/{session_id}/navigate", response_model=TestSessionResponse)
def navigate_to_question(
    session_id: int,
    request: NavigateRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """Move to another question. Backward moves need allow_back_navigation."""
    with handle_db_error(orchestrator.db, "navigate test session"):
        verify_session_ownership(orchestrator, session_id, user_id)
        view = orchestrator.navigate_to_question(session_id, request.question_index)
        return _session_response(view)


@router.put("/{session_id}/time", response_model=TestSessionResponse)
def update_time_remaining(
    session_id: int,
    update: TimeRemainingUpdate,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """Store the remaining time reported by the client clock."""
    with handle_db_error(orchestrator.db, "update time remaining"):
        verify_session_ownership(orchestrator, session_id, user_id)
        view = orchestrator.update_time_remaining(
            session_id, update.time_remaining_seconds
        )
        return _session_response(view)


@router.post("/{session_id}/complete", response_model=CompleteSessionResponse)
def complete_session(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """Complete the session and return its score."""
    with handle_db_error(orchestrator.db, "complete test session"):
        verify_session_ownership(orchestrator, session_id, user_id)
        view = orchestrator.complete_session(session_id)
        return CompleteSessionResponse(
            session=_session_response(view),
            result=ScoreResultResponse.model_validate(view.score),
        )


@router.post("/{session_id}/abandon", response_model=TestSessionResponse)
def abandon_session(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """Abandon an in-progress session so a new one can be started."""
    with handle_db_error(orchestrator.db, "abandon test session"):
        verify_session_ownership(orchestrator, session_id, user_id)
        return _session_response(orchestrator.abandon_session(session_id))


@router.get("/{session_id}/result", response_model=ScoreResultResponse)
def get_session_result(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """Persisted score of a completed session."""
    with handle_db_error(orchestrator.db, "retrieve test result"):
        verify_session_ownership(orchestrator, session_id, user_id)
        result = orchestrator.get_result(session_id)
        return ScoreResultResponse.model_validate(result)
