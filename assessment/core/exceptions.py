"""
Domain exceptions raised by the session orchestrator, question selection and
scoring dispatch.

Every exception carries the ids involved in ``context`` so API handlers and
log lines can render them without parsing messages. HTTP status mapping lives
in assessment.core.error_responses; the core never raises HTTPException.
"""
from typing import Any, Dict, Optional


class AssessmentError(Exception):
    """Base exception for assessment domain errors."""

    kind = "assessment_error"

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            msg = f"{msg} (context: {ctx_str})"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form used in error response bodies."""
        return {"error": self.kind, "context": dict(self.context)}


class NotFoundError(AssessmentError):
    """A referenced template or session does not exist (or is inactive)."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} {entity_id} not found",
            context={"entity": entity, "id": entity_id},
        )


class DuplicateSessionError(AssessmentError):
    """The user already holds an IN_PROGRESS session for the template."""

    kind = "duplicate_session"

    def __init__(self, existing_session_id: Optional[int], template_id: int, user_id: str):
        self.existing_session_id = existing_session_id
        self.template_id = template_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} already has an in-progress session for template {template_id}",
            context={
                "existing_session_id": existing_session_id,
                "template_id": template_id,
                "user_id": user_id,
            },
        )


class InvalidStateError(AssessmentError):
    """Operation attempted on a session in the wrong lifecycle state."""

    kind = "invalid_state"

    def __init__(self, session_id: int, status: str, operation: str):
        self.session_id = session_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} session {session_id} in status {status}",
            context={"session_id": session_id, "status": status, "operation": operation},
        )


class NotInSessionError(AssessmentError):
    """Answer submitted for a question outside the session's question order."""

    kind = "not_in_session"

    def __init__(self, session_id: int, question_id: int):
        self.session_id = session_id
        self.question_id = question_id
        super().__init__(
            f"Question {question_id} is not part of session {session_id}",
            context={"session_id": session_id, "question_id": question_id},
        )


class AnswerAlreadyRecordedError(AssessmentError):
    """A different response was already recorded for this question."""

    kind = "answer_already_recorded"

    def __init__(self, session_id: int, question_id: int):
        self.session_id = session_id
        self.question_id = question_id
        super().__init__(
            f"Question {question_id} already has a different recorded answer "
            f"in session {session_id}",
            context={"session_id": session_id, "question_id": question_id},
        )


class UnsupportedScoringConfigurationError(AssessmentError):
    """No registered scoring strategy supports the template's goal."""

    kind = "unsupported_scoring_configuration"

    def __init__(self, goal: Any, template_id: Optional[int] = None):
        self.goal = getattr(goal, "value", goal)
        self.template_id = template_id
        super().__init__(
            f"No scoring strategy registered for goal {self.goal}",
            context={"goal": self.goal, "template_id": template_id},
        )


class ScoringConfigurationError(AssessmentError):
    """Raised at registration time when strategies claim overlapping goals."""

    kind = "scoring_configuration"


class NavigationError(AssessmentError):
    """Question index outside the session, or a disallowed backward move."""

    kind = "invalid_navigation"

    def __init__(self, session_id: int, question_index: int, total_questions: int, reason: str):
        self.session_id = session_id
        self.question_index = question_index
        self.total_questions = total_questions
        self.reason = reason
        super().__init__(
            f"Cannot move session {session_id} to question {question_index}: {reason}",
            context={
                "session_id": session_id,
                "question_index": question_index,
                "total_questions": total_questions,
            },
        )
