"""
Pydantic schemas for test session endpoints.
"""
from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Optional, Self
from datetime import datetime

from assessment.schemas.scoring import ScoreResultResponse


# Default number of sessions per page when listing a user's sessions
DEFAULT_SESSION_PAGE_SIZE = 20

# Maximum allowed sessions per page
MAX_SESSION_PAGE_SIZE = 100


class StartSessionRequest(BaseModel):
    """Schema for starting a test session."""

    template_id: int = Field(..., ge=1, description="Template to start a session from")


class AnswerSubmission(BaseModel):
    """Schema for submitting an answer to one question.

    At least one of likert_value, selected_option, score or text is required.
    """

    question_id: int = Field(..., ge=1, description="Question being answered")
    likert_value: Optional[int] = Field(
        None, ge=1, le=5, description="Likert response on a 1-5 scale"
    )
    selected_option: Optional[str] = Field(
        None, max_length=100, description="Key of the selected answer option"
    )
    score: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Pre-graded score (0-1)"
    )
    text: Optional[str] = Field(
        None, max_length=10000, description="Free-text response"
    )

    @model_validator(mode="after")
    def validate_has_response(self) -> Self:
        """Reject submissions that carry no response at all."""
        if (
            self.likert_value is None
            and self.selected_option is None
            and self.score is None
            and not self.text
        ):
            raise ValueError(
                "One of likert_value, selected_option, score or text is required"
            )
        return self

    def to_response(self) -> Dict[str, Any]:
        """Stored response payload (question id and unset fields dropped)."""
        return self.model_dump(exclude={"question_id"}, exclude_none=True)


class TestSessionResponse(BaseModel):
    """Schema for test session response."""

    id: int = Field(..., description="Test session ID")
    user_id: str = Field(..., description="Opaque user ID")
    template_id: int = Field(..., description="Template ID")
    status: str = Field(
        ..., description="Session status (IN_PROGRESS, COMPLETED, ABANDONED)"
    )
    question_order: List[int] = Field(
        ..., description="Question IDs in presentation order"
    )
    total_questions: int = Field(..., description="Number of questions in this session")
    answered_questions: int = Field(..., description="Number of answers recorded")
    started_at: datetime = Field(..., description="Session start timestamp")
    completed_at: Optional[datetime] = Field(
        None, description="Completion or abandonment timestamp"
    )
    current_question_index: int = Field(
        0, description="Zero-based index into question_order"
    )
    time_remaining_seconds: Optional[int] = Field(
        None, description="Remaining time for timed tests; null when untimed"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class AnswerProgressResponse(BaseModel):
    """Schema for progress after an answer submission."""

    session_id: int
    question_id: int
    answered_questions: int
    total_questions: int
    recorded: bool = Field(
        ..., description="False when an identical answer was already recorded"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class CompleteSessionResponse(BaseModel):
    """Schema for a completed session and its score."""

    session: TestSessionResponse = Field(..., description="Completed test session")
    result: ScoreResultResponse = Field(..., description="Score for the session")


class NavigateRequest(BaseModel):
    """Schema for moving to another question in the session."""

    question_index: int = Field(..., ge=0, description="Zero-based target index")


class TimeRemainingUpdate(BaseModel):
    """Schema for the client-reported remaining time."""

    time_remaining_seconds: int = Field(
        ..., ge=0, description="Seconds left on the test clock"
    )


class SessionListResponse(BaseModel):
    """
    Schema for a paginated list of the caller's sessions.

    Sessions are ordered newest first.
    """

    sessions: List[TestSessionResponse] = Field(
        ..., description="Sessions on the current page"
    )
    total_count: int = Field(..., ge=0, description="Total sessions matching the filter")
    limit: int = Field(
        ..., ge=1, le=MAX_SESSION_PAGE_SIZE, description="Page size"
    )
    offset: int = Field(..., ge=0, description="Offset from the start of the results")
    has_more: bool = Field(..., description="Whether more sessions follow this page")

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class QuestionResponse(BaseModel):
    """Schema for a question shown to the test taker (no option scores)."""

    id: int
    question_text: str
    question_type: str
    difficulty_level: str
    time_limit: Optional[int] = Field(None, description="Suggested seconds for this question")
    options: List[str] = Field(default_factory=list, description="Answer option keys")

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class CurrentQuestionResponse(BaseModel):
    """Schema for the question at the session's current index."""

    session_id: int
    question_index: int = Field(..., description="Zero-based index of this question")
    total_questions: int
    question: QuestionResponse
    time_remaining_seconds: Optional[int] = None
    allow_back_navigation: bool
    previous_response: Optional[Dict[str, Any]] = Field(
        None, description="Response already recorded for this question"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class RecordedAnswerResponse(BaseModel):
    """Schema for one recorded answer."""

    question_id: int
    response: Dict[str, Any]
    answered_at: datetime

    class Config:
        """Pydantic configuration."""

        from_attributes = True
