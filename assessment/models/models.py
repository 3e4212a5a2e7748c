"""
Database models for the competency assessment service.

Competencies, behavioral indicators, questions and templates are authored
elsewhere and are read-only here. Sessions, answers and results are owned by
the session orchestrator in app code (see assessment.core.test_sessions).
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    Enum,
    Float,
    UniqueConstraint,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSON
from datetime import datetime, timezone
import enum

from .base import Base


class CompetencyCategory(str, enum.Enum):
    """Competency category enumeration."""

    COGNITIVE = "COGNITIVE"
    INTERPERSONAL = "INTERPERSONAL"
    LEADERSHIP = "LEADERSHIP"
    ADAPTABILITY = "ADAPTABILITY"
    EMOTIONAL_INTELLIGENCE = "EMOTIONAL_INTELLIGENCE"
    COMMUNICATION = "COMMUNICATION"
    COLLABORATION = "COLLABORATION"
    CRITICAL_THINKING = "CRITICAL_THINKING"
    TIME_MANAGEMENT = "TIME_MANAGEMENT"


class ContextScope(str, enum.Enum):
    """Context in which a behavioral indicator is observable."""

    UNIVERSAL = "UNIVERSAL"
    PROFESSIONAL = "PROFESSIONAL"
    TECHNICAL = "TECHNICAL"
    MANAGERIAL = "MANAGERIAL"


class IndicatorMeasurementType(str, enum.Enum):
    """How a behavioral indicator is measured."""

    FREQUENCY = "FREQUENCY"
    QUALITY = "QUALITY"
    IMPACT = "IMPACT"
    CONSISTENCY = "CONSISTENCY"
    IMPROVEMENT = "IMPROVEMENT"


class QuestionType(str, enum.Enum):
    """Question type enumeration."""

    LIKERT = "LIKERT"
    SJT = "SJT"
    MCQ = "MCQ"
    LIKERT_SCALE = "LIKERT_SCALE"
    SITUATIONAL_JUDGMENT = "SITUATIONAL_JUDGMENT"
    BEHAVIORAL_EXAMPLE = "BEHAVIORAL_EXAMPLE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    CAPABILITY_ASSESSMENT = "CAPABILITY_ASSESSMENT"
    SELF_REFLECTION = "SELF_REFLECTION"
    PEER_FEEDBACK = "PEER_FEEDBACK"
    FREQUENCY_SCALE = "FREQUENCY_SCALE"
    OPEN_TEXT = "OPEN_TEXT"


class DifficultyLevel(str, enum.Enum):
    """Difficulty level enumeration."""

    FOUNDATIONAL = "FOUNDATIONAL"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    EXPERT = "EXPERT"
    SPECIALIZED = "SPECIALIZED"


class AssessmentGoal(str, enum.Enum):
    """Goal of a test template; drives question selection and scoring."""

    OVERVIEW = "OVERVIEW"
    JOB_FIT = "JOB_FIT"
    TEAM_FIT = "TEAM_FIT"


class SessionStatus(str, enum.Enum):
    """Test session status enumeration."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


class Competency(Base):
    """A measurable skill or trait composed of behavioral indicators."""

    __tablename__ = "competencies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Enum(CompetencyCategory), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    behavioral_indicators = relationship(
        "BehavioralIndicator",
        back_populates="competency",
        order_by="BehavioralIndicator.order_index",
    )


class BehavioralIndicator(Base):
    """An observable facet of a competency, linked to questions."""

    __tablename__ = "behavioral_indicators"

    id = Column(Integer, primary_key=True, index=True)
    competency_id = Column(
        Integer,
        ForeignKey("competencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(500), nullable=False)
    # NULL is treated like UNIVERSAL when selecting overview questions
    context_scope = Column(Enum(ContextScope), nullable=True, index=True)
    measurement_type = Column(Enum(IndicatorMeasurementType), nullable=False)
    weight = Column(Float, default=1.0, nullable=False)
    observability_complexity = Column(Float, nullable=True)
    order_index = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Relationships
    competency = relationship("Competency", back_populates="behavioral_indicators")
    questions = relationship(
        "AssessmentQuestion",
        back_populates="behavioral_indicator",
        order_by="AssessmentQuestion.order_index",
    )

    __table_args__ = (
        Index("ix_behavioral_indicators_competency_order", "competency_id", "order_index"),
    )


class AssessmentQuestion(Base):
    """A single test item tied to a behavioral indicator."""

    __tablename__ = "assessment_questions"

    id = Column(Integer, primary_key=True, index=True)
    behavioral_indicator_id = Column(
        Integer,
        ForeignKey("behavioral_indicators.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_text = Column(Text, nullable=False)
    question_type = Column(Enum(QuestionType), nullable=False, index=True)
    difficulty_level = Column(Enum(DifficultyLevel), nullable=False, index=True)
    time_limit = Column(Integer, nullable=True)  # Seconds
    answer_options = Column(JSON, nullable=True)  # Option key -> score in [0, 1]
    order_index = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Relationships
    behavioral_indicator = relationship(
        "BehavioralIndicator", back_populates="questions"
    )


class TestTemplate(Base):
    """Authored blueprint describing how a session is assembled and scored."""

    __tablename__ = "test_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    goal = Column(Enum(AssessmentGoal), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    competency_ids = Column(JSON, nullable=False, default=list)  # Ordered
    questions_per_indicator = Column(Integer, default=3, nullable=False)
    # Overview question count; falls back to settings.OVERVIEW_QUESTION_COUNT
    question_count = Column(Integer, nullable=True)
    shuffle_questions = Column(Boolean, default=False, nullable=False)
    time_limit_minutes = Column(Integer, nullable=True)  # NULL means untimed
    allow_back_navigation = Column(Boolean, default=True, nullable=False)
    passing_score = Column(Float, nullable=True)  # Percentage (0-100)
    # Goal-specific scoring parameters (strictness_level, saturation_threshold)
    blueprint = Column(JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    test_sessions = relationship("TestSession", back_populates="template")


class TestSession(Base):
    """One user's attempt at a test template."""

    __tablename__ = "test_sessions"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(
        Integer,
        ForeignKey("test_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(255), nullable=False, index=True)
    status = Column(
        Enum(SessionStatus),
        default=SessionStatus.IN_PROGRESS,
        nullable=False,
        index=True,
    )
    # Fixed at creation; never reordered afterwards
    question_order = Column(JSON, nullable=False, default=list)
    current_question_index = Column(Integer, default=0, nullable=False)
    # Seeded from the template time limit; updated by the client clock
    time_remaining_seconds = Column(Integer, nullable=True)
    started_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    template = relationship("TestTemplate", back_populates="test_sessions")
    answers = relationship(
        "TestAnswer", back_populates="test_session", cascade="all, delete-orphan"
    )
    test_result = relationship(
        "TestResult",
        back_populates="test_session",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        # At most one IN_PROGRESS session per (user, template). Concurrent
        # starts that both pass the app-level check fail here on flush.
        Index(
            "ix_test_sessions_user_template_active",
            "user_id",
            "template_id",
            unique=True,
            postgresql_where=text("status = 'IN_PROGRESS'"),
            sqlite_where=text("status = 'IN_PROGRESS'"),
        ),
        Index("ix_test_sessions_user_status", "user_id", "status"),
    )


class TestAnswer(Base):
    """Recorded response to one question within a session."""

    __tablename__ = "test_answers"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        Integer,
        ForeignKey("test_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        Integer,
        ForeignKey("assessment_questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    response = Column(JSON, nullable=False)
    answered_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    test_session = relationship("TestSession", back_populates="answers")
    question = relationship("AssessmentQuestion")

    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_test_answers_session_question"),
    )


class TestResult(Base):
    """Score produced when a session completes."""

    __tablename__ = "test_results"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        Integer,
        ForeignKey("test_sessions.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    goal = Column(Enum(AssessmentGoal), nullable=False)
    strategy = Column(String(100), nullable=False)
    overall_score = Column(Float, nullable=False)  # Normalized (0-1)
    overall_percentage = Column(Float, nullable=False)  # 0-100
    passed = Column(Boolean, nullable=True)
    competency_scores = Column(JSON, nullable=False, default=list)
    extended_metrics = Column(JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    test_session = relationship("TestSession", back_populates="test_result")
