"""
Pytest configuration and shared fixtures for testing.
"""
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from assessment.main import app
from assessment.models import (
    AssessmentGoal,
    AssessmentQuestion,
    Base,
    BehavioralIndicator,
    Competency,
    CompetencyCategory,
    ContextScope,
    DifficultyLevel,
    IndicatorMeasurementType,
    QuestionType,
    TestTemplate,
    get_db,
)


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests.

    Skips error tracking initialization.
    """
    yield


# Neutralize the production lifespan on the singleton app.
app.router.lifespan_context = _test_lifespan


# Use SQLite for tests; path is relative to this file so the .db lands
# inside tests/ regardless of the working directory.
_TEST_DB = Path(__file__).parent / "test.db"
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    # Create all tables
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.

    Each request gets its own session on the same test.db file where
    db_session creates data.
    """

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    """Identity header for the primary test user."""
    return {"X-User-ID": "user-1"}


@pytest.fixture
def other_user_headers():
    """Identity header for a second user."""
    return {"X-User-ID": "user-2"}


@pytest.fixture
def competency_model(db_session):
    """
    Two competencies with indicators and questions.

    Layout:
        Communication (COMMUNICATION)
            Listens actively      UNIVERSAL  3 LIKERT questions
            Presents clearly      NULL scope 2 SJT questions (+1 inactive)
        Leadership (LEADERSHIP)
            Delegates work        MANAGERIAL 2 LIKERT questions
            Sets direction        UNIVERSAL  inactive indicator, 1 question
    """
    communication = Competency(
        name="Communication", category=CompetencyCategory.COMMUNICATION
    )
    leadership = Competency(name="Leadership", category=CompetencyCategory.LEADERSHIP)
    db_session.add_all([communication, leadership])
    db_session.flush()

    listens = BehavioralIndicator(
        competency_id=communication.id,
        title="Listens actively",
        context_scope=ContextScope.UNIVERSAL,
        measurement_type=IndicatorMeasurementType.FREQUENCY,
        weight=2.0,
        observability_complexity=2.0,
        order_index=0,
    )
    presents = BehavioralIndicator(
        competency_id=communication.id,
        title="Presents clearly",
        context_scope=None,
        measurement_type=IndicatorMeasurementType.QUALITY,
        weight=1.0,
        observability_complexity=3.0,
        order_index=1,
    )
    delegates = BehavioralIndicator(
        competency_id=leadership.id,
        title="Delegates work",
        context_scope=ContextScope.MANAGERIAL,
        measurement_type=IndicatorMeasurementType.CONSISTENCY,
        weight=1.0,
        order_index=0,
    )
    sets_direction = BehavioralIndicator(
        competency_id=leadership.id,
        title="Sets direction",
        context_scope=ContextScope.UNIVERSAL,
        measurement_type=IndicatorMeasurementType.IMPACT,
        weight=1.0,
        order_index=1,
        is_active=False,
    )
    db_session.add_all([listens, presents, delegates, sets_direction])
    db_session.flush()

    options = {"A": 1.0, "B": 0.5, "C": 0.0}
    questions = {
        "listens": [
            AssessmentQuestion(
                behavioral_indicator_id=listens.id,
                question_text=f"How often do you summarize what others said? ({i})",
                question_type=QuestionType.LIKERT,
                difficulty_level=DifficultyLevel.FOUNDATIONAL,
                time_limit=60,
                order_index=i,
            )
            for i in range(3)
        ],
        "presents": [
            AssessmentQuestion(
                behavioral_indicator_id=presents.id,
                question_text=f"Your slides are not loading. What do you do? ({i})",
                question_type=QuestionType.SJT,
                difficulty_level=DifficultyLevel.ADVANCED,
                time_limit=120,
                answer_options=options,
                order_index=i,
            )
            for i in range(2)
        ],
        "presents_inactive": [
            AssessmentQuestion(
                behavioral_indicator_id=presents.id,
                question_text="Retired question",
                question_type=QuestionType.SJT,
                difficulty_level=DifficultyLevel.EXPERT,
                answer_options=options,
                order_index=9,
                is_active=False,
            )
        ],
        "delegates": [
            AssessmentQuestion(
                behavioral_indicator_id=delegates.id,
                question_text=f"How often do you hand off ownership? ({i})",
                question_type=QuestionType.LIKERT,
                difficulty_level=DifficultyLevel.INTERMEDIATE,
                order_index=i,
            )
            for i in range(2)
        ],
        "sets_direction": [
            AssessmentQuestion(
                behavioral_indicator_id=sets_direction.id,
                question_text="How often do you set team goals?",
                question_type=QuestionType.LIKERT,
                difficulty_level=DifficultyLevel.FOUNDATIONAL,
            )
        ],
    }
    for group in questions.values():
        db_session.add_all(group)
    db_session.commit()

    return {
        "competencies": {"communication": communication, "leadership": leadership},
        "indicators": {
            "listens": listens,
            "presents": presents,
            "delegates": delegates,
            "sets_direction": sets_direction,
        },
        "questions": {name: [q.id for q in group] for name, group in questions.items()},
    }


def _make_template(db_session, **overrides):
    values = {
        "name": "Template",
        "goal": AssessmentGoal.JOB_FIT,
        "competency_ids": [],
        "questions_per_indicator": 3,
    }
    values.update(overrides)
    template = TestTemplate(**values)
    db_session.add(template)
    db_session.commit()
    db_session.refresh(template)
    return template


@pytest.fixture
def make_template(db_session):
    """Factory for templates; keyword arguments override the defaults."""

    def _factory(**overrides):
        return _make_template(db_session, **overrides)

    return _factory


@pytest.fixture
def job_fit_template(make_template, competency_model):
    """JOB_FIT template over both competencies."""
    competencies = competency_model["competencies"]
    return make_template(
        name="Team Lead Fit",
        goal=AssessmentGoal.JOB_FIT,
        competency_ids=[competencies["communication"].id, competencies["leadership"].id],
        questions_per_indicator=2,
    )


@pytest.fixture
def overview_template(make_template, competency_model):
    """OVERVIEW template with a small question count."""
    return make_template(
        name="Competency Overview",
        goal=AssessmentGoal.OVERVIEW,
        question_count=4,
    )
