"""
Models package for the assessment backend.
"""
from .base import Base, engine, SessionLocal, get_db
from .models import (
    Competency,
    BehavioralIndicator,
    AssessmentQuestion,
    TestTemplate,
    TestSession,
    TestAnswer,
    TestResult,
    CompetencyCategory,
    ContextScope,
    IndicatorMeasurementType,
    QuestionType,
    DifficultyLevel,
    AssessmentGoal,
    SessionStatus,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "Competency",
    "BehavioralIndicator",
    "AssessmentQuestion",
    "TestTemplate",
    "TestSession",
    "TestAnswer",
    "TestResult",
    "CompetencyCategory",
    "ContextScope",
    "IndicatorMeasurementType",
    "QuestionType",
    "DifficultyLevel",
    "AssessmentGoal",
    "SessionStatus",
]
