"""
Pydantic schemas for the entity statistics dashboard.
"""
from pydantic import BaseModel, Field
from typing import Dict


class CompetencyStatsResponse(BaseModel):
    """Competency population summary."""

    total: int
    active: int
    with_indicators: int = Field(..., description="Competencies with at least one indicator")
    avg_indicator_weight: float = Field(..., description="Rounded to one decimal")
    by_category: Dict[str, int] = Field(
        ..., description="Counts per category; categories with no competencies omitted"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class IndicatorStatsResponse(BaseModel):
    """Behavioral indicator population summary."""

    total: int
    active: int
    with_active_questions: int
    measurable: int = Field(
        ..., description="Indicators measured by FREQUENCY, QUALITY or IMPACT"
    )
    avg_observability_complexity: float = Field(..., description="Rounded to one decimal")
    by_context_scope: Dict[str, int] = Field(
        ..., description="Counts for every context scope, zeros included"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class QuestionStatsResponse(BaseModel):
    """Assessment question population summary."""

    total: int
    active: int
    with_active_indicators: int
    hard_questions: int = Field(
        ..., description="Questions at ADVANCED, EXPERT or SPECIALIZED difficulty"
    )
    avg_time_limit: float = Field(..., description="Seconds, rounded to one decimal")
    by_difficulty: Dict[str, int] = Field(
        ..., description="Counts for every difficulty level, zeros included"
    )
    by_question_type: Dict[str, int] = Field(
        ..., description="Counts per question type; types with no questions omitted"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class EntityStatsResponse(BaseModel):
    """Schema for the entity statistics report."""

    competencies: CompetencyStatsResponse
    indicators: IndicatorStatsResponse
    questions: QuestionStatsResponse

    class Config:
        """Pydantic configuration."""

        from_attributes = True
