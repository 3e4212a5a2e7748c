"""
Pydantic schemas for session scores.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class IndicatorScoreResponse(BaseModel):
    """Score for one behavioral indicator."""

    indicator_id: int
    indicator_title: str
    weight: float
    score: float = Field(..., description="Sum of normalized answer scores")
    max_score: float = Field(..., description="Number of answers (max 1.0 each)")
    percentage: float = Field(..., description="Indicator score (0-100)")
    questions_answered: int
    proficiency_label: Optional[str] = None

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class CompetencyScoreResponse(BaseModel):
    """Score for one competency, rolled up from its indicators."""

    competency_id: int
    competency_name: str
    category: Optional[str] = None
    score: float
    max_score: float
    percentage: float = Field(
        ..., description="Indicator-weight-weighted mean percentage (0-100)"
    )
    questions_answered: int
    indicator_scores: List[IndicatorScoreResponse] = Field(default_factory=list)
    insufficient_evidence: bool = False
    evidence_note: Optional[str] = None
    proficiency_label: Optional[str] = None

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class ScoreResultResponse(BaseModel):
    """Schema for a session's score, fresh or persisted."""

    goal: str = Field(..., description="Assessment goal the score was computed for")
    strategy: str = Field(..., description="Scoring strategy that produced the score")
    overall_score: float = Field(..., description="Overall score (0-1)")
    overall_percentage: float = Field(..., description="Overall score (0-100)")
    passed: Optional[bool] = Field(
        None, description="Pass/fail outcome, when the goal or template defines one"
    )
    competency_scores: List[CompetencyScoreResponse] = Field(default_factory=list)
    extended_metrics: Optional[Dict[str, Any]] = Field(
        None, description="Goal-specific metrics (profile pattern, team fit ratios)"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True
