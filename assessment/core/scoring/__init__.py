"""
Session scoring: normalization, aggregation, strategies and dispatch.
"""
from .aggregation import CompetencyScore, IndicatorScore, aggregate_scores
from .evidence import AnswerEvidence, build_evidence
from .interpretation import proficiency_label
from .normalization import normalize
from .registry import ScoringRegistry, build_default_registry
from .strategies import (
    JobFitScoringStrategy,
    OverviewScoringStrategy,
    ScoreResult,
    ScoringStrategy,
    TeamFitScoringStrategy,
)

__all__ = [
    "AnswerEvidence",
    "CompetencyScore",
    "IndicatorScore",
    "JobFitScoringStrategy",
    "OverviewScoringStrategy",
    "ScoreResult",
    "ScoringRegistry",
    "ScoringStrategy",
    "TeamFitScoringStrategy",
    "aggregate_scores",
    "build_default_registry",
    "build_evidence",
    "normalize",
    "proficiency_label",
]
