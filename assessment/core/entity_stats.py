"""
Aggregate statistics over the competency, indicator and question populations.

Each sub-report is built from scalar count/average/group-by queries; entity
bodies are never loaded. Two breakdown policies apply:

- Full domain: context scope and difficulty list every enum member, zero
  counts included.
- Positive only: competency category and question type list only tags that
  have at least one row.

Both iterate the enum domain in declaration order and merge the sparse
group-by rows, so the output order is stable regardless of the database.
"""
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Type

from sqlalchemy.orm import Session

from assessment.db.queries import CompetencyQueries, IndicatorQueries, QuestionQueries
from assessment.models import (
    CompetencyCategory,
    ContextScope,
    DifficultyLevel,
    IndicatorMeasurementType,
    QuestionType,
)

logger = logging.getLogger(__name__)

MEASURABLE_MEASUREMENT_TYPES: List[IndicatorMeasurementType] = [
    IndicatorMeasurementType.FREQUENCY,
    IndicatorMeasurementType.QUALITY,
    IndicatorMeasurementType.IMPACT,
]

HARD_DIFFICULTY_LEVELS: List[DifficultyLevel] = [
    DifficultyLevel.ADVANCED,
    DifficultyLevel.EXPERT,
    DifficultyLevel.SPECIALIZED,
]


@dataclass
class CompetencyStats:
    total: int
    active: int
    with_indicators: int
    avg_indicator_weight: float
    by_category: Dict[str, int] = field(default_factory=dict)


@dataclass
class IndicatorStats:
    total: int
    active: int
    with_active_questions: int
    measurable: int
    avg_observability_complexity: float
    by_context_scope: Dict[str, int] = field(default_factory=dict)


@dataclass
class QuestionStats:
    total: int
    active: int
    with_active_indicators: int
    hard_questions: int
    avg_time_limit: float
    by_difficulty: Dict[str, int] = field(default_factory=dict)
    by_question_type: Dict[str, int] = field(default_factory=dict)


@dataclass
class EntityStats:
    competencies: CompetencyStats
    indicators: IndicatorStats
    questions: QuestionStats


def round_half_up(value: Optional[float], places: int = 1) -> float:
    """
    Round to a fixed number of decimals, halves rounding up.

    Goes through the decimal string form so binary float artifacts do not
    decide the rounding digit (3.1499 -> 3.1, 3.456 -> 3.5, 0.05 -> 0.1).
    None (the average of an empty population) becomes 0.0.
    """
    if value is None:
        return 0.0
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def full_domain_breakdown(
    domain: Type[Enum], rows: Iterable[Tuple[Optional[Enum], int]]
) -> Dict[str, int]:
    """Every member of ``domain`` in declaration order, zero when absent."""
    counts = _sparse_counts(rows)
    return {member.value: counts.get(member.value, 0) for member in domain}


def positive_only_breakdown(
    domain: Type[Enum], rows: Iterable[Tuple[Optional[Enum], int]]
) -> Dict[str, int]:
    """Members of ``domain`` with a count above zero, in declaration order."""
    counts = _sparse_counts(rows)
    return {
        member.value: counts[member.value]
        for member in domain
        if counts.get(member.value, 0) > 0
    }


def _sparse_counts(rows: Iterable[Tuple[Optional[Enum], int]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for tag, count in rows:
        # NULL tags (e.g. unscoped indicators) belong to no bucket
        if tag is None:
            continue
        key = tag.value if isinstance(tag, Enum) else str(tag)
        counts[key] = counts.get(key, 0) + int(count)
    return counts


class EntityStatsService:
    """Builds the entity statistics report from the three query adapters.

    Query failures propagate unchanged; there is no partial report.
    """

    def __init__(
        self,
        competencies: CompetencyQueries,
        indicators: IndicatorQueries,
        questions: QuestionQueries,
    ):
        self.competencies = competencies
        self.indicators = indicators
        self.questions = questions

    @classmethod
    def from_session(cls, db: Session) -> "EntityStatsService":
        return cls(CompetencyQueries(db), IndicatorQueries(db), QuestionQueries(db))

    def get_entity_stats(self) -> EntityStats:
        stats = EntityStats(
            competencies=self.competency_stats(),
            indicators=self.indicator_stats(),
            questions=self.question_stats(),
        )
        logger.info(
            f"Entity stats computed: {stats.competencies.total} competencies, "
            f"{stats.indicators.total} indicators, {stats.questions.total} questions"
        )
        return stats

    def competency_stats(self) -> CompetencyStats:
        return CompetencyStats(
            total=self.competencies.count(),
            active=self.competencies.count_active(),
            with_indicators=self.competencies.count_with_indicators(),
            avg_indicator_weight=round_half_up(
                self.competencies.average_indicator_weight()
            ),
            by_category=positive_only_breakdown(
                CompetencyCategory, self.competencies.count_by_category()
            ),
        )

    def indicator_stats(self) -> IndicatorStats:
        return IndicatorStats(
            total=self.indicators.count(),
            active=self.indicators.count_active(),
            with_active_questions=self.indicators.count_with_active_questions(),
            measurable=self.indicators.count_by_measurement_type_in(
                MEASURABLE_MEASUREMENT_TYPES
            ),
            avg_observability_complexity=round_half_up(
                self.indicators.average_observability_complexity()
            ),
            by_context_scope=full_domain_breakdown(
                ContextScope, self.indicators.count_by_context_scope()
            ),
        )

    def question_stats(self) -> QuestionStats:
        return QuestionStats(
            total=self.questions.count(),
            active=self.questions.count_active(),
            with_active_indicators=self.questions.count_with_active_indicators(),
            hard_questions=self.questions.count_by_difficulty_in(HARD_DIFFICULTY_LEVELS),
            avg_time_limit=round_half_up(self.questions.average_time_limit()),
            by_difficulty=full_domain_breakdown(
                DifficultyLevel, self.questions.count_by_difficulty()
            ),
            by_question_type=positive_only_breakdown(
                QuestionType, self.questions.count_by_question_type()
            ),
        )


def get_entity_stats(db: Session) -> EntityStats:
    """Compute the entity statistics report against ``db``."""
    return EntityStatsService.from_session(db).get_entity_stats()
