"""
Scoring input built from persisted answers.

Strategies never touch ORM objects; they receive AnswerEvidence records with
everything needed to normalize and roll up a response.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from assessment.models import (
    AssessmentQuestion,
    BehavioralIndicator,
    Competency,
    CompetencyCategory,
    QuestionType,
    TestAnswer,
)


@dataclass(frozen=True)
class AnswerEvidence:
    """One recorded answer with its question, indicator and competency."""

    answer_id: int
    question_id: int
    question_type: QuestionType
    indicator_id: int
    indicator_title: str
    indicator_weight: float
    competency_id: int
    competency_name: str
    competency_category: Optional[CompetencyCategory]
    response: Dict[str, Any] = field(default_factory=dict)
    option_scores: Dict[str, float] = field(default_factory=dict)


def build_evidence(
    rows: Iterable[
        Tuple[TestAnswer, AssessmentQuestion, BehavioralIndicator, Competency]
    ],
) -> List[AnswerEvidence]:
    """Convert joined (answer, question, indicator, competency) rows."""
    evidence = []
    for answer, question, indicator, competency in rows:
        weight = indicator.weight if indicator.weight is not None else 1.0
        evidence.append(
            AnswerEvidence(
                answer_id=answer.id,
                question_id=question.id,
                question_type=question.question_type,
                indicator_id=indicator.id,
                indicator_title=indicator.title,
                indicator_weight=float(weight),
                competency_id=competency.id,
                competency_name=competency.name,
                competency_category=competency.category,
                response=dict(answer.response or {}),
                option_scores=dict(question.answer_options or {}),
            )
        )
    return evidence
