"""
Two-level score roll-up: answers -> indicators -> competencies.

Indicator percentage is the mean normalized score times 100. Competency
percentage is the indicator-weight-weighted mean of its indicator
percentages.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from assessment.core.scoring.evidence import AnswerEvidence
from assessment.core.scoring.normalization import normalize


@dataclass
class IndicatorScore:
    indicator_id: int
    indicator_title: str
    weight: float
    score: float
    max_score: float
    percentage: float
    questions_answered: int
    proficiency_label: Optional[str] = None


@dataclass
class CompetencyScore:
    competency_id: int
    competency_name: str
    category: Optional[str]
    score: float
    max_score: float
    percentage: float
    questions_answered: int
    indicator_scores: List[IndicatorScore] = field(default_factory=list)
    insufficient_evidence: bool = False
    evidence_note: Optional[str] = None
    proficiency_label: Optional[str] = None


@dataclass
class _IndicatorTotals:
    evidence: AnswerEvidence
    score: float = 0.0
    count: int = 0


def aggregate_scores(evidence: List[AnswerEvidence]) -> List[CompetencyScore]:
    """
    Roll normalized answers up to per-competency scores.

    Competencies are returned ordered by id, indicators by id within each
    competency, so repeated scoring of the same answers is stable.
    """
    indicators: Dict[int, _IndicatorTotals] = {}
    for item in evidence:
        totals = indicators.setdefault(item.indicator_id, _IndicatorTotals(evidence=item))
        totals.score += normalize(item)
        totals.count += 1

    by_competency: Dict[int, List[_IndicatorTotals]] = {}
    for indicator_id in sorted(indicators):
        totals = indicators[indicator_id]
        by_competency.setdefault(totals.evidence.competency_id, []).append(totals)

    results = []
    for competency_id in sorted(by_competency):
        results.append(_competency_score(by_competency[competency_id]))
    return results


def _competency_score(indicator_totals: List[_IndicatorTotals]) -> CompetencyScore:
    first = indicator_totals[0].evidence
    indicator_scores = []
    weighted_percentage_sum = 0.0
    total_weight = 0.0
    weighted_score = 0.0
    weighted_max = 0.0
    questions = 0

    for totals in indicator_totals:
        max_score = float(totals.count)
        percentage = (totals.score / max_score) * 100.0 if max_score > 0 else 0.0
        weight = totals.evidence.indicator_weight
        indicator_scores.append(
            IndicatorScore(
                indicator_id=totals.evidence.indicator_id,
                indicator_title=totals.evidence.indicator_title,
                weight=weight,
                score=totals.score,
                max_score=max_score,
                percentage=percentage,
                questions_answered=totals.count,
            )
        )
        weighted_percentage_sum += weight * percentage
        total_weight += weight
        weighted_score += weight * totals.score
        weighted_max += weight * max_score
        questions += totals.count

    category = first.competency_category
    return CompetencyScore(
        competency_id=first.competency_id,
        competency_name=first.competency_name,
        category=category.value if category is not None else None,
        score=weighted_score,
        max_score=weighted_max,
        percentage=weighted_percentage_sum / total_weight if total_weight > 0 else 0.0,
        questions_answered=questions,
        indicator_scores=indicator_scores,
    )


def mark_insufficient_evidence(
    competency_scores: List[CompetencyScore], min_questions: int
) -> int:
    """Flag competencies answered fewer than ``min_questions`` times.

    Returns the number flagged.
    """
    flagged = 0
    for competency in competency_scores:
        if competency.questions_answered < min_questions:
            competency.insufficient_evidence = True
            competency.evidence_note = (
                f"Score based on {competency.questions_answered} question(s); "
                f"minimum {min_questions} required"
            )
            flagged += 1
    return flagged
