"""
Normalize a single response to a score in [0, 1].

Responses are JSON objects with any of:
    likert_value     integer on a 1-5 scale
    selected_option  key into the question's answer_options score map
    score            pre-graded score in [0, 1]

Missing data scores 0.0 rather than failing the whole session.
"""
import logging
from typing import Optional

from assessment.core.scoring.evidence import AnswerEvidence
from assessment.models import QuestionType

logger = logging.getLogger(__name__)

LIKERT_MIN = 1
LIKERT_MAX = 5

LIKERT_TYPES = frozenset(
    {QuestionType.LIKERT, QuestionType.LIKERT_SCALE, QuestionType.FREQUENCY_SCALE}
)
CHOICE_TYPES = frozenset(
    {
        QuestionType.SJT,
        QuestionType.SITUATIONAL_JUDGMENT,
        QuestionType.MCQ,
        QuestionType.MULTIPLE_CHOICE,
    }
)
RATING_TYPES = frozenset(
    {QuestionType.CAPABILITY_ASSESSMENT, QuestionType.PEER_FEEDBACK}
)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def normalize_likert(value: int) -> float:
    """Map a 1-5 Likert value onto [0, 1]; out-of-range values are clamped."""
    clamped = max(LIKERT_MIN, min(LIKERT_MAX, int(value)))
    return (clamped - LIKERT_MIN) / (LIKERT_MAX - LIKERT_MIN)


def _graded_score(evidence: AnswerEvidence) -> Optional[float]:
    score = evidence.response.get("score")
    if score is None:
        return None
    return _clamp(float(score))


def _option_score(evidence: AnswerEvidence) -> Optional[float]:
    option = evidence.response.get("selected_option")
    if option is None:
        return None
    score = evidence.option_scores.get(str(option))
    if score is None:
        logger.debug(
            f"Answer {evidence.answer_id} selected unknown option {option!r} "
            f"for question {evidence.question_id}"
        )
        return None
    return _clamp(float(score))


def normalize(evidence: AnswerEvidence) -> float:
    """Normalized score for one answer."""
    question_type = evidence.question_type
    likert_value = evidence.response.get("likert_value")

    if question_type in LIKERT_TYPES:
        return normalize_likert(likert_value) if likert_value is not None else 0.0

    if question_type in CHOICE_TYPES:
        score = _graded_score(evidence)
        if score is None:
            score = _option_score(evidence)
        return score if score is not None else 0.0

    if question_type in RATING_TYPES:
        if likert_value is not None:
            return normalize_likert(likert_value)
        score = _graded_score(evidence)
        return score if score is not None else 0.0

    # Text-based types (behavioral example, self reflection, open text) are
    # scored only once graded.
    score = _graded_score(evidence)
    if score is None:
        logger.debug(f"Answer {evidence.answer_id} has no graded score yet")
        return 0.0
    return score
