"""
Question selection for new test sessions.

The template goal picks the selection policy:

- OVERVIEW: a fixed-size set of universal questions, independent of the
  template's competency list, fetched with a single query.
- Every other goal: per-indicator quotas. For each competency in template
  order, for each active indicator (order_index, id), take up to
  ``questions_per_indicator`` active questions.

Shuffling, when the template asks for it, permutes the final list once. It
never changes which questions were picked. An empty result is valid; the
orchestrator still creates a session with zero questions.
"""
import logging
import random
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from assessment.core.config import settings
from assessment.db.queries import IndicatorQueries, QuestionQueries
from assessment.models import AssessmentGoal, TestTemplate

logger = logging.getLogger(__name__)

SelectionPolicy = Callable[[Session, TestTemplate], List[int]]


def select_overview_questions(db: Session, template: TestTemplate) -> List[int]:
    """Universal questions, limited to the template's overview count."""
    count = template.question_count
    if count is None:
        count = settings.OVERVIEW_QUESTION_COUNT
    if count <= 0:
        return []
    return QuestionQueries(db).find_universal_ids(limit=count)


def select_by_indicator_quota(db: Session, template: TestTemplate) -> List[int]:
    """Concatenate per-indicator quotas across the template's competencies."""
    quota = template.questions_per_indicator or 0
    if quota <= 0:
        return []

    indicator_queries = IndicatorQueries(db)
    question_queries = QuestionQueries(db)

    selected: List[int] = []
    seen = set()
    for competency_id in template.competency_ids or []:
        for indicator in indicator_queries.find_active_for_competency(competency_id):
            for question_id in question_queries.find_active_ids_for_indicator(
                indicator.id, limit=quota
            ):
                # A competency listed twice must not assign a question twice
                if question_id not in seen:
                    seen.add(question_id)
                    selected.append(question_id)
    return selected


# Goals without an entry fall back to the per-indicator quota policy
SELECTION_POLICIES: Dict[AssessmentGoal, SelectionPolicy] = {
    AssessmentGoal.OVERVIEW: select_overview_questions,
}


def select_questions(
    db: Session,
    template: TestTemplate,
    user_id: str,
    rng: Optional[random.Random] = None,
) -> List[int]:
    """
    Produce the ordered question ids for a new session on ``template``.

    Args:
        db: Database session
        template: Active template the session is started from
        user_id: Opaque id of the user taking the test (used for logging)
        rng: Random source for shuffling; tests pass a seeded instance

    Returns:
        Ordered list of question ids, possibly empty
    """
    policy = SELECTION_POLICIES.get(template.goal, select_by_indicator_quota)
    question_ids = policy(db, template)

    if template.shuffle_questions and len(question_ids) > 1:
        (rng or random.Random()).shuffle(question_ids)

    if not question_ids:
        logger.warning(
            f"No questions selected for template {template.id} "
            f"(goal={template.goal.value}, user={user_id})"
        )
    else:
        logger.info(
            f"Selected {len(question_ids)} questions for template {template.id} "
            f"(goal={template.goal.value}, shuffled={bool(template.shuffle_questions)})"
        )
    return question_ids
