"""
Query adapters for entity populations, sessions, answers and templates.

Aggregate queries return scalars or (tag, count) pairs and never load entity
bodies. Group-by results are sparse: tags with no rows are simply absent and
callers decide whether to zero-fill.
"""
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from assessment.models import (
    AssessmentQuestion,
    BehavioralIndicator,
    Competency,
    CompetencyCategory,
    ContextScope,
    DifficultyLevel,
    IndicatorMeasurementType,
    QuestionType,
    SessionStatus,
    TestAnswer,
    TestResult,
    TestSession,
    TestTemplate,
)


class CompetencyQueries:
    """Aggregate queries over the competency population."""

    def __init__(self, db: Session):
        self.db = db

    def count(self) -> int:
        return self.db.query(func.count(Competency.id)).scalar() or 0

    def count_active(self) -> int:
        return (
            self.db.query(func.count(Competency.id))
            .filter(Competency.is_active.is_(True))
            .scalar()
            or 0
        )

    def count_with_indicators(self) -> int:
        """Competencies that own at least one behavioral indicator."""
        return (
            self.db.query(func.count(func.distinct(BehavioralIndicator.competency_id)))
            .join(Competency, Competency.id == BehavioralIndicator.competency_id)
            .scalar()
            or 0
        )

    def average_indicator_weight(self) -> Optional[float]:
        return self.db.query(func.avg(BehavioralIndicator.weight)).scalar()

    def count_by_category(self) -> List[Tuple[CompetencyCategory, int]]:
        rows = (
            self.db.query(Competency.category, func.count(Competency.id))
            .group_by(Competency.category)
            .all()
        )
        return [(category, count) for category, count in rows]


class IndicatorQueries:
    """Aggregate and selection queries over behavioral indicators."""

    def __init__(self, db: Session):
        self.db = db

    def count(self) -> int:
        return self.db.query(func.count(BehavioralIndicator.id)).scalar() or 0

    def count_active(self) -> int:
        return (
            self.db.query(func.count(BehavioralIndicator.id))
            .filter(BehavioralIndicator.is_active.is_(True))
            .scalar()
            or 0
        )

    def count_with_active_questions(self) -> int:
        """Indicators with at least one active question."""
        return (
            self.db.query(
                func.count(func.distinct(AssessmentQuestion.behavioral_indicator_id))
            )
            .filter(AssessmentQuestion.is_active.is_(True))
            .scalar()
            or 0
        )

    def count_by_measurement_type_in(
        self, measurement_types: Sequence[IndicatorMeasurementType]
    ) -> int:
        return (
            self.db.query(func.count(BehavioralIndicator.id))
            .filter(BehavioralIndicator.measurement_type.in_(list(measurement_types)))
            .scalar()
            or 0
        )

    def average_observability_complexity(self) -> Optional[float]:
        return self.db.query(
            func.avg(BehavioralIndicator.observability_complexity)
        ).scalar()

    def count_by_context_scope(self) -> List[Tuple[Optional[ContextScope], int]]:
        rows = (
            self.db.query(
                BehavioralIndicator.context_scope, func.count(BehavioralIndicator.id)
            )
            .group_by(BehavioralIndicator.context_scope)
            .all()
        )
        return [(scope, count) for scope, count in rows]

    def find_active_for_competency(self, competency_id: int) -> List[BehavioralIndicator]:
        """Active indicators of one competency in authored order."""
        return (
            self.db.query(BehavioralIndicator)
            .filter(
                BehavioralIndicator.competency_id == competency_id,
                BehavioralIndicator.is_active.is_(True),
            )
            .order_by(BehavioralIndicator.order_index, BehavioralIndicator.id)
            .all()
        )


class QuestionQueries:
    """Aggregate and selection queries over assessment questions."""

    def __init__(self, db: Session):
        self.db = db

    def count(self) -> int:
        return self.db.query(func.count(AssessmentQuestion.id)).scalar() or 0

    def count_active(self) -> int:
        return (
            self.db.query(func.count(AssessmentQuestion.id))
            .filter(AssessmentQuestion.is_active.is_(True))
            .scalar()
            or 0
        )

    def count_with_active_indicators(self) -> int:
        """Questions whose owning indicator is active."""
        return (
            self.db.query(func.count(AssessmentQuestion.id))
            .join(
                BehavioralIndicator,
                BehavioralIndicator.id == AssessmentQuestion.behavioral_indicator_id,
            )
            .filter(BehavioralIndicator.is_active.is_(True))
            .scalar()
            or 0
        )

    def count_by_difficulty_in(self, levels: Sequence[DifficultyLevel]) -> int:
        return (
            self.db.query(func.count(AssessmentQuestion.id))
            .filter(AssessmentQuestion.difficulty_level.in_(list(levels)))
            .scalar()
            or 0
        )

    def average_time_limit(self) -> Optional[float]:
        return self.db.query(func.avg(AssessmentQuestion.time_limit)).scalar()

    def count_by_difficulty(self) -> List[Tuple[DifficultyLevel, int]]:
        rows = (
            self.db.query(
                AssessmentQuestion.difficulty_level, func.count(AssessmentQuestion.id)
            )
            .group_by(AssessmentQuestion.difficulty_level)
            .all()
        )
        return [(level, count) for level, count in rows]

    def count_by_question_type(self) -> List[Tuple[QuestionType, int]]:
        rows = (
            self.db.query(
                AssessmentQuestion.question_type, func.count(AssessmentQuestion.id)
            )
            .group_by(AssessmentQuestion.question_type)
            .all()
        )
        return [(question_type, count) for question_type, count in rows]

    def find_by_id(self, question_id: int) -> Optional[AssessmentQuestion]:
        return (
            self.db.query(AssessmentQuestion)
            .filter(AssessmentQuestion.id == question_id)
            .first()
        )

    def find_universal_ids(self, limit: int) -> List[int]:
        """Active questions whose active indicator is UNIVERSAL (or unscoped).

        Ordered by competency, indicator order, question order and id so the
        same population always yields the same set.
        """
        rows = (
            self.db.query(AssessmentQuestion.id)
            .join(
                BehavioralIndicator,
                BehavioralIndicator.id == AssessmentQuestion.behavioral_indicator_id,
            )
            .filter(
                AssessmentQuestion.is_active.is_(True),
                BehavioralIndicator.is_active.is_(True),
                or_(
                    BehavioralIndicator.context_scope == ContextScope.UNIVERSAL,
                    BehavioralIndicator.context_scope.is_(None),
                ),
            )
            .order_by(
                BehavioralIndicator.competency_id,
                BehavioralIndicator.order_index,
                BehavioralIndicator.id,
                AssessmentQuestion.order_index,
                AssessmentQuestion.id,
            )
            .limit(limit)
            .all()
        )
        return [question_id for (question_id,) in rows]

    def find_active_ids_for_indicator(self, indicator_id: int, limit: int) -> List[int]:
        rows = (
            self.db.query(AssessmentQuestion.id)
            .filter(
                AssessmentQuestion.behavioral_indicator_id == indicator_id,
                AssessmentQuestion.is_active.is_(True),
            )
            .order_by(AssessmentQuestion.order_index, AssessmentQuestion.id)
            .limit(limit)
            .all()
        )
        return [question_id for (question_id,) in rows]


class TemplateStore:
    """Lookup of authored test templates."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, template_id: int) -> Optional[TestTemplate]:
        return self.db.query(TestTemplate).filter(TestTemplate.id == template_id).first()


class SessionStore:
    """Persistence for sessions, answers and results.

    Writes are flushed, not committed; the orchestrator owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(
        self, session_id: int, for_update: bool = False
    ) -> Optional[TestSession]:
        """Session by id; ``for_update`` row-locks it for the transaction."""
        query = self.db.query(TestSession).filter(TestSession.id == session_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def find_in_progress(self, user_id: str, template_id: int) -> Optional[TestSession]:
        return (
            self.db.query(TestSession)
            .filter(
                TestSession.user_id == user_id,
                TestSession.template_id == template_id,
                TestSession.status == SessionStatus.IN_PROGRESS,
            )
            .first()
        )

    def count_by_user(self, user_id: str, status: Optional[SessionStatus] = None) -> int:
        query = self.db.query(func.count(TestSession.id)).filter(
            TestSession.user_id == user_id
        )
        if status is not None:
            query = query.filter(TestSession.status == status)
        return query.scalar() or 0

    def find_by_user(
        self,
        user_id: str,
        status: Optional[SessionStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[TestSession]:
        """A user's sessions, newest first."""
        query = self.db.query(TestSession).filter(TestSession.user_id == user_id)
        if status is not None:
            query = query.filter(TestSession.status == status)
        return (
            query.order_by(TestSession.started_at.desc(), TestSession.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def add(self, test_session: TestSession) -> TestSession:
        """Insert a session and flush so the id is assigned.

        Raises IntegrityError when the active-session index rejects the row.
        """
        self.db.add(test_session)
        self.db.flush()
        return test_session

    def count_answered(self, session_id: int) -> int:
        return (
            self.db.query(func.count(TestAnswer.id))
            .filter(TestAnswer.session_id == session_id)
            .scalar()
            or 0
        )

    def count_answered_by_session_ids(self, session_ids: Sequence[int]) -> Dict[int, int]:
        """Answer counts for many sessions in one grouped query.

        Sessions without answers are absent from the result.
        """
        if not session_ids:
            return {}
        rows = (
            self.db.query(TestAnswer.session_id, func.count(TestAnswer.id))
            .filter(TestAnswer.session_id.in_(list(session_ids)))
            .group_by(TestAnswer.session_id)
            .all()
        )
        return {session_id: count for session_id, count in rows}

    def find_answer(self, session_id: int, question_id: int) -> Optional[TestAnswer]:
        return (
            self.db.query(TestAnswer)
            .filter(
                TestAnswer.session_id == session_id,
                TestAnswer.question_id == question_id,
            )
            .first()
        )

    def list_answers(self, session_id: int) -> List[TestAnswer]:
        """Answers of one session in the order they were given."""
        return (
            self.db.query(TestAnswer)
            .filter(TestAnswer.session_id == session_id)
            .order_by(TestAnswer.answered_at, TestAnswer.id)
            .all()
        )

    def add_answer(self, answer: TestAnswer) -> TestAnswer:
        """Insert an answer; IntegrityError on a duplicate (session, question)."""
        self.db.add(answer)
        self.db.flush()
        return answer

    def load_scoring_rows(
        self, session_id: int
    ) -> List[Tuple[TestAnswer, AssessmentQuestion, BehavioralIndicator, Competency]]:
        """Answers joined to question, indicator and competency in one query."""
        return (
            self.db.query(TestAnswer, AssessmentQuestion, BehavioralIndicator, Competency)
            .join(AssessmentQuestion, AssessmentQuestion.id == TestAnswer.question_id)
            .join(
                BehavioralIndicator,
                BehavioralIndicator.id == AssessmentQuestion.behavioral_indicator_id,
            )
            .join(Competency, Competency.id == BehavioralIndicator.competency_id)
            .filter(TestAnswer.session_id == session_id)
            .order_by(TestAnswer.id)
            .all()
        )

    def add_result(self, result: TestResult) -> TestResult:
        self.db.add(result)
        self.db.flush()
        return result

    def find_result(self, session_id: int) -> Optional[TestResult]:
        return self.db.query(TestResult).filter(TestResult.session_id == session_id).first()
