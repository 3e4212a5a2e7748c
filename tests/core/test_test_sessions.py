"""
Tests for the session orchestrator: start, answer, navigate, time updates,
complete, abandon and the read-side queries.
"""
import random
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from assessment.core.exceptions import (
    AnswerAlreadyRecordedError,
    DuplicateSessionError,
    InvalidStateError,
    NavigationError,
    NotFoundError,
    NotInSessionError,
    UnsupportedScoringConfigurationError,
)
from assessment.core.scoring import ScoringRegistry
from assessment.core.test_sessions import SessionOrchestrator
from assessment.models import (
    AssessmentGoal,
    SessionStatus,
    TestAnswer,
    TestResult,
    TestSession,
)


@pytest.fixture
def orchestrator(db_session):
    return SessionOrchestrator(db_session, rng=random.Random(0))


def _session_count(db_session, **filters):
    return db_session.query(TestSession).filter_by(**filters).count()


class TestStartSession:
    """Tests for session creation and the one-active-session rule."""

    def test_creates_in_progress_session(self, orchestrator, job_fit_template, competency_model):
        questions = competency_model["questions"]

        view = orchestrator.start_session(job_fit_template.id, "user-1")

        assert view.id is not None
        assert view.status == SessionStatus.IN_PROGRESS
        assert view.user_id == "user-1"
        assert view.template_id == job_fit_template.id
        assert view.question_order == (
            questions["listens"][:2] + questions["presents"] + questions["delegates"]
        )
        assert view.total_questions == 6
        assert view.answered_questions == 0
        assert view.completed_at is None
        assert view.started_at.tzinfo is not None

    def test_unknown_template_raises_not_found(self, orchestrator, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            orchestrator.start_session(999, "user-1")

        assert exc_info.value.entity == "TestTemplate"
        assert _session_count(db_session) == 0

    def test_inactive_template_raises_not_found(self, orchestrator, make_template):
        template = make_template(is_active=False)

        with pytest.raises(NotFoundError):
            orchestrator.start_session(template.id, "user-1")

    def test_duplicate_start_reports_existing_session(
        self, orchestrator, db_session, job_fit_template
    ):
        first = orchestrator.start_session(job_fit_template.id, "user-1")

        with pytest.raises(DuplicateSessionError) as exc_info:
            orchestrator.start_session(job_fit_template.id, "user-1")

        assert exc_info.value.existing_session_id == first.id
        assert exc_info.value.template_id == job_fit_template.id
        assert exc_info.value.user_id == "user-1"
        assert _session_count(db_session, user_id="user-1") == 1

    def test_duplicate_error_message_names_user_and_template(
        self, orchestrator, job_fit_template
    ):
        orchestrator.start_session(job_fit_template.id, "user-1")

        with pytest.raises(DuplicateSessionError) as exc_info:
            orchestrator.start_session(job_fit_template.id, "user-1")

        assert (
            f"User user-1 already has an in-progress session for template "
            f"{job_fit_template.id}" in str(exc_info.value)
        )

    def test_users_are_independent(self, orchestrator, db_session, job_fit_template):
        first = orchestrator.start_session(job_fit_template.id, "user-1")
        second = orchestrator.start_session(job_fit_template.id, "user-2")

        assert first.id != second.id
        assert _session_count(db_session, status=SessionStatus.IN_PROGRESS) == 2

    def test_templates_are_independent(
        self, orchestrator, job_fit_template, overview_template
    ):
        first = orchestrator.start_session(job_fit_template.id, "user-1")
        second = orchestrator.start_session(overview_template.id, "user-1")

        assert first.id != second.id

    def test_new_session_allowed_after_completion(self, orchestrator, job_fit_template):
        first = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.complete_session(first.id)

        second = orchestrator.start_session(job_fit_template.id, "user-1")

        assert second.id != first.id
        assert second.status == SessionStatus.IN_PROGRESS

    def test_new_session_allowed_after_abandon(self, orchestrator, job_fit_template):
        first = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.abandon_session(first.id)

        second = orchestrator.start_session(job_fit_template.id, "user-1")

        assert second.id != first.id

    def test_concurrent_start_loses_on_unique_index(
        self, orchestrator, db_session, job_fit_template
    ):
        """The app-level check misses a concurrent winner; the index catches it."""
        winner = orchestrator.start_session(job_fit_template.id, "user-1")
        find_in_progress = orchestrator.sessions.find_in_progress
        calls = []

        def stale_then_fresh(user_id, template_id):
            calls.append((user_id, template_id))
            if len(calls) == 1:
                return None
            return find_in_progress(user_id, template_id)

        with patch.object(
            orchestrator.sessions, "find_in_progress", side_effect=stale_then_fresh
        ):
            with pytest.raises(DuplicateSessionError) as exc_info:
                orchestrator.start_session(job_fit_template.id, "user-1")

        assert exc_info.value.existing_session_id == winner.id
        assert len(calls) == 2
        assert _session_count(db_session, user_id="user-1") == 1

    def test_race_without_visible_winner_still_conflicts(
        self, orchestrator, job_fit_template
    ):
        error = IntegrityError("INSERT INTO test_sessions", {}, Exception("unique"))

        with patch.object(orchestrator.sessions, "add", side_effect=error):
            with pytest.raises(DuplicateSessionError) as exc_info:
                orchestrator.start_session(job_fit_template.id, "user-1")

        assert exc_info.value.existing_session_id is None

    def test_empty_question_selection_still_creates_session(
        self, orchestrator, make_template
    ):
        template = make_template(goal=AssessmentGoal.OVERVIEW, question_count=5)

        view = orchestrator.start_session(template.id, "user-1")

        assert view.question_order == []
        assert view.total_questions == 0

    def test_overview_session_uses_template_question_count(
        self, orchestrator, make_template, competency_model
    ):
        template = make_template(goal=AssessmentGoal.OVERVIEW, question_count=2)

        view = orchestrator.start_session(template.id, "user-1")

        assert view.total_questions == 2
        assert view.question_order == competency_model["questions"]["listens"][:2]

    def test_timed_template_seeds_time_remaining(
        self, orchestrator, make_template, competency_model
    ):
        template = make_template(
            goal=AssessmentGoal.OVERVIEW, question_count=2, time_limit_minutes=15
        )

        view = orchestrator.start_session(template.id, "user-1")

        assert view.time_remaining_seconds == 900
        assert view.current_question_index == 0

    def test_untimed_template_has_no_clock(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        assert view.time_remaining_seconds is None


class TestRecordAnswer:
    """Tests for answer recording."""

    def test_records_answer_and_reports_progress(
        self, orchestrator, db_session, job_fit_template
    ):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        question_id = view.question_order[0]

        progress = orchestrator.record_answer(view.id, question_id, {"likert_value": 4})

        assert progress.recorded is True
        assert progress.answered_questions == 1
        assert progress.total_questions == 6
        stored = db_session.query(TestAnswer).filter_by(session_id=view.id).one()
        assert stored.response == {"likert_value": 4}

    def test_identical_resubmission_is_idempotent(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        question_id = view.question_order[0]
        orchestrator.record_answer(view.id, question_id, {"likert_value": 4})

        progress = orchestrator.record_answer(view.id, question_id, {"likert_value": 4})

        assert progress.recorded is False
        assert progress.answered_questions == 1

    def test_different_resubmission_is_rejected(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        question_id = view.question_order[0]
        orchestrator.record_answer(view.id, question_id, {"likert_value": 4})

        with pytest.raises(AnswerAlreadyRecordedError) as exc_info:
            orchestrator.record_answer(view.id, question_id, {"likert_value": 2})

        assert exc_info.value.question_id == question_id

    def test_question_outside_session_is_rejected(
        self, orchestrator, job_fit_template, competency_model
    ):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        # Third "listens" question is beyond the template's quota of 2
        outside = competency_model["questions"]["listens"][2]

        with pytest.raises(NotInSessionError):
            orchestrator.record_answer(view.id, outside, {"likert_value": 3})

    def test_unknown_session_raises_not_found(self, orchestrator, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            orchestrator.record_answer(12345, 1, {"likert_value": 3})

        assert exc_info.value.entity == "TestSession"

    def test_answer_after_completion_is_rejected(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.complete_session(view.id)

        with pytest.raises(InvalidStateError) as exc_info:
            orchestrator.record_answer(view.id, view.question_order[0], {"likert_value": 3})

        assert exc_info.value.status == "COMPLETED"
        assert exc_info.value.operation == "answer"

    def test_concurrent_duplicate_insert_resolves_to_existing(
        self, orchestrator, job_fit_template
    ):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        question_id = view.question_order[0]
        orchestrator.record_answer(view.id, question_id, {"likert_value": 4})
        find_answer = orchestrator.sessions.find_answer
        calls = []

        def stale_then_fresh(session_id, qid):
            calls.append(qid)
            if len(calls) == 1:
                return None
            return find_answer(session_id, qid)

        with patch.object(
            orchestrator.sessions, "find_answer", side_effect=stale_then_fresh
        ):
            progress = orchestrator.record_answer(
                view.id, question_id, {"likert_value": 4}
            )

        assert progress.recorded is False
        assert progress.answered_questions == 1


class TestCompleteSession:
    """Tests for completion and scoring."""

    def _answer_all(self, orchestrator, view, competency_model):
        questions = competency_model["questions"]
        for question_id in questions["listens"][:2]:
            orchestrator.record_answer(view.id, question_id, {"likert_value": 5})
        presents = questions["presents"]
        orchestrator.record_answer(view.id, presents[0], {"selected_option": "A"})
        orchestrator.record_answer(view.id, presents[1], {"selected_option": "B"})
        for question_id in questions["delegates"]:
            orchestrator.record_answer(view.id, question_id, {"likert_value": 3})

    def test_scores_and_persists_result(
        self, orchestrator, db_session, job_fit_template, competency_model
    ):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        self._answer_all(orchestrator, view, competency_model)

        completed = orchestrator.complete_session(view.id)

        assert completed.status == SessionStatus.COMPLETED
        assert completed.completed_at is not None
        assert completed.answered_questions == 6
        score = completed.score
        assert score.goal == AssessmentGoal.JOB_FIT
        assert score.strategy == "job_fit"
        # Communication: (2 * 100 + 1 * 75) / 3; Leadership: 50
        assert score.overall_percentage == pytest.approx((275 / 3 + 50) / 2)
        assert score.overall_score == pytest.approx(score.overall_percentage / 100)
        assert score.passed is True

        result = db_session.query(TestResult).filter_by(session_id=view.id).one()
        assert result.strategy == "job_fit"
        assert result.overall_percentage == pytest.approx(score.overall_percentage)
        assert [c["competency_name"] for c in result.competency_scores] == [
            "Communication",
            "Leadership",
        ]

    def test_get_result_returns_persisted_score(
        self, orchestrator, job_fit_template, competency_model
    ):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        self._answer_all(orchestrator, view, competency_model)
        completed = orchestrator.complete_session(view.id)

        result = orchestrator.get_result(view.id)

        assert result.overall_percentage == pytest.approx(
            completed.score.overall_percentage
        )
        assert result.extended_metrics["strictness_level"] == 50

    def test_completing_with_no_answers_scores_zero(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        completed = orchestrator.complete_session(view.id)

        assert completed.score.overall_percentage == 0.0
        assert completed.score.competency_scores == []
        assert completed.score.passed is False

    def test_completing_twice_is_rejected(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.complete_session(view.id)

        with pytest.raises(InvalidStateError):
            orchestrator.complete_session(view.id)

    def test_unsupported_goal_leaves_session_in_progress(
        self, db_session, job_fit_template
    ):
        orchestrator = SessionOrchestrator(db_session, scoring_registry=ScoringRegistry())
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        with pytest.raises(UnsupportedScoringConfigurationError) as exc_info:
            orchestrator.complete_session(view.id)

        assert exc_info.value.goal == "JOB_FIT"
        assert exc_info.value.template_id == job_fit_template.id
        db_session.rollback()
        assert orchestrator.get_session(view.id).status == SessionStatus.IN_PROGRESS
        assert db_session.query(TestResult).count() == 0

    def test_result_of_in_progress_session_not_found(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        with pytest.raises(NotFoundError) as exc_info:
            orchestrator.get_result(view.id)

        assert exc_info.value.entity == "TestResult"


class TestAbandonSession:
    """Tests for abandonment."""

    def test_abandon_marks_terminal_state(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        abandoned = orchestrator.abandon_session(view.id)

        assert abandoned.status == SessionStatus.ABANDONED
        assert abandoned.completed_at is not None

    def test_abandon_twice_is_rejected(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.abandon_session(view.id)

        with pytest.raises(InvalidStateError) as exc_info:
            orchestrator.abandon_session(view.id)

        assert exc_info.value.status == "ABANDONED"

    def test_abandoned_session_cannot_be_completed(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.abandon_session(view.id)

        with pytest.raises(InvalidStateError):
            orchestrator.complete_session(view.id)


class TestGetSession:
    """Tests for the session read model."""

    def test_reports_live_answer_count(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.record_answer(view.id, view.question_order[0], {"likert_value": 2})
        orchestrator.record_answer(view.id, view.question_order[1], {"likert_value": 3})

        current = orchestrator.get_session(view.id)

        assert current.answered_questions == 2
        assert current.total_questions == 6

    def test_unknown_session_raises_not_found(self, orchestrator, db_session):
        with pytest.raises(NotFoundError):
            orchestrator.get_session(404)


class TestTimeRemaining:
    """Tests for client-reported remaining time."""

    def test_updates_time_remaining(self, orchestrator, make_template, competency_model):
        template = make_template(
            goal=AssessmentGoal.OVERVIEW, question_count=2, time_limit_minutes=10
        )
        view = orchestrator.start_session(template.id, "user-1")

        updated = orchestrator.update_time_remaining(view.id, 321)

        assert updated.time_remaining_seconds == 321
        assert orchestrator.get_session(view.id).time_remaining_seconds == 321

    def test_zero_does_not_end_the_session(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        updated = orchestrator.update_time_remaining(view.id, 0)

        assert updated.time_remaining_seconds == 0
        assert updated.status == SessionStatus.IN_PROGRESS

    @pytest.mark.parametrize("finish", ["complete_session", "abandon_session"])
    def test_terminal_session_is_rejected(self, orchestrator, job_fit_template, finish):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        getattr(orchestrator, finish)(view.id)

        with pytest.raises(InvalidStateError) as exc_info:
            orchestrator.update_time_remaining(view.id, 60)

        assert exc_info.value.operation == "update time for"

    def test_unknown_session_raises_not_found(self, orchestrator, db_session):
        with pytest.raises(NotFoundError):
            orchestrator.update_time_remaining(404, 60)


class TestNavigation:
    """Tests for moving the current question pointer."""

    def test_moves_forward_and_back(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        forward = orchestrator.navigate_to_question(view.id, 3)
        back = orchestrator.navigate_to_question(view.id, 1)

        assert forward.current_question_index == 3
        assert back.current_question_index == 1

    def test_back_navigation_can_be_disallowed(self, orchestrator, make_template, competency_model):
        communication = competency_model["competencies"]["communication"]
        template = make_template(
            competency_ids=[communication.id],
            questions_per_indicator=2,
            allow_back_navigation=False,
        )
        view = orchestrator.start_session(template.id, "user-1")
        orchestrator.navigate_to_question(view.id, 2)

        with pytest.raises(NavigationError) as exc_info:
            orchestrator.navigate_to_question(view.id, 1)

        assert "back navigation is not allowed" in str(exc_info.value)
        assert orchestrator.get_session(view.id).current_question_index == 2

    def test_forward_move_allowed_without_back_navigation(
        self, orchestrator, make_template, competency_model
    ):
        communication = competency_model["competencies"]["communication"]
        template = make_template(
            competency_ids=[communication.id],
            questions_per_indicator=2,
            allow_back_navigation=False,
        )
        view = orchestrator.start_session(template.id, "user-1")

        assert orchestrator.navigate_to_question(view.id, 3).current_question_index == 3

    @pytest.mark.parametrize("index", [-1, 6, 100])
    def test_out_of_range_index_is_rejected(self, orchestrator, job_fit_template, index):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        with pytest.raises(NavigationError) as exc_info:
            orchestrator.navigate_to_question(view.id, index)

        assert exc_info.value.total_questions == 6
        assert exc_info.value.question_index == index

    def test_completed_session_cannot_navigate(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.complete_session(view.id)

        with pytest.raises(InvalidStateError):
            orchestrator.navigate_to_question(view.id, 0)


class TestCurrentQuestion:
    """Tests for reading the question at the current index."""

    def test_returns_first_question_of_new_session(
        self, orchestrator, job_fit_template, competency_model
    ):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        current = orchestrator.get_current_question(view.id)

        assert current.session_id == view.id
        assert current.question_index == 0
        assert current.total_questions == 6
        assert current.question.id == competency_model["questions"]["listens"][0]
        assert current.question.question_type == "LIKERT"
        assert current.question.options == []
        assert current.previous_response is None
        assert current.allow_back_navigation is True

    def test_follows_navigation_and_hides_option_scores(
        self, orchestrator, job_fit_template, competency_model
    ):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.navigate_to_question(view.id, 2)

        current = orchestrator.get_current_question(view.id)

        assert current.question.id == competency_model["questions"]["presents"][0]
        assert current.question.difficulty_level == "ADVANCED"
        assert current.question.time_limit == 120
        assert current.question.options == ["A", "B", "C"]

    def test_includes_previously_recorded_response(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.record_answer(view.id, view.question_order[0], {"likert_value": 4})

        current = orchestrator.get_current_question(view.id)

        assert current.previous_response == {"likert_value": 4}

    def test_reports_time_remaining(self, orchestrator, make_template, competency_model):
        template = make_template(
            goal=AssessmentGoal.OVERVIEW, question_count=2, time_limit_minutes=5
        )
        view = orchestrator.start_session(template.id, "user-1")

        assert orchestrator.get_current_question(view.id).time_remaining_seconds == 300

    def test_session_without_questions_has_no_current_question(
        self, orchestrator, make_template
    ):
        template = make_template(goal=AssessmentGoal.OVERVIEW, question_count=5)
        view = orchestrator.start_session(template.id, "user-1")

        with pytest.raises(NavigationError) as exc_info:
            orchestrator.get_current_question(view.id)

        assert exc_info.value.total_questions == 0

    def test_abandoned_session_has_no_current_question(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.abandon_session(view.id)

        with pytest.raises(InvalidStateError):
            orchestrator.get_current_question(view.id)


class TestSessionAnswers:
    """Tests for listing a session's recorded answers."""

    def test_lists_answers_in_answer_order(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.record_answer(view.id, view.question_order[3], {"selected_option": "B"})
        orchestrator.record_answer(view.id, view.question_order[0], {"likert_value": 5})

        answers = orchestrator.get_session_answers(view.id)

        assert [a.question_id for a in answers] == [
            view.question_order[3],
            view.question_order[0],
        ]
        assert answers[0].response == {"selected_option": "B"}

    def test_new_session_has_no_answers(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        assert orchestrator.get_session_answers(view.id) == []

    def test_unknown_session_raises_not_found(self, orchestrator, db_session):
        with pytest.raises(NotFoundError):
            orchestrator.get_session_answers(404)


class TestUserSessions:
    """Tests for listing a user's sessions and finding one to resume."""

    def test_lists_newest_first_with_answer_counts(
        self, orchestrator, job_fit_template, overview_template
    ):
        first = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.record_answer(first.id, first.question_order[0], {"likert_value": 3})
        second = orchestrator.start_session(overview_template.id, "user-1")
        orchestrator.start_session(job_fit_template.id, "user-2")

        page = orchestrator.list_user_sessions("user-1")

        assert [s.id for s in page.sessions] == [second.id, first.id]
        assert [s.answered_questions for s in page.sessions] == [0, 1]
        assert page.total_count == 2
        assert page.has_more is False

    def test_status_filter(self, orchestrator, job_fit_template, overview_template):
        done = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.complete_session(done.id)
        orchestrator.start_session(overview_template.id, "user-1")

        page = orchestrator.list_user_sessions("user-1", status=SessionStatus.COMPLETED)

        assert [s.id for s in page.sessions] == [done.id]
        assert page.total_count == 1

    def test_pagination(self, orchestrator, job_fit_template):
        ids = []
        for _ in range(3):
            view = orchestrator.start_session(job_fit_template.id, "user-1")
            orchestrator.abandon_session(view.id)
            ids.append(view.id)

        page = orchestrator.list_user_sessions("user-1", limit=2, offset=0)
        rest = orchestrator.list_user_sessions("user-1", limit=2, offset=2)

        assert [s.id for s in page.sessions] == [ids[2], ids[1]]
        assert page.has_more is True
        assert [s.id for s in rest.sessions] == [ids[0]]
        assert rest.has_more is False
        assert rest.total_count == 3

    def test_user_without_sessions(self, orchestrator, db_session):
        page = orchestrator.list_user_sessions("nobody")

        assert page.sessions == []
        assert page.total_count == 0

    def test_finds_in_progress_session_to_resume(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")

        found = orchestrator.find_in_progress_session("user-1", job_fit_template.id)

        assert found is not None
        assert found.id == view.id
        assert orchestrator.find_in_progress_session("user-2", job_fit_template.id) is None

    def test_finished_session_is_not_resumable(self, orchestrator, job_fit_template):
        view = orchestrator.start_session(job_fit_template.id, "user-1")
        orchestrator.abandon_session(view.id)

        assert orchestrator.find_in_progress_session("user-1", job_fit_template.id) is None
