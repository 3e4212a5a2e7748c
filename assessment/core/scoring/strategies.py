"""
Goal-specific scoring strategies.

Each strategy is a pure function of (session, template, evidence). Adding a
goal means adding a class that implements ScoringStrategy and registering it
with the ScoringRegistry; nothing else dispatches on goal.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Protocol

from assessment.core.config import Settings, settings
from assessment.core.scoring.aggregation import (
    CompetencyScore,
    aggregate_scores,
    mark_insufficient_evidence,
)
from assessment.core.scoring.evidence import AnswerEvidence
from assessment.core.scoring.interpretation import proficiency_label
from assessment.models import AssessmentGoal, TestSession, TestTemplate

logger = logging.getLogger(__name__)


@dataclass
class ScoreResult:
    """Outcome of scoring one completed session."""

    goal: AssessmentGoal
    strategy: str
    overall_score: float  # 0-1
    overall_percentage: float  # 0-100
    competency_scores: List[CompetencyScore] = field(default_factory=list)
    passed: Optional[bool] = None
    extended_metrics: Dict[str, Any] = field(default_factory=dict)


class ScoringStrategy(Protocol):
    """
    Protocol for session scoring strategies.

    ``supported_goals`` is read once at registration; a strategy must not
    claim a goal already claimed by another registered strategy.
    """

    name: str
    supported_goals: FrozenSet[AssessmentGoal]

    def calculate(
        self,
        session: TestSession,
        template: TestTemplate,
        evidence: List[AnswerEvidence],
    ) -> ScoreResult:
        """
        Score a session from its recorded answers.

        Args:
            session: The session being completed
            template: The template the session was started from
            evidence: Recorded answers joined to question/indicator/competency

        Returns:
            ScoreResult with overall and per-competency scores
        """
        ...


def _blueprint_value(template: TestTemplate, key: str, default: Any) -> Any:
    blueprint = template.blueprint or {}
    value = blueprint.get(key)
    return default if value is None else value


def _label_scores(competency_scores: List[CompetencyScore]) -> None:
    for competency in competency_scores:
        competency.proficiency_label = proficiency_label(competency.percentage)
        for indicator in competency.indicator_scores:
            indicator.proficiency_label = proficiency_label(indicator.percentage)


def _mean_percentage(competency_scores: List[CompetencyScore]) -> float:
    if not competency_scores:
        return 0.0
    return sum(c.percentage for c in competency_scores) / len(competency_scores)


class OverviewScoringStrategy:
    """
    Broad competency profile for OVERVIEW templates.

    Overall percentage is weighted by questions answered per competency, with
    low-evidence competencies down-weighted. Each competency is also placed
    in a profile pattern bucket relative to the overall score. Pass/fail is
    left to the template's passing score.
    """

    name = "overview"
    supported_goals = frozenset({AssessmentGoal.OVERVIEW})

    PROFILE_BUCKETS = (
        "SIGNATURE_STRENGTH",
        "STRENGTH",
        "DEVELOPING",
        "CRITICAL_GAP",
        "AVERAGE",
    )

    def __init__(self, config: Settings = settings):
        self.min_questions = config.OVERVIEW_MIN_QUESTIONS_PER_COMPETENCY
        self.low_evidence_factor = config.OVERVIEW_LOW_EVIDENCE_WEIGHT_FACTOR
        self.strength_threshold = config.OVERVIEW_STRENGTH_THRESHOLD
        self.development_threshold = config.OVERVIEW_DEVELOPMENT_THRESHOLD
        self.critical_gap_threshold = config.OVERVIEW_CRITICAL_GAP_THRESHOLD
        self.profile_band_width = config.OVERVIEW_PROFILE_BAND_WIDTH

    def calculate(
        self,
        session: TestSession,
        template: TestTemplate,
        evidence: List[AnswerEvidence],
    ) -> ScoreResult:
        competency_scores = aggregate_scores(evidence)
        mark_insufficient_evidence(competency_scores, self.min_questions)

        weighted_sum = 0.0
        total_weight = 0.0
        for competency in competency_scores:
            weight = float(max(competency.questions_answered, 1))
            if competency.insufficient_evidence:
                weight *= self.low_evidence_factor
            weighted_sum += competency.percentage * weight
            total_weight += weight
        overall_percentage = weighted_sum / total_weight if total_weight > 0 else 0.0

        _label_scores(competency_scores)
        profile = self._profile_pattern(competency_scores, overall_percentage)

        logger.info(
            f"Overview score for session {session.id}: {overall_percentage:.2f}% "
            f"across {len(competency_scores)} competencies"
        )
        return ScoreResult(
            goal=AssessmentGoal.OVERVIEW,
            strategy=self.name,
            overall_score=overall_percentage / 100.0,
            overall_percentage=overall_percentage,
            competency_scores=competency_scores,
            extended_metrics={"profile_pattern": profile},
        )

    def _profile_bucket(self, percentage: float, overall_percentage: float) -> str:
        if (
            percentage >= overall_percentage + self.profile_band_width
            and percentage >= self.strength_threshold
        ):
            return "SIGNATURE_STRENGTH"
        if percentage >= self.strength_threshold:
            return "STRENGTH"
        if percentage < self.critical_gap_threshold:
            return "CRITICAL_GAP"
        if percentage >= self.development_threshold:
            return "DEVELOPING"
        return "AVERAGE"

    def _profile_pattern(
        self, competency_scores: List[CompetencyScore], overall_percentage: float
    ) -> Dict[str, List[str]]:
        buckets: Dict[str, List[str]] = {name: [] for name in self.PROFILE_BUCKETS}
        for competency in competency_scores:
            bucket = self._profile_bucket(competency.percentage, overall_percentage)
            buckets[bucket].append(competency.competency_name)
        # Empty buckets are dropped
        return {name: names for name, names in buckets.items() if names}


class JobFitScoringStrategy:
    """
    Fit against a role for JOB_FIT templates.

    The pass threshold rises with the blueprint's ``strictness_level``
    (0-100): threshold = base + strictness / 100 * max_adjustment.
    """

    name = "job_fit"
    supported_goals = frozenset({AssessmentGoal.JOB_FIT})

    def __init__(self, config: Settings = settings):
        self.base_threshold = config.JOB_FIT_BASE_THRESHOLD
        self.max_adjustment = config.JOB_FIT_STRICTNESS_MAX_ADJUSTMENT
        self.default_strictness = config.JOB_FIT_DEFAULT_STRICTNESS
        self.min_questions = config.JOB_FIT_MIN_QUESTIONS_PER_COMPETENCY

    def effective_threshold(self, strictness_level: int) -> float:
        strictness = max(0, min(100, int(strictness_level)))
        return self.base_threshold + (strictness / 100.0) * self.max_adjustment

    def calculate(
        self,
        session: TestSession,
        template: TestTemplate,
        evidence: List[AnswerEvidence],
    ) -> ScoreResult:
        strictness = _blueprint_value(template, "strictness_level", self.default_strictness)
        threshold = self.effective_threshold(strictness)

        competency_scores = aggregate_scores(evidence)
        mark_insufficient_evidence(competency_scores, self.min_questions)
        _label_scores(competency_scores)

        overall_percentage = _mean_percentage(competency_scores)
        passed = (overall_percentage / 100.0) >= threshold
        meeting = [
            c.competency_name
            for c in competency_scores
            if (c.percentage / 100.0) >= threshold
        ]

        logger.info(
            f"Job fit score for session {session.id}: {overall_percentage:.2f}% "
            f"(required {threshold * 100:.2f}%, passed={passed})"
        )
        return ScoreResult(
            goal=AssessmentGoal.JOB_FIT,
            strategy=self.name,
            overall_score=overall_percentage / 100.0,
            overall_percentage=overall_percentage,
            competency_scores=competency_scores,
            passed=passed,
            extended_metrics={
                "strictness_level": int(strictness),
                "effective_threshold": threshold,
                "competencies_meeting_threshold": meeting,
            },
        )


class TeamFitScoringStrategy:
    """
    Contribution to an existing team for TEAM_FIT templates.

    Competencies at or above the saturation threshold duplicate strengths the
    team already has; those between the diversity and saturation thresholds
    add diversity; the rest are gaps. A diversity-heavy profile earns a bonus
    multiplier and a saturation-heavy one a penalty.
    """

    name = "team_fit"
    supported_goals = frozenset({AssessmentGoal.TEAM_FIT})

    def __init__(self, config: Settings = settings):
        self.saturation_threshold = config.TEAM_FIT_SATURATION_THRESHOLD
        self.diversity_threshold = config.TEAM_FIT_DIVERSITY_THRESHOLD
        self.diversity_bonus_threshold = config.TEAM_FIT_DIVERSITY_BONUS_THRESHOLD
        self.saturation_penalty_threshold = config.TEAM_FIT_SATURATION_PENALTY_THRESHOLD
        self.diversity_bonus = config.TEAM_FIT_DIVERSITY_BONUS
        self.saturation_penalty = config.TEAM_FIT_SATURATION_PENALTY
        self.pass_threshold = config.TEAM_FIT_PASS_THRESHOLD
        self.min_diversity_ratio = config.TEAM_FIT_MIN_DIVERSITY_RATIO

    def team_fit_multiplier(self, diversity_ratio: float, saturation_ratio: float) -> float:
        if (
            diversity_ratio > self.diversity_bonus_threshold
            and saturation_ratio < 1.0 - self.diversity_bonus_threshold
        ):
            return self.diversity_bonus
        if saturation_ratio > self.saturation_penalty_threshold:
            return self.saturation_penalty
        return 1.0

    def calculate(
        self,
        session: TestSession,
        template: TestTemplate,
        evidence: List[AnswerEvidence],
    ) -> ScoreResult:
        saturation_threshold = float(
            _blueprint_value(template, "saturation_threshold", self.saturation_threshold)
        )

        competency_scores = aggregate_scores(evidence)
        _label_scores(competency_scores)

        saturation_count = 0
        diversity_count = 0
        for competency in competency_scores:
            average = competency.percentage / 100.0
            if average >= saturation_threshold:
                saturation_count += 1
            elif average >= self.diversity_threshold:
                diversity_count += 1

        competency_count = len(competency_scores)
        gap_count = competency_count - saturation_count - diversity_count
        diversity_ratio = diversity_count / competency_count if competency_count else 0.0
        saturation_ratio = saturation_count / competency_count if competency_count else 0.0

        multiplier = self.team_fit_multiplier(diversity_ratio, saturation_ratio)
        overall_percentage = _mean_percentage(competency_scores)
        adjusted_percentage = min(100.0, overall_percentage * multiplier)
        passed = (
            adjusted_percentage >= self.pass_threshold * 100.0
            and diversity_ratio >= self.min_diversity_ratio
        )

        logger.info(
            f"Team fit score for session {session.id}: {adjusted_percentage:.2f}% "
            f"(diversity {diversity_ratio:.2f}, saturation {saturation_ratio:.2f}, "
            f"multiplier {multiplier}, passed={passed})"
        )
        return ScoreResult(
            goal=AssessmentGoal.TEAM_FIT,
            strategy=self.name,
            overall_score=adjusted_percentage / 100.0,
            overall_percentage=adjusted_percentage,
            competency_scores=competency_scores,
            passed=passed,
            extended_metrics={
                "diversity_ratio": diversity_ratio,
                "saturation_ratio": saturation_ratio,
                "team_fit_multiplier": multiplier,
                "diversity_count": diversity_count,
                "saturation_count": saturation_count,
                "gap_count": gap_count,
                "unadjusted_percentage": overall_percentage,
            },
        )
