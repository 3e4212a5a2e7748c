"""
Scoring dispatch over registered strategies.

Goal claims are validated when a strategy is registered, so two strategies
can never both match a template at dispatch time.
"""
import logging
from typing import Dict, List, Optional

from assessment.core.exceptions import (
    ScoringConfigurationError,
    UnsupportedScoringConfigurationError,
)
from assessment.core.scoring.evidence import AnswerEvidence
from assessment.core.scoring.strategies import (
    JobFitScoringStrategy,
    OverviewScoringStrategy,
    ScoreResult,
    ScoringStrategy,
    TeamFitScoringStrategy,
)
from assessment.models import AssessmentGoal, TestSession, TestTemplate

logger = logging.getLogger(__name__)


class ScoringRegistry:
    """Maps each assessment goal to exactly one scoring strategy."""

    def __init__(self) -> None:
        self._by_goal: Dict[AssessmentGoal, ScoringStrategy] = {}
        self._strategies: List[ScoringStrategy] = []

    def register(self, strategy: ScoringStrategy) -> None:
        """
        Register a strategy for every goal it declares.

        Raises:
            ScoringConfigurationError: If the strategy declares no goals or
                claims a goal another registered strategy already handles.
        """
        goals = frozenset(strategy.supported_goals)
        if not goals:
            raise ScoringConfigurationError(
                f"Scoring strategy {strategy.name} declares no supported goals",
                context={"strategy": strategy.name},
            )

        overlapping = sorted(goal.value for goal in goals if goal in self._by_goal)
        if overlapping:
            claimed_by = sorted(
                {self._by_goal[goal].name for goal in goals if goal in self._by_goal}
            )
            raise ScoringConfigurationError(
                f"Scoring strategy {strategy.name} overlaps existing registrations",
                context={
                    "strategy": strategy.name,
                    "goals": overlapping,
                    "claimed_by": claimed_by,
                },
            )

        for goal in goals:
            self._by_goal[goal] = strategy
        self._strategies.append(strategy)
        logger.debug(
            f"Registered scoring strategy {strategy.name} for "
            f"{sorted(goal.value for goal in goals)}"
        )

    @property
    def strategies(self) -> List[ScoringStrategy]:
        return list(self._strategies)

    def supports(self, goal: AssessmentGoal) -> bool:
        return goal in self._by_goal

    def dispatch(self, template: TestTemplate) -> ScoringStrategy:
        """
        Strategy for the template's goal.

        Raises:
            UnsupportedScoringConfigurationError: If no strategy claims the goal.
        """
        strategy = self._by_goal.get(template.goal)
        if strategy is None:
            raise UnsupportedScoringConfigurationError(template.goal, template.id)
        return strategy

    def score(
        self,
        session: TestSession,
        template: TestTemplate,
        evidence: List[AnswerEvidence],
    ) -> ScoreResult:
        """
        Dispatch and run the strategy for ``template``.

        Strategies that leave ``passed`` unset are judged against the
        template's passing score when one is configured.
        """
        strategy = self.dispatch(template)
        result = strategy.calculate(session, template, evidence)
        passing_score: Optional[float] = template.passing_score
        if result.passed is None and passing_score is not None:
            result.passed = result.overall_percentage >= passing_score
        return result


def build_default_registry() -> ScoringRegistry:
    """Registry with the OVERVIEW, JOB_FIT and TEAM_FIT strategies."""
    registry = ScoringRegistry()
    registry.register(OverviewScoringStrategy())
    registry.register(JobFitScoringStrategy())
    registry.register(TeamFitScoringStrategy())
    return registry
