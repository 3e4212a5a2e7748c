"""Initial schema

Revision ID: 5e2b7c41a9d3
Revises:
Create Date: 2026-10-18

Creates the competency model (competencies, behavioral_indicators,
assessment_questions), test_templates, and the session tables
(test_sessions, test_answers, test_results).

Uniqueness guarantees created here:
    ix_test_sessions_user_template_active
        Partial unique index on test_sessions (user_id, template_id)
        WHERE status = 'IN_PROGRESS'. At most one in-progress session per
        user and template; the second of two concurrent starts fails with an
        IntegrityError.
    uq_test_answers_session_question
        One answer per (session, question).
"""
from typing import Dict, Sequence, Tuple, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "5e2b7c41a9d3"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Native enum types on PostgreSQL, named after the model enum classes.
ENUMS: Dict[str, Tuple[str, ...]] = {
    "competencycategory": (
        "COGNITIVE",
        "INTERPERSONAL",
        "LEADERSHIP",
        "ADAPTABILITY",
        "EMOTIONAL_INTELLIGENCE",
        "COMMUNICATION",
        "COLLABORATION",
        "CRITICAL_THINKING",
        "TIME_MANAGEMENT",
    ),
    "contextscope": ("UNIVERSAL", "PROFESSIONAL", "TECHNICAL", "MANAGERIAL"),
    "indicatormeasurementtype": (
        "FREQUENCY",
        "QUALITY",
        "IMPACT",
        "CONSISTENCY",
        "IMPROVEMENT",
    ),
    "questiontype": (
        "LIKERT",
        "SJT",
        "MCQ",
        "LIKERT_SCALE",
        "SITUATIONAL_JUDGMENT",
        "BEHAVIORAL_EXAMPLE",
        "MULTIPLE_CHOICE",
        "CAPABILITY_ASSESSMENT",
        "SELF_REFLECTION",
        "PEER_FEEDBACK",
        "FREQUENCY_SCALE",
        "OPEN_TEXT",
    ),
    "difficultylevel": (
        "FOUNDATIONAL",
        "INTERMEDIATE",
        "ADVANCED",
        "EXPERT",
        "SPECIALIZED",
    ),
    "assessmentgoal": ("OVERVIEW", "JOB_FIT", "TEAM_FIT"),
    "sessionstatus": ("IN_PROGRESS", "COMPLETED", "ABANDONED"),
}


def _enum(name: str) -> sa.Enum:
    # Types are created once up front; assessmentgoal is shared by two tables
    return sa.Enum(*ENUMS[name], name=name).with_variant(
        postgresql.ENUM(*ENUMS[name], name=name, create_type=False), "postgresql"
    )


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create all tables, indexes and uniqueness constraints."""
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "competencies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", _enum("competencycategory"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_competencies_id", "competencies", ["id"])
    op.create_index("ix_competencies_category", "competencies", ["category"])
    op.create_index("ix_competencies_is_active", "competencies", ["is_active"])

    op.create_table(
        "behavioral_indicators",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("competency_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("context_scope", _enum("contextscope"), nullable=True),
        sa.Column(
            "measurement_type", _enum("indicatormeasurementtype"), nullable=False
        ),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("observability_complexity", sa.Float(), nullable=True),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["competency_id"], ["competencies.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_behavioral_indicators_id", "behavioral_indicators", ["id"])
    op.create_index(
        "ix_behavioral_indicators_competency_id",
        "behavioral_indicators",
        ["competency_id"],
    )
    op.create_index(
        "ix_behavioral_indicators_context_scope",
        "behavioral_indicators",
        ["context_scope"],
    )
    op.create_index(
        "ix_behavioral_indicators_is_active", "behavioral_indicators", ["is_active"]
    )
    op.create_index(
        "ix_behavioral_indicators_competency_order",
        "behavioral_indicators",
        ["competency_id", "order_index"],
    )

    op.create_table(
        "assessment_questions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("behavioral_indicator_id", sa.Integer(), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", _enum("questiontype"), nullable=False),
        sa.Column("difficulty_level", _enum("difficultylevel"), nullable=False),
        sa.Column("time_limit", sa.Integer(), nullable=True),
        sa.Column(
            "answer_options", postgresql.JSON(astext_type=sa.Text()), nullable=True
        ),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["behavioral_indicator_id"],
            ["behavioral_indicators.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_assessment_questions_id", "assessment_questions", ["id"])
    op.create_index(
        "ix_assessment_questions_behavioral_indicator_id",
        "assessment_questions",
        ["behavioral_indicator_id"],
    )
    op.create_index(
        "ix_assessment_questions_question_type",
        "assessment_questions",
        ["question_type"],
    )
    op.create_index(
        "ix_assessment_questions_difficulty_level",
        "assessment_questions",
        ["difficulty_level"],
    )
    op.create_index(
        "ix_assessment_questions_is_active", "assessment_questions", ["is_active"]
    )

    op.create_table(
        "test_templates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("goal", _enum("assessmentgoal"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column(
            "competency_ids", postgresql.JSON(astext_type=sa.Text()), nullable=False
        ),
        sa.Column("questions_per_indicator", sa.Integer(), nullable=False),
        sa.Column("question_count", sa.Integer(), nullable=True),
        sa.Column("shuffle_questions", sa.Boolean(), nullable=False),
        sa.Column("time_limit_minutes", sa.Integer(), nullable=True),
        sa.Column("allow_back_navigation", sa.Boolean(), nullable=False),
        sa.Column("passing_score", sa.Float(), nullable=True),
        sa.Column("blueprint", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_test_templates_id", "test_templates", ["id"])

    op.create_table(
        "test_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("status", _enum("sessionstatus"), nullable=False),
        sa.Column(
            "question_order", postgresql.JSON(astext_type=sa.Text()), nullable=False
        ),
        sa.Column("current_question_index", sa.Integer(), nullable=False),
        sa.Column("time_remaining_seconds", sa.Integer(), nullable=True),
        _timestamp("started_at"),
        _timestamp("completed_at", nullable=True),
        sa.ForeignKeyConstraint(
            ["template_id"], ["test_templates.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_test_sessions_id", "test_sessions", ["id"])
    op.create_index("ix_test_sessions_template_id", "test_sessions", ["template_id"])
    op.create_index("ix_test_sessions_user_id", "test_sessions", ["user_id"])
    op.create_index("ix_test_sessions_status", "test_sessions", ["status"])
    op.create_index(
        "ix_test_sessions_user_status", "test_sessions", ["user_id", "status"]
    )
    # Partial unique index: only one IN_PROGRESS session per (user, template).
    # Raw SQL so the comparison against the enum label reads the same on
    # PostgreSQL and SQLite.
    op.execute(
        """
        CREATE UNIQUE INDEX ix_test_sessions_user_template_active
        ON test_sessions (user_id, template_id)
        WHERE status = 'IN_PROGRESS'
        """
    )

    op.create_table(
        "test_answers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("response", postgresql.JSON(astext_type=sa.Text()), nullable=False),
        _timestamp("answered_at"),
        sa.ForeignKeyConstraint(
            ["session_id"], ["test_sessions.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["question_id"], ["assessment_questions.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "session_id", "question_id", name="uq_test_answers_session_question"
        ),
    )
    op.create_index("ix_test_answers_id", "test_answers", ["id"])
    op.create_index("ix_test_answers_session_id", "test_answers", ["session_id"])

    op.create_table(
        "test_results",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("goal", _enum("assessmentgoal"), nullable=False),
        sa.Column("strategy", sa.String(length=100), nullable=False),
        sa.Column("overall_score", sa.Float(), nullable=False),
        sa.Column("overall_percentage", sa.Float(), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=True),
        sa.Column(
            "competency_scores", postgresql.JSON(astext_type=sa.Text()), nullable=False
        ),
        sa.Column(
            "extended_metrics", postgresql.JSON(astext_type=sa.Text()), nullable=True
        ),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(
            ["session_id"], ["test_sessions.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id"),
    )
    op.create_index("ix_test_results_id", "test_results", ["id"])


def downgrade() -> None:
    """Drop everything created by upgrade()."""
    op.drop_table("test_results")
    op.drop_table("test_answers")
    op.execute("DROP INDEX IF EXISTS ix_test_sessions_user_template_active")
    op.drop_table("test_sessions")
    op.drop_table("test_templates")
    op.drop_table("assessment_questions")
    op.drop_table("behavioral_indicators")
    op.drop_table("competencies")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in reversed(list(ENUMS)):
            postgresql.ENUM(name=name).drop(bind, checkfirst=True)
