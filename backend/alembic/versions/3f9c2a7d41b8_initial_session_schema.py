"""Initial assessment session schema

Revision ID: 3f9c2a7d41b8
Revises:
Create Date: 2026-10-19 09:12:44.518302

Creates users, domains, questions, sessions, session_questions, responses
and session_events.

Constraints that protect session progression:
- session_questions: order index and question unique per session
- responses: one answer per (session, question)
- sessions: current_index >= 0
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f9c2a7d41b8"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

test_type_enum = postgresql.ENUM(
    "APTITUDE", "CODING", "TECHNICAL", "BEHAVIORAL", name="testtype", create_type=False
)
difficulty_enum = postgresql.ENUM(
    "EASY", "MEDIUM", "HARD", name="difficulty", create_type=False
)
question_format_enum = postgresql.ENUM(
    "MCQ", "DESCRIPTIVE", "CODE", name="questionformat", create_type=False
)
session_status_enum = postgresql.ENUM(
    "ACTIVE", "COMPLETED", name="sessionstatus", create_type=False
)
evaluation_status_enum = postgresql.ENUM(
    "COMPLETED", "PENDING", "FAILED", name="evaluationstatus", create_type=False
)
session_event_type_enum = postgresql.ENUM(
    "started", "submitted", "completed", name="sessioneventtype", create_type=False
)

ALL_ENUMS = (
    test_type_enum,
    difficulty_enum,
    question_format_enum,
    session_status_enum,
    evaluation_status_enum,
    session_event_type_enum,
)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "domains",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_domains_id"), "domains", ["id"], unique=False)

    op.create_table(
        "questions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_format", question_format_enum, nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("correct_option", sa.String(length=10), nullable=True),
        sa.Column("test_type", test_type_enum, nullable=False),
        sa.Column("difficulty", difficulty_enum, nullable=False),
        sa.Column("domain_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["domain_id"], ["domains.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_questions_id"), "questions", ["id"], unique=False)
    op.create_index(
        "ix_questions_selection",
        "questions",
        ["test_type", "difficulty", "domain_id", "is_active"],
        unique=False,
    )

    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("domain_id", sa.Integer(), nullable=True),
        sa.Column("test_type", test_type_enum, nullable=False),
        sa.Column("difficulty", difficulty_enum, nullable=False),
        sa.Column("time_limit_seconds", sa.Integer(), nullable=False),
        sa.Column("current_index", sa.Integer(), nullable=False),
        sa.Column("status", session_status_enum, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("current_index >= 0", name="ck_sessions_current_index"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["domain_id"], ["domains.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sessions_id"), "sessions", ["id"], unique=False)
    op.create_index(op.f("ix_sessions_user_id"), "sessions", ["user_id"], unique=False)
    op.create_index(op.f("ix_sessions_status"), "sessions", ["status"], unique=False)
    op.create_index(
        "ix_sessions_user_started", "sessions", ["user_id", "started_at"], unique=False
    )

    op.create_table(
        "session_questions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.CheckConstraint("order_index >= 0", name="ck_session_questions_order_index"),
        sa.ForeignKeyConstraint(["session_id"], ["sessions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["question_id"], ["questions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "session_id", "order_index", name="uq_session_question_order"
        ),
        sa.UniqueConstraint("session_id", "question_id", name="uq_session_question"),
    )
    op.create_index(
        op.f("ix_session_questions_id"), "session_questions", ["id"], unique=False
    )

    op.create_table(
        "responses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("answer_text", sa.Text(), nullable=False),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("evaluation_status", evaluation_status_enum, nullable=False),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("evaluated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["session_id"], ["sessions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["question_id"], ["questions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "session_id", "question_id", name="uq_response_session_question"
        ),
    )
    op.create_index(op.f("ix_responses_id"), "responses", ["id"], unique=False)
    op.create_index(
        "ix_responses_evaluation_status",
        "responses",
        ["evaluation_status", "created_at"],
        unique=False,
    )

    op.create_table(
        "session_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("event_type", session_event_type_enum, nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["sessions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_session_events_id"), "session_events", ["id"], unique=False)
    op.create_index(
        op.f("ix_session_events_session_id"),
        "session_events",
        ["session_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("session_events")
    op.drop_table("responses")
    op.drop_table("session_questions")
    op.drop_table("sessions")
    op.drop_table("questions")
    op.drop_table("domains")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
