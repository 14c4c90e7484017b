"""
Database models for the assessment session service.
"""
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    Enum,
    Float,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum

from .base import Base


class TestType(str, enum.Enum):
    """Kind of assessment a session runs."""

    APTITUDE = "APTITUDE"
    CODING = "CODING"
    TECHNICAL = "TECHNICAL"
    BEHAVIORAL = "BEHAVIORAL"


# Test types whose questions are not tied to a domain
DOMAIN_AGNOSTIC_TEST_TYPES = frozenset({TestType.APTITUDE, TestType.CODING})


class Difficulty(str, enum.Enum):
    """Difficulty level enumeration."""

    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class QuestionFormat(str, enum.Enum):
    """How a question is answered and scored."""

    MCQ = "MCQ"
    DESCRIPTIVE = "DESCRIPTIVE"
    CODE = "CODE"


class SessionStatus(str, enum.Enum):
    """Session status enumeration. ACTIVE -> COMPLETED only."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class EvaluationStatus(str, enum.Enum):
    """Scoring state of a single response."""

    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    FAILED = "FAILED"


class SessionEventType(str, enum.Enum):
    """Lifecycle markers written to the session event log."""

    STARTED = "started"
    SUBMITTED = "submitted"
    COMPLETED = "completed"


class User(Base):
    """Owner of assessment sessions."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    sessions = relationship(
        "AssessmentSession", back_populates="user", cascade="all, delete-orphan"
    )


class Domain(Base):
    """Subject area that domain-specific questions and sessions belong to."""

    __tablename__ = "domains"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    questions = relationship("Question", back_populates="domain")


class Question(Base):
    """Question bank entry. Read-only from a session's point of view."""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    question_text = Column(Text, nullable=False)
    question_format = Column(Enum(QuestionFormat), nullable=False)
    # MCQ only: option identifier -> option text, e.g. {"A": "4", "B": "5"}
    options = Column(JSON, nullable=True)
    correct_option = Column(String(10), nullable=True)  # MCQ only
    test_type = Column(Enum(TestType), nullable=False)
    difficulty = Column(Enum(Difficulty), nullable=False)
    domain_id = Column(
        Integer, ForeignKey("domains.id", ondelete="SET NULL"), nullable=True
    )
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    domain = relationship("Domain", back_populates="questions")

    __table_args__ = (
        Index(
            "ix_questions_selection",
            "test_type",
            "difficulty",
            "domain_id",
            "is_active",
        ),
    )


class AssessmentSession(Base):
    """One timed attempt at a sampled set of questions."""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    domain_id = Column(
        Integer, ForeignKey("domains.id", ondelete="SET NULL"), nullable=True
    )
    test_type = Column(Enum(TestType), nullable=False)
    difficulty = Column(Enum(Difficulty), nullable=False)
    # Recorded for reporting; sessions are not terminated when it runs out
    time_limit_seconds = Column(Integer, nullable=False, default=1800)
    current_index = Column(Integer, nullable=False, default=0)
    status = Column(
        Enum(SessionStatus), default=SessionStatus.ACTIVE, nullable=False, index=True
    )
    started_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    ended_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="sessions")
    domain = relationship("Domain")
    questions = relationship(
        "SessionQuestion",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionQuestion.order_index",
    )
    responses = relationship(
        "Response", back_populates="session", cascade="all, delete-orphan"
    )
    events = relationship(
        "SessionEvent", back_populates="session", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("current_index >= 0", name="ck_sessions_current_index"),
        Index("ix_sessions_user_started", "user_id", "started_at"),
    )


class SessionQuestion(Base):
    """Position of a question within a session. Written once at session start."""

    __tablename__ = "session_questions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    question_id = Column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    order_index = Column(Integer, nullable=False)

    session = relationship("AssessmentSession", back_populates="questions")
    question = relationship("Question")

    __table_args__ = (
        UniqueConstraint("session_id", "order_index", name="uq_session_question_order"),
        UniqueConstraint("session_id", "question_id", name="uq_session_question"),
        CheckConstraint("order_index >= 0", name="ck_session_questions_order_index"),
    )


class Response(Base):
    """Answer submitted for one question of a session."""

    __tablename__ = "responses"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    question_id = Column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    answer_text = Column(Text, nullable=False)
    score = Column(Float, nullable=True)  # 0/1 for MCQ, evaluator-defined otherwise
    evaluation_status = Column(Enum(EvaluationStatus), nullable=False)
    feedback = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    evaluated_at = Column(DateTime(timezone=True), nullable=True)

    session = relationship("AssessmentSession", back_populates="responses")
    question = relationship("Question")

    __table_args__ = (
        # One answer per question per session
        UniqueConstraint("session_id", "question_id", name="uq_response_session_question"),
        Index("ix_responses_evaluation_status", "evaluation_status", "created_at"),
    )


class SessionEvent(Base):
    """Append-only session lifecycle log."""

    __tablename__ = "session_events"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type = Column(
        Enum(
            SessionEventType,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    session = relationship("AssessmentSession", back_populates="events")
