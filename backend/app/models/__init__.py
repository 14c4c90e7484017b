"""
Models package for the assessment session service.
"""
from .base import Base, AsyncSessionLocal, async_engine, get_db, get_session_factory
from .models import (
    User,
    Domain,
    Question,
    AssessmentSession,
    SessionQuestion,
    Response,
    SessionEvent,
    TestType,
    Difficulty,
    QuestionFormat,
    SessionStatus,
    EvaluationStatus,
    SessionEventType,
    DOMAIN_AGNOSTIC_TEST_TYPES,
)

__all__ = [
    "Base",
    "AsyncSessionLocal",
    "async_engine",
    "get_db",
    "get_session_factory",
    "User",
    "Domain",
    "Question",
    "AssessmentSession",
    "SessionQuestion",
    "Response",
    "SessionEvent",
    "TestType",
    "Difficulty",
    "QuestionFormat",
    "SessionStatus",
    "EvaluationStatus",
    "SessionEventType",
    "DOMAIN_AGNOSTIC_TEST_TYPES",
]
