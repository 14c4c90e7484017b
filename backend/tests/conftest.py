"""
Pytest configuration and shared fixtures for testing.
"""
import logging
import os
import sys
from pathlib import Path

# Make the backend directory importable regardless of where pytest is run
backend_root = Path(__file__).parent.parent
if str(backend_root) not in sys.path:
    sys.path.insert(0, str(backend_root))

# Use SQLite for tests; path is relative to this file so the .db lands inside
# tests/ regardless of the working directory. Must be set before app.models
# is imported.
_TEST_DB = Path(__file__).parent / "test.db"
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DB}")
os.environ.setdefault("ENV", "test")

from contextlib import asynccontextmanager  # noqa: E402
from dataclasses import dataclass, field  # noqa: E402
from typing import Any, AsyncGenerator, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Base,
    Difficulty,
    Domain,
    Question,
    QuestionFormat,
    TestType,
    User,
    get_db,
    get_session_factory,
)
from app.services.evaluation_service import (  # noqa: E402
    EvaluationResult,
    EvaluationServiceError,
    get_evaluation_client,
)


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests; the real one disposes the app's engine."""
    yield


app.router.lifespan_context = _test_lifespan


SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Async test engine (aiosqlite) on the same DB file as the sync engine, so
# data created by sync fixtures is visible to async endpoint overrides.
ASYNC_SQLALCHEMY_DATABASE_URL = f"sqlite+aiosqlite:///{_TEST_DB}"

async_test_engine = create_async_engine(
    ASYNC_SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
AsyncTestingSessionLocal = async_sessionmaker(
    async_test_engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(autouse=True)
def propagate_app_logs(monkeypatch):
    """Let caplog see records from the app logger (propagate=False in prod)."""
    monkeypatch.setattr(logging.getLogger("app"), "propagate", True)


@dataclass
class StubEvaluationClient:
    """Stands in for EvaluationClient; records payloads it was asked to score."""

    result: EvaluationResult = field(
        default_factory=lambda: EvaluationResult(score=0.8, feedback="Good answer")
    )
    error: Optional[EvaluationServiceError] = None
    payloads: List[Dict[str, Any]] = field(default_factory=list)

    async def evaluate(self, payload: Dict[str, Any]) -> EvaluationResult:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def evaluation_client():
    """Stub evaluation service that succeeds with score 0.8."""
    return StubEvaluationClient()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session, evaluation_client):
    """
    Create a test client with database and evaluation service overrides.

    Request sessions and background evaluation sessions both use the async
    test engine on the same test.db file that db_session writes to.
    TestClient runs background tasks before returning the response, so
    deferred evaluations have been stored by the time a request returns.
    """

    async def override_get_db():
        async with AsyncTestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: AsyncTestingSessionLocal
    app.dependency_overrides[get_evaluation_client] = lambda: evaluation_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def test_user(db_session):
    """
    Create a test user in the database.
    """
    user = User(email="test@example.com", display_name="Test User")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_domain(db_session):
    """Create a domain for domain-specific test types."""
    domain = Domain(name="Backend Engineering", description="Server-side development")
    db_session.add(domain)
    db_session.commit()
    db_session.refresh(domain)
    return domain


def make_mcq(
    text: str,
    correct_option: str = "B",
    test_type: TestType = TestType.APTITUDE,
    difficulty: Difficulty = Difficulty.EASY,
    domain_id: Optional[int] = None,
    is_active: bool = True,
) -> Question:
    return Question(
        question_text=text,
        question_format=QuestionFormat.MCQ,
        options={"A": "Option A", "B": "Option B", "C": "Option C", "D": "Option D"},
        correct_option=correct_option,
        test_type=test_type,
        difficulty=difficulty,
        domain_id=domain_id,
        is_active=is_active,
    )


def make_descriptive(
    text: str,
    test_type: TestType = TestType.TECHNICAL,
    difficulty: Difficulty = Difficulty.MEDIUM,
    domain_id: Optional[int] = None,
) -> Question:
    return Question(
        question_text=text,
        question_format=QuestionFormat.DESCRIPTIVE,
        test_type=test_type,
        difficulty=difficulty,
        domain_id=domain_id,
        is_active=True,
    )


def _persist(db_session, questions):
    db_session.add_all(questions)
    db_session.commit()
    for question in questions:
        db_session.refresh(question)
    return questions


@pytest.fixture
def aptitude_questions(db_session):
    """
    Twelve active APTITUDE/EASY multiple-choice questions (correct option "B"),
    plus one inactive and one HARD question that must never be sampled.
    """
    questions = [make_mcq(f"Aptitude question {i}") for i in range(12)]
    questions.append(make_mcq("Inactive aptitude question", is_active=False))
    questions.append(make_mcq("Hard aptitude question", difficulty=Difficulty.HARD))
    return _persist(db_session, questions)[:12]


@pytest.fixture
def technical_questions(db_session, test_domain):
    """
    Three TECHNICAL/MEDIUM descriptive questions in test_domain, plus one in
    no domain that domain-filtered sampling must skip.
    """
    questions = [
        make_descriptive(f"Explain concept {i}", domain_id=test_domain.id)
        for i in range(3)
    ]
    questions.append(make_descriptive("Domainless technical question"))
    return _persist(db_session, questions)[:3]


@pytest.fixture
def coding_question(db_session):
    """A single CODING/HARD question in CODE format (no scoring policy)."""
    question = Question(
        question_text="Implement binary search.",
        question_format=QuestionFormat.CODE,
        test_type=TestType.CODING,
        difficulty=Difficulty.HARD,
        is_active=True,
    )
    return _persist(db_session, [question])[0]


# --- Async fixtures ---


@pytest.fixture(scope="function")
async def async_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh async database session for each test.
    """
    async with async_test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncTestingSessionLocal() as session:
        yield session

    async with async_test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def async_session_factory():
    """Expose the async test session factory (for background-style work)."""
    return AsyncTestingSessionLocal


@pytest.fixture
async def async_test_user(async_db_session):
    """Create a test user in the async database."""
    user = User(email="async@example.com", display_name="Async User")
    async_db_session.add(user)
    await async_db_session.commit()
    await async_db_session.refresh(user)
    return user


@pytest.fixture
async def async_aptitude_questions(async_db_session):
    """Three APTITUDE/EASY MCQ questions with correct option "B"."""
    questions = [make_mcq(f"Async aptitude question {i}") for i in range(3)]
    async_db_session.add_all(questions)
    await async_db_session.commit()
    for question in questions:
        await async_db_session.refresh(question)
    return questions


@pytest.fixture
async def async_technical_setup(async_db_session):
    """A domain with two descriptive TECHNICAL/MEDIUM questions."""
    domain = Domain(name="Data Engineering")
    async_db_session.add(domain)
    await async_db_session.flush()
    questions = [
        make_descriptive(f"Describe pipeline {i}", domain_id=domain.id) for i in range(2)
    ]
    async_db_session.add_all(questions)
    await async_db_session.commit()
    for question in questions:
        await async_db_session.refresh(question)
    return domain, questions
