"""
Tests for SessionProgressionEngine against the async test database.

These exercise paths the HTTP tests cannot reach reliably, such as losing the
index compare-and-set to a concurrent submission.
"""
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from app.core.error_responses import ErrorMessages
from app.core.exceptions import (
    InvalidStateError,
    NoQuestionsAvailableError,
    NotFoundError,
    OutOfOrderError,
)
from app.core.session_engine import SessionProgressionEngine, build_question_view
from app.core.session_repository import SessionRepository
from app.models import (
    AssessmentSession,
    Difficulty,
    EvaluationStatus,
    Question,
    QuestionFormat,
    Response,
    SessionQuestion,
    SessionStatus,
    TestType,
)


class RecordingDispatcher:
    """Collects evaluation requests instead of scheduling them."""

    def __init__(self):
        self.requests = []

    def dispatch(self, request):
        self.requests.append(request)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def repository(async_db_session):
    return SessionRepository(async_db_session)


@pytest.fixture
def engine(repository, dispatcher):
    return SessionProgressionEngine(repository, dispatcher=dispatcher)


async def order_ids(repository, session_id):
    return [question.id for question in await repository.get_question_order(session_id)]


class TestBuildQuestionView:
    """Tests for build_question_view."""

    def test_mcq_options_sorted_by_identifier(self):
        question = Question(
            id=5,
            question_text="Pick one",
            question_format=QuestionFormat.MCQ,
            options={"C": "third", "A": "first", "B": "second"},
            correct_option="A",
        )

        view = build_question_view(question)

        assert view.id == 5
        assert view.options == [
            {"id": "A", "text": "first"},
            {"id": "B", "text": "second"},
            {"id": "C", "text": "third"},
        ]

    def test_non_mcq_has_no_options(self):
        question = Question(
            id=6,
            question_text="Explain",
            question_format=QuestionFormat.DESCRIPTIVE,
            options={"A": "ignored"},
        )

        assert build_question_view(question).options is None


class TestStartSession:
    """Tests for SessionProgressionEngine.start_session."""

    @pytest.mark.asyncio
    async def test_uses_every_question_when_fewer_than_count(
        self, engine, repository, async_test_user, async_aptitude_questions
    ):
        session_id = await engine.start_session(
            owner_id=async_test_user.id,
            domain_id=None,
            test_type=TestType.APTITUDE,
            difficulty=Difficulty.EASY,
        )

        ids = await order_ids(repository, session_id)
        assert sorted(ids) == sorted(q.id for q in async_aptitude_questions)

    @pytest.mark.asyncio
    async def test_question_count_caps_sample(
        self, repository, async_db_session, async_test_user, async_aptitude_questions
    ):
        engine = SessionProgressionEngine(repository, question_count=2)

        session_id = await engine.start_session(
            owner_id=async_test_user.id,
            domain_id=None,
            test_type=TestType.APTITUDE,
            difficulty=Difficulty.EASY,
        )

        count = await async_db_session.scalar(
            select(func.count(SessionQuestion.id)).where(
                SessionQuestion.session_id == session_id
            )
        )
        assert count == 2

    @pytest.mark.asyncio
    async def test_time_limit_recorded(
        self, repository, async_test_user, async_aptitude_questions
    ):
        engine = SessionProgressionEngine(repository, time_limit_seconds=600)

        session_id = await engine.start_session(
            owner_id=async_test_user.id,
            domain_id=None,
            test_type=TestType.APTITUDE,
            difficulty=Difficulty.EASY,
        )

        session = await repository.get_session(session_id)
        assert session.time_limit_seconds == 600

    @pytest.mark.asyncio
    async def test_unknown_owner(self, engine, async_db_session, async_aptitude_questions):
        with pytest.raises(NotFoundError) as exc_info:
            await engine.start_session(
                owner_id=404,
                domain_id=None,
                test_type=TestType.APTITUDE,
                difficulty=Difficulty.EASY,
            )

        assert exc_info.value.message == ErrorMessages.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_no_matches_leaves_no_session(
        self, engine, async_db_session, async_test_user
    ):
        with pytest.raises(NoQuestionsAvailableError):
            await engine.start_session(
                owner_id=async_test_user.id,
                domain_id=None,
                test_type=TestType.CODING,
                difficulty=Difficulty.HARD,
            )

        count = await async_db_session.scalar(select(func.count(AssessmentSession.id)))
        assert count == 0

    @pytest.mark.asyncio
    async def test_domain_filter_applied(
        self, engine, repository, async_test_user, async_technical_setup
    ):
        domain, questions = async_technical_setup

        session_id = await engine.start_session(
            owner_id=async_test_user.id,
            domain_id=domain.id,
            test_type=TestType.TECHNICAL,
            difficulty=Difficulty.MEDIUM,
        )

        assert sorted(await order_ids(repository, session_id)) == sorted(
            q.id for q in questions
        )


class TestSubmitAnswer:
    """Tests for SessionProgressionEngine.submit_answer."""

    async def _start(self, engine, user_id):
        return await engine.start_session(
            owner_id=user_id,
            domain_id=None,
            test_type=TestType.APTITUDE,
            difficulty=Difficulty.EASY,
        )

    @pytest.mark.asyncio
    async def test_progression_to_completion(
        self, engine, repository, async_test_user, async_aptitude_questions, dispatcher
    ):
        session_id = await self._start(engine, async_test_user.id)
        ids = await order_ids(repository, session_id)

        first = await engine.submit_answer(session_id, ids[0], "B")
        assert first.completed is False
        assert first.score == 1.0
        assert first.next_question_index == 1
        assert first.next_question_id == ids[1]

        await engine.submit_answer(session_id, ids[1], "A")
        last = await engine.submit_answer(session_id, ids[2], "B")

        assert last.completed is True
        assert last.next_question_id is None
        session = await repository.get_session(session_id)
        assert session.status == SessionStatus.COMPLETED
        assert session.current_index == 3
        assert session.ended_at is not None
        # MCQ answers never reach the evaluation service
        assert dispatcher.requests == []

    @pytest.mark.asyncio
    async def test_lost_compare_and_set_rejected(
        self, engine, repository, async_db_session, async_test_user,
        async_aptitude_questions,
    ):
        """A concurrent submission that advanced the index first wins."""
        session_id = await self._start(engine, async_test_user.id)
        ids = await order_ids(repository, session_id)

        with patch.object(
            repository, "advance_index", AsyncMock(return_value=False)
        ):
            with pytest.raises(OutOfOrderError):
                await engine.submit_answer(session_id, ids[0], "B")

        count = await async_db_session.scalar(select(func.count(Response.id)))
        assert count == 0

    @pytest.mark.asyncio
    async def test_concurrent_submission_wins_the_index(
        self, engine, repository, async_session_factory, async_test_user,
        async_aptitude_questions,
    ):
        """B submits between A's read of the index and A's advance; A loses."""
        session_id = await self._start(engine, async_test_user.id)
        ids = await order_ids(repository, session_id)

        async with async_session_factory() as db_a, async_session_factory() as db_b:
            repository_a = SessionRepository(db_a)
            engine_a = SessionProgressionEngine(repository_a)
            engine_b = SessionProgressionEngine(SessionRepository(db_b))
            real_advance = repository_a.advance_index

            async def advance_after_rival(*args, **kwargs):
                await engine_b.submit_answer(session_id, ids[0], "B")
                return await real_advance(*args, **kwargs)

            with patch.object(repository_a, "advance_index", advance_after_rival):
                with pytest.raises(OutOfOrderError):
                    await engine_a.submit_answer(session_id, ids[0], "A")

        async with async_session_factory() as db:
            count = await db.scalar(
                select(func.count(Response.id)).where(Response.session_id == session_id)
            )
            session = await SessionRepository(db).get_session(session_id)

        assert count == 1
        assert session.current_index == 1
        assert session.status == SessionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_duplicate_response_rejected(
        self, engine, repository, async_db_session, async_test_user,
        async_aptitude_questions,
    ):
        """An answer already stored for the current question blocks the submission."""
        session_id = await self._start(engine, async_test_user.id)
        ids = await order_ids(repository, session_id)
        async_db_session.add(
            Response(
                session_id=session_id,
                question_id=ids[0],
                answer_text="A",
                score=0.0,
                evaluation_status=EvaluationStatus.COMPLETED,
            )
        )
        await async_db_session.commit()

        with pytest.raises(OutOfOrderError) as exc_info:
            await engine.submit_answer(session_id, ids[0], "B")

        assert exc_info.value.message == ErrorMessages.DUPLICATE_SUBMISSION
        session = await repository.get_session(session_id)
        assert session.current_index == 0
        assert session.status == SessionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_wrong_question_names_expected(
        self, engine, repository, async_test_user, async_aptitude_questions
    ):
        session_id = await self._start(engine, async_test_user.id)
        ids = await order_ids(repository, session_id)

        with pytest.raises(OutOfOrderError) as exc_info:
            await engine.submit_answer(session_id, ids[2], "B")

        assert exc_info.value.message == ErrorMessages.question_not_current(ids[0])

    @pytest.mark.asyncio
    async def test_completed_session_rejects_everything(
        self, engine, repository, async_test_user, async_aptitude_questions
    ):
        session_id = await self._start(engine, async_test_user.id)
        ids = await order_ids(repository, session_id)
        for question_id in ids:
            await engine.submit_answer(session_id, question_id, "B")

        with pytest.raises(InvalidStateError):
            await engine.submit_answer(session_id, ids[-1], "B")
        with pytest.raises(InvalidStateError):
            await engine.get_current_question(session_id)

    @pytest.mark.asyncio
    async def test_descriptive_answer_dispatched_after_commit(
        self, engine, repository, async_db_session, async_test_user,
        async_technical_setup, dispatcher,
    ):
        domain, questions = async_technical_setup
        session_id = await engine.start_session(
            owner_id=async_test_user.id,
            domain_id=domain.id,
            test_type=TestType.TECHNICAL,
            difficulty=Difficulty.MEDIUM,
        )
        ids = await order_ids(repository, session_id)

        result = await engine.submit_answer(session_id, ids[0], "Partition by date.")

        assert result.evaluation_status == EvaluationStatus.PENDING
        assert result.score is None
        assert len(dispatcher.requests) == 1
        request = dispatcher.requests[0]
        assert request.response_id == result.response_id
        assert request.session_id == session_id
        assert request.test_type == "TECHNICAL"
        assert request.difficulty == "MEDIUM"
        assert request.answer == "Partition by date."

        stored = await async_db_session.get(Response, result.response_id)
        assert stored.evaluation_status == EvaluationStatus.PENDING
        assert stored.evaluated_at is None


class TestResultsAndHistory:
    """Tests for get_session_result and get_user_sessions."""

    @pytest.mark.asyncio
    async def test_result_counts(
        self, engine, repository, async_test_user, async_aptitude_questions
    ):
        session_id = await engine.start_session(
            owner_id=async_test_user.id,
            domain_id=None,
            test_type=TestType.APTITUDE,
            difficulty=Difficulty.EASY,
        )
        ids = await order_ids(repository, session_id)
        await engine.submit_answer(session_id, ids[0], "B")
        await engine.submit_answer(session_id, ids[1], "D")

        result = await engine.get_session_result(session_id)

        assert result.total_questions == 3
        assert result.answered == 2
        assert result.average_score == 0.5
        assert result.pending_evaluations == 0
        assert result.status == SessionStatus.ACTIVE
        assert result.started_at.tzinfo is not None
        assert result.time_limit_exceeded is False

    @pytest.mark.asyncio
    async def test_result_for_unknown_session(self, engine, async_db_session):
        with pytest.raises(NotFoundError):
            await engine.get_session_result(31337)

    @pytest.mark.asyncio
    async def test_user_sessions_empty(self, engine, async_test_user):
        assert await engine.get_user_sessions(async_test_user.id) == []

    @pytest.mark.asyncio
    async def test_user_sessions_listed(
        self, engine, async_test_user, async_aptitude_questions
    ):
        session_id = await engine.start_session(
            owner_id=async_test_user.id,
            domain_id=None,
            test_type=TestType.APTITUDE,
            difficulty=Difficulty.EASY,
        )

        summaries = await engine.get_user_sessions(async_test_user.id)

        assert [summary.session_id for summary in summaries] == [session_id]
        assert summaries[0].domain_name is None
        assert summaries[0].current_index == 0
