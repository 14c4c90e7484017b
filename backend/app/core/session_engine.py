"""
Session progression engine.

Drives a session through its fixed question order:

1. start_session samples up to SESSION_QUESTION_COUNT matching questions and
   fixes their order for the session's lifetime.
2. get_current_question serves the question at the session's current index.
3. submit_answer accepts an answer only for the question at the current index,
   scores it (immediately for MCQ, deferred for descriptive answers), and
   advances the index. The last answer completes the session.

Transactions:
- Starting a session is one transaction. Sampling runs first, so a
  configuration with no matching questions leaves nothing behind.
- Submitting an answer is one transaction. The index advance is a
  compare-and-set on the expected index, and responses are unique per
  (session, question), so concurrent or repeated submissions for the same
  position fail with OutOfOrderError instead of double-advancing.

Deferred evaluation is dispatched only after the submission has committed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.datetime_utils import elapsed_seconds, ensure_timezone_aware, utc_now
from app.core.error_responses import ErrorMessages
from app.core.evaluation_dispatch import EvaluationDispatcher, EvaluationRequest
from app.core.exceptions import (
    InvalidStateError,
    NoQuestionsAvailableError,
    NotFoundError,
    OutOfOrderError,
)
from app.core.scoring import score_answer
from app.core.session_repository import SessionRepository
from app.models.models import (
    DOMAIN_AGNOSTIC_TEST_TYPES,
    AssessmentSession,
    Difficulty,
    EvaluationStatus,
    Question,
    QuestionFormat,
    SessionEventType,
    SessionStatus,
    TestType,
)

logger = logging.getLogger(__name__)


@dataclass
class QuestionView:
    """Question as presented to the test taker (no correct option)."""

    id: int
    text: str
    format: QuestionFormat
    options: Optional[List[Dict[str, str]]] = None


@dataclass
class CurrentQuestion:
    """Result of get_current_question; ``question`` is None once completed."""

    session_id: int
    completed: bool
    question_index: Optional[int] = None
    question: Optional[QuestionView] = None


@dataclass
class SubmissionResult:
    """Outcome of a recorded answer."""

    session_id: int
    response_id: int
    completed: bool
    score: Optional[float]
    evaluation_status: EvaluationStatus
    next_question_index: Optional[int] = None
    next_question_id: Optional[int] = None
    next_question_text: Optional[str] = None


@dataclass
class SessionResult:
    """Point-in-time score summary of a session."""

    session_id: int
    status: SessionStatus
    test_type: TestType
    difficulty: Difficulty
    total_questions: int
    answered: int
    average_score: Optional[float]
    pending_evaluations: int
    failed_evaluations: int
    started_at: datetime
    ended_at: Optional[datetime]
    time_limit_seconds: int
    elapsed_seconds: float
    time_limit_exceeded: bool


@dataclass
class SessionSummary:
    """One row of a user's session history."""

    session_id: int
    status: SessionStatus
    test_type: TestType
    difficulty: Difficulty
    domain_name: Optional[str]
    started_at: datetime
    ended_at: Optional[datetime]
    current_index: int = 0


def build_question_view(question: Question) -> QuestionView:
    """Present a question; options are only included for MCQ, sorted by id."""
    options = None
    if question.question_format == QuestionFormat.MCQ and question.options:
        options = [
            {"id": key, "text": question.options[key]}
            for key in sorted(question.options.keys())
        ]
    return QuestionView(
        id=question.id,
        text=question.question_text,
        format=question.question_format,
        options=options,
    )


class SessionProgressionEngine:
    """Creates sessions and moves them through their question order."""

    def __init__(
        self,
        repository: SessionRepository,
        dispatcher: Optional[EvaluationDispatcher] = None,
        question_count: Optional[int] = None,
        time_limit_seconds: Optional[int] = None,
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.question_count = question_count or settings.SESSION_QUESTION_COUNT
        self.time_limit_seconds = (
            time_limit_seconds or settings.SESSION_TIME_LIMIT_SECONDS
        )

    async def _get_active_session(self, session_id: int) -> AssessmentSession:
        session = await self.repository.get_session(session_id)
        if session is None:
            raise NotFoundError(ErrorMessages.SESSION_NOT_FOUND)
        if session.status != SessionStatus.ACTIVE:
            raise InvalidStateError(ErrorMessages.SESSION_NOT_ACTIVE)
        return session

    async def start_session(
        self,
        owner_id: int,
        domain_id: Optional[int],
        test_type: TestType,
        difficulty: Difficulty,
    ) -> int:
        """
        Create a session with a freshly sampled question order.

        Raises:
            NotFoundError: Owner or referenced domain does not exist
            NoQuestionsAvailableError: No active question matches the configuration
        """
        if await self.repository.get_user(owner_id) is None:
            raise NotFoundError(ErrorMessages.USER_NOT_FOUND)
        if domain_id is not None and await self.repository.get_domain(domain_id) is None:
            raise NotFoundError(ErrorMessages.DOMAIN_NOT_FOUND)
        if test_type not in DOMAIN_AGNOSTIC_TEST_TYPES and domain_id is None:
            raise NoQuestionsAvailableError(ErrorMessages.DOMAIN_REQUIRED)

        question_ids = await self.repository.sample_question_ids(
            test_type=test_type,
            difficulty=difficulty,
            domain_id=domain_id,
            limit=self.question_count,
        )
        if not question_ids:
            logger.warning(
                f"No questions for {test_type.value}/{difficulty.value} "
                f"(domain_id={domain_id}, owner_id={owner_id})"
            )
            raise NoQuestionsAvailableError()

        session = await self.repository.create_session(
            user_id=owner_id,
            domain_id=domain_id,
            test_type=test_type,
            difficulty=difficulty,
            time_limit_seconds=self.time_limit_seconds,
            started_at=utc_now(),
        )
        await self.repository.add_question_order(session.id, question_ids)
        await self.repository.add_event(session.id, SessionEventType.STARTED)
        await self.repository.commit()

        logger.info(
            f"Session {session.id} started for user {owner_id} "
            f"with {len(question_ids)} questions",
            extra={"session_id": session.id},
        )
        return session.id

    async def get_current_question(self, session_id: int) -> CurrentQuestion:
        """
        Return the question at the session's current index.

        Raises:
            NotFoundError: Session does not exist
            InvalidStateError: Session is not ACTIVE
        """
        session = await self._get_active_session(session_id)
        questions = await self.repository.get_question_order(session_id)

        index = session.current_index
        if index >= len(questions):
            return CurrentQuestion(session_id=session_id, completed=True)

        return CurrentQuestion(
            session_id=session_id,
            completed=False,
            question_index=index,
            question=build_question_view(questions[index]),
        )

    async def submit_answer(
        self, session_id: int, question_id: int, answer: str
    ) -> SubmissionResult:
        """
        Record the answer for the current question and advance the session.

        Raises:
            NotFoundError: Session does not exist
            InvalidStateError: Session is not ACTIVE
            OutOfOrderError: ``question_id`` is not the current question, or
                another submission for this position won
        """
        session = await self._get_active_session(session_id)
        questions = await self.repository.get_question_order(session_id)

        index = session.current_index
        if index >= len(questions):
            raise OutOfOrderError()
        question = questions[index]
        if question.id != question_id:
            logger.info(
                f"Out-of-order submission for session {session_id}: "
                f"got question {question_id}, expected {question.id}",
                extra={"session_id": session_id, "question_id": question_id},
            )
            raise OutOfOrderError(ErrorMessages.question_not_current(question.id))

        outcome = score_answer(question, answer)
        now = utc_now()
        completed = index + 1 >= len(questions)

        try:
            advanced = await self.repository.advance_index(
                session_id, expected_index=index, completed=completed, ended_at=now
            )
            if not advanced:
                await self.repository.rollback()
                raise OutOfOrderError()

            response = await self.repository.add_response(
                session_id=session_id,
                question_id=question_id,
                answer_text=answer,
                score=outcome.score,
                evaluation_status=outcome.evaluation_status,
                evaluated_at=None if outcome.needs_evaluation else now,
            )
            await self.repository.add_event(
                session_id, SessionEventType.SUBMITTED, {"questionId": question_id}
            )
            if completed:
                await self.repository.add_event(session_id, SessionEventType.COMPLETED)
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise OutOfOrderError(ErrorMessages.DUPLICATE_SUBMISSION)

        if outcome.needs_evaluation and self.dispatcher is not None:
            self.dispatcher.dispatch(
                EvaluationRequest(
                    response_id=response.id,
                    session_id=session_id,
                    question_text=question.question_text,
                    answer=answer,
                    test_type=session.test_type.value,
                    difficulty=session.difficulty.value,
                )
            )

        if completed:
            logger.info(
                f"Session {session_id} completed", extra={"session_id": session_id}
            )
            return SubmissionResult(
                session_id=session_id,
                response_id=response.id,
                completed=True,
                score=outcome.score,
                evaluation_status=outcome.evaluation_status,
            )

        next_question = questions[index + 1]
        return SubmissionResult(
            session_id=session_id,
            response_id=response.id,
            completed=False,
            score=outcome.score,
            evaluation_status=outcome.evaluation_status,
            next_question_index=index + 1,
            next_question_id=next_question.id,
            next_question_text=next_question.question_text,
        )

    async def get_session_result(self, session_id: int) -> SessionResult:
        """
        Summarize a session in any status.

        The average covers non-null scores only, so it can change while
        descriptive evaluations are still PENDING.

        Raises:
            NotFoundError: Session does not exist
        """
        session = await self.repository.get_session(session_id)
        if session is None:
            raise NotFoundError(ErrorMessages.SESSION_NOT_FOUND)

        stats = await self.repository.get_result_stats(session_id)
        started_at = ensure_timezone_aware(session.started_at)
        ended_at = (
            ensure_timezone_aware(session.ended_at) if session.ended_at else None
        )
        elapsed = elapsed_seconds(started_at, ended_at)

        return SessionResult(
            session_id=session.id,
            status=session.status,
            test_type=session.test_type,
            difficulty=session.difficulty,
            total_questions=stats.total_questions,
            answered=stats.answered,
            average_score=stats.average_score,
            pending_evaluations=stats.pending_evaluations,
            failed_evaluations=stats.failed_evaluations,
            started_at=started_at,
            ended_at=ended_at,
            time_limit_seconds=session.time_limit_seconds,
            elapsed_seconds=round(elapsed, 3),
            time_limit_exceeded=elapsed > session.time_limit_seconds,
        )

    async def get_user_sessions(self, owner_id: int) -> List[SessionSummary]:
        """All sessions of an owner, most recently started first."""
        rows = await self.repository.list_user_sessions(owner_id)
        return [
            SessionSummary(
                session_id=session.id,
                status=session.status,
                test_type=session.test_type,
                difficulty=session.difficulty,
                domain_name=domain_name,
                started_at=ensure_timezone_aware(session.started_at),
                ended_at=(
                    ensure_timezone_aware(session.ended_at)
                    if session.ended_at
                    else None
                ),
                current_index=session.current_index,
            )
            for session, domain_name in rows
        ]
