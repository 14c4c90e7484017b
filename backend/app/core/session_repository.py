"""
Persistence operations used by the session progression engine.

All reads and writes against sessions, their question order, responses and
events go through :class:`SessionRepository`, which wraps one AsyncSession.
The repository never commits on its own; the engine decides the transaction
boundaries.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.models import (
    DOMAIN_AGNOSTIC_TEST_TYPES,
    AssessmentSession,
    Difficulty,
    Domain,
    EvaluationStatus,
    Question,
    Response,
    SessionEvent,
    SessionEventType,
    SessionQuestion,
    SessionStatus,
    TestType,
    User,
)


@dataclass
class ResultStats:
    """Aggregates computed over a session's question order and responses."""

    total_questions: int
    answered: int
    average_score: Optional[float]
    pending_evaluations: int
    failed_evaluations: int


class SessionRepository:
    """Data access for the session progression engine."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_domain(self, domain_id: int) -> Optional[Domain]:
        return await self.db.get(Domain, domain_id)

    async def get_session(self, session_id: int) -> Optional[AssessmentSession]:
        result = await self.db.execute(
            select(AssessmentSession)
            .where(AssessmentSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_question_order(self, session_id: int) -> List[Question]:
        """Return the session's questions sorted by order index."""
        result = await self.db.execute(
            select(Question)
            .join(SessionQuestion, SessionQuestion.question_id == Question.id)
            .where(SessionQuestion.session_id == session_id)
            .order_by(SessionQuestion.order_index)
        )
        return list(result.scalars().all())

    async def sample_question_ids(
        self,
        test_type: TestType,
        difficulty: Difficulty,
        domain_id: Optional[int],
        limit: int,
    ) -> List[int]:
        """
        Sample up to ``limit`` active question ids in random order.

        Domain-agnostic test types ignore ``domain_id``; every other type
        only matches questions of that domain, so a missing ``domain_id``
        matches nothing.
        """
        stmt = select(Question.id).where(
            Question.test_type == test_type,
            Question.difficulty == difficulty,
            Question.is_active == True,  # noqa: E712
        )
        if test_type not in DOMAIN_AGNOSTIC_TEST_TYPES:
            if domain_id is None:
                return []
            stmt = stmt.where(Question.domain_id == domain_id)

        result = await self.db.execute(stmt.order_by(func.random()).limit(limit))
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Writes (flushed, not committed)
    # ------------------------------------------------------------------
    async def create_session(
        self,
        user_id: int,
        domain_id: Optional[int],
        test_type: TestType,
        difficulty: Difficulty,
        time_limit_seconds: int,
        started_at: datetime,
    ) -> AssessmentSession:
        session = AssessmentSession(
            user_id=user_id,
            domain_id=domain_id,
            test_type=test_type,
            difficulty=difficulty,
            time_limit_seconds=time_limit_seconds,
            current_index=0,
            status=SessionStatus.ACTIVE,
            started_at=started_at,
        )
        self.db.add(session)
        await self.db.flush()
        return session

    async def add_question_order(
        self, session_id: int, question_ids: Sequence[int]
    ) -> None:
        """Write the question order as one batch, indices 0..k-1."""
        self.db.add_all(
            [
                SessionQuestion(
                    session_id=session_id, question_id=question_id, order_index=index
                )
                for index, question_id in enumerate(question_ids)
            ]
        )
        await self.db.flush()

    async def add_event(
        self,
        session_id: int,
        event_type: SessionEventType,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.db.add(
            SessionEvent(
                session_id=session_id,
                event_type=event_type,
                event_metadata=metadata,
            )
        )

    async def add_response(
        self,
        session_id: int,
        question_id: int,
        answer_text: str,
        score: Optional[float],
        evaluation_status: EvaluationStatus,
        evaluated_at: Optional[datetime],
    ) -> Response:
        response = Response(
            session_id=session_id,
            question_id=question_id,
            answer_text=answer_text,
            score=score,
            evaluation_status=evaluation_status,
            evaluated_at=evaluated_at,
        )
        self.db.add(response)
        await self.db.flush()
        return response

    async def advance_index(
        self,
        session_id: int,
        expected_index: int,
        completed: bool,
        ended_at: datetime,
    ) -> bool:
        """
        Move the session from ``expected_index`` to the next position.

        Compare-and-set: the row only changes if it is still ACTIVE at
        ``expected_index``. When ``completed`` is true the same statement
        marks the session COMPLETED and stamps ``ended_at``.

        Returns:
            False if another submission already moved the session.
        """
        values: Dict[str, Any] = {"current_index": expected_index + 1}
        if completed:
            values["status"] = SessionStatus.COMPLETED
            values["ended_at"] = ended_at

        result = await self.db.execute(
            update(AssessmentSession)
            .where(
                AssessmentSession.id == session_id,
                AssessmentSession.current_index == expected_index,
                AssessmentSession.status == SessionStatus.ACTIVE,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    async def get_result_stats(self, session_id: int) -> ResultStats:
        total = await self.db.scalar(
            select(func.count(SessionQuestion.id)).where(
                SessionQuestion.session_id == session_id
            )
        )

        # AVG skips NULL scores, so PENDING and FAILED responses are excluded
        row = (
            await self.db.execute(
                select(
                    func.count(Response.id),
                    func.avg(Response.score),
                    func.sum(
                        case(
                            (Response.evaluation_status == EvaluationStatus.PENDING, 1),
                            else_=0,
                        )
                    ),
                    func.sum(
                        case(
                            (Response.evaluation_status == EvaluationStatus.FAILED, 1),
                            else_=0,
                        )
                    ),
                ).where(Response.session_id == session_id)
            )
        ).one()
        answered, average, pending, failed = row

        return ResultStats(
            total_questions=total or 0,
            answered=answered or 0,
            average_score=float(average) if average is not None else None,
            pending_evaluations=pending or 0,
            failed_evaluations=failed or 0,
        )

    async def list_user_sessions(
        self, user_id: int
    ) -> List[Tuple[AssessmentSession, Optional[str]]]:
        """All sessions of a user with their domain name, newest first."""
        result = await self.db.execute(
            select(AssessmentSession, Domain.name)
            .outerjoin(Domain, AssessmentSession.domain_id == Domain.id)
            .where(AssessmentSession.user_id == user_id)
            .order_by(AssessmentSession.started_at.desc(), AssessmentSession.id.desc())
        )
        return [(session, domain_name) for session, domain_name in result.all()]
