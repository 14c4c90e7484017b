"""
Deferred scoring of descriptive answers.

A descriptive answer is stored as PENDING when it is submitted. Once the
submission has committed, the engine hands an :class:`EvaluationRequest` to
a dispatcher, which runs :func:`evaluate_response` after the HTTP response
has been sent. That task makes a single call to the evaluation service and
writes the outcome onto the Response row:

- success: score, feedback, status COMPLETED
- EvaluationServiceError: status FAILED, score and feedback stay null

A response that is already COMPLETED is left untouched, so a late or
overlapping attempt never replaces a stored score.

Nothing waits on the task and nothing retries it inline. Responses left
FAILED, or PENDING for too long, are picked up by
:func:`reconcile_evaluations` (run from ``scripts/reconcile_evaluations.py``).
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Protocol

from fastapi import BackgroundTasks
from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.background_tasks import safe_background_task
from app.core.datetime_utils import utc_now
from app.core.exceptions import DatabaseOperationError
from app.models.models import (
    AssessmentSession,
    EvaluationStatus,
    Question,
    QuestionFormat,
    Response,
)
from app.services.evaluation_service import EvaluationClient, EvaluationServiceError

logger = logging.getLogger(__name__)

DEFAULT_RECONCILE_BATCH_SIZE = 100


@dataclass(frozen=True)
class EvaluationRequest:
    """Everything needed to score one stored response."""

    response_id: int
    session_id: int
    question_text: str
    answer: str
    test_type: str
    difficulty: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "question": self.question_text,
            "answer": self.answer,
            "testType": self.test_type,
            "difficulty": self.difficulty,
        }


class EvaluationDispatcher(Protocol):
    """Hands evaluation requests off to run outside the request cycle."""

    def dispatch(self, request: EvaluationRequest) -> None:
        ...


async def evaluate_response(
    request: EvaluationRequest,
    session_factory: async_sessionmaker[AsyncSession],
    client: EvaluationClient,
) -> EvaluationStatus:
    """
    Score one response through the evaluation service and store the outcome.

    Uses its own database session since it runs after the request session
    has closed.

    Returns:
        The evaluation status stored on the response after this attempt.
    """
    log_extra = {"response_id": request.response_id, "session_id": request.session_id}

    try:
        result = await client.evaluate(request.to_payload())
    except EvaluationServiceError as exc:
        logger.warning(
            f"Evaluation failed for response {request.response_id}: {exc.detail}",
            extra={**log_extra, "evaluation_status": EvaluationStatus.FAILED.value},
        )
        status = EvaluationStatus.FAILED
        values: Dict[str, Any] = {"evaluation_status": status}
    else:
        status = EvaluationStatus.COMPLETED
        values = {
            "score": result.score,
            "feedback": result.feedback,
            "evaluation_status": status,
            "evaluated_at": utc_now(),
        }

    # A COMPLETED evaluation is final; later attempts must not overwrite it
    async with session_factory() as db:
        written = await db.execute(
            update(Response)
            .where(
                Response.id == request.response_id,
                Response.evaluation_status != EvaluationStatus.COMPLETED,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    if written.rowcount == 0:
        logger.info(
            f"Response {request.response_id} already evaluated, keeping stored score",
            extra={**log_extra, "evaluation_status": EvaluationStatus.COMPLETED.value},
        )
        return EvaluationStatus.COMPLETED

    if status == EvaluationStatus.COMPLETED:
        logger.info(
            f"Evaluation stored for response {request.response_id}",
            extra={**log_extra, "evaluation_status": status.value},
        )
    return status


class BackgroundTaskDispatcher:
    """Runs evaluations as FastAPI background tasks after the response is sent."""

    def __init__(
        self,
        background_tasks: BackgroundTasks,
        session_factory: async_sessionmaker[AsyncSession],
        client: EvaluationClient,
    ):
        self.background_tasks = background_tasks
        self.session_factory = session_factory
        self.client = client

    def dispatch(self, request: EvaluationRequest) -> None:
        self.background_tasks.add_task(
            safe_background_task,
            evaluate_response,
            request,
            self.session_factory,
            self.client,
        )


@dataclass
class ReconciliationSummary:
    """Counts from one reconciliation pass."""

    examined: int = 0
    completed: int = 0
    failed: int = 0


async def find_evaluations_to_retry(
    db: AsyncSession,
    stale_after: timedelta,
    limit: int = DEFAULT_RECONCILE_BATCH_SIZE,
) -> List[EvaluationRequest]:
    """
    Load descriptive responses that need another evaluation attempt.

    Picks FAILED responses and PENDING responses created more than
    ``stale_after`` ago, oldest first.
    """
    stale_before = utc_now() - stale_after
    result = await db.execute(
        select(Response, Question, AssessmentSession)
        .join(Question, Response.question_id == Question.id)
        .join(AssessmentSession, Response.session_id == AssessmentSession.id)
        .where(
            Question.question_format == QuestionFormat.DESCRIPTIVE,
            or_(
                Response.evaluation_status == EvaluationStatus.FAILED,
                and_(
                    Response.evaluation_status == EvaluationStatus.PENDING,
                    Response.created_at < stale_before,
                ),
            ),
        )
        .order_by(Response.created_at, Response.id)
        .limit(limit)
    )
    return [
        EvaluationRequest(
            response_id=response.id,
            session_id=session.id,
            question_text=question.question_text,
            answer=response.answer_text,
            test_type=session.test_type.value,
            difficulty=session.difficulty.value,
        )
        for response, question, session in result.all()
    ]


async def reconcile_evaluations(
    session_factory: async_sessionmaker[AsyncSession],
    client: EvaluationClient,
    stale_after: timedelta,
    limit: int = DEFAULT_RECONCILE_BATCH_SIZE,
) -> ReconciliationSummary:
    """
    Re-run evaluation for FAILED and stale PENDING responses.

    Each response gets one attempt per pass, sequentially.

    Raises:
        DatabaseOperationError: If loading or storing evaluations fails
    """
    try:
        async with session_factory() as db:
            requests = await find_evaluations_to_retry(db, stale_after, limit)
    except SQLAlchemyError as exc:
        raise DatabaseOperationError("load evaluations to reconcile", exc) from exc

    summary = ReconciliationSummary()
    for request in requests:
        try:
            status = await evaluate_response(request, session_factory, client)
        except SQLAlchemyError as exc:
            raise DatabaseOperationError(
                f"store evaluation for response {request.response_id}", exc
            ) from exc

        summary.examined += 1
        if status == EvaluationStatus.COMPLETED:
            summary.completed += 1
        else:
            summary.failed += 1

    logger.info(
        f"Reconciled {summary.examined} evaluations: "
        f"{summary.completed} completed, {summary.failed} failed"
    )
    return summary
