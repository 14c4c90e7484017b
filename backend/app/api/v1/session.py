"""
Assessment session endpoints.

Thin HTTP layer over SessionProgressionEngine: requests are validated by the
schemas in app.schemas.sessions, engine results are mapped onto response
schemas, and SessionError subclasses raised by the engine are turned into
``{"error": ...}`` responses by the handlers in app.main.
"""
from dataclasses import asdict
from typing import List, Union

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.evaluation_dispatch import BackgroundTaskDispatcher
from app.core.session_engine import SessionProgressionEngine
from app.core.session_repository import SessionRepository
from app.models import get_db, get_session_factory
from app.schemas.questions import (
    NextQuestionResponse,
    QuestionOption,
    SessionQuestionResponse,
)
from app.schemas.sessions import (
    CurrentQuestionResponse,
    SessionCompletedResponse,
    SessionResultResponse,
    StartSessionRequest,
    StartSessionResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    UserSessionSummary,
)
from app.services.evaluation_service import EvaluationClient, get_evaluation_client

router = APIRouter()


def get_session_engine(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    client: EvaluationClient = Depends(get_evaluation_client),
) -> SessionProgressionEngine:
    """Build an engine bound to the request's database session."""
    return SessionProgressionEngine(
        repository=SessionRepository(db),
        dispatcher=BackgroundTaskDispatcher(background_tasks, session_factory, client),
    )


@router.post(
    "/start",
    response_model=StartSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_session(
    payload: StartSessionRequest,
    engine: SessionProgressionEngine = Depends(get_session_engine),
):
    """
    Start a new session with a randomly sampled, fixed question order.

    APTITUDE and CODING sessions sample by test type and difficulty; all
    other test types also filter by domain.

    Raises:
        NotFoundError: Owner or domain does not exist (404)
        NoQuestionsAvailableError: Nothing matches the configuration (400)
    """
    session_id = await engine.start_session(
        owner_id=payload.owner_id,
        domain_id=payload.domain_id,
        test_type=payload.test_type,
        difficulty=payload.difficulty,
    )
    return StartSessionResponse(session_id=session_id)


@router.get(
    "/{session_id}/question",
    response_model=Union[CurrentQuestionResponse, SessionCompletedResponse],
)
async def get_current_question(
    session_id: int,
    engine: SessionProgressionEngine = Depends(get_session_engine),
):
    """
    Get the question at the session's current position.

    Returns a completion message instead once every question is answered.
    """
    current = await engine.get_current_question(session_id)
    if current.completed or current.question is None:
        return SessionCompletedResponse()

    question = current.question
    return CurrentQuestionResponse(
        session_id=current.session_id,
        question_index=current.question_index,
        question=SessionQuestionResponse(
            id=question.id,
            text=question.text,
            format=question.format,
            options=(
                [QuestionOption(**option) for option in question.options]
                if question.options is not None
                else None
            ),
        ),
    )


@router.post(
    "/answer",
    response_model=Union[SubmitAnswerResponse, SessionCompletedResponse],
)
async def submit_answer(
    payload: SubmitAnswerRequest,
    engine: SessionProgressionEngine = Depends(get_session_engine),
):
    """
    Record the answer to the current question and move to the next one.

    Multiple-choice answers are scored immediately. Descriptive answers are
    stored as PENDING and scored by the evaluation service after this
    response is sent.

    Raises:
        NotFoundError: Session does not exist (404)
        InvalidStateError: Session is not active (400)
        OutOfOrderError: Question is not the current one (400)
    """
    result = await engine.submit_answer(
        session_id=payload.session_id,
        question_id=payload.question_id,
        answer=payload.answer,
    )
    if result.completed:
        return SessionCompletedResponse()

    return SubmitAnswerResponse(
        next_question_index=result.next_question_index,
        next_question=NextQuestionResponse(
            id=result.next_question_id, text=result.next_question_text
        ),
    )


@router.get("/{session_id}/result", response_model=SessionResultResponse)
async def get_session_result(
    session_id: int,
    engine: SessionProgressionEngine = Depends(get_session_engine),
):
    """
    Get a point-in-time score summary of a session.

    The average only covers scored answers and may change while descriptive
    answers are still being evaluated.
    """
    result = await engine.get_session_result(session_id)
    return SessionResultResponse.model_validate(asdict(result))


@router.get("/user/{owner_id}/sessions", response_model=List[UserSessionSummary])
async def get_user_sessions(
    owner_id: int,
    engine: SessionProgressionEngine = Depends(get_session_engine),
):
    """List a user's sessions, most recently started first."""
    sessions = await engine.get_user_sessions(owner_id)
    return [UserSessionSummary.model_validate(asdict(summary)) for summary in sessions]
