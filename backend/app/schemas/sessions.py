"""
Pydantic schemas for assessment session endpoints.

Wire format uses camelCase keys; fields are declared in snake_case with
explicit aliases and accept either spelling on input.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, Literal, Optional
from datetime import datetime

from app.models.models import Difficulty, SessionStatus, TestType
from app.schemas.questions import NextQuestionResponse, SessionQuestionResponse

SESSION_STARTED_MESSAGE = "Session started"
SESSION_COMPLETED_MESSAGE = "Session completed"
ANSWER_RECORDED_MESSAGE = "Answer recorded"

MAX_ANSWER_LENGTH = 20000


class StartSessionRequest(BaseModel):
    """Schema for starting a new session."""

    owner_id: int = Field(..., alias="ownerId", gt=0, description="Owning user ID")
    domain_id: Optional[int] = Field(
        None,
        alias="domainId",
        gt=0,
        description="Domain ID (ignored when sampling APTITUDE and CODING questions)",
    )
    test_type: TestType = Field(..., alias="testType", description="Test type")
    difficulty: Difficulty = Field(..., description="Difficulty level")

    @field_validator("test_type", "difficulty", mode="before")
    @classmethod
    def normalize_enum_case(cls, value: Any) -> Any:
        """Accept enum values case-insensitively ("aptitude" -> "APTITUDE")."""
        if isinstance(value, str):
            return value.strip().upper()
        return value

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class StartSessionResponse(BaseModel):
    """Schema returned when a session is created."""

    message: str = Field(SESSION_STARTED_MESSAGE, description="Status message")
    session_id: int = Field(..., alias="sessionId", description="New session ID")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class SessionCompletedResponse(BaseModel):
    """Returned instead of a question once every question has been answered."""

    message: Literal["Session completed"] = Field(
        SESSION_COMPLETED_MESSAGE, description="Completion marker"
    )


class CurrentQuestionResponse(BaseModel):
    """Schema for the question at a session's current index."""

    session_id: int = Field(..., alias="sessionId", description="Session ID")
    question_index: int = Field(
        ..., alias="questionIndex", ge=0, description="Zero-based position in the session"
    )
    question: SessionQuestionResponse = Field(..., description="Current question")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class SubmitAnswerRequest(BaseModel):
    """Schema for submitting an answer to the current question."""

    session_id: int = Field(..., alias="sessionId", gt=0, description="Session ID")
    question_id: int = Field(
        ..., alias="questionId", gt=0, description="ID of the question being answered"
    )
    answer: str = Field(
        ...,
        max_length=MAX_ANSWER_LENGTH,
        description="Option identifier for MCQ, free text otherwise",
    )

    @field_validator("answer", mode="before")
    @classmethod
    def coerce_answer(cls, value: Any) -> Any:
        """Numbers are accepted as answers and stored as text."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class SubmitAnswerResponse(BaseModel):
    """Schema returned after an answer is recorded and more questions remain."""

    message: Literal["Answer recorded"] = Field(
        ANSWER_RECORDED_MESSAGE, description="Status message"
    )
    next_question_index: int = Field(
        ..., alias="nextQuestionIndex", description="Index of the next question"
    )
    next_question: NextQuestionResponse = Field(
        ..., alias="nextQuestion", description="Next question"
    )

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class SessionResultResponse(BaseModel):
    """Point-in-time score summary for a session."""

    session_id: int = Field(..., alias="sessionId", description="Session ID")
    status: SessionStatus = Field(..., description="Session status")
    test_type: TestType = Field(..., alias="testType", description="Test type")
    difficulty: Difficulty = Field(..., description="Difficulty level")
    total_questions: int = Field(
        ..., alias="totalQuestions", description="Number of questions in the session"
    )
    answered: int = Field(..., description="Number of recorded answers")
    average_score: Optional[float] = Field(
        None,
        alias="averageScore",
        description="Mean of scored answers; null until at least one answer is scored",
    )
    pending_evaluations: int = Field(
        0, alias="pendingEvaluations", description="Answers still awaiting evaluation"
    )
    failed_evaluations: int = Field(
        0, alias="failedEvaluations", description="Answers whose evaluation failed"
    )
    started_at: datetime = Field(..., alias="startedAt", description="Start timestamp")
    ended_at: Optional[datetime] = Field(
        None, alias="endedAt", description="Completion timestamp"
    )
    time_limit_seconds: int = Field(
        ..., alias="timeLimitSeconds", description="Recorded time limit"
    )
    elapsed_seconds: float = Field(
        ..., alias="elapsedSeconds", description="Seconds from start to end (or now)"
    )
    time_limit_exceeded: bool = Field(
        False,
        alias="timeLimitExceeded",
        description="Whether elapsed time exceeds the limit (informational only)",
    )

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class UserSessionSummary(BaseModel):
    """One entry of a user's session history."""

    session_id: int = Field(..., alias="sessionId", description="Session ID")
    status: SessionStatus = Field(..., description="Session status")
    test_type: TestType = Field(..., alias="testType", description="Test type")
    difficulty: Difficulty = Field(..., description="Difficulty level")
    domain_name: Optional[str] = Field(
        None, alias="domainName", description="Domain name, if the session has one"
    )
    current_index: int = Field(
        0, alias="currentIndex", description="Number of answered questions"
    )
    started_at: datetime = Field(..., alias="startedAt", description="Start timestamp")
    ended_at: Optional[datetime] = Field(
        None, alias="endedAt", description="Completion timestamp"
    )

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

