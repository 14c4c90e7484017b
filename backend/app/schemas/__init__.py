"""
Pydantic schemas for request/response validation.
"""
from .questions import (
    QuestionOption,
    SessionQuestionResponse,
    NextQuestionResponse,
)
from .sessions import (
    StartSessionRequest,
    StartSessionResponse,
    SessionCompletedResponse,
    CurrentQuestionResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    SessionResultResponse,
    UserSessionSummary,
)

__all__ = [
    "QuestionOption",
    "SessionQuestionResponse",
    "NextQuestionResponse",
    "StartSessionRequest",
    "StartSessionResponse",
    "SessionCompletedResponse",
    "CurrentQuestionResponse",
    "SubmitAnswerRequest",
    "SubmitAnswerResponse",
    "SessionResultResponse",
    "UserSessionSummary",
]
