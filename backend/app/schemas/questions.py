"""
Pydantic schemas for questions served during a session.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List

from app.models.models import QuestionFormat


class QuestionOption(BaseModel):
    """One selectable option of a multiple-choice question."""

    id: str = Field(..., description="Option identifier to submit as the answer")
    text: str = Field(..., description="Option text")


class SessionQuestionResponse(BaseModel):
    """Question as shown to the test taker. Never includes the correct option."""

    id: int = Field(..., description="Question ID")
    text: str = Field(..., description="The question text")
    format: QuestionFormat = Field(..., description="Question format (MCQ, DESCRIPTIVE, ...)")
    options: Optional[List[QuestionOption]] = Field(
        None, description="Options sorted by identifier (MCQ only)"
    )

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: int) -> int:
        """Validate that ID is a positive integer."""
        if v <= 0:
            raise ValueError("Question ID must be a positive integer")
        return v


class NextQuestionResponse(BaseModel):
    """Question reference returned after an answer is recorded."""

    id: int = Field(..., description="Question ID")
    text: str = Field(..., description="The question text")
