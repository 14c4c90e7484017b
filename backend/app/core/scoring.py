"""
Answer scoring policies.

Each question format maps to a policy that decides, at submission time, the
score and evaluation status written onto the new Response row:

- MCQ: scored immediately, 1.0 for the correct option identifier, else 0.0
- DESCRIPTIVE: left unscored and PENDING; the evaluation service fills in
  the score later (see app.core.evaluation_dispatch)
- Anything else: COMPLETED with no score, since no policy exists for it

Policies are looked up by format, so new formats only need a new entry in
``SCORING_POLICIES``.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from app.models.models import EvaluationStatus, Question, QuestionFormat

MCQ_CORRECT_SCORE = 1.0
MCQ_INCORRECT_SCORE = 0.0


@dataclass(frozen=True)
class ScoringOutcome:
    """Score and evaluation status assigned when an answer is recorded."""

    score: Optional[float]
    evaluation_status: EvaluationStatus

    @property
    def needs_evaluation(self) -> bool:
        return self.evaluation_status == EvaluationStatus.PENDING


class ScoringPolicy(Protocol):
    """Protocol for per-format scoring strategies."""

    def score(self, question: Question, answer: str) -> ScoringOutcome:
        ...


def normalize_option(value: Optional[str]) -> str:
    """Normalize an option identifier for comparison: " b " -> "B"."""
    return (value or "").strip().upper()


class MultipleChoiceScoring:
    """Binary scoring against the stored correct option identifier."""

    def score(self, question: Question, answer: str) -> ScoringOutcome:
        correct = normalize_option(question.correct_option)
        is_correct = bool(correct) and normalize_option(answer) == correct
        return ScoringOutcome(
            score=MCQ_CORRECT_SCORE if is_correct else MCQ_INCORRECT_SCORE,
            evaluation_status=EvaluationStatus.COMPLETED,
        )


class DeferredScoring:
    """Free-text answers are scored later by the evaluation service."""

    def score(self, question: Question, answer: str) -> ScoringOutcome:
        return ScoringOutcome(score=None, evaluation_status=EvaluationStatus.PENDING)


class UnscoredPolicy:
    """Accept the answer without a score."""

    def score(self, question: Question, answer: str) -> ScoringOutcome:
        return ScoringOutcome(score=None, evaluation_status=EvaluationStatus.COMPLETED)


SCORING_POLICIES: Dict[QuestionFormat, ScoringPolicy] = {
    QuestionFormat.MCQ: MultipleChoiceScoring(),
    QuestionFormat.DESCRIPTIVE: DeferredScoring(),
}

_DEFAULT_POLICY: ScoringPolicy = UnscoredPolicy()


def get_scoring_policy(question_format: QuestionFormat) -> ScoringPolicy:
    """Return the policy for a question format, falling back to unscored."""
    return SCORING_POLICIES.get(question_format, _DEFAULT_POLICY)


def score_answer(question: Question, answer: str) -> ScoringOutcome:
    """Score a submitted answer according to the question's format."""
    return get_scoring_policy(question.question_format).score(question, answer)
