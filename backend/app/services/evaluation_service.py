"""
HTTP client for the external evaluation service.

The service scores free-text answers:

    POST {EVALUATION_SERVICE_URL}/evaluate
    {"question": ..., "answer": ..., "testType": ..., "difficulty": ...}
    -> {"score": <number>, "feedback": <string | null>}

Every failure mode (network error, timeout, non-2xx status, malformed body)
is raised as :class:`EvaluationServiceError` so callers only need to handle
one exception type.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

EVALUATE_PATH = "/evaluate"


class EvaluationServiceError(Exception):
    """The evaluation service could not produce a score."""

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


@dataclass(frozen=True)
class EvaluationResult:
    """Score and feedback returned by the evaluation service."""

    score: float
    feedback: Optional[str]


class EvaluationClient:
    """Async client for the evaluation service.

    Attributes:
        base_url: Service base URL without trailing slash
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Service base URL (e.g., "http://evaluator:8001")
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, used by tests to stub the service
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def evaluate(self, payload: Dict[str, Any]) -> EvaluationResult:
        """Send one answer for scoring.

        Raises:
            EvaluationServiceError: On any transport, status or payload problem
        """
        url = f"{self.base_url}{EVALUATE_PATH}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload)
        except httpx.TimeoutException as exc:
            raise EvaluationServiceError(
                f"Timed out contacting evaluation service after {self.timeout}s"
            ) from exc
        except httpx.RequestError as exc:
            raise EvaluationServiceError(
                f"Network error contacting evaluation service: {exc}"
            ) from exc

        if not response.is_success:
            body = response.text.strip()
            raise EvaluationServiceError(
                f"Evaluation service error {response.status_code}: {body}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise EvaluationServiceError(
                "Invalid JSON received from evaluation service."
            ) from exc

        return self._parse_result(data)

    @staticmethod
    def _parse_result(data: Any) -> EvaluationResult:
        if not isinstance(data, dict):
            raise EvaluationServiceError("Evaluation response is not a JSON object.")

        score = data.get("score")
        # bool is an int subclass but never a valid score
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise EvaluationServiceError(
                f"Evaluation response has no numeric score: {score!r}"
            )

        feedback = data.get("feedback")
        if feedback is not None and not isinstance(feedback, str):
            feedback = str(feedback)

        return EvaluationResult(score=float(score), feedback=feedback)


def get_evaluation_client() -> EvaluationClient:
    """FastAPI dependency building a client from settings."""
    return EvaluationClient(
        base_url=settings.EVALUATION_SERVICE_URL,
        timeout=settings.EVALUATION_TIMEOUT_SECONDS,
    )
