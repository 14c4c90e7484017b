"""
Services package for external integrations.
"""

from .evaluation_service import (
    EvaluationClient,
    EvaluationResult,
    EvaluationServiceError,
    get_evaluation_client,
)

__all__ = [
    "EvaluationClient",
    "EvaluationResult",
    "EvaluationServiceError",
    "get_evaluation_client",
]
