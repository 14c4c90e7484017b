"""
Standardized user-facing error messages.

Every message returned to a client is defined here so wording stays
consistent across endpoints and never leaks implementation details.

Guidelines:
- Sentence case, ending with a period
- IDs in parentheses when they help the client: "(ID: 123)"
- "Please try again later." for transient server errors

Usage:
    from app.core.error_responses import ErrorMessages
    from app.core.exceptions import NotFoundError

    raise NotFoundError(ErrorMessages.SESSION_NOT_FOUND)
"""


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    SESSION_NOT_FOUND = "Session not found."
    USER_NOT_FOUND = "User not found."
    DOMAIN_NOT_FOUND = "Domain not found."

    # ==========================================================================
    # Client Errors (400)
    # ==========================================================================
    SESSION_NOT_ACTIVE = "Session not active."
    INVALID_QUESTION_ORDER = "Invalid question order."
    DUPLICATE_SUBMISSION = "An answer for this question was already recorded."
    NO_QUESTIONS_AVAILABLE = "No questions found for this configuration."
    DOMAIN_REQUIRED = "A domain is required for this test type."

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    INTERNAL_SERVER_ERROR = "Internal server error."
    DATABASE_ERROR = "A database error occurred. Please try again later."

    # ==========================================================================
    # Message Templates
    # ==========================================================================
    @staticmethod
    def question_not_current(expected_question_id: int) -> str:
        """Order mismatch naming the question the session is waiting for."""
        return f"Invalid question order. Expected question ID: {expected_question_id}."
