"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Assessment Session API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_PREFIX: str = "/api"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Session composition
    SESSION_QUESTION_COUNT: int = Field(
        default=10,
        ge=1,
        description="Maximum number of questions sampled into a new session",
    )
    # Stored on each session and reported in results; never enforced server-side
    SESSION_TIME_LIMIT_SECONDS: int = Field(
        default=1800,
        gt=0,
        description="Time limit recorded on new sessions, in seconds",
    )

    # Evaluation service (scores descriptive answers)
    EVALUATION_SERVICE_URL: str = Field(
        default="http://localhost:8001",
        description="Base URL of the evaluation service; /evaluate is appended",
    )
    EVALUATION_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single evaluation request",
    )
    EVALUATION_STALE_PENDING_MINUTES: int = Field(
        default=15,
        ge=1,
        description="Age after which a PENDING evaluation is picked up by reconciliation",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_evaluation_url(self) -> Self:
        """Reject evaluation URLs without an http(s) scheme."""
        if not self.EVALUATION_SERVICE_URL.startswith(("http://", "https://")):
            raise ValueError(
                "EVALUATION_SERVICE_URL must start with http:// or https://, "
                f"got {self.EVALUATION_SERVICE_URL!r}"
            )
        self.EVALUATION_SERVICE_URL = self.EVALUATION_SERVICE_URL.rstrip("/")
        return self


settings = Settings()
