"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Competency Assessment API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Identity
    # The upstream identity layer resolves the caller and forwards an opaque
    # user id in this header.
    USER_ID_HEADER: str = "X-User-ID"

    # Question Selection
    OVERVIEW_QUESTION_COUNT: int = Field(
        default=40,
        ge=1,
        description="Default number of universal questions in an OVERVIEW session",
    )

    # Scoring: OVERVIEW
    OVERVIEW_MIN_QUESTIONS_PER_COMPETENCY: int = 3
    OVERVIEW_LOW_EVIDENCE_WEIGHT_FACTOR: float = Field(default=0.5, gt=0.0, le=1.0)
    OVERVIEW_STRENGTH_THRESHOLD: float = 75.0
    OVERVIEW_DEVELOPMENT_THRESHOLD: float = 40.0
    OVERVIEW_CRITICAL_GAP_THRESHOLD: float = 30.0
    OVERVIEW_PROFILE_BAND_WIDTH: float = 10.0

    # Scoring: JOB_FIT
    JOB_FIT_BASE_THRESHOLD: float = Field(default=0.5, ge=0.0, le=1.0)
    JOB_FIT_STRICTNESS_MAX_ADJUSTMENT: float = Field(default=0.3, ge=0.0, le=1.0)
    JOB_FIT_DEFAULT_STRICTNESS: int = Field(default=50, ge=0, le=100)
    JOB_FIT_MIN_QUESTIONS_PER_COMPETENCY: int = 3

    # Scoring: TEAM_FIT
    TEAM_FIT_SATURATION_THRESHOLD: float = Field(default=0.75, ge=0.0, le=1.0)
    TEAM_FIT_DIVERSITY_THRESHOLD: float = Field(default=0.5, ge=0.0, le=1.0)
    TEAM_FIT_DIVERSITY_BONUS_THRESHOLD: float = 0.4
    TEAM_FIT_SATURATION_PENALTY_THRESHOLD: float = 0.8
    TEAM_FIT_DIVERSITY_BONUS: float = 1.1
    TEAM_FIT_SATURATION_PENALTY: float = 0.9
    TEAM_FIT_PASS_THRESHOLD: float = Field(default=0.6, ge=0.0, le=1.0)
    TEAM_FIT_MIN_DIVERSITY_RATIO: float = Field(default=0.3, ge=0.0, le=1.0)

    # Sentry Error Tracking
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking (leave empty to disable)",
    )
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry traces sample rate (0.0-1.0, 0.1 = 10% of transactions)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_job_fit_thresholds(self) -> Self:
        """A fully strict job-fit template must still have a reachable threshold."""
        ceiling = self.JOB_FIT_BASE_THRESHOLD + self.JOB_FIT_STRICTNESS_MAX_ADJUSTMENT
        if ceiling > 1.0:
            raise ValueError(
                "JOB_FIT_BASE_THRESHOLD + JOB_FIT_STRICTNESS_MAX_ADJUSTMENT must not "
                f"exceed 1.0, got {ceiling}"
            )
        return self

    @model_validator(mode="after")
    def validate_team_fit_thresholds(self) -> Self:
        """Saturation must sit above diversity for contributor bucketing to work."""
        if self.TEAM_FIT_SATURATION_THRESHOLD < self.TEAM_FIT_DIVERSITY_THRESHOLD:
            raise ValueError(
                "TEAM_FIT_SATURATION_THRESHOLD must be >= TEAM_FIT_DIVERSITY_THRESHOLD, "
                f"got {self.TEAM_FIT_SATURATION_THRESHOLD} < "
                f"{self.TEAM_FIT_DIVERSITY_THRESHOLD}"
            )
        return self


settings = Settings()
