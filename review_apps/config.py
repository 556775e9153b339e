"""
Application configuration management.
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from action inputs and runner environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Credentials and target pipeline (action inputs arrive as INPUT_*)
    github_token: str = Field(
        validation_alias=AliasChoices("INPUT_GITHUB_TOKEN", "GITHUB_TOKEN", "github_token")
    )
    heroku_api_token: str = Field(
        validation_alias=AliasChoices("INPUT_HEROKU_API_TOKEN", "HEROKU_API_TOKEN", "heroku_api_token")
    )
    heroku_pipeline_id: str = Field(
        validation_alias=AliasChoices("INPUT_HEROKU_PIPELINE_ID", "HEROKU_PIPELINE_ID", "heroku_pipeline_id")
    )

    # Remote APIs
    heroku_api_url: str = "https://api.heroku.com"
    github_api_url: str = "https://api.github.com"
    http_timeout_seconds: float = 30.0

    # Runner context
    github_event_name: Optional[str] = None
    github_event_path: Optional[str] = None
    github_repository: Optional[str] = None
    github_output: Optional[str] = None

    # Polling
    poll_interval_seconds: float = 5.0
    max_poll_attempts: Optional[int] = None  # None polls until the runner times out

    # Server mode
    webhook_secret: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "actions"

    @field_validator("github_token", "heroku_api_token", "heroku_pipeline_id")
    @classmethod
    def _require_value(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("actions", "json"):
            raise ValueError("log_format must be 'actions' or 'json'")
        return value

    @field_validator("max_poll_attempts")
    @classmethod
    def _check_max_poll_attempts(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError("max_poll_attempts must be positive")
        return value


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings instance, loading it on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
