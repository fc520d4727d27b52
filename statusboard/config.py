"""Configuration loading for the Statusboard dashboard.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings, including per-service credentials
"""

from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_csv(value: object) -> object:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Aggregation
    per_view_timeout_seconds: float = Field(
        default=10.0,
        description="Seconds each view may take before it is recorded as timed out",
    )
    view_timeouts: dict[str, float] = Field(
        default_factory=dict,
        description='Per-view timeout overrides as JSON, e.g. {"slack_unread": 5}',
    )
    disabled_views: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Comma-separated views excluded from the default selection",
    )
    cache_ttl_seconds: float = Field(
        default=0.0,
        description="Reuse successful view payloads for this long (0 disables)",
    )

    # Refresh cadence
    refresh_interval_seconds: float = Field(
        default=60.0,
        description="Interval between refreshes in watch mode",
    )

    # Output
    output_format: Literal["text", "json"] = Field(
        default="text",
        description="Snapshot output format",
    )

    # Jira
    jira_base_url: str = Field(
        default="",
        description="Jira Cloud site URL, e.g. https://example.atlassian.net",
    )
    jira_email: str = Field(default="", description="Jira account email")
    jira_api_token: str = Field(default="", description="Jira API token")
    jira_jql: str = Field(
        default="assignee = currentUser() AND statusCategory != Done ORDER BY updated DESC",
        description="JQL used for the jira view",
    )

    # GitHub
    github_token: str = Field(default="", description="GitHub personal access token")
    github_api_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL",
    )
    github_repos: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Comma-separated owner/repo list for the gh_runs view",
    )

    # Slack
    slack_token: str = Field(default="", description="Slack user token (xoxp-...)")
    slack_api_url: str = Field(
        default="https://slack.com/api",
        description="Slack Web API base URL",
    )

    # PagerDuty
    pagerduty_api_token: str = Field(default="", description="PagerDuty REST API token")
    pagerduty_api_url: str = Field(
        default="https://api.pagerduty.com",
        description="PagerDuty REST API base URL",
    )

    # Sentry
    sentry_token: str = Field(default="", description="Sentry auth token")
    sentry_org: str = Field(default="", description="Sentry organization slug")
    sentry_api_url: str = Field(
        default="https://sentry.io",
        description="Sentry base URL",
    )

    # New Relic
    newrelic_api_key: str = Field(default="", description="New Relic user API key")
    newrelic_account_id: str = Field(default="", description="New Relic account id")
    newrelic_api_url: str = Field(
        default="https://api.newrelic.com",
        description="New Relic NerdGraph base URL",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    @field_validator("disabled_views", "github_repos", mode="before")
    @classmethod
    def split_comma_lists(cls, v: object) -> object:
        """Accept comma-separated strings for list settings."""
        return _split_csv(v)

    @field_validator("per_view_timeout_seconds")
    @classmethod
    def validate_per_view_timeout(cls, v: float) -> float:
        """Ensure per-view timeout is positive."""
        if v <= 0:
            raise ValueError("per_view_timeout_seconds must be positive")
        return v

    @field_validator("view_timeouts")
    @classmethod
    def validate_view_timeouts(cls, v: dict[str, float]) -> dict[str, float]:
        """Ensure every per-view override is positive."""
        for view, timeout in v.items():
            if timeout <= 0:
                raise ValueError(f"timeout for view {view} must be positive")
        return v

    @field_validator("refresh_interval_seconds")
    @classmethod
    def validate_refresh_interval(cls, v: float) -> float:
        """Ensure refresh interval is positive."""
        if v <= 0:
            raise ValueError("refresh_interval_seconds must be positive")
        return v

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_cache_ttl(cls, v: float) -> float:
        """Ensure cache TTL is non-negative."""
        if v < 0:
            raise ValueError("cache_ttl_seconds must be non-negative")
        return v


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
