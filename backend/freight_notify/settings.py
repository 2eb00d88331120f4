"""Application-wide settings read once from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip()
    return normalized or default


@dataclass(frozen=True)
class WorkflowSettings:
    """Threshold and per-step timeouts for the notification workflow."""

    delay_threshold_minutes: float = 30
    traffic_timeout_seconds: float = 120
    message_timeout_seconds: float = 30
    email_timeout_seconds: float = 30

    @classmethod
    def from_env(cls) -> "WorkflowSettings":
        return cls(
            delay_threshold_minutes=_env_float("DELAY_THRESHOLD_MINUTES", 30),
            traffic_timeout_seconds=max(1.0, _env_float("TRAFFIC_TIMEOUT_SECONDS", 120)),
            message_timeout_seconds=max(1.0, _env_float("MESSAGE_TIMEOUT_SECONDS", 30)),
            email_timeout_seconds=max(1.0, _env_float("EMAIL_TIMEOUT_SECONDS", 30)),
        )


@dataclass(frozen=True)
class RetrySettings:
    """Backoff parameters for the notification delivery step."""

    initial_interval_seconds: float = 1.0
    backoff_coefficient: float = 2.0
    max_attempts: int = 3
    max_interval_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "RetrySettings":
        return cls(
            initial_interval_seconds=max(0.0, _env_float("RETRY_INITIAL_INTERVAL_SECONDS", 1.0)),
            backoff_coefficient=max(1.0, _env_float("RETRY_BACKOFF_COEFFICIENT", 2.0)),
            max_attempts=max(1, _env_int("RETRY_MAX_ATTEMPTS", 3)),
            max_interval_seconds=max(0.0, _env_float("RETRY_MAX_INTERVAL_SECONDS", 10.0)),
        )


@dataclass(frozen=True)
class IntegrationSettings:
    """Credentials and endpoints for the external services."""

    google_maps_api_key: str | None = None
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    message_model: str = "gpt-4o-mini"
    sendgrid_api_key: str | None = None
    sendgrid_from_email: str | None = None

    @classmethod
    def from_env(cls) -> "IntegrationSettings":
        return cls(
            google_maps_api_key=_env_str("GOOGLE_MAPS_API_KEY"),
            openai_api_key=_env_str("OPENAI_API_KEY"),
            openai_base_url=_env_str("OPENAI_BASE_URL"),
            message_model=_env_str("MESSAGE_MODEL", "gpt-4o-mini") or "gpt-4o-mini",
            sendgrid_api_key=_env_str("SENDGRID_API_KEY"),
            sendgrid_from_email=_env_str("SENDGRID_FROM_EMAIL"),
        )


class Settings:
    """Container for application settings."""

    def __init__(
        self,
        *,
        workflow: WorkflowSettings | None = None,
        retry: RetrySettings | None = None,
        integrations: IntegrationSettings | None = None,
    ) -> None:
        self.workflow = workflow or WorkflowSettings()
        self.retry = retry or RetrySettings()
        self.integrations = integrations or IntegrationSettings()

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            workflow=WorkflowSettings.from_env(),
            retry=RetrySettings.from_env(),
            integrations=IntegrationSettings.from_env(),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Return a cached Settings instance built from the current environment."""

    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS


def reset_settings() -> None:
    """Drop the cached instance so the next call re-reads the environment."""

    global _SETTINGS
    _SETTINGS = None
