"""Startup validation to keep deployments predictable."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Sequence

logger = logging.getLogger(__name__)

ENV_SETS: dict[str, tuple[str, ...]] = {
    "all": ("GOOGLE_MAPS_API_KEY", "SENDGRID_API_KEY", "SENDGRID_FROM_EMAIL"),
    "traffic": ("GOOGLE_MAPS_API_KEY",),
    "email": ("SENDGRID_API_KEY", "SENDGRID_FROM_EMAIL"),
    "ai": ("OPENAI_API_KEY",),
}


@dataclass(frozen=True)
class EnvCheckResult:
    """Presence of each required variable."""

    checks: dict[str, bool] = field(default_factory=dict)
    missing: tuple[str, ...] = ()

    @property
    def all_set(self) -> bool:
        return not self.missing


def check_environment(names: Sequence[str]) -> EnvCheckResult:
    """Report which of ``names`` are set to a non-blank value."""
    checks: dict[str, bool] = {}
    missing: list[str] = []
    for name in names:
        value = os.getenv(name)
        is_set = value is not None and bool(value.strip())
        checks[name] = is_set
        if not is_set:
            missing.append(name)
    return EnvCheckResult(checks=checks, missing=tuple(missing))


def run_startup_checks(group: str = "all") -> EnvCheckResult:
    """Fail fast when a required integration is not configured."""
    if os.getenv("SKIP_STARTUP_CHECKS") == "1":
        logger.warning("Startup checks skipped via SKIP_STARTUP_CHECKS=1")
        return EnvCheckResult()
    try:
        names = ENV_SETS[group]
    except KeyError as exc:
        raise ValueError(f"unknown environment group {group!r}") from exc

    result = check_environment(names)
    for name, is_set in result.checks.items():
        logger.info("environment %s: %s", name, "set" if is_set else "not set")
    if not result.all_set:
        raise RuntimeError(
            f"Missing required environment variables for {group}: {', '.join(result.missing)}"
        )
    return result
