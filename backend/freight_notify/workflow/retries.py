"""Retry policy configuration for workflow steps."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from ..errors import ErrorCategory, category_of
from ..settings import RetrySettings

STEP_CHECK_TRAFFIC = "check_traffic"
STEP_GENERATE_MESSAGE = "generate_message"
STEP_SEND_NOTIFICATION = "send_notification"

DEFAULT_NON_RETRYABLE: frozenset[str] = frozenset({ErrorCategory.MISSING_CONFIGURATION.value})


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff with a deny-list of error categories.

    Attempt numbers are 1-based. ``max_attempts=1`` means a single try.
    """

    initial_delay_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    max_attempts: int = 3
    max_delay_seconds: float = 10.0
    non_retryable_categories: frozenset[str] = field(default=DEFAULT_NON_RETRYABLE)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.initial_delay_seconds < 0 or self.max_delay_seconds < 0:
            raise ValueError("retry delays must be non-negative")
        if self.backoff_multiplier < 1:
            raise ValueError(f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}")
        tags = frozenset(
            tag.value if isinstance(tag, ErrorCategory) else str(tag)
            for tag in self.non_retryable_categories
        )
        object.__setattr__(self, "non_retryable_categories", tags)

    def next_delay(self, attempt_number: int) -> float:
        """Seconds to wait after a failed ``attempt_number`` before the next one."""
        if attempt_number < 1:
            raise ValueError(f"attempt_number is 1-based, got {attempt_number}")
        exponent = attempt_number - 1
        if self.initial_delay_seconds >= self.max_delay_seconds:
            return self.max_delay_seconds
        if self.initial_delay_seconds == 0 or self.backoff_multiplier == 1:
            return self.initial_delay_seconds
        # Past this exponent the cap applies; skip the power so it cannot overflow.
        if exponent >= math.log(self.max_delay_seconds / self.initial_delay_seconds, self.backoff_multiplier):
            return self.max_delay_seconds
        delay = self.initial_delay_seconds * (self.backoff_multiplier ** exponent)
        return min(delay, self.max_delay_seconds)

    def is_retryable(self, error: BaseException) -> bool:
        return category_of(error) not in self.non_retryable_categories

    def should_retry(self, attempt_number: int, error: BaseException) -> bool:
        """Return True if another attempt is allowed after ``attempt_number`` failed."""
        if attempt_number >= self.max_attempts:
            return False
        return self.is_retryable(error)

    def total_backoff_seconds(self) -> float:
        """Suspension time spent if every attempt fails with a retryable error."""
        return sum(self.next_delay(n) for n in range(1, self.max_attempts))

    @classmethod
    def single_attempt(cls) -> "RetryPolicy":
        return cls(max_attempts=1, initial_delay_seconds=0.0, max_delay_seconds=0.0)

    @classmethod
    def from_settings(
        cls,
        settings: RetrySettings,
        *,
        non_retryable_categories: frozenset[str] = DEFAULT_NON_RETRYABLE,
    ) -> "RetryPolicy":
        return cls(
            initial_delay_seconds=settings.initial_interval_seconds,
            backoff_multiplier=settings.backoff_coefficient,
            max_attempts=settings.max_attempts,
            max_delay_seconds=settings.max_interval_seconds,
            non_retryable_categories=non_retryable_categories,
        )


STEP_RETRY_RULES: dict[str, RetryPolicy] = {
    STEP_CHECK_TRAFFIC: RetryPolicy.single_attempt(),
    STEP_GENERATE_MESSAGE: RetryPolicy.single_attempt(),
    STEP_SEND_NOTIFICATION: RetryPolicy(),
}


def policy_for_step(step: str) -> RetryPolicy:
    """Return the default retry policy for the given workflow step."""
    return STEP_RETRY_RULES.get(step, RetryPolicy.single_attempt())
