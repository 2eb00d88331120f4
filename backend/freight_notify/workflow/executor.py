"""Runs one external operation under a retry policy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from ..errors import category_of
from ..events import EventBus, new_event
from .exceptions import StepTimeoutError
from .retries import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
SleepFunc = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class StepFailure:
    """Terminal failure of a step after the policy gave up."""

    error: BaseException
    attempts: int

    @property
    def category(self) -> str:
        return category_of(self.error)

    @property
    def message(self) -> str:
        return str(self.error) or self.error.__class__.__name__


@dataclass(frozen=True)
class StepSuccess(Generic[T]):
    value: T
    attempts: int


StepResult = Union[StepSuccess[T], StepFailure]


class StepExecutor:
    """Invokes an operation, retrying eligible failures with backoff.

    The executor never raises for operation failures; it hands back either
    the value or a StepFailure. Task cancellation is always propagated.
    """

    def __init__(
        self,
        bus: EventBus | None = None,
        *,
        sleep: SleepFunc | None = None,
    ):
        self.bus = bus
        self._sleep = sleep or asyncio.sleep

    async def execute(
        self,
        operation: Operation[T],
        policy: RetryPolicy,
        *,
        step: str = "step",
        run_id: str = "system",
        timeout_seconds: float | None = None,
    ) -> StepResult[T]:
        attempt = 1
        while True:
            await self._emit(run_id, "workflow.step.started", {"step": step, "attempt": attempt})
            try:
                value = await self._invoke(operation, step, timeout_seconds)
            except Exception as exc:
                if not policy.should_retry(attempt, exc):
                    logger.error(
                        "workflow step failed step=%s attempts=%s category=%s error=%s",
                        step,
                        attempt,
                        category_of(exc),
                        exc,
                        extra={"run_id": run_id},
                    )
                    await self._emit(
                        run_id,
                        "workflow.step.failed",
                        _error_payload(step, attempt, exc),
                    )
                    return StepFailure(error=exc, attempts=attempt)
                delay = policy.next_delay(attempt)
                logger.warning(
                    "workflow step retrying step=%s attempt=%s backoff=%s error=%s",
                    step,
                    attempt,
                    delay,
                    exc,
                    extra={"run_id": run_id},
                )
                payload = _error_payload(step, attempt, exc)
                payload["backoff_seconds"] = delay
                await self._emit(run_id, "workflow.retrying", payload)
                if delay:
                    await self._sleep(delay)
                attempt += 1
                continue

            await self._emit(
                run_id,
                "workflow.step.completed",
                {"step": step, "attempt": attempt},
            )
            return StepSuccess(value=value, attempts=attempt)

    @staticmethod
    async def _invoke(operation: Operation[T], step: str, timeout_seconds: float | None) -> T:
        if timeout_seconds is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout=timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise StepTimeoutError(step, timeout_seconds) from exc

    async def _emit(self, run_id: str, event_type: str, data: dict[str, Any]) -> None:
        if self.bus is None:
            return
        await self.bus.publish(new_event(event_type, run_id, data))


def _error_payload(step: str, attempt: int, exc: BaseException) -> dict[str, Any]:
    return {
        "step": step,
        "attempt": attempt,
        "error": exc.__class__.__name__,
        "category": category_of(exc),
        "message": str(exc),
    }
