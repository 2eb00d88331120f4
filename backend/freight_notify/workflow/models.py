"""Workflow state primitives for step sequencing."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import DeliveryRoute, TrafficConditions, iso_timestamp


class WorkflowStage(str, Enum):
    """States of the notification state machine, terminal ones included."""

    START = "start"
    TRAFFIC_CHECKED = "traffic_checked"
    DECIDED = "decided"
    MESSAGE_GENERATED = "message_generated"
    DELIVERY_ATTEMPTED = "delivery_attempted"
    COMPLETED_NO_DELAY = "completed_no_delay"
    COMPLETED_DELAY = "completed_delay"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STAGES: frozenset[WorkflowStage] = frozenset(
    {
        WorkflowStage.COMPLETED_NO_DELAY,
        WorkflowStage.COMPLETED_DELAY,
        WorkflowStage.FAILED,
        WorkflowStage.CANCELLED,
    }
)


class WorkflowState(BaseModel):
    """In-memory bookkeeping for a single run. Never shared across runs."""

    model_config = ConfigDict(extra="forbid")

    run_id: str
    stage: WorkflowStage = Field(default=WorkflowStage.START)
    attempts: dict[str, int] = Field(default_factory=dict)
    last_error: dict[str, Any] | None = None
    created_at: str = Field(default_factory=iso_timestamp)
    updated_at: str = Field(default_factory=iso_timestamp)

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def touch(self) -> None:
        """Refresh the updated_at timestamp."""
        self.updated_at = iso_timestamp()

    def record_attempts(self, step: str, count: int) -> None:
        self.attempts[step] = count
        self.touch()

    def advance_to(self, stage: WorkflowStage) -> None:
        if self.is_terminal:
            msg = f"cannot leave terminal stage {self.stage.value}"
            raise ValueError(msg)
        self.stage = stage
        self.touch()

    def mark_failed(self, error: dict[str, Any] | None = None) -> None:
        self.stage = WorkflowStage.FAILED
        self.last_error = dict(error) if error else None
        self.touch()

    def mark_cancelled(self) -> None:
        self.stage = WorkflowStage.CANCELLED
        self.touch()


@dataclass(frozen=True)
class Delivered:
    """The notification was accepted by the delivery service."""

    ok = True


@dataclass(frozen=True)
class Failed:
    """The notification could not be delivered."""

    reason: str
    ok = False


StepOutcome = Union[Delivered, Failed]

TrafficLookup = Callable[[str, str, Sequence[str]], Awaitable[TrafficConditions]]
MessageGenerator = Callable[[DeliveryRoute, TrafficConditions, str | None], Awaitable[str]]
NotificationSender = Callable[[str, str, str], Awaitable[None]]
