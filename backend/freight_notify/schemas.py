"""Typed data model shared by the workflow and its collaborators."""

from __future__ import annotations

import math
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, model_validator


def iso_timestamp() -> str:
    """Return an ISO-8601 timestamp string (UTC)."""
    return datetime.now(timezone.utc).isoformat()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward positive infinity."""
    return int(math.floor(value + 0.5))


class DeliveryRoute(BaseModel):
    """A monitored route and the customer to notify about it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    origin: str
    destination: str
    waypoints: tuple[str, ...] = Field(default_factory=tuple)
    customer_name: str | None = None
    customer_email: str

    @property
    def label(self) -> str:
        return f"{self.origin} to {self.destination}"


class TrafficConditions(BaseModel):
    """Snapshot of the route returned by the traffic lookup step."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    distance_meters: float
    duration_without_traffic_seconds: float
    duration_in_traffic_seconds: float
    delay_seconds: float
    delay_minutes: int
    route_summary: str = ""

    @classmethod
    def from_durations(
        cls,
        *,
        distance_meters: float,
        duration_without_traffic_seconds: float,
        duration_in_traffic_seconds: float,
        route_summary: str = "",
    ) -> "TrafficConditions":
        # Negative delays (traffic faster than baseline) are kept as reported.
        delay = duration_in_traffic_seconds - duration_without_traffic_seconds
        return cls(
            distance_meters=distance_meters,
            duration_without_traffic_seconds=duration_without_traffic_seconds,
            duration_in_traffic_seconds=duration_in_traffic_seconds,
            delay_seconds=delay,
            delay_minutes=round_half_up(delay / 60),
            route_summary=route_summary,
        )


class DelayEvaluation(BaseModel):
    """Outcome of comparing the observed delay against the threshold."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    exceeds_threshold: bool
    delay_minutes: int
    threshold_minutes: float


class PipelineResult(BaseModel):
    """Aggregate outcome of one workflow run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    delay_detected: bool
    traffic_conditions: TrafficConditions
    notification_sent: bool = False
    notification_message: str | None = None
    notification_error: str | None = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "PipelineResult":
        if self.notification_sent and self.notification_error is not None:
            raise ValueError("notification_sent cannot be true when notification_error is set")
        if not self.delay_detected and (
            self.notification_sent
            or self.notification_message is not None
            or self.notification_error is not None
        ):
            raise ValueError("notification fields require delay_detected")
        return self
