from __future__ import annotations

from typing import Sequence

import pytest

from freight_notify.errors import ErrorCategory, NotificationError
from freight_notify.events import Event, EventBus
from freight_notify.schemas import DeliveryRoute, TrafficConditions


def make_traffic(delay_minutes: float, *, baseline_seconds: float = 1800) -> TrafficConditions:
    return TrafficConditions.from_durations(
        distance_meters=42_000,
        duration_without_traffic_seconds=baseline_seconds,
        duration_in_traffic_seconds=baseline_seconds + delay_minutes * 60,
        route_summary="I-5 N",
    )


class FakeTraffic:
    def __init__(self, result: TrafficConditions | Exception):
        self.result = result
        self.calls: list[tuple[str, str, tuple[str, ...]]] = []

    async def __call__(self, origin: str, destination: str, waypoints: Sequence[str]) -> TrafficConditions:
        self.calls.append((origin, destination, tuple(waypoints)))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeMessages:
    def __init__(self, text: str = "Your delivery is running late due to traffic."):
        self.text = text
        self.calls: list[tuple[DeliveryRoute, TrafficConditions, str | None]] = []

    async def __call__(self, route, traffic, customer_name=None) -> str:
        self.calls.append((route, traffic, customer_name))
        return self.text


class FakeSender:
    """Fails with the queued errors in order, then succeeds."""

    def __init__(self, failures: Sequence[Exception] = ()):
        self.failures = list(failures)
        self.calls: list[tuple[str, str, str]] = []

    async def __call__(self, to: str, subject: str, body: str) -> None:
        self.calls.append((to, subject, body))
        if self.failures:
            raise self.failures.pop(0)


class AlwaysFailingSender(FakeSender):
    def __init__(self, error: Exception):
        super().__init__()
        self.error = error

    async def __call__(self, to: str, subject: str, body: str) -> None:
        self.calls.append((to, subject, body))
        raise self.error


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


def transport_error(message: str = "Failed to send email: HTTP 503") -> NotificationError:
    return NotificationError(message, category=ErrorCategory.TRANSPORT)


def config_error() -> NotificationError:
    return NotificationError(
        "Missing SendGrid environment variables: SENDGRID_API_KEY",
        category=ErrorCategory.MISSING_CONFIGURATION,
    )


@pytest.fixture
def route() -> DeliveryRoute:
    return DeliveryRoute(
        origin="Seattle, WA",
        destination="Portland, OR",
        waypoints=["Tacoma, WA"],
        customer_name="Ada",
        customer_email="ada@example.com",
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def bus_with_log() -> tuple[EventBus, list[Event]]:
    bus = EventBus()
    seen: list[Event] = []

    async def _record(event: Event) -> None:
        seen.append(event)

    bus.subscribe_all(_record)
    return bus, seen
