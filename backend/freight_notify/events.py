"""In-process event primitives for observing workflow runs."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Mapping
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .schemas import iso_timestamp

logger = logging.getLogger(__name__)


class Event(BaseModel):
    """Structured event emitted while a run progresses."""

    model_config = ConfigDict(extra="forbid")

    id: str
    run_id: str
    seq: int = Field(default=0)
    ts: str
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


def new_event(event_type: str, run_id: str, data: Mapping[str, Any]) -> Event:
    """Create a fresh event with metadata initialized."""
    return Event(
        id=str(uuid4()),
        run_id=run_id,
        seq=0,
        ts=iso_timestamp(),
        type=event_type,
        data=dict(data),
    )


EventCallback = Callable[[Event], Awaitable[None]]


class EventBus:
    """In-memory pub/sub bus. Nothing is persisted."""

    def __init__(self) -> None:
        self._subscribers: dict[str, set[EventCallback]] = {}
        self._global_subscribers: set[EventCallback] = set()
        self._seq = itertools.count(1)

    async def publish(self, event: Event | Mapping[str, Any]) -> Event:
        """Stamp a sequence number then fan out to live subscribers."""
        stored = event if isinstance(event, Event) else Event.model_validate(event)
        stored.seq = next(self._seq)
        callbacks = list(self._subscribers.get(stored.run_id, ()))
        global_callbacks = list(self._global_subscribers)
        for callback in callbacks + global_callbacks:
            try:
                await callback(stored)
            except Exception:
                logger.exception(
                    "event subscriber failed type=%s",
                    stored.type,
                    extra={"run_id": stored.run_id},
                )
        return stored

    def subscribe(self, run_id: str, callback: EventCallback) -> Callable[[], None]:
        """Register callback for run-specific events and return unsubscribe handle."""
        subscribers = self._subscribers.setdefault(run_id, set())
        subscribers.add(callback)

        def _unsubscribe() -> None:
            current = self._subscribers.get(run_id)
            if not current:
                return
            current.discard(callback)
            if not current:
                self._subscribers.pop(run_id, None)

        return _unsubscribe

    def subscribe_all(self, callback: EventCallback) -> Callable[[], None]:
        """Register callback for all run events."""
        self._global_subscribers.add(callback)

        def _unsubscribe() -> None:
            self._global_subscribers.discard(callback)

        return _unsubscribe
