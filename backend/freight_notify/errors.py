"""Error taxonomy shared by the workflow and the external integrations."""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Stable tags attached to failures at the point they are raised."""

    MISSING_CONFIGURATION = "missing_configuration"
    NO_ROUTE = "no_route"
    UPSTREAM = "upstream_error"
    TRANSPORT = "transport_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class StepError(Exception):
    """A step failure carrying an explicit category tag."""

    def __init__(self, message: str, *, category: ErrorCategory | str = ErrorCategory.UNKNOWN):
        super().__init__(message)
        self.category = category


class TrafficLookupError(StepError):
    """Raised by the traffic lookup when no usable route is available."""


class NotificationError(StepError):
    """Raised by the notification sender when delivery is rejected."""


def category_of(exc: BaseException) -> str:
    """Return the category tag for an exception, ``unknown`` when untagged."""
    category = getattr(exc, "category", None)
    if isinstance(category, Enum):
        return str(category.value)
    if isinstance(category, str) and category:
        return category
    return ErrorCategory.UNKNOWN.value
