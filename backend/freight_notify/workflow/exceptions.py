"""Workflow-specific exception types shared across modules."""

from __future__ import annotations

from ..errors import ErrorCategory, StepError


class WorkflowEngineError(Exception):
    """Base class for failures raised by the workflow machinery itself."""


class StepTimeoutError(StepError, WorkflowEngineError):
    """A single attempt ran past its time budget."""

    def __init__(self, step: str, timeout_seconds: float):
        super().__init__(
            f"{step} timed out after {timeout_seconds:g}s",
            category=ErrorCategory.TIMEOUT,
        )
        self.step = step
        self.timeout_seconds = timeout_seconds


class WorkflowCancelledError(WorkflowEngineError):
    """Raised at a step boundary once cancellation has been requested."""

    category = ErrorCategory.CANCELLED

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"workflow cancelled before {stage}")
