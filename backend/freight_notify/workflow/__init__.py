"""Workflow engine package: retry policies, step execution, orchestration."""

from ..errors import ErrorCategory, NotificationError, StepError, TrafficLookupError
from .activities import WorkflowActivities, build_activities
from .engine import FreightDelayWorkflow, WorkflowConfig
from .exceptions import StepTimeoutError, WorkflowCancelledError, WorkflowEngineError
from .executor import StepExecutor, StepFailure, StepSuccess
from .models import Delivered, Failed, StepOutcome, WorkflowStage, WorkflowState
from .retries import RetryPolicy, STEP_RETRY_RULES, policy_for_step
from .threshold import evaluate_delay

__all__ = [
    "Delivered",
    "ErrorCategory",
    "Failed",
    "FreightDelayWorkflow",
    "NotificationError",
    "RetryPolicy",
    "STEP_RETRY_RULES",
    "StepError",
    "StepExecutor",
    "StepFailure",
    "StepOutcome",
    "StepSuccess",
    "StepTimeoutError",
    "TrafficLookupError",
    "WorkflowActivities",
    "WorkflowCancelledError",
    "WorkflowConfig",
    "WorkflowEngineError",
    "WorkflowStage",
    "WorkflowState",
    "build_activities",
    "evaluate_delay",
    "policy_for_step",
]
