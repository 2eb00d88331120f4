"""Freight delay notification workflow.

Steps run strictly in order: traffic lookup, threshold decision, message
generation, delivery. Only the traffic lookup may fail the run; a delivery
failure is captured into the result so the detected delay and the composed
message are never lost.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from ..errors import category_of
from ..events import EventBus, new_event
from ..schemas import DeliveryRoute, PipelineResult, TrafficConditions
from ..settings import Settings
from .activities import WorkflowActivities
from .exceptions import WorkflowCancelledError
from .executor import StepExecutor, StepFailure
from .models import Delivered, Failed, StepOutcome, WorkflowStage, WorkflowState
from .retries import (
    STEP_CHECK_TRAFFIC,
    STEP_GENERATE_MESSAGE,
    STEP_SEND_NOTIFICATION,
    RetryPolicy,
    policy_for_step,
)
from .threshold import evaluate_delay

logger = logging.getLogger(__name__)


def _default_delivery_policy() -> RetryPolicy:
    return policy_for_step(STEP_SEND_NOTIFICATION)


@dataclass(frozen=True)
class WorkflowConfig:
    """Constants injected into the workflow at construction."""

    delay_threshold_minutes: float = 30
    delivery_retry: RetryPolicy = field(default_factory=_default_delivery_policy)
    traffic_retry: RetryPolicy = field(default_factory=RetryPolicy.single_attempt)
    traffic_timeout_seconds: float | None = 120
    delivery_timeout_seconds: float | None = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkflowConfig":
        return cls(
            delay_threshold_minutes=settings.workflow.delay_threshold_minutes,
            delivery_retry=RetryPolicy.from_settings(settings.retry),
            traffic_timeout_seconds=settings.workflow.traffic_timeout_seconds,
            delivery_timeout_seconds=settings.workflow.email_timeout_seconds,
        )


def notification_subject(route: DeliveryRoute) -> str:
    return f"Delivery Delay Alert: {route.origin} to {route.destination}"


class FreightDelayWorkflow:
    """Sequences the notification steps for one route per run.

    Instances hold no per-run state, so concurrent runs may share one.
    """

    def __init__(
        self,
        activities: WorkflowActivities,
        config: WorkflowConfig | None = None,
        *,
        bus: EventBus | None = None,
        executor: StepExecutor | None = None,
    ):
        self.activities = activities
        self.config = config or WorkflowConfig()
        self.bus = bus
        self.executor = executor or StepExecutor(bus)

    async def run(
        self,
        route: DeliveryRoute,
        *,
        run_id: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PipelineResult:
        """Execute the workflow and return its aggregate result.

        Raises the traffic lookup's error when that step fails, and
        WorkflowCancelledError when ``cancel_event`` is set at a step boundary.
        """
        state = WorkflowState(run_id=run_id or str(uuid4()))
        logger.info(
            "workflow started route=%s",
            route.label,
            extra={"run_id": state.run_id},
        )
        await self._emit(
            state,
            "workflow.started",
            {"origin": route.origin, "destination": route.destination},
        )
        try:
            result = await self._run_steps(route, state, cancel_event)
        except WorkflowCancelledError as exc:
            state.mark_cancelled()
            logger.warning(
                "workflow cancelled stage=%s",
                exc.stage,
                extra={"run_id": state.run_id},
            )
            await self._emit(state, "workflow.cancelled", {"before": exc.stage})
            raise
        except Exception as exc:
            error_payload = {
                "stage": state.stage.value,
                "error": exc.__class__.__name__,
                "category": category_of(exc),
                "message": str(exc),
            }
            state.mark_failed(error_payload)
            logger.error(
                "workflow failed stage=%s error=%s",
                error_payload["stage"],
                exc,
                extra={"run_id": state.run_id},
            )
            await self._emit(state, "workflow.failed", error_payload)
            raise

        await self._emit(
            state,
            "workflow.completed",
            {
                "delay_detected": result.delay_detected,
                "notification_sent": result.notification_sent,
            },
        )
        logger.info(
            "workflow completed stage=%s delay_detected=%s notification_sent=%s",
            state.stage.value,
            result.delay_detected,
            result.notification_sent,
            extra={"run_id": state.run_id},
        )
        return result

    async def _run_steps(
        self,
        route: DeliveryRoute,
        state: WorkflowState,
        cancel_event: asyncio.Event | None,
    ) -> PipelineResult:
        _check_cancelled(cancel_event, STEP_CHECK_TRAFFIC)
        traffic = await self._check_traffic(route, state)
        await self._advance(state, WorkflowStage.TRAFFIC_CHECKED)

        evaluation = evaluate_delay(traffic, self.config.delay_threshold_minutes)
        await self._advance(
            state,
            WorkflowStage.DECIDED,
            {
                "exceeds_threshold": evaluation.exceeds_threshold,
                "delay_minutes": evaluation.delay_minutes,
                "threshold_minutes": evaluation.threshold_minutes,
            },
        )
        if not evaluation.exceeds_threshold:
            await self._advance(state, WorkflowStage.COMPLETED_NO_DELAY)
            return PipelineResult(
                delay_detected=False,
                traffic_conditions=traffic,
                notification_sent=False,
            )

        _check_cancelled(cancel_event, STEP_GENERATE_MESSAGE)
        message = await self.activities.generate_message(route, traffic, route.customer_name)
        state.record_attempts(STEP_GENERATE_MESSAGE, 1)
        await self._advance(state, WorkflowStage.MESSAGE_GENERATED)

        _check_cancelled(cancel_event, STEP_SEND_NOTIFICATION)
        outcome = await self._deliver(route, message, state)
        await self._advance(state, WorkflowStage.DELIVERY_ATTEMPTED, {"delivered": outcome.ok})
        await self._advance(state, WorkflowStage.COMPLETED_DELAY)
        return PipelineResult(
            delay_detected=True,
            traffic_conditions=traffic,
            notification_sent=isinstance(outcome, Delivered),
            notification_message=message,
            notification_error=outcome.reason if isinstance(outcome, Failed) else None,
        )

    async def _check_traffic(self, route: DeliveryRoute, state: WorkflowState) -> TrafficConditions:
        result = await self.executor.execute(
            lambda: self.activities.check_traffic(route.origin, route.destination, route.waypoints),
            self.config.traffic_retry,
            step=STEP_CHECK_TRAFFIC,
            run_id=state.run_id,
            timeout_seconds=self.config.traffic_timeout_seconds,
        )
        state.record_attempts(STEP_CHECK_TRAFFIC, result.attempts)
        if isinstance(result, StepFailure):
            raise result.error
        return result.value

    async def _deliver(self, route: DeliveryRoute, message: str, state: WorkflowState) -> StepOutcome:
        subject = notification_subject(route)
        result = await self.executor.execute(
            lambda: self.activities.send_notification(route.customer_email, subject, message),
            self.config.delivery_retry,
            step=STEP_SEND_NOTIFICATION,
            run_id=state.run_id,
            timeout_seconds=self.config.delivery_timeout_seconds,
        )
        state.record_attempts(STEP_SEND_NOTIFICATION, result.attempts)
        if isinstance(result, StepFailure):
            logger.error(
                "notification failed after retries attempts=%s error=%s",
                result.attempts,
                result.message,
                extra={"run_id": state.run_id},
            )
            return Failed(reason=result.message)
        return Delivered()

    async def _advance(
        self,
        state: WorkflowState,
        stage: WorkflowStage,
        data: dict[str, Any] | None = None,
    ) -> None:
        state.advance_to(stage)
        payload = {"stage": stage.value}
        payload.update(data or {})
        await self._emit(state, "workflow.stage.changed", payload)

    async def _emit(self, state: WorkflowState, event_type: str, data: dict[str, Any]) -> None:
        if self.bus is None:
            return
        await self.bus.publish(new_event(event_type, state.run_id, data))


def _check_cancelled(cancel_event: asyncio.Event | None, next_step: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise WorkflowCancelledError(next_step)
