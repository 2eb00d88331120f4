"""Application bootstrap: logging, settings and workflow assembly."""

from __future__ import annotations

import asyncio
import logging

import httpx

from .env import load_dotenv_if_present
from .events import EventBus
from .schemas import DeliveryRoute, PipelineResult
from .settings import Settings, get_settings
from .startup_checks import run_startup_checks
from .workflow import FreightDelayWorkflow, WorkflowConfig, build_activities


class _RunIdFilter(logging.Filter):
    """Ensure every log record has a run_id attribute."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = "system"
        return True


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [run_id=%(run_id)s] %(name)s: %(message)s",
    )
    root_logger = logging.getLogger()
    run_filter = _RunIdFilter()
    for handler in root_logger.handlers:
        handler.addFilter(run_filter)


def build_workflow(
    settings: Settings | None = None,
    *,
    bus: EventBus | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FreightDelayWorkflow:
    """Compose the workflow from settings and the production integrations."""
    settings = settings or get_settings()
    return FreightDelayWorkflow(
        build_activities(settings, http_client=http_client),
        WorkflowConfig.from_settings(settings),
        bus=bus,
    )


async def notify_if_delayed(
    route: DeliveryRoute,
    *,
    settings: Settings | None = None,
    bus: EventBus | None = None,
    cancel_event: asyncio.Event | None = None,
) -> PipelineResult:
    """Run the workflow once for ``route`` with a shared HTTP client."""
    settings = settings or get_settings()
    async with httpx.AsyncClient(timeout=settings.workflow.traffic_timeout_seconds) as client:
        workflow = build_workflow(settings, bus=bus, http_client=client)
        return await workflow.run(route, cancel_event=cancel_event)


def bootstrap(check_group: str = "all") -> Settings:
    """Entry point setup: logging and .env, required variables, then settings.

    Set ``SKIP_STARTUP_CHECKS=1`` to bypass the environment check.
    """
    configure_logging()
    load_dotenv_if_present()
    run_startup_checks(check_group)
    return get_settings()
