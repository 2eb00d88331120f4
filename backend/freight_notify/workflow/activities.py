"""Bundles the external operations the workflow sequences."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from ..integrations.email import SendGridEmailSender
from ..integrations.messages import DelayMessageGenerator
from ..integrations.traffic import GoogleMapsTrafficClient
from ..settings import Settings
from .models import MessageGenerator, NotificationSender, TrafficLookup


@dataclass(frozen=True)
class WorkflowActivities:
    """The three collaborators, each an async callable."""

    check_traffic: TrafficLookup
    generate_message: MessageGenerator
    send_notification: NotificationSender


def build_activities(
    settings: Settings,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> WorkflowActivities:
    """Wire the production integrations from settings."""
    integrations = settings.integrations
    timeouts = settings.workflow
    return WorkflowActivities(
        check_traffic=GoogleMapsTrafficClient(
            integrations.google_maps_api_key,
            http_client=http_client,
            timeout_seconds=timeouts.traffic_timeout_seconds,
        ),
        generate_message=DelayMessageGenerator(
            integrations.openai_api_key,
            model=integrations.message_model,
            base_url=integrations.openai_base_url,
            timeout_seconds=timeouts.message_timeout_seconds,
        ),
        send_notification=SendGridEmailSender(
            integrations.sendgrid_api_key,
            integrations.sendgrid_from_email,
            http_client=http_client,
            timeout_seconds=timeouts.email_timeout_seconds,
        ),
    )
