"""Customer-facing delay message generation.

The generator tries a chat completion first and falls back to a fixed
template on any failure, so callers always receive text.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from openai import AsyncOpenAI

from ..schemas import DeliveryRoute, TrafficConditions, round_half_up

logger = logging.getLogger(__name__)

METERS_PER_KILOMETER = 1000
SECONDS_PER_MINUTE = 60


def build_prompt(
    route: DeliveryRoute,
    traffic: TrafficConditions,
    customer_name: str | None = None,
) -> str:
    """Render the instruction sent to the language model."""
    distance_km = traffic.distance_meters / METERS_PER_KILOMETER
    normal_minutes = round_half_up(traffic.duration_without_traffic_seconds / SECONDS_PER_MINUTE)
    traffic_minutes = round_half_up(traffic.duration_in_traffic_seconds / SECONDS_PER_MINUTE)
    context_lines = [
        f"- Route: {route.origin} to {route.destination}",
        f"- Distance: {distance_km:.1f} km",
        f"- Normal travel time: {normal_minutes} minutes",
        f"- Current travel time with traffic: {traffic_minutes} minutes",
        f"- Delay: {traffic.delay_minutes} minutes",
        f"- Route: {traffic.route_summary}",
    ]
    if customer_name:
        context_lines.append(f"- Customer name: {customer_name}")
    requirements = [
        "- Be friendly and professional",
        "- Keep it concise (2-3 sentences max)",
        "- Include the delay amount and reason (traffic)",
        "- Express that we're monitoring the situation",
        "- Don't use a greeting or closing (just the message content)",
        "- Address the customer by name" if customer_name else "- Use a generic greeting",
    ]
    return (
        "You are a helpful customer service assistant for a freight delivery company. "
        "Generate a friendly and professional notification message about a delivery delay.\n\n"
        "Context:\n"
        + "\n".join(context_lines)
        + "\n\nRequirements:\n"
        + "\n".join(requirements)
        + "\n\nGenerate only the notification message, nothing else."
    )


def fallback_message(
    route: DeliveryRoute,
    traffic: TrafficConditions,
    customer_name: str | None = None,
) -> str:
    """Deterministic message used when the model is unavailable."""
    greeting = f"Dear {customer_name}," if customer_name else "Dear Customer,"
    where = f" on {traffic.route_summary}" if traffic.route_summary else ""
    return (
        f"{greeting} We wanted to inform you that your freight delivery "
        f"from {route.origin} to {route.destination} is experiencing a "
        f"{traffic.delay_minutes}-minute delay due to current traffic conditions"
        f"{where}. We're actively monitoring the situation and will keep "
        "you updated. We apologize for any inconvenience this may cause."
    )


class DelayMessageGenerator:
    """Produces notification text, never raising to the caller."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        client: Any | None = None,
        timeout_seconds: float = 30.0,
        max_tokens: int = 200,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self._client = client

    def _get_client(self) -> Any | None:
        if self._client is not None:
            return self._client
        if not self.api_key:
            return None
        client_kwargs: dict[str, Any] = {"api_key": self.api_key}
        if self.base_url:
            client_kwargs["base_url"] = self.base_url
        self._client = AsyncOpenAI(**client_kwargs)
        return self._client

    async def __call__(
        self,
        route: DeliveryRoute,
        traffic: TrafficConditions,
        customer_name: str | None = None,
    ) -> str:
        return await self.generate(route, traffic, customer_name)

    async def generate(
        self,
        route: DeliveryRoute,
        traffic: TrafficConditions,
        customer_name: str | None = None,
    ) -> str:
        client = self._get_client()
        if client is None:
            logger.info(
                "no model api key configured; using fallback message template",
                extra={"run_id": "system"},
            )
            return fallback_message(route, traffic, customer_name)

        prompt = build_prompt(route, traffic, customer_name)
        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    messages=[{"role": "user", "content": prompt}],
                ),
                timeout=self.timeout_seconds,
            )
            text = _completion_text(response)
            if not text:
                raise ValueError("no text content in model response")
            return text
        except Exception as exc:
            logger.warning(
                "model message generation failed; using fallback template error=%s",
                exc,
                extra={"run_id": "system"},
            )
            return fallback_message(route, traffic, customer_name)


def _completion_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str):
        return ""
    return content.strip()
