"""Traffic lookup backed by the Google Maps Directions API."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import httpx

from ..errors import ErrorCategory, TrafficLookupError
from ..schemas import TrafficConditions

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"
NO_ROUTE_STATUSES = frozenset({"ZERO_RESULTS", "NOT_FOUND"})


class GoogleMapsTrafficClient:
    """Fetches current driving conditions for a route."""

    def __init__(
        self,
        api_key: str | None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ):
        self.api_key = api_key
        self._http_client = http_client
        self.timeout_seconds = timeout_seconds

    async def __call__(
        self,
        origin: str,
        destination: str,
        waypoints: Sequence[str] = (),
    ) -> TrafficConditions:
        return await self.check_traffic(origin, destination, waypoints)

    async def check_traffic(
        self,
        origin: str,
        destination: str,
        waypoints: Sequence[str] = (),
    ) -> TrafficConditions:
        if not self.api_key:
            raise TrafficLookupError(
                "GOOGLE_MAPS_API_KEY environment variable is not set",
                category=ErrorCategory.MISSING_CONFIGURATION,
            )
        params = {
            "origin": origin,
            "destination": destination,
            "mode": "driving",
            "departure_time": "now",
            "key": self.api_key,
        }
        if waypoints:
            params["waypoints"] = "|".join(waypoints)

        payload = await self._request(params)
        status = payload.get("status")
        if status != "OK":
            category = (
                ErrorCategory.NO_ROUTE if status in NO_ROUTE_STATUSES else ErrorCategory.UPSTREAM
            )
            raise TrafficLookupError(
                f"Failed to fetch traffic conditions: Google Maps API error: {status}",
                category=category,
            )
        routes = payload.get("routes") or []
        if not routes:
            raise TrafficLookupError(
                "Failed to fetch traffic conditions: "
                "No routes found for the given origin and destination",
                category=ErrorCategory.NO_ROUTE,
            )
        conditions = _conditions_from_route(routes[0])
        logger.info(
            "traffic checked origin=%s destination=%s delay_minutes=%s",
            origin,
            destination,
            conditions.delay_minutes,
            extra={"run_id": "system"},
        )
        return conditions

    async def _request(self, params: Mapping[str, str]) -> dict[str, Any]:
        try:
            if self._http_client is not None:
                response = await self._http_client.get(
                    DIRECTIONS_URL, params=params, timeout=self.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.get(DIRECTIONS_URL, params=params)
        except httpx.HTTPError as exc:
            raise TrafficLookupError(
                f"Failed to fetch traffic conditions: {exc}",
                category=ErrorCategory.TRANSPORT,
            ) from exc
        if response.status_code >= 400:
            raise TrafficLookupError(
                f"Failed to fetch traffic conditions: HTTP {response.status_code}",
                category=ErrorCategory.UPSTREAM,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise TrafficLookupError(
                "Failed to fetch traffic conditions: malformed response body",
                category=ErrorCategory.UPSTREAM,
            ) from exc


def _conditions_from_route(route: Mapping[str, Any]) -> TrafficConditions:
    legs = route.get("legs") or []
    if not legs:
        raise TrafficLookupError(
            "Failed to fetch traffic conditions: route has no legs",
            category=ErrorCategory.NO_ROUTE,
        )
    distance = 0.0
    baseline = 0.0
    in_traffic = 0.0
    for index, leg in enumerate(legs):
        try:
            duration = float(leg["duration"]["value"])
            distance += float(leg["distance"]["value"])
        except (KeyError, TypeError, ValueError) as exc:
            raise TrafficLookupError(
                f"Failed to fetch traffic conditions: leg {index} is missing distance or duration",
                category=ErrorCategory.UPSTREAM,
            ) from exc
        baseline += duration
        # Legs without live traffic data fall back to the baseline duration.
        traffic_value = (leg.get("duration_in_traffic") or {}).get("value")
        in_traffic += float(traffic_value) if traffic_value else duration
    return TrafficConditions.from_durations(
        distance_meters=distance,
        duration_without_traffic_seconds=baseline,
        duration_in_traffic_seconds=in_traffic,
        route_summary=str(route.get("summary") or ""),
    )
