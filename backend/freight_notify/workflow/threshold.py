"""Delay threshold decision."""

from __future__ import annotations

from ..schemas import DelayEvaluation, TrafficConditions


def evaluate_delay(traffic: TrafficConditions, threshold_minutes: float) -> DelayEvaluation:
    """Compare the rounded delay against the threshold.

    Inclusive: a delay equal to the threshold counts as exceeding it.
    """
    return DelayEvaluation(
        exceeds_threshold=traffic.delay_minutes >= threshold_minutes,
        delay_minutes=traffic.delay_minutes,
        threshold_minutes=threshold_minutes,
    )
