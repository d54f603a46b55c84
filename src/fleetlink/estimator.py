# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Default ride-duration estimator.

This is the placeholder formula the fleet service ships with: the absolute
difference of the two pincodes modulo 24, floored at half an hour. It has
no geographic meaning. Deployments that need real travel times inject their
own callable satisfying DurationEstimator.
"""

import math
from collections.abc import Callable

from .exceptions import ConfigurationError
from .intervals import validate_location_code

MIN_RIDE_DURATION_HOURS = 0.5
"""Shortest duration ever returned by estimate_ride_duration()."""


def estimate_ride_duration(origin: str, destination: str) -> float:
    """
    Estimate ride duration in hours between two 6-digit pincodes.

    Args:
        origin: Starting pincode
        destination: Destination pincode

    Returns:
        Duration in hours, at least MIN_RIDE_DURATION_HOURS

    Raises:
        ValidationError: If either pincode is not exactly 6 digits
    """
    validate_location_code(origin, "origin")
    validate_location_code(destination, "destination")

    duration = abs(int(destination) - int(origin)) % 24
    return float(max(duration, MIN_RIDE_DURATION_HOURS))


def checked_estimate(
    estimator: Callable[[str, str], float], origin: str, destination: str
) -> float:
    """
    Call an injected estimator and vet its result.

    Callers validate both pincodes first.

    Raises:
        ConfigurationError: If the estimator returns anything but a positive
            finite number
    """
    hours = estimator(origin, destination)
    if (
        isinstance(hours, bool)
        or not isinstance(hours, (int, float))
        or not math.isfinite(hours)
        or hours <= 0
    ):
        raise ConfigurationError(
            f"Duration estimator returned {hours!r} for {origin} -> {destination}; "
            "expected a positive number of hours"
        )
    return float(hours)


__all__ = ["MIN_RIDE_DURATION_HOURS", "checked_estimate", "estimate_ride_duration"]
