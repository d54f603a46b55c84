# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocol for injected duration estimators."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class DurationEstimator(Protocol):
    """
    Pure function estimating travel time between two location codes.

    The engine validates both codes before calling and only requires the
    estimator to be deterministic and to return a positive number of hours.
    It never inspects how the estimate is produced.
    """

    def __call__(self, origin: str, destination: str) -> float:
        """Return the estimated duration in hours."""
        ...
