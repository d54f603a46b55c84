# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
AvailabilityResolver: advisory search for free vehicles.

The search holds no locks across its reads. Between a search and a later
commit, a concurrent booking may take the slot; only the committer's
atomic check decides who gets it.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from .directory import VehicleDirectory
from .estimator import checked_estimate
from .intervals import (
    compute_end,
    parse_instant,
    validate_capacity,
    validate_location_code,
    validate_future,
)
from .ledger import ReservationLedger
from .types.availability import AvailabilityResult, AvailableVehicle, TimeWindow

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """Finds active vehicles that can carry a load over a time window."""

    def __init__(
        self,
        directory: VehicleDirectory,
        ledger: ReservationLedger,
        estimator: Callable[[str, str], float],
        clock: Callable[[], datetime],
    ):
        self._directory = directory
        self._ledger = ledger
        self._estimator = estimator
        self._clock = clock

    async def resolve(
        self,
        capacity_kg: float,
        origin: str,
        destination: str,
        start: datetime | str,
    ) -> AvailabilityResult:
        """
        List vehicles free for the requested load, route and start time.

        Args:
            capacity_kg: Load to carry; vehicles need at least this capacity
            origin: 6-digit origin pincode
            destination: 6-digit destination pincode
            start: Requested start, strictly in the future

        Returns:
            The estimated duration and the free vehicles with their windows.
            An empty list is a normal outcome, not an error.

        Raises:
            ValidationError: If any input is malformed
        """
        capacity_kg = validate_capacity(capacity_kg)
        validate_location_code(origin, "origin")
        validate_location_code(destination, "destination")
        start_time = parse_instant(start, "start_time")
        validate_future(start_time, self._clock())

        duration = checked_estimate(self._estimator, origin, destination)
        end_time = compute_end(start_time, duration)

        candidates = await self._directory.find_by_min_capacity(capacity_kg)
        overlapping = await asyncio.gather(
            *(
                self._ledger.find_overlapping(vehicle.id, start_time, end_time)
                for vehicle in candidates
            )
        )

        window = TimeWindow(start=start_time, end=end_time)
        available = [
            AvailableVehicle(
                vehicle_id=vehicle.id,
                name=vehicle.name,
                capacity_kg=vehicle.capacity_kg,
                tyres=vehicle.tyres,
                origin=origin,
                destination=destination,
                estimated_window=window,
                estimated_duration_hours=duration,
            )
            for vehicle, conflicts in zip(candidates, overlapping)
            if not conflicts
        ]

        logger.debug(
            f"Availability for {capacity_kg:g}kg {origin} -> {destination} at "
            f"{start_time.isoformat()}: {len(available)}/{len(candidates)} free"
        )

        return AvailabilityResult(
            estimated_duration_hours=duration,
            available_vehicles=available,
            capacity_kg=capacity_kg,
            origin=origin,
            destination=destination,
            start_time=start_time,
        )


__all__ = ["AvailabilityResolver"]
