# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Result types for availability searches."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class TimeWindow:
    """Half-open window [start, end)."""

    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class AvailableVehicle:
    """
    A vehicle that was free for the requested window when the search ran.

    Availability is advisory: a concurrent booking may take the slot before
    the caller commits.
    """

    vehicle_id: str
    name: str
    capacity_kg: float
    tyres: int
    origin: str
    destination: str
    estimated_window: TimeWindow
    estimated_duration_hours: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "vehicle_id": self.vehicle_id,
            "name": self.name,
            "capacity_kg": self.capacity_kg,
            "tyres": self.tyres,
            "estimated_duration_hours": self.estimated_duration_hours,
            "available_for_route": {
                "from": self.origin,
                "to": self.destination,
            },
            "estimated_window": self.estimated_window.to_dict(),
        }


@dataclass(frozen=True)
class AvailabilityResult:
    """
    Outcome of an availability search, echoing the search criteria.

    Attributes:
        estimated_duration_hours: Duration returned by the estimator
        available_vehicles: Free vehicles, in directory order
        capacity_kg: Requested load
        origin: Requested origin pincode
        destination: Requested destination pincode
        start_time: Requested start (UTC)
    """

    estimated_duration_hours: float
    available_vehicles: list[AvailableVehicle] = field(default_factory=list)
    capacity_kg: float = 0.0
    origin: str = ""
    destination: str = ""
    start_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "estimated_duration_hours": self.estimated_duration_hours,
            "available_vehicles": [v.to_dict() for v in self.available_vehicles],
            "search_criteria": {
                "capacity_kg": self.capacity_kg,
                "origin": self.origin,
                "destination": self.destination,
                "start_time": self.start_time.isoformat() if self.start_time else None,
                "estimated_duration_hours": self.estimated_duration_hours,
            },
        }


__all__ = ["AvailabilityResult", "AvailableVehicle", "TimeWindow"]
