# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Type definitions for vehicles, reservations and availability results."""

from .availability import AvailabilityResult, AvailableVehicle, TimeWindow
from .reservation import (
    OCCUPYING_STATUSES,
    ConflictingReservation,
    Reservation,
    ReservationStatus,
)
from .vehicle import Vehicle

__all__ = [
    "OCCUPYING_STATUSES",
    # Availability
    "AvailabilityResult",
    "AvailableVehicle",
    "ConflictingReservation",
    # Reservations
    "Reservation",
    "ReservationStatus",
    "TimeWindow",
    # Vehicles
    "Vehicle",
]
