# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Reservation record types.

A reservation occupies one vehicle for the half-open window
[start_time, end_time). The end is always derived from the start and the
estimated duration, so it cannot drift from either.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from ..exceptions import ValidationError


class ReservationStatus(str, Enum):
    """
    Lifecycle status of a reservation.

    - CONFIRMED: Booked and waiting to start (occupies the vehicle)
    - IN_PROGRESS: Trip under way (occupies the vehicle)
    - COMPLETED: Trip finished (vehicle free)
    - CANCELLED: Booking withdrawn (vehicle free)

    Transitions are unrestricted: any status may move to any other.
    """

    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def occupies_vehicle(self) -> bool:
        """Whether reservations in this status block overlapping bookings."""
        return self in OCCUPYING_STATUSES

    @classmethod
    def parse(cls, value: "ReservationStatus | str") -> "ReservationStatus":
        """
        Coerce a raw status value.

        Raises:
            ValidationError: If the value is not one of the four statuses
        """
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(
                f"Invalid status. Must be one of: {allowed}", field="status"
            ) from None


OCCUPYING_STATUSES = frozenset(
    {ReservationStatus.CONFIRMED, ReservationStatus.IN_PROGRESS}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Reservation:
    """
    A booking of one vehicle for one route and time window.

    Attributes:
        id: Opaque unique identifier
        vehicle_id: The booked vehicle (may since have been deactivated)
        requester_id: Opaque identity of whoever placed the booking
        origin: 6-digit origin pincode
        destination: 6-digit destination pincode
        start_time: UTC start of the occupied window
        duration_hours: Estimated ride duration in hours
        status: Current lifecycle status
        created_at: UTC timestamp of creation
        updated_at: UTC timestamp of the last status change
    """

    id: str
    vehicle_id: str
    requester_id: str
    origin: str
    destination: str
    start_time: datetime
    duration_hours: float
    status: ReservationStatus = ReservationStatus.CONFIRMED
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def end_time(self) -> datetime:
        """Exclusive end of the occupied window."""
        return self.start_time + timedelta(hours=self.duration_hours)

    @property
    def route_summary(self) -> str:
        return f"{self.origin} → {self.destination}"

    @property
    def duration_formatted(self) -> str:
        """Duration as "<hours>h <minutes>m", e.g. "2h 30m"."""
        hours = int(self.duration_hours)
        minutes = round((self.duration_hours - hours) * 60)
        return f"{hours}h {minutes}m"

    @property
    def occupies_vehicle(self) -> bool:
        return self.status.occupies_vehicle

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the transport layer."""
        return {
            "id": self.id,
            "vehicle_id": self.vehicle_id,
            "requester_id": self.requester_id,
            "origin": self.origin,
            "destination": self.destination,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_hours": self.duration_hours,
            "duration_formatted": self.duration_formatted,
            "route_summary": self.route_summary,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class ConflictingReservation:
    """Diagnostic view of a reservation that blocked a commit."""

    reservation_id: str
    start_time: datetime
    end_time: datetime
    route_summary: str

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "ConflictingReservation":
        return cls(
            reservation_id=reservation.id,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            route_summary=reservation.route_summary,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "route_summary": self.route_summary,
        }


__all__ = [
    "OCCUPYING_STATUSES",
    "ConflictingReservation",
    "Reservation",
    "ReservationStatus",
]
