# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
BookingCommitter: the authoritative booking path.

A commit validates its inputs, confirms the vehicle can still take
bookings, and hands a fully built draft to the ledger. The overlap check
happens inside the ledger's atomic insert and never reuses an earlier
availability search, however recent.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta

from .directory import VehicleDirectory
from .estimator import checked_estimate
from .exceptions import ValidationError
from .intervals import parse_instant, validate_booking_time, validate_location_code
from .ledger import ReservationLedger
from .types.reservation import Reservation, ReservationStatus

logger = logging.getLogger(__name__)


def _require_id(value: object, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


class BookingCommitter:
    """Validated check-and-insert of new reservations."""

    def __init__(
        self,
        directory: VehicleDirectory,
        ledger: ReservationLedger,
        estimator: Callable[[str, str], float],
        clock: Callable[[], datetime],
        max_advance_booking: timedelta = timedelta(days=365),
    ):
        self._directory = directory
        self._ledger = ledger
        self._estimator = estimator
        self._clock = clock
        self._max_advance_booking = max_advance_booking

    async def commit(
        self,
        vehicle_id: str,
        requester_id: str,
        origin: str,
        destination: str,
        start: datetime | str,
    ) -> Reservation:
        """
        Book a vehicle for a route starting at ``start``.

        Returns:
            The persisted reservation, status confirmed

        Raises:
            ValidationError: If any input is malformed, or start is not in
                (now, now + max_advance_booking]
            NotFoundError: If the vehicle is unknown or deactivated
            ConflictError: If an occupying reservation overlaps the window
                at commit time
        """
        vehicle_id = _require_id(vehicle_id, "vehicle_id")
        requester_id = _require_id(requester_id, "requester_id")
        validate_location_code(origin, "origin")
        validate_location_code(destination, "destination")
        start_time = parse_instant(start, "start_time")

        now = self._clock()
        validate_booking_time(start_time, now, self._max_advance_booking)

        await self._directory.get_active(vehicle_id)

        duration = checked_estimate(self._estimator, origin, destination)
        draft = Reservation(
            id=uuid.uuid4().hex,
            vehicle_id=vehicle_id,
            requester_id=requester_id,
            origin=origin,
            destination=destination,
            start_time=start_time,
            duration_hours=duration,
            status=ReservationStatus.CONFIRMED,
            created_at=now,
            updated_at=now,
        )

        reservation = await self._ledger.insert_if_no_conflict(draft)
        logger.info(
            f"Booking committed: {reservation.id} vehicle={vehicle_id} "
            f"{reservation.route_summary} "
            f"[{reservation.start_time.isoformat()}, {reservation.end_time.isoformat()})"
        )
        return reservation


__all__ = ["BookingCommitter"]
