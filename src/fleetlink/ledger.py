# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
ReservationLedger: the authoritative record of bookings.

The ledger turns the backend's primitive results into the engine's error
model. Its insert_if_no_conflict() is the single place where a booking can
succeed: the backend runs the overlap check and the write as one atomic
unit per vehicle, so no earlier read is ever trusted.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from .backends.base import BaseBackend
from .exceptions import ConflictError, NotFoundError
from .types.reservation import (
    ConflictingReservation,
    Reservation,
    ReservationStatus,
)

logger = logging.getLogger(__name__)


class ReservationLedger:
    """Per-vehicle overlap queries, atomic conditional insert and status updates."""

    def __init__(self, backend: BaseBackend, clock: Callable[[], datetime]):
        self._backend = backend
        self._clock = clock

    async def find_overlapping(
        self, vehicle_id: str, start: datetime, end: datetime
    ) -> list[Reservation]:
        """
        Occupying reservations of a vehicle that overlap [start, end).

        Read from one consistent snapshot of the vehicle's reservations.
        """
        return await self._backend.find_overlapping(vehicle_id, start, end)

    async def insert_if_no_conflict(self, reservation: Reservation) -> Reservation:
        """
        Store the reservation unless an occupying reservation overlaps it.

        Args:
            reservation: Fully populated draft; its end_time is the window end

        Returns:
            The persisted reservation

        Raises:
            ConflictError: If any occupying reservation on the vehicle overlaps
                the window. Nothing is written.
        """
        inserted, conflicts = await self._backend.insert_reservation_if_no_conflict(
            reservation
        )
        if not inserted:
            logger.warning(
                f"Booking conflict on vehicle {reservation.vehicle_id}: "
                f"{len(conflicts)} overlapping reservation(s) for "
                f"{reservation.start_time.isoformat()} - "
                f"{reservation.end_time.isoformat()}"
            )
            raise ConflictError(
                "Vehicle is already booked for an overlapping time slot",
                vehicle_id=reservation.vehicle_id,
                conflicts=[ConflictingReservation.from_reservation(c) for c in conflicts],
            )
        return reservation

    async def update_status(
        self, reservation_id: str, new_status: ReservationStatus | str
    ) -> Reservation:
        """
        Move a reservation to any of the four statuses.

        Overlap is not re-checked: cancelling frees the slot for later
        searches, and re-confirming does not evict anyone.

        Raises:
            ValidationError: If new_status is not a known status
            NotFoundError: If the reservation does not exist
        """
        status = ReservationStatus.parse(new_status)
        reservation = await self._backend.update_reservation_status(
            reservation_id, status, self._clock()
        )
        if reservation is None:
            raise NotFoundError(
                "Booking not found",
                resource="reservation",
                resource_id=reservation_id,
            )
        logger.info(f"Reservation {reservation_id} status set to {status.value}")
        return reservation

    async def get(self, reservation_id: str) -> Reservation:
        reservation = await self._backend.get_reservation(reservation_id)
        if reservation is None:
            raise NotFoundError(
                "Booking not found",
                resource="reservation",
                resource_id=reservation_id,
            )
        return reservation

    async def list(
        self,
        requester_id: str | None = None,
        vehicle_id: str | None = None,
        status: ReservationStatus | str | None = None,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
    ) -> list[Reservation]:
        """Reservations matching every given filter, newest first.

        start_from and start_to bound start_time inclusively.
        """
        return await self._backend.list_reservations(
            requester_id=requester_id,
            vehicle_id=vehicle_id,
            status=ReservationStatus.parse(status) if status is not None else None,
            start_from=start_from,
            start_to=start_to,
        )


__all__ = ["ReservationLedger"]
