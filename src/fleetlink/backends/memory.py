# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
MemoryBackend for FleetLink

This module provides an in-memory backend implementation that doesn't require Redis.
Perfect for testing, development, and single-process applications.
"""

import asyncio
import dataclasses
import logging
from collections import defaultdict
from datetime import datetime

from ..intervals import overlaps
from ..types.reservation import Reservation, ReservationStatus
from ..types.vehicle import Vehicle
from .base import BaseBackend, HealthCheckResult

logger = logging.getLogger(__name__)


class MemoryBackend(BaseBackend):
    """
    An in-memory backend implementation for the booking engine.

    This backend provides a simple, Redis-free implementation suitable for:
    - Testing and development
    - Single-process applications
    - Scenarios where distributed state is not needed

    Key Features:
    - Pure in-memory dict-based storage
    - One asyncio.Lock per vehicle guarding check-and-insert and status
      changes, so bookings on different vehicles never wait on each other
    - Copy-on-read: callers never hold references to stored records

    Note:
        The per-vehicle locks only serialize callers sharing one event loop.
        This backend is NOT suitable for:
        - Multi-process applications
        - Distributed systems
    """

    backend_type = "memory"

    def __init__(self, namespace: str = "fleetlink") -> None:
        """
        Initialize the in-memory backend.

        Args:
            namespace: Namespace for key isolation (for compatibility)
        """
        super().__init__(namespace)

        self._vehicles: dict[str, Vehicle] = {}
        self._reservations: dict[str, Reservation] = {}
        # vehicle_id -> reservation ids, in insertion order
        self._vehicle_reservations: dict[str, list[str]] = defaultdict(list)

        # Directory writes are cheap and rare; one lock is enough
        self._vehicle_table_lock = asyncio.Lock()
        # Critical section for the ledger, keyed by vehicle id
        self._vehicle_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

        logger.debug(f"Initialized MemoryBackend with namespace '{namespace}'")

    # Lifecycle

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            healthy=True,
            backend_type=self.backend_type,
            namespace=self.namespace,
            metadata={
                "vehicles": len(self._vehicles),
                "reservations": len(self._reservations),
            },
        )

    async def clear(self) -> None:
        """Clear all stored vehicles and reservations."""
        async with self._vehicle_table_lock:
            self._vehicles.clear()
            self._reservations.clear()
            self._vehicle_reservations.clear()
            self._vehicle_locks.clear()
            logger.debug("Cleared all vehicles and reservations")

    # Vehicles

    async def insert_vehicle(self, vehicle: Vehicle) -> Vehicle:
        async with self._vehicle_table_lock:
            self._vehicles[vehicle.id] = dataclasses.replace(vehicle)
        logger.debug(f"Memory backend: stored vehicle {vehicle.id}")
        return dataclasses.replace(vehicle)

    async def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        vehicle = self._vehicles.get(vehicle_id)
        return dataclasses.replace(vehicle) if vehicle else None

    async def set_vehicle_active(
        self, vehicle_id: str, is_active: bool
    ) -> Vehicle | None:
        async with self._vehicle_table_lock:
            vehicle = self._vehicles.get(vehicle_id)
            if vehicle is None:
                return None
            vehicle.is_active = is_active
            return dataclasses.replace(vehicle)

    async def find_vehicles(
        self, min_capacity_kg: float = 0.0, active_only: bool = True
    ) -> list[Vehicle]:
        matches = [
            dataclasses.replace(v)
            for v in self._vehicles.values()
            if v.capacity_kg >= min_capacity_kg and (v.is_active or not active_only)
        ]
        matches.sort(key=lambda v: v.created_at, reverse=True)
        return matches

    # Reservations

    def _scan_overlapping(
        self, vehicle_id: str, start: datetime, end: datetime
    ) -> list[Reservation]:
        """Scan a vehicle's occupying reservations. Caller holds the vehicle lock."""
        found = []
        for reservation_id in self._vehicle_reservations.get(vehicle_id, ()):
            reservation = self._reservations[reservation_id]
            if reservation.occupies_vehicle and overlaps(
                reservation.start_time, reservation.end_time, start, end
            ):
                found.append(dataclasses.replace(reservation))
        found.sort(key=lambda r: r.start_time)
        return found

    async def _store_reservation(self, reservation: Reservation) -> None:
        """Write a reservation. Caller holds the vehicle lock."""
        self._reservations[reservation.id] = dataclasses.replace(reservation)
        self._vehicle_reservations[reservation.vehicle_id].append(reservation.id)

    async def find_overlapping(
        self, vehicle_id: str, start: datetime, end: datetime
    ) -> list[Reservation]:
        if vehicle_id not in self._vehicle_reservations:
            return []
        async with self._vehicle_locks[vehicle_id]:
            return self._scan_overlapping(vehicle_id, start, end)

    async def insert_reservation_if_no_conflict(
        self, reservation: Reservation
    ) -> tuple[bool, list[Reservation]]:
        async with self._vehicle_locks[reservation.vehicle_id]:
            if reservation.id in self._reservations:
                raise ValueError(f"Reservation {reservation.id} already exists")

            conflicts = self._scan_overlapping(
                reservation.vehicle_id, reservation.start_time, reservation.end_time
            )
            if conflicts:
                logger.debug(
                    f"Memory backend: {len(conflicts)} conflict(s) for vehicle "
                    f"{reservation.vehicle_id}"
                )
                return False, conflicts

            await self._store_reservation(reservation)

        logger.debug(
            f"Memory backend: stored reservation {reservation.id} for vehicle "
            f"{reservation.vehicle_id}"
        )
        return True, []

    async def update_reservation_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        updated_at: datetime,
    ) -> Reservation | None:
        current = self._reservations.get(reservation_id)
        if current is None:
            return None

        async with self._vehicle_locks[current.vehicle_id]:
            reservation = self._reservations.get(reservation_id)
            if reservation is None:
                return None
            reservation.status = status
            reservation.updated_at = updated_at
            return dataclasses.replace(reservation)

    async def get_reservation(self, reservation_id: str) -> Reservation | None:
        reservation = self._reservations.get(reservation_id)
        return dataclasses.replace(reservation) if reservation else None

    async def list_reservations(
        self,
        requester_id: str | None = None,
        vehicle_id: str | None = None,
        status: ReservationStatus | None = None,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
    ) -> list[Reservation]:
        matches = [
            dataclasses.replace(r)
            for r in self._reservations.values()
            if self._matches_filters(
                r, requester_id, vehicle_id, status, start_from, start_to
            )
        ]
        matches.sort(key=lambda r: r.created_at, reverse=True)
        return matches
