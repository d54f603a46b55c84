# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Base Backend for FleetLink

This module provides the BaseBackend abstract class that defines the storage
contract the vehicle directory and reservation ledger depend on.

Features:
- Vehicle storage with capacity-filtered reads and activation toggling
- Per-vehicle overlap queries over occupying reservations
- Atomic conditional insert (the only correctness-critical write)
- Status updates serialized with inserts on the same vehicle
"""

import abc
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..types.reservation import Reservation, ReservationStatus
from ..types.vehicle import Vehicle

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    """
    Structured health check result for backend monitoring.

    Attributes:
        healthy: Whether the backend is operational
        backend_type: Type of backend (e.g., 'redis', 'memory')
        namespace: Backend namespace
        error: Error message if unhealthy
        metadata: Additional backend-specific information
    """

    healthy: bool
    backend_type: str
    namespace: str
    error: str | None = None
    metadata: dict[str, Any] | None = None


class BaseBackend(abc.ABC):
    """
    An abstract base class that defines the storage interface for the
    booking engine.

    A backend exclusively owns the authoritative copies of vehicles and
    reservations. Implementations must guarantee that
    insert_reservation_if_no_conflict() runs its overlap check and its write
    as one atomic unit per vehicle, and that update_reservation_status()
    cannot interleave with it for the same vehicle. Operations on different
    vehicles need no mutual exclusion.

    Returned objects are copies; mutating them never changes stored state.
    """

    backend_type: str = "base"

    def __init__(self, namespace: str = "fleetlink"):
        """
        Initialize the backend with a namespace for isolation.

        Args:
            namespace: Namespace for isolating data across different instances
        """
        self.namespace = namespace

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def connect(self) -> None:
        """Open connections and load server-side resources. Idempotent."""
        return None

    async def close(self) -> None:
        """Release connections. Idempotent."""
        return None

    @abc.abstractmethod
    async def health_check(self) -> HealthCheckResult:
        """
        Perform a health check on the backend.

        Returns:
            HealthCheckResult describing the backend state
        """
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Remove every vehicle and reservation in this namespace."""
        pass

    # ==========================================================================
    # Vehicles
    # ==========================================================================

    @abc.abstractmethod
    async def insert_vehicle(self, vehicle: Vehicle) -> Vehicle:
        """
        Store a new, already validated vehicle.

        Args:
            vehicle: The vehicle to store

        Returns:
            The stored vehicle
        """
        pass

    @abc.abstractmethod
    async def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        """
        Fetch a vehicle regardless of its active flag.

        Returns:
            The vehicle if it exists, None otherwise
        """
        pass

    @abc.abstractmethod
    async def set_vehicle_active(
        self, vehicle_id: str, is_active: bool
    ) -> Vehicle | None:
        """
        Set the active flag of a vehicle.

        Returns:
            The updated vehicle, or None if it does not exist
        """
        pass

    @abc.abstractmethod
    async def find_vehicles(
        self, min_capacity_kg: float = 0.0, active_only: bool = True
    ) -> list[Vehicle]:
        """
        Find vehicles whose capacity is at least ``min_capacity_kg``.

        Args:
            min_capacity_kg: Inclusive lower bound on capacity
            active_only: Skip deactivated vehicles

        Returns:
            Matching vehicles, most recently created first
        """
        pass

    # ==========================================================================
    # Reservations
    # ==========================================================================

    @abc.abstractmethod
    async def find_overlapping(
        self, vehicle_id: str, start: datetime, end: datetime
    ) -> list[Reservation]:
        """
        Find occupying reservations of a vehicle that overlap [start, end).

        The result must come from one consistent snapshot of the vehicle's
        reservations.

        Returns:
            Overlapping reservations ordered by start time
        """
        pass

    @abc.abstractmethod
    async def insert_reservation_if_no_conflict(
        self, reservation: Reservation
    ) -> tuple[bool, list[Reservation]]:
        """
        Atomically check for overlaps and insert the reservation.

        The overlap check must observe every reservation committed before
        it, and no other insert or status change for the same vehicle may
        run between the check and the write.

        Args:
            reservation: Fully populated reservation to store

        Returns:
            (True, []) if inserted; (False, conflicts) if any occupying
            reservation overlaps, in which case nothing is written
        """
        pass

    @abc.abstractmethod
    async def update_reservation_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        updated_at: datetime,
    ) -> Reservation | None:
        """
        Set a reservation's status without re-checking overlap.

        Returns:
            The updated reservation, or None if it does not exist
        """
        pass

    @abc.abstractmethod
    async def get_reservation(self, reservation_id: str) -> Reservation | None:
        """Fetch one reservation by id."""
        pass

    @abc.abstractmethod
    async def list_reservations(
        self,
        requester_id: str | None = None,
        vehicle_id: str | None = None,
        status: ReservationStatus | None = None,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
    ) -> list[Reservation]:
        """
        List reservations matching every given filter.

        Date bounds apply to start_time and are inclusive.

        Returns:
            Matching reservations, most recently created first
        """
        pass

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _matches_filters(
        reservation: Reservation,
        requester_id: str | None,
        vehicle_id: str | None,
        status: ReservationStatus | None,
        start_from: datetime | None,
        start_to: datetime | None,
    ) -> bool:
        """Shared predicate for list_reservations() implementations."""
        if requester_id is not None and reservation.requester_id != requester_id:
            return False
        if vehicle_id is not None and reservation.vehicle_id != vehicle_id:
            return False
        if status is not None and reservation.status != status:
            return False
        if start_from is not None and reservation.start_time < start_from:
            return False
        return not (start_to is not None and reservation.start_time > start_to)

    async def __aenter__(self) -> "BaseBackend":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.close()
