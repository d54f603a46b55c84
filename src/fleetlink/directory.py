# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""VehicleDirectory: validated access to the fleet's vehicle records."""

import logging
import math
import uuid
from collections.abc import Callable
from datetime import datetime

from .backends.base import BaseBackend
from .config import EngineConfig
from .exceptions import NotFoundError, ValidationError
from .intervals import validate_capacity
from .types.vehicle import Vehicle

logger = logging.getLogger(__name__)


class VehicleDirectory:
    """
    Owns vehicle records: insertion, deactivation and capacity lookups.

    Vehicles are never deleted. Capacity lookups need no isolation; a
    vehicle deactivated mid-search may still be returned, and the booking
    path re-checks activeness before committing.
    """

    def __init__(
        self,
        backend: BaseBackend,
        config: EngineConfig,
        clock: Callable[[], datetime],
    ):
        self._backend = backend
        self._config = config
        self._clock = clock

    def _validate_name(self, name: object) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Vehicle name is required", field="name")
        name = name.strip()
        if len(name) > self._config.max_vehicle_name_length:
            raise ValidationError(
                f"Vehicle name cannot exceed "
                f"{self._config.max_vehicle_name_length} characters",
                field="name",
            )
        return name

    def _validate_capacity(self, capacity_kg: object) -> float:
        if (
            isinstance(capacity_kg, bool)
            or not isinstance(capacity_kg, (int, float))
            or not math.isfinite(capacity_kg)
        ):
            raise ValidationError("Capacity must be a number", field="capacity_kg")
        low, high = self._config.min_capacity_kg, self._config.max_capacity_kg
        if not low <= capacity_kg <= high:
            raise ValidationError(
                f"Capacity must be between {low:g} and {high:g} kg",
                field="capacity_kg",
            )
        return float(capacity_kg)

    def _validate_tyres(self, tyres: object) -> int:
        if isinstance(tyres, bool) or not isinstance(tyres, int):
            raise ValidationError("Tyres must be a whole number", field="tyres")
        low, high = self._config.min_tyres, self._config.max_tyres
        if not low <= tyres <= high:
            raise ValidationError(
                f"Vehicle must have between {low} and {high} tyres", field="tyres"
            )
        return tyres

    async def insert(self, name: str, capacity_kg: float, tyres: int) -> Vehicle:
        """
        Validate and store a new active vehicle.

        Raises:
            ValidationError: On an empty or overlong name, or capacity or
                tyre count outside the configured bounds
        """
        vehicle = Vehicle(
            id=uuid.uuid4().hex,
            name=self._validate_name(name),
            capacity_kg=self._validate_capacity(capacity_kg),
            tyres=self._validate_tyres(tyres),
            is_active=True,
            created_at=self._clock(),
        )
        stored = await self._backend.insert_vehicle(vehicle)
        logger.info(f"Vehicle added: {stored.id} ({stored.summary})")
        return stored

    async def deactivate(self, vehicle_id: str) -> Vehicle:
        """
        Hide a vehicle from future searches and bookings. Idempotent.

        Raises:
            NotFoundError: If the vehicle does not exist
        """
        vehicle = await self._backend.set_vehicle_active(vehicle_id, False)
        if vehicle is None:
            raise NotFoundError(
                "Vehicle not found", resource="vehicle", resource_id=vehicle_id
            )
        logger.info(f"Vehicle deactivated: {vehicle_id}")
        return vehicle

    async def get(self, vehicle_id: str) -> Vehicle:
        vehicle = await self._backend.get_vehicle(vehicle_id)
        if vehicle is None:
            raise NotFoundError(
                "Vehicle not found", resource="vehicle", resource_id=vehicle_id
            )
        return vehicle

    async def get_active(self, vehicle_id: str) -> Vehicle:
        """Fetch a vehicle that can take new bookings.

        Raises:
            NotFoundError: If the vehicle is unknown or deactivated
        """
        vehicle = await self._backend.get_vehicle(vehicle_id)
        if vehicle is None or not vehicle.is_active:
            raise NotFoundError(
                "Vehicle not found or inactive",
                resource="vehicle",
                resource_id=vehicle_id,
            )
        return vehicle

    async def find_by_min_capacity(self, capacity_kg: float) -> list[Vehicle]:
        """Active vehicles with capacity_kg >= the requested load, newest first."""
        capacity_kg = validate_capacity(capacity_kg)
        vehicles = await self._backend.find_vehicles(
            min_capacity_kg=capacity_kg, active_only=True
        )
        logger.debug(f"{len(vehicles)} active vehicle(s) carry >= {capacity_kg:g}kg")
        return vehicles

    async def list_active(self) -> list[Vehicle]:
        return await self._backend.find_vehicles(min_capacity_kg=0.0, active_only=True)


__all__ = ["VehicleDirectory"]
