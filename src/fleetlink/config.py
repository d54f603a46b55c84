# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Engine Configuration for FleetLink

This module provides the configuration class for the booking engine,
covering booking-window limits, vehicle validation bounds and metrics.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from .exceptions import ConfigurationError


class BackendType(Enum):
    """Storage backend selected by create_engine().

    - MEMORY: Single-process dict storage guarded by per-vehicle asyncio
      locks. Use for tests, development and single-worker deployments.
    - REDIS: Shared storage with atomic Lua scripts. Use whenever more than
      one process books against the same fleet.
    """

    MEMORY = "memory"
    REDIS = "redis"


@dataclass
class EngineConfig:
    """
    Configuration for the booking engine.

    All limits mirror the validation rules of the fleet service: vehicles
    carry between 1 and 50,000 kg on 2 to 18 tyres, and bookings may be
    placed at most one year ahead.
    """

    # === Booking Window ===

    max_advance_booking: timedelta = field(
        default_factory=lambda: timedelta(days=365)
    )
    """Furthest ahead a booking may start."""

    # === Vehicle Validation ===

    min_capacity_kg: float = 1.0
    """Smallest capacity accepted for a new vehicle."""

    max_capacity_kg: float = 50_000.0
    """Largest capacity accepted for a new vehicle."""

    min_tyres: int = 2
    """Fewest tyres accepted for a new vehicle."""

    max_tyres: int = 18
    """Most tyres accepted for a new vehicle."""

    max_vehicle_name_length: int = 100
    """Maximum length of a vehicle display name after trimming."""

    # === Storage ===

    backend: BackendType = BackendType.MEMORY
    """Backend used by create_engine() when none is passed explicitly."""

    namespace: str = "fleetlink"
    """Namespace prefix isolating this engine's keys in shared storage."""

    # === Metrics and Monitoring ===

    metrics_enabled: bool = True
    """Enable metrics collection."""

    def __post_init__(self) -> None:
        if self.max_advance_booking <= timedelta(0):
            raise ConfigurationError("max_advance_booking must be positive")
        if self.min_capacity_kg <= 0:
            raise ConfigurationError("min_capacity_kg must be positive")
        if self.max_capacity_kg < self.min_capacity_kg:
            raise ConfigurationError(
                "max_capacity_kg must be greater than or equal to min_capacity_kg"
            )
        if self.min_tyres < 1 or self.max_tyres < self.min_tyres:
            raise ConfigurationError(
                f"Invalid tyre bounds: [{self.min_tyres}, {self.max_tyres}]"
            )
        if self.max_vehicle_name_length < 1:
            raise ConfigurationError("max_vehicle_name_length must be at least 1")
        if not self.namespace:
            raise ConfigurationError("namespace must not be empty")
