# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""FleetLink - Vehicle availability and conflict-free booking engine.

This library decides which vehicles can carry a load over a time window
and commits bookings so that no vehicle is ever double-booked, even when
many callers book the same vehicle at once.

Key Features:
    - Half-open interval semantics: back-to-back bookings never conflict
    - Advisory availability search, authoritative atomic commit
    - Per-vehicle locking in memory, Lua-script atomicity on Redis
    - Permissive reservation status lifecycle
    - Pluggable duration estimator and clock
    - Prometheus metrics

Quick Start:
    >>> from fleetlink import create_engine
    >>>
    >>> engine = create_engine("memory")
    >>> async with engine:
    ...     truck = await engine.add_vehicle("Eicher Pro", 5000, 6)
    ...     found = await engine.resolve_availability(
    ...         1200, "400001", "400070", "2030-05-01T09:00:00Z"
    ...     )
    ...     booking = await engine.commit_booking(
    ...         truck.id, "acme-logistics", "400001", "400070",
    ...         "2030-05-01T09:00:00Z",
    ...     )

Main Exports:
    - BookingEngine, create_engine: Engine facade and factory
    - MemoryBackend, RedisBackend: Storage backends
    - EngineConfig: Configuration options
    - Vehicle, Reservation, AvailabilityResult: Data types

Note: RedisBackend requires the 'redis' extra. Install with:
    pip install fleetlink[redis]

Version: 1.0.0
"""

__version__ = "1.0.0"

from typing import TYPE_CHECKING

from .backends import BaseBackend, HealthCheckResult, MemoryBackend
from .config import BackendType, EngineConfig
from .engine import BookingEngine, create_engine
from .estimator import estimate_ride_duration
from .exceptions import (
    BackendConnectionError,
    BackendOperationError,
    ConfigurationError,
    ConflictError,
    FleetLinkError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from .intervals import compute_end, overlaps
from .observability import MetricsCollector
from .protocols import DurationEstimator
from .types import (
    AvailabilityResult,
    AvailableVehicle,
    ConflictingReservation,
    Reservation,
    ReservationStatus,
    TimeWindow,
    Vehicle,
)

# Lazy import for optional redis backend
if TYPE_CHECKING:
    from .backends import RedisBackend

__all__ = [
    "AvailabilityResult",
    "AvailableVehicle",
    "BackendConnectionError",
    "BackendOperationError",
    "BackendType",
    # Backends
    "BaseBackend",
    # Engine
    "BookingEngine",
    "ConfigurationError",
    "ConflictError",
    "ConflictingReservation",
    "DurationEstimator",
    "EngineConfig",
    # Exceptions
    "FleetLinkError",
    "HealthCheckResult",
    "InternalError",
    "MemoryBackend",
    "MetricsCollector",
    "NotFoundError",
    "RedisBackend",
    "Reservation",
    "ReservationStatus",
    "TimeWindow",
    "ValidationError",
    # Types
    "Vehicle",
    "__version__",
    "compute_end",
    "create_engine",
    "estimate_ride_duration",
    "overlaps",
]


def __getattr__(name: str) -> type:
    """Lazy import for optional redis backend."""
    if name == "RedisBackend":
        from .backends import RedisBackend

        return RedisBackend
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
