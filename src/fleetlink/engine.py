# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
BookingEngine: the public facade of the availability-and-conflict engine.

The engine wires the vehicle directory, reservation ledger, availability
resolver and booking committer around one injected storage backend, and
owns that backend's lifecycle. It is also the error boundary: the four
outcome errors (validation, not found, conflict, internal) pass through
unchanged, while anything unexpected, including a misbehaving estimator,
is logged with its traceback and replaced by a generic InternalError.
"""

import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from typing_extensions import Self

from .backends.base import BaseBackend, HealthCheckResult
from .backends.memory import MemoryBackend
from .committer import BookingCommitter
from .config import BackendType, EngineConfig
from .directory import VehicleDirectory
from .estimator import estimate_ride_duration
from .exceptions import (
    ConfigurationError,
    ConflictError,
    FleetLinkError,
    InternalError,
    ValidationError,
)
from .intervals import parse_instant
from .ledger import ReservationLedger
from .observability.collector import MetricsCollector
from .observability.constants import (
    AVAILABILITY_QUERIES_TOTAL,
    BOOKING_CONFLICTS_TOTAL,
    BOOKINGS_COMMITTED_TOTAL,
    INTERNAL_ERRORS_TOTAL,
    OPERATION_LATENCY_SECONDS,
    STATUS_UPDATES_TOTAL,
    VALIDATION_FAILURES_TOTAL,
    VEHICLES_RETURNED_TOTAL,
)
from .protocols.estimator import DurationEstimator
from .resolver import AvailabilityResolver
from .types.availability import AvailabilityResult
from .types.reservation import Reservation, ReservationStatus
from .types.vehicle import Vehicle

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingEngine:
    """
    Vehicle availability and booking engine.

    The engine is responsible for:
    - Opening and closing the storage backend (start/stop, async with)
    - Delegating to the directory, ledger, resolver and committer
    - Mapping unexpected failures to InternalError
    - Recording metrics for every operation

    Example:
        >>> engine = create_engine("memory")
        >>> async with engine:
        ...     truck = await engine.add_vehicle("Tata 407", 2500, 6)
        ...     result = await engine.resolve_availability(
        ...         1000, "110001", "110020", "2030-01-01T10:00:00Z"
        ...     )
        ...     booking = await engine.commit_booking(
        ...         truck.id, "customer-42", "110001", "110020",
        ...         "2030-01-01T10:00:00Z",
        ...     )
    """

    def __init__(
        self,
        backend: BaseBackend,
        config: EngineConfig | None = None,
        estimator: DurationEstimator | Callable[[str, str], float] | None = None,
        clock: Callable[[], datetime] | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            backend: Storage backend; the engine opens and closes it
            config: Engine configuration (defaults to EngineConfig())
            estimator: Duration estimator (defaults to estimate_ride_duration)
            clock: Returns the current aware UTC time; injectable for tests
            metrics: Metrics collector; one is created when metrics are enabled
        """
        self.config = config or EngineConfig()
        self.backend = backend
        self._estimator = estimator or estimate_ride_duration
        self._clock = clock or _utcnow

        if metrics is not None:
            self.metrics_collector: MetricsCollector | None = metrics
        elif self.config.metrics_enabled:
            self.metrics_collector = MetricsCollector()
        else:
            self.metrics_collector = None

        self.directory = VehicleDirectory(backend, self.config, self._clock)
        self.ledger = ReservationLedger(backend, self._clock)
        self.resolver = AvailabilityResolver(
            self.directory, self.ledger, self._estimator, self._clock
        )
        self.committer = BookingCommitter(
            self.directory,
            self.ledger,
            self._estimator,
            self._clock,
            max_advance_booking=self.config.max_advance_booking,
        )

        self._running = False

    # === Lifecycle ===

    async def start(self) -> None:
        """Open the backend. Idempotent."""
        if self._running:
            return
        await self.backend.connect()
        self._running = True
        logger.info(
            f"Booking engine started (backend={self.backend.backend_type}, "
            f"namespace={self.backend.namespace})"
        )

    async def stop(self) -> None:
        """Close the backend. Idempotent."""
        if not self._running:
            return
        self._running = False
        await self.backend.close()
        logger.info("Booking engine stopped")

    def is_running(self) -> bool:
        return self._running

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    # === Metrics helpers ===

    def _inc(self, name: str, value: int = 1, **labels: str) -> None:
        if self.metrics_collector is not None:
            self.metrics_collector.inc_counter(name, value, labels=labels or None)

    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[None]:
        """Error boundary and latency timer around one engine operation."""
        if not self._running:
            raise FleetLinkError("Engine is not running")

        started = time.perf_counter()
        try:
            yield
        except ValidationError as e:
            logger.debug(f"{name} rejected: {e}")
            self._inc(VALIDATION_FAILURES_TOTAL, operation=name)
            raise
        except ConflictError:
            self._inc(BOOKING_CONFLICTS_TOTAL, backend=self.backend.backend_type)
            raise
        except (InternalError, ConfigurationError):
            logger.exception(f"Storage or collaborator failure during {name}")
            self._inc(INTERNAL_ERRORS_TOTAL, operation=name)
            raise InternalError("Internal server error") from None
        except FleetLinkError:
            raise
        except Exception:
            logger.exception(f"Unexpected error during {name}")
            self._inc(INTERNAL_ERRORS_TOTAL, operation=name)
            raise InternalError("Internal server error") from None
        finally:
            if self.metrics_collector is not None:
                self.metrics_collector.observe_histogram(
                    OPERATION_LATENCY_SECONDS,
                    time.perf_counter() - started,
                    labels={"operation": name},
                )

    # === Vehicles ===

    async def add_vehicle(self, name: str, capacity_kg: float, tyres: int) -> Vehicle:
        """Add an active vehicle to the fleet."""
        async with self._operation("add_vehicle"):
            return await self.directory.insert(name, capacity_kg, tyres)

    async def deactivate_vehicle(self, vehicle_id: str) -> Vehicle:
        """Exclude a vehicle from future searches and bookings."""
        async with self._operation("deactivate_vehicle"):
            return await self.directory.deactivate(vehicle_id)

    async def get_vehicle(self, vehicle_id: str) -> Vehicle:
        async with self._operation("get_vehicle"):
            return await self.directory.get(vehicle_id)

    async def list_vehicles(self) -> list[Vehicle]:
        """Active vehicles, newest first."""
        async with self._operation("list_vehicles"):
            return await self.directory.list_active()

    # === Availability and Booking ===

    async def resolve_availability(
        self,
        capacity_kg: float,
        origin: str,
        destination: str,
        start: datetime | str,
    ) -> AvailabilityResult:
        """
        Search for vehicles free for a load, route and start time.

        The result is advisory; it never reserves anything and never raises
        ConflictError.
        """
        async with self._operation("resolve_availability"):
            result = await self.resolver.resolve(
                capacity_kg, origin, destination, start
            )
            backend_label = self.backend.backend_type
            self._inc(AVAILABILITY_QUERIES_TOTAL, backend=backend_label)
            self._inc(
                VEHICLES_RETURNED_TOTAL,
                len(result.available_vehicles),
                backend=backend_label,
            )
            return result

    async def commit_booking(
        self,
        vehicle_id: str,
        requester_id: str,
        origin: str,
        destination: str,
        start: datetime | str,
    ) -> Reservation:
        """
        Book a vehicle. This is the only call that can claim a time slot.

        Raises:
            ValidationError: If any input is malformed or start is outside the
                booking window
            NotFoundError: If the vehicle is unknown or inactive
            ConflictError: If the vehicle is taken for an overlapping window
            InternalError: On storage failure
        """
        async with self._operation("commit_booking"):
            reservation = await self.committer.commit(
                vehicle_id, requester_id, origin, destination, start
            )
            self._inc(BOOKINGS_COMMITTED_TOTAL, backend=self.backend.backend_type)
            return reservation

    # === Reservations ===

    async def update_reservation_status(
        self, reservation_id: str, status: ReservationStatus | str
    ) -> Reservation:
        """Set a reservation's status. Any status may follow any other."""
        async with self._operation("update_reservation_status"):
            reservation = await self.ledger.update_status(reservation_id, status)
            self._inc(STATUS_UPDATES_TOTAL, status=reservation.status.value)
            return reservation

    async def get_reservation(self, reservation_id: str) -> Reservation:
        async with self._operation("get_reservation"):
            return await self.ledger.get(reservation_id)

    async def list_reservations(
        self,
        requester_id: str | None = None,
        vehicle_id: str | None = None,
        status: ReservationStatus | str | None = None,
        start_from: datetime | str | None = None,
        start_to: datetime | str | None = None,
    ) -> list[Reservation]:
        """
        List reservations matching every given filter, newest first.

        start_from and start_to bound the start time inclusively and accept
        the same formats as booking start times.
        """
        async with self._operation("list_reservations"):
            return await self.ledger.list(
                requester_id=requester_id,
                vehicle_id=vehicle_id,
                status=status,
                start_from=(
                    parse_instant(start_from, "start_from")
                    if start_from is not None
                    else None
                ),
                start_to=(
                    parse_instant(start_to, "start_to")
                    if start_to is not None
                    else None
                ),
            )

    # === Monitoring ===

    async def health_check(self) -> HealthCheckResult:
        """Backend health; safe to call whether or not the engine is running."""
        return await self.backend.health_check()

    def get_metrics(self) -> dict[str, Any]:
        """Snapshot of engine state and collected metrics."""
        metrics: dict[str, Any] = {
            "running": self._running,
            "backend": self.backend.backend_type,
            "namespace": self.backend.namespace,
            "metrics_enabled": self.metrics_collector is not None,
        }
        if self.metrics_collector is not None:
            metrics.update(self.metrics_collector.get_metrics())
        return metrics


def create_engine(
    backend: str | BackendType | BaseBackend | None = None,
    config: EngineConfig | None = None,
    estimator: DurationEstimator | Callable[[str, str], float] | None = None,
    clock: Callable[[], datetime] | None = None,
    metrics: MetricsCollector | None = None,
    **backend_options: Any,
) -> BookingEngine:
    """
    Factory function to create a BookingEngine with its backend.

    Args:
        backend: "memory", "redis", a BackendType, or a ready backend instance.
            If None, uses config.backend.
        config: Optional engine config (a default is created if not provided)
        estimator: Optional duration estimator
        clock: Optional clock returning aware UTC datetimes
        metrics: Optional metrics collector
        **backend_options: Passed to the backend constructor, e.g. redis_url,
            redis_client or max_connections for RedisBackend

    Returns:
        Configured BookingEngine instance (not yet started)

    Raises:
        ValueError: If the backend name is unknown
    """
    if config is None:
        config = EngineConfig()

    if isinstance(backend, BaseBackend):
        instance = backend
    else:
        if backend is None:
            backend_type = config.backend
        elif isinstance(backend, BackendType):
            backend_type = backend
        else:
            try:
                backend_type = BackendType(backend.lower())
            except ValueError as e:
                raise ValueError(f"Unknown backend: {backend}") from e

        if backend_type is BackendType.REDIS:
            # Imported lazily: redis is an optional extra
            from .backends.redis import RedisBackend

            instance = RedisBackend(namespace=config.namespace, **backend_options)
        else:
            instance = MemoryBackend(namespace=config.namespace, **backend_options)

    return BookingEngine(
        instance, config=config, estimator=estimator, clock=clock, metrics=metrics
    )


__all__ = ["BookingEngine", "create_engine"]
