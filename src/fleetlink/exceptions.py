# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the FleetLink booking engine.

All exceptions inherit from FleetLinkError, so callers can catch every
engine-originated error with a single except clause. The four outcome
types a transport layer maps to responses are:

- ValidationError: malformed or out-of-range input
- NotFoundError: unknown (or, for vehicles, inactive) reference
- ConflictError: authoritative overlap found at commit time
- InternalError: storage or infrastructure failure
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types.reservation import ConflictingReservation


class FleetLinkError(Exception):
    """Base exception for all booking engine errors.

    Example:
        try:
            await engine.commit_booking(...)
        except FleetLinkError as e:
            logger.error(f"Booking failed: {e}")
    """

    pass


class ValidationError(FleetLinkError):
    """Raised when input is malformed or out of range.

    Covers missing fields, wrong shapes, non-6-digit location codes, start
    times in the past or more than a year ahead, and non-positive capacity.
    The caller recovers by correcting the input; the engine never retries.

    Attributes:
        field: Name of the offending input field, when known.

    Example:
        try:
            await engine.resolve_availability(0, "110001", "110020", start)
        except ValidationError as e:
            return {"error": "Validation Error", "message": str(e)}
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(FleetLinkError):
    """Raised when a vehicle or reservation reference cannot be resolved.

    For bookings, an inactive vehicle is reported the same way as a missing
    one.

    Attributes:
        resource: Kind of resource ("vehicle" or "reservation").
        resource_id: The identifier that was looked up.
    """

    def __init__(
        self,
        message: str,
        resource: str | None = None,
        resource_id: str | None = None,
    ):
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(FleetLinkError):
    """Raised when a commit finds overlapping reservations on the vehicle.

    The ledger is left unchanged. Retrying the same request blindly will
    fail again; pick another vehicle or time window instead.

    Attributes:
        vehicle_id: The vehicle the commit targeted.
        conflicts: Every occupying reservation that overlapped the requested
            window at the moment of the check.

    Example:
        try:
            reservation = await engine.commit_booking(...)
        except ConflictError as e:
            for c in e.conflicts:
                print(c.reservation_id, c.start_time, c.end_time, c.route_summary)
    """

    def __init__(
        self,
        message: str,
        vehicle_id: str | None = None,
        conflicts: list[ConflictingReservation] | None = None,
    ):
        super().__init__(message)
        self.vehicle_id = vehicle_id
        self.conflicts = list(conflicts or [])


class InternalError(FleetLinkError):
    """Raised when storage or infrastructure fails.

    The engine logs the original exception and surfaces this error with a
    generic message, so backend details never reach the caller.
    """

    pass


class BackendConnectionError(InternalError):
    """Raised when the storage backend cannot be reached.

    Example:
        try:
            await backend.connect()
        except BackendConnectionError:
            logger.warning("Redis unavailable")
    """

    pass


class BackendOperationError(InternalError):
    """Raised when a storage operation fails after the connection is up.

    Typical causes are script errors, corrupt records, or serialization
    failures.
    """

    pass


class ConfigurationError(FleetLinkError):
    """Raised when configuration is invalid.

    Also raised when the injected duration estimator returns something that
    is not a positive finite number of hours. The engine logs it and
    surfaces a generic InternalError to callers.

    Example:
        try:
            config = EngineConfig(max_tyres=1)
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            raise SystemExit(1)
    """

    pass
