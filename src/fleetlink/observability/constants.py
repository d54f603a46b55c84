# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric name constants following Prometheus naming conventions.

All metric names use the `fleetlink_` prefix.

Naming Conventions:
    - Counter metrics end with `_total`
    - Histogram metrics for time end with `_seconds`

Label Best Practices:
    To prevent label cardinality explosion, use only:
    - `operation` - Engine operation (enum: resolve_availability, commit_booking, ...)
    - `status` - Reservation status (enum: confirmed, in-progress, completed, cancelled)
    - `backend` - Backend type (enum: memory, redis)

    NEVER use:
    - `vehicle_id` - Grows with the fleet (unbounded!)
    - `reservation_id` - Unique per booking (unbounded!)
    - `requester_id` - Unique per user (unbounded!)

Usage:
    >>> from fleetlink.observability.constants import BOOKINGS_COMMITTED_TOTAL
    >>> print(BOOKINGS_COMMITTED_TOTAL)
    'fleetlink_bookings_committed_total'
"""


# =============================================================================
# Global Prefix
# =============================================================================

METRIC_PREFIX = "fleetlink"
"""Prefix for all Prometheus metrics in this library."""


# =============================================================================
# Availability Metrics (resolver.py)
# =============================================================================

AVAILABILITY_QUERIES_TOTAL = f"{METRIC_PREFIX}_availability_queries_total"
"""Total availability searches that completed."""

VEHICLES_RETURNED_TOTAL = f"{METRIC_PREFIX}_vehicles_returned_total"
"""Total vehicles reported available across all searches."""


# =============================================================================
# Booking Metrics (committer.py, ledger.py)
# =============================================================================

BOOKINGS_COMMITTED_TOTAL = f"{METRIC_PREFIX}_bookings_committed_total"
"""Total reservations committed."""

BOOKING_CONFLICTS_TOTAL = f"{METRIC_PREFIX}_booking_conflicts_total"
"""Total commits rejected because of overlapping reservations."""

STATUS_UPDATES_TOTAL = f"{METRIC_PREFIX}_status_updates_total"
"""Total reservation status changes, by new status."""


# =============================================================================
# Failure Metrics (engine.py)
# =============================================================================

VALIDATION_FAILURES_TOTAL = f"{METRIC_PREFIX}_validation_failures_total"
"""Total operations rejected for invalid input."""

INTERNAL_ERRORS_TOTAL = f"{METRIC_PREFIX}_internal_errors_total"
"""Total operations that failed on storage or infrastructure."""


# =============================================================================
# Latency
# =============================================================================

OPERATION_LATENCY_SECONDS = f"{METRIC_PREFIX}_operation_latency_seconds"
"""Engine operation latency (histogram)."""

LATENCY_BUCKETS: list[float] = [
    0.001,
    0.0025,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
]
"""Latency buckets for operation duration histograms (in seconds)."""


__all__ = [
    # Availability
    "AVAILABILITY_QUERIES_TOTAL",
    # Bookings
    "BOOKINGS_COMMITTED_TOTAL",
    "BOOKING_CONFLICTS_TOTAL",
    "INTERNAL_ERRORS_TOTAL",
    # Buckets
    "LATENCY_BUCKETS",
    # Prefix
    "METRIC_PREFIX",
    # Latency
    "OPERATION_LATENCY_SECONDS",
    "STATUS_UPDATES_TOTAL",
    # Failures
    "VALIDATION_FAILURES_TOTAL",
    "VEHICLES_RETURNED_TOTAL",
]
