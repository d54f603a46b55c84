# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Observability and metrics for the FleetLink booking engine.

Classes:
    MetricsCollector: Collector recording dict snapshots and Prometheus metrics.
    MetricDefinition: Schema of a predefined metric.

Constants:
    All metric name constants from the constants module.
"""

from .collector import METRIC_DEFINITIONS, MetricDefinition, MetricsCollector
from .constants import (
    AVAILABILITY_QUERIES_TOTAL,
    BOOKING_CONFLICTS_TOTAL,
    BOOKINGS_COMMITTED_TOTAL,
    INTERNAL_ERRORS_TOTAL,
    LATENCY_BUCKETS,
    METRIC_PREFIX,
    OPERATION_LATENCY_SECONDS,
    STATUS_UPDATES_TOTAL,
    VALIDATION_FAILURES_TOTAL,
    VEHICLES_RETURNED_TOTAL,
)

__all__ = [
    "AVAILABILITY_QUERIES_TOTAL",
    "BOOKINGS_COMMITTED_TOTAL",
    "BOOKING_CONFLICTS_TOTAL",
    "INTERNAL_ERRORS_TOTAL",
    "LATENCY_BUCKETS",
    "METRIC_DEFINITIONS",
    "METRIC_PREFIX",
    "OPERATION_LATENCY_SECONDS",
    "STATUS_UPDATES_TOTAL",
    "VALIDATION_FAILURES_TOTAL",
    "VEHICLES_RETURNED_TOTAL",
    "MetricDefinition",
    "MetricsCollector",
]
