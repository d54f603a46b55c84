# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metrics collector backed by both a dict snapshot and Prometheus.

This module provides the MetricsCollector class that records every engine
metric twice: into plain dicts for JSON export via get_metrics(), and into
prometheus_client Counter/Histogram instances for scraping.

Features:
    1. Thread-safe counter/histogram operations
    2. Prometheus metric registration on an injectable registry
    3. Dict snapshot for JSON export
    4. Label cardinality protection (max 1000 unique combinations per metric)
    5. Optional HTTP server for Prometheus scraping

Usage:
    >>> from fleetlink.observability import MetricsCollector
    >>> collector = MetricsCollector()
    >>> collector.inc_counter('fleetlink_status_updates_total',
    ...                       labels={'status': 'cancelled'})
    >>> metrics = collector.get_metrics()

Prometheus Integration:
    Each collector registers its metrics on its own CollectorRegistry unless
    one is passed in, so several engines can live in one process. To expose
    metrics on the default endpoint, pass prometheus_client.REGISTRY.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, ClassVar

from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client import start_http_server as _start_http_server

from .constants import (
    AVAILABILITY_QUERIES_TOTAL,
    BOOKING_CONFLICTS_TOTAL,
    BOOKINGS_COMMITTED_TOTAL,
    INTERNAL_ERRORS_TOTAL,
    LATENCY_BUCKETS,
    OPERATION_LATENCY_SECONDS,
    STATUS_UPDATES_TOTAL,
    VALIDATION_FAILURES_TOTAL,
    VEHICLES_RETURNED_TOTAL,
)

logger = logging.getLogger(__name__)


@dataclass
class MetricDefinition:
    """Schema of a metric: type, description, labels and histogram buckets."""

    name: str
    metric_type: str  # 'counter', 'histogram'
    description: str
    label_names: tuple[str, ...] = ()
    buckets: list[float] | None = None


METRIC_DEFINITIONS: dict[str, MetricDefinition] = {
    AVAILABILITY_QUERIES_TOTAL: MetricDefinition(
        AVAILABILITY_QUERIES_TOTAL,
        "counter",
        "Total availability searches",
        ("backend",),
    ),
    VEHICLES_RETURNED_TOTAL: MetricDefinition(
        VEHICLES_RETURNED_TOTAL,
        "counter",
        "Total vehicles reported available",
        ("backend",),
    ),
    BOOKINGS_COMMITTED_TOTAL: MetricDefinition(
        BOOKINGS_COMMITTED_TOTAL,
        "counter",
        "Total reservations committed",
        ("backend",),
    ),
    BOOKING_CONFLICTS_TOTAL: MetricDefinition(
        BOOKING_CONFLICTS_TOTAL,
        "counter",
        "Total commits rejected by overlapping reservations",
        ("backend",),
    ),
    STATUS_UPDATES_TOTAL: MetricDefinition(
        STATUS_UPDATES_TOTAL,
        "counter",
        "Total reservation status changes",
        ("status",),
    ),
    VALIDATION_FAILURES_TOTAL: MetricDefinition(
        VALIDATION_FAILURES_TOTAL,
        "counter",
        "Total operations rejected for invalid input",
        ("operation",),
    ),
    INTERNAL_ERRORS_TOTAL: MetricDefinition(
        INTERNAL_ERRORS_TOTAL,
        "counter",
        "Total operations failed on storage or infrastructure",
        ("operation",),
    ),
    OPERATION_LATENCY_SECONDS: MetricDefinition(
        OPERATION_LATENCY_SECONDS,
        "histogram",
        "Engine operation latency",
        ("operation",),
        buckets=LATENCY_BUCKETS,
    ),
}


class MetricsCollector:
    """
    Records engine metrics as a dict snapshot and as Prometheus metrics.

    Thread Safety:
        All dict operations use an RLock, so the collector may be shared by
        engines running on different threads.

    Cardinality Protection:
        To prevent unbounded memory growth, a maximum of MAX_LABEL_COMBINATIONS
        unique label combinations are tracked per metric.

    Example:
        >>> collector = MetricsCollector(enable_prometheus=False)
        >>> collector.inc_counter('fleetlink_bookings_committed_total',
        ...                       labels={'backend': 'memory'})
        >>> collector.get_metrics()["counters"]
        {'fleetlink_bookings_committed_total': {'backend=memory': 1}}
    """

    # Maximum unique label combinations per metric to prevent cardinality explosion
    MAX_LABEL_COMBINATIONS: ClassVar[int] = 1000

    # Observations kept per label set for the dict snapshot
    MAX_OBSERVATIONS: ClassVar[int] = 10000

    def __init__(
        self,
        enable_prometheus: bool = True,
        registry: CollectorRegistry | None = None,
    ) -> None:
        """
        Initialize the metrics collector.

        Args:
            enable_prometheus: Whether to mirror metrics into Prometheus
            registry: Prometheus registry; a private one is created if omitted
        """
        self._enable_prometheus = enable_prometheus
        self._registry = registry if registry is not None else CollectorRegistry()

        self._counters: dict[str, dict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self._histograms: dict[str, dict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )

        self._lock = threading.RLock()

        # Prometheus metric instances (lazy initialized)
        self._prom_counters: dict[str, Counter] = {}
        self._prom_histograms: dict[str, Histogram] = {}

        self._label_combinations: dict[str, set[str]] = defaultdict(set)

        self._server_running = False

        logger.debug(
            f"MetricsCollector initialized "
            f"(prometheus={'enabled' if self._enable_prometheus else 'disabled'})"
        )

    def _labels_to_key(self, labels: dict[str, str] | None) -> str:
        """Convert labels dict to a stable string key."""
        if not labels:
            return ""
        return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))

    def _check_cardinality(self, name: str, label_key: str) -> bool:
        """
        Check if adding this label combination would exceed cardinality limit.

        Returns:
            True if the label combination is allowed, False otherwise
        """
        if label_key in self._label_combinations[name]:
            return True
        if len(self._label_combinations[name]) >= self.MAX_LABEL_COMBINATIONS:
            logger.warning(
                f"Cardinality limit ({self.MAX_LABEL_COMBINATIONS}) reached "
                f"for metric {name}. Dropping label combination: {label_key}"
            )
            return False
        self._label_combinations[name].add(label_key)
        return True

    def _get_or_create_prom_counter(self, name: str) -> Counter | None:
        if not self._enable_prometheus:
            return None

        with self._lock:
            if name not in self._prom_counters:
                defn = METRIC_DEFINITIONS.get(name)
                if defn is None or defn.metric_type != "counter":
                    logger.debug(f"No counter definition for {name}")
                    return None
                try:
                    # prometheus_client appends "_total" itself
                    self._prom_counters[name] = Counter(
                        name.removesuffix("_total"),
                        defn.description,
                        list(defn.label_names),
                        registry=self._registry,
                    )
                except ValueError as e:
                    logger.warning(f"Failed to create Prometheus counter {name}: {e}")
                    return None

            return self._prom_counters[name]

    def _get_or_create_prom_histogram(self, name: str) -> Histogram | None:
        if not self._enable_prometheus:
            return None

        with self._lock:
            if name not in self._prom_histograms:
                defn = METRIC_DEFINITIONS.get(name)
                if defn is None or defn.metric_type != "histogram":
                    logger.debug(f"No histogram definition for {name}")
                    return None
                try:
                    self._prom_histograms[name] = Histogram(
                        name,
                        defn.description,
                        list(defn.label_names),
                        buckets=defn.buckets or LATENCY_BUCKETS,
                        registry=self._registry,
                    )
                except ValueError as e:
                    logger.warning(
                        f"Failed to create Prometheus histogram {name}: {e}"
                    )
                    return None

            return self._prom_histograms[name]

    # === Counter Operations ===

    def inc_counter(
        self,
        name: str,
        value: int = 1,
        labels: dict[str, str] | None = None,
    ) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name (should follow Prometheus naming convention)
            value: Value to increment by (must be non-negative)
            labels: Optional labels dict

        Raises:
            ValueError: If value is negative
        """
        if value < 0:
            raise ValueError("Counter increment must be non-negative")

        label_key = self._labels_to_key(labels)

        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            self._counters[name][label_key] += value

        prom_counter = self._get_or_create_prom_counter(name)
        if prom_counter is not None:
            try:
                if labels:
                    prom_counter.labels(**labels).inc(value)
                else:
                    prom_counter.inc(value)
            except ValueError as e:
                logger.debug(f"Prometheus counter update failed for {name}: {e}")

    # === Histogram Operations ===

    def observe_histogram(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Record an observation in a histogram."""
        label_key = self._labels_to_key(labels)

        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            observations = self._histograms[name][label_key]
            observations.append(value)
            if len(observations) > self.MAX_OBSERVATIONS:
                del observations[: len(observations) - self.MAX_OBSERVATIONS // 2]

        prom_histogram = self._get_or_create_prom_histogram(name)
        if prom_histogram is not None:
            try:
                if labels:
                    prom_histogram.labels(**labels).observe(value)
                else:
                    prom_histogram.observe(value)
            except ValueError as e:
                logger.debug(f"Prometheus histogram observe failed for {name}: {e}")

    # === Snapshot Operations ===

    def get_metrics(self) -> dict[str, Any]:
        """
        Get a snapshot of all metrics.

        Returns a dict suitable for JSON serialization with structure:
        {
            "counters": {"metric_name": {"label_key": value, ...}, ...},
            "histograms": {"metric_name": {"label_key": {...}, ...}, ...}
        }
        """
        with self._lock:
            counters = {
                name: dict(label_values)
                for name, label_values in self._counters.items()
            }

            histograms: dict[str, dict[str, dict[str, Any]]] = {}
            for name, label_values in self._histograms.items():
                histograms[name] = {}
                for label_key, observations in label_values.items():
                    if observations:
                        histograms[name][label_key] = {
                            "count": len(observations),
                            "sum": sum(observations),
                            "avg": sum(observations) / len(observations),
                            "min": min(observations),
                            "max": max(observations),
                        }

        return {"counters": counters, "histograms": histograms}

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        """Current value of one counter label set (0 if never incremented)."""
        with self._lock:
            return self._counters.get(name, {}).get(self._labels_to_key(labels), 0)

    def reset(self) -> None:
        """Reset the dict snapshot. Prometheus counters are monotonic and stay."""
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
            self._label_combinations.clear()

        logger.debug("Metrics collector reset")

    # === Prometheus HTTP Server ===

    def start_http_server(self, host: str = "127.0.0.1", port: int = 9090) -> bool:
        """
        Start the Prometheus HTTP server for metrics scraping.

        Args:
            host: Host to bind to (default: 127.0.0.1 for localhost only)
            port: Port to bind to

        Returns:
            True if the server is running, False if it could not be started
        """
        if self._server_running:
            logger.warning("Prometheus server already running")
            return True

        try:
            # start_http_server runs in a daemon thread
            _start_http_server(port, addr=host, registry=self._registry)
        except OSError as e:
            logger.error(f"Failed to start Prometheus server: {e}")
            return False

        self._server_running = True
        logger.info(f"Prometheus metrics server started on {host}:{port}")
        return True

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @property
    def prometheus_enabled(self) -> bool:
        return self._enable_prometheus

    @property
    def server_running(self) -> bool:
        return self._server_running


__all__ = [
    "METRIC_DEFINITIONS",
    "MetricDefinition",
    "MetricsCollector",
]
