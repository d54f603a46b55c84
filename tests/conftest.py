# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures for the FleetLink test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from fleetlink.backends.memory import MemoryBackend
from fleetlink.config import EngineConfig
from fleetlink.engine import BookingEngine
from fleetlink.observability.collector import MetricsCollector

NOW = datetime(2030, 1, 1, 8, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def memory_backend():
    return MemoryBackend(namespace="test")


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
async def make_engine(clock, metrics):
    """Factory for running engines; every engine it builds is stopped afterwards."""
    engines: list[BookingEngine] = []

    async def factory(backend=None, estimator=None, config=None):
        engine = BookingEngine(
            backend if backend is not None else MemoryBackend(namespace="test"),
            config=config or EngineConfig(),
            estimator=estimator,
            clock=clock,
            metrics=metrics,
        )
        await engine.start()
        engines.append(engine)
        return engine

    yield factory

    for engine in engines:
        await engine.stop()


@pytest.fixture
async def engine(make_engine, memory_backend):
    """Running engine on a memory backend with the default estimator."""
    return await make_engine(backend=memory_backend)
