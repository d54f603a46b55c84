"""
Shared fixtures for benchmark tests.
"""

import pytest

from fleetlink.backends.memory import MemoryBackend
from fleetlink.config import EngineConfig
from fleetlink.engine import BookingEngine


def one_hour(origin: str, destination: str) -> float:
    """Constant estimator so timings exclude estimation."""
    return 1.0


@pytest.fixture
def benchmark_config():
    """Configuration with metrics off to measure the engine alone."""
    return EngineConfig(metrics_enabled=False)


@pytest.fixture
async def bench_engine(benchmark_config):
    """Running engine on a memory backend."""
    engine = BookingEngine(
        MemoryBackend(namespace="bench"),
        config=benchmark_config,
        estimator=one_hour,
    )
    await engine.start()
    yield engine
    await engine.stop()
