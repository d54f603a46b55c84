# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Storage backends for vehicles and reservations.

Available backends:
- BaseBackend: Abstract base class defining the backend interface
- MemoryBackend: In-memory backend for single-process deployments
- RedisBackend: Redis-based backend for multi-process deployments (requires redis extra)

Supporting types:
- HealthCheckResult: Structured result from backend health checks

Note: RedisBackend is lazily imported to avoid requiring the redis package
when only using MemoryBackend.
"""

from typing import TYPE_CHECKING, cast

from fleetlink.backends.base import BaseBackend, HealthCheckResult
from fleetlink.backends.memory import MemoryBackend

# Lazy imports for optional redis backend
if TYPE_CHECKING:
    from fleetlink.backends.redis import RedisBackend

__all__ = [
    # Base classes
    "BaseBackend",
    "HealthCheckResult",
    # Memory backend
    "MemoryBackend",
    # Redis backend (lazy loaded)
    "RedisBackend",
]


def __getattr__(name: str) -> type:
    """Lazy import for optional redis backend components."""
    if name == "RedisBackend":
        try:
            from fleetlink.backends import redis as redis_module

            return cast(type, getattr(redis_module, name))
        except ImportError as e:  # pragma: no cover
            raise ImportError(  # pragma: no cover
                f"'{name}' requires the 'redis' extra. "
                "Install with: pip install fleetlink[redis]"
            ) from e
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
