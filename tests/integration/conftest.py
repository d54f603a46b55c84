"""
Backend fixtures for the integration suite.

Every test that asks for ``backend`` runs twice: once on MemoryBackend and
once on RedisBackend over fakeredis, which executes the real Lua scripts
through lupa. The Redis run is skipped when either package is missing.
"""

from __future__ import annotations

import pytest

from fleetlink.backends.memory import MemoryBackend

try:
    import fakeredis.aioredis as fakeredis
except ImportError:
    fakeredis = None

try:
    import lupa
except ImportError:
    lupa = None


@pytest.fixture(params=["memory", "redis"])
async def backend(request):
    """A connected, empty backend of each kind."""
    if request.param == "memory":
        instance = MemoryBackend(namespace="it")
        await instance.connect()
        yield instance
        await instance.close()
        return

    if fakeredis is None or lupa is None:
        pytest.skip("fakeredis and lupa are required for the Redis backend")

    from fleetlink.backends.redis import RedisBackend

    client = fakeredis.FakeRedis(decode_responses=True)
    instance = RedisBackend(redis_client=client, namespace="it")
    await instance.connect()
    yield instance
    await instance.close()
    await client.aclose()
