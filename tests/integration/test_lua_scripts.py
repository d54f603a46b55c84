"""
Integration tests for Redis Lua scripts using fakeredis.

Unlike the unit tests, which mock evalsha(), these tests execute the real
Lua scripts against a fake Redis instance.

Prerequisites:
    - fakeredis>=2.26.0
    - lupa>=2.0 (required for Lua script execution in fakeredis)

Scripts Tested:
    1. insert_reservation_if_no_conflict.lua - Atomic check-and-insert
    2. find_overlapping_reservations.lua - Consistent overlap query
    3. update_reservation_status.lua - Status change and occupancy sync
    4. set_vehicle_active.lua - Vehicle activation flag
"""

from pathlib import Path

import pytest

try:
    import fakeredis.aioredis as fakeredis
except ImportError:
    fakeredis = None

try:
    import lupa
except ImportError:
    lupa = None


# Skip all tests if dependencies not available
pytestmark = [
    pytest.mark.skipif(fakeredis is None, reason="fakeredis not installed"),
    pytest.mark.skipif(lupa is None, reason="lupa not installed (required for Lua)"),
]


LUA_DIR = Path(__file__).parent.parent.parent / "src/fleetlink/backends/lua"
LUA_SCRIPTS: dict[str, str] = {}

for script_name in [
    "insert_reservation_if_no_conflict",
    "find_overlapping_reservations",
    "update_reservation_status",
    "set_vehicle_active",
]:
    script_path = LUA_DIR / f"{script_name}.lua"
    if script_path.exists():
        LUA_SCRIPTS[script_name] = script_path.read_text()

PREFIX = "fl:test:reservation:"
OCCUPYING = "fl:test:occupying:v1"
INDEX = "fl:test:reservations"

HOUR_US = 3_600_000_000
# 2030-01-01T10:00:00Z
BASE_US = 1_893_492_000_000_000


@pytest.fixture
async def redis():
    """Create a fresh fakeredis instance for each test."""
    assert fakeredis is not None, "fakeredis not available"
    r = fakeredis.FakeRedis(decode_responses=True)
    yield r
    await r.aclose()


@pytest.fixture
async def script_shas(redis):
    """Load all Lua scripts and return their SHAs."""
    shas = {}
    for name, script in LUA_SCRIPTS.items():
        shas[name] = await redis.script_load(script)
    return shas


async def insert(redis, shas, reservation_id, start_us, end_us, created_us=1):
    return await redis.evalsha(
        shas["insert_reservation_if_no_conflict"],
        3,
        OCCUPYING,
        PREFIX + reservation_id,
        INDEX,
        reservation_id,
        str(start_us),
        str(end_us),
        PREFIX,
        str(created_us),
        "id",
        reservation_id,
        "vehicle_id",
        "v1",
        "status",
        "confirmed",
        "start_us",
        str(start_us),
        "end_us",
        str(end_us),
    )


def as_dict(flat):
    return dict(zip(flat[::2], flat[1::2]))


class TestInsertIfNoConflict:
    @pytest.mark.asyncio
    async def test_insert_into_empty_vehicle(self, redis, script_shas):
        result = await insert(redis, script_shas, "r1", BASE_US, BASE_US + HOUR_US)

        assert result == [1]
        stored = await redis.hgetall(PREFIX + "r1")
        assert stored["status"] == "confirmed"
        assert stored["end_us"] == str(BASE_US + HOUR_US)
        assert await redis.zscore(OCCUPYING, "r1") == BASE_US
        assert await redis.zrange(INDEX, 0, -1) == ["r1"]

    @pytest.mark.asyncio
    async def test_overlap_rejected_with_conflicts(self, redis, script_shas):
        await insert(redis, script_shas, "r1", BASE_US, BASE_US + 2 * HOUR_US)

        result = await insert(
            redis, script_shas, "r2", BASE_US + HOUR_US, BASE_US + 3 * HOUR_US
        )

        assert result[0] == 0
        assert [as_dict(c)["id"] for c in result[1:]] == ["r1"]
        assert await redis.exists(PREFIX + "r2") == 0
        assert await redis.zcard(OCCUPYING) == 1

    @pytest.mark.asyncio
    async def test_contained_window_rejected(self, redis, script_shas):
        await insert(redis, script_shas, "r1", BASE_US, BASE_US + 4 * HOUR_US)
        result = await insert(
            redis, script_shas, "r2", BASE_US + HOUR_US, BASE_US + 2 * HOUR_US
        )
        assert result[0] == 0

    @pytest.mark.asyncio
    async def test_touching_windows_accepted(self, redis, script_shas):
        await insert(redis, script_shas, "r1", BASE_US, BASE_US + HOUR_US)

        after = await insert(
            redis, script_shas, "r2", BASE_US + HOUR_US, BASE_US + 2 * HOUR_US
        )
        before = await insert(redis, script_shas, "r0", BASE_US - HOUR_US, BASE_US)

        assert after == [1]
        assert before == [1]

    @pytest.mark.asyncio
    async def test_one_microsecond_overlap_rejected(self, redis, script_shas):
        await insert(redis, script_shas, "r1", BASE_US, BASE_US + HOUR_US)
        result = await insert(
            redis, script_shas, "r2", BASE_US + HOUR_US - 1, BASE_US + 2 * HOUR_US
        )
        assert result[0] == 0

    @pytest.mark.asyncio
    async def test_reports_every_conflict(self, redis, script_shas):
        await insert(redis, script_shas, "a", BASE_US, BASE_US + HOUR_US)
        await insert(redis, script_shas, "b", BASE_US + HOUR_US, BASE_US + 2 * HOUR_US)

        result = await insert(
            redis, script_shas, "c", BASE_US + HOUR_US // 2, BASE_US + 3 * HOUR_US
        )

        assert sorted(as_dict(c)["id"] for c in result[1:]) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_duplicate_id(self, redis, script_shas):
        await insert(redis, script_shas, "r1", BASE_US, BASE_US + HOUR_US)
        result = await insert(
            redis, script_shas, "r1", BASE_US + 5 * HOUR_US, BASE_US + 6 * HOUR_US
        )
        assert result == [-1]

    @pytest.mark.asyncio
    async def test_score_keeps_microseconds(self, redis, script_shas):
        start = BASE_US + 123_457
        await insert(redis, script_shas, "r1", start, start + HOUR_US)
        assert int(await redis.zscore(OCCUPYING, "r1")) == start


class TestFindOverlapping:
    @pytest.mark.asyncio
    async def test_returns_overlaps_in_start_order(self, redis, script_shas):
        await insert(redis, script_shas, "late", BASE_US + 2 * HOUR_US, BASE_US + 3 * HOUR_US)
        await insert(redis, script_shas, "early", BASE_US, BASE_US + HOUR_US)
        await insert(redis, script_shas, "far", BASE_US + 9 * HOUR_US, BASE_US + 10 * HOUR_US)

        result = await redis.evalsha(
            script_shas["find_overlapping_reservations"],
            1,
            OCCUPYING,
            str(BASE_US + HOUR_US // 2),
            str(BASE_US + 5 * HOUR_US),
            PREFIX,
        )

        assert [as_dict(r)["id"] for r in result] == ["early", "late"]

    @pytest.mark.asyncio
    async def test_empty_vehicle(self, redis, script_shas):
        result = await redis.evalsha(
            script_shas["find_overlapping_reservations"],
            1,
            OCCUPYING,
            str(BASE_US),
            str(BASE_US + HOUR_US),
            PREFIX,
        )
        assert result == []


class TestUpdateStatus:
    async def update(self, redis, shas, reservation_id, status, occupying):
        return await redis.evalsha(
            shas["update_reservation_status"],
            2,
            PREFIX + reservation_id,
            OCCUPYING,
            reservation_id,
            status,
            "42",
            "1" if occupying else "0",
        )

    @pytest.mark.asyncio
    async def test_cancel_frees_slot(self, redis, script_shas):
        await insert(redis, script_shas, "r1", BASE_US, BASE_US + HOUR_US)

        updated = await self.update(redis, script_shas, "r1", "cancelled", False)

        assert as_dict(updated)["status"] == "cancelled"
        assert as_dict(updated)["updated_us"] == "42"
        assert await redis.zscore(OCCUPYING, "r1") is None
        assert await insert(redis, script_shas, "r2", BASE_US, BASE_US + HOUR_US) == [1]

    @pytest.mark.asyncio
    async def test_reconfirm_restores_occupancy(self, redis, script_shas):
        await insert(redis, script_shas, "r1", BASE_US, BASE_US + HOUR_US)
        await self.update(redis, script_shas, "r1", "cancelled", False)
        await insert(redis, script_shas, "r2", BASE_US, BASE_US + HOUR_US)

        await self.update(redis, script_shas, "r1", "confirmed", True)

        assert await redis.zscore(OCCUPYING, "r1") == BASE_US
        assert await redis.zcard(OCCUPYING) == 2

    @pytest.mark.asyncio
    async def test_missing_reservation(self, redis, script_shas):
        result = await self.update(redis, script_shas, "ghost", "completed", False)
        assert result == []
        assert await redis.exists(PREFIX + "ghost") == 0


class TestSetVehicleActive:
    @pytest.mark.asyncio
    async def test_toggle(self, redis, script_shas):
        await redis.hset("fl:test:vehicle:v1", mapping={"id": "v1", "is_active": "1"})

        result = await redis.evalsha(
            script_shas["set_vehicle_active"], 1, "fl:test:vehicle:v1", "0"
        )

        assert as_dict(result)["is_active"] == "0"

    @pytest.mark.asyncio
    async def test_missing_vehicle(self, redis, script_shas):
        result = await redis.evalsha(
            script_shas["set_vehicle_active"], 1, "fl:test:vehicle:ghost", "0"
        )
        assert result == []
        assert await redis.exists("fl:test:vehicle:ghost") == 0
