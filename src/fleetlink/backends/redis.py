# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
RedisBackend for FleetLink

This module provides the RedisBackend that shares the fleet and its
reservations across processes, with atomic Lua scripts for every
operation that must not interleave with a concurrent booking.

Key Features:
- Check-and-insert of a reservation in a single Lua script
- Snapshot-consistent overlap queries
- Status updates that keep the per-vehicle occupying set in sync
- Automatic script reload after a Redis restart (NoScriptError)

Key Layout (prefix = namespace):
    {prefix}:vehicle:{id}                hash    vehicle record
    {prefix}:vehicles:capacity           zset    vehicle id scored by capacity_kg
    {prefix}:reservation:{id}            hash    reservation record
    {prefix}:occupying:{id}              zset    occupying reservation ids by start_us
    {prefix}:reservations                zset    reservation ids by created_us
"""

import asyncio
import logging
import os
from collections.abc import Awaitable
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar, cast

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import (
    ConnectionError,
    NoScriptError,
    RedisError,
    TimeoutError,
)

from ..exceptions import BackendConnectionError, BackendOperationError
from ..intervals import from_epoch_us, to_epoch_us
from ..types.reservation import Reservation, ReservationStatus
from ..types.vehicle import Vehicle
from .base import BaseBackend, HealthCheckResult

logger = logging.getLogger(__name__)


def _pairs_to_dict(flat: list[Any]) -> dict[str, str]:
    """Convert a flat HGETALL array returned from Lua into a dict."""
    return {str(flat[i]): str(flat[i + 1]) for i in range(0, len(flat), 2)}


def vehicle_to_record(vehicle: Vehicle) -> dict[str, str]:
    """Flatten a vehicle into Redis hash fields."""
    return {
        "id": vehicle.id,
        "name": vehicle.name,
        "capacity_kg": repr(float(vehicle.capacity_kg)),
        "tyres": str(vehicle.tyres),
        "is_active": "1" if vehicle.is_active else "0",
        "created_us": str(to_epoch_us(vehicle.created_at)),
    }


def record_to_vehicle(record: dict[str, str]) -> Vehicle:
    """Rebuild a vehicle from its Redis hash fields."""
    try:
        return Vehicle(
            id=record["id"],
            name=record["name"],
            capacity_kg=float(record["capacity_kg"]),
            tyres=int(record["tyres"]),
            is_active=record["is_active"] == "1",
            created_at=from_epoch_us(record["created_us"]),
        )
    except (KeyError, ValueError) as e:
        raise BackendOperationError(f"Corrupt vehicle record: {e}") from e


def reservation_to_record(reservation: Reservation) -> dict[str, str]:
    """Flatten a reservation into Redis hash fields.

    end_us is stored for the Lua overlap check only; reads always derive the
    end from start and duration.
    """
    return {
        "id": reservation.id,
        "vehicle_id": reservation.vehicle_id,
        "requester_id": reservation.requester_id,
        "origin": reservation.origin,
        "destination": reservation.destination,
        "start_us": str(to_epoch_us(reservation.start_time)),
        "end_us": str(to_epoch_us(reservation.end_time)),
        "duration_hours": repr(float(reservation.duration_hours)),
        "status": reservation.status.value,
        "created_us": str(to_epoch_us(reservation.created_at)),
        "updated_us": str(to_epoch_us(reservation.updated_at)),
    }


def record_to_reservation(record: dict[str, str]) -> Reservation:
    """Rebuild a reservation from its Redis hash fields."""
    try:
        return Reservation(
            id=record["id"],
            vehicle_id=record["vehicle_id"],
            requester_id=record["requester_id"],
            origin=record["origin"],
            destination=record["destination"],
            start_time=from_epoch_us(record["start_us"]),
            duration_hours=float(record["duration_hours"]),
            status=ReservationStatus(record["status"]),
            created_at=from_epoch_us(record["created_us"]),
            updated_at=from_epoch_us(record["updated_us"]),
        )
    except (KeyError, ValueError) as e:
        raise BackendOperationError(f"Corrupt reservation record: {e}") from e


class RedisBackend(BaseBackend):
    """
    A distributed Redis backend for the booking engine.

    Every operation that touches a vehicle's occupying set runs as a Lua
    script, which Redis executes without interleaving any other command.
    That makes the overlap check and the insert one atomic unit across all
    processes sharing the Redis instance.

    Deployment Requirements:
    - Redis 4.0+ (multi-field HSET)
    - A single Redis node or a primary/replica pair. Scripts touch keys of
      different vehicles' reservations, so Redis Cluster is not supported.
    """

    backend_type = "redis"

    # Class-level Lua scripts loaded from files
    _lua_scripts: ClassVar[dict[str, str]] = {}

    SCRIPT_NAMES: ClassVar[tuple[str, ...]] = (
        "insert_reservation_if_no_conflict",
        "find_overlapping_reservations",
        "update_reservation_status",
        "set_vehicle_active",
    )

    @classmethod
    def _load_lua_scripts(cls) -> None:
        """Load Lua scripts from files at class level."""
        if cls._lua_scripts:
            return  # Already loaded

        lua_dir = Path(__file__).parent / "lua"

        for script_name in cls.SCRIPT_NAMES:
            script_path = lua_dir / f"{script_name}.lua"
            if script_path.exists():
                cls._lua_scripts[script_name] = script_path.read_text(encoding="utf-8")
            else:
                logger.warning(f"Lua script not found: {script_path}")

    def __init__(
        self,
        redis_url: str | None = None,
        redis_client: Any | None = None,
        namespace: str = "fleetlink",
        max_connections: int = 10,
        socket_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the Redis backend.

        Args:
            redis_url: Redis connection URL. If not provided, falls back to REDIS_URL
                environment variable, then to "redis://localhost:6379".
            redis_client: Optional pre-configured Redis client (must use
                decode_responses=True). The backend does not close it.
            namespace: Namespace prefix for keys
            max_connections: Maximum connections in the pool
            socket_timeout: Connect and read timeout in seconds

        Environment Variables:
            REDIS_URL: Default Redis connection URL when redis_url parameter is not provided.
        """
        super().__init__(namespace)

        self.redis_url = (
            redis_url or os.environ.get("REDIS_URL") or "redis://localhost:6379"
        )
        self.max_connections = max_connections
        self.socket_timeout = socket_timeout

        self._redis: Any | None = redis_client
        self._owned_redis = redis_client is None
        self._pool: ConnectionPool | None = None
        self._connected = False
        self._connection_lock = asyncio.Lock()

        # Lua script SHAs
        self._script_shas: dict[str, str] = {}

        self.key_prefix = namespace
        self.capacity_index_key = f"{namespace}:vehicles:capacity"
        self.reservation_index_key = f"{namespace}:reservations"
        self.reservation_key_prefix = f"{namespace}:reservation:"

    def _get_vehicle_key(self, vehicle_id: str) -> str:
        return f"{self.key_prefix}:vehicle:{vehicle_id}"

    def _get_occupying_key(self, vehicle_id: str) -> str:
        return f"{self.key_prefix}:occupying:{vehicle_id}"

    def _get_reservation_key(self, reservation_id: str) -> str:
        return f"{self.reservation_key_prefix}{reservation_id}"

    # === Connection Management ===

    async def _ensure_connected(self) -> Any:
        """Return a live client, connecting and loading scripts on first use."""
        if self._redis is not None and self._connected:
            return self._redis

        async with self._connection_lock:
            if self._redis is not None and self._connected:
                return self._redis

            if self._redis is None:
                self._pool = ConnectionPool.from_url(
                    self.redis_url,
                    max_connections=self.max_connections,
                    decode_responses=True,
                    socket_connect_timeout=self.socket_timeout,
                    socket_timeout=self.socket_timeout,
                    retry_on_timeout=True,
                    health_check_interval=30,
                )
                self._redis = Redis(connection_pool=self._pool)

            try:
                await asyncio.wait_for(
                    cast(Awaitable[bool], self._redis.ping()),
                    timeout=self.socket_timeout,
                )
                await self._load_scripts()
            except (ConnectionError, TimeoutError, asyncio.TimeoutError) as e:
                logger.error(f"Redis connection failed for {self.redis_url}: {e}")
                await self._discard_connection()
                raise BackendConnectionError(
                    f"Cannot connect to Redis at {self.redis_url}"
                ) from e
            except RedisError as e:
                logger.error(f"Redis setup failed for {self.redis_url}: {e}")
                await self._discard_connection()
                raise BackendOperationError(
                    "Redis setup failed: could not load Lua scripts"
                ) from e

            self._connected = True
            logger.info(f"Connected to Redis (namespace '{self.namespace}')")
            return self._redis

    async def _discard_connection(self) -> None:
        """Drop an owned client and pool after a failed connect or on close."""
        if self._owned_redis and self._redis is not None:
            try:
                await self._redis.aclose()
            except RedisError as e:
                logger.debug(f"Error closing Redis client: {e}")
            self._redis = None
            if self._pool is not None:
                await self._pool.disconnect()
                self._pool = None
        self._connected = False

    async def _load_scripts(self) -> None:
        """Load Lua scripts into Redis."""
        if not self._redis:
            raise RuntimeError("Redis client not initialized")

        self.__class__._load_lua_scripts()

        for script_name, script_source in self._lua_scripts.items():
            self._script_shas[script_name] = await self._redis.script_load(
                script_source
            )

    async def _evalsha_with_reload(
        self,
        redis_client: Any,
        script_name: str,
        num_keys: int,
        *args: Any,
    ) -> Any:
        """
        Execute EVALSHA with automatic script reload on NoScriptError.

        When a Redis node restarts, all Lua scripts are lost. This method
        detects the NoScriptError and transparently reloads the scripts, then
        retries the operation once.

        Args:
            redis_client: The Redis client to use
            script_name: Name of the Lua script (key in _lua_scripts)
            num_keys: Number of KEYS arguments
            *args: Keys and arguments for the script

        Returns:
            Result from evalsha
        """
        script_sha = self._script_shas.get(script_name)
        if not script_sha:
            await self._load_scripts()
            script_sha = self._script_shas[script_name]

        try:
            return await redis_client.evalsha(script_sha, num_keys, *args)
        except NoScriptError:
            logger.warning(
                f"Script '{script_name}' not found in Redis (SHA: {script_sha}). "
                f"Reloading all Lua scripts..."
            )
            self._script_shas.clear()
            await self._load_scripts()

            # Retry with new SHA (only once to prevent infinite loop)
            new_sha = self._script_shas[script_name]
            logger.info(f"Scripts reloaded. Retrying with new SHA: {new_sha}")
            return await redis_client.evalsha(new_sha, num_keys, *args)

    def _wrap_error(self, operation: str, error: RedisError) -> Exception:
        """Translate a redis-py error into the engine's backend errors."""
        if isinstance(error, (ConnectionError, TimeoutError)):
            self._connected = False
            logger.error(f"Redis connection error during {operation}: {error}")
            return BackendConnectionError(f"Redis unavailable during {operation}")
        logger.error(f"Redis error during {operation}: {error}")
        return BackendOperationError(f"Redis operation failed: {operation}")

    # === Lifecycle ===

    async def connect(self) -> None:
        await self._ensure_connected()

    async def close(self) -> None:
        """Clean up backend resources."""
        await self._discard_connection()

    async def health_check(self) -> HealthCheckResult:
        """Perform health check on the backend."""
        try:
            redis_client = await self._ensure_connected()
            info = await redis_client.info()

            return HealthCheckResult(
                healthy=True,
                backend_type=self.backend_type,
                namespace=self.namespace,
                metadata={
                    "redis_url": self.redis_url,
                    "connected": self._connected,
                    "redis_version": info.get("redis_version"),
                    "used_memory": info.get("used_memory_human"),
                    "connected_clients": info.get("connected_clients"),
                    "scripts_loaded": len(self._script_shas),
                },
            )
        except (RedisError, BackendConnectionError) as e:
            return HealthCheckResult(
                healthy=False,
                backend_type=self.backend_type,
                namespace=self.namespace,
                error=str(e),
            )

    async def clear(self) -> None:
        """Delete every key in this namespace.

        Uses SCAN instead of KEYS to avoid blocking Redis during large keyspace scans.
        """
        try:
            redis_client = await self._ensure_connected()
            cursor = 0
            while True:
                cursor, keys = await redis_client.scan(
                    cursor, match=f"{self.key_prefix}:*", count=100
                )
                if keys:
                    await redis_client.delete(*keys)
                if cursor == 0:
                    break
        except RedisError as e:
            raise self._wrap_error("clear", e) from e

    # === Vehicles ===

    async def insert_vehicle(self, vehicle: Vehicle) -> Vehicle:
        try:
            redis_client = await self._ensure_connected()
            async with redis_client.pipeline(transaction=True) as pipe:
                pipe.hset(
                    self._get_vehicle_key(vehicle.id), mapping=vehicle_to_record(vehicle)
                )
                pipe.zadd(self.capacity_index_key, {vehicle.id: vehicle.capacity_kg})
                await pipe.execute()
        except RedisError as e:
            raise self._wrap_error("insert_vehicle", e) from e

        logger.debug(f"Redis backend: stored vehicle {vehicle.id}")
        return vehicle

    async def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        try:
            redis_client = await self._ensure_connected()
            record = await redis_client.hgetall(self._get_vehicle_key(vehicle_id))
        except RedisError as e:
            raise self._wrap_error("get_vehicle", e) from e
        return record_to_vehicle(record) if record else None

    async def set_vehicle_active(
        self, vehicle_id: str, is_active: bool
    ) -> Vehicle | None:
        try:
            redis_client = await self._ensure_connected()
            result = await self._evalsha_with_reload(
                redis_client,
                "set_vehicle_active",
                1,
                self._get_vehicle_key(vehicle_id),
                "1" if is_active else "0",
            )
        except RedisError as e:
            raise self._wrap_error("set_vehicle_active", e) from e
        return record_to_vehicle(_pairs_to_dict(result)) if result else None

    async def find_vehicles(
        self, min_capacity_kg: float = 0.0, active_only: bool = True
    ) -> list[Vehicle]:
        try:
            redis_client = await self._ensure_connected()
            vehicle_ids = await redis_client.zrangebyscore(
                self.capacity_index_key, min_capacity_kg, "+inf"
            )
            if not vehicle_ids:
                return []
            async with redis_client.pipeline(transaction=False) as pipe:
                for vehicle_id in vehicle_ids:
                    pipe.hgetall(self._get_vehicle_key(vehicle_id))
                records = await pipe.execute()
        except RedisError as e:
            raise self._wrap_error("find_vehicles", e) from e

        vehicles = [record_to_vehicle(r) for r in records if r]
        if active_only:
            vehicles = [v for v in vehicles if v.is_active]
        vehicles.sort(key=lambda v: v.created_at, reverse=True)
        return vehicles

    # === Reservations ===

    async def find_overlapping(
        self, vehicle_id: str, start: datetime, end: datetime
    ) -> list[Reservation]:
        try:
            redis_client = await self._ensure_connected()
            result = await self._evalsha_with_reload(
                redis_client,
                "find_overlapping_reservations",
                1,
                self._get_occupying_key(vehicle_id),
                to_epoch_us(start),  # ARGV[1]
                to_epoch_us(end),  # ARGV[2]
                self.reservation_key_prefix,  # ARGV[3]
            )
        except RedisError as e:
            raise self._wrap_error("find_overlapping", e) from e

        return [record_to_reservation(_pairs_to_dict(flat)) for flat in result]

    async def insert_reservation_if_no_conflict(
        self, reservation: Reservation
    ) -> tuple[bool, list[Reservation]]:
        record = reservation_to_record(reservation)
        fields: list[str] = []
        for name, value in record.items():
            fields.extend((name, value))

        try:
            redis_client = await self._ensure_connected()
            result = await self._evalsha_with_reload(
                redis_client,
                "insert_reservation_if_no_conflict",
                3,  # Number of keys
                self._get_occupying_key(reservation.vehicle_id),
                self._get_reservation_key(reservation.id),
                self.reservation_index_key,
                reservation.id,  # ARGV[1]
                record["start_us"],  # ARGV[2]
                record["end_us"],  # ARGV[3]
                self.reservation_key_prefix,  # ARGV[4]
                record["created_us"],  # ARGV[5]
                *fields,  # ARGV[6..]
            )
        except RedisError as e:
            raise self._wrap_error("insert_reservation_if_no_conflict", e) from e

        status_code = int(result[0])

        if status_code == 1:
            logger.debug(
                f"Redis backend: stored reservation {reservation.id} for vehicle "
                f"{reservation.vehicle_id}"
            )
            return True, []

        elif status_code == 0:
            conflicts = [record_to_reservation(_pairs_to_dict(flat)) for flat in result[1:]]
            conflicts.sort(key=lambda r: r.start_time)
            return False, conflicts

        elif status_code == -1:
            raise ValueError(f"Reservation {reservation.id} already exists")

        raise BackendOperationError(f"Unexpected script status: {status_code}")

    async def update_reservation_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        updated_at: datetime,
    ) -> Reservation | None:
        reservation_key = self._get_reservation_key(reservation_id)
        try:
            redis_client = await self._ensure_connected()
            # vehicle_id never changes, so reading it outside the script is safe
            vehicle_id = await redis_client.hget(reservation_key, "vehicle_id")
            if vehicle_id is None:
                return None
            result = await self._evalsha_with_reload(
                redis_client,
                "update_reservation_status",
                2,
                reservation_key,
                self._get_occupying_key(vehicle_id),
                reservation_id,  # ARGV[1]
                status.value,  # ARGV[2]
                to_epoch_us(updated_at),  # ARGV[3]
                "1" if status.occupies_vehicle else "0",  # ARGV[4]
            )
        except RedisError as e:
            raise self._wrap_error("update_reservation_status", e) from e

        return record_to_reservation(_pairs_to_dict(result)) if result else None

    async def get_reservation(self, reservation_id: str) -> Reservation | None:
        try:
            redis_client = await self._ensure_connected()
            record = await redis_client.hgetall(
                self._get_reservation_key(reservation_id)
            )
        except RedisError as e:
            raise self._wrap_error("get_reservation", e) from e
        return record_to_reservation(record) if record else None

    async def list_reservations(
        self,
        requester_id: str | None = None,
        vehicle_id: str | None = None,
        status: ReservationStatus | None = None,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
    ) -> list[Reservation]:
        try:
            redis_client = await self._ensure_connected()
            reservation_ids = await redis_client.zrevrange(
                self.reservation_index_key, 0, -1
            )
            if not reservation_ids:
                return []
            async with redis_client.pipeline(transaction=False) as pipe:
                for reservation_id in reservation_ids:
                    pipe.hgetall(self._get_reservation_key(reservation_id))
                records = await pipe.execute()
        except RedisError as e:
            raise self._wrap_error("list_reservations", e) from e

        return [
            reservation
            for reservation in (record_to_reservation(r) for r in records if r)
            if self._matches_filters(
                reservation, requester_id, vehicle_id, status, start_from, start_to
            )
        ]
