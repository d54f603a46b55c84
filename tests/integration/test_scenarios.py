"""
End-to-end booking scenarios through the engine facade.

Each scenario runs on both backends via the ``backend`` fixture.
"""

import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from fleetlink.exceptions import ConflictError, NotFoundError, ValidationError
from fleetlink.intervals import overlaps

DAY = datetime(2030, 1, 1, tzinfo=timezone.utc)

# Fixed route durations in hours
ROUTES = {
    ("110001", "110003"): 2.0,
    ("110001", "110002"): 0.5,
    ("110002", "110004"): 1.0,
}


def route_estimator(origin: str, destination: str) -> float:
    return ROUTES[(origin, destination)]


def at(hour: int, minute: int = 0) -> datetime:
    return DAY.replace(hour=hour, minute=minute)


@pytest.fixture
async def fleet_engine(make_engine, backend):
    return await make_engine(backend=backend, estimator=route_estimator)


@pytest.fixture
async def booked_truck(fleet_engine):
    """A 1000kg truck with a confirmed reservation over [10:00, 12:00)."""
    truck = await fleet_engine.add_vehicle("Truck", 1000, 6)
    await fleet_engine.commit_booking(truck.id, "first", "110001", "110003", at(10))
    return truck


class TestScenarios:
    @pytest.mark.asyncio
    async def test_overlapping_request_hides_vehicle(self, fleet_engine, booked_truck):
        result = await fleet_engine.resolve_availability(
            500, "110001", "110002", at(11)
        )
        assert result.estimated_duration_hours == 0.5
        assert booked_truck.id not in [v.vehicle_id for v in result.available_vehicles]

    @pytest.mark.asyncio
    async def test_adjacent_request_shows_vehicle(self, fleet_engine, booked_truck):
        result = await fleet_engine.resolve_availability(
            500, "110002", "110004", at(12)
        )
        [available] = result.available_vehicles
        assert available.vehicle_id == booked_truck.id
        assert available.estimated_window.start == at(12)
        assert available.estimated_window.end == at(13)

    @pytest.mark.asyncio
    async def test_deactivated_vehicle_cannot_be_booked(
        self, fleet_engine, booked_truck
    ):
        await fleet_engine.deactivate_vehicle(booked_truck.id)
        with pytest.raises(NotFoundError):
            await fleet_engine.commit_booking(
                booked_truck.id, "late", "110002", "110004", at(14)
            )

    @pytest.mark.asyncio
    async def test_lookalike_vehicle_id_not_found(self, fleet_engine, booked_truck):
        with pytest.raises(NotFoundError, match="Vehicle not found or inactive"):
            await fleet_engine.commit_booking(
                f"{booked_truck.id}:occupying", "late", "110002", "110004", at(14)
            )

    @pytest.mark.asyncio
    async def test_past_start_rejected(self, fleet_engine, booked_truck, clock):
        with pytest.raises(ValidationError, match="must be in the future"):
            await fleet_engine.commit_booking(
                booked_truck.id,
                "late",
                "110002",
                "110004",
                clock.now - timedelta(hours=1),
            )

    @pytest.mark.asyncio
    async def test_far_future_start_rejected(self, fleet_engine, booked_truck, clock):
        with pytest.raises(
            ValidationError, match="Cannot book more than 1 year in advance"
        ):
            await fleet_engine.commit_booking(
                booked_truck.id,
                "late",
                "110002",
                "110004",
                clock.now + timedelta(days=400),
            )

    @pytest.mark.asyncio
    async def test_simultaneous_commits(self, fleet_engine):
        truck = await fleet_engine.add_vehicle("Truck", 1000, 6)

        results = await asyncio.gather(
            fleet_engine.commit_booking(truck.id, "a", "110001", "110003", at(14)),
            fleet_engine.commit_booking(truck.id, "b", "110001", "110003", at(15)),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, BaseException)]
        losers = [r for r in results if isinstance(r, BaseException)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], ConflictError)
        assert [c.reservation_id for c in losers[0].conflicts] == [winners[0].id]
        assert await fleet_engine.get_reservation(winners[0].id) == winners[0]


class TestProperties:
    @pytest.mark.asyncio
    async def test_no_two_occupying_reservations_overlap(self, fleet_engine):
        rng = random.Random(7)
        trucks = [await fleet_engine.add_vehicle(f"T{i}", 1000, 6) for i in range(3)]
        routes = list(ROUTES)

        for step in range(60):
            truck = rng.choice(trucks)
            origin, destination = rng.choice(routes)
            start = at(9) + timedelta(minutes=15 * rng.randrange(48))
            try:
                booking = await fleet_engine.commit_booking(
                    truck.id, f"c{step}", origin, destination, start
                )
            except ConflictError:
                continue
            if rng.random() < 0.2:
                await fleet_engine.update_reservation_status(booking.id, "cancelled")

        occupying = [
            r
            for r in await fleet_engine.list_reservations()
            if r.status.occupies_vehicle
        ]
        assert occupying
        for i, a in enumerate(occupying):
            for b in occupying[i + 1 :]:
                if a.vehicle_id == b.vehicle_id:
                    assert not overlaps(
                        a.start_time, a.end_time, b.start_time, b.end_time
                    )

    @pytest.mark.asyncio
    async def test_resolve_is_idempotent(self, fleet_engine, booked_truck):
        await fleet_engine.add_vehicle("Van", 800, 4)

        first = await fleet_engine.resolve_availability(
            500, "110001", "110003", at(11)
        )
        second = await fleet_engine.resolve_availability(
            500, "110001", "110003", at(11)
        )

        assert first == second
        assert booked_truck.id not in [v.vehicle_id for v in first.available_vehicles]
