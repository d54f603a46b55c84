"""Unit tests for BookingCommitter."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from fleetlink.committer import BookingCommitter
from fleetlink.config import EngineConfig
from fleetlink.directory import VehicleDirectory
from fleetlink.exceptions import ConflictError, NotFoundError, ValidationError
from fleetlink.ledger import ReservationLedger
from fleetlink.types import ReservationStatus


@pytest.fixture
def directory(memory_backend, clock):
    return VehicleDirectory(memory_backend, EngineConfig(), clock)


@pytest.fixture
def ledger(memory_backend, clock):
    return ReservationLedger(memory_backend, clock)


@pytest.fixture
def committer(directory, ledger, clock):
    return BookingCommitter(directory, ledger, lambda o, d: 2.0, clock)


@pytest.fixture
async def truck(directory):
    return await directory.insert("Truck", 2000, 6)


class TestCommit:
    @pytest.mark.asyncio
    async def test_commit_persists_confirmed_reservation(
        self, committer, ledger, truck, clock
    ):
        start = clock.now + timedelta(hours=3)

        reservation = await committer.commit(
            truck.id, " customer-7 ", "110001", "110002", start
        )

        assert reservation.vehicle_id == truck.id
        assert reservation.requester_id == "customer-7"
        assert reservation.status is ReservationStatus.CONFIRMED
        assert reservation.start_time == start
        assert reservation.duration_hours == 2.0
        assert reservation.end_time == start + timedelta(hours=2)
        assert reservation.created_at == clock.now
        assert await ledger.get(reservation.id) == reservation

    @pytest.mark.asyncio
    async def test_commit_accepts_iso_string(self, committer, truck):
        reservation = await committer.commit(
            truck.id, "c1", "110001", "110002", "2030-01-01T12:00:00Z"
        )
        assert reservation.start_time.isoformat() == "2030-01-01T12:00:00+00:00"

    @pytest.mark.asyncio
    async def test_overlapping_commit_conflicts(self, committer, truck, clock):
        start = clock.now + timedelta(hours=3)
        first = await committer.commit(truck.id, "c1", "110001", "110002", start)

        with pytest.raises(ConflictError) as exc_info:
            await committer.commit(
                truck.id, "c2", "110001", "110002", start + timedelta(hours=1)
            )

        assert [c.reservation_id for c in exc_info.value.conflicts] == [first.id]

    @pytest.mark.asyncio
    async def test_back_to_back_commits(self, committer, truck, clock):
        start = clock.now + timedelta(hours=3)
        await committer.commit(truck.id, "c1", "110001", "110002", start)
        second = await committer.commit(
            truck.id, "c2", "110001", "110002", start + timedelta(hours=2)
        )
        assert second.start_time == start + timedelta(hours=2)

    @pytest.mark.asyncio
    async def test_rechecks_at_commit_time(self, directory, clock, truck):
        """A conflict found by the backend wins over any earlier read."""
        ledger = ReservationLedger(AsyncMock(), clock)
        ledger._backend.insert_reservation_if_no_conflict.return_value = (False, [])
        committer = BookingCommitter(directory, ledger, lambda o, d: 1.0, clock)

        with pytest.raises(ConflictError):
            await committer.commit(
                truck.id, "c1", "110001", "110002", clock.now + timedelta(hours=1)
            )


class TestCommitValidation:
    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, committer, clock):
        with pytest.raises(NotFoundError, match="Vehicle not found or inactive"):
            await committer.commit(
                "missing", "c1", "110001", "110002", clock.now + timedelta(hours=1)
            )

    @pytest.mark.asyncio
    async def test_inactive_vehicle(self, committer, directory, truck, clock):
        await directory.deactivate(truck.id)
        with pytest.raises(NotFoundError, match="Vehicle not found or inactive"):
            await committer.commit(
                truck.id, "c1", "110001", "110002", clock.now + timedelta(hours=1)
            )

    @pytest.mark.asyncio
    async def test_past_start(self, committer, truck, clock):
        with pytest.raises(ValidationError, match="Start time must be in the future"):
            await committer.commit(
                truck.id, "c1", "110001", "110002", clock.now - timedelta(hours=1)
            )

    @pytest.mark.asyncio
    async def test_too_far_ahead(self, committer, truck, clock):
        with pytest.raises(
            ValidationError, match="Cannot book more than 1 year in advance"
        ):
            await committer.commit(
                truck.id, "c1", "110001", "110002", clock.now + timedelta(days=400)
            )

    @pytest.mark.asyncio
    async def test_custom_advance_window(self, directory, ledger, truck, clock):
        committer = BookingCommitter(
            directory,
            ledger,
            lambda o, d: 1.0,
            clock,
            max_advance_booking=timedelta(days=30),
        )
        with pytest.raises(ValidationError):
            await committer.commit(
                truck.id, "c1", "110001", "110002", clock.now + timedelta(days=31)
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("vehicle_id", ["", "  ", None])
    async def test_missing_vehicle_id(self, committer, clock, vehicle_id):
        with pytest.raises(ValidationError, match="vehicle_id is required"):
            await committer.commit(
                vehicle_id, "c1", "110001", "110002", clock.now + timedelta(hours=1)
            )

    @pytest.mark.asyncio
    async def test_missing_requester(self, committer, truck, clock):
        with pytest.raises(ValidationError, match="requester_id is required"):
            await committer.commit(
                truck.id, "", "110001", "110002", clock.now + timedelta(hours=1)
            )

    @pytest.mark.asyncio
    async def test_bad_pincode_checked_before_vehicle(self, committer, clock):
        with pytest.raises(ValidationError, match="Pincodes"):
            await committer.commit(
                "missing", "c1", "1100", "110002", clock.now + timedelta(hours=1)
            )

    @pytest.mark.asyncio
    async def test_failed_commit_writes_nothing(self, committer, ledger, truck, clock):
        with pytest.raises(ValidationError):
            await committer.commit(
                truck.id, "c1", "110001", "110002", clock.now - timedelta(hours=1)
            )
        assert await ledger.list() == []
