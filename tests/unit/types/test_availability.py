"""Tests for availability result types."""

from datetime import datetime, timedelta, timezone

from fleetlink.types import AvailabilityResult, AvailableVehicle, TimeWindow

START = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_available(**overrides) -> AvailableVehicle:
    fields = {
        "vehicle_id": "v1",
        "name": "Tata Ace",
        "capacity_kg": 750.0,
        "tyres": 4,
        "origin": "110001",
        "destination": "110002",
        "estimated_window": TimeWindow(START, START + timedelta(hours=1)),
        "estimated_duration_hours": 1.0,
    }
    fields.update(overrides)
    return AvailableVehicle(**fields)


class TestTimeWindow:
    def test_to_dict(self):
        window = TimeWindow(START, START + timedelta(minutes=30))
        assert window.to_dict() == {
            "start": "2030-01-01T12:00:00+00:00",
            "end": "2030-01-01T12:30:00+00:00",
        }


class TestAvailableVehicle:
    def test_to_dict(self):
        data = make_available().to_dict()
        assert data["vehicle_id"] == "v1"
        assert data["capacity_kg"] == 750.0
        assert data["available_for_route"] == {"from": "110001", "to": "110002"}
        assert data["estimated_window"]["end"] == "2030-01-01T13:00:00+00:00"


class TestAvailabilityResult:
    def test_empty_by_default(self):
        assert AvailabilityResult(estimated_duration_hours=1.0).available_vehicles == []

    def test_to_dict_echoes_search_criteria(self):
        result = AvailabilityResult(
            estimated_duration_hours=1.0,
            available_vehicles=[make_available()],
            capacity_kg=500.0,
            origin="110001",
            destination="110002",
            start_time=START,
        )
        data = result.to_dict()
        assert data["estimated_duration_hours"] == 1.0
        assert len(data["available_vehicles"]) == 1
        assert data["search_criteria"] == {
            "capacity_kg": 500.0,
            "origin": "110001",
            "destination": "110002",
            "start_time": "2030-01-01T12:00:00+00:00",
            "estimated_duration_hours": 1.0,
        }

    def test_to_dict_without_start(self):
        data = AvailabilityResult(estimated_duration_hours=0.5).to_dict()
        assert data["search_criteria"]["start_time"] is None
