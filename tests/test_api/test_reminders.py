"""
Tests for Reminders API Endpoints
"""

import httpx
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from app import app
from api.deps import get_view_registry
from services.reminder_client import HospitalApiClient, ReminderSourceError
from services.schedule_view import ScheduleViewRegistry
from tools.dose_status import MutationFailure
from tools.reminder_grouper import ReminderRecord


pytestmark = pytest.mark.api


def schedule_url(timeline_id: int) -> str:
    return f"/api/v1/timelines/{timeline_id}/reminders"


# =============================================================================
# Test GET /timelines/{id}/reminders
# =============================================================================

class TestGetSchedule:
    """Tests for reading the grouped schedule"""

    def test_today_schedule(self, client, seeded_reminders, timeline_id):
        response = client.get(schedule_url(timeline_id))

        assert response.status_code == 200
        data = response.json()
        assert data["dates"] == ["2024-01-01", "2023-12-31", "2024-01-02"]
        assert data["active_date_index"] == 0
        assert data["is_today"] is True
        assert data["empty_message"] is None
        assert [slot["dosage_time"] for slot in data["slots"]] == [
            "2024-01-01T08:00:00", "2024-01-01T20:00:00"
        ]

    def test_cards(self, client, seeded_reminders, timeline_id):
        data = client.get(schedule_url(timeline_id)).json()

        morning, evening = data["slots"]
        assert morning["percentage"] == 0
        assert [card["medicine_name"] for card in morning["reminders"]] == ["Paracetamol", "Amoxicillin"]
        assert [card["can_update"] for card in morning["reminders"]] == [True, True]
        assert morning["reminders"][0]["dosage"] == "500 mg"
        assert morning["reminders"][0]["status"] == "Pending"
        assert morning["reminders"][0]["given_at"] == "Not given yet"
        # Evening window has not started at 10:00
        assert evening["reminders"][0]["can_update"] is False

    def test_other_date_is_read_only(self, client, seeded_reminders, timeline_id):
        response = client.get(schedule_url(timeline_id), params={"date_index": 1})

        data = response.json()
        assert data["active_date"] == "2023-12-31"
        assert data["is_today"] is False
        card = data["slots"][0]["reminders"][0]
        assert card["status"] == "Completed"
        assert card["can_update"] is False
        assert data["slots"][0]["percentage"] == 100

    def test_date_index_does_not_carry_over(self, client, seeded_reminders, timeline_id):
        client.get(schedule_url(timeline_id), params={"date_index": 2})

        data = client.get(schedule_url(timeline_id)).json()

        assert data["active_date_index"] == 0
        assert data["active_date"] == "2024-01-01"
        assert data["is_today"] is True

    def test_date_index_out_of_range(self, client, seeded_reminders, timeline_id):
        response = client.get(schedule_url(timeline_id), params={"date_index": 5})

        assert response.status_code == 404
        assert response.json()["error"] is True

    def test_negative_date_index(self, client, seeded_reminders, timeline_id):
        response = client.get(schedule_url(timeline_id), params={"date_index": -1})

        assert response.status_code == 422

    def test_empty_timeline(self, client):
        response = client.get(schedule_url(99))

        assert response.status_code == 200
        data = response.json()
        assert data["dates"] == []
        assert data["slots"] == []
        assert data["active_date"] is None
        assert data["empty_message"] == "No medicines scheduled for this date."


# =============================================================================
# Test PATCH /timelines/{id}/reminders/{reminder_id}
# =============================================================================

class TestUpdateDoseStatus:
    """Tests for recording dose status"""

    def test_complete_dose(self, client, seeded_reminders, timeline_id):
        reminder_id = seeded_reminders[0].id

        response = client.patch(
            f"{schedule_url(timeline_id)}/{reminder_id}",
            json={"dose_status": 1}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["reminder"]["status"] == "Completed"
        assert data["reminder"]["can_update"] is False
        assert data["reminder"]["given_time"] is not None
        assert data["date"] == "2024-01-01"
        assert data["percentage"] == 50
        assert data["completion"] == 50
        assert data["given_time_echoed"] is True

        # The change is visible on the next read
        schedule = client.get(schedule_url(timeline_id)).json()
        assert schedule["slots"][0]["percentage"] == 50
        assert schedule["slots"][0]["reminders"][0]["status"] == "Completed"

    def test_not_required(self, client, seeded_reminders, timeline_id):
        reminder_id = seeded_reminders[1].id

        response = client.patch(
            f"{schedule_url(timeline_id)}/{reminder_id}",
            json={"dose_status": 2}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["reminder"]["status"] == "Not Required"
        assert data["percentage"] == 0

    def test_terminal_dose_conflicts(self, client, seeded_reminders, timeline_id):
        response = client.patch(
            f"{schedule_url(timeline_id)}/{seeded_reminders[3].id}",
            json={"dose_status": 2}
        )

        assert response.status_code == 409
        assert "already Completed" in response.json()["message"]

    def test_window_not_started_conflicts(self, client, seeded_reminders, timeline_id):
        response = client.patch(
            f"{schedule_url(timeline_id)}/{seeded_reminders[2].id}",
            json={"dose_status": 1}
        )

        assert response.status_code == 409

    def test_future_date_conflicts(self, client, seeded_reminders, timeline_id):
        response = client.patch(
            f"{schedule_url(timeline_id)}/{seeded_reminders[4].id}",
            json={"dose_status": 1}
        )

        assert response.status_code == 409

    @pytest.mark.parametrize("body", [{"dose_status": 0}, {"dose_status": 3}, {}])
    def test_invalid_status(self, client, seeded_reminders, timeline_id, body):
        response = client.patch(f"{schedule_url(timeline_id)}/{seeded_reminders[0].id}", json=body)

        assert response.status_code == 422

    def test_unknown_reminder(self, client, seeded_reminders, timeline_id):
        response = client.patch(f"{schedule_url(timeline_id)}/9999", json={"dose_status": 1})

        assert response.status_code == 404


# =============================================================================
# Test source failures
# =============================================================================

class FailingSource:
    """Source whose reads or writes fail"""

    def __init__(self, read_error=None, mutate_error=None):
        self.read_error = read_error
        self.mutate_dose_status = AsyncMock(side_effect=mutate_error)

    async def read_reminders(self, timeline_id):
        if self.read_error:
            raise self.read_error
        return {
            "2024-01-01": [
                ReminderRecord.from_payload({
                    "id": 1,
                    "dosageTime": "2024-01-01T08:00:00",
                    "medicationTime": "08:00 - 09:00",
                    "doseStatus": 0,
                })
            ]
        }


@pytest.fixture
def client_for(fixed_now):
    """Build a test client around a given reminder source"""
    def _client(source) -> TestClient:
        registry = ScheduleViewRegistry(source, clock=lambda: fixed_now)
        app.dependency_overrides[get_view_registry] = lambda: registry
        return TestClient(app)

    yield _client

    app.dependency_overrides.clear()


class TestSourceFailures:
    """Tests for backend errors surfacing through the API"""

    def test_read_failure_is_bad_gateway(self, client_for):
        client = client_for(FailingSource(read_error=ReminderSourceError("Failed to load notifications")))

        response = client.get(schedule_url(1))

        assert response.status_code == 502
        assert response.json()["message"] == "Failed to load notifications"

    def test_malformed_remote_payload_is_bad_gateway(self, client_for):
        def handler(request):
            return httpx.Response(200, json={"message": "success", "reminders": [{"id": 1}]})

        source = HospitalApiClient(
            base_url="https://hospital.test/api/v1/",
            transport=httpx.MockTransport(handler)
        )
        client = client_for(source)

        response = client.get(schedule_url(1))

        assert response.status_code == 502
        assert response.json()["error"] is True

    def test_backend_rejection_is_bad_gateway(self, client_for):
        client = client_for(FailingSource(mutate_error=MutationFailure("Validation failed", status_code=400)))

        response = client.patch(f"{schedule_url(1)}/1", json={"dose_status": 1})

        assert response.status_code == 502
        assert response.json()["message"] == "Validation failed"

    def test_backend_conflict_passes_through(self, client_for):
        client = client_for(FailingSource(mutate_error=MutationFailure("Already recorded", status_code=409)))

        response = client.patch(f"{schedule_url(1)}/1", json={"dose_status": 1})

        assert response.status_code == 409


# =============================================================================
# Test health endpoints
# =============================================================================

class TestHealth:
    """Tests for health endpoints"""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["checks"]["reminder_source"] == "local"
        assert data["checks"]["database"]["status"] == "up"
        assert data["checks"]["database"]["reminders"] == {
            "Pending": 0, "Completed": 0, "Not Required": 0
        }
