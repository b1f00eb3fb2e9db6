"""
Tests for health probes, metrics, request ids and the static frontend.
"""

from sqlalchemy import inspect, text

from app.models import Driver, ScheduleEntry
from app.storage import has_unique_key
from conftest import register_driver, save_schedule


class TestHealth:

    def test_live(self, client):
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_without_schema(self, client, database):
        Driver.__table__.drop(bind=database)

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"


class TestObservability:

    def test_request_id_header(self, client):
        response = client.get("/api/drivers")

        assert "x-request-id" in response.headers

    def test_metrics_exposed(self, client):
        register_driver(client, "Tanaka")
        save_schedule(client, "Tanaka", "2024-06-01")

        response = client.get("/metrics")

        assert response.status_code == 200
        body = response.text
        assert "http_requests_total" in body
        assert 'schedule_upserts_total{result="created"}' in body

    def test_storage_error_is_opaque(self, client, database):
        Driver.__table__.drop(bind=database)

        response = client.get("/api/drivers")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch drivers"}


class TestFrontend:

    def test_root_serves_index(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]


class TestScheduleKeyCheck:

    def test_not_ready_without_schedule_unique_key(self, client, database):
        ScheduleEntry.__table__.drop(bind=database)
        with database.begin() as conn:
            conn.execute(text(
                "CREATE TABLE schedule (id INTEGER PRIMARY KEY, driver VARCHAR, date DATE, "
                "destination VARCHAR, cargo VARCHAR, truck_number VARCHAR, company_message TEXT)"
            ))

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"

    def test_unique_key_found_on_created_schema(self, database):
        assert has_unique_key(inspect(database), "schedule", ("driver", "date")) is True
