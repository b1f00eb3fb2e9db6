"""
Pytest configuration and shared fixtures.

Test settings are placed in the environment before any app import so the
cached Settings instance and the engine are built against the test database.
"""

import os
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent

os.environ.setdefault("DATABASE_URL", f"sqlite:///{ROOT / 'test_truck_schedule.db'}")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("STATIC_DIR", str(ROOT / "public"))

import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
get_settings.cache_clear()

from app.main import app
from app.storage import SessionLocal, Base, engine


@pytest.fixture(scope="function")
def database():
    """Fresh schema for each test, dropped afterwards."""
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(database):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(database):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def register_driver(client, name: str, phone: str = "090-0000-0000", address: str = "Nagoya"):
    """Helper to register a driver via the API."""
    response = client.post("/api/drivers/add", json={"name": name, "phone": phone, "address": address})
    assert response.status_code == 200
    return response


def save_schedule(client, driver: str, date: str, **fields):
    """Helper to upsert a schedule entry via the API."""
    body = {
        "driver": driver,
        "date": date,
        "destination": fields.get("destination", "Osaka"),
        "cargo": fields.get("cargo", "Electronics"),
        "truck_number": fields.get("truck_number", "T-12"),
        "company_message": fields.get("company_message", "Drive safe"),
    }
    response = client.post("/api/schedule", json=body)
    assert response.status_code == 200
    return response


def send_message(client, driver: str, role: str, subject: str = "Q", message: str = "fuel low", date: str = "2024-06-01"):
    """Helper to send a message via the API."""
    response = client.post(
        "/api/messages",
        json={"driver": driver, "role": role, "subject": subject, "message": message, "date": date},
    )
    assert response.status_code == 200
    return response
