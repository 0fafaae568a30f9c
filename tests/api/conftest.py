"""
Fixtures for API tests.

Each test gets a fresh in-memory database and storage mock, wired into the
app through dependency overrides, and settings with both mock modes on.
"""

import pytest
from fastapi.testclient import TestClient

from coachdesk.api.dependencies import get_connection, get_storage_client
from coachdesk.config.settings import Settings, get_settings
from coachdesk.infrastructure.snowflake.client import MockSnowflakeConnection
from coachdesk.infrastructure.storage.client import MockStorageClient
from coachdesk.main import create_app

API_KEY = "test-key"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        api_keys=API_KEY,
        snowflake_mock_mode=True,
        r2_mock_mode=True,
        recent_clients_limit=2,
        upload_max_bytes=1024,
    )


@pytest.fixture
def connection():
    return MockSnowflakeConnection()


@pytest.fixture
def storage():
    return MockStorageClient()


@pytest.fixture
def client(settings, connection, storage):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_connection] = lambda: connection
    app.dependency_overrides[get_storage_client] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def coach_headers(coach_id: str) -> dict[str, str]:
    return {"X-API-Key": API_KEY, "X-User-Id": coach_id}


@pytest.fixture
def coach_a():
    return coach_headers("coach-a")


@pytest.fixture
def coach_b():
    return coach_headers("coach-b")


@pytest.fixture
def public():
    """Headers for an anonymous visitor using the frontend."""
    return {"X-API-Key": API_KEY}
