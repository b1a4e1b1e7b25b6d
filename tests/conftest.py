"""
pytest configuration and fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from user_service import app, store


@pytest.fixture(autouse=True)
def empty_store():
    """Every test starts with no users."""
    store.clear()
    yield store
    store.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def ann_and_bob(client):
    """Two users: Ann at index 0, Bob at index 1."""
    client.post("/users", json={"name": "Ann", "age": 30})
    client.post("/users", json={"name": "Bob", "age": 40})
    return client
