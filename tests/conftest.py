"""
Shared fixtures: the real application wired to an in-memory MongoDB
(mongomock), so every test runs the full route -> component -> store path.
"""
import mongomock
import pytest
from fastapi.testclient import TestClient

from main import create_app
from settings import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret="test-secret-for-signing-session-tokens", database_name="ecommerce_test", cart_max_retries=3)


@pytest.fixture
def app(settings):
    return create_app(settings, client=mongomock.MongoClient())


@pytest.fixture
def test_client(app):
    with TestClient(app) as client:
        yield client


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(test_client):
    """Register a user and return (user, token)."""
    def _register(name="john", email="j@x.com", password="secret123"):
        response = test_client.post("/users", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], body["token"]
    return _register


@pytest.fixture
def make_item(test_client):
    def _make_item(token, name="Smartphone", price=299.99, **extra):
        payload = {"name": name, "price": price, "description": "128GB", "category": "Electronics", **extra}
        response = test_client.post("/items", json=payload, headers=auth(token))
        assert response.status_code == 201, response.text
        return response.json()
    return _make_item
