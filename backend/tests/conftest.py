import pytest
from fastapi.testclient import TestClient

from app.config import PLACEHOLDER_PREDICTION_KEY, settings
from main import app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the users file at a temp dir and start every test in demo mode."""
    monkeypatch.setattr(settings, "USERS_FILE", str(tmp_path / "users.json"))
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)
    monkeypatch.setattr(settings, "CUSTOM_VISION_PREDICTION_KEY", PLACEHOLDER_PREDICTION_KEY)
    monkeypatch.setattr(settings, "GCS_BUCKET_NAME", None)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_client(client):
    response = client.post(
        "/api/auth/login",
        json={"email": "demo@example.com", "password": "demo123"},
    )
    assert response.status_code == 200
    return client
