
import json

import pytest

from app.config import settings
from app.exceptions import MalformedInput, UserAlreadyExists
from app.services.user_store import UserStore


@pytest.fixture
def store(tmp_path):
    return UserStore(
        str(tmp_path / "data" / "users.json"),
        demo_email="demo@example.com",
        demo_password="demo123",
        rounds=4,
    )


def test_register_hashes_password_and_lowercases_email(store):
    user = store.register("Ada", "Ada@Example.com", "secret1")

    assert user.email == "ada@example.com"
    saved = json.loads(store.path.read_text())
    assert len(saved) == 1
    assert saved[0]["password"] != "secret1"
    assert saved[0]["password"].startswith("$2")


def test_register_rejects_duplicate_email_case_insensitively(store):
    store.register("Ada", "ada@example.com", "secret1")

    with pytest.raises(UserAlreadyExists):
        store.register("Other Ada", "ADA@example.com", "secret2")


@pytest.mark.parametrize(
    "name, email, password",
    [(None, "a@b.c", "secret1"), ("A", "", "secret1"), ("A", "a@b.c", "12345")],
)
def test_register_validates_fields(store, name, email, password):
    with pytest.raises(MalformedInput):
        store.register(name, email, password)


def test_authenticate_demo_and_registered_users(store):
    store.register("Ada", "ada@example.com", "secret1")

    assert store.authenticate("demo@example.com", "demo123").name == "Demo User"
    assert store.authenticate("ADA@example.com", "secret1").email == "ada@example.com"
    assert store.authenticate("ada@example.com", "wrong") is None
    assert store.authenticate("nobody@example.com", "secret1") is None


def test_missing_users_file_is_empty_store(store):
    assert store.find_by_email("ada@example.com") is None


def test_register_login_session_flow(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Ada", "email": "ada@example.com", "password": "secret1"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "ada@example.com"
    assert "password" not in body["user"]

    duplicate = client.post(
        "/api/auth/register",
        json={"name": "Ada", "email": "ADA@example.com", "password": "secret1"},
    )
    assert duplicate.status_code == 409

    assert client.get("/api/auth/session").status_code == 401

    login = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "secret1"})
    assert login.status_code == 200

    session = client.get("/api/auth/session")
    assert session.status_code == 200
    assert session.json()["name"] == "Ada"

    client.post("/api/auth/logout")
    assert client.get("/api/auth/session").status_code == 401


def test_register_short_password_is_rejected(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Ada", "email": "ada@example.com", "password": "123"},
    )
    assert response.status_code == 400
    assert "at least 6" in response.json()["detail"]


def test_login_with_wrong_password_is_unauthorized(client):
    response = client.post("/api/auth/login", json={"email": "demo@example.com", "password": "nope"})
    assert response.status_code == 401


def test_users_file_follows_settings(client, tmp_path):
    client.post(
        "/api/auth/register",
        json={"name": "Ada", "email": "ada@example.com", "password": "secret1"},
    )
    assert settings.USERS_FILE == str(tmp_path / "users.json")
    assert json.loads((tmp_path / "users.json").read_text())[0]["name"] == "Ada"
