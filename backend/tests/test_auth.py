"""
Tests for account registration, login, profile and bearer tokens.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from memorymatch.models import Account
from memorymatch.services.accounts import create_token, decode_token, hash_password, verify_password
from memorymatch.errors import AuthError


def test_password_hash_is_salted_and_verifiable():
    first = hash_password("secret123")
    second = hash_password("secret123")

    assert first != "secret123"
    assert first != second
    assert verify_password("secret123", first)
    assert not verify_password("wrong", first)


def test_token_round_trip():
    assert decode_token(create_token(42)) == 42


def test_expired_token_rejected():
    token = jwt.encode(
        {"id": 1, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        "test-secret",
        algorithm="HS256",
    )
    with pytest.raises(AuthError) as exc_info:
        decode_token(token)
    assert "expired" in exc_info.value.error


def test_token_with_wrong_secret_rejected():
    token = jwt.encode({"id": 1}, "other-secret", algorithm="HS256")
    with pytest.raises(AuthError):
        decode_token(token)


# ============================================================================
# Register
# ============================================================================

def test_register_success(client, test_db):
    response = client.post("/api/auth/register", json={
        "username": "  memory_master ",
        "email": "Master@Example.com",
        "password": "secret123",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    assert body["data"]["username"] == "memory_master"
    assert body["data"]["email"] == "master@example.com"
    assert body["data"]["token"]

    account = test_db.query(Account).one()
    assert account.password_hash != "secret123"


@pytest.mark.parametrize("payload", [
    {"email": "a@b.com", "password": "secret123"},
    {"username": "player", "password": "secret123"},
    {"username": "player", "email": "a@b.com"},
    {"username": "", "email": "a@b.com", "password": "secret123"},
])
def test_register_missing_fields(client, payload):
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json()["error"] == "Please enter all fields"


@pytest.mark.parametrize("payload", [
    {"username": "ab", "email": "a@b.com", "password": "secret123"},
    {"username": "x" * 31, "email": "a@b.com", "password": "secret123"},
    {"username": "player", "email": "not-an-email", "password": "secret123"},
    {"username": "player", "email": "a@b.com", "password": "12345"},
])
def test_register_invalid_fields(client, payload):
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_register_duplicate_account(client, register):
    register(username="player1", email="player1@test.com")

    same_email = client.post("/api/auth/register", json={
        "username": "someone_else", "email": "PLAYER1@test.com", "password": "secret123",
    })
    same_username = client.post("/api/auth/register", json={
        "username": "player1", "email": "new@test.com", "password": "secret123",
    })

    for response in (same_email, same_username):
        assert response.status_code == 400
        assert response.json()["error"] == "User with that email or username already exists"


# ============================================================================
# Login and Profile
# ============================================================================

def test_login_success_updates_last_login(client, register):
    registered = register(username="player1", password="secret123")

    profile = client.get("/api/auth/me", headers={"Authorization": f"Bearer {registered['token']}"})
    assert profile.json()["data"]["lastLogin"] is None

    response = client.post("/api/auth/login", json={"email": "player1@test.com", "password": "secret123"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == registered["id"]

    profile = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert profile.status_code == 200
    assert profile.json()["data"]["lastLogin"] is not None
    assert profile.json()["data"]["joinDate"] is not None


def test_login_wrong_password(client, register):
    register(username="player1", password="secret123")
    response = client.post("/api/auth/login", json={"email": "player1@test.com", "password": "nope123"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid credentials"}


def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "ghost@test.com", "password": "secret123"})
    assert response.status_code == 401


def test_login_missing_fields(client):
    response = client.post("/api/auth/login", json={"email": "player1@test.com"})
    assert response.status_code == 400
    assert response.json()["error"] == "Please enter all fields"


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_me_with_token_for_deleted_account(client):
    token = create_token(999)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_password_handlers_run_in_threadpool():
    # Sync handlers keep the pbkdf2 work off the event loop
    import inspect
    from memorymatch.api.auth import login, register

    assert not inspect.iscoroutinefunction(register)
    assert not inspect.iscoroutinefunction(login)
