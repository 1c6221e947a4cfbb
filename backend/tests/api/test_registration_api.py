"""HTTP tests for sign-up and email verification."""

from __future__ import annotations

from tests.helpers.http import AUTH, assert_json_keys, assert_problem, json_headers
from tests.helpers.utils import DEFAULT_PASSWORD, make_account

REGISTRATION_KEYS = {"user_id", "email", "status", "message"}


def _register(client, email="new.user@example.com", password=DEFAULT_PASSWORD, confirm=None, ip="127.0.0.1"):
    return client.post(
        f"{AUTH}/register",
        json={"email": email, "password": password, "confirm_password": confirm or password},
        headers=json_headers(),
        environ_base={"REMOTE_ADDR": ip},
    )


def _verify(client, token):
    return client.post(f"{AUTH}/verify-email", json={"token": token}, headers=json_headers())


def _login(client, email="new.user@example.com"):
    return client.post(
        f"{AUTH}/login", json={"email": email, "password": DEFAULT_PASSWORD}, headers=json_headers()
    )


def test_register_then_verify_then_login(client):
    resp = _register(client, email="New.User@Example.com")
    assert resp.status_code == 201, resp.get_data(as_text=True)
    data = resp.get_json()["data"]
    assert_json_keys(data, REGISTRATION_KEYS | {"verification_token"})
    assert data["email"] == "new.user@example.com"
    assert data["status"] == "PENDING_VERIFICATION"

    assert_problem(_login(client), 401, "invalid_credentials")

    verified = _verify(client, data["verification_token"])
    assert verified.status_code == 200
    body = verified.get_json()["data"]
    assert body["status"] == "ACTIVE"
    assert body["user_id"] == data["user_id"]

    assert _login(client).status_code == 200


def test_register_duplicate_email_conflicts(client, components):
    make_account(components.users, components.hasher, email="taken@example.com")
    assert_problem(_register(client, email="TAKEN@example.com"), 409, "conflict")


def test_register_weak_password(client):
    body = assert_problem(_register(client, password="weak"), 422, "weak_password")
    assert body["details"]["missing_requirements"]


def test_register_password_mismatch(client):
    assert_problem(_register(client, confirm="Other-Pass1!"), 422, "password_mismatch")


def test_register_validation_error(client):
    resp = client.post(f"{AUTH}/register", json={"email": "nope"}, headers=json_headers())
    body = assert_problem(resp, 422, "validation_error")
    assert "password" in body["details"]["errors"]


def test_register_is_rate_limited_per_ip(client):
    for n in range(5):
        assert _register(client, email=f"user{n}@example.com", ip="192.0.2.40").status_code == 201
    assert_problem(_register(client, email="late@example.com", ip="192.0.2.40"), 429, "rate_limit_exceeded")


def test_verify_twice_conflicts(client):
    token = _register(client).get_json()["data"]["verification_token"]
    assert _verify(client, token).status_code == 200
    assert_problem(_verify(client, token), 409, "conflict")


def test_verify_rejects_other_token_purposes(client, components):
    make_account(components.users, components.hasher)
    access = _login(client, email="alice@example.com").get_json()["data"]["access_token"]
    assert_problem(_verify(client, access), 401, "token_invalid")


def test_verify_garbage_token(client):
    assert_problem(_verify(client, "not-a-token"), 401, "token_invalid")
