import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from fakes import OWNER, auth_headers
from homesocial.errors import BackendError
from homesocial.services.auth_service import FirebaseAuthClient, firebase_error_message


async def test_sign_in_returns_tokens(client):
    response = await client.post(
        "/api/auth/signin", json={"email": "owner@example.com", "password": "secret123"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["uid"] == OWNER.uid
    assert body["id_token"] == "owner-token"
    assert body["expires_in"] == 3600
    assert body["redirect_to"] == "/"


async def test_sign_in_with_wrong_password(client):
    response = await client.post(
        "/api/auth/signin", json={"email": "owner@example.com", "password": "wrong-password"}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid email or password."


async def test_sign_up_new_account(client, auth_client):
    response = await client.post(
        "/api/auth/signup", json={"email": "new@example.com", "password": "secret123"}
    )

    assert response.status_code == 201
    assert response.json()["message"].startswith("Signup successful")
    assert "new@example.com" in auth_client.accounts


async def test_sign_up_existing_account(client):
    response = await client.post(
        "/api/auth/signup", json={"email": "owner@example.com", "password": "secret123"}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "An account with this email already exists."


async def test_sign_up_validates_credentials(client, auth_client):
    response = await client.post("/api/auth/signup", json={"email": "not-an-email", "password": "123"})

    assert response.status_code == 422
    assert "not-an-email" not in auth_client.accounts


async def test_session_reports_signed_in_user(client):
    anonymous = await client.get("/api/auth/session")
    signed_in = await client.get("/api/auth/session", headers=auth_headers("owner-token"))
    expired = await client.get("/api/auth/session", headers=auth_headers("expired-token"))

    assert anonymous.json() == {"user": None}
    assert signed_in.json() == {"user": {"uid": OWNER.uid, "email": OWNER.email}}
    assert expired.json() == {"user": None}


async def test_sign_out_revokes_session(client, auth_client):
    response = await client.post("/api/auth/signout", headers=auth_headers("owner-token"))

    assert response.status_code == 200
    assert response.json()["redirect_to"] == "/login"
    assert auth_client.signed_out == [OWNER.uid]


async def test_health(client):
    response = await client.get("/api/health")

    assert response.status_code == 200


def test_firebase_error_codes_are_translated():
    assert firebase_error_message("EMAIL_EXISTS") == "An account with this email already exists."
    assert firebase_error_message("WEAK_PASSWORD : Password should be at least 6 characters") == (
        "Password should be at least 6 characters."
    )
    assert firebase_error_message("SOMETHING_NEW") == "SOMETHING_NEW"


async def test_password_sign_in_needs_api_key():
    with pytest.raises(BackendError):
        await FirebaseAuthClient(api_key=None).sign_in("owner@example.com", "secret123")


async def test_sign_in_timeout_is_a_backend_error():
    with patch.object(aiohttp.ClientSession, "post", side_effect=asyncio.TimeoutError()):
        with pytest.raises(BackendError, match="timed out"):
            await FirebaseAuthClient(api_key="key").sign_in("owner@example.com", "secret123")


async def test_sign_in_with_non_json_error_body_is_a_backend_error():
    response = MagicMock(status=503)
    response.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "<html>", 0))
    request = MagicMock()
    request.__aenter__.return_value = response
    request.__aexit__.return_value = False

    with patch.object(aiohttp.ClientSession, "post", return_value=request):
        with pytest.raises(BackendError, match="unavailable"):
            await FirebaseAuthClient(api_key="key").sign_in("owner@example.com", "secret123")


async def test_sign_in_timeout_answers_502(client, auth_client):
    auth_client.sign_in = AsyncMock(side_effect=BackendError("Authentication service timed out"))

    response = await client.post(
        "/api/auth/signin", json={"email": "owner@example.com", "password": "secret123"}
    )

    assert response.status_code == 502
    assert response.json()["detail"] == "Authentication service timed out"
