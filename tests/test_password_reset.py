"""Tests for the forgot-password / reset-password workflow."""

from datetime import datetime, timedelta

import pytest

from app.services.auth import RESET_TOKEN_USED_AT, hash_reset_token
from tests.conftest import TEST_PASSWORD


@pytest.mark.asyncio
async def test_forgot_password_unknown_email_gives_same_answer(client, make_user, email_service):
    await make_user("known@example.com")

    unknown = await client.post("/api/v1/auth/forgot-password", json={"email": "unknown@example.com"})
    known = await client.post("/api/v1/auth/forgot-password", json={"email": "known@example.com"})

    assert unknown.status_code == known.status_code == 200
    assert unknown.json() == known.json()
    email_service.send_password_reset_email.assert_awaited_once()


@pytest.mark.asyncio
async def test_reset_password_works_exactly_once(client, db, make_user, email_service):
    user = await make_user("reset@example.com")

    await client.post("/api/v1/auth/forgot-password", json={"email": "reset@example.com"})
    token = email_service.send_password_reset_email.call_args.args[1]

    await db.refresh(user)
    assert user.reset_token == hash_reset_token(token)
    assert user.reset_token != token

    assert (await client.get(f"/api/v1/auth/reset-password/{token}")).status_code == 200

    resp = await client.post(f"/api/v1/auth/reset-password/{token}", json={"password": "brandnew123"})
    assert resp.status_code == 200

    reuse = await client.post(f"/api/v1/auth/reset-password/{token}", json={"password": "another123"})
    assert reuse.status_code == 400
    assert (await client.get(f"/api/v1/auth/reset-password/{token}")).status_code == 400

    await db.refresh(user)
    assert user.reset_token == ""
    assert user.reset_token_expiry == RESET_TOKEN_USED_AT

    old = await client.post("/api/v1/auth/login", json={"identifier": "reset@example.com", "password": TEST_PASSWORD})
    new = await client.post("/api/v1/auth/login", json={"identifier": "reset@example.com", "password": "brandnew123", "otpType": "EMAIL"})
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_expired_reset_token_is_rejected(client, db, make_user):
    token = "a" * 64
    await make_user(
        "late@example.com",
        reset_token=hash_reset_token(token),
        reset_token_expiry=datetime.utcnow() - timedelta(minutes=1),
    )

    resp = await client.post(f"/api/v1/auth/reset-password/{token}", json={"password": "brandnew123"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid or expired reset token"


@pytest.mark.asyncio
async def test_reset_email_failure_does_not_leak(client, make_user, email_service):
    await make_user("bounce@example.com")
    email_service.send_password_reset_email.return_value = False

    resp = await client.post("/api/v1/auth/forgot-password", json={"email": "bounce@example.com"})
    assert resp.status_code == 200
