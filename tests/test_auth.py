"""Tests for registration, login and the OTP login flow."""

import pytest
from sqlalchemy import select

from app.models.analytics import Analytics
from app.models.role import RoleType
from app.models.user import User
from app.services.auth import hash_password, verify_password
from tests.conftest import TEST_PASSWORD


def test_password_hashing():
    """Password hashing should be one-way and verifiable."""
    password = "supersecret123"
    hashed = hash_password(password)

    assert hashed != password
    assert verify_password(password, hashed) is True
    assert verify_password("wrongpassword", hashed) is False


PLAYER = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "Ada@Example.com",
    "password": "testpass123",
    "phoneNumber": "+15550001111",
    "isAdult": True,
    "hasAcceptedTerms": True,
}


@pytest.mark.asyncio
async def test_register_creates_player(client, db, email_service):
    resp = await client.post("/api/v1/auth/register", json=PLAYER)

    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["role"] == "player"

    user = (await db.execute(select(User).where(User.email == "ada@example.com"))).scalar_one()
    assert user.role.name == RoleType.PLAYER
    assert user.role_id == user.role.id

    activity = (await db.execute(select(Analytics).where(Analytics.user_id == user.id))).scalars().all()
    assert [a.activity_type for a in activity] == ["Signed up"]
    email_service.send_welcome_email.assert_awaited_once()


@pytest.mark.asyncio
async def test_register_duplicate_email_fails(client):
    assert (await client.post("/api/v1/auth/register", json=PLAYER)).status_code == 201

    resp = await client.post("/api/v1/auth/register", json={**PLAYER, "phoneNumber": "+15559999999"})
    assert resp.status_code == 409
    assert "already registered" in resp.json()["detail"].lower()


@pytest.mark.asyncio
async def test_register_duplicate_phone_fails(client):
    assert (await client.post("/api/v1/auth/register", json=PLAYER)).status_code == 201

    resp = await client.post("/api/v1/auth/register", json={**PLAYER, "email": "other@example.com"})
    assert resp.status_code == 409
    assert "already registered" in resp.json()["detail"].lower()


@pytest.mark.asyncio
async def test_register_email_of_soft_deleted_user_fails(client, make_user):
    await make_user("ada@example.com", is_deleted=True, is_active=False)

    resp = await client.post("/api/v1/auth/register", json=PLAYER)
    assert resp.status_code == 409
    assert "already registered" in resp.json()["detail"].lower()


@pytest.mark.asyncio
async def test_register_rejects_malformed_body(client):
    resp = await client.post("/api/v1/auth/register", json={"email": "not-an-email"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_login_unknown_and_wrong_password_look_the_same(client, make_user):
    await make_user("known@example.com", phone_number="+15550002222")

    unknown = await client.post("/api/v1/auth/login", json={"identifier": "nobody@example.com", "password": "x"})
    wrong = await client.post("/api/v1/auth/login", json={"identifier": "known@example.com", "password": "wrong"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json()["detail"] == wrong.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_sends_sms_otp_by_default(client, make_user, verify_client):
    user = await make_user("sms@example.com", phone_number="+15550003333")

    resp = await client.post("/api/v1/auth/login", json={"identifier": "sms@example.com", "password": TEST_PASSWORD})

    assert resp.status_code == 200
    body = resp.json()
    assert body == {
        "userId": str(user.id),
        "email": "sms@example.com",
        "phoneNumber": "+15550003333",
        "requiresOtp": True,
    }
    verify_client.start_verification.assert_awaited_once_with("+15550003333", "sms")


@pytest.mark.asyncio
async def test_login_by_phone_number(client, make_user):
    await make_user("phone@example.com", phone_number="+15550004444")

    resp = await client.post("/api/v1/auth/login", json={"identifier": "+15550004444", "password": TEST_PASSWORD})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_login_reactivates_inactive_account(client, db, make_user):
    user = await make_user("idle@example.com", phone_number="+15550005555", is_active=False)

    resp = await client.post("/api/v1/auth/login", json={"identifier": "idle@example.com", "password": TEST_PASSWORD})

    assert resp.status_code == 200
    await db.refresh(user)
    assert user.is_active is True
    assert user.last_logged_in is not None


@pytest.mark.asyncio
async def test_login_soft_deleted_user_fails(client, make_user):
    await make_user("gone@example.com", is_deleted=True)

    resp = await client.post("/api/v1/auth/login", json={"identifier": "gone@example.com", "password": TEST_PASSWORD})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_email_otp_login_flow(client, db, make_user, email_service):
    user = await make_user("flow@example.com")

    resp = await client.post(
        "/api/v1/auth/login",
        json={"identifier": "flow@example.com", "password": TEST_PASSWORD, "otpType": "EMAIL"},
    )
    assert resp.status_code == 200
    code = email_service.send_otp_email.call_args.args[1]

    resp = await client.post("/api/v1/auth/verify-otp", json={"userId": str(user.id), "otp": code})
    assert resp.status_code == 200
    tokens = resp.json()
    assert tokens["accessToken"] and tokens["refreshToken"]
    assert tokens["user"]["email"] == "flow@example.com"

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['accessToken']}"})
    assert me.status_code == 200
    assert me.json()["id"] == str(user.id)

    logins = await db.execute(
        select(Analytics).where(Analytics.user_id == user.id, Analytics.activity_type == "Logged in")
    )
    assert len(logins.scalars().all()) == 1


@pytest.mark.asyncio
async def test_verify_otp_with_wrong_code_fails(client, make_user):
    user = await make_user("wrongcode@example.com")
    await client.post(
        "/api/v1/auth/login",
        json={"identifier": "wrongcode@example.com", "password": TEST_PASSWORD, "otpType": "EMAIL"},
    )

    resp = await client.post("/api/v1/auth/verify-otp", json={"userId": str(user.id), "otp": "000000x"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_otp_delivery_failure_is_reported(client, make_user, verify_client):
    await make_user("nosms@example.com", phone_number="+15550006666")
    verify_client.missing_config.return_value = ["TWILIO_VERIFY_SERVICE_SID"]

    resp = await client.post("/api/v1/auth/login", json={"identifier": "nosms@example.com", "password": TEST_PASSWORD})

    assert resp.status_code == 500
    assert "TWILIO_VERIFY_SERVICE_SID" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_request_otp_resends_code(client, make_user, email_service):
    user = await make_user("again@example.com")

    resp = await client.post("/api/v1/auth/request-otp", json={"userId": str(user.id), "otpType": "EMAIL"})

    assert resp.status_code == 200
    email_service.send_otp_email.assert_awaited_once()


@pytest.mark.asyncio
async def test_refresh_token(client, make_user, token_service):
    user = await make_user("refresh@example.com")
    tokens = token_service.create_tokens(user)

    resp = await client.post("/api/v1/auth/refresh-token", json={"refreshToken": tokens.refresh_token})
    assert resp.status_code == 200
    assert resp.json()["accessToken"]

    # An access token is not accepted as a refresh token
    resp = await client.post("/api/v1/auth/refresh-token", json={"refreshToken": tokens.access_token})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_me_requires_token(client):
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code in (401, 403)


@pytest.mark.asyncio
async def test_change_password(client, db, make_user, auth_headers):
    user = await make_user("change@example.com")

    wrong = await client.post(
        "/api/v1/auth/me/change-password",
        json={"currentPassword": "nope", "newPassword": "newpass456"},
        headers=auth_headers(user),
    )
    assert wrong.status_code == 400

    resp = await client.post(
        "/api/v1/auth/me/change-password",
        json={"currentPassword": TEST_PASSWORD, "newPassword": "newpass456"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 200
    await db.refresh(user)
    assert verify_password("newpass456", user.hashed_password)


@pytest.mark.asyncio
async def test_initialize_superadmin_is_idempotent(db, auth_service):
    auth_service.settings = auth_service.settings.model_copy(
        update={"SUPERADMIN_EMAIL": "root@example.com", "SUPERADMIN_PASSWORD": "rootpass123"}
    )

    first = await auth_service.initialize_superadmin()
    second = await auth_service.initialize_superadmin()

    assert first is not None
    assert first.role.name == RoleType.SUPERADMIN
    assert second is None
