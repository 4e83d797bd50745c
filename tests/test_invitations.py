"""Tests for the invitation workflow, including account restoration."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.core.errors import ConflictError, ForbiddenError, ValidationError
from app.models.invitation import Invitation
from app.models.role import RoleType
from app.models.user import User
from app.services.auth import verify_password


async def _invite(client, auth_headers, inviter, email="new@example.com", role="editor"):
    return await client.post(
        "/api/v1/auth/invite",
        json={"email": email, "role": role},
        headers=auth_headers(inviter),
    )


@pytest.mark.asyncio
async def test_admin_invites_editor(client, db, admin, auth_headers, email_service):
    resp = await _invite(client, auth_headers, admin)

    assert resp.status_code == 201
    body = resp.json()
    assert body["email"] == "new@example.com"
    assert body["role"] == "editor"
    assert body["status"] == "pending"
    assert body["invitedBy"] == "admin@example.com"

    invitation = (await db.execute(select(Invitation))).scalar_one()
    email_service.send_invitation_email.assert_awaited_once()
    assert email_service.send_invitation_email.call_args.args[1] == invitation.token
    assert invitation.expires_at > datetime.utcnow() + timedelta(days=6)


@pytest.mark.asyncio
async def test_second_pending_invitation_is_rejected(client, admin, auth_headers):
    assert (await _invite(client, auth_headers, admin)).status_code == 201

    resp = await _invite(client, auth_headers, admin, email="NEW@example.com", role="viewer")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_admin_cannot_invite_admins(client, admin, auth_headers):
    for role in ("admin", "superadmin"):
        resp = await _invite(client, auth_headers, admin, role=role)
        assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_cannot_demote_higher_roles_by_invitation(client, db, admin, superadmin, make_user, auth_headers):
    other_admin = await make_user("other-admin@example.com", RoleType.ADMIN)

    for target in (superadmin, other_admin):
        resp = await _invite(client, auth_headers, admin, email=target.email, role="viewer")
        assert resp.status_code == 403

    assert (await db.execute(select(Invitation))).scalars().all() == []


@pytest.mark.asyncio
async def test_superadmin_can_invite_admin(client, superadmin, auth_headers):
    resp = await _invite(client, auth_headers, superadmin, role="admin")
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_player_cannot_invite(client, make_user, auth_headers):
    player = await make_user("player@example.com")
    resp = await _invite(client, auth_headers, player)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_invite_user_who_already_has_role(client, admin, make_user, auth_headers):
    await make_user("editor@example.com", RoleType.EDITOR)
    resp = await _invite(client, auth_headers, admin, email="editor@example.com")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_invitation_replaces_expired_one(db, auth_service, admin):
    first = await auth_service.create_invitation("late@example.com", RoleType.VIEWER, admin)
    first.expires_at = datetime.utcnow() - timedelta(minutes=1)
    await db.commit()

    second = await auth_service.create_invitation("late@example.com", RoleType.VIEWER, admin)

    rows = (await db.execute(select(Invitation).where(Invitation.email == "late@example.com"))).scalars().all()
    assert [row.id for row in rows] == [second.id]


@pytest.mark.asyncio
async def test_verify_invitation_for_new_email(client, db, admin, auth_service):
    invitation = await auth_service.create_invitation("fresh@example.com", RoleType.EDITOR, admin)

    resp = await client.get(f"/api/v1/auth/verify-invitation/{invitation.token}")

    assert resp.status_code == 200
    assert resp.json() == {
        "email": "fresh@example.com",
        "userExists": False,
        "isRestoration": False,
        "role": "editor",
    }


@pytest.mark.asyncio
async def test_verify_invalid_invitation(client):
    resp = await client.get("/api/v1/auth/verify-invitation/not-a-token")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_expired_invitation_is_removed_on_read(client, db, admin, auth_service):
    invitation = await auth_service.create_invitation("stale@example.com", RoleType.EDITOR, admin)
    invitation.expires_at = datetime.utcnow() - timedelta(seconds=1)
    await db.commit()

    resp = await client.get(f"/api/v1/auth/verify-invitation/{invitation.token}")

    assert resp.status_code == 400
    db.expunge_all()
    assert (await db.execute(select(Invitation))).scalars().all() == []


@pytest.mark.asyncio
async def test_register_from_invitation(client, db, admin, auth_service):
    invitation = await auth_service.create_invitation("joiner@example.com", RoleType.EDITOR, admin)
    payload = {"firstName": "Jo", "lastName": "Iner", "password": "joinerpass1", "phoneNumber": "+15551110000"}

    resp = await client.post(f"/api/v1/auth/register/{invitation.token}", json=payload)

    assert resp.status_code == 201
    assert resp.json()["user"]["role"] == "editor"
    await db.refresh(invitation)
    assert invitation.is_accepted is True

    # The token is single use
    again = await client.post(f"/api/v1/auth/register/{invitation.token}", json=payload)
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_register_from_invitation_rejects_taken_phone(client, admin, auth_service, make_user):
    await make_user("phoneowner@example.com", phone_number="+15551112222")
    invitation = await auth_service.create_invitation("joiner2@example.com", RoleType.VIEWER, admin)

    resp = await client.post(
        f"/api/v1/auth/register/{invitation.token}",
        json={"firstName": "Jo", "lastName": "Two", "password": "joinerpass1", "phoneNumber": "+15551112222"},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_soft_deleted_user_is_restored_in_place(client, db, admin, auth_service, make_user):
    old = await make_user(
        "returning@example.com",
        RoleType.PLAYER,
        is_deleted=True,
        is_active=False,
        deleted_at=datetime.utcnow(),
    )
    invitation = await auth_service.create_invitation("returning@example.com", RoleType.EDITOR, admin)

    check = await client.get(f"/api/v1/auth/verify-invitation/{invitation.token}")
    assert check.json()["isRestoration"] is True
    assert check.json()["userExists"] is False

    resp = await client.post(
        f"/api/v1/auth/register/{invitation.token}",
        json={"firstName": "Re", "lastName": "Turned", "password": "backagain1"},
    )

    assert resp.status_code == 201
    assert resp.json()["user"]["id"] == str(old.id)
    await db.refresh(old)
    assert old.is_deleted is False
    assert old.deleted_at is None
    assert old.is_active is True
    assert old.first_name == "Re"
    assert old.role.name == RoleType.EDITOR
    assert verify_password("backagain1", old.hashed_password)
    assert len((await db.execute(select(User).where(User.email == "returning@example.com"))).scalars().all()) == 1


@pytest.mark.asyncio
async def test_register_from_invitation_with_existing_account_fails(admin, auth_service, make_user):
    await make_user("exists@example.com", RoleType.PLAYER)
    invitation = await auth_service.create_invitation("exists@example.com", RoleType.EDITOR, admin)

    with pytest.raises(ConflictError):
        await auth_service.register_from_invitation(invitation.token, "Ex", "Ists", "password123")


@pytest.mark.asyncio
async def test_reset_password_from_invitation_applies_role(client, db, admin, auth_service, make_user):
    user = await make_user("promote@example.com", RoleType.PLAYER)
    invitation = await auth_service.create_invitation("promote@example.com", RoleType.VIEWER, admin)

    check = await client.get(f"/api/v1/auth/verify-invitation/{invitation.token}")
    assert check.json()["userExists"] is True

    resp = await client.post(
        f"/api/v1/auth/reset-password-from-invitation/{invitation.token}",
        json={"password": "viewerpass1"},
    )

    assert resp.status_code == 200
    await db.refresh(user)
    assert user.role.name == RoleType.VIEWER
    assert user.role_id == user.role.id
    assert verify_password("viewerpass1", user.hashed_password)


@pytest.mark.asyncio
async def test_list_and_delete_invitations(client, admin, auth_service, auth_headers):
    invitation = await auth_service.create_invitation("listed@example.com", RoleType.PLAYER, admin)

    listed = await client.get("/api/v1/auth/invitations", headers=auth_headers(admin))
    assert listed.status_code == 200
    assert [i["email"] for i in listed.json()] == ["listed@example.com"]

    resp = await client.delete(f"/api/v1/auth/invitations/{invitation.id}", headers=auth_headers(admin))
    assert resp.status_code == 200

    listed = await client.get("/api/v1/auth/invitations", headers=auth_headers(admin))
    assert listed.json() == []


@pytest.mark.asyncio
async def test_admin_cannot_delete_admin_invitation(auth_service, admin, superadmin):
    invitation = await auth_service.create_invitation("newadmin@example.com", RoleType.ADMIN, superadmin)

    with pytest.raises(ForbiddenError):
        await auth_service.delete_invitation(invitation.id, admin)


@pytest.mark.asyncio
async def test_accepted_invitation_cannot_be_verified(db, auth_service, admin):
    invitation = await auth_service.create_invitation("done@example.com", RoleType.PLAYER, admin)
    invitation.is_accepted = True
    await db.commit()

    with pytest.raises(ValidationError):
        await auth_service.verify_invitation(invitation.token)
