"""Tests for the superadmin seeding CLI."""

from unittest.mock import patch

import pytest

from app.core.config import settings
from app.models.role import RoleType
from app.scripts import seed_admin
from app.services.auth import AuthService, verify_password


@pytest.mark.asyncio
async def test_creates_superadmin(session_factory, db):
    with patch.object(seed_admin, "async_session", session_factory):
        user = await seed_admin.create_or_promote_superadmin("Boss@Example.com", "s3cret-pass", "+15550001111")

    assert user.email == "boss@example.com"
    assert user.role_name == RoleType.SUPERADMIN.value
    assert user.phone_number == "+15550001111"


@pytest.mark.asyncio
async def test_promotes_and_restores_existing_account(session_factory, db, make_user):
    player = await make_user("player@example.com", is_deleted=True, is_active=False)

    with patch.object(seed_admin, "async_session", session_factory):
        await seed_admin.create_or_promote_superadmin("player@example.com", "new-password")

    superadmin_role = await AuthService(db, settings).get_role(RoleType.SUPERADMIN)
    await db.refresh(player)
    assert player.role_id == superadmin_role.id
    assert player.is_deleted is False
    assert player.is_active is True
    assert verify_password("new-password", player.hashed_password)


def test_rejects_short_password(capsys):
    with patch("sys.argv", ["seed_admin", "--email=a@example.com", "--password=short"]):
        with pytest.raises(SystemExit) as exc_info:
            seed_admin.main()
    assert exc_info.value.code == 1
    assert "at least 8 characters" in capsys.readouterr().err
