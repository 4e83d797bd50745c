"""Tests for OTP generation, delivery and verification."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from twilio.base.exceptions import TwilioRestException

from app.core.config import settings
from app.core.errors import NotFoundError, ProviderError
from app.models.otp import Otp, OtpType, TWILIO_VERIFY_SENTINEL
from app.services.otp import OtpService, generate_code


def test_generate_code_is_six_digits():
    for _ in range(50):
        code = generate_code()
        assert len(code) == 6
        assert code.isdigit()


async def _latest_otp(db, user_id) -> Otp:
    result = await db.execute(select(Otp).where(Otp.user_id == user_id).order_by(Otp.created_at.desc()))
    return result.scalars().first()


@pytest.mark.asyncio
async def test_generate_otp_stores_row_with_expiry(db, make_user, otp_service):
    user = await make_user("otp@example.com")

    code = await otp_service.generate_otp(user.id, OtpType.EMAIL)

    otp = await _latest_otp(db, user.id)
    assert otp.secret == code
    assert otp.type == OtpType.EMAIL
    assert otp.is_verified is False
    remaining = otp.expires_at - datetime.utcnow()
    assert timedelta(minutes=4) < remaining <= timedelta(minutes=settings.OTP_EXPIRY_MINUTES)


@pytest.mark.asyncio
async def test_generate_otp_for_unknown_user(otp_service):
    import uuid

    with pytest.raises(NotFoundError):
        await otp_service.generate_otp(uuid.uuid4(), OtpType.EMAIL)


@pytest.mark.asyncio
async def test_verify_otp_marks_row_verified_once(db, make_user, otp_service):
    user = await make_user("once@example.com")
    code = await otp_service.generate_otp(user.id, OtpType.EMAIL)

    assert await otp_service.verify_otp(user.id, code) is True
    assert await otp_service.verify_otp(user.id, code) is False

    otp = await _latest_otp(db, user.id)
    assert otp.is_verified is True


@pytest.mark.asyncio
async def test_verify_otp_uses_most_recent_code(make_user, otp_service):
    user = await make_user("recent@example.com")
    first = await otp_service.generate_otp(user.id, OtpType.EMAIL)
    second = await otp_service.generate_otp(user.id, OtpType.EMAIL)

    if first != second:
        assert await otp_service.verify_otp(user.id, first) is False
    assert await otp_service.verify_otp(user.id, second) is True


@pytest.mark.asyncio
async def test_expired_otp_is_rejected_even_with_matching_code(db, make_user, otp_service):
    user = await make_user("expired@example.com")
    code = await otp_service.generate_otp(user.id, OtpType.EMAIL)

    otp = await _latest_otp(db, user.id)
    otp.expires_at = datetime.utcnow() - timedelta(seconds=1)
    await db.commit()

    assert await otp_service.verify_otp(user.id, code) is False


@pytest.mark.asyncio
async def test_verify_without_any_otp_is_false(make_user, otp_service):
    user = await make_user("none@example.com")
    assert await otp_service.verify_otp(user.id, "123456") is False


@pytest.mark.asyncio
async def test_send_email_otp(make_user, otp_service, email_service):
    user = await make_user("mail@example.com")

    await otp_service.send_otp(user.id, "654321", OtpType.EMAIL)

    email_service.send_otp_email.assert_awaited_once_with("mail@example.com", "654321")


@pytest.mark.asyncio
async def test_send_email_otp_reports_disabled_provider(make_user, otp_service, email_service):
    user = await make_user("disabled@example.com")
    email_service.enabled = False
    email_service.send_otp_email.return_value = False

    with pytest.raises(ProviderError, match="not configured"):
        await otp_service.send_otp(user.id, "654321", OtpType.EMAIL)


@pytest.mark.asyncio
async def test_sms_otp_is_delegated_to_twilio_verify(db, make_user, otp_service, verify_client):
    user = await make_user("verify@example.com", phone_number="+15550007777")
    code = await otp_service.generate_otp(user.id, OtpType.SMS)

    await otp_service.send_otp(user.id, code, OtpType.SMS)

    otp = await _latest_otp(db, user.id)
    assert otp.secret == TWILIO_VERIFY_SENTINEL

    verify_client.check_verification.return_value = False
    assert await otp_service.verify_otp(user.id, "111111") is False

    verify_client.check_verification.return_value = True
    assert await otp_service.verify_otp(user.id, "222222") is True
    verify_client.check_verification.assert_awaited_with("+15550007777", "222222")


@pytest.mark.asyncio
async def test_sms_without_phone_number(make_user, otp_service):
    user = await make_user("nophone@example.com")

    with pytest.raises(ProviderError) as exc:
        await otp_service.send_otp(user.id, "123456", OtpType.SMS)
    assert "no phone number" in exc.value.message


@pytest.mark.asyncio
async def test_sms_missing_config_lists_keys(make_user, otp_service, verify_client):
    user = await make_user("noconfig@example.com", phone_number="+15550008888")
    verify_client.missing_config.return_value = ["TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN"]

    with pytest.raises(ProviderError) as exc:
        await otp_service.send_otp(user.id, "123456", OtpType.SMS)

    assert "TWILIO_ACCOUNT_SID" in exc.value.message
    assert "TWILIO_AUTH_TOKEN" in exc.value.message
    verify_client.start_verification.assert_not_awaited()


@pytest.mark.asyncio
async def test_sms_twilio_error_is_reported(make_user, otp_service, verify_client):
    user = await make_user("twilioerr@example.com", phone_number="+15550009999")
    verify_client.start_verification.side_effect = TwilioRestException(
        400, "https://verify.twilio.com", msg="Invalid parameter `To`", code=60200
    )

    with pytest.raises(ProviderError) as exc:
        await otp_service.send_otp(user.id, "123456", OtpType.SMS)

    assert "60200" in exc.value.message


@pytest.mark.asyncio
async def test_allow_listed_identity_uses_fixed_code(db, make_user, email_service, verify_client):
    test_settings = settings.model_copy(update={"OTP_TEST_IDENTIFIERS": ["tester@example.com"], "OTP_TEST_CODE": "123456"})
    service = OtpService(db, email_service, verify_client, test_settings)
    user = await make_user("Tester@example.com")

    code = await service.generate_otp(user.id, OtpType.EMAIL)
    await service.send_otp(user.id, code, OtpType.EMAIL)

    assert code == "123456"
    email_service.send_otp_email.assert_not_awaited()
    otp = await _latest_otp(db, user.id)
    assert otp.type == OtpType.NONE
    assert await service.verify_otp(user.id, "123456") is True
