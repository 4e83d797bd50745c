"""One-time passcode issuing, delivery and verification.

Email codes are generated and checked locally. SMS codes are owned by
Twilio Verify: the stored row only carries a sentinel secret and the check
is delegated to Twilio. Allow-listed test identities always use the fixed
test code and are never dispatched.
"""

import logging
import secrets
from datetime import datetime, timedelta
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from twilio.base.exceptions import TwilioRestException

from app.core.config import Settings
from app.core.errors import NotFoundError, ProviderError, ValidationError
from app.models.otp import Otp, OtpType, TWILIO_VERIFY_SENTINEL
from app.models.user import User
from app.services.email_service import EmailService
from app.services.sms import TwilioVerifyClient

logger = logging.getLogger(__name__)


def generate_code() -> str:
    """Six random digits, zero-padded."""
    return f"{secrets.randbelow(1_000_000):06d}"


class OtpService:
    def __init__(
        self,
        db: AsyncSession,
        email_service: EmailService,
        verify_client: TwilioVerifyClient,
        settings: Settings,
    ):
        self.db = db
        self.email_service = email_service
        self.verify_client = verify_client
        self.expiry = timedelta(minutes=settings.OTP_EXPIRY_MINUTES)
        self.test_identifiers = {i.strip().lower() for i in settings.OTP_TEST_IDENTIFIERS if i.strip()}
        self.test_code = settings.OTP_TEST_CODE

    def is_test_identity(self, user: User) -> bool:
        identities = {(user.email or "").lower(), (user.phone_number or "").lower()}
        return bool(identities & self.test_identifiers)

    async def _get_user(self, user_id: UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user or user.is_deleted:
            raise NotFoundError("User not found")
        return user

    async def _latest_unverified(self, user_id: UUID) -> Otp | None:
        result = await self.db.execute(
            select(Otp)
            .where(Otp.user_id == user_id, Otp.is_verified == False)  # noqa: E712
            .order_by(Otp.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def generate_otp(self, user_id: UUID, otp_type: OtpType) -> str:
        """Create and store a fresh code for the user. Returns the code."""
        user = await self._get_user(user_id)

        if self.is_test_identity(user):
            code = self.test_code
            otp_type = OtpType.NONE
        else:
            code = generate_code()

        otp = Otp(
            user_id=user.id,
            email=user.email,
            phone_number=user.phone_number,
            type=otp_type,
            secret=code,
            expires_at=datetime.utcnow() + self.expiry,
        )
        self.db.add(otp)
        await self.db.commit()
        return code

    async def send_otp(self, user_id: UUID, code: str, otp_type: OtpType) -> None:
        """Deliver ``code`` on the requested channel.

        Raises ProviderError when the channel cannot be used.
        """
        user = await self._get_user(user_id)

        if self.is_test_identity(user):
            logger.info("Test identity %s: OTP not dispatched", user.email)
            return

        if otp_type == OtpType.EMAIL:
            if not user.email:
                raise ProviderError("Failed to send OTP email: user has no email address")
            sent = await self.email_service.send_otp_email(user.email, code)
            if not sent:
                reason = "email service not configured" if not self.email_service.enabled else "provider rejected the message"
                raise ProviderError(f"Failed to send OTP email: {reason}")
            logger.info("OTP email sent to %s", user.email)
            return

        if otp_type == OtpType.SMS:
            if not user.phone_number:
                raise ProviderError("Failed to send OTP via SMS: user has no phone number")
            missing = self.verify_client.missing_config()
            if missing:
                raise ProviderError(f"Failed to send OTP via SMS: missing configuration {', '.join(missing)}")
            try:
                await self.verify_client.start_verification(user.phone_number, "sms")
            except TwilioRestException as e:
                raise ProviderError(f"Failed to send OTP via SMS: Twilio error {e.code}: {e.msg}") from e

            otp = await self._latest_unverified(user.id)
            if otp:
                otp.secret = TWILIO_VERIFY_SENTINEL
                otp.type = OtpType.SMS
                await self.db.commit()
            logger.info("OTP verification started for %s", user.phone_number)
            return

        raise ValidationError(f"Unsupported OTP type: {otp_type}")

    async def verify_otp(self, user_id: UUID, code: str) -> bool:
        """Check ``code`` against the user's most recent unverified OTP.

        Expired or missing codes give False; a match marks the row verified.
        """
        user = await self._get_user(user_id)

        if self.is_test_identity(user) and code == self.test_code:
            return True

        otp = await self._latest_unverified(user.id)
        if not otp:
            return False
        if otp.expires_at <= datetime.utcnow():
            logger.info("Expired OTP presented for user %s", user.id)
            return False

        if otp.secret == TWILIO_VERIFY_SENTINEL:
            if not otp.phone_number:
                return False
            valid = await self.verify_client.check_verification(otp.phone_number, code)
        else:
            valid = secrets.compare_digest(otp.secret.encode(), code.encode())

        if valid:
            otp.is_verified = True
            await self.db.commit()
        return valid
