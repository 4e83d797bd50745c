"""Twilio Verify client for SMS one-time passcodes.

Twilio generates and checks the code itself; we only start a verification
and later ask Twilio whether the code the user typed is approved.
"""

import logging
from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from app.core.config import Settings

logger = logging.getLogger(__name__)


class TwilioVerifyClient:
    """Thin wrapper around the Twilio Verify v2 API."""

    def __init__(self, settings: Settings):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.service_sid = settings.TWILIO_VERIFY_SERVICE_SID
        self._client: Client | None = None

    def missing_config(self) -> list[str]:
        """Names of the Twilio settings that are not configured."""
        missing = []
        if not self.account_sid:
            missing.append("TWILIO_ACCOUNT_SID")
        if not self.auth_token:
            missing.append("TWILIO_AUTH_TOKEN")
        if not self.service_sid:
            missing.append("TWILIO_VERIFY_SERVICE_SID")
        return missing

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def _service(self):
        return self._get_client().verify.v2.services(self.service_sid)

    async def start_verification(self, to: str, channel: str = "sms") -> str:
        """Ask Twilio to send a code to ``to``. Returns the verification status.

        Raises TwilioRestException when Twilio rejects the request.
        """
        verification = self._service().verifications.create(to=to, channel=channel)
        logger.info("Twilio verification started for %s (SID: %s)", to, verification.sid)
        return verification.status

    async def check_verification(self, to: str, code: str) -> bool:
        """Return True when Twilio approves ``code`` for ``to``."""
        try:
            check = self._service().verification_checks.create(to=to, code=code)
        except TwilioRestException as e:
            # Twilio answers 404 once a verification expired or was already approved
            logger.warning("Twilio verification check failed for %s: %s", to, e)
            return False
        return check.status == "approved"
