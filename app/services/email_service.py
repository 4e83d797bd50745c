"""Email notification service using SendGrid."""

import logging
from typing import Optional
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.core.config import Settings

logger = logging.getLogger(__name__)

BUTTON_STYLE = (
    "display: inline-block; padding: 12px 24px; background-color: #6C3CE1; "
    "color: white; text-decoration: none; border-radius: 5px; margin: 20px 0;"
)


def _layout(heading: str, body_html: str) -> str:
    return f"""
    <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: #6C3CE1;">{heading}</h2>
                {body_html}
                <p style="color: #666; font-size: 14px; margin-top: 40px;">
                    See you in the arcade,<br>
                    The Arcade Portal Team
                </p>
            </div>
        </body>
    </html>
    """


def _button(url: str, label: str) -> str:
    return (
        f'<p><a href="{url}" style="{BUTTON_STYLE}">{label}</a></p>'
        f'<p style="color: #666; font-size: 14px;">Or copy and paste this link: {url}</p>'
    )


class EmailService:
    """Email service for sending notifications."""

    def __init__(self, settings: Settings):
        self.api_key = settings.SENDGRID_API_KEY
        self.from_email = settings.SENDGRID_FROM_EMAIL
        self.from_name = settings.SENDGRID_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL.rstrip("/")
        self.otp_expiry_minutes = settings.OTP_EXPIRY_MINUTES
        self.invitation_expiry_days = settings.INVITATION_EXPIRY_DAYS

        if not self.api_key:
            logger.warning("SENDGRID_API_KEY not configured. Emails will not be sent.")
            self.enabled = False
        else:
            self.client = SendGridAPIClient(self.api_key)
            self.enabled = True
            logger.info("Email service initialized successfully")

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        plain_body: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.enabled:
            logger.info("Email service disabled. Would have sent to %s: %s", to, subject)
            return False

        try:
            message = Mail(
                from_email=(self.from_email, self.from_name),
                to_emails=to,
                subject=subject,
                html_content=html_body,
            )
            if plain_body:
                message.plain_text_content = plain_body

            response = self.client.send(message)

            if 200 <= response.status_code < 300:
                logger.info("Email sent successfully to %s: %s", to, subject)
                return True
            logger.error("Failed to send email to %s: %s %s", to, response.status_code, response.body)
            return False

        except Exception as e:
            logger.error("Error sending email to %s: %s", to, e)
            return False

    async def send_otp_email(self, to: str, code: str) -> bool:
        subject = "Your Arcade Portal login code"
        html_body = _layout(
            "Your login code",
            f"""
            <p>Use this code to finish signing in:</p>
            <p style="font-size: 28px; letter-spacing: 6px; font-weight: bold;">{code}</p>
            <p>The code expires in {self.otp_expiry_minutes} minutes.
            If you didn't try to sign in, you can ignore this email.</p>
            """,
        )
        plain_body = f"Your login code is {code}. It expires in {self.otp_expiry_minutes} minutes."
        return await self.send_email(to, subject, html_body, plain_body)

    async def send_invitation_email(self, to: str, token: str, role: str, invited_by: str | None = None) -> bool:
        url = f"{self.frontend_url}/accept-invitation/{token}"
        inviter = f"{invited_by} has" if invited_by else "You have been"
        subject = "You're invited to Arcade Portal"
        html_body = _layout(
            "You're invited!",
            f"""
            <p>{inviter} invited you to join Arcade Portal as <strong>{role}</strong>.</p>
            {_button(url, "Accept Invitation")}
            <p>This invitation expires in {self.invitation_expiry_days} days.</p>
            """,
        )
        plain_body = (
            f"You're invited to join Arcade Portal as {role}.\n\n"
            f"Accept the invitation: {url}\n\n"
            f"This invitation expires in {self.invitation_expiry_days} days."
        )
        return await self.send_email(to, subject, html_body, plain_body)

    async def send_password_reset_email(self, to: str, token: str, expiry_minutes: int) -> bool:
        url = f"{self.frontend_url}/reset-password/{token}"
        subject = "Reset your Arcade Portal password"
        html_body = _layout(
            "Password reset",
            f"""
            <p>We received a request to reset your password.</p>
            {_button(url, "Reset Password")}
            <p>This link expires in {expiry_minutes} minutes.
            If you didn't request a reset, you can safely ignore this email.</p>
            """,
        )
        plain_body = f"Reset your password: {url}\n\nThis link expires in {expiry_minutes} minutes."
        return await self.send_email(to, subject, html_body, plain_body)

    async def send_role_changed_email(self, to: str, name: str, old_role: str, new_role: str) -> bool:
        subject = "Your Arcade Portal role has changed"
        html_body = _layout(
            f"Hi {name},",
            f"<p>Your role has been changed from <strong>{old_role}</strong> "
            f"to <strong>{new_role}</strong>.</p>",
        )
        plain_body = f"Hi {name},\n\nYour role has been changed from {old_role} to {new_role}."
        return await self.send_email(to, subject, html_body, plain_body)

    async def send_role_revoked_email(self, to: str, name: str, old_role: str) -> bool:
        subject = "Your Arcade Portal role was revoked"
        html_body = _layout(
            f"Hi {name},",
            f"<p>Your <strong>{old_role}</strong> role has been revoked. "
            f"Your account now has player access.</p>",
        )
        plain_body = f"Hi {name},\n\nYour {old_role} role has been revoked. Your account now has player access."
        return await self.send_email(to, subject, html_body, plain_body)

    async def send_welcome_email(self, to: str, name: str) -> bool:
        subject = "Welcome to Arcade Portal!"
        html_body = _layout(
            f"Welcome, {name}!",
            f"<p>Your account is ready. Jump in and start playing.</p>"
            f"{_button(self.frontend_url, 'Start Playing')}",
        )
        plain_body = f"Welcome to Arcade Portal, {name}!\n\nStart playing: {self.frontend_url}"
        return await self.send_email(to, subject, html_body, plain_body)
