"""Transactional email over SMTP (password reset links)."""

from __future__ import annotations

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import quote

from app.core.config import get_settings
from app.core.logging import get_logger

settings = get_settings()
logger = get_logger("services.email")

RESET_SUBJECT = "Reset your VCA password"

RESET_HTML = """\
<html>
  <body style="font-family: sans-serif; background: #f5f5f5; padding: 32px;">
    <div style="max-width: 480px; margin: 0 auto; background: #ffffff; border-radius: 12px; padding: 32px;">
      <h2 style="margin-top: 0;">Reset your password</h2>
      <p>Hi {name},</p>
      <p>We received a request to reset your password. This link expires in {minutes} minutes.</p>
      <p><a href="{url}" style="background: #7c3aed; color: #ffffff; padding: 12px 20px; border-radius: 8px;
         text-decoration: none;">Reset password</a></p>
      <p>If you did not ask for this, you can ignore this email.</p>
    </div>
  </body>
</html>
"""

RESET_TEXT = "Hi {name},\n\nReset your password ({minutes} minute link): {url}\n\nIgnore this email if you did not ask for it.\n"


class EmailService:
    def reset_url(self, token: str) -> str:
        return f"{settings.frontend_url.rstrip('/')}/reset-password?token={quote(token)}"

    def _send(self, recipient: str, subject: str, html: str, plain: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.smtp_from
        msg["To"] = recipient
        msg.attach(MIMEText(plain, "plain"))
        msg.attach(MIMEText(html, "html"))

        if settings.smtp_port == 465:
            server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=15)
        else:
            server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=15)
        with server:
            if settings.smtp_use_tls and settings.smtp_port != 465:
                server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)

    async def send_password_reset(self, *, email: str, token: str, name: str | None = None) -> dict:
        """Returns `{sent, disabled}`. SMTP failures are logged; the caller's response never changes."""
        if not settings.smtp_enabled:
            logger.info("email_disabled_password_reset", email=email)
            return {"sent": False, "disabled": True}

        url = self.reset_url(token)
        display = name or email.split("@")[0]
        minutes = settings.password_reset_expire_minutes
        try:
            await asyncio.to_thread(
                self._send,
                email,
                RESET_SUBJECT,
                RESET_HTML.format(name=display, url=url, minutes=minutes),
                RESET_TEXT.format(name=display, url=url, minutes=minutes),
            )
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("password_reset_email_failed", email=email, error=str(exc))
            return {"sent": False, "disabled": False}

        logger.info("password_reset_email_sent", email=email)
        return {"sent": True, "disabled": False}


email_service = EmailService()
