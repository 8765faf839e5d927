"""
Plain-text mail delivery over SMTP.

Every notification sent by the platform (club credentials, status changes, password reset links)
is **non-fatal**: `send_mail()` returns `False` on failure and logs the error, it never raises.
The blocking `smtplib` exchange runs in a worker thread so the event loop keeps serving requests.
"""

import asyncio
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr

from club_admin_api.config import settings
from club_admin_api.managers.logging_manager import get_logger

logger = get_logger(prefix="[MAIL]")


class MailService:
    def _build_message(self, to: str, subject: str, text: str) -> MIMEText:
        message = MIMEText(text, "plain", "utf-8")
        message["Subject"] = subject
        message["From"] = formataddr((settings.MAIL_FROM_NAME, settings.MAIL_USER or ""))
        message["To"] = to
        return message

    def _deliver(self, to: str, message: MIMEText) -> None:
        with smtplib.SMTP(settings.MAIL_HOST, settings.MAIL_PORT, timeout=settings.MAIL_TIMEOUT_SECONDS) as server:
            if settings.MAIL_USE_TLS:
                server.starttls()
            if settings.MAIL_USER and settings.MAIL_PASSWORD:
                server.login(settings.MAIL_USER, settings.MAIL_PASSWORD.get_secret_value())
            server.sendmail(settings.MAIL_USER or "", [to], message.as_string())

    async def send_mail(self, to: str, subject: str, text: str) -> bool:
        """
        Send a plain-text email.

        Returns:
            bool: `True` when the SMTP server accepted the message. `False` when mail is disabled,
            not configured, or delivery failed.
        """
        if not settings.mail_configured:
            logger.info("Mail disabled, not sending '%s' to %s", subject, to)
            return False

        try:
            await asyncio.to_thread(self._deliver, to, self._build_message(to, subject, text))
        except Exception as e:
            logger.error("Failed to send '%s' to %s: %s", subject, to, e, exc_info=True)
            return False

        logger.info("Mail '%s' sent to %s", subject, to)
        return True


mail_service = MailService()
