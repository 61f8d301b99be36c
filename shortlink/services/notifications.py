"""Expiration notices for link owners."""

import asyncio
import smtplib
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from email.message import EmailMessage
from email.utils import formataddr

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.config import Settings
from shortlink.models.link import Link
from shortlink.services import link as link_service

logger = structlog.get_logger()

EXPIRY_NOTICE_WINDOW = timedelta(hours=24)

EmailSender = Callable[[EmailMessage], None]

_BODY = """\
Hello {name},

Your shortened URL is about to expire!

Short URL: {short_url}
Original URL: {original_url}
Expires on: {expires_at:%Y-%m-%d %H:%M:%S} UTC

Please create a new shortened URL if you need to keep this link active.

Best regards,
{team}
"""


@dataclass
class NotificationReport:
    sent: int = 0
    failed: int = 0
    skipped: int = 0


class ExpirationNotifier:
    """Emails owners of links that expire within the next 24 hours.

    Delivery is plain SMTP with STARTTLS, run in a worker thread so the
    event loop keeps serving requests. A failed message is logged and the
    batch continues.
    """

    def __init__(self, settings: Settings, sender: EmailSender | None = None) -> None:
        self._settings = settings
        self._send = sender or self._send_smtp

    @property
    def enabled(self) -> bool:
        return self._settings.smtp_configured

    def build_message(self, link: Link) -> EmailMessage:
        owner = link.owner
        message = EmailMessage()
        message["From"] = formataddr((self._settings.from_name, self._settings.from_email))
        message["To"] = owner.email
        message["Subject"] = "Your shortened URL is about to expire"
        message.set_content(
            _BODY.format(
                name=owner.name or owner.email,
                short_url=f"{self._settings.public_base_url}/{link.short_code}",
                original_url=link.original_url,
                expires_at=link.expires_at,
                team=self._settings.from_name,
            )
        )
        return message

    async def send_expiration_notices(self, session: AsyncSession) -> NotificationReport:
        report = NotificationReport()
        if not self.enabled:
            logger.info("Email configuration not set, skipping notifications")
            return report

        links = await link_service.get_expiring_links(session, within=EXPIRY_NOTICE_WINDOW)
        for link in links:
            if link.owner is None or not link.owner.email:
                report.skipped += 1
                continue
            try:
                await asyncio.to_thread(self._send, self.build_message(link))
            except (smtplib.SMTPException, OSError) as e:
                report.failed += 1
                logger.error(
                    "Failed to send expiration notice",
                    short_code=link.short_code,
                    error=str(e),
                )
                continue
            report.sent += 1
            logger.info("Expiration notice sent", short_code=link.short_code, owner_id=link.owner_id)

        return report

    def _send_smtp(self, message: EmailMessage) -> None:
        settings = self._settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as smtp:
            smtp.starttls()
            smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(message)
