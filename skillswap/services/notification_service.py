import abc
import asyncio
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Iterable

from ..core.config import Settings

logger = logging.getLogger(__name__)

class Notifier(abc.ABC):
    """
    Outbound notifications. Delivery is best-effort: every public method
    logs and swallows failures so callers never fail because of it.

    User-supplied text is HTML-escaped before it goes into a message body.
    """

    @abc.abstractmethod
    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one HTML email."""

    async def swap_requested(
        self, recipient: Dict[str, Any], requester: Dict[str, Any], skill_offered: str, skill_requested: str
    ) -> bool:
        body = f"""
        <html>
        <body>
            <h1>New Skill Swap Request</h1>
            <p>Hi {html.escape(recipient.get('name') or '')},</p>
            <p>{html.escape(requester.get('name') or '')} wants to swap skills with you:</p>
            <ul>
                <li><strong>They offer:</strong> {html.escape(skill_offered)}</li>
                <li><strong>They want:</strong> {html.escape(skill_requested)}</li>
            </ul>
            <p>Log in to your account to respond to this request.</p>
        </body>
        </html>
        """
        return await self._deliver(recipient.get("email"), "New Skill Swap Request", body)

    async def broadcast(self, recipients: Iterable[str], title: str, message: str) -> int:
        body = f"<html><body><h2>{html.escape(title)}</h2><p>{html.escape(message)}</p></body></html>"
        delivered = 0
        for address in recipients:
            if await self._deliver(address, title, body):
                delivered += 1
        return delivered

    async def _deliver(self, to: str, subject: str, body: str) -> bool:
        try:
            await self.send(to, subject, body)
            return True
        except Exception as e:
            logger.warning(f"Failed to send '{subject}' to {to}: {e}")
            return False

class EmailNotifier(Notifier):
    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.username = settings.smtp_username
        self.password = settings.smtp_password
        self.sender = settings.email_from

    def _send_sync(self, to: str, subject: str, body: str) -> None:
        message = MIMEMultipart()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.attach(MIMEText(body, "html"))

        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        if not self.host:
            logger.info(f"SMTP not configured, skipping email '{subject}' to {to}")
            return
        await asyncio.to_thread(self._send_sync, to, subject, body)
        logger.info(f"Email '{subject}' sent to {to}")
