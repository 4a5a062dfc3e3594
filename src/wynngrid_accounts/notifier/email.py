"""Email notifiers for verification and password reset codes."""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Protocol

from wynngrid_accounts.config import settings
from wynngrid_accounts.errors import DeliveryError

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Delivers a short text message to an email address."""

    async def send(self, to: str, subject: str, body: str) -> None:
        """Send a message, raising DeliveryError if it cannot be delivered."""
        ...


class SmtpNotifier:
    """Sends plain-text email through an SMTP server."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        sender: str | None = None,
        sender_name: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the notifier.

        Args:
            host: SMTP host (defaults to settings)
            port: SMTP port; 465 uses implicit TLS, anything else STARTTLS
            username: SMTP login user (defaults to settings)
            password: SMTP login password (defaults to settings)
            sender: From address (defaults to settings)
            sender_name: Display name for the From header (defaults to settings)
            timeout: Socket timeout in seconds (defaults to settings)
        """
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = username if username is not None else settings.smtp_user
        self.password = password if password is not None else settings.smtp_password
        self.sender = sender or settings.smtp_from
        self.sender_name = sender_name or settings.smtp_from_name
        self.timeout = timeout or settings.smtp_timeout_seconds

        if not self.host:
            raise DeliveryError("SMTP host not configured. Set SMTP_HOST environment variable.")

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        """Build the outgoing message."""
        message = EmailMessage()
        message["From"] = formataddr((self.sender_name, self.sender))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _connect(self) -> smtplib.SMTP:
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        conn = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        conn.starttls()
        return conn

    def _send_sync(self, message: EmailMessage) -> None:
        with self._connect() as conn:
            if self.username:
                conn.login(self.username, self.password)
            conn.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        """
        Send a plain-text email.

        Raises:
            DeliveryError: If the message cannot be built or the SMTP exchange fails
        """
        try:
            # Header values reject CR and LF
            message = self.build_message(to, subject, body)
            await asyncio.to_thread(self._send_sync, message)
        except (ValueError, smtplib.SMTPException, OSError) as e:
            logger.error("Error sending email to %r: %s", to, e)
            raise DeliveryError(f"Failed to send email: {e}") from e

        logger.info("Email sent to %s (%s)", to, subject)


class LoggingNotifier:
    """Development notifier that writes messages to the log instead of sending them."""

    async def send(self, to: str, subject: str, body: str) -> None:
        logger.warning("SMTP not configured; email to %s not sent: %s | %s", to, subject, body)


def get_notifier() -> Notifier:
    """Return the SMTP notifier, or the logging notifier when SMTP is not configured."""
    if settings.smtp_host:
        return SmtpNotifier()
    return LoggingNotifier()
