"""
SMTP transport for out-of-band change alerts.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage

from change_monitor.core.interfaces import IMessageDispatcher
from change_monitor.models import AlertDispatchError, ConfigurationError

logger = logging.getLogger(__name__)


class SmtpMessageDispatcher(IMessageDispatcher):
    """
    Sends plain-text mail through an SMTP server.

    ``smtplib`` is blocking, so each send runs in a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        sender: str | None = None,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        if not host:
            raise ConfigurationError("SMTP host is required", config_key="smtp_host")

        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.use_tls = use_tls
        self.timeout = timeout

        if not self.sender:
            raise ConfigurationError(
                "SMTP sender address is required", config_key="smtp_sender", expected_type="email address"
            )

    @classmethod
    def from_config(cls, config) -> "SmtpMessageDispatcher":
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            sender=config.smtp_sender,
            username=config.smtp_user,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            timeout=config.smtp_timeout,
        )

    async def send(self, recipient: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise AlertDispatchError(
                f"Failed to send mail to {recipient}: {e}", recipient=recipient, underlying_error=e
            ) from e

        logger.debug("Mail sent to %s: %s", recipient, subject)

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)
