"""SMTP adapter: implements Mailer over an authenticated STARTTLS/SMTPS connection.

Defaults target SendGrid's SMTP relay; any SMTP server works via SMTP_HOST.
"""

import logging
import os
import smtplib
import ssl
from email.message import EmailMessage

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from domain.model.errors import EmailDeliveryError

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("SMTP_HOST", "smtp.sendgrid.net")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME") or os.getenv("SENDGRID_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD") or os.getenv("SENDGRID_PASSWORD")
EMAIL_FROM = os.getenv("EMAIL_FROM", "no-reply@happe.com.br")
SMTP_TIMEOUT_SECONDS = 10.0

# Transient failures worth another attempt; auth and recipient errors are not
_TRANSIENT_ERRORS = (smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError, ConnectionError, TimeoutError)


class SmtpMailer:
    """Mailer that delivers plain-text messages through SMTP."""

    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        username: str | None = SMTP_USERNAME,
        password: str | None = SMTP_PASSWORD,
        sender: str = EMAIL_FROM,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender

    def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        try:
            self._deliver(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Email delivery failed",
                extra={"to": to, "subject": subject, "error_type": type(e).__name__},
            )
            raise EmailDeliveryError(f"Failed to deliver email to {to}") from e

        logger.info("Email sent", extra={"to": to, "subject": subject})

    @retry(
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        reraise=True,
    )
    def _deliver(self, message: EmailMessage) -> None:
        # Port 465 is implicit TLS; everything else upgrades with STARTTLS
        context = ssl.create_default_context()
        if self.port == 465:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS, context=context)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS)
        with server:
            if self.port != 465:
                server.starttls(context=context)
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(message)
