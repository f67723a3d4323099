"""
Outbound email senders.

ConsoleEmailSender only logs the message and keeps it in memory; it is wired
when SMTP is disabled (development, tests). SmtpEmailSender delivers through
the configured SMTP server. Both raise on failure so the caller decides what
a failed send means.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Protocol

from src.utils.config_loader import EmailSettings

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: str
    subject: str
    body: str


class EmailSender(Protocol):
    def send(self, message: EmailMessage) -> None:
        ...


class ConsoleEmailSender:
    def __init__(self) -> None:
        self.outbox: List[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.outbox.append(message)
        logger.info("[EMAIL] to=%s subject=%s", message.to, message.subject)
        logger.debug("[EMAIL] body:\n%s", message.body)


class SmtpEmailSender:
    def __init__(self, settings: EmailSettings, timeout: float = 30) -> None:
        self._settings = settings
        self._timeout = timeout

    def send(self, message: EmailMessage) -> None:
        msg = MIMEMultipart()
        msg["From"] = self._settings.from_address
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg.attach(MIMEText(message.body, "plain", "utf-8"))

        with smtplib.SMTP(self._settings.smtp_host, self._settings.smtp_port, timeout=self._timeout) as server:
            if self._settings.smtp_use_tls:
                server.starttls()
            if self._settings.smtp_username and self._settings.smtp_password:
                server.login(self._settings.smtp_username, self._settings.smtp_password)
            server.sendmail(self._settings.from_address, [message.to], msg.as_string())

        logger.info("Email sent to %s: %s", message.to, message.subject)


def build_email_sender(settings: EmailSettings) -> EmailSender:
    if settings.smtp_enabled:
        return SmtpEmailSender(settings)
    return ConsoleEmailSender()
