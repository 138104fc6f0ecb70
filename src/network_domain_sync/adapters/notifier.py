"""Outbound email capability used after a successful migration."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
import logging
import smtplib

from network_domain_sync.domain.model import NotificationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Notification:
    to: str
    subject: str
    body: str


class AbstractNotifier(ABC):
    """Sends a single plain-text message."""

    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> None:
        """Deliver the message.

        Raises:
            NotificationError: Delivery failed
        """
        raise NotImplementedError


class SmtpNotifier(AbstractNotifier):
    """Deliver messages through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        *,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = False,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def send(self, to: str, subject: str, body: str) -> None:
        try:
            message = self._build_message(to, subject, body)
        except ValueError as exc:
            # Header values with CR/LF are rejected by the email policy
            raise NotificationError(f"Cannot build notification to {to!r}: {exc}") from exc

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
                if self.starttls:
                    client.starttls()
                if self.username:
                    client.login(self.username, self.password or "")
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery to {to} via {self.host}:{self.port} failed: {exc}") from exc
        logger.info("Sent notification to %s via %s:%s", to, self.host, self.port)


class FakeNotifier(AbstractNotifier):
    """In-memory notifier for testing."""

    def __init__(self, *, error: Exception | None = None):
        self.sent: list[Notification] = []
        self.error = error

    def send(self, to: str, subject: str, body: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(Notification(to=to, subject=subject, body=body))
