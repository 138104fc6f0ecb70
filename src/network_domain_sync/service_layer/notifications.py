"""Best-effort email notification after a successful migration."""

from collections.abc import Mapping
import logging
import re
import smtplib

from network_domain_sync.adapters.network_store import NETWORK_OPTIONS, AbstractNetworkStore
from network_domain_sync.adapters.notifier import AbstractNotifier, Notification
from network_domain_sync.config import NotifySpec
from network_domain_sync.domain.model import NotificationError, StorageError
from network_domain_sync.observability.metrics import NOTIFICATION_COUNT


logger = logging.getLogger(__name__)

ENGINE_NAME = "Network Domain Sync"
ENGINE_VERSION = "1.1.0"
PROJECT_LINK = "https://github.com/network-domain-sync/network-domain-sync"

DEFAULT_SUBJECT = "[{domain}] Network Domain Updated"
DEFAULT_MESSAGE = "This is an automated message sent by {name} v{version}:\n{link}"

# Shape check only: staging addresses on .local/.test domains must pass
EMAIL_SHAPE_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_SHAPE_RE.match(value.strip()))


class NotificationDispatcher:
    """Resolve recipient, subject and body, then send exactly one message.

    ``spec`` forms:

    - ``True``: send with defaults
    - a mapping: per-field overrides from ``email``, ``subject``, ``message``
    - a string: the destination, if it is a valid address; defaults otherwise

    Delivery failures are logged and swallowed.
    """

    def __init__(self, store: AbstractNetworkStore, notifier: AbstractNotifier) -> None:
        self._store = store
        self._notifier = notifier

    def build(self, spec: NotifySpec, new_domain: str) -> Notification:
        default_email = self._store.read_option(NETWORK_OPTIONS, "admin_email") or ""
        default_subject = DEFAULT_SUBJECT.format(domain=new_domain)
        default_message = DEFAULT_MESSAGE.format(name=ENGINE_NAME, version=ENGINE_VERSION, link=PROJECT_LINK)

        if isinstance(spec, (Mapping, bool)):
            overrides: Mapping[str, str] = spec if isinstance(spec, Mapping) else {}
            return Notification(
                to=overrides.get("email") or default_email,
                subject=overrides.get("subject") or default_subject,
                body=overrides.get("message") or default_message,
            )

        to = spec.strip() if is_valid_email(spec) else default_email
        return Notification(to=to, subject=default_subject, body=default_message)

    def dispatch(self, spec: NotifySpec, new_domain: str) -> Notification | None:
        if not spec:
            return None

        try:
            notification = self.build(spec, new_domain)
        except StorageError as exc:
            logger.warning("Could not resolve notification defaults: %s", exc)
            NOTIFICATION_COUNT.labels(status="failed").inc()
            return None

        if not notification.to:
            logger.warning("No notification recipient configured; skipping email")
            NOTIFICATION_COUNT.labels(status="skipped").inc()
            return None

        try:
            self._notifier.send(notification.to, notification.subject, notification.body)
        except (NotificationError, smtplib.SMTPException, OSError, ValueError) as exc:
            logger.warning("Notification to %s failed: %s", notification.to, exc)
            NOTIFICATION_COUNT.labels(status="failed").inc()
            return None

        NOTIFICATION_COUNT.labels(status="sent").inc()
        logger.info("Notified %s of domain change to %s", notification.to, new_domain)
        return notification
