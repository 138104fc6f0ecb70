"""Service layer - migration orchestration.

- Detector decides whether anything needs to change
- Rewrite engine applies the plan through the storage adapter
- Dispatcher sends the optional notification
"""

from .detector import DomainChangeDetector
from .notifications import NotificationDispatcher
from .rewrite import DomainRewriteEngine, build_network_url
from .services import bootstrap, notifier_from_settings, run


__all__ = [
    "DomainChangeDetector",
    "DomainRewriteEngine",
    "NotificationDispatcher",
    "bootstrap",
    "build_network_url",
    "notifier_from_settings",
    "run",
]
