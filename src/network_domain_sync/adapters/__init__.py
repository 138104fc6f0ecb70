"""Adapters layer - storage and email implementations.

The engine only sees the abstract capabilities; tests use the in-memory fakes.
"""

from .network_store import (
    BLOGS_TABLE,
    NETWORK_OPTIONS,
    SITE_TABLE,
    SITEMETA_TABLE,
    AbstractNetworkStore,
    FakeNetworkStore,
)
from .notifier import AbstractNotifier, FakeNotifier, Notification, SmtpNotifier
from .sqlite_store import SQLiteNetworkStore


__all__ = [
    "BLOGS_TABLE",
    "NETWORK_OPTIONS",
    "SITEMETA_TABLE",
    "SITE_TABLE",
    "AbstractNetworkStore",
    "AbstractNotifier",
    "FakeNetworkStore",
    "FakeNotifier",
    "Notification",
    "SQLiteNetworkStore",
    "SmtpNotifier",
]
