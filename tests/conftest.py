"""Shared test fixtures and configuration."""

import os

import pytest

from network_domain_sync.adapters import FakeNetworkStore, FakeNotifier


# Every env name MigrationSettings reads, including the legacy constant names
SETTINGS_ENV_NAMES = (
    "TARGET_DOMAIN",
    "NETWORK_LOCAL_DOMAIN",
    "NETWORK_ID",
    "SITE_ID_CURRENT_SITE",
    "DOMAIN_SYNC_DISABLED",
    "NETWORK_LOCAL_DOMAIN_DISABLE",
    "ADMIN_EMAIL",
    "WP_ADMIN_EMAIL",
    "URL_SCHEME",
    "NETWORK_LOCAL_DOMAIN_SCHEME",
    "STRIP_WWW",
    "NETWORK_LOCAL_STRIP_WWW",
    "NOTIFY",
    "NETWORK_LOCAL_UPDATE_NOTIFY",
    "DISABLED",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "SMTP_STARTTLS",
    "SMTP_SENDER",
    "OBSERVABILITY__ENABLED",
    "METRICS_TEXTFILE",
)

# Clear immediately so module-level settings in imported code never see host values
for name in SETTINGS_ENV_NAMES:
    os.environ.pop(name, None)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep host environment values out of MigrationSettings."""
    for name in SETTINGS_ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "info")


@pytest.fixture
def network_store() -> FakeNetworkStore:
    """Production copy: network 1 on example.com with two tenant sites."""
    return FakeNetworkStore.for_network(
        network_id=1,
        domain="example.com",
        sites=[(2, "shop.example.com"), (3, "www.blog.example.com")],
        admin_email="admin@example.com",
    )


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()
