"""Decide whether the stored network domain has drifted from the environment."""

import logging

from network_domain_sync.adapters.network_store import SITE_TABLE, AbstractNetworkStore
from network_domain_sync.config import MigrationSettings
from network_domain_sync.domain.model import MigrationPlan, NetworkConfig, StorageError
from network_domain_sync.utils.domain_names import root_domain, same_root_domain


logger = logging.getLogger(__name__)

SKIP_DISABLED = "disabled"
SKIP_NO_TARGET = "target domain not configured"
SKIP_NO_NETWORK = "network id not configured"
SKIP_NO_STORED_DOMAIN = "stored network domain unavailable"
SKIP_NO_DRIFT = "no drift"


class DomainChangeDetector:
    """Compare the configured target domain with the network's stored domain.

    A second run after a successful migration is always a no-op: the stored
    root domain then equals the target root domain.
    """

    def __init__(self, settings: MigrationSettings, store: AbstractNetworkStore) -> None:
        self._settings = settings
        self._store = store
        self.skip_reason: str | None = None

    def _skip(self, reason: str) -> None:
        self.skip_reason = reason
        logger.info("Domain migration skipped: %s", reason)

    def load_network(self, network_id: int) -> NetworkConfig | None:
        try:
            stored = self._store.read_scalar(SITE_TABLE, "domain", {"id": network_id})
        except StorageError as exc:
            logger.warning("Could not read domain for network %s: %s", network_id, exc)
            return None
        if not stored or not str(stored).strip():
            return None
        return NetworkConfig(site_id=network_id, domain=str(stored).strip())

    def detect(self) -> MigrationPlan | None:
        """Return a migration plan, or None when nothing needs to change."""
        settings = self._settings
        self.skip_reason = None

        if settings.disabled:
            self._skip(SKIP_DISABLED)
            return None
        if not settings.target_domain:
            self._skip(SKIP_NO_TARGET)
            return None
        if settings.network_id is None:
            self._skip(SKIP_NO_NETWORK)
            return None

        network = self.load_network(settings.network_id)
        if network is None:
            self._skip(SKIP_NO_STORED_DOMAIN)
            return None

        if same_root_domain(network.domain, settings.target_domain):
            self._skip(SKIP_NO_DRIFT)
            return None

        old_root = root_domain(network.domain).lower()
        logger.info(
            "Network %s drifted: stored root domain %s, target domain %s",
            network.site_id,
            old_root,
            settings.target_domain,
        )
        return MigrationPlan(
            network_id=network.site_id,
            old_domain=old_root,
            new_domain=settings.target_domain,
            scheme=settings.url_scheme,
            strip_www=settings.strip_www,
            admin_email=settings.admin_email,
        )
