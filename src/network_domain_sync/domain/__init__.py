"""Domain layer - network records, migration plan and result types.

No infrastructure dependencies live here: storage and email are reached
through the adapters layer.
"""

from network_domain_sync.domain.model import (
    DomainSyncError,
    MigrationPlan,
    MigrationResult,
    NetworkConfig,
    NotificationError,
    RewriteSummary,
    Scheme,
    SiteRecord,
    StorageError,
)


__all__ = [
    "DomainSyncError",
    "MigrationPlan",
    "MigrationResult",
    "NetworkConfig",
    "NotificationError",
    "RewriteSummary",
    "Scheme",
    "SiteRecord",
    "StorageError",
]
