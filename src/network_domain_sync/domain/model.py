"""Domain model - network records and migration value objects.

The network, its tenant sites and their URL options are owned by the host
platform's storage. The engine only holds these objects for the length of a
single run.
"""

from dataclasses import asdict, dataclass as std_dataclass, field
from typing import Literal

from pydantic import Field
from pydantic.dataclasses import dataclass


Scheme = Literal["", "http", "https"]


class DomainSyncError(RuntimeError):
    """Base error for domain migration failures."""


class StorageError(DomainSyncError):
    """A read or update against the backing store failed.

    Write failures are fatal: the run stops at the failing step and the error
    propagates to the host process. Nothing is rolled back.
    """


class NotificationError(DomainSyncError):
    """Delivering the post-migration email failed."""


# Entities
@dataclass
class NetworkConfig:
    """The root network row; ``domain`` is the authoritative host name."""

    site_id: int = Field(ge=1)
    domain: str = ""


@dataclass
class SiteRecord:
    """One tenant site beneath the network."""

    blog_id: int = Field(ge=1)
    domain: str = ""


# Value Objects (immutable)
@dataclass(frozen=True)
class MigrationPlan:
    """Everything the rewrite engine needs once drift has been detected.

    ``old_domain`` is the root domain currently stored for the network.
    ``new_domain`` is the requested target domain, written back verbatim
    (``staging.example.com`` stays ``staging.example.com``, not its root).
    """

    network_id: int = Field(ge=1)
    old_domain: str = Field(min_length=1)
    new_domain: str = Field(min_length=1)
    scheme: Scheme = ""
    strip_www: bool = False
    admin_email: str = ""


@std_dataclass(slots=True)
class RewriteSummary:
    """What the rewrite engine changed during one run."""

    tenant_domains: dict[int, str] = field(default_factory=dict)
    tenant_urls: dict[int, str] = field(default_factory=dict)
    network_url: str = ""

    @property
    def tenants_updated(self) -> int:
        return len(self.tenant_domains)


@std_dataclass(slots=True)
class MigrationResult:
    state: Literal["skipped", "migrated"]
    network_id: int | None = None
    skip_reason: str | None = None
    old_domain: str | None = None
    new_domain: str | None = None
    tenants_updated: int = 0
    network_url: str | None = None
    notified: bool = False
    duration_s: float = 0.0

    @property
    def migrated(self) -> bool:
        return self.state == "migrated"

    def to_dict(self) -> dict[str, object | None]:
        return asdict(self)
