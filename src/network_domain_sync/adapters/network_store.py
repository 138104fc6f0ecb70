"""Storage capabilities consumed by the migration engine."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
import copy
from typing import Any

from network_domain_sync.domain.model import StorageError


# ``blog_id`` used to address the network's own option set
NETWORK_OPTIONS = None

# Logical table names understood by every store
SITE_TABLE = "site"
BLOGS_TABLE = "blogs"
SITEMETA_TABLE = "sitemeta"

Row = dict[str, Any]


def _matches(row: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    return all(row.get(key) == value for key, value in filters.items())


class AbstractNetworkStore(ABC):
    """Narrow read/update interface over the platform's network tables.

    Tables are addressed by logical name (``site``, ``blogs``, ``sitemeta``).
    Options are addressed by tenant ``blog_id``; ``NETWORK_OPTIONS`` selects
    the network-wide option set.
    """

    @abstractmethod
    def read_scalar(self, table: str, column: str, filters: Mapping[str, Any]) -> Any | None:
        """Return ``column`` from the first row matching ``filters``, or None."""
        raise NotImplementedError

    @abstractmethod
    def read_rows(self, table: str, filters: Mapping[str, Any]) -> list[Row]:
        """Return every row matching ``filters``."""
        raise NotImplementedError

    @abstractmethod
    def update_row(self, table: str, fields: Mapping[str, Any], filters: Mapping[str, Any]) -> int:
        """Update rows matching ``filters``.

        Returns:
            Number of rows changed

        Raises:
            StorageError: The update could not be applied
        """
        raise NotImplementedError

    @abstractmethod
    def read_option(self, blog_id: int | None, key: str) -> str | None:
        """Read one URL/configuration option for a tenant or the network."""
        raise NotImplementedError

    @abstractmethod
    def write_option(self, blog_id: int | None, key: str, value: str) -> None:
        """Write one option, creating it when missing.

        Raises:
            StorageError: The write could not be applied
        """
        raise NotImplementedError


class FakeNetworkStore(AbstractNetworkStore):
    """In-memory store for testing.

    Every successful mutation is appended to ``writes`` so tests can assert
    that a run touched nothing. ``fail_on`` holds table names (or
    ``"option:<key>"``) whose writes raise ``StorageError``.
    """

    def __init__(
        self,
        tables: Mapping[str, list[Row]] | None = None,
        options: Mapping[int | None, Mapping[str, str]] | None = None,
    ):
        self.tables: dict[str, list[Row]] = {name: copy.deepcopy(rows) for name, rows in (tables or {}).items()}
        self.options: dict[int | None, dict[str, str]] = {
            blog_id: dict(values) for blog_id, values in (options or {}).items()
        }
        self.writes: list[tuple[str, dict[str, Any], dict[str, Any]]] = []
        self.fail_on: set[str] = set()

    @classmethod
    def for_network(
        cls,
        *,
        network_id: int,
        domain: str,
        sites: list[tuple[int, str]] | None = None,
        network_url: str | None = None,
        admin_email: str = "",
    ) -> "FakeNetworkStore":
        """Build a store holding one network and its tenant sites.

        Each tenant's ``home``/``siteurl`` default to ``http://<domain>``.
        """
        url = network_url or f"http://{domain}"
        store = cls(
            tables={
                SITE_TABLE: [{"id": network_id, "domain": domain, "path": "/"}],
                BLOGS_TABLE: [],
                SITEMETA_TABLE: [{"site_id": network_id, "meta_key": "siteurl", "meta_value": url + "/"}],
            },
            options={NETWORK_OPTIONS: {"home": url, "siteurl": url, "admin_email": admin_email}},
        )
        for blog_id, site_domain in sites or []:
            store.tables[BLOGS_TABLE].append(
                {"blog_id": blog_id, "site_id": network_id, "domain": site_domain, "path": "/"}
            )
            site_url = f"http://{site_domain}"
            store.options[blog_id] = {"home": site_url, "siteurl": site_url}
        return store

    def read_scalar(self, table: str, column: str, filters: Mapping[str, Any]) -> Any | None:
        for row in self.read_rows(table, filters):
            return row.get(column)
        return None

    def read_rows(self, table: str, filters: Mapping[str, Any]) -> list[Row]:
        return [dict(row) for row in self.tables.get(table, []) if _matches(row, filters)]

    def update_row(self, table: str, fields: Mapping[str, Any], filters: Mapping[str, Any]) -> int:
        if table in self.fail_on:
            raise StorageError(f"Simulated write failure on {table}")
        changed = 0
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(fields)
                changed += 1
        self.writes.append((table, dict(fields), dict(filters)))
        return changed

    def read_option(self, blog_id: int | None, key: str) -> str | None:
        return self.options.get(blog_id, {}).get(key)

    def write_option(self, blog_id: int | None, key: str, value: str) -> None:
        if f"option:{key}" in self.fail_on:
            raise StorageError(f"Simulated write failure on option {key}")
        self.options.setdefault(blog_id, {})[key] = value
        self.writes.append(("options", {key: value}, {"blog_id": blog_id}))
