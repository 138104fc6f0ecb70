"""SQLite-backed network store using the multisite table layout.

Tables (with the default ``wp_`` prefix):

- ``wp_site``: one row per network (``id``, ``domain``, ``path``)
- ``wp_blogs``: one row per tenant site (``blog_id``, ``site_id``, ``domain``, ``path``)
- ``wp_sitemeta``: network key/value settings (``site_id``, ``meta_key``, ``meta_value``)
- ``wp_options``: options of the main site, which double as the network options
- ``wp_<blog_id>_options``: options of every other tenant

Each statement is committed on its own. There is no transaction spanning a
migration run.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import closing, contextmanager
import logging
from pathlib import Path
import re
import sqlite3
from typing import Any, ClassVar

from network_domain_sync.adapters.network_store import (
    BLOGS_TABLE,
    NETWORK_OPTIONS,
    SITE_TABLE,
    SITEMETA_TABLE,
    AbstractNetworkStore,
    Row,
)
from network_domain_sync.domain.model import StorageError


logger = logging.getLogger(__name__)

_BUSY_TIMEOUT_MS = 30000
_PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9_]*$")


class SQLiteNetworkStore(AbstractNetworkStore):
    """Read and update network tables in a SQLite database."""

    _ALLOWED_COLUMNS: ClassVar[dict[str, set[str]]] = {
        SITE_TABLE: {"id", "domain", "path"},
        BLOGS_TABLE: {"blog_id", "site_id", "domain", "path"},
        SITEMETA_TABLE: {"meta_id", "site_id", "meta_key", "meta_value"},
    }

    def __init__(self, db_path: Path, *, table_prefix: str = "wp_", main_blog_id: int = 1) -> None:
        if not _PREFIX_PATTERN.match(table_prefix):
            raise ValueError(f"Invalid table prefix: {table_prefix!r}")
        self.db_path = db_path
        self.table_prefix = table_prefix
        self.main_blog_id = main_blog_id

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, isolation_level=None)
            conn.execute(f"PRAGMA busy_timeout = {_BUSY_TIMEOUT_MS}")
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open database at {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _cursor(self, action: str) -> Iterator[sqlite3.Connection]:
        with closing(self._connect()) as conn:
            try:
                yield conn
            except sqlite3.Error as exc:
                raise StorageError(f"{action} failed: {exc}") from exc

    def _table(self, table: str) -> str:
        if table not in self._ALLOWED_COLUMNS:
            raise ValueError(f"Unknown table: {table}")
        return f"{self.table_prefix}{table}"

    def _columns(self, table: str, columns: Mapping[str, Any] | list[str]) -> list[str]:
        names = list(columns)
        unknown = set(names) - self._ALLOWED_COLUMNS.get(table, set())
        if unknown:
            raise ValueError(f"Unknown column(s) for {table}: {', '.join(sorted(unknown))}")
        return names

    def _where(self, table: str, filters: Mapping[str, Any]) -> tuple[str, list[Any]]:
        names = self._columns(table, filters)
        if not names:
            return "", []
        clause = " AND ".join(f"{name} = ?" for name in names)
        return f" WHERE {clause}", [filters[name] for name in names]

    def _options_table(self, blog_id: int | None) -> str:
        if blog_id is NETWORK_OPTIONS or blog_id == self.main_blog_id:
            return f"{self.table_prefix}options"
        return f"{self.table_prefix}{int(blog_id)}_options"

    def read_scalar(self, table: str, column: str, filters: Mapping[str, Any]) -> Any | None:
        name = self._table(table)
        self._columns(table, [column])
        where, params = self._where(table, filters)
        sql = f"SELECT {column} FROM {name}{where} LIMIT 1"
        with self._cursor(f"Reading {table}.{column}") as conn:
            row = conn.execute(sql, params).fetchone()
        return row[0] if row else None

    def read_rows(self, table: str, filters: Mapping[str, Any]) -> list[Row]:
        name = self._table(table)
        where, params = self._where(table, filters)
        sql = f"SELECT * FROM {name}{where}"
        with self._cursor(f"Reading {table}") as conn:
            return [dict(row) for row in conn.execute(sql, params).fetchall()]

    def update_row(self, table: str, fields: Mapping[str, Any], filters: Mapping[str, Any]) -> int:
        target = self._table(table)
        names = self._columns(table, fields)
        if not names:
            return 0
        assignments = ", ".join(f"{name} = ?" for name in names)
        where, params = self._where(table, filters)
        sql = f"UPDATE {target} SET {assignments}{where}"
        with self._cursor(f"Updating {table}") as conn:
            cursor = conn.execute(sql, [fields[name] for name in names] + params)
        logger.debug("Updated %d row(s) in %s", cursor.rowcount, table)
        return cursor.rowcount

    def read_option(self, blog_id: int | None, key: str) -> str | None:
        sql = f"SELECT option_value FROM {self._options_table(blog_id)} WHERE option_name = ? LIMIT 1"
        with self._cursor(f"Reading option {key}") as conn:
            row = conn.execute(sql, (key,)).fetchone()
        return row[0] if row else None

    def write_option(self, blog_id: int | None, key: str, value: str) -> None:
        sql = (
            f"INSERT INTO {self._options_table(blog_id)} (option_name, option_value) VALUES (?, ?) "
            "ON CONFLICT(option_name) DO UPDATE SET option_value = excluded.option_value"
        )
        with self._cursor(f"Writing option {key}") as conn:
            conn.execute(sql, (key, value))

    def create_schema(self, blog_ids: list[int] | None = None) -> None:
        """Create empty network tables, plus option tables for ``blog_ids``."""
        prefix = self.table_prefix
        option_tables = {self._options_table(NETWORK_OPTIONS)}
        option_tables.update(self._options_table(blog_id) for blog_id in blog_ids or [])
        statements = [
            f"CREATE TABLE IF NOT EXISTS {prefix}site ("
            "id INTEGER PRIMARY KEY, domain TEXT NOT NULL DEFAULT '', path TEXT NOT NULL DEFAULT '/')",
            f"CREATE TABLE IF NOT EXISTS {prefix}blogs ("
            "blog_id INTEGER PRIMARY KEY, site_id INTEGER NOT NULL, "
            "domain TEXT NOT NULL DEFAULT '', path TEXT NOT NULL DEFAULT '/')",
            f"CREATE TABLE IF NOT EXISTS {prefix}sitemeta ("
            "meta_id INTEGER PRIMARY KEY AUTOINCREMENT, site_id INTEGER NOT NULL, "
            "meta_key TEXT, meta_value TEXT)",
        ]
        statements.extend(
            f"CREATE TABLE IF NOT EXISTS {name} ("
            "option_id INTEGER PRIMARY KEY AUTOINCREMENT, option_name TEXT NOT NULL UNIQUE, "
            "option_value TEXT NOT NULL DEFAULT '')"
            for name in sorted(option_tables)
        )
        with self._cursor("Creating schema") as conn:
            for statement in statements:
                conn.execute(statement)
