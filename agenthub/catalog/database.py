# -*- coding: utf-8 -*-
"""
Catalog Database - SQLite-backed store for catalogs, artifacts and installations.

Provides the CatalogStore class. The store owns a single connection shared
by the sync, search, update and install engines; every access goes through
one re-entrant lock, and writes are grouped in explicit transactions so a
catalog's artifact set is never observed half-replaced. An external-content FTS5
index over artifact text is kept in step with the artifacts table by
triggers, inside the same transaction as the row change.

Author
------
Agent Hub contributors

License
-------
MIT License
Copyright (c) 2026 Agent Hub contributors
See LICENSE file for full text.

Created
-------
2026-09-14

Modified
--------
2026-10-18
"""

# Standard library
import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

logger = logging.getLogger(__name__)

# Agent Hub internal
from agenthub.catalog.errors import NotFoundError, StoreError
from agenthub.catalog.models import (
    STATUS_ERROR,
    STATUS_HEALTHY,
    Artifact,
    Catalog,
    CatalogMetadata,
    Installation,
    utc_now,
)


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS catalogs (
    id TEXT PRIMARY KEY,
    url TEXT NOT NULL UNIQUE,
    enabled INTEGER NOT NULL DEFAULT 1,
    metadata TEXT NOT NULL,
    last_fetched TEXT,
    status TEXT NOT NULL DEFAULT 'healthy' CHECK(status IN ('healthy', 'error')),
    error TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS artifacts (
    row_id INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL,
    catalog_id TEXT NOT NULL REFERENCES catalogs(id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT DEFAULT '',
    path TEXT NOT NULL,
    version TEXT NOT NULL,
    category TEXT NOT NULL,
    tags TEXT,
    keywords TEXT,
    language TEXT,
    framework TEXT,
    use_case TEXT,
    difficulty TEXT,
    source_url TEXT NOT NULL,
    metadata TEXT,
    author TEXT,
    compatibility TEXT,
    dependencies TEXT,
    estimated_time TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),

    UNIQUE(catalog_id, id)
);

CREATE TABLE IF NOT EXISTS installations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    artifact_id TEXT NOT NULL,
    catalog_id TEXT NOT NULL REFERENCES catalogs(id) ON DELETE CASCADE,
    version TEXT NOT NULL,
    installed_path TEXT NOT NULL,
    installed_at TEXT NOT NULL DEFAULT (datetime('now')),
    last_used TEXT,

    UNIQUE(artifact_id, catalog_id)
);

CREATE INDEX IF NOT EXISTS idx_artifacts_type ON artifacts(type);
CREATE INDEX IF NOT EXISTS idx_artifacts_category ON artifacts(category);
CREATE INDEX IF NOT EXISTS idx_artifacts_difficulty ON artifacts(difficulty);
CREATE INDEX IF NOT EXISTS idx_installations_catalog ON installations(catalog_id);
"""

_FTS_SCHEMA_SQL = """
CREATE VIRTUAL TABLE IF NOT EXISTS artifacts_fts USING fts5(
    name, description, tags, keywords, category,
    content='artifacts', content_rowid='row_id'
);
"""

_FTS_TRIGGERS_SQL = """
CREATE TRIGGER IF NOT EXISTS artifacts_ai AFTER INSERT ON artifacts BEGIN
    INSERT INTO artifacts_fts(rowid, name, description, tags, keywords, category)
    VALUES (new.row_id, new.name, new.description, new.tags, new.keywords, new.category);
END;

CREATE TRIGGER IF NOT EXISTS artifacts_ad AFTER DELETE ON artifacts BEGIN
    INSERT INTO artifacts_fts(artifacts_fts, rowid, name, description, tags, keywords, category)
    VALUES ('delete', old.row_id, old.name, old.description, old.tags, old.keywords, old.category);
END;

CREATE TRIGGER IF NOT EXISTS artifacts_au AFTER UPDATE ON artifacts BEGIN
    INSERT INTO artifacts_fts(artifacts_fts, rowid, name, description, tags, keywords, category)
    VALUES ('delete', old.row_id, old.name, old.description, old.tags, old.keywords, old.category);
    INSERT INTO artifacts_fts(rowid, name, description, tags, keywords, category)
    VALUES (new.row_id, new.name, new.description, new.tags, new.keywords, new.category);
END;
"""


_SCHEMA_VERSION_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""

_CURRENT_SCHEMA_VERSION = 2


def _migrate_v2(conn: sqlite3.Connection) -> None:
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_artifacts_difficulty "
        "ON artifacts(difficulty)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_installations_catalog "
        "ON installations(catalog_id)"
    )


# Migration functions: (target_version, callable)
# Add new migrations here as schema evolves.
_MIGRATIONS: List[tuple] = [
    # (1, ...) is the initial schema
    (2, _migrate_v2),
]

_ARTIFACT_INSERT_COLUMNS = (
    'id', 'catalog_id', 'type', 'name', 'description', 'path', 'version',
    'category', 'tags', 'keywords', 'language', 'framework', 'use_case',
    'difficulty', 'source_url', 'metadata', 'author', 'compatibility',
    'dependencies', 'estimated_time',
)

_ARTIFACT_INSERT_SQL = (
    f"INSERT INTO artifacts ({', '.join(_ARTIFACT_INSERT_COLUMNS)}) "
    f"VALUES ({', '.join(':' + c for c in _ARTIFACT_INSERT_COLUMNS)})"
)


class CatalogStore:
    """SQLite-backed store for catalogs, artifacts and installations.

    Parameters
    ----------
    db_path : Union[Path, str]
        Path to the SQLite database file; missing parent directories are
        created. ``':memory:'`` opens a private in-memory database.
    timeout : float
        Seconds to wait for another connection's write lock.
    """

    def __init__(self, db_path: Union[Path, str], timeout: float = 5.0) -> None:
        if str(db_path) == ':memory:':
            self._db_path = None
            target = ':memory:'
        else:
            self._db_path = Path(db_path)
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(self._db_path)

        self._lock = threading.RLock()
        self._tx_depth = 0
        # Autocommit mode; transactions are opened explicitly.
        self._conn = sqlite3.connect(
            target, timeout=timeout, check_same_thread=False, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        if target != ':memory:':
            self._conn.execute("PRAGMA journal_mode = WAL")
        self._init_schema()
        self._run_migrations()

    def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        with self._lock:
            row = None
            has_version_table = self._conn.execute(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name = 'schema_version'"
            ).fetchone()
            if has_version_table:
                row = self._conn.execute(
                    "SELECT version FROM schema_version"
                ).fetchone()

            self._conn.executescript(_SCHEMA_SQL)
            self._conn.executescript(_FTS_SCHEMA_SQL)
            self._conn.executescript(_FTS_TRIGGERS_SQL)
            self._conn.executescript(_SCHEMA_VERSION_SQL)

            # Set initial schema version if not present
            if row is None:
                self._conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)",
                    (_CURRENT_SCHEMA_VERSION,),
                )

    def _run_migrations(self) -> None:
        """Run any pending schema migrations."""
        current = self.schema_version

        for target_version, migrate_fn in _MIGRATIONS:
            if target_version > current:
                logger.info(
                    "Running migration to schema version %d", target_version
                )
                with self.transaction() as conn:
                    migrate_fn(conn)
                    conn.execute(
                        "UPDATE schema_version SET version = ?",
                        (target_version,),
                    )
                current = target_version

    @property
    def schema_version(self) -> int:
        """Current schema version."""
        row = self.fetch_one("SELECT version FROM schema_version")
        return row['version'] if row else 0

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> 'CatalogStore':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    # ------------------------------------------------------------------
    # Transactions and raw reads
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block of writes atomically.

        Nested use joins the outer transaction. On any exception the whole
        transaction is rolled back; sqlite errors (including a busy
        database at BEGIN) are re-raised as ``StoreError``, domain errors
        unchanged.

        Yields
        ------
        sqlite3.Connection
        """
        with self._scope("BEGIN IMMEDIATE") as conn:
            yield conn

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Run several reads against one consistent snapshot.

        Holds the store lock and a deferred transaction for the whole
        block, so no sync can commit between the reads.

        Yields
        ------
        sqlite3.Connection
        """
        with self._scope("BEGIN DEFERRED") as conn:
            yield conn

    @contextmanager
    def _scope(self, begin: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self._tx_depth > 0:
                self._tx_depth += 1
                try:
                    yield self._conn
                finally:
                    self._tx_depth -= 1
                return

            try:
                self._conn.execute(begin)
            except sqlite3.Error as e:
                raise StoreError(f"Could not start transaction: {e}") from e
            self._tx_depth = 1
            try:
                yield self._conn
            except BaseException as e:
                self._tx_depth = 0
                self._rollback()
                if isinstance(e, sqlite3.Error):
                    raise StoreError(f"Transaction rolled back: {e}") from e
                raise
            else:
                self._tx_depth = 0
                try:
                    self._conn.execute("COMMIT")
                except sqlite3.Error as e:
                    self._rollback()
                    raise StoreError(f"Commit failed: {e}") from e

    def _rollback(self) -> None:
        # sqlite may already have aborted the transaction on its own.
        if not self._conn.in_transaction:
            return
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            raise StoreError(f"Rollback failed: {e}") from e

    def fetch_all(self, sql: str, params: Sequence = ()) -> List[sqlite3.Row]:
        """Run a read query and return every row."""
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params)).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Query failed: {e}") from e

    def fetch_one(self, sql: str, params: Sequence = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params)).fetchone()
            except sqlite3.Error as e:
                raise StoreError(f"Query failed: {e}") from e

    # ------------------------------------------------------------------
    # Catalogs
    # ------------------------------------------------------------------

    def _upsert_catalog_row(
        self,
        conn: sqlite3.Connection,
        catalog_id: str,
        url: str,
        enabled: bool,
        metadata: CatalogMetadata,
    ) -> None:
        conn.execute(
            """INSERT INTO catalogs (id, url, enabled, metadata)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                url = excluded.url,
                enabled = excluded.enabled,
                metadata = excluded.metadata,
                updated_at = datetime('now')""",
            (catalog_id, url, int(enabled), json.dumps(metadata.to_dict())),
        )

    def add_catalog(self, catalog: Catalog) -> None:
        """Insert or update a catalog row; health fields are left alone."""
        with self.transaction() as conn:
            self._upsert_catalog_row(
                conn, catalog.id, catalog.url, catalog.enabled, catalog.metadata
            )

    def get_catalog(self, catalog_id: str) -> Optional[Catalog]:
        """Get a catalog by id, or None if not subscribed."""
        row = self.fetch_one("SELECT * FROM catalogs WHERE id = ?", (catalog_id,))
        if row is None:
            return None
        return Catalog.from_row(row)

    def get_catalog_by_url(self, url: str) -> Optional[Catalog]:
        row = self.fetch_one("SELECT * FROM catalogs WHERE url = ?", (url,))
        return Catalog.from_row(row) if row is not None else None

    def list_catalogs(self) -> List[Catalog]:
        rows = self.fetch_all("SELECT * FROM catalogs ORDER BY id")
        return [Catalog.from_row(r) for r in rows]

    def remove_catalog(self, catalog_id: str) -> bool:
        """Delete a catalog with its artifacts and installations.

        Returns
        -------
        bool
            True if a catalog was removed.
        """
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM catalogs WHERE id = ?", (catalog_id,))
        return cursor.rowcount > 0

    def set_catalog_enabled(self, catalog_id: str, enabled: bool) -> None:
        with self.transaction() as conn:
            cursor = conn.execute(
                "UPDATE catalogs SET enabled = ?, updated_at = datetime('now') "
                "WHERE id = ?",
                (int(enabled), catalog_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Catalog not found: {catalog_id}")

    def mark_catalog_error(
        self,
        catalog_id: str,
        url: str,
        message: str,
        enabled: bool = True,
    ) -> None:
        """Record a failed sync without touching the catalog's artifacts.

        Creates the catalog row with placeholder metadata if it was never
        synced successfully.
        """
        with self.transaction() as conn:
            existing = conn.execute(
                "SELECT id FROM catalogs WHERE id = ?", (catalog_id,)
            ).fetchone()
            if existing is None:
                self._upsert_catalog_row(
                    conn, catalog_id, url, enabled,
                    CatalogMetadata.placeholder(catalog_id, url),
                )
            conn.execute(
                "UPDATE catalogs SET status = ?, error = ?, "
                "updated_at = datetime('now') WHERE id = ?",
                (STATUS_ERROR, message, catalog_id),
            )

    def replace_catalog_snapshot(
        self,
        catalog_id: str,
        url: str,
        enabled: bool,
        metadata: CatalogMetadata,
        artifacts: Iterable[Artifact],
    ) -> int:
        """Atomically replace a catalog's artifact set after a good sync.

        In one transaction: upsert the catalog row, delete all of its
        artifacts, insert the new set, and mark the catalog healthy.

        Returns
        -------
        int
            Number of artifacts inserted.
        """
        now = utc_now().isoformat()
        with self.transaction() as conn:
            self._upsert_catalog_row(conn, catalog_id, url, enabled, metadata)
            conn.execute("DELETE FROM artifacts WHERE catalog_id = ?", (catalog_id,))
            rows = [a.to_row() for a in artifacts]
            conn.executemany(_ARTIFACT_INSERT_SQL, rows)
            conn.execute(
                "UPDATE catalogs SET status = ?, error = NULL, last_fetched = ?, "
                "updated_at = datetime('now') WHERE id = ?",
                (STATUS_HEALTHY, now, catalog_id),
            )
        return len(rows)

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def get_artifact(self, catalog_id: str, artifact_id: str) -> Optional[Artifact]:
        """Get a specific artifact by catalog and id.

        Returns
        -------
        Optional[Artifact]
            The artifact, or None if not found.
        """
        row = self.fetch_one(
            "SELECT * FROM artifacts WHERE catalog_id = ? AND id = ?",
            (catalog_id, artifact_id),
        )
        if row is None:
            return None
        return Artifact.from_row(row)

    def list_artifacts(self, catalog_id: Optional[str] = None) -> List[Artifact]:
        """List artifacts, optionally restricted to one catalog."""
        if catalog_id:
            rows = self.fetch_all(
                "SELECT * FROM artifacts WHERE catalog_id = ? ORDER BY name, id",
                (catalog_id,),
            )
        else:
            rows = self.fetch_all(
                "SELECT * FROM artifacts ORDER BY name, catalog_id, id"
            )
        return [Artifact.from_row(r) for r in rows]

    def count_artifacts(self) -> int:
        row = self.fetch_one("SELECT COUNT(*) AS count FROM artifacts")
        return row['count']

    # ------------------------------------------------------------------
    # Installations
    # ------------------------------------------------------------------

    def upsert_installation(
        self,
        catalog_id: str,
        artifact_id: str,
        version: str,
        installed_path: str,
    ) -> Installation:
        """Record an install; an existing row is updated in place."""
        now = utc_now().isoformat()
        with self.transaction() as conn:
            conn.execute(
                """INSERT INTO installations
                (artifact_id, catalog_id, version, installed_path, installed_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(artifact_id, catalog_id) DO UPDATE SET
                    version = excluded.version,
                    installed_path = excluded.installed_path,
                    installed_at = excluded.installed_at""",
                (artifact_id, catalog_id, version, installed_path, now),
            )
            row = conn.execute(
                "SELECT * FROM installations WHERE catalog_id = ? AND artifact_id = ?",
                (catalog_id, artifact_id),
            ).fetchone()
        return Installation.from_row(row)

    def get_installation(self, catalog_id: str, artifact_id: str) -> Optional[Installation]:
        row = self.fetch_one(
            "SELECT * FROM installations WHERE catalog_id = ? AND artifact_id = ?",
            (catalog_id, artifact_id),
        )
        return Installation.from_row(row) if row is not None else None

    def list_installations(self) -> List[Installation]:
        rows = self.fetch_all(
            "SELECT * FROM installations ORDER BY catalog_id, artifact_id"
        )
        return [Installation.from_row(r) for r in rows]

    def remove_installation(self, catalog_id: str, artifact_id: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM installations WHERE catalog_id = ? AND artifact_id = ?",
                (catalog_id, artifact_id),
            )
        return cursor.rowcount > 0

    def touch_installation(self, catalog_id: str, artifact_id: str) -> None:
        """Set ``last_used`` to now."""
        with self.transaction() as conn:
            cursor = conn.execute(
                "UPDATE installations SET last_used = ? "
                "WHERE catalog_id = ? AND artifact_id = ?",
                (utc_now().isoformat(), catalog_id, artifact_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    f"Installation not found: {catalog_id}/{artifact_id}"
                )

    def installed_keys(self, keys: Sequence[Tuple[str, str]]) -> Set[Tuple[str, str]]:
        """Which of the given (catalog_id, artifact_id) pairs are installed.

        One query for the whole batch.
        """
        if not keys:
            return set()
        values = ", ".join("(?, ?)" for _ in keys)
        params: List[str] = []
        for catalog_id, artifact_id in keys:
            params.extend([catalog_id, artifact_id])
        rows = self.fetch_all(
            f"SELECT catalog_id, artifact_id FROM installations "
            f"WHERE (catalog_id, artifact_id) IN (VALUES {values})",
            params,
        )
        return {(r['catalog_id'], r['artifact_id']) for r in rows}

    def list_installations_with_artifacts(
        self,
    ) -> List[Tuple[Installation, Optional[Artifact]]]:
        """Every installation paired with its current catalog artifact.

        Installations whose artifact has left the catalog pair with None.
        """
        rows = self.fetch_all(
            """SELECT
                i.id AS i_id, i.artifact_id AS i_artifact_id,
                i.catalog_id AS i_catalog_id, i.version AS i_version,
                i.installed_path AS i_installed_path,
                i.installed_at AS i_installed_at, i.last_used AS i_last_used,
                a.*
            FROM installations i
            LEFT JOIN artifacts a
                ON i.catalog_id = a.catalog_id AND i.artifact_id = a.id
            ORDER BY i.catalog_id, i.artifact_id"""
        )
        pairs: List[Tuple[Installation, Optional[Artifact]]] = []
        for row in rows:
            installation = Installation.from_row(_PrefixedRow(row, 'i_'))
            artifact = Artifact.from_row(row) if row['row_id'] is not None else None
            pairs.append((installation, artifact))
        return pairs


class _PrefixedRow:
    """Row view that maps ``row[key]`` to ``row[prefix + key]``."""

    def __init__(self, row: sqlite3.Row, prefix: str) -> None:
        self._row = row
        self._prefix = prefix

    def __getitem__(self, key: str):
        return self._row[self._prefix + key]


