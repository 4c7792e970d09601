# -*- coding: utf-8 -*-
"""
Ledger Database Connection
==========================

Owned handle over the embedded SQLite store backing the emissions ledger.

The handle holds a single connection in autocommit mode. Multi-statement
writes go through ``transaction()``, which issues ``BEGIN IMMEDIATE`` and
either commits or rolls back the whole unit. ``savepoint()`` nests a
named savepoint inside it for work that may fail alone, and ``backup()``
exports the store to a standalone file. A re-entrant lock serialises
access so a reader on another thread never observes an open transaction.

Example:
    >>> from ghgledger.database import LedgerDatabase
    >>> db = LedgerDatabase(database_path=":memory:")
    >>> with db.transaction():
    ...     db.execute("INSERT INTO business_metrics (date, metric_name, value, unit, created_at) "
    ...                "VALUES ('2024-01-31', 'Employee Count', 920, 'employees', '2024-01-31T00:00:00')")
    >>> db.is_empty()
    True

Author: GHG Ledger Team
Status: Production Ready
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ghgledger.config import LedgerConfig, get_config
from ghgledger.exceptions import StorageError

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS emission_factors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    activity_name TEXT NOT NULL,
    unit TEXT NOT NULL,
    co2e_factor REAL NOT NULL,
    scope INTEGER NOT NULL,
    source TEXT NOT NULL,
    valid_from DATE NOT NULL,
    valid_to DATE,
    created_at TIMESTAMP NOT NULL,
    CHECK (length(activity_name) > 0),
    CHECK (co2e_factor > 0),
    CHECK (scope IN (1, 2, 3))
);

CREATE TABLE IF NOT EXISTS emission_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    activity_date DATE NOT NULL,
    activity_name TEXT NOT NULL,
    activity_data REAL NOT NULL,
    unit TEXT NOT NULL,
    emission_factor_id INTEGER,
    calculated_co2e REAL NOT NULL,
    scope INTEGER NOT NULL,
    is_override BOOLEAN NOT NULL DEFAULT 0,
    override_reason TEXT,
    created_at TIMESTAMP NOT NULL,
    FOREIGN KEY (emission_factor_id) REFERENCES emission_factors(id)
);

CREATE TABLE IF NOT EXISTS audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    record_id INTEGER NOT NULL,
    action TEXT NOT NULL,
    old_value REAL,
    new_value REAL,
    reason TEXT,
    created_at TIMESTAMP NOT NULL,
    FOREIGN KEY (record_id) REFERENCES emission_records(id)
);

CREATE TABLE IF NOT EXISTS business_metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date DATE NOT NULL,
    metric_name TEXT NOT NULL,
    value REAL NOT NULL,
    unit TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL
);

-- Identical factor rows are ignored on insert; an open-ended valid_to
-- compares equal to another open-ended valid_to.
CREATE UNIQUE INDEX IF NOT EXISTS ux_factors_identity ON emission_factors (
    activity_name, unit, co2e_factor, scope, source, valid_from, IFNULL(valid_to, '')
);

CREATE INDEX IF NOT EXISTS idx_factors_resolution ON emission_factors(activity_name, valid_from);
CREATE INDEX IF NOT EXISTS idx_records_date ON emission_records(activity_date);
CREATE INDEX IF NOT EXISTS idx_records_factor ON emission_records(emission_factor_id);
CREATE INDEX IF NOT EXISTS idx_audit_record ON audit_log(record_id);
CREATE INDEX IF NOT EXISTS idx_metrics_name_date ON business_metrics(metric_name, date);
"""

TABLES = ("emission_factors", "emission_records", "audit_log", "business_metrics")


class LedgerDatabase:
    """
    Owned connection to the ledger's embedded SQLite store.

    Provides schema bootstrap, statement execution, and transaction support.
    Every sqlite3 failure surfaces as ``StorageError``.
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        database_path: Optional[str] = None,
    ):
        """Open the store and create tables when missing.

        Args:
            config: Optional config. Uses global config if None.
            database_path: Optional path overriding ``config.database_path``.
        """
        self.config = config or get_config()
        self.database_path = database_path or self.config.database_path
        self._lock = threading.RLock()
        self._in_transaction = False
        self.query_count = 0
        self.transaction_count = 0
        self._conn = self._connect()

        self._initialize_database()

    def _connect(self) -> sqlite3.Connection:
        """Open the SQLite connection in autocommit mode."""
        if self.database_path != MEMORY_DATABASE:
            try:
                Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(
                    f"Cannot create data directory for {self.database_path}: {e}",
                    operation="connect",
                    cause=e,
                ) from e

        try:
            conn = sqlite3.connect(
                self.database_path,
                timeout=self.config.sqlite_timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            logger.error("Error opening database %s: %s", self.database_path, e)
            raise StorageError(
                f"Cannot open database {self.database_path}: {e}",
                operation="connect",
                cause=e,
            ) from e

        logger.info("Connected to SQLite database: %s", self.database_path)
        return conn

    def _initialize_database(self) -> None:
        """Create ledger tables and indexes if they do not exist."""
        with self._lock:
            try:
                self._conn.executescript(SCHEMA_SQL)
            except sqlite3.Error as e:
                raise StorageError(
                    f"Schema creation failed: {e}",
                    operation="initialize",
                    cause=e,
                ) from e
        logger.info("Ledger database initialized")

    # ------------------------------------------------------------------
    # Statement execution
    # ------------------------------------------------------------------

    def execute(self, query: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """
        Execute a single statement.

        Outside ``transaction()`` the statement commits on its own.

        Args:
            query: SQL statement
            params: Positional parameters

        Returns:
            The sqlite3 cursor (for ``lastrowid`` / ``rowcount``)

        Raises:
            StorageError: If the statement fails
        """
        with self._lock:
            self.query_count += 1
            if self.config.echo_sql:
                logger.debug("Executing query: %s with params: %s", query, params)

            try:
                return self._conn.execute(query, tuple(params))
            except sqlite3.Error as e:
                logger.error("Query failed: %s", e)
                raise StorageError(
                    f"Query execution failed: {e}",
                    operation=query.strip().split(None, 1)[0].upper(),
                    cause=e,
                ) from e

    def fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        """Execute a query and return every row."""
        with self._lock:
            cursor = self.execute(query, params)
            try:
                return cursor.fetchall()
            except sqlite3.Error as e:
                raise StorageError(
                    f"Fetching rows failed: {e}", operation="SELECT", cause=e,
                ) from e

    def fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        """Execute a query and return the first row, or None."""
        with self._lock:
            cursor = self.execute(query, params)
            try:
                return cursor.fetchone()
            except sqlite3.Error as e:
                raise StorageError(
                    f"Fetching row failed: {e}", operation="SELECT", cause=e,
                ) from e

    def count(self, table: str) -> int:
        """Return the number of rows in a ledger table."""
        if table not in TABLES:
            raise ValueError(f"Unknown ledger table: {table}")
        row = self.fetch_one(f"SELECT COUNT(*) AS total FROM {table}")
        return int(row["total"])

    def is_empty(self) -> bool:
        """Return True when no emission record exists (first-run trigger)."""
        return self.count("emission_records") == 0

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["LedgerDatabase"]:
        """Run the enclosed statements as one atomic unit.

        Nested calls join the outermost transaction.

        Raises:
            StorageError: If BEGIN or COMMIT fails
        """
        with self._lock:
            if self._in_transaction:
                yield self
                return

            self.transaction_count += 1
            self.execute("BEGIN IMMEDIATE")
            self._in_transaction = True
            try:
                yield self
                self.execute("COMMIT")
                logger.debug("Transaction committed")
            except Exception as e:
                self._rollback()
                logger.error("Transaction rolled back: %s", e)
                raise
            finally:
                self._in_transaction = False

    @contextmanager
    def savepoint(self, name: str = "ledger_element") -> Iterator["LedgerDatabase"]:
        """Run the enclosed statements so a failure undoes only them.

        Joins (or opens) a transaction and sets a named savepoint inside
        it. On error the savepoint is rolled back and the exception
        re-raised; the surrounding transaction stays usable.

        Args:
            name: Savepoint identifier (SQL identifier, not user input).
        """
        with self.transaction():
            self.execute(f"SAVEPOINT {name}")
            try:
                yield self
            except Exception:
                try:
                    self._conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
                    self._conn.execute(f"RELEASE SAVEPOINT {name}")
                    logger.debug("Rolled back to savepoint: %s", name)
                except sqlite3.Error as e:
                    logger.error("Savepoint rollback failed: %s", e)
                raise
            self.execute(f"RELEASE SAVEPOINT {name}")

    def backup(self, target_path: Any) -> Path:
        """Copy the whole database into a standalone SQLite file.

        Uses SQLite's online backup API, so the copy is consistent even
        while the ledger is open. An existing file at the target is
        overwritten.

        Args:
            target_path: Destination file path.

        Returns:
            The resolved destination path.

        Raises:
            StorageError: If the destination cannot be written.
        """
        target = Path(target_path).resolve()
        with self._lock:
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                destination = sqlite3.connect(str(target))
            except (OSError, sqlite3.Error) as e:
                raise StorageError(
                    f"Cannot open backup target {target}: {e}",
                    operation="backup",
                    cause=e,
                ) from e
            try:
                self._conn.backup(destination)
            except sqlite3.Error as e:
                raise StorageError(
                    f"Database backup failed: {e}", operation="backup", cause=e,
                ) from e
            finally:
                destination.close()

        logger.info("Database backed up to %s", target)
        return target

    def _rollback(self) -> None:
        """Roll back the open transaction, if sqlite still has one."""
        if not self._conn.in_transaction:
            return
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.error("Rollback failed: %s", e)

    @property
    def in_transaction(self) -> bool:
        """Return whether a ``transaction()`` block is open."""
        return self._in_transaction

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """Get database usage counters."""
        return {
            "database_path": self.database_path,
            "query_count": self.query_count,
            "transaction_count": self.transaction_count,
            "in_transaction": self._in_transaction,
        }

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            try:
                self._conn.close()
            except sqlite3.Error as e:
                logger.error("Error closing database: %s", e)
                raise StorageError(
                    f"Closing database failed: {e}", operation="close", cause=e,
                ) from e
        logger.info("Database connection closed")


__all__ = [
    "LedgerDatabase",
    "SCHEMA_SQL",
    "TABLES",
    "MEMORY_DATABASE",
]
