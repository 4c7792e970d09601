"""
GHG Ledger Database Module
==========================

Embedded SQLite store management for the emissions ledger.

Example:
    >>> from ghgledger.database import LedgerDatabase
    >>> db = LedgerDatabase(database_path=":memory:")
    >>> db.is_empty()
    True
"""

from ghgledger.database.connection import (
    LedgerDatabase,
    SCHEMA_SQL,
    TABLES,
    MEMORY_DATABASE,
)

__all__ = [
    'LedgerDatabase',
    'SCHEMA_SQL',
    'TABLES',
    'MEMORY_DATABASE',
]
