# -*- coding: utf-8 -*-
"""
Audit Log - GHG Ledger

Records every divergence between the factor-driven calculation and the
value actually stored. An entry is written for each overridden emission
record, in the same transaction and with the same timestamp as the
record, even when the override equals the calculated value.

Example:
    >>> audit = AuditLog(db)
    >>> entries = audit.list(record_id=42)
    >>> entries[0].old_value, entries[0].new_value
    (253.9, 300.0)

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional

from ghgledger.database import LedgerDatabase
from ghgledger.metrics import record_audit_entry
from ghgledger.models import AuditAction, AuditEntry

logger = logging.getLogger(__name__)


class AuditLog:
    """Override audit trail backed by the ``audit_log`` table.

    Attributes:
        db: Owned ledger database handle.
    """

    def __init__(self, db: LedgerDatabase) -> None:
        """Initialize AuditLog.

        Args:
            db: Ledger database handle.
        """
        self.db = db

    def record_override(
        self,
        record_id: int,
        old_value: float,
        new_value: float,
        reason: Optional[str],
        created_at: datetime,
    ) -> int:
        """Write the audit entry explaining an overridden record.

        Args:
            record_id: The overridden emission record.
            old_value: Value the factor calculation produced.
            new_value: Override value actually stored.
            reason: Free-text justification.
            created_at: Timestamp shared with the emission record.

        Returns:
            The new audit entry id.
        """
        cursor = self.db.execute(
            """
            INSERT INTO audit_log (record_id, action, old_value, new_value, reason, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                record_id,
                AuditAction.OVERRIDE.value,
                old_value,
                new_value,
                reason,
                created_at.isoformat(),
            ),
        )
        record_audit_entry(AuditAction.OVERRIDE.value)
        logger.info(
            "Audit %s for record %d: %s -> %s (%s)",
            AuditAction.OVERRIDE.value, record_id, old_value, new_value, reason,
        )
        return cursor.lastrowid

    def list(
        self,
        record_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[AuditEntry]:
        """Get audit entries, newest first.

        Args:
            record_id: Optional filter by emission record.
            limit: Optional maximum number of entries.

        Returns:
            List of AuditEntry objects.
        """
        query = "SELECT * FROM audit_log"
        params: List[Any] = []

        if record_id is not None:
            query += " WHERE record_id = ?"
            params.append(record_id)

        query += " ORDER BY id DESC"

        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        return [AuditEntry.from_row(row) for row in self.db.fetch_all(query, params)]

    def count(self) -> int:
        """Return the number of audit entries."""
        return self.db.count("audit_log")


__all__ = [
    "AuditLog",
]
