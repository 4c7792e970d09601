# -*- coding: utf-8 -*-
"""
Record Store - GHG Ledger

Append-only ledger of calculated emission records. Each record keeps a
snapshot of the activity, the id of the factor version it was calculated
from, the scope copied from that factor, and the stored CO2e value.
Records are never updated or deleted, so later factor edits cannot change
historical numbers.

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from ghgledger.database import LedgerDatabase
from ghgledger.models import EmissionRecord, EmissionRecordView

logger = logging.getLogger(__name__)

_INSERT_SQL = """
    INSERT INTO emission_records
        (activity_date, activity_name, activity_data, unit, emission_factor_id,
         calculated_co2e, scope, is_override, override_reason, created_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_LIST_SQL = """
    SELECT er.*, ef.activity_name AS factor_name, ef.co2e_factor
    FROM emission_records er
    LEFT JOIN emission_factors ef ON er.emission_factor_id = ef.id
    ORDER BY er.activity_date DESC, er.id DESC
"""


class RecordStore:
    """Append-only store of emission records."""

    def __init__(self, db: LedgerDatabase) -> None:
        self.db = db

    def insert(
        self,
        activity_date: date,
        activity_name: str,
        activity_data: float,
        unit: str,
        emission_factor_id: Optional[int],
        calculated_co2e: float,
        scope: int,
        is_override: bool,
        override_reason: Optional[str],
        created_at: datetime,
    ) -> int:
        """Append one emission record.

        Callers that also write an audit entry must wrap both writes in
        ``db.transaction()``.

        Returns:
            The new record id.
        """
        cursor = self.db.execute(_INSERT_SQL, (
            activity_date.isoformat(),
            activity_name,
            activity_data,
            unit,
            emission_factor_id,
            calculated_co2e,
            scope,
            1 if is_override else 0,
            override_reason,
            created_at.isoformat(),
        ))
        logger.info(
            "Emission record %d created: %s %s on %s -> %s CO2e%s",
            cursor.lastrowid, activity_name, activity_data, activity_date,
            calculated_co2e, " (override)" if is_override else "",
        )
        return cursor.lastrowid

    def get(self, record_id: int) -> Optional[EmissionRecord]:
        """Get a record by id."""
        row = self.db.fetch_one("SELECT * FROM emission_records WHERE id = ?", (record_id,))
        return EmissionRecord.from_row(row) if row is not None else None

    def list(self) -> List[EmissionRecordView]:
        """List records newest activity first, joined with their factor."""
        return [EmissionRecordView.from_row(row) for row in self.db.fetch_all(_LIST_SQL)]

    def count(self) -> int:
        return self.db.count("emission_records")


__all__ = [
    "RecordStore",
]
