# -*- coding: utf-8 -*-
"""
Factor Resolver - GHG Ledger

Selects the single emission factor version applicable to an activity on
the date the activity occurred.

Resolution rules:
    - activity_name matches exactly (case-sensitive)
    - valid_from <= activity_date
    - valid_to is NULL or valid_to >= activity_date
    - among survivors the largest valid_from wins; equal valid_from
      falls back to the most recently inserted row
    - no survivor means MissingFactorError, never a default

Resolution always uses the activity date, never the reporting date, and
reads only committed factor rows.

Example:
    >>> resolver = FactorResolver(db)
    >>> factor = resolver.resolve("Diesel", date(2024, 1, 15))
    >>> factor.co2e_factor
    2.539

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import List, Optional, Union

from ghgledger.database import LedgerDatabase
from ghgledger.exceptions import MissingFactorError, ValidationError
from ghgledger.metrics import record_operation, record_resolution
from ghgledger.models import EmissionFactorVersion, _calendar_date

logger = logging.getLogger(__name__)

_CANDIDATES_SQL = """
    SELECT * FROM emission_factors
    WHERE activity_name = ?
      AND valid_from <= ?
      AND (valid_to IS NULL OR valid_to >= ?)
    ORDER BY valid_from DESC, id DESC
"""


def _as_date(value: Union[date, str]) -> date:
    """Normalise an ISO string, datetime or date into a date."""
    value = _calendar_date(value)
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(
            f"Invalid activity date: {value!r}",
            component="FactorResolver",
            invalid_fields={"activity_date": "expected YYYY-MM-DD"},
        ) from e


class FactorResolver:
    """Temporal emission factor lookup.

    Attributes:
        db: Owned ledger database handle.
    """

    def __init__(self, db: LedgerDatabase) -> None:
        """Initialize FactorResolver.

        Args:
            db: Ledger database handle.
        """
        self.db = db

    def candidates(
        self,
        activity_name: str,
        activity_date: Union[date, str],
    ) -> List[EmissionFactorVersion]:
        """Return every factor version valid on the date, best first.

        Args:
            activity_name: Exact activity key.
            activity_date: Date the activity occurred.

        Returns:
            Applicable versions ordered by valid_from descending.
        """
        day = _as_date(activity_date).isoformat()
        rows = self.db.fetch_all(_CANDIDATES_SQL, (activity_name, day, day))
        return [EmissionFactorVersion.from_row(row) for row in rows]

    def find(
        self,
        activity_name: str,
        activity_date: Union[date, str],
    ) -> Optional[EmissionFactorVersion]:
        """Resolve a factor, returning None when none applies.

        Args:
            activity_name: Exact activity key.
            activity_date: Date the activity occurred.

        Returns:
            The applicable EmissionFactorVersion or None.
        """
        start = time.monotonic()
        day = _as_date(activity_date)
        row = self.db.fetch_one(
            _CANDIDATES_SQL + " LIMIT 1",
            (activity_name, day.isoformat(), day.isoformat()),
        )
        factor = EmissionFactorVersion.from_row(row) if row is not None else None

        record_resolution(factor is not None)
        record_operation(
            "resolve", "success" if factor is not None else "not_found", time.monotonic() - start,
        )
        if factor is None:
            logger.debug("No emission factor for %s on %s", activity_name, day)
        else:
            logger.debug(
                "Resolved %s on %s to factor %d (%s, valid %s..%s)",
                activity_name, day, factor.id, factor.co2e_factor,
                factor.valid_from, factor.valid_to or "open",
            )
        return factor

    def resolve(
        self,
        activity_name: str,
        activity_date: Union[date, str],
    ) -> EmissionFactorVersion:
        """Resolve the applicable factor version.

        Args:
            activity_name: Exact activity key.
            activity_date: Date the activity occurred.

        Returns:
            The applicable EmissionFactorVersion.

        Raises:
            MissingFactorError: If no version covers the date.
        """
        factor = self.find(activity_name, activity_date)
        if factor is None:
            raise MissingFactorError(activity_name=activity_name, activity_date=activity_date)
        return factor


__all__ = [
    "FactorResolver",
]
