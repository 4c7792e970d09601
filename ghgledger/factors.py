# -*- coding: utf-8 -*-
"""
Factor Store - GHG Ledger

Holds effective-dated emission factor versions. Factors are created by
single or bulk insert and are never updated or deleted by the ledger.

Insert policy:
    - Identical rows (same activity, unit, coefficient, scope, source and
      validity interval) are ignored, not duplicated and not reported
      as errors.
    - Overlapping validity intervals for one activity are accepted; the
      resolver picks the most recently started window.
    - Bulk inserts validate each element independently and collect
      per-index errors instead of aborting the batch.

Example:
    >>> from ghgledger.database import LedgerDatabase
    >>> from ghgledger.factors import FactorStore
    >>> store = FactorStore(LedgerDatabase(database_path=":memory:"))
    >>> store.insert({"activity_name": "Diesel", "unit": "KL",
    ...     "co2e_factor": 2.539, "scope": 1, "source": "DEFRA 2024",
    ...     "valid_from": "2024-01-01", "valid_to": "2024-12-31"})
    1

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pydantic
import yaml

from ghgledger.database import LedgerDatabase
from ghgledger.exceptions import StorageError, ValidationError
from ghgledger.metrics import (
    record_bulk_insert_error,
    record_factor_insert,
    record_operation,
)
from ghgledger.models import (
    BulkInsertError,
    BulkInsertResult,
    EmissionFactorVersion,
    FactorInput,
    _utcnow,
)

logger = logging.getLogger(__name__)

_INSERT_SQL = """
    INSERT OR IGNORE INTO emission_factors
        (activity_name, unit, co2e_factor, scope, source, valid_from, valid_to, created_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""


def describe_validation_error(error: pydantic.ValidationError) -> Dict[str, str]:
    """Flatten a pydantic error into ``field -> reason``.

    Args:
        error: The pydantic validation error.

    Returns:
        Mapping of dotted field location to message.
    """
    fields: Dict[str, str] = {}
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "__root__"
        fields[location] = item.get("msg", "invalid value")
    return fields


class FactorStore:
    """Store of emission factor versions.

    Attributes:
        db: Owned ledger database handle.
    """

    def __init__(self, db: LedgerDatabase) -> None:
        """Initialize FactorStore.

        Args:
            db: Ledger database handle.
        """
        self.db = db
        logger.info("FactorStore initialized")

    def insert(self, factor: Union[FactorInput, Mapping[str, Any]]) -> Optional[int]:
        """Insert one factor version.

        Args:
            factor: A FactorInput or a mapping with the same fields.

        Returns:
            The new factor id, or None when an identical row already exists.

        Raises:
            ValidationError: If the factor is malformed.
            StorageError: If the store fails.
        """
        start = time.monotonic()
        validated = self._coerce(factor)

        try:
            with self.db.transaction():
                factor_id = self._insert_row(validated)
        except StorageError:
            record_operation("insert_factor", "error", time.monotonic() - start)
            raise

        record_operation("insert_factor", "success", time.monotonic() - start)
        return factor_id

    def bulk_insert(self, factors: Sequence[Any]) -> BulkInsertResult:
        """Insert many factor versions, collecting per-element errors.

        The batch runs inside a single transaction and each element inside
        its own savepoint. Malformed elements and elements the store
        rejects are reported by input index and skipped; the remaining
        elements are still inserted. Failing to open or commit the batch
        raises StorageError.

        Args:
            factors: Sequence of FactorInput objects or mappings.

        Returns:
            BulkInsertResult with inserted/skipped counts and errors.

        Raises:
            ValidationError: If ``factors`` is not a list.
            StorageError: If the store fails.
        """
        if not isinstance(factors, (list, tuple)):
            raise ValidationError(
                "Expected array of factors",
                component="FactorStore",
                context={"received_type": type(factors).__name__},
            )

        start = time.monotonic()
        logger.info("Bulk inserting %d emission factors...", len(factors))
        result = BulkInsertResult()

        try:
            with self.db.transaction():
                for index, item in enumerate(factors):
                    try:
                        validated = self._coerce(item)
                    except ValidationError as e:
                        logger.warning("Rejected bulk factor at index %d: %s", index, e.message)
                        record_bulk_insert_error()
                        result.errors.append(BulkInsertError(index=index, error=e.message))
                        continue

                    try:
                        with self.db.savepoint():
                            factor_id = self._insert_row(validated)
                    except StorageError as e:
                        logger.warning("Store rejected bulk factor at index %d: %s", index, e.message)
                        record_bulk_insert_error()
                        result.errors.append(BulkInsertError(index=index, error=e.message))
                        continue

                    if factor_id is None:
                        result.skipped += 1
                    else:
                        result.inserted += 1
        except StorageError:
            record_operation("bulk_insert_factors", "error", time.monotonic() - start)
            raise

        record_operation("bulk_insert_factors", "success", time.monotonic() - start)
        logger.info(
            "Bulk insert complete: %d factors inserted, %d skipped, %d errors",
            result.inserted, result.skipped, len(result.errors),
        )
        return result

    def load_file(self, path: Union[str, Path]) -> BulkInsertResult:
        """Bulk insert factors from a YAML or JSON file.

        The document is either a list of factors or a mapping with a
        ``factors`` list.

        Args:
            path: File to read.

        Returns:
            BulkInsertResult of the underlying bulk insert.

        Raises:
            ValidationError: If the file is unreadable or has no factor list.
        """
        file_path = Path(path)
        logger.info("Importing emission factors from %s", file_path)

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ValidationError(
                f"Cannot read factor file {file_path}: {e}",
                component="FactorStore",
                context={"path": str(file_path)},
            ) from e

        if isinstance(data, dict):
            data = data.get("factors")
        if not isinstance(data, list):
            raise ValidationError(
                f"Factor file {file_path} does not contain a list of factors",
                component="FactorStore",
                context={"path": str(file_path)},
            )

        return self.bulk_insert(data)

    def list(self) -> List[EmissionFactorVersion]:
        """List all factor versions by activity name, newest validity first."""
        rows = self.db.fetch_all(
            "SELECT * FROM emission_factors "
            "ORDER BY activity_name, valid_from DESC, id DESC"
        )
        return [EmissionFactorVersion.from_row(row) for row in rows]

    def get(self, factor_id: int) -> Optional[EmissionFactorVersion]:
        """Get a factor version by id."""
        row = self.db.fetch_one("SELECT * FROM emission_factors WHERE id = ?", (factor_id,))
        return EmissionFactorVersion.from_row(row) if row is not None else None

    def count(self) -> int:
        """Return the number of stored factor versions."""
        return self.db.count("emission_factors")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce(factor: Any) -> FactorInput:
        """Validate caller input into a FactorInput.

        Raises:
            ValidationError: If required fields are missing or invalid.
        """
        if isinstance(factor, FactorInput):
            return factor
        if not isinstance(factor, Mapping):
            raise ValidationError(
                f"Expected a factor object, got {type(factor).__name__}",
                component="FactorStore",
            )
        try:
            return FactorInput.model_validate(dict(factor))
        except pydantic.ValidationError as e:
            invalid_fields = describe_validation_error(e)
            summary = "; ".join(f"{k}: {v}" for k, v in invalid_fields.items())
            raise ValidationError(
                f"Invalid emission factor: {summary}",
                component="FactorStore",
                invalid_fields=invalid_fields,
            ) from e

    def _insert_row(self, factor: FactorInput) -> Optional[int]:
        """Insert a validated factor, ignoring identical rows."""
        cursor = self.db.execute(_INSERT_SQL, (
            factor.activity_name,
            factor.unit,
            factor.co2e_factor,
            factor.scope,
            factor.source,
            factor.valid_from.isoformat(),
            factor.valid_to.isoformat() if factor.valid_to else None,
            _utcnow().isoformat(),
        ))

        if cursor.rowcount == 0:
            record_factor_insert("duplicate")
            logger.debug(
                "Identical factor already stored, ignored: %s %s..%s",
                factor.activity_name, factor.valid_from, factor.valid_to,
            )
            return None

        record_factor_insert("inserted")
        logger.info(
            "Inserted emission factor %d: %s = %s (scope %d, %s..%s)",
            cursor.lastrowid, factor.activity_name, factor.co2e_factor,
            factor.scope, factor.valid_from, factor.valid_to or "open",
        )
        return cursor.lastrowid


__all__ = [
    "FactorStore",
    "describe_validation_error",
]
