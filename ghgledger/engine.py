# -*- coding: utf-8 -*-
"""
Calculation Engine - GHG Ledger

Converts a submitted activity occurrence into a persisted emission record.

ZERO-HALLUCINATION GUARANTEE:
- The factor is always resolved for the activity date before any write
- No default factor is ever applied; a missing factor fails loudly
- Coefficient multiplication is done in Decimal for reproducible results
- Every override is explained by exactly one audit entry

Submission steps:
    1. Validate the submission
    2. Resolve the factor version effective on the activity date
    3. base_value = activity_data * co2e_factor
    4. Use the override value instead when one is present
    5. Insert the emission record (scope copied from the factor)
    6. Insert the OVERRIDE audit entry when overridden

Steps 2 to 6 run inside one transaction: either the record and its audit
entry both exist, or nothing was written.

Override policy:
    An override is present when ``override_co2e`` is not None. While
    ``LedgerConfig.zero_override_is_absent`` is enabled (the default), an
    override of exactly 0 is treated as no override.

Example:
    >>> engine = CalculationEngine(db)
    >>> result = engine.submit("2024-01-15", "Diesel", 100, "KL")
    >>> result.calculated_co2e, result.factor_used, result.is_override
    (253.9, 2.539, False)

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import math
import time
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union

import pydantic

from ghgledger.audit import AuditLog
from ghgledger.config import LedgerConfig, get_config
from ghgledger.database import LedgerDatabase
from ghgledger.exceptions import MissingFactorError, StorageError, ValidationError
from ghgledger.factors import describe_validation_error
from ghgledger.metrics import record_operation, record_submission
from ghgledger.models import ActivitySubmission, SubmissionResult, _utcnow
from ghgledger.records import RecordStore
from ghgledger.resolver import FactorResolver

logger = logging.getLogger(__name__)


def calculate_emission(activity_data: float, co2e_factor: float) -> float:
    """Multiply an activity quantity by a factor coefficient.

    Both operands go through ``Decimal(str(x))`` so that, for example,
    100 * 2.539 yields exactly 253.9.

    Args:
        activity_data: Measured activity quantity.
        co2e_factor: CO2e per unit of activity.

    Returns:
        The emission value.

    Raises:
        ValidationError: If the product overflows to a non-finite value.
    """
    value = float(Decimal(str(activity_data)) * Decimal(str(co2e_factor)))
    if not math.isfinite(value):
        raise ValidationError(
            f"Calculated emission is not finite: {activity_data} * {co2e_factor}",
            component="CalculationEngine",
            invalid_fields={"activity_data": "product with the factor exceeds float range"},
        )
    return value


class CalculationEngine:
    """Resolve, calculate and persist activity submissions.

    Attributes:
        db: Owned ledger database handle.
        config: LedgerConfig instance.
        resolver: FactorResolver used for factor lookup.
        records: RecordStore receiving emission records.
        audit: AuditLog receiving override entries.
    """

    def __init__(
        self,
        db: LedgerDatabase,
        config: Optional[LedgerConfig] = None,
        resolver: Optional[FactorResolver] = None,
        records: Optional[RecordStore] = None,
        audit: Optional[AuditLog] = None,
    ) -> None:
        """Initialize CalculationEngine.

        Args:
            db: Ledger database handle shared by all collaborators.
            config: Optional config. Uses global config if None.
            resolver: Optional resolver. Creates one on ``db`` if None.
            records: Optional record store. Creates one on ``db`` if None.
            audit: Optional audit log. Creates one on ``db`` if None.
        """
        self.db = db
        self.config = config or get_config()
        self.resolver = resolver or FactorResolver(db)
        self.records = records or RecordStore(db)
        self.audit = audit or AuditLog(db)
        logger.info("CalculationEngine initialized")

    def submit(
        self,
        activity_date: Union[date, str],
        activity_name: str,
        activity_data: float,
        unit: str,
        override_co2e: Optional[float] = None,
        override_reason: Optional[str] = None,
    ) -> SubmissionResult:
        """Calculate and persist one activity occurrence.

        Args:
            activity_date: Date the activity occurred.
            activity_name: Exact activity key used for factor resolution.
            activity_data: Measured activity quantity.
            unit: Activity unit (not converted).
            override_co2e: Optional manual emission value.
            override_reason: Justification for the override.

        Returns:
            SubmissionResult with record id, stored value, factor used and
            override flag.

        Raises:
            ValidationError: If the submission is malformed.
            MissingFactorError: If no factor covers the activity date.
            StorageError: If the store fails; nothing is written.
        """
        start = time.monotonic()
        submission = self._validate(
            activity_date=activity_date,
            activity_name=activity_name,
            activity_data=activity_data,
            unit=unit,
            override_co2e=override_co2e,
            override_reason=override_reason,
        )
        logger.info(
            "Adding emission record: %s %s %s on %s",
            submission.activity_name, submission.activity_data,
            submission.unit, submission.activity_date,
        )

        try:
            with self.db.transaction():
                factor = self.resolver.resolve(
                    submission.activity_name, submission.activity_date,
                )
                base_value = calculate_emission(submission.activity_data, factor.co2e_factor)

                is_override = self.is_override(submission.override_co2e)
                calculated_co2e = submission.override_co2e if is_override else base_value
                if is_override and not submission.override_reason:
                    logger.warning(
                        "Override for %s on %s has no reason",
                        submission.activity_name, submission.activity_date,
                    )

                created_at = _utcnow()
                record_id = self.records.insert(
                    activity_date=submission.activity_date,
                    activity_name=submission.activity_name,
                    activity_data=submission.activity_data,
                    unit=submission.unit,
                    emission_factor_id=factor.id,
                    calculated_co2e=calculated_co2e,
                    scope=factor.scope,
                    is_override=is_override,
                    override_reason=submission.override_reason if is_override else None,
                    created_at=created_at,
                )

                audit_entry_id = None
                if is_override:
                    audit_entry_id = self.audit.record_override(
                        record_id=record_id,
                        old_value=base_value,
                        new_value=calculated_co2e,
                        reason=submission.override_reason,
                        created_at=created_at,
                    )
        except MissingFactorError:
            logger.error("No emission factor found for: %s", submission.activity_name)
            record_operation("submit", "not_found", time.monotonic() - start)
            raise
        except ValidationError:
            record_operation("submit", "invalid", time.monotonic() - start)
            raise
        except StorageError:
            record_operation("submit", "error", time.monotonic() - start)
            raise

        record_submission(is_override)
        record_operation("submit", "success", time.monotonic() - start)

        return SubmissionResult(
            id=record_id,
            calculated_co2e=calculated_co2e,
            factor_used=factor.co2e_factor,
            emission_factor_id=factor.id,
            scope=factor.scope,
            is_override=is_override,
            audit_entry_id=audit_entry_id,
        )

    def preview(
        self,
        activity_date: Union[date, str],
        activity_name: str,
        activity_data: float,
    ) -> float:
        """Return the factor-based value without writing anything.

        Raises:
            MissingFactorError: If no factor covers the activity date.
        """
        factor = self.resolver.resolve(activity_name, activity_date)
        return calculate_emission(activity_data, factor.co2e_factor)

    def is_override(self, override_co2e: Optional[float]) -> bool:
        """Decide whether a supplied override value replaces the calculation."""
        if override_co2e is None:
            return False
        if override_co2e == 0 and self.config.zero_override_is_absent:
            logger.warning("Override value of 0 ignored; using calculated value")
            return False
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(**fields: Any) -> ActivitySubmission:
        """Validate submission fields.

        Raises:
            ValidationError: If a field is missing or invalid.
        """
        try:
            return ActivitySubmission(**fields)
        except pydantic.ValidationError as e:
            invalid_fields = describe_validation_error(e)
            summary = "; ".join(f"{k}: {v}" for k, v in invalid_fields.items())
            raise ValidationError(
                f"Invalid activity submission: {summary}",
                component="CalculationEngine",
                invalid_fields=invalid_fields,
            ) from e


__all__ = [
    "CalculationEngine",
    "calculate_emission",
]
