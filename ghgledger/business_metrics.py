# -*- coding: utf-8 -*-
"""
Business Metric Store - GHG Ledger

Non-emission observations (monthly production, headcount, ...) used as
denominators for intensity reporting. Metrics are joined to emissions only
by (year, metric_name).

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from datetime import date as _Date
from typing import Any, List, Mapping, Union

import pydantic

from ghgledger.database import LedgerDatabase
from ghgledger.exceptions import ValidationError
from ghgledger.factors import describe_validation_error
from ghgledger.models import (
    BusinessMetric,
    BusinessMetricInput,
    MetricSummaryRow,
    MetricsSummary,
    _utcnow,
)

logger = logging.getLogger(__name__)


class BusinessMetricStore:
    """Store of business metric observations.

    Attributes:
        db: Owned ledger database handle.
    """

    def __init__(self, db: LedgerDatabase) -> None:
        self.db = db

    def insert(
        self,
        date: Union[_Date, str],
        metric_name: str,
        value: float,
        unit: str,
    ) -> int:
        """Insert one observation.

        Returns:
            The new metric id.

        Raises:
            ValidationError: If the observation is malformed.
        """
        metric = self._coerce(
            {"date": date, "metric_name": metric_name, "value": value, "unit": unit}
        )
        cursor = self.db.execute(
            "INSERT INTO business_metrics (date, metric_name, value, unit, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                metric.date.isoformat(),
                metric.metric_name,
                metric.value,
                metric.unit,
                _utcnow().isoformat(),
            ),
        )
        logger.info(
            "Business metric %d stored: %s = %s %s on %s",
            cursor.lastrowid, metric.metric_name, metric.value, metric.unit, metric.date,
        )
        return cursor.lastrowid

    def list(self) -> List[BusinessMetric]:
        """List observations, newest date first."""
        rows = self.db.fetch_all("SELECT * FROM business_metrics ORDER BY date DESC, id DESC")
        return [BusinessMetric.from_row(row) for row in rows]

    def summary(self, year: int) -> MetricsSummary:
        """Sum, average and count per (metric_name, unit) for a year.

        Args:
            year: Reporting year.

        Returns:
            MetricsSummary ordered by metric name.
        """
        rows = self.db.fetch_all(
            """
            SELECT metric_name, unit,
                   SUM(value) AS total_value,
                   AVG(value) AS avg_value,
                   COUNT(*) AS record_count
            FROM business_metrics
            WHERE strftime('%Y', date) = ?
            GROUP BY metric_name, unit
            ORDER BY metric_name
            """,
            (str(int(year)),),
        )
        return MetricsSummary(
            year=int(year),
            metrics=[
                MetricSummaryRow(
                    metric_name=row["metric_name"],
                    unit=row["unit"],
                    total_value=row["total_value"],
                    avg_value=row["avg_value"],
                    record_count=row["record_count"],
                )
                for row in rows
            ],
        )

    def count(self) -> int:
        return self.db.count("business_metrics")

    @staticmethod
    def _coerce(data: Mapping[str, Any]) -> BusinessMetricInput:
        try:
            return BusinessMetricInput.model_validate(dict(data))
        except pydantic.ValidationError as e:
            invalid_fields = describe_validation_error(e)
            summary = "; ".join(f"{k}: {v}" for k, v in invalid_fields.items())
            raise ValidationError(
                f"Invalid business metric: {summary}",
                component="BusinessMetricStore",
                invalid_fields=invalid_fields,
            ) from e


__all__ = [
    "BusinessMetricStore",
]
