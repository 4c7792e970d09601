# -*- coding: utf-8 -*-
"""
Aggregation Layer - GHG Ledger

Read-only analytics over stored emission records. All reports group by
the activity date of each record and treat overridden values exactly like
calculated ones.

Reports:
    - yoy_emissions: totals by (year, scope) for a year and the year before
    - yoy_emissions_all_years: totals by (year, scope) for every year
    - emission_intensity: total emissions / production for a year
    - emission_hotspots: totals by (activity, scope) with share of the year
    - monthly_trends: totals by (YYYY-MM, scope) for a year
    - record_breakdown: store health summary by (year, scope)

Example:
    >>> analytics = AggregationLayer(db)
    >>> report = analytics.emission_hotspots(2024)
    >>> [(h.activity_name, h.percentage) for h in report.hotspots]
    [('Grid Electricity', 96.92), ('Diesel', 3.08)]

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import List, Optional

from ghgledger.config import LedgerConfig, get_config
from ghgledger.database import LedgerDatabase
from ghgledger.metrics import record_operation
from ghgledger.models import (
    HotspotReport,
    HotspotRow,
    IntensityReport,
    MonthlyTrendReport,
    MonthlyTrendRow,
    RecordBreakdown,
    RecordBreakdownRow,
    YearScopeTotal,
    YoYReport,
)

logger = logging.getLogger(__name__)

_YEAR_SCOPE_SQL = """
    SELECT strftime('%Y', activity_date) AS year, scope,
           SUM(calculated_co2e) AS total_co2e
    FROM emission_records
    {where}
    GROUP BY year, scope
    ORDER BY year, scope
"""


class AggregationLayer:
    """Emission reports over the record store.

    Attributes:
        db: Owned ledger database handle.
        config: LedgerConfig instance.
    """

    def __init__(
        self,
        db: LedgerDatabase,
        config: Optional[LedgerConfig] = None,
    ) -> None:
        """Initialize AggregationLayer.

        Args:
            db: Ledger database handle.
            config: Optional config. Uses global config if None.
        """
        self.db = db
        self.config = config or get_config()

    def yoy_emissions(self, year: Optional[int] = None) -> YoYReport:
        """Totals by (year, scope) for ``year`` and ``year - 1``.

        Args:
            year: Reporting year. Defaults to the current calendar year.

        Returns:
            YoYReport ordered by year then scope.
        """
        start = time.monotonic()
        current_year = int(year) if year is not None else date.today().year
        previous_year = current_year - 1

        rows = self.db.fetch_all(
            _YEAR_SCOPE_SQL.format(where="WHERE strftime('%Y', activity_date) IN (?, ?)"),
            (str(current_year), str(previous_year)),
        )
        report = YoYReport(
            current_year=current_year,
            previous_year=previous_year,
            rows=[self._year_scope(row) for row in rows],
        )
        record_operation("yoy_emissions", "success", time.monotonic() - start)
        return report

    def yoy_emissions_all_years(self) -> List[YearScopeTotal]:
        """Totals by (year, scope) for every year with records."""
        start = time.monotonic()
        rows = self.db.fetch_all(_YEAR_SCOPE_SQL.format(where=""))
        record_operation("yoy_emissions_all_years", "success", time.monotonic() - start)
        return [self._year_scope(row) for row in rows]

    def emission_intensity(self, year: int) -> IntensityReport:
        """Emissions per unit of production for a year.

        Production is the sum of the configured production metric
        (``Tons of Steel Produced`` by default). Intensity is 0 when
        production is zero or absent.

        Args:
            year: Reporting year.

        Returns:
            IntensityReport for the year.
        """
        start = time.monotonic()
        year_str = str(int(year))

        emissions_row = self.db.fetch_one(
            "SELECT SUM(calculated_co2e) AS total_emissions FROM emission_records "
            "WHERE strftime('%Y', activity_date) = ?",
            (year_str,),
        )
        production_row = self.db.fetch_one(
            "SELECT SUM(value) AS total_production FROM business_metrics "
            "WHERE metric_name = ? AND strftime('%Y', date) = ?",
            (self.config.production_metric_name, year_str),
        )

        total_emissions = emissions_row["total_emissions"] or 0.0
        total_production = production_row["total_production"] or 0.0
        intensity = total_emissions / total_production if total_production > 0 else 0.0
        if total_production <= 0:
            logger.debug(
                "No %s recorded for %s; intensity reported as 0",
                self.config.production_metric_name, year_str,
            )

        record_operation("emission_intensity", "success", time.monotonic() - start)
        return IntensityReport(
            year=int(year),
            total_emissions=total_emissions,
            total_production=total_production,
            intensity=intensity,
            unit=self.config.intensity_unit,
        )

    def emission_hotspots(self, year: int) -> HotspotReport:
        """Rank (activity, scope) pairs by their share of the year's total.

        Args:
            year: Reporting year.

        Returns:
            HotspotReport sorted by total descending. Percentages are
            rounded to ``config.percentage_decimals`` and are 0 when the
            year's total is not positive.
        """
        start = time.monotonic()
        rows = self.db.fetch_all(
            """
            SELECT activity_name, scope,
                   SUM(calculated_co2e) AS total_co2e,
                   COUNT(*) AS record_count
            FROM emission_records
            WHERE strftime('%Y', activity_date) = ?
            GROUP BY activity_name, scope
            ORDER BY total_co2e DESC, activity_name, scope
            """,
            (str(int(year)),),
        )

        total = sum(row["total_co2e"] for row in rows)
        hotspots = []
        for row in rows:
            share = (row["total_co2e"] / total) * 100 if total > 0 else 0.0
            hotspots.append(HotspotRow(
                activity_name=row["activity_name"],
                scope=row["scope"],
                total_co2e=row["total_co2e"],
                record_count=row["record_count"],
                percentage=round(share, self.config.percentage_decimals),
            ))

        record_operation("emission_hotspots", "success", time.monotonic() - start)
        return HotspotReport(year=int(year), total_emissions=total, hotspots=hotspots)

    def monthly_trends(self, year: int) -> MonthlyTrendReport:
        """Totals by (YYYY-MM, scope) for a year, ascending."""
        start = time.monotonic()
        rows = self.db.fetch_all(
            """
            SELECT strftime('%Y-%m', activity_date) AS month, scope,
                   SUM(calculated_co2e) AS total_co2e
            FROM emission_records
            WHERE strftime('%Y', activity_date) = ?
            GROUP BY month, scope
            ORDER BY month, scope
            """,
            (str(int(year)),),
        )
        record_operation("monthly_trends", "success", time.monotonic() - start)
        return MonthlyTrendReport(
            year=int(year),
            rows=[
                MonthlyTrendRow(month=row["month"], scope=row["scope"], total_co2e=row["total_co2e"])
                for row in rows
            ],
        )

    def record_breakdown(self) -> RecordBreakdown:
        """Summarise the record store: total count and (year, scope) buckets.

        Returns:
            RecordBreakdown newest year first; ``healthy`` is True when at
            least one record exists.
        """
        total_records = self.db.count("emission_records")
        rows = self.db.fetch_all(
            """
            SELECT strftime('%Y', activity_date) AS year, scope,
                   COUNT(*) AS record_count,
                   SUM(calculated_co2e) AS total_emissions
            FROM emission_records
            GROUP BY year, scope
            ORDER BY year DESC, scope
            """
        )
        return RecordBreakdown(
            total_records=total_records,
            breakdown=[
                RecordBreakdownRow(
                    year=int(row["year"]),
                    scope=row["scope"],
                    record_count=row["record_count"],
                    total_emissions=row["total_emissions"],
                )
                for row in rows
            ],
            healthy=total_records > 0,
        )

    @staticmethod
    def _year_scope(row) -> YearScopeTotal:
        return YearScopeTotal(
            year=int(row["year"]),
            scope=row["scope"],
            total_co2e=row["total_co2e"],
        )


__all__ = [
    "AggregationLayer",
]
