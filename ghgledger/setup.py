# -*- coding: utf-8 -*-
"""
Emissions Service Setup - GHG Ledger

Provides the ``EmissionsService`` facade which wires the ledger components
(database, factor store, resolver, calculation engine, record store, audit
log, aggregation layer, business metrics) over one owned database handle.

Also exposes ``configure_emissions_service(config)`` and
``get_emissions_service()`` for programmatic singleton access.

Usage:
    >>> from ghgledger.setup import configure_emissions_service
    >>> service = configure_emissions_service()
    >>> service.submit_activity("2024-01-15", "Diesel", 100, "KL").calculated_co2e
    253.9

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ghgledger.analytics import AggregationLayer
from ghgledger.audit import AuditLog
from ghgledger.business_metrics import BusinessMetricStore
from ghgledger.config import LedgerConfig, get_config
from ghgledger.database import LedgerDatabase
from ghgledger.engine import CalculationEngine
from ghgledger.factors import FactorStore
from ghgledger.models import (
    AuditEntry,
    BulkInsertResult,
    BusinessMetric,
    EmissionFactorVersion,
    EmissionRecordView,
    FactorInput,
    HotspotReport,
    IntensityReport,
    MetricsSummary,
    MonthlyTrendReport,
    RecordBreakdown,
    SubmissionResult,
    YearScopeTotal,
    YoYReport,
)
from ghgledger.records import RecordStore
from ghgledger.resolver import FactorResolver
from ghgledger.sample_data import seed_sample_data

logger = logging.getLogger(__name__)


# ===================================================================
# EmissionsService facade
# ===================================================================

# Thread-safe singleton lock
_singleton_lock = threading.Lock()
_singleton_instance: Optional["EmissionsService"] = None


class EmissionsService:
    """Unified facade over the GHG ledger.

    Attributes:
        config: LedgerConfig instance.
        db: LedgerDatabase owned by this service.
        factors: FactorStore instance.
        resolver: FactorResolver instance.
        records: RecordStore instance.
        audit: AuditLog instance.
        engine: CalculationEngine instance.
        analytics: AggregationLayer instance.
        business_metrics: BusinessMetricStore instance.

    Example:
        >>> service = EmissionsService(LedgerConfig(database_path=":memory:"))
        >>> service.insert_factor({"activity_name": "Diesel", "unit": "KL",
        ...     "co2e_factor": 2.539, "scope": 1, "source": "DEFRA",
        ...     "valid_from": "2024-01-01"})
        1
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        db: Optional[LedgerDatabase] = None,
    ) -> None:
        """Initialize the Emissions Service facade.

        Args:
            config: Optional ledger config. Uses global config if None.
            db: Optional database handle. Opens ``config.database_path``
                if None.
        """
        self.config = config or get_config()
        self.db = db or LedgerDatabase(config=self.config)
        self.factors = FactorStore(self.db)
        self.resolver = FactorResolver(self.db)
        self.records = RecordStore(self.db)
        self.audit = AuditLog(self.db)
        self.engine = CalculationEngine(
            self.db,
            config=self.config,
            resolver=self.resolver,
            records=self.records,
            audit=self.audit,
        )
        self.analytics = AggregationLayer(self.db, config=self.config)
        self.business_metrics = BusinessMetricStore(self.db)
        self._started = False
        logger.info("EmissionsService facade created")

    # ------------------------------------------------------------------
    # Factors
    # ------------------------------------------------------------------

    def resolve_factor(
        self,
        activity_name: str,
        activity_date: Union[date, str],
    ) -> EmissionFactorVersion:
        """Resolve the factor version effective on ``activity_date``.

        Raises:
            MissingFactorError: If no version covers the date.
        """
        return self.resolver.resolve(activity_name, activity_date)

    def insert_factor(
        self,
        factor: Union[FactorInput, Dict[str, Any]],
    ) -> Optional[int]:
        """Insert one factor version; None when an identical row exists."""
        return self.factors.insert(factor)

    def bulk_insert_factors(self, factors: Sequence[Any]) -> BulkInsertResult:
        """Insert many factor versions with per-index error reporting."""
        return self.factors.bulk_insert(factors)

    def load_factor_file(self, path: Union[str, Path]) -> BulkInsertResult:
        """Bulk insert factors from a YAML or JSON file."""
        return self.factors.load_file(path)

    def list_factors(self) -> List[EmissionFactorVersion]:
        return self.factors.list()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def submit_activity(
        self,
        activity_date: Union[date, str],
        activity_name: str,
        activity_data: float,
        unit: str,
        override_co2e: Optional[float] = None,
        override_reason: Optional[str] = None,
    ) -> SubmissionResult:
        """Calculate and persist one activity occurrence.

        See ``CalculationEngine.submit``.
        """
        return self.engine.submit(
            activity_date=activity_date,
            activity_name=activity_name,
            activity_data=activity_data,
            unit=unit,
            override_co2e=override_co2e,
            override_reason=override_reason,
        )

    def list_records(self) -> List[EmissionRecordView]:
        """List records joined with factor name and coefficient."""
        return self.records.list()

    def list_audit_entries(self, record_id: Optional[int] = None) -> List[AuditEntry]:
        return self.audit.list(record_id=record_id)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def yoy_emissions(self, year: Optional[int] = None) -> YoYReport:
        return self.analytics.yoy_emissions(year)

    def yoy_emissions_all_years(self) -> List[YearScopeTotal]:
        return self.analytics.yoy_emissions_all_years()

    def emission_intensity(self, year: int) -> IntensityReport:
        return self.analytics.emission_intensity(year)

    def emission_hotspots(self, year: int) -> HotspotReport:
        return self.analytics.emission_hotspots(year)

    def monthly_trends(self, year: int) -> MonthlyTrendReport:
        return self.analytics.monthly_trends(year)

    def record_breakdown(self) -> RecordBreakdown:
        return self.analytics.record_breakdown()

    # ------------------------------------------------------------------
    # Business metrics
    # ------------------------------------------------------------------

    def list_business_metrics(self) -> List[BusinessMetric]:
        return self.business_metrics.list()

    def insert_business_metric(
        self,
        date: Union[date, str],
        metric_name: str,
        value: float,
        unit: str,
    ) -> int:
        return self.business_metrics.insert(date, metric_name, value, unit)

    def business_metrics_summary(self, year: int) -> MetricsSummary:
        return self.business_metrics.summary(year)

    # ------------------------------------------------------------------
    # Bootstrap & metrics
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        """Return True when no emission record exists."""
        return self.db.is_empty()

    def export_database(self, path: Union[str, Path]) -> Path:
        """Write a standalone copy of the ledger database to ``path``."""
        return self.db.backup(path)

    def get_metrics(self) -> Dict[str, Any]:
        """Get emissions service metrics summary.

        Returns:
            Dictionary with service metric summaries.
        """
        return {
            "started": self._started,
            "factors_count": self.factors.count(),
            "records_count": self.records.count(),
            "audit_entries": self.audit.count(),
            "business_metrics_count": self.business_metrics.count(),
            "database": self.db.get_metrics(),
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def startup(self) -> None:
        """Start the emissions service, seeding sample data on first run.

        Safe to call multiple times.
        """
        if self._started:
            logger.debug("EmissionsService already started; skipping")
            return

        logger.info("EmissionsService starting up...")
        if self.is_empty():
            if self.config.seed_sample_data:
                seed_sample_data(self)
            else:
                logger.info("Empty ledger; sample data seeding disabled")
        else:
            breakdown = self.record_breakdown()
            logger.info(
                "Existing ledger found: %d records across years %s",
                breakdown.total_records,
                sorted({row.year for row in breakdown.breakdown}),
            )

        self._started = True
        logger.info("EmissionsService startup complete")

    def shutdown(self) -> None:
        """Shutdown the emissions service and release the database."""
        if not self._started:
            return
        self.db.close()
        self._started = False
        logger.info("EmissionsService shut down")


# ===================================================================
# Thread-safe singleton access
# ===================================================================


def get_emissions_service() -> EmissionsService:
    """Get or create the started singleton EmissionsService.

    Returns:
        The singleton EmissionsService.
    """
    global _singleton_instance
    if _singleton_instance is None:
        with _singleton_lock:
            if _singleton_instance is None:
                service = EmissionsService()
                service.startup()
                _singleton_instance = service
    return _singleton_instance


def configure_emissions_service(
    config: Optional[LedgerConfig] = None,
) -> EmissionsService:
    """Create, start and install the singleton EmissionsService.

    Args:
        config: Optional ledger config.

    Returns:
        EmissionsService instance.
    """
    global _singleton_instance
    service = EmissionsService(config=config)
    service.startup()

    with _singleton_lock:
        previous, _singleton_instance = _singleton_instance, service
    if previous is not None:
        previous.shutdown()

    logger.info("Emissions service configured")
    return service


def reset_emissions_service() -> None:
    """Shut down and drop the singleton (primarily for test teardown)."""
    global _singleton_instance
    with _singleton_lock:
        service, _singleton_instance = _singleton_instance, None
    if service is not None:
        service.shutdown()


__all__ = [
    "EmissionsService",
    "configure_emissions_service",
    "get_emissions_service",
    "reset_emissions_service",
]
