# -*- coding: utf-8 -*-
"""
GHG Ledger: Emission Calculation & Temporal Factor Resolution
=============================================================

This package tracks greenhouse-gas emissions against effective-dated
emission factors. It supports:

- Time-versioned emission factors with idempotent and bulk insert
- Factor resolution at the activity date (latest valid_from wins)
- Decimal-exact emission calculation with factor provenance per record
- Manual overrides explained by an audit trail, atomically with the record
- Year-over-year, intensity, hotspot and monthly trend analytics
- Business metrics as intensity denominators
- Prometheus metrics for observability
- Thread-safe configuration with GHG_LEDGER_ env prefix

Key Components:
    - factors: FactorStore for factor versions
    - resolver: FactorResolver for temporal lookup
    - engine: CalculationEngine for submissions
    - records: RecordStore for the append-only ledger
    - audit: AuditLog for override entries
    - analytics: AggregationLayer for reports
    - business_metrics: BusinessMetricStore for production data
    - database: LedgerDatabase owned SQLite handle
    - config: LedgerConfig with GHG_LEDGER_ env prefix
    - setup: EmissionsService facade

Example:
    >>> from ghgledger import EmissionsService, LedgerConfig
    >>> service = EmissionsService(LedgerConfig(database_path=":memory:"))
    >>> service.startup()
    >>> service.emission_hotspots(2024).hotspots[0].activity_name
    'Grid Electricity'
"""

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from ghgledger.config import (
    LedgerConfig,
    get_config,
    set_config,
    reset_config,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------
from ghgledger.exceptions import (
    LedgerException,
    MissingFactorError,
    ValidationError,
    StorageError,
    format_exception_chain,
    is_retriable,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
from ghgledger.models import (
    AuditAction,
    FactorInput,
    ActivitySubmission,
    BusinessMetricInput,
    EmissionFactorVersion,
    EmissionRecord,
    EmissionRecordView,
    AuditEntry,
    BusinessMetric,
    SubmissionResult,
    BulkInsertError,
    BulkInsertResult,
    YearScopeTotal,
    YoYReport,
    IntensityReport,
    HotspotRow,
    HotspotReport,
    MonthlyTrendRow,
    MonthlyTrendReport,
    MetricSummaryRow,
    MetricsSummary,
    RecordBreakdownRow,
    RecordBreakdown,
)

# ---------------------------------------------------------------------------
# Core components
# ---------------------------------------------------------------------------
from ghgledger.database import LedgerDatabase
from ghgledger.factors import FactorStore
from ghgledger.resolver import FactorResolver
from ghgledger.engine import CalculationEngine, calculate_emission
from ghgledger.records import RecordStore
from ghgledger.audit import AuditLog
from ghgledger.analytics import AggregationLayer
from ghgledger.business_metrics import BusinessMetricStore

# ---------------------------------------------------------------------------
# Service setup facade
# ---------------------------------------------------------------------------
from ghgledger.setup import (
    EmissionsService,
    configure_emissions_service,
    get_emissions_service,
    reset_emissions_service,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "LedgerConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "LedgerException",
    "MissingFactorError",
    "ValidationError",
    "StorageError",
    "format_exception_chain",
    "is_retriable",
    # Models
    "AuditAction",
    "FactorInput",
    "ActivitySubmission",
    "BusinessMetricInput",
    "EmissionFactorVersion",
    "EmissionRecord",
    "EmissionRecordView",
    "AuditEntry",
    "BusinessMetric",
    "SubmissionResult",
    "BulkInsertError",
    "BulkInsertResult",
    "YearScopeTotal",
    "YoYReport",
    "IntensityReport",
    "HotspotRow",
    "HotspotReport",
    "MonthlyTrendRow",
    "MonthlyTrendReport",
    "MetricSummaryRow",
    "MetricsSummary",
    "RecordBreakdownRow",
    "RecordBreakdown",
    # Core components
    "LedgerDatabase",
    "FactorStore",
    "FactorResolver",
    "CalculationEngine",
    "calculate_emission",
    "RecordStore",
    "AuditLog",
    "AggregationLayer",
    "BusinessMetricStore",
    # Service
    "EmissionsService",
    "configure_emissions_service",
    "get_emissions_service",
    "reset_emissions_service",
]
