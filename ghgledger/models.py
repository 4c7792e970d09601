# -*- coding: utf-8 -*-
"""
GHG Ledger Data Models

Pydantic v2 data models for the emissions ledger. Persisted entities are
built from SQLite rows via ``from_row``; input models validate caller data
before anything touches the store.

Models:
    - Enums: AuditAction
    - Inputs: FactorInput, ActivitySubmission, BusinessMetricInput
    - Entities: EmissionFactorVersion, EmissionRecord, EmissionRecordView,
                AuditEntry, BusinessMetric
    - Results: SubmissionResult, BulkInsertError, BulkInsertResult
    - Reports: YearScopeTotal, YoYReport, IntensityReport, HotspotRow,
               HotspotReport, MonthlyTrendRow, MonthlyTrendReport,
               MetricSummaryRow, MetricsSummary, RecordBreakdownRow,
               RecordBreakdown

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# BusinessMetric has a field named ``date``
_Date = date


# =============================================================================
# Enumerations
# =============================================================================


class AuditAction(str, Enum):
    """Kinds of audited divergence from the factor-driven calculation."""
    OVERRIDE = "OVERRIDE"


# =============================================================================
# Helpers
# =============================================================================


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _calendar_date(value: Any) -> Any:
    """Reduce a datetime or ISO datetime string to its calendar date.

    Other values are returned unchanged for normal date validation.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            return value
    return value


def _row_dict(row: sqlite3.Row) -> Dict[str, Any]:
    """Convert a sqlite3.Row into a plain dictionary."""
    return {key: row[key] for key in row.keys()}


# =============================================================================
# Input Models
# =============================================================================


class FactorInput(BaseModel):
    """A new emission factor version as supplied by a caller."""
    activity_name: str = Field(..., min_length=1, description="Exact-match activity key")
    unit: str = Field(..., description="Activity unit (descriptive only)")
    co2e_factor: float = Field(..., gt=0, description="CO2e per unit of activity")
    scope: int = Field(..., ge=1, le=3, description="GHG Protocol scope")
    source: str = Field(..., description="Provenance of the factor")
    valid_from: date = Field(..., description="First day of validity (inclusive)")
    valid_to: Optional[date] = Field(None, description="Last day of validity (inclusive)")

    model_config = {"extra": "ignore"}

    @model_validator(mode="after")
    def validate_interval(self) -> "FactorInput":
        """Reject validity intervals that end before they start."""
        if self.valid_to is not None and self.valid_to < self.valid_from:
            raise ValueError("valid_to must not be earlier than valid_from")
        return self


class ActivitySubmission(BaseModel):
    """One real-world activity occurrence submitted for calculation."""
    activity_date: date = Field(..., description="Date the activity occurred")
    activity_name: str = Field(..., min_length=1, description="Activity key")
    activity_data: float = Field(..., allow_inf_nan=False, description="Measured activity quantity")
    unit: str = Field(..., description="Activity unit")
    override_co2e: Optional[float] = Field(None, allow_inf_nan=False, description="Manual emission value")
    override_reason: Optional[str] = Field(None, description="Justification for override")

    model_config = {"extra": "forbid"}

    @field_validator("activity_date", mode="before")
    @classmethod
    def reduce_datetime(cls, v: Any) -> Any:
        """Accept datetimes by keeping only the calendar date."""
        return _calendar_date(v)


class BusinessMetricInput(BaseModel):
    """A business metric observation (e.g. monthly production)."""
    date: _Date
    metric_name: str = Field(..., min_length=1)
    value: float
    unit: str

    model_config = {"extra": "ignore"}


# =============================================================================
# Persisted Entities
# =============================================================================


class EmissionFactorVersion(FactorInput):
    """A stored, effective-dated emission factor."""
    id: int = Field(..., description="Surrogate id, never reused")
    created_at: Optional[datetime] = Field(None, description="Insertion timestamp")

    model_config = {"extra": "forbid"}

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "EmissionFactorVersion":
        """Create from database row."""
        return cls.model_validate(_row_dict(row))

    def covers(self, activity_date: date) -> bool:
        """Return whether the validity interval contains ``activity_date``."""
        if self.valid_from > activity_date:
            return False
        return self.valid_to is None or self.valid_to >= activity_date


class EmissionRecord(BaseModel):
    """An immutable calculated emission entry."""
    id: int
    activity_date: date
    activity_name: str
    activity_data: float
    unit: str
    emission_factor_id: Optional[int] = None
    calculated_co2e: float
    scope: int
    is_override: bool = False
    override_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"extra": "forbid"}

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "EmissionRecord":
        """Create from database row."""
        return cls.model_validate(_row_dict(row))


class EmissionRecordView(EmissionRecord):
    """Emission record joined with the factor it was calculated from."""
    factor_name: Optional[str] = Field(None, description="Referenced factor's activity name")
    co2e_factor: Optional[float] = Field(None, description="Referenced factor's coefficient")


class AuditEntry(BaseModel):
    """Explains why a stored emission differs from the factor calculation."""
    id: int
    record_id: int
    action: AuditAction = AuditAction.OVERRIDE
    old_value: Optional[float] = None
    new_value: Optional[float] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"extra": "forbid"}

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "AuditEntry":
        """Create from database row."""
        return cls.model_validate(_row_dict(row))


class BusinessMetric(BusinessMetricInput):
    """A stored business metric observation."""
    id: int
    created_at: Optional[datetime] = None

    model_config = {"extra": "forbid"}

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "BusinessMetric":
        """Create from database row."""
        return cls.model_validate(_row_dict(row))


# =============================================================================
# Operation Results
# =============================================================================


class SubmissionResult(BaseModel):
    """Outcome of a successful activity submission."""
    id: int = Field(..., description="Created emission record id")
    calculated_co2e: float = Field(..., description="Stored emission value")
    factor_used: float = Field(..., description="Coefficient of the resolved factor")
    emission_factor_id: int = Field(..., description="Resolved factor version id")
    scope: int = Field(..., description="Scope copied from the factor")
    is_override: bool = Field(..., description="Whether an override was stored")
    audit_entry_id: Optional[int] = Field(None, description="Audit entry id for overrides")
    message: str = Field(default="Record added successfully!")


class BulkInsertError(BaseModel):
    """A rejected element of a bulk factor insert."""
    index: int = Field(..., ge=0, description="Position in the input list")
    error: str = Field(..., description="Why the element was rejected")


class BulkInsertResult(BaseModel):
    """Outcome of a partial-failure bulk factor insert."""
    inserted: int = Field(default=0, description="Rows actually written")
    skipped: int = Field(default=0, description="Identical rows ignored")
    errors: List[BulkInsertError] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """Return True when no element was rejected."""
        return not self.errors


# =============================================================================
# Report Models
# =============================================================================


class YearScopeTotal(BaseModel):
    """Emission total for one (year, scope) bucket."""
    year: int
    scope: int
    total_co2e: float


class YoYReport(BaseModel):
    """Year-over-year totals for a year and the year before it."""
    current_year: int
    previous_year: int
    rows: List[YearScopeTotal] = Field(default_factory=list)


class IntensityReport(BaseModel):
    """Emissions normalised by production for one year."""
    year: int
    total_emissions: float = 0.0
    total_production: float = 0.0
    intensity: float = 0.0
    unit: str = "kgCO2e/tonne"


class HotspotRow(BaseModel):
    """An (activity, scope) pair ranked by its share of the year's total."""
    activity_name: str
    scope: int
    total_co2e: float
    record_count: int
    percentage: float = 0.0


class HotspotReport(BaseModel):
    """Hotspot ranking for one year."""
    year: int
    total_emissions: float = 0.0
    hotspots: List[HotspotRow] = Field(default_factory=list)


class MonthlyTrendRow(BaseModel):
    """Emission total for one (month, scope) bucket."""
    month: str = Field(..., description="YYYY-MM")
    scope: int
    total_co2e: float

    @field_validator("month")
    @classmethod
    def validate_month(cls, v: str) -> str:
        """Validate YYYY-MM month format."""
        if len(v) != 7 or v[4] != "-":
            raise ValueError("month must be formatted YYYY-MM")
        return v


class MonthlyTrendReport(BaseModel):
    """Monthly emission totals for one year."""
    year: int
    rows: List[MonthlyTrendRow] = Field(default_factory=list)


class MetricSummaryRow(BaseModel):
    """Aggregate of one business metric over a year."""
    metric_name: str
    unit: str
    total_value: float
    avg_value: float
    record_count: int


class MetricsSummary(BaseModel):
    """Business metric aggregates for one year."""
    year: int
    metrics: List[MetricSummaryRow] = Field(default_factory=list)


class RecordBreakdownRow(BaseModel):
    """Record count and emission total for one (year, scope) bucket."""
    year: int
    scope: int
    record_count: int
    total_emissions: float


class RecordBreakdown(BaseModel):
    """Store health summary across all years."""
    total_records: int
    breakdown: List[RecordBreakdownRow] = Field(default_factory=list)
    healthy: bool = False
    generated_at: datetime = Field(default_factory=_utcnow)


__all__ = [
    # Enumerations
    "AuditAction",
    # Inputs
    "FactorInput",
    "ActivitySubmission",
    "BusinessMetricInput",
    # Entities
    "EmissionFactorVersion",
    "EmissionRecord",
    "EmissionRecordView",
    "AuditEntry",
    "BusinessMetric",
    # Results
    "SubmissionResult",
    "BulkInsertError",
    "BulkInsertResult",
    # Reports
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
]
