# -*- coding: utf-8 -*-
"""
Prometheus Metrics - GHG Ledger

Prometheus metrics for the emission calculation core.

Metrics:
    1. ghg_ledger_operations_total (Counter)
    2. ghg_ledger_operation_duration_seconds (Histogram)
    3. ghg_ledger_factor_resolutions_total (Counter)
    4. ghg_ledger_submissions_total (Counter)
    5. ghg_ledger_factor_inserts_total (Counter)
    6. ghg_ledger_audit_entries_total (Counter)
    7. ghg_ledger_bulk_insert_errors_total (Counter)

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Operations count
ledger_operations_total = Counter(
    "ghg_ledger_operations_total",
    "Total ledger operations performed",
    labelnames=["operation", "result"],
)

# 2. Operation duration
ledger_operation_duration_seconds = Histogram(
    "ghg_ledger_operation_duration_seconds",
    "Ledger operation duration in seconds",
    labelnames=["operation"],
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0),
)

# 3. Factor resolutions
ledger_factor_resolutions_total = Counter(
    "ghg_ledger_factor_resolutions_total",
    "Emission factor resolutions by outcome",
    labelnames=["result"],
)

# 4. Submissions
ledger_submissions_total = Counter(
    "ghg_ledger_submissions_total",
    "Activity submissions persisted, by override flag",
    labelnames=["override"],
)

# 5. Factor inserts
ledger_factor_inserts_total = Counter(
    "ghg_ledger_factor_inserts_total",
    "Emission factor insert attempts by outcome",
    labelnames=["outcome"],
)

# 6. Audit entries
ledger_audit_entries_total = Counter(
    "ghg_ledger_audit_entries_total",
    "Audit entries written",
    labelnames=["action"],
)

# 7. Bulk insert element errors
ledger_bulk_insert_errors_total = Counter(
    "ghg_ledger_bulk_insert_errors_total",
    "Bulk factor insert elements rejected",
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def record_operation(operation: str, result: str, duration_seconds: float) -> None:
    """Record a ledger operation.

    Args:
        operation: Operation name (submit, resolve, bulk_insert, etc.).
        result: Operation result ("success", "not_found", "invalid" or "error").
        duration_seconds: Operation duration in seconds.
    """
    ledger_operations_total.labels(operation=operation, result=result).inc()
    ledger_operation_duration_seconds.labels(operation=operation).observe(
        duration_seconds,
    )


def record_resolution(found: bool) -> None:
    """Record a factor resolution outcome.

    Args:
        found: Whether an applicable factor version was found.
    """
    ledger_factor_resolutions_total.labels(
        result="found" if found else "not_found",
    ).inc()


def record_submission(is_override: bool) -> None:
    """Record a persisted activity submission.

    Args:
        is_override: Whether the stored value was a manual override.
    """
    ledger_submissions_total.labels(override=str(is_override).lower()).inc()


def record_factor_insert(outcome: str) -> None:
    """Record a factor insert attempt.

    Args:
        outcome: "inserted", "duplicate" or "error".
    """
    ledger_factor_inserts_total.labels(outcome=outcome).inc()


def record_audit_entry(action: str) -> None:
    """Record a written audit entry.

    Args:
        action: Audit action tag.
    """
    ledger_audit_entries_total.labels(action=action).inc()


def record_bulk_insert_error() -> None:
    """Record one rejected bulk insert element."""
    ledger_bulk_insert_errors_total.inc()


__all__ = [
    # Metric objects
    "ledger_operations_total",
    "ledger_operation_duration_seconds",
    "ledger_factor_resolutions_total",
    "ledger_submissions_total",
    "ledger_factor_inserts_total",
    "ledger_audit_entries_total",
    "ledger_bulk_insert_errors_total",
    # Helper functions
    "record_operation",
    "record_resolution",
    "record_submission",
    "record_factor_insert",
    "record_audit_entry",
    "record_bulk_insert_error",
]
