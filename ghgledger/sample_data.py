# -*- coding: utf-8 -*-
"""
Sample Data - GHG Ledger

First-run dataset seeded into an empty ledger: three 2024 emission
factors, two activity submissions and nine business metric observations.
Records go through the calculation engine, so their stored values and
factor references are consistent with the seeded factors.

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:
    from ghgledger.setup import EmissionsService

logger = logging.getLogger(__name__)

SAMPLE_SOURCE = "Sample Data"

SAMPLE_FACTORS = [
    {"activity_name": "Diesel", "unit": "KL", "co2e_factor": 2.539, "scope": 1,
     "source": SAMPLE_SOURCE, "valid_from": "2024-01-01", "valid_to": "2024-12-31"},
    {"activity_name": "Natural Gas", "unit": "kNm3", "co2e_factor": 2.425, "scope": 1,
     "source": SAMPLE_SOURCE, "valid_from": "2024-01-01", "valid_to": "2024-12-31"},
    {"activity_name": "Grid Electricity", "unit": "kWh", "co2e_factor": 0.8, "scope": 2,
     "source": SAMPLE_SOURCE, "valid_from": "2024-01-01", "valid_to": "2024-12-31"},
]

# (activity_date, activity_name, activity_data, unit)
SAMPLE_ACTIVITIES = [
    ("2024-01-15", "Diesel", 100, "KL"),
    ("2024-01-15", "Grid Electricity", 10000, "kWh"),
]

# (date, metric_name, value, unit)
SAMPLE_BUSINESS_METRICS = [
    ("2024-01-31", "Tons of Steel Produced", 5000, "tonnes"),
    ("2024-02-29", "Tons of Steel Produced", 4800, "tonnes"),
    ("2024-03-31", "Tons of Steel Produced", 5200, "tonnes"),
    ("2024-04-30", "Tons of Steel Produced", 4900, "tonnes"),
    ("2024-05-31", "Tons of Steel Produced", 5100, "tonnes"),
    ("2024-06-30", "Tons of Steel Produced", 4850, "tonnes"),
    ("2024-07-31", "Tons of Steel Produced", 5300, "tonnes"),
    ("2024-08-31", "Tons of Steel Produced", 5000, "tonnes"),
    ("2024-08-31", "Employee Count", 920, "employees"),
]


def seed_sample_data(service: "EmissionsService") -> Dict[str, int]:
    """Seed the sample dataset through the service.

    Args:
        service: A started EmissionsService.

    Returns:
        Counts of seeded factors, records and business metrics.
    """
    logger.info("Empty ledger, creating sample data...")

    factor_result = service.bulk_insert_factors(SAMPLE_FACTORS)

    records = 0
    for activity_date, activity_name, activity_data, unit in SAMPLE_ACTIVITIES:
        service.submit_activity(activity_date, activity_name, activity_data, unit)
        records += 1

    metrics = 0
    for metric_date, metric_name, value, unit in SAMPLE_BUSINESS_METRICS:
        service.insert_business_metric(metric_date, metric_name, value, unit)
        metrics += 1

    counts = {
        "factors": factor_result.inserted,
        "records": records,
        "business_metrics": metrics,
    }
    logger.info(
        "Sample data created: %d factors, %d records, %d business metrics",
        counts["factors"], counts["records"], counts["business_metrics"],
    )
    return counts


__all__ = [
    "SAMPLE_FACTORS",
    "SAMPLE_ACTIVITIES",
    "SAMPLE_BUSINESS_METRICS",
    "seed_sample_data",
]
