# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from pathlib import Path

import pytest

from ghgledger.config import LedgerConfig, reset_config, set_config
from ghgledger.database import LedgerDatabase
from ghgledger.engine import CalculationEngine
from ghgledger.factors import FactorStore
from ghgledger.resolver import FactorResolver
from ghgledger.setup import EmissionsService, reset_emissions_service


_DIESEL_2024 = {
    "activity_name": "Diesel",
    "unit": "KL",
    "co2e_factor": 2.539,
    "scope": 1,
    "source": "DEFRA 2024",
    "valid_from": "2024-01-01",
    "valid_to": "2024-12-31",
}

_GRID_2024 = {
    "activity_name": "Grid Electricity",
    "unit": "kWh",
    "co2e_factor": 0.8,
    "scope": 2,
    "source": "CEA 2024",
    "valid_from": "2024-01-01",
    "valid_to": "2024-12-31",
}


@pytest.fixture
def temp_dir():
    """Create a temporary directory removed after the test."""
    path = tempfile.mkdtemp()
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def config(temp_dir):
    """Test configuration on a temporary database file, seeding disabled."""
    cfg = LedgerConfig(
        database_path=str(temp_dir / "data" / "test_emissions.db"),
        sqlite_timeout=5.0,
        seed_sample_data=False,
    )
    set_config(cfg)
    yield cfg
    reset_emissions_service()
    reset_config()


@pytest.fixture
def db(config):
    """Fresh ledger database for one test."""
    database = LedgerDatabase(config=config)
    yield database
    database.close()


@pytest.fixture
def factor_store(db):
    return FactorStore(db)


@pytest.fixture
def resolver(db):
    return FactorResolver(db)


@pytest.fixture
def engine(db, config):
    return CalculationEngine(db, config=config)


@pytest.fixture
def diesel():
    """2024 Diesel factor payload (2.539 per KL, scope 1)."""
    return dict(_DIESEL_2024)


@pytest.fixture
def grid():
    """2024 Grid Electricity factor payload (0.8 per kWh, scope 2)."""
    return dict(_GRID_2024)


@pytest.fixture
def diesel_factor_id(factor_store):
    """Insert the 2024 Diesel factor and return its id."""
    return factor_store.insert(_DIESEL_2024)


@pytest.fixture
def grid_factor_id(factor_store):
    """Insert the 2024 Grid Electricity factor and return its id."""
    return factor_store.insert(_GRID_2024)


@pytest.fixture
def service(config):
    """Started EmissionsService on the test database, without sample data."""
    svc = EmissionsService(config=config)
    svc.startup()
    yield svc
    svc.shutdown()


@pytest.fixture
def seeded_service(config):
    """Started EmissionsService with the sample dataset."""
    config.seed_sample_data = True
    svc = EmissionsService(config=config)
    svc.startup()
    yield svc
    svc.shutdown()
