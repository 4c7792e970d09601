"""
Test Suite for the Factor Store and Ledger Database

This test suite validates:
- Schema creation and constraints
- Transactions and rollback
- Single factor insert and identical-row idempotency
- Bulk insert with partial failure
- YAML/JSON factor file import
"""

import json
from datetime import date
from pathlib import Path

import pytest

from ghgledger.database import LedgerDatabase, TABLES
from ghgledger.exceptions import StorageError, ValidationError
from ghgledger.models import FactorInput

_METRIC_INSERT = (
    "INSERT INTO business_metrics (date, metric_name, value, unit, created_at) "
    "VALUES ('2024-01-31', 'Employee Count', 920, 'employees', '2024-01-31T00:00:00')"
)


# ==============================================================================
# Database Tests
# ==============================================================================

class TestLedgerDatabase:
    """Tests for LedgerDatabase."""

    def test_creates_tables(self, db):
        """All ledger tables exist and start empty."""
        for table in TABLES:
            assert db.count(table) == 0
        assert db.is_empty() is True

    def test_creates_parent_directory(self, config):
        """Database file lands in a freshly created directory."""
        database = LedgerDatabase(config=config)
        try:
            assert Path(config.database_path).exists()
        finally:
            database.close()

    def test_in_memory(self, config):
        """In-memory store works without touching the filesystem."""
        database = LedgerDatabase(config=config, database_path=":memory:")
        try:
            assert database.is_empty()
            assert not Path(config.database_path).exists()
        finally:
            database.close()

    def test_unknown_table_rejected(self, db):
        """count() only accepts ledger tables."""
        with pytest.raises(ValueError):
            db.count("sqlite_master")

    def test_check_constraint_wrapped(self, db):
        """sqlite errors surface as StorageError with the cause chained."""
        with pytest.raises(StorageError) as exc_info:
            db.execute(
                "INSERT INTO emission_factors (activity_name, unit, co2e_factor, scope, "
                "source, valid_from, created_at) VALUES ('X', 'u', -1, 1, 's', '2024-01-01', '')"
            )
        assert exc_info.value.__cause__ is not None

    def test_transaction_rolls_back(self, db):
        """An exception inside transaction() discards every statement."""
        with pytest.raises(RuntimeError):
            with db.transaction():
                db.execute(_METRIC_INSERT)
                raise RuntimeError("abort")

        assert db.count("business_metrics") == 0
        assert db.in_transaction is False

    def test_nested_transaction_joins_outer(self, db):
        """Inner transaction() blocks commit with the outer block."""
        with db.transaction():
            with db.transaction():
                db.execute(_METRIC_INSERT)
            assert db.in_transaction is True

        assert db.count("business_metrics") == 1
        assert db.get_metrics()["transaction_count"] == 1

    def test_savepoint_undoes_only_its_block(self, db):
        """A failed savepoint leaves earlier work in the transaction intact."""
        with db.transaction():
            db.execute(_METRIC_INSERT)
            with pytest.raises(RuntimeError):
                with db.savepoint():
                    db.execute(_METRIC_INSERT)
                    raise RuntimeError("abort element")
            with db.savepoint():
                db.execute(_METRIC_INSERT)

        assert db.count("business_metrics") == 2
        assert db.in_transaction is False

    def test_backup_copies_every_table(self, db, config, temp_dir):
        """backup() writes a standalone copy that opens as a ledger."""
        db.execute(_METRIC_INSERT)

        target = db.backup(Path(temp_dir) / "export" / "ledger_copy.db")
        copy = LedgerDatabase(config, database_path=str(target))
        try:
            assert target.exists()
            assert copy.count("business_metrics") == 1
        finally:
            copy.close()

    def test_backup_from_memory(self, config, temp_dir):
        """In-memory ledgers can be exported too."""
        memory = LedgerDatabase(config, database_path=":memory:")
        memory.execute(_METRIC_INSERT)

        target = memory.backup(Path(temp_dir) / "memory_copy.db")
        memory.close()

        copy = LedgerDatabase(config, database_path=str(target))
        assert copy.count("business_metrics") == 1
        copy.close()

    def test_backup_target_unwritable(self, db, temp_dir):
        """An unusable target path raises StorageError."""
        blocker = Path(temp_dir) / "not_a_dir"
        blocker.write_text("x")

        with pytest.raises(StorageError) as exc_info:
            db.backup(blocker / "copy.db")
        assert exc_info.value.context["operation"] == "backup"

    def test_is_empty_ignores_other_tables(self, db):
        """Only emission records count for is_empty()."""
        db.execute(_METRIC_INSERT)
        assert db.is_empty() is True


# ==============================================================================
# Factor Store Tests
# ==============================================================================

class TestFactorInsert:
    """Tests for FactorStore.insert."""

    def test_insert_returns_id(self, factor_store, diesel):
        """A new factor gets an id and is retrievable."""
        factor_id = factor_store.insert(diesel)

        stored = factor_store.get(factor_id)
        assert stored.activity_name == "Diesel"
        assert stored.co2e_factor == 2.539
        assert stored.valid_from == date(2024, 1, 1)
        assert stored.valid_to == date(2024, 12, 31)
        assert stored.created_at is not None

    def test_accepts_model_input(self, factor_store, grid):
        """FactorInput instances are accepted directly."""
        factor_id = factor_store.insert(FactorInput(**grid))
        assert factor_store.get(factor_id).scope == 2

    def test_get_unknown_id(self, factor_store):
        """Unknown ids return None."""
        assert factor_store.get(999) is None

    def test_identical_insert_is_ignored(self, factor_store, diesel):
        """Inserting the same factor twice leaves one row."""
        first = factor_store.insert(diesel)
        second = factor_store.insert(diesel)

        assert first is not None
        assert second is None
        assert factor_store.count() == 1

    def test_identical_open_ended_insert_is_ignored(self, factor_store, diesel):
        """Open-ended intervals compare equal for idempotency."""
        diesel["valid_to"] = None

        assert factor_store.insert(diesel) is not None
        assert factor_store.insert(diesel) is None
        assert factor_store.count() == 1

    def test_different_source_is_new_version(self, factor_store, diesel):
        """Any differing column makes a distinct row."""
        factor_store.insert(diesel)
        factor_store.insert(dict(diesel, source="EPA 2024"))
        assert factor_store.count() == 2

    @pytest.mark.parametrize("field,value", [
        ("co2e_factor", 0),
        ("co2e_factor", -1.5),
        ("scope", 4),
        ("activity_name", ""),
        ("valid_from", "not-a-date"),
    ])
    def test_invalid_factor_rejected(self, factor_store, diesel, field, value):
        """Malformed factors raise ValidationError and write nothing."""
        diesel[field] = value

        with pytest.raises(ValidationError) as exc_info:
            factor_store.insert(diesel)

        assert field in exc_info.value.invalid_fields
        assert factor_store.count() == 0

    def test_missing_valid_from_rejected(self, factor_store, diesel):
        """valid_from is required."""
        del diesel["valid_from"]

        with pytest.raises(ValidationError) as exc_info:
            factor_store.insert(diesel)
        assert "valid_from" in exc_info.value.invalid_fields

    def test_inverted_interval_rejected(self, factor_store, diesel):
        """valid_to earlier than valid_from is rejected."""
        diesel.update(valid_from="2024-12-31", valid_to="2024-01-01")

        with pytest.raises(ValidationError):
            factor_store.insert(diesel)

    def test_list_order(self, factor_store, diesel, grid):
        """Factors are listed by name, newest validity first."""
        factor_store.insert(dict(diesel, valid_from="2023-01-01", valid_to="2023-12-31"))
        factor_store.insert(diesel)
        factor_store.insert(grid)

        listed = [(f.activity_name, f.valid_from.year) for f in factor_store.list()]
        assert listed == [("Diesel", 2024), ("Diesel", 2023), ("Grid Electricity", 2024)]


class TestFactorBulkInsert:
    """Tests for FactorStore.bulk_insert."""

    def test_partial_failure(self, factor_store, diesel, grid):
        """Valid elements are inserted; the malformed one is reported by index."""
        bad = dict(grid)
        del bad["valid_from"]

        result = factor_store.bulk_insert([diesel, bad, dict(grid, source="Other")])

        assert result.inserted == 2
        assert result.skipped == 0
        assert len(result.errors) == 1
        assert result.errors[0].index == 1
        assert "valid_from" in result.errors[0].error
        assert result.success is False
        assert factor_store.count() == 2

    def test_store_rejection_is_per_element(self, factor_store, db, diesel, grid):
        """An element the store refuses does not roll back its neighbours."""
        db.execute(
            "CREATE TRIGGER reject_blocked BEFORE INSERT ON emission_factors "
            "WHEN NEW.activity_name = 'Blocked' "
            "BEGIN SELECT RAISE(ABORT, 'blocked factor'); END"
        )

        result = factor_store.bulk_insert([diesel, dict(diesel, activity_name="Blocked"), grid])

        assert result.inserted == 2
        assert [e.index for e in result.errors] == [1]
        assert "blocked factor" in result.errors[0].error
        assert factor_store.count() == 2
        assert db.in_transaction is False

    def test_identical_elements_skipped(self, factor_store, diesel, grid):
        """Identical rows count as skipped, not inserted or failed."""
        factor_store.insert(diesel)

        result = factor_store.bulk_insert([diesel, grid, grid])

        assert result.inserted == 1
        assert result.skipped == 2
        assert result.errors == []
        assert result.success is True

    def test_non_object_element(self, factor_store, diesel):
        """Non-mapping elements are per-index errors."""
        result = factor_store.bulk_insert(["Diesel", diesel])

        assert result.inserted == 1
        assert result.errors[0].index == 0

    def test_non_list_rejected(self, factor_store, diesel):
        """The batch must be a list."""
        with pytest.raises(ValidationError, match="Expected array of factors"):
            factor_store.bulk_insert(diesel)


class TestFactorFileImport:
    """Tests for FactorStore.load_file."""

    def test_load_yaml_mapping(self, factor_store, temp_dir):
        """YAML documents with a factors key are imported."""
        path = temp_dir / "factors.yaml"
        path.write_text(
            "factors:\n"
            "  - activity_name: Diesel\n"
            "    unit: KL\n"
            "    co2e_factor: 2.539\n"
            "    scope: 1\n"
            "    source: DEFRA 2024\n"
            "    valid_from: 2024-01-01\n"
            "    valid_to: 2024-12-31\n"
            "  - activity_name: Natural Gas\n"
            "    unit: kNm3\n"
            "    co2e_factor: 2.425\n"
            "    scope: 1\n"
            "    source: DEFRA 2024\n"
            "    valid_from: 2024-01-01\n",
            encoding="utf-8",
        )

        result = factor_store.load_file(path)

        assert result.inserted == 2
        assert [f.activity_name for f in factor_store.list()] == ["Diesel", "Natural Gas"]
        assert factor_store.list()[1].valid_to is None

    def test_load_json_list(self, factor_store, temp_dir, diesel, grid):
        """A JSON list is valid YAML and imports the same way."""
        path = temp_dir / "factors.json"
        path.write_text(json.dumps([diesel, grid]), encoding="utf-8")

        assert factor_store.load_file(path).inserted == 2

    def test_missing_file(self, factor_store, temp_dir):
        """Unreadable files raise ValidationError."""
        with pytest.raises(ValidationError):
            factor_store.load_file(temp_dir / "missing.yaml")

    def test_document_without_list(self, factor_store, temp_dir):
        """A scalar document is rejected."""
        path = temp_dir / "factors.yaml"
        path.write_text("just text\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            factor_store.load_file(path)
