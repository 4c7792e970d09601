"""Tests for the GHG Ledger Exception Hierarchy.

Test suite covering:
- Base exception functionality
- MissingFactorError, ValidationError, StorageError
- Exception serialization
- Exception utilities

Author: GHG Ledger Team
Status: Production Ready
"""

import json
import sqlite3
from datetime import datetime

import pytest

from ghgledger.exceptions import (
    LedgerException,
    MissingFactorError,
    StorageError,
    ValidationError,
    format_exception_chain,
    is_retriable,
)


# ==============================================================================
# Base Exception Tests
# ==============================================================================

class TestLedgerException:
    """Tests for base LedgerException."""

    def test_create_basic_exception(self):
        """Can create basic exception with message."""
        exc = LedgerException("Something went wrong")

        assert exc.message == "Something went wrong"
        assert exc.error_code == "GHG_LEDGER_EXCEPTION"
        assert exc.component is None
        assert exc.context == {}
        assert isinstance(exc.timestamp, datetime)

    def test_custom_error_code(self):
        """Explicit error code wins over the generated one."""
        exc = LedgerException("boom", error_code="GHG_CUSTOM")
        assert exc.error_code == "GHG_CUSTOM"

    def test_str_includes_code_and_component(self):
        """String form carries code, component and message."""
        exc = LedgerException("boom", component="FactorStore")
        assert str(exc) == "[GHG_LEDGER_EXCEPTION] - Component: FactorStore - boom"

    def test_to_dict(self):
        """Serializes to dictionary with all fields."""
        exc = LedgerException("boom", component="X", context={"k": 1})
        data = exc.to_dict()

        assert data["error_type"] == "LedgerException"
        assert data["message"] == "boom"
        assert data["component"] == "X"
        assert data["context"] == {"k": 1}
        assert "timestamp" in data

    def test_to_json(self):
        """Serializes to valid JSON."""
        exc = LedgerException("boom", context={"when": datetime(2024, 1, 1)})
        data = json.loads(exc.to_json())
        assert data["message"] == "boom"


# ==============================================================================
# Business Exception Tests
# ==============================================================================

class TestMissingFactorError:
    """Tests for MissingFactorError."""

    def test_message_names_activity(self):
        """Default message names the activity."""
        exc = MissingFactorError(activity_name="Diesel", activity_date="2023-06-01")

        assert exc.message == 'No emission factor found for "Diesel".'
        assert exc.activity_name == "Diesel"
        assert exc.context["activity_date"] == "2023-06-01"
        assert exc.component == "FactorResolver"
        assert exc.error_code == "GHG_MISSING_FACTOR_ERROR"

    def test_is_ledger_exception(self):
        """Catchable as the base class."""
        with pytest.raises(LedgerException):
            raise MissingFactorError(activity_name="Diesel")


class TestValidationError:
    """Tests for ValidationError."""

    def test_invalid_fields_in_context(self):
        """Invalid fields are exposed and mirrored into context."""
        exc = ValidationError(
            "Invalid emission factor",
            component="FactorStore",
            invalid_fields={"valid_from": "Field required"},
        )

        assert exc.invalid_fields == {"valid_from": "Field required"}
        assert exc.context["invalid_fields"] == {"valid_from": "Field required"}

    def test_defaults_to_empty_fields(self):
        """No invalid fields means an empty mapping."""
        assert ValidationError("bad").invalid_fields == {}


class TestStorageError:
    """Tests for StorageError."""

    def test_default_component_and_cause(self):
        """Cause details land in context."""
        cause = sqlite3.OperationalError("database is locked")
        exc = StorageError("Query failed", operation="INSERT", cause=cause)

        assert exc.component == "LedgerDatabase"
        assert exc.context["operation"] == "INSERT"
        assert exc.context["cause_type"] == "OperationalError"


# ==============================================================================
# Utility Tests
# ==============================================================================

class TestExceptionUtilities:
    """Tests for exception utilities."""

    def test_format_exception_chain(self):
        """Chain includes the wrapped sqlite error."""
        try:
            try:
                raise sqlite3.IntegrityError("CHECK constraint failed")
            except sqlite3.IntegrityError as e:
                raise StorageError("Insert failed", cause=e) from e
        except StorageError as exc:
            formatted = format_exception_chain(exc)

        assert "GHG_STORAGE_ERROR" in formatted
        assert "IntegrityError: CHECK constraint failed" in formatted

    def test_only_storage_errors_are_retriable(self):
        """Missing factors and bad input need a data fix, not a retry."""
        assert is_retriable(StorageError("locked")) is True
        assert is_retriable(MissingFactorError(activity_name="Diesel")) is False
        assert is_retriable(ValidationError("bad")) is False
        assert is_retriable(ValueError("other")) is False
