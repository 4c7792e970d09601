"""Tests for temporal emission factor resolution."""

from datetime import date, datetime

import pytest

from ghgledger.exceptions import MissingFactorError, ValidationError


class TestFactorResolver:
    """Tests for FactorResolver."""

    def test_resolves_covering_factor(self, resolver, diesel_factor_id):
        """A factor covering the date is returned."""
        factor = resolver.resolve("Diesel", "2024-01-15")

        assert factor.id == diesel_factor_id
        assert factor.co2e_factor == 2.539
        assert factor.scope == 1

    def test_interval_bounds_inclusive(self, resolver, diesel_factor_id):
        """valid_from and valid_to are both inclusive."""
        assert resolver.resolve("Diesel", date(2024, 1, 1)).id == diesel_factor_id
        assert resolver.resolve("Diesel", date(2024, 12, 31)).id == diesel_factor_id

    def test_accepts_datetime(self, resolver, diesel_factor_id):
        """Datetimes resolve on their calendar date."""
        assert resolver.resolve("Diesel", datetime(2024, 12, 31, 23, 59)).id == diesel_factor_id

    def test_outside_interval_raises(self, resolver, diesel_factor_id):
        """Dates before or after the interval do not resolve."""
        with pytest.raises(MissingFactorError) as exc_info:
            resolver.resolve("Diesel", "2023-06-01")

        assert exc_info.value.activity_name == "Diesel"
        assert 'No emission factor found for "Diesel".' in str(exc_info.value)
        assert resolver.find("Diesel", "2025-01-01") is None

    def test_name_match_is_exact(self, resolver, diesel_factor_id):
        """Names are case-sensitive; no fuzzy matching."""
        assert resolver.find("diesel", "2024-01-15") is None
        assert resolver.find("Diesel ", "2024-01-15") is None

    def test_latest_valid_from_wins(self, resolver, factor_store, diesel):
        """Overlapping windows resolve to the latest start."""
        factor_store.insert(dict(diesel, co2e_factor=2.5, valid_from="2023-01-01", valid_to=None))
        newer = factor_store.insert(dict(diesel, co2e_factor=2.6, valid_from="2024-06-01", valid_to=None))

        assert resolver.resolve("Diesel", "2024-07-01").id == newer
        assert resolver.resolve("Diesel", "2024-03-01").co2e_factor == 2.5

    def test_equal_valid_from_prefers_newest_row(self, resolver, factor_store, diesel):
        """Ties on valid_from go to the most recently inserted row."""
        factor_store.insert(diesel)
        later = factor_store.insert(dict(diesel, source="Revised"))

        assert resolver.resolve("Diesel", "2024-05-05").id == later

    def test_open_ended_factor(self, resolver, factor_store, diesel):
        """A null valid_to covers every later date."""
        factor_store.insert(dict(diesel, valid_to=None))
        assert resolver.resolve("Diesel", "2099-01-01").co2e_factor == 2.539

    def test_resolved_factor_covers_date(self, resolver, factor_store, diesel, diesel_factor_id):
        """Every resolved version's interval contains the activity date."""
        factor_store.insert(dict(diesel, co2e_factor=2.6, valid_from="2024-06-01", valid_to=None))

        for day in (date(2024, 1, 1), date(2024, 6, 1), date(2024, 12, 31), date(2030, 1, 1)):
            assert resolver.resolve("Diesel", day).covers(day)
        assert not resolver.resolve("Diesel", date(2024, 3, 1)).covers(date(2023, 12, 31))

    def test_accepts_iso_datetime_string(self, resolver, diesel_factor_id):
        """ISO timestamps resolve on their calendar date."""
        assert resolver.resolve("Diesel", "2024-01-15T10:30:00").id == diesel_factor_id

    def test_candidates_best_first(self, resolver, factor_store, diesel):
        """candidates() lists every applicable version, winner first."""
        factor_store.insert(dict(diesel, valid_from="2023-01-01", valid_to=None))
        factor_store.insert(diesel)

        candidates = resolver.candidates("Diesel", "2024-02-01")
        assert [c.valid_from.year for c in candidates] == [2024, 2023]
        assert all(c.covers(date(2024, 2, 1)) for c in candidates)

    def test_invalid_date_rejected(self, resolver):
        """Malformed dates raise ValidationError."""
        with pytest.raises(ValidationError):
            resolver.find("Diesel", "15/01/2024")
