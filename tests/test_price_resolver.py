"""
Unit Tests for Price Resolver

Tests verify historical price lookup and fallback to live prices.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from billing.calculators.pricing import PriceResolver
from billing.models import Organization, PriceHistoryRecord


class TestHistoricalPriceLookup:
    """Test lookup of the price record in effect at a date."""

    @pytest.fixture
    def resolver(self):
        org = _make_org(
            history=[
                _record("2025-01-01", "2025-03-01", solar=400, battery=200),
                _record("2025-03-01", None, solar=600, battery=350),
            ]
        )
        return PriceResolver({org.id: org})

    def test_date_inside_closed_interval(self, resolver):
        """A lead in February uses the January-February price."""
        assert resolver.resolve_price("org-1", "solar", date(2025, 2, 15)) == Decimal("400")

    def test_dates_in_same_interval_resolve_equal(self, resolver):
        """Any two dates within one interval give the same price."""
        first = resolver.resolve_price("org-1", "battery", date(2025, 1, 1))
        last = resolver.resolve_price("org-1", "battery", date(2025, 2, 28))
        assert first == last == Decimal("200")

    def test_boundary_date_uses_record_starting_that_day(self, resolver):
        """effective_until is exclusive, effective_from inclusive."""
        assert resolver.resolve_price("org-1", "solar", date(2025, 3, 1)) == Decimal("600")

    def test_open_ended_record_applies_to_future_dates(self, resolver):
        assert resolver.resolve_price("org-1", "battery", date(2026, 7, 1)) == Decimal("350")

    def test_before_history_falls_back_to_live_prices(self, resolver):
        """No record matches → organization's current price fields."""
        assert resolver.resolve_price("org-1", "solar", date(2024, 12, 31)) == Decimal("500")

    def test_gap_in_history_falls_back_to_live_prices(self):
        org = _make_org(
            history=[
                _record("2025-01-01", "2025-02-01", solar=400, battery=200),
                _record("2025-03-01", None, solar=600, battery=350),
            ]
        )
        resolver = PriceResolver({org.id: org})

        assert resolver.resolve_price("org-1", "solar", date(2025, 2, 15)) == Decimal("500")

    def test_overlapping_records_use_latest_start(self):
        org = _make_org(
            history=[
                _record("2025-01-01", None, solar=400, battery=200),
                _record("2025-02-01", None, solar=450, battery=250),
            ]
        )
        resolver = PriceResolver({org.id: org})

        assert resolver.resolve_price("org-1", "solar", date(2025, 2, 10)) == Decimal("450")

    def test_timezone_aware_boundaries(self):
        """Stored timestamps carry offsets; a lead sent that day still matches."""
        record = PriceHistoryRecord.from_dict({
            "effective_from": "2025-03-01T00:00:00+00:00",
            "effective_until": None,
            "price_per_solar_deal": 700,
            "price_per_battery_deal": 300,
        })
        org = _make_org(history=[record])
        resolver = PriceResolver({org.id: org})

        assert resolver.resolve_price("org-1", "solar", date(2025, 3, 1)) == Decimal("700")
        assert resolver.resolve_price("org-1", "solar", date(2025, 2, 28)) == Decimal("500")


class TestCombinedInterest:
    """Test solar_battery pricing."""

    @pytest.fixture
    def resolver(self):
        org = _make_org(history=[_record("2025-01-01", "2025-03-01", solar=400, battery=200)])
        return PriceResolver({org.id: org})

    @pytest.mark.parametrize("day", [date(2024, 6, 1), date(2025, 1, 15), date(2025, 5, 1)])
    def test_combined_is_sum_of_parts(self, resolver, day):
        """solar_battery = solar + battery, at any date."""
        combined = resolver.resolve_price("org-1", "solar_battery", day)
        solar = resolver.resolve_price("org-1", "solar", day)
        battery = resolver.resolve_price("org-1", "battery", day)
        assert combined == solar + battery

    def test_combined_at_live_prices(self):
        """500 solar + 300 battery = 800 for a combined lead."""
        org = _make_org()
        resolver = PriceResolver({org.id: org})
        assert resolver.resolve_price("org-1", "solar_battery", date(2025, 1, 1)) == Decimal("800")


class TestUnresolvedPrices:
    """Test that unresolved prices are zero rather than errors."""

    def test_unknown_organization_is_zero(self):
        resolver = PriceResolver({})
        assert resolver.resolve_price("missing", "solar", date(2025, 1, 1)) == Decimal("0")

    def test_missing_price_fields_are_zero(self):
        org = Organization(id="org-1", name="No Prices")
        resolver = PriceResolver({org.id: org})
        assert resolver.resolve_price("org-1", "solar_battery", date(2025, 1, 1)) == Decimal("0")

    def test_record_with_null_battery_price(self):
        org = _make_org(history=[_record("2025-01-01", None, solar=400, battery=None)])
        resolver = PriceResolver({org.id: org})
        assert resolver.resolve_price("org-1", "solar_battery", date(2025, 2, 1)) == Decimal("400")

    def test_unknown_interest_type_is_zero(self):
        org = _make_org()
        resolver = PriceResolver({org.id: org})
        assert resolver.resolve_price("org-1", "site_visit", date(2025, 1, 1)) == Decimal("0")

    def test_accepts_datetime_as_of(self):
        org = _make_org(history=[_record("2025-01-01", None, solar=400, battery=200)])
        resolver = PriceResolver({org.id: org})
        assert resolver.resolve_price("org-1", "solar", datetime(2025, 1, 1, 12, 30)) == Decimal("400")


def _record(start: str, end: str | None, solar, battery) -> PriceHistoryRecord:
    return PriceHistoryRecord(
        effective_from=datetime.fromisoformat(start),
        effective_until=datetime.fromisoformat(end) if end else None,
        price_per_solar_deal=Decimal(str(solar)) if solar is not None else None,
        price_per_battery_deal=Decimal(str(battery)) if battery is not None else None,
    )


def _make_org(history=None) -> Organization:
    """Helper to create an organization with live prices 500/300."""
    return Organization(
        id="org-1",
        name="SunBro",
        price_per_solar_deal=Decimal("500"),
        price_per_battery_deal=Decimal("300"),
        price_history=history or [],
    )
