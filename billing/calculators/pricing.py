"""
Price Resolver

Finds the lead price an organization had agreed to at a given date.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Mapping

from ..models import (
    INTEREST_BATTERY,
    INTEREST_SOLAR,
    INTEREST_SOLAR_BATTERY,
    Organization,
    PriceHistoryRecord,
    parse_timestamp,
)


class PriceResolver:
    """Resolves historical per-lead prices for organizations."""

    def __init__(self, organizations: Mapping[str, Organization] | None = None):
        self.organizations = dict(organizations or {})

    def resolve_price(self, organization_id: str, interest_type: str, as_of: date | datetime) -> Decimal:
        """
        Price of one lead of `interest_type` for an organization at `as_of`.

        Unknown organizations resolve to 0.
        """
        organization = self.organizations.get(organization_id)
        if organization is None:
            return Decimal("0")
        return self.resolve_for(organization, interest_type, as_of)

    def resolve_for(self, organization: Organization, interest_type: str, as_of: date | datetime) -> Decimal:
        """
        Price lookup against an organization's own history.

        The record whose [effective_from, effective_until) interval contains
        `as_of` wins; with no such record the organization's live prices apply.
        A solar_battery lead costs the solar price plus the battery price.
        """
        record = self.find_record(organization.price_history, as_of)
        if record is not None:
            solar, battery = record.price_per_solar_deal, record.price_per_battery_deal
        else:
            solar, battery = organization.price_per_solar_deal, organization.price_per_battery_deal

        return self._price_for_interest(interest_type, solar or Decimal("0"), battery or Decimal("0"))

    @staticmethod
    def find_record(history: list[PriceHistoryRecord], as_of: date | datetime) -> PriceHistoryRecord | None:
        """
        Find the history record in effect at `as_of`.

        Intervals should not overlap. If they do, the most recently started
        record is used.
        """
        moment = parse_timestamp(as_of)
        matches = [r for r in history if r.contains(moment)]
        if not matches:
            return None
        return max(matches, key=lambda r: r.effective_from)

    @staticmethod
    def _price_for_interest(interest_type: str, solar: Decimal, battery: Decimal) -> Decimal:
        if interest_type == INTEREST_SOLAR:
            return solar
        if interest_type == INTEREST_BATTERY:
            return battery
        if interest_type == INTEREST_SOLAR_BATTERY:
            return solar + battery
        return Decimal("0")
