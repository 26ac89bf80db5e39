"""
Billing Aggregator

Folds the leads of a billing period into per-organization invoice totals.
"""

from decimal import Decimal
from typing import Iterable, Mapping

from ..models import (
    INTEREST_BATTERY,
    INTEREST_SOLAR,
    INTEREST_SOLAR_BATTERY,
    BillingPeriod,
    BillingSummary,
    Lead,
    LeadLine,
    Organization,
    OrganizationTotals,
)
from .valuation import LeadValuator

STATUS_BILLABLE = "billable"
STATUS_CREDITED = "credited"
STATUS_EXCLUDED = "excluded"


class BillingAggregator:
    """Builds partner invoice totals and export line items in one pass."""

    def __init__(self, valuator: LeadValuator | None = None):
        self.valuator = valuator or LeadValuator()

    def aggregate(
        self,
        leads: Iterable[Lead],
        organizations: Mapping[str, Organization],
        period: BillingPeriod,
        only_active: bool = False,
    ) -> BillingSummary:
        """
        Aggregate leads sent within `period`.

        For each (lead, organization) assignment:
        - approved credit: adds to credited_count/credited_value only
        - sales-consultant exclusion: adds to excluded_count only
        - otherwise: adds to lead_count/gross_value and the running total

        Assignments to organizations missing from `organizations` (or inactive
        ones when only_active is set) are not billed.
        An organization listed twice on a lead is billed once.
        """
        summary = BillingSummary(period=period)

        for lead in leads:
            if lead.date_sent is None or not period.contains(lead.date_sent):
                continue
            summary.lead_count += 1

            for org_id in dict.fromkeys(lead.organization_ids):
                organization = organizations.get(org_id)
                if organization is None or (only_active and not organization.is_active):
                    continue
                summary.assignment_count += 1
                self._add_assignment(summary, lead, organization)

        return summary

    def _add_assignment(self, summary: BillingSummary, lead: Lead, organization: Organization) -> None:
        valuation = self.valuator.value_lead(lead, organization)
        totals = self._totals_for(summary, organization)

        if valuation.is_excluded:
            status = STATUS_EXCLUDED
            totals.excluded_count += 1
        elif valuation.is_credited:
            status = STATUS_CREDITED
            totals.credited_count += 1
            totals.credited_value += valuation.gross_amount
            summary.total_credited += valuation.gross_amount
        else:
            status = STATUS_BILLABLE
            # A solar_battery lead is one lead at the summed price
            totals.lead_count += 1
            totals.gross_value += valuation.gross_amount
            summary.total_value += valuation.gross_amount
            self._count_interest(totals, lead.interest_type)

        summary.lines.append(
            LeadLine(
                lead_id=lead.id,
                organization_id=organization.id,
                organization_name=organization.name,
                interest_type=lead.interest_type,
                date_sent=lead.date_sent,
                price=valuation.gross_amount,
                status=status,
                credit_status=lead.latest_credit_status,
            )
        )

    @staticmethod
    def _totals_for(summary: BillingSummary, organization: Organization) -> OrganizationTotals:
        totals = summary.per_organization.get(organization.id)
        if totals is None:
            totals = OrganizationTotals(
                organization_id=organization.id,
                organization_name=organization.name,
                price_per_solar_deal=organization.price_per_solar_deal or Decimal("0"),
                price_per_battery_deal=organization.price_per_battery_deal or Decimal("0"),
            )
            summary.per_organization[organization.id] = totals
        return totals

    @staticmethod
    def _count_interest(totals: OrganizationTotals, interest_type: str) -> None:
        if interest_type == INTEREST_SOLAR:
            totals.solar_leads += 1
        elif interest_type == INTEREST_BATTERY:
            totals.battery_leads += 1
        elif interest_type == INTEREST_SOLAR_BATTERY:
            totals.solar_battery_leads += 1
