"""
Lead Valuator

Values a single lead for a single assigned organization.
"""

from decimal import Decimal

from ..models import Lead, LeadValuation, Organization
from .pricing import PriceResolver


class LeadValuator:
    """Computes what one organization owes for one lead."""

    def __init__(self, price_resolver: PriceResolver | None = None):
        self.price_resolver = price_resolver or PriceResolver()

    def value_lead(self, lead: Lead, organization: Organization) -> LeadValuation:
        """
        Value a lead for an organization.

        - gross_amount is the price in effect on the lead's date_sent
        - is_credited is set when the organization has an approved credit on the lead
        - is_excluded is set when the platform sells this lead type itself for
          the organization (sales consultant); such leads contribute nothing
        """
        if organization.sells_lead_type_itself(lead.interest_type):
            return LeadValuation(gross_amount=Decimal("0"), is_credited=False, is_excluded=True)

        gross = self.price_resolver.resolve_for(organization, lead.interest_type, lead.date_sent)
        return LeadValuation(
            gross_amount=gross,
            is_credited=lead.has_approved_credit(organization.id),
        )
