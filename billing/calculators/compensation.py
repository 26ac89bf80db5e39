"""
Sales Compensation Calculator

Computes opener and closer commissions for the salaries view.
"""

from decimal import Decimal
from typing import Iterable, Mapping

from ..config import DEFAULTS, DomainDefaults
from ..models import (
    BillingPeriod,
    CloserCommission,
    CompensationSummary,
    Lead,
    OpenerCommission,
    Sale,
)


class SalesCompensationCalculator:
    """Calculates commissions paid to openers and closers."""

    def __init__(self, defaults: DomainDefaults = DEFAULTS):
        self.defaults = defaults

    def closer_commission(self, sale: Sale, base_commission: Decimal | None = None) -> CloserCommission:
        """
        Closer commission on one closed sale.

        - Full base commission when the invoiceable amount reaches the threshold
        - Below the threshold, reduced by 50% of the shortfall
        - Reduced further by 50% of any discount given
        - Never negative
        """
        base = self.defaults.closer_base_commission if base_commission is None else base_commission
        invoiceable = sale.invoiceable_amount or Decimal("0")
        share = self.defaults.closer_shortfall_share

        shortfall = max(Decimal("0"), self.defaults.closer_invoice_threshold - invoiceable)
        shortfall_reduction = shortfall * share
        discount_reduction = max(Decimal("0"), sale.discount_amount) * share

        commission = max(Decimal("0"), base - shortfall_reduction - discount_reduction)

        return CloserCommission(
            sale_id=sale.id,
            closer_id=sale.closer_id,
            invoiceable_amount=invoiceable,
            base_commission=base,
            shortfall=shortfall,
            shortfall_reduction=shortfall_reduction,
            discount_reduction=discount_reduction,
            commission=commission,
        )

    def qualifies_for_opener_commission(self, lead: Lead) -> bool:
        """A lead pays its opener once it is sold to enough partners without approved credits."""
        valid = [org_id for org_id in dict.fromkeys(lead.organization_ids) if not lead.has_approved_credit(org_id)]
        return len(valid) >= self.defaults.opener_min_partner_count

    def opener_commissions(
        self,
        leads: Iterable[Lead],
        period: BillingPeriod,
        rates: Mapping[str, Decimal] | None = None,
    ) -> list[OpenerCommission]:
        """Group qualifying leads in `period` by opener."""
        rates = rates or {}
        by_opener: dict[str, OpenerCommission] = {}

        for lead in leads:
            if not lead.opener_id or lead.date_sent is None or not period.contains(lead.date_sent):
                continue
            entry = by_opener.get(lead.opener_id)
            if entry is None:
                per_deal = rates.get(lead.opener_id) or self.defaults.opener_commission_per_deal
                entry = OpenerCommission(opener_id=lead.opener_id, commission_per_deal=per_deal)
                by_opener[lead.opener_id] = entry
            if self.qualifies_for_opener_commission(lead):
                entry.qualified_lead_ids.append(lead.id)

        for entry in by_opener.values():
            entry.commission = entry.commission_per_deal * len(entry.qualified_lead_ids)
        return list(by_opener.values())

    def summarize(
        self,
        leads: Iterable[Lead],
        sales: Iterable[Sale],
        period: BillingPeriod,
        employer_cost_percent: Decimal = Decimal("0"),
        opener_rates: Mapping[str, Decimal] | None = None,
        closer_bases: Mapping[str, Decimal] | None = None,
    ) -> CompensationSummary:
        """Salaries for a period: opener commissions, closer commissions on closed-won sales, employer cost."""
        closer_bases = closer_bases or {}
        openers = self.opener_commissions(leads, period, opener_rates)

        closers = []
        for sale in sales:
            if not sale.is_closed_won or sale.closed_at is None:
                continue
            if not period.contains(sale.closed_at.date()):
                continue
            closers.append(self.closer_commission(sale, closer_bases.get(sale.closer_id)))

        summary = CompensationSummary(
            period=period,
            openers=openers,
            closers=closers,
            total_opener_commission=sum((o.commission for o in openers), Decimal("0")),
            total_closer_commission=sum((c.commission for c in closers), Decimal("0")),
            employer_cost_percent=employer_cost_percent,
        )
        summary.employer_cost = summary.total_commission * employer_cost_percent / Decimal("100")
        return summary
