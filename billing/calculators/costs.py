"""
Cost Stack Calculator

Sums every cost subtracted from the ex-tax price before markup is split.
All amounts are in SEK; EUR amounts are converted with the organization's rate.
"""

from decimal import Decimal
from typing import Iterable

from ..config import DEFAULTS, DomainDefaults
from ..models import CostSegment, CostStack, Organization


class CostStackCalculator:
    """Builds the cost stack for an above-cost deal."""

    def __init__(self, defaults: DomainDefaults = DEFAULTS):
        self.defaults = defaults

    def calculate(
        self,
        organization: Organization,
        total_price_incl_tax: Decimal,
        material_cost_eur: Decimal = Decimal("0"),
        cost_segments: Iterable[CostSegment] = (),
    ) -> CostStack:
        """
        total_costs = base cost
                    + material cost (EUR * rate)
                    + financing fee (percent of the tax-inclusive price)
                    + custom cost segments
        """
        base_cost = self._or_default(organization.base_cost_for_billing, self.defaults.base_cost_for_billing)
        rate = self._or_default(organization.eur_to_sek_rate, self.defaults.eur_to_sek_rate)
        lf_percent = self._or_default(organization.lf_finans_percent, self.defaults.lf_finans_percent)

        material_cost_sek = material_cost_eur * rate
        financing_fee = total_price_incl_tax * lf_percent / Decimal("100")
        custom_costs_sek = self.custom_costs_sek(cost_segments, rate)

        return CostStack(
            base_cost=base_cost,
            material_cost_eur=material_cost_eur,
            eur_to_sek_rate=rate,
            material_cost_sek=material_cost_sek,
            lf_finans_percent=lf_percent,
            financing_fee=financing_fee,
            custom_costs_sek=custom_costs_sek,
            total_costs=base_cost + material_cost_sek + financing_fee + custom_costs_sek,
        )

    @staticmethod
    def custom_costs_sek(cost_segments: Iterable[CostSegment], eur_to_sek_rate: Decimal) -> Decimal:
        total = Decimal("0")
        for segment in cost_segments:
            total += segment.amount * (eur_to_sek_rate if segment.is_eur else Decimal("1"))
        return total

    @staticmethod
    def _or_default(value: Decimal | None, default: Decimal) -> Decimal:
        return default if value is None else value
