"""
Green-Tech Deduction Calculator

Computes the Swedish green-tech tax deduction the end customer receives.
The deduction lowers what the customer pays; it never lowers what the
partner is billed.
"""

from decimal import Decimal

from ..config import DEFAULTS, DomainDefaults
from ..models import GreenTechDeduction

BOUND_OWNERS = "owners"
BOUND_PERCENT = "percent"


class GreenTechDeductionCalculator:
    """Applies the per-owner and percentage caps of the green-tech deduction."""

    def __init__(self, defaults: DomainDefaults = DEFAULTS):
        self.defaults = defaults

    def calculate(
        self,
        total_price_incl_tax: Decimal,
        num_property_owners: int = 1,
        deduction_percent: Decimal | None = None,
    ) -> GreenTechDeduction:
        """
        deduction = min(owners * cap_per_owner, price * percent / 100)

        When both caps are equal the percentage bound is reported as binding.
        """
        if deduction_percent is None:
            deduction_percent = self.defaults.green_tech_deduction_percent

        max_by_owners = Decimal(num_property_owners) * self.defaults.deduction_cap_per_owner
        max_by_percent = total_price_incl_tax * deduction_percent / Decimal("100")

        if max_by_percent <= max_by_owners:
            deduction, bound = max_by_percent, BOUND_PERCENT
        else:
            deduction, bound = max_by_owners, BOUND_OWNERS

        return GreenTechDeduction(
            deduction_percent=deduction_percent,
            num_property_owners=num_property_owners,
            max_by_owners=max_by_owners,
            max_by_percent=max_by_percent,
            deduction=deduction,
            binding_bound=bound,
            price_after_deduction=total_price_incl_tax - deduction,
        )

    def gross_up(self, price_after_deduction: Decimal, deduction_percent: Decimal | None = None) -> Decimal:
        """
        Recover the total order value from what the customer pays after a full
        percentage deduction: price / (1 - percent / 100).

        A deduction of 100% or more cannot be reversed; the price is returned as is.
        """
        if deduction_percent is None:
            deduction_percent = self.defaults.green_tech_deduction_percent
        multiplier = Decimal("1") - deduction_percent / Decimal("100")
        if multiplier <= 0:
            return price_after_deduction
        return price_after_deduction / multiplier
