"""
Commission Engine - Breakdown Pipeline

Computes the full cost/markup breakdown of a deal through discrete, testable steps.
"""

from decimal import Decimal

from .calculators import CostStackCalculator, GreenTechDeductionCalculator, MarkupSplitter
from .config import DEFAULTS, DomainDefaults
from .models import Breakdown, CommissionInput, CostSegment


class CommissionEngine:
    """
    Orchestrates the commission breakdown.

    Implements a clear pipeline pattern:
    1. Resolve product (catalog product, custom override or defaults)
    2. Green-tech deduction (customer-facing only)
    3. Ex-tax conversion
    4. Cost stack
    5. Billable markup (may be negative)
    6. Split by billing model
    """

    def __init__(self, defaults: DomainDefaults = DEFAULTS):
        self.defaults = defaults
        self.deduction_calculator = GreenTechDeductionCalculator(defaults)
        self.cost_calculator = CostStackCalculator(defaults)
        self.splitter = MarkupSplitter(defaults)

    def compute_breakdown(self, data: CommissionInput) -> Breakdown:
        organization = data.organization

        # Step 1: Resolve what is being sold
        total_price = self.resolve_total_price(data)
        material_cost_eur = self.resolve_material_cost_eur(data)
        deduction_percent = self.resolve_deduction_percent(data)

        # Step 2: Green-tech deduction, which only affects the customer price
        deduction = self.deduction_calculator.calculate(
            total_price, data.num_property_owners, deduction_percent
        )

        # Step 3: Ex-tax price, always from the full tax-inclusive price
        price_ex_tax = self.to_ex_tax(total_price)

        # Step 4: Cost stack
        costs = self.cost_calculator.calculate(
            organization,
            total_price,
            material_cost_eur=material_cost_eur,
            cost_segments=self.resolve_cost_segments(data),
        )

        # Step 5: Billable markup, not clamped
        billable = price_ex_tax - costs.total_costs

        # Step 6: Split
        split = self.splitter.split(
            organization,
            billable,
            product_id=self.resolve_product_id(data),
            provisions=data.provisions,
        )

        return Breakdown(
            organization_id=organization.id,
            product_name=self.resolve_product_name(data),
            total_price_incl_tax=total_price,
            deduction=deduction,
            price_ex_tax=price_ex_tax,
            costs=costs,
            billable_amount=billable,
            split=split,
        )

    def to_ex_tax(self, price_incl_tax: Decimal) -> Decimal:
        return price_incl_tax / self.defaults.vat_divisor

    def resolve_total_price(self, data: CommissionInput) -> Decimal:
        """
        Explicit price, then the grossed-up price after deduction, then custom
        product, then catalog product, then organization and domain defaults.
        """
        if data.total_price_incl_tax is not None:
            return data.total_price_incl_tax
        if data.price_after_deduction is not None:
            return self.deduction_calculator.gross_up(
                data.price_after_deduction, self.resolve_deduction_percent(data)
            )
        if data.custom_product is not None and data.custom_product.price_incl_tax is not None:
            return data.custom_product.price_incl_tax
        if data.product is not None:
            return data.product.base_price_incl_tax
        if data.organization.default_customer_price_incl_tax is not None:
            return data.organization.default_customer_price_incl_tax
        return self.defaults.customer_price_incl_tax

    @staticmethod
    def resolve_material_cost_eur(data: CommissionInput) -> Decimal:
        if data.custom_product is not None:
            return data.custom_product.material_cost_eur or Decimal("0")
        if data.product is not None:
            return data.product.material_cost_eur
        return Decimal("0")

    def resolve_deduction_percent(self, data: CommissionInput) -> Decimal:
        for source in (data.custom_product, data.product):
            if source is not None and source.green_tech_deduction_percent is not None:
                return source.green_tech_deduction_percent
        return self.defaults.green_tech_deduction_percent

    @staticmethod
    def resolve_cost_segments(data: CommissionInput) -> list[CostSegment]:
        if data.cost_segments is not None:
            return data.cost_segments
        return data.organization.cost_segments

    @staticmethod
    def resolve_product_id(data: CommissionInput) -> str | None:
        # Custom products have no catalog row, so no provision can match them
        if data.custom_product is not None or data.product is None:
            return None
        return data.product.id

    @staticmethod
    def resolve_product_name(data: CommissionInput) -> str:
        if data.custom_product is not None:
            return data.custom_product.name
        if data.product is not None:
            return data.product.name
        return ""
