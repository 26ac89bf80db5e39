"""
Domain Defaults for the Partner Billing Engine

Named constants for every magic number of the billing domain.
Overridable values can be read from the environment; the VAT rate cannot.
"""

import os
from dataclasses import dataclass, fields, replace
from decimal import Decimal

# 25% Swedish VAT, fixed for the domain
VAT_RATE = Decimal("0.25")


@dataclass(frozen=True)
class DomainDefaults:
    """Fallback values used when organization or product configuration is incomplete."""

    # Above-cost billing
    markup_share_percent: Decimal = Decimal("70")
    base_cost_for_billing: Decimal = Decimal("23000")
    eur_to_sek_rate: Decimal = Decimal("11")
    lf_finans_percent: Decimal = Decimal("3")
    customer_price_incl_tax: Decimal = Decimal("78000")

    # Green-tech deduction
    green_tech_deduction_percent: Decimal = Decimal("48.5")
    deduction_cap_per_owner: Decimal = Decimal("50000")

    # Quota coloring
    quota_green_threshold: int = 4
    quota_yellow_threshold: int = 2

    # Sales compensation
    closer_base_commission: Decimal = Decimal("8000")
    closer_invoice_threshold: Decimal = Decimal("22000")
    closer_shortfall_share: Decimal = Decimal("0.5")
    opener_commission_per_deal: Decimal = Decimal("1000")
    opener_min_partner_count: int = 2

    @property
    def vat_rate(self) -> Decimal:
        return VAT_RATE

    @property
    def vat_divisor(self) -> Decimal:
        """Divide a tax-inclusive price by this to get the ex-tax price (1.25)."""
        return Decimal("1") + VAT_RATE

    @classmethod
    def from_env(cls, environ=None) -> "DomainDefaults":
        """Build defaults, overriding from BILLING_* environment variables."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for name, variable in ENV_OVERRIDES.items():
            raw = environ.get(variable)
            if raw is None or raw.strip() == "":
                continue
            try:
                value = Decimal(raw.strip())
            except ArithmeticError:
                raise ValueError(f"{variable} must be numeric, got: {raw!r}")
            if not value.is_finite():
                raise ValueError(f"{variable} must be a finite number, got: {raw!r}")
            overrides[name] = value
        return replace(cls(), **overrides)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


ENV_OVERRIDES = {
    "markup_share_percent": "BILLING_DEFAULT_MARKUP_SHARE_PERCENT",
    "base_cost_for_billing": "BILLING_DEFAULT_BASE_COST",
    "eur_to_sek_rate": "BILLING_DEFAULT_EUR_TO_SEK_RATE",
    "lf_finans_percent": "BILLING_DEFAULT_LF_FINANS_PERCENT",
    "customer_price_incl_tax": "BILLING_DEFAULT_CUSTOMER_PRICE",
    "green_tech_deduction_percent": "BILLING_GREEN_TECH_PERCENT",
    "deduction_cap_per_owner": "BILLING_DEDUCTION_CAP_PER_OWNER",
}

DEFAULTS = DomainDefaults()
