"""
Input Validation for the Partner Billing Engine

InputValidator rejects structurally invalid payloads before processing begins
and raises ValueError with clear messages.

ConfigurationValidator only reports incomplete configuration; the engine
handles those cases with domain defaults, so they never fail a request.
"""

from .models import (
    BILLING_ABOVE_COST,
    BILLING_MODELS,
    CREDIT_STATUSES,
    INTEREST_TYPES,
    ORG_ACTIVE,
    ORG_ARCHIVED,
    BillingPeriod,
    CommissionInput,
    Lead,
    Organization,
)


class InputValidator:
    """Validates request payloads according to the domain's enumerations."""

    def validate_invoicing(self, leads: list[Lead], organizations: list[Organization], period: BillingPeriod) -> None:
        """Run all invoicing validations. Raises ValueError if any check fails."""
        self._validate_period(period)
        for organization in organizations:
            self._validate_organization(organization)
        for lead in leads:
            self._validate_lead(lead)

    def validate_commission(self, data: CommissionInput) -> None:
        self._validate_organization(data.organization)
        if data.custom_product is not None and data.product is None and not data.custom_product.name:
            raise ValueError("custom_product requires a name")

    def _validate_period(self, period: BillingPeriod) -> None:
        if period.start is None or period.end is None:
            raise ValueError("period requires both start and end")
        if period.end < period.start:
            raise ValueError(f"period end {period.end} is before start {period.start}")

    def _validate_organization(self, organization: Organization) -> None:
        if organization.billing_model not in BILLING_MODELS:
            raise ValueError(
                f"Invalid billing_model: {organization.billing_model}. Must be 'fixed' or 'above_cost'"
            )
        if organization.status not in (ORG_ACTIVE, ORG_ARCHIVED):
            raise ValueError(f"Invalid organization status: {organization.status}")
        lead_type = organization.sales_consultant_lead_type
        if lead_type is not None and lead_type not in INTEREST_TYPES:
            raise ValueError(f"Invalid sales_consultant_lead_type: {lead_type}")

    def _validate_lead(self, lead: Lead) -> None:
        if lead.interest_type not in INTEREST_TYPES:
            raise ValueError(
                f"Lead {lead.id}: invalid interest type {lead.interest_type!r}. "
                f"Must be one of {', '.join(INTEREST_TYPES)}"
            )
        if lead.date_sent is None:
            raise ValueError(f"Lead {lead.id}: date_sent is required")
        for credit in lead.credit_requests:
            if credit.status not in CREDIT_STATUSES:
                raise ValueError(f"Lead {lead.id}: invalid credit status {credit.status!r}")


class ConfigurationValidator:
    """Reports organization configuration that will fall back to defaults."""

    ABOVE_COST_FIELDS = ("base_cost_for_billing", "eur_to_sek_rate", "lf_finans_percent")

    def inspect(self, organization: Organization) -> list[str]:
        warnings = []

        if organization.is_sales_consultant and organization.sales_consultant_lead_type is None:
            warnings.append(
                f"{organization.name or organization.id}: sales consultant without a lead type; "
                "no leads are excluded"
            )

        if organization.billing_model == BILLING_ABOVE_COST:
            missing = [f for f in self.ABOVE_COST_FIELDS if getattr(organization, f) is None]
            if missing:
                warnings.append(
                    f"{organization.name or organization.id}: above-cost billing uses defaults for "
                    f"{', '.join(missing)}"
                )

        if organization.price_per_solar_deal is None and organization.price_per_battery_deal is None \
                and not organization.price_history:
            warnings.append(f"{organization.name or organization.id}: no lead prices configured")

        warnings.extend(self._overlapping_history(organization))
        return warnings

    @staticmethod
    def _overlapping_history(organization: Organization) -> list[str]:
        records = sorted(organization.price_history, key=lambda r: r.effective_from)
        warnings = []
        for previous, current in zip(records, records[1:]):
            if previous.effective_until is None or previous.effective_until > current.effective_from:
                warnings.append(
                    f"{organization.name or organization.id}: price history records starting "
                    f"{previous.effective_from.isoformat()} and {current.effective_from.isoformat()} overlap"
                )
        return warnings
