"""
Billing Processor - Main Orchestrator

Dict-in/dict-out facade over the calculators, used by the HTTP entry points.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping

from .calculators import (
    BillingAggregator,
    LeadValuator,
    PriceResolver,
    QuotaTracker,
    SalesCompensationCalculator,
)
from .config import DEFAULTS, DomainDefaults
from .engine import CommissionEngine
from .models import (
    BillingPeriod,
    BillingSummary,
    Breakdown,
    CommissionInput,
    Lead,
    Organization,
    Product,
    ProductProvision,
    QuotaThresholds,
    Sale,
    parse_date,
    to_decimal,
)
from .output import OutputBuilder
from .validators import ConfigurationValidator, InputValidator

logger = logging.getLogger(__name__)


class BillingProcessor:
    """
    Main orchestrator for partner billing.

    Invoicing pipeline:
    1. Parse and validate input
    2. Report incomplete configuration
    3. Resolve prices, value leads and aggregate per organization
    4. Build output

    Breakdown pipeline:
    1. Parse and validate input
    2. Run the commission engine
    3. Build output
    """

    def __init__(self, defaults: DomainDefaults = DEFAULTS):
        self.defaults = defaults
        self.validator = InputValidator()
        self.config_validator = ConfigurationValidator()
        self.commission_engine = CommissionEngine(defaults)
        self.quota_tracker = QuotaTracker(
            QuotaThresholds(green=defaults.quota_green_threshold, yellow=defaults.quota_yellow_threshold)
        )
        self.compensation_calculator = SalesCompensationCalculator(defaults)
        self.output_builder = OutputBuilder()

    # -------------------------------------------------------------------------
    # Typed API
    # -------------------------------------------------------------------------

    def process_invoicing(
        self,
        leads: Iterable[Lead],
        organizations: Iterable[Organization],
        period: BillingPeriod,
        only_active: bool = True,
    ) -> BillingSummary:
        """Aggregate the leads of `period` into partner invoices."""
        leads = list(leads)
        by_id = {org.id: org for org in organizations}
        self.validator.validate_invoicing(leads, list(by_id.values()), period)
        self._report_configuration(by_id.values())

        aggregator = self.build_aggregator(by_id)
        return aggregator.aggregate(leads, by_id, period, only_active=only_active)

    def compute_breakdown(self, data: CommissionInput) -> Breakdown:
        self.validator.validate_commission(data)
        self._report_configuration([data.organization])
        return self.commission_engine.compute_breakdown(data)

    @staticmethod
    def build_aggregator(organizations: Mapping[str, Organization]) -> BillingAggregator:
        resolver = PriceResolver(organizations)
        return BillingAggregator(LeadValuator(resolver))

    # -------------------------------------------------------------------------
    # Dict API
    # -------------------------------------------------------------------------

    def process_invoicing_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process monthly invoicing from raw dictionary input.

        Accepts "billing_month" (invoices leads of the previous month),
        "month" (leads of that month) or an explicit "period".
        """
        period = self.period_from_dict(data)
        organizations = [Organization.from_dict(o) for o in data.get("organizations", [])]
        leads = [Lead.from_dict(lead) for lead in data.get("leads", [])]
        only_active = data.get("only_active", True)

        summary = self.process_invoicing(leads, organizations, period, only_active=only_active)
        logger.info(
            "Invoicing %s: %d leads, %d organizations billed",
            period.label, summary.lead_count, len(summary.invoice_rows()),
        )
        return self.output_builder.build_invoicing(summary)

    def process_breakdown_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        breakdown = self.compute_breakdown(CommissionInput.from_dict(data))
        return self.output_builder.build_breakdown(breakdown)

    def process_quota_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Quota coloring and progress per organization.

        Quotas come from each entry's "quota_amount" or, with a "month", from
        the "quotas" rows whose period_start is that month's first day.
        """
        thresholds = None
        if data.get("thresholds"):
            thresholds = QuotaThresholds.from_dict(data["thresholds"], fallback=self.quota_tracker.thresholds)

        period_start = BillingPeriod.for_month(data["month"]).start if data.get("month") else None
        monthly_quotas = self.monthly_quotas(data.get("quotas") or [], period_start)

        progress = []
        for entry in data.get("organizations", []):
            quota = entry.get("quota_amount")
            if quota is None:
                quota = monthly_quotas.get(str(entry["organization_id"]))
            progress.append(
                self.quota_tracker.progress(
                    organization_id=str(entry["organization_id"]),
                    actual_count=int(entry["actual_count"]),
                    quota_amount=int(quota) if quota is not None else None,
                    thresholds=thresholds,
                )
            )
        return self.output_builder.build_quota(progress, period_start)

    @staticmethod
    def monthly_quotas(rows: Iterable[Dict[str, Any]], period_start) -> Dict[str, int]:
        """Quota amounts by organization for the monthly period starting at `period_start`."""
        if period_start is None:
            return {}
        quotas = {}
        for row in rows:
            if row.get("period_type", "monthly") != "monthly":
                continue
            if parse_date(row["period_start"]) == period_start:
                quotas[str(row["organization_id"])] = int(row["quota_amount"])
        return quotas

    def process_compensation_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Salaries for a period.

        Sales without an invoiceable_amount get the billable amount of their
        commission breakdown, computed from "organizations", "products" and
        "provisions" when the sale's organization is given.
        """
        period = self.period_from_dict(data)
        leads = [Lead.from_dict(lead) for lead in data.get("leads", [])]
        sales = [Sale.from_dict(s) for s in data.get("sales", [])]
        organizations = {o.id: o for o in (Organization.from_dict(o) for o in data.get("organizations") or [])}
        products = {p.id: p for p in (Product.from_dict(p) for p in data.get("products") or [])}
        provisions = [ProductProvision.from_dict(p) for p in data.get("provisions") or []]
        opener_rates = {k: to_decimal(v) for k, v in (data.get("opener_rates") or {}).items()}
        closer_bases = {k: to_decimal(v) for k, v in (data.get("closer_bases") or {}).items()}

        for sale in sales:
            organization = organizations.get(sale.organization_id)
            if sale.invoiceable_amount is None and organization is not None:
                breakdown = self.compute_breakdown(
                    CommissionInput.from_sale(sale, organization, products, provisions)
                )
                sale.invoiceable_amount = breakdown.billable_amount

        summary = self.compensation_calculator.summarize(
            leads,
            sales,
            period,
            employer_cost_percent=to_decimal(data.get("employer_cost_percent"), Decimal("0")),
            opener_rates=opener_rates,
            closer_bases=closer_bases,
        )
        return self.output_builder.build_compensation(summary)

    @staticmethod
    def period_from_dict(data: Dict[str, Any]) -> BillingPeriod:
        if data.get("billing_month"):
            return BillingPeriod.for_billing_month(data["billing_month"])
        if data.get("month"):
            return BillingPeriod.for_month(data["month"])
        if data.get("period"):
            return BillingPeriod.from_dict(data["period"])
        raise ValueError("One of billing_month, month or period is required")

    def _report_configuration(self, organizations: Iterable[Organization]) -> None:
        for organization in organizations:
            for warning in self.config_validator.inspect(organization):
                logger.warning("Configuration incomplete: %s", warning)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def process_invoicing_from_json(json_input: str) -> str:
    """
    Process invoicing from a JSON string and return a JSON string.
    Errors are returned as JSON bodies instead of raised.
    """
    try:
        input_data = json.loads(json_input)
        processor = BillingProcessor()
        result = processor.process_invoicing_from_dict(input_data)
        return json.dumps(result, indent=2)

    except (ValueError, KeyError, TypeError) as e:
        error_response = {"error": str(e), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)
