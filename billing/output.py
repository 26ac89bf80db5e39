"""
Output Builder

Constructs JSON-ready responses from calculation results. The same shapes feed
on-screen tables and CSV/XLSX export.
"""

from datetime import date
from decimal import Decimal

from .models import (
    BillingSummary,
    Breakdown,
    CompensationSummary,
    LeadLine,
    OrganizationTotals,
    QuotaProgress,
)


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places."""
    return round(float(value), 2)


def _fmt(value) -> str:
    """Format a number as currency string for descriptions."""
    return f"{value:,.2f} SEK"


def _pct(value: Decimal) -> str:
    return f"{float(value):g}%"


class OutputBuilder:
    """Builds the final output responses."""

    # -------------------------------------------------------------------------
    # Commission breakdown
    # -------------------------------------------------------------------------

    def build_breakdown(self, breakdown: Breakdown) -> dict:
        """Every intermediate of the breakdown, each with a value and a description."""
        return {
            "organization_id": breakdown.organization_id,
            "product_name": breakdown.product_name,
            "billing_model": breakdown.split.billing_model,
            "split_method": breakdown.split.method,
            "is_loss": breakdown.is_loss,
            "calculations": self._build_calculations(breakdown),
        }

    def _build_calculations(self, b: Breakdown) -> dict:
        d = b.deduction
        c = b.costs
        s = b.split
        total = to_money(b.total_price_incl_tax)

        if s.method == "product_provision":
            company_desc = f"Flat product provision of {_fmt(to_money(s.provision_amount))}"
        else:
            company_desc = (
                f"{_pct(s.company_share_percent)} × billable ({_fmt(to_money(b.billable_amount))}) "
                f"= {_fmt(to_money(s.company_share))}"
            )

        return {
            "total_price_incl_tax": {
                "value": total,
                "description": "Price to the customer including VAT, before green-tech deduction",
            },
            "max_deduction_by_owners": {
                "value": to_money(d.max_by_owners),
                "description": f"{d.num_property_owners} property owner(s) × cap per owner = {_fmt(to_money(d.max_by_owners))}",
            },
            "max_deduction_by_percent": {
                "value": to_money(d.max_by_percent),
                "description": f"{_pct(d.deduction_percent)} × {_fmt(total)} = {_fmt(to_money(d.max_by_percent))}",
            },
            "green_tech_deduction": {
                "value": to_money(d.deduction),
                "description": f"Lesser of the two caps; bound by {d.binding_bound}",
            },
            "deduction_binding_bound": {
                "value": d.binding_bound,
                "description": "Which cap limits the deduction ('owners' or 'percent')",
            },
            "price_after_deduction": {
                "value": to_money(d.price_after_deduction),
                "description": f"What the customer pays: {_fmt(total)} - {_fmt(to_money(d.deduction))}. Does not affect partner billing",
            },
            "price_ex_tax": {
                "value": to_money(b.price_ex_tax),
                "description": f"{_fmt(total)} / 1.25 (25% VAT removed)",
            },
            "base_cost": {
                "value": to_money(c.base_cost),
                "description": "Organization base cost for billing",
            },
            "material_cost_sek": {
                "value": to_money(c.material_cost_sek),
                "description": f"{c.material_cost_eur:,.2f} EUR × {c.eur_to_sek_rate:g} SEK/EUR = {_fmt(to_money(c.material_cost_sek))}",
            },
            "financing_fee": {
                "value": to_money(c.financing_fee),
                "description": f"{_pct(c.lf_finans_percent)} × {_fmt(total)} = {_fmt(to_money(c.financing_fee))}",
            },
            "custom_costs_sek": {
                "value": to_money(c.custom_costs_sek),
                "description": "Organization cost segments, EUR segments converted to SEK",
            },
            "total_costs": {
                "value": to_money(c.total_costs),
                "description": (
                    f"{_fmt(to_money(c.base_cost))} + {_fmt(to_money(c.material_cost_sek))} + "
                    f"{_fmt(to_money(c.financing_fee))} + {_fmt(to_money(c.custom_costs_sek))} = {_fmt(to_money(c.total_costs))}"
                ),
            },
            "billable_amount": {
                "value": to_money(b.billable_amount),
                "description": (
                    f"{_fmt(to_money(b.price_ex_tax))} - {_fmt(to_money(c.total_costs))} = {_fmt(to_money(b.billable_amount))}"
                    + (" (loss)" if b.is_loss else "")
                ),
            },
            "company_share": {
                "value": to_money(s.company_share),
                "description": company_desc,
            },
            "partner_share": {
                "value": to_money(s.partner_share),
                "description": "Remainder of the billable amount to the partner"
                if s.method != "above_cost" else "Partner receives nothing from the markup under above-cost billing",
            },
        }

    # -------------------------------------------------------------------------
    # Invoicing
    # -------------------------------------------------------------------------

    def build_invoicing(self, summary: BillingSummary) -> dict:
        return {
            "period": {
                "start": summary.period.start.isoformat(),
                "end": summary.period.end.isoformat(),
            },
            "invoices": [self._build_invoice_row(t) for t in summary.invoice_rows()],
            "per_organization": {
                org_id: self._build_totals(t) for org_id, t in summary.per_organization.items()
            },
            "totals": {
                "total_value": to_money(summary.total_value),
                "total_credited": to_money(summary.total_credited),
                "lead_count": summary.lead_count,
                "assignment_count": summary.assignment_count,
                "invoiced_leads": sum(t.lead_count for t in summary.per_organization.values()),
            },
            "lines": [self._build_line(line) for line in summary.lines],
            "lead_revenue": {
                lead_id: to_money(summary.revenue_for_lead(lead_id))
                for lead_id in dict.fromkeys(line.lead_id for line in summary.lines)
            },
        }

    def _build_invoice_row(self, totals: OrganizationTotals) -> dict:
        return {
            "organization_id": totals.organization_id,
            "name": totals.organization_name,
            "solar_leads": totals.solar_leads,
            "battery_leads": totals.battery_leads,
            "solar_battery_leads": totals.solar_battery_leads,
            "total_leads": totals.lead_count,
            "price_per_solar_deal": to_money(totals.price_per_solar_deal),
            "price_per_battery_deal": to_money(totals.price_per_battery_deal),
            "total_value": to_money(totals.gross_value),
        }

    def _build_totals(self, totals: OrganizationTotals) -> dict:
        return {
            "name": totals.organization_name,
            "lead_count": totals.lead_count,
            "gross_value": to_money(totals.gross_value),
            "credited_count": totals.credited_count,
            "credited_value": to_money(totals.credited_value),
            "excluded_count": totals.excluded_count,
        }

    def _build_line(self, line: LeadLine) -> dict:
        return {
            "lead_id": line.lead_id,
            "organization_id": line.organization_id,
            "organization_name": line.organization_name,
            "interest_type": line.interest_type,
            "date_sent": line.date_sent.isoformat(),
            "price": to_money(line.price),
            "status": line.status,
            "credit_status": line.credit_status,
        }

    # -------------------------------------------------------------------------
    # Quotas and compensation
    # -------------------------------------------------------------------------

    def build_quota(self, progress: list[QuotaProgress], period_start: date | None = None) -> dict:
        return {
            "period_start": period_start.isoformat() if period_start else None,
            "organizations": [
                {
                    "organization_id": p.organization_id,
                    "actual_count": p.actual_count,
                    "color": p.color,
                    "quota_amount": p.quota_amount,
                    "remaining": p.remaining,
                    "percent_of_quota": p.percent_of_quota,
                    "met": p.met,
                }
                for p in progress
            ],
            "total_quota": sum(p.quota_amount or 0 for p in progress),
            "organizations_with_quota": sum(1 for p in progress if p.quota_amount),
        }

    def build_compensation(self, summary: CompensationSummary) -> dict:
        return {
            "period": {
                "start": summary.period.start.isoformat(),
                "end": summary.period.end.isoformat(),
            },
            "openers": [
                {
                    "opener_id": o.opener_id,
                    "qualified_leads": len(o.qualified_lead_ids),
                    "qualified_lead_ids": o.qualified_lead_ids,
                    "commission_per_deal": to_money(o.commission_per_deal),
                    "commission": to_money(o.commission),
                }
                for o in summary.openers
            ],
            "closers": [
                {
                    "sale_id": c.sale_id,
                    "closer_id": c.closer_id,
                    "invoiceable_amount": to_money(c.invoiceable_amount),
                    "base_commission": to_money(c.base_commission),
                    "shortfall_reduction": to_money(c.shortfall_reduction),
                    "discount_reduction": to_money(c.discount_reduction),
                    "commission": to_money(c.commission),
                }
                for c in summary.closers
            ],
            "total_opener_commission": to_money(summary.total_opener_commission),
            "total_closer_commission": to_money(summary.total_closer_commission),
            "total_commission": to_money(summary.total_commission),
            "employer_cost_percent": to_money(summary.employer_cost_percent),
            "employer_cost": to_money(summary.employer_cost),
            "total_with_employer_cost": to_money(summary.total_with_employer_cost),
        }
