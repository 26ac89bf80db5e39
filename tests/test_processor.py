"""
Tests for the Billing Processor

Covers the dict API used by the HTTP entry points: invoicing, breakdown,
quota and compensation requests end-to-end.
"""

import json
import logging

import pytest

from billing import BillingProcessor, DomainDefaults
from billing.processor import process_invoicing_from_json


class TestInvoicing:
    """Test monthly invoicing from raw input."""

    @pytest.fixture
    def processor(self):
        return BillingProcessor()

    def test_billing_month_invoices_previous_month(self, processor):
        result = processor.process_invoicing_from_dict(_invoicing_payload())

        assert result["period"] == {"start": "2025-03-01", "end": "2025-03-31"}
        assert result["totals"]["total_value"] == 1300.0
        assert result["totals"]["total_credited"] == 300.0
        assert result["totals"]["lead_count"] == 3

    def test_archived_organizations_skipped_by_default(self, processor):
        result = processor.process_invoicing_from_dict(_invoicing_payload())

        assert "org-b" not in result["per_organization"]
        assert result["totals"]["assignment_count"] == 3

    def test_include_archived_organizations(self, processor):
        payload = _invoicing_payload()
        payload["only_active"] = False
        result = processor.process_invoicing_from_dict(payload)

        assert result["totals"]["total_value"] == 1750.0
        assert result["per_organization"]["org-b"]["gross_value"] == 450.0

    def test_invoice_rows(self, processor):
        result = processor.process_invoicing_from_dict(_invoicing_payload())

        assert result["invoices"] == [
            {
                "organization_id": "org-a",
                "name": "SunBro",
                "solar_leads": 1,
                "battery_leads": 0,
                "solar_battery_leads": 1,
                "total_leads": 2,
                "price_per_solar_deal": 500.0,
                "price_per_battery_deal": 300.0,
                "total_value": 1300.0,
            }
        ]

    def test_lines_and_lead_revenue(self, processor):
        result = processor.process_invoicing_from_dict(_invoicing_payload())

        credited = [line for line in result["lines"] if line["lead_id"] == "lead-2"][0]
        assert credited["status"] == "credited"
        assert credited["credit_status"] == "approved"
        assert credited["date_sent"] == "2025-03-10"
        assert result["lead_revenue"] == {"lead-1": 500.0, "lead-2": 0.0, "lead-3": 800.0}

    def test_explicit_month(self, processor):
        payload = _invoicing_payload()
        del payload["billing_month"]
        payload["month"] = "2025-04"
        result = processor.process_invoicing_from_dict(payload)

        assert result["totals"]["lead_count"] == 1
        assert result["totals"]["total_value"] == 500.0

    def test_explicit_period(self, processor):
        payload = _invoicing_payload()
        del payload["billing_month"]
        payload["period"] = {"start": "2025-03-01", "end": "2025-04-30"}
        result = processor.process_invoicing_from_dict(payload)

        assert result["totals"]["lead_count"] == 4

    def test_missing_period_raises(self, processor):
        payload = _invoicing_payload()
        del payload["billing_month"]

        with pytest.raises(ValueError, match="billing_month"):
            processor.process_invoicing_from_dict(payload)

    def test_invalid_interest_raises(self, processor):
        payload = _invoicing_payload()
        payload["leads"][0]["interest"] = "wind"

        with pytest.raises(ValueError, match="invalid interest type"):
            processor.process_invoicing_from_dict(payload)

    def test_organization_listed_twice_is_invoiced_once(self, processor):
        payload = _invoicing_payload()
        payload["leads"] = [{
            "id": "lead-1", "interest": "solar", "date_sent": "2025-03-05",
            "organization_ids": ["org-a", "org-a"],
        }]
        result = processor.process_invoicing_from_dict(payload)

        assert result["totals"]["total_value"] == 500.0
        assert len(result["lines"]) == 1

    def test_incomplete_configuration_is_logged(self, processor, caplog):
        payload = _invoicing_payload()
        payload["organizations"].append({"id": "org-c", "name": "Unpriced AB"})

        with caplog.at_level(logging.WARNING, logger="billing.processor"):
            processor.process_invoicing_from_dict(payload)

        assert "Unpriced AB: no lead prices configured" in caplog.text


class TestBreakdown:
    """Test commission breakdown from raw input."""

    def test_reference_battery_breakdown(self):
        result = BillingProcessor().process_breakdown_from_dict(_breakdown_payload())
        calc = result["calculations"]

        assert result["billing_model"] == "above_cost"
        assert result["is_loss"] is True
        assert calc["green_tech_deduction"]["value"] == 37830.0
        assert calc["deduction_binding_bound"]["value"] == "percent"
        assert calc["price_ex_tax"]["value"] == 62400.0
        assert calc["total_costs"]["value"] == 92990.0
        assert calc["billable_amount"]["value"] == -30590.0
        assert calc["company_share"]["value"] == -30590.0
        assert calc["partner_share"]["value"] == 0.0

    def test_every_step_has_description(self):
        result = BillingProcessor().process_breakdown_from_dict(_breakdown_payload())

        for name, step in result["calculations"].items():
            assert step["description"], name

    def test_price_after_deduction(self):
        payload = _breakdown_payload()
        del payload["total_price_incl_tax"]
        payload["price_after_deduction"] = 78000
        payload["num_property_owners"] = 2
        result = BillingProcessor().process_breakdown_from_dict(payload)
        calc = result["calculations"]

        assert calc["total_price_incl_tax"]["value"] == 151456.31
        assert calc["price_after_deduction"]["value"] == 78000.0

    def test_invalid_billing_model_raises(self):
        payload = _breakdown_payload()
        payload["organization"]["billing_model"] = "percent"

        with pytest.raises(ValueError, match="billing_model"):
            BillingProcessor().process_breakdown_from_dict(payload)

    def test_non_numeric_price_raises_value_error(self):
        payload = _breakdown_payload()
        payload["total_price_incl_tax"] = "lots"

        with pytest.raises(ValueError):
            BillingProcessor().process_breakdown_from_dict(payload)


class TestQuotaAndCompensation:
    """Test the alerting and salaries requests."""

    def test_quota_with_custom_thresholds(self):
        result = BillingProcessor().process_quota_from_dict({
            "organizations": [
                {"organization_id": "org-1", "actual_count": 3, "quota_amount": 8},
                {"organization_id": "org-2", "actual_count": 5},
            ],
            "thresholds": {"green": 5, "yellow": 3},
        })

        colors = {o["organization_id"]: o["color"] for o in result["organizations"]}
        assert colors == {"org-1": "yellow", "org-2": "green"}
        assert result["total_quota"] == 8
        assert result["organizations_with_quota"] == 1

    def test_partial_thresholds_fall_back_to_configured_defaults(self):
        processor = BillingProcessor(DomainDefaults(quota_green_threshold=6, quota_yellow_threshold=3))
        result = processor.process_quota_from_dict({
            "organizations": [{"organization_id": "org-1", "actual_count": 2}],
            "thresholds": {"green": 10},
        })

        assert result["organizations"][0]["color"] == "red"

    def test_monthly_quota_rows(self):
        result = BillingProcessor().process_quota_from_dict({
            "month": "2025-03",
            "organizations": [
                {"organization_id": "org-1", "actual_count": 3},
                {"organization_id": "org-2", "actual_count": 3},
            ],
            "quotas": [
                {"organization_id": "org-1", "period_type": "monthly", "period_start": "2025-03-01", "quota_amount": 6},
                {"organization_id": "org-1", "period_type": "monthly", "period_start": "2025-02-01", "quota_amount": 9},
                {"organization_id": "org-2", "period_type": "monthly", "period_start": "2025-04-01", "quota_amount": 4},
            ],
        })

        by_org = {o["organization_id"]: o for o in result["organizations"]}
        assert result["period_start"] == "2025-03-01"
        assert by_org["org-1"]["quota_amount"] == 6
        assert by_org["org-1"]["percent_of_quota"] == 50.0
        assert by_org["org-2"]["quota_amount"] is None
        assert result["total_quota"] == 6

    def test_compensation_computes_invoiceable_from_sale(self):
        """Sales without an invoiceable amount use the billable amount of their breakdown."""
        result = BillingProcessor().process_compensation_from_dict({
            "month": "2025-03",
            "organizations": [{
                "id": "org-a", "name": "SunBro", "billing_model": "above_cost",
                "base_cost_for_billing": 23000, "eur_to_sek_rate": 11, "lf_finans_percent": 0,
                "price_per_solar_deal": 500,
            }],
            "products": [{
                "id": "battery-1", "name": "Emaldo", "type": "battery",
                "base_price_incl_tax": 125000, "material_cost_eur": 1000,
            }],
            "sales": [
                {
                    "id": "sale-1", "lead_id": "lead-1", "organization_id": "org-a", "closer_id": "closer-1",
                    "pipeline_status": "closed_won", "product_id": "battery-1",
                    "closed_at": "2025-03-10T09:00:00Z",
                },
                {
                    "id": "sale-2", "lead_id": "lead-2", "organization_id": "org-a", "closer_id": "closer-1",
                    "pipeline_status": "closed_won", "custom_product_name": "Small battery",
                    "custom_product_price": 50000, "closed_at": "2025-03-12T09:00:00Z",
                },
            ],
        })

        closers = {c["sale_id"]: c for c in result["closers"]}
        # 100,000 ex-tax - 23,000 - 11,000 = 66,000
        assert closers["sale-1"]["invoiceable_amount"] == 66000.0
        assert closers["sale-1"]["commission"] == 8000.0
        # 40,000 ex-tax - 23,000 = 17,000 → 5,000 short
        assert closers["sale-2"]["invoiceable_amount"] == 17000.0
        assert closers["sale-2"]["commission"] == 5500.0

    def test_compensation(self):
        result = BillingProcessor().process_compensation_from_dict({
            "month": "2025-03",
            "leads": [{
                "id": "lead-1",
                "interest": "solar",
                "date_sent": "2025-03-04",
                "organization_ids": ["org-a", "org-b"],
                "opener_id": "opener-1",
            }],
            "sales": [{
                "id": "sale-1",
                "contact_id": "lead-1",
                "organization_id": "org-a",
                "closer_id": "closer-1",
                "pipeline_status": "closed_won",
                "invoiceable_amount": 20000,
                "closed_at": "2025-03-20T12:00:00Z",
            }],
            "employer_cost_percent": 10,
        })

        assert result["closers"][0]["commission"] == 7000.0
        assert result["openers"][0]["commission"] == 1000.0
        assert result["total_commission"] == 8000.0
        assert result["employer_cost"] == 800.0
        assert result["total_with_employer_cost"] == 8800.0


class TestJsonConvenience:
    """Test the JSON string wrapper."""

    def test_success(self):
        result = json.loads(process_invoicing_from_json(json.dumps(_invoicing_payload())))

        assert result["totals"]["total_value"] == 1300.0

    def test_errors_are_returned_not_raised(self):
        result = json.loads(process_invoicing_from_json(json.dumps({"leads": []})))

        assert result["status"] == "validation_failed"
        assert "billing_month" in result["error"]


def _invoicing_payload() -> dict:
    """
    Billing month April 2025 covers March leads:
    - lead-1 solar (stored as "sun") to A (500) and archived B (450)
    - lead-2 battery to A, credited (300)
    - lead-3 solar + battery to A (800)
    - lead-4 in April, not invoiced
    """
    return {
        "billing_month": "2025-04",
        "organizations": [
            {"id": "org-a", "name": "SunBro", "price_per_solar_deal": 500, "price_per_battery_deal": 300},
            {
                "id": "org-b", "name": "Hyllinge Solkraft", "status": "archived",
                "price_per_solar_deal": 450, "price_per_battery_deal": 250,
            },
        ],
        "leads": [
            {
                "id": "lead-1", "interest": "sun", "date_sent": "2025-03-05T10:00:00+00:00",
                "organizations": [{"id": "org-a"}, {"id": "org-b"}],
            },
            {
                "id": "lead-2", "interest_type": "battery", "date_sent": "2025-03-10",
                "organization_ids": ["org-a"],
                "credit_requests": [{"organization_id": "org-a", "status": "approved"}],
            },
            {"id": "lead-3", "interest_type": "sun_battery", "date_sent": "2025-03-31", "organization_ids": ["org-a"]},
            {"id": "lead-4", "interest_type": "solar", "date_sent": "2025-04-01", "organization_ids": ["org-a"]},
        ],
    }


def _breakdown_payload() -> dict:
    return {
        "organization": {
            "id": "org-1",
            "name": "SunBro",
            "billing_model": "above_cost",
            "base_cost_for_billing": 23000,
            "eur_to_sek_rate": 11,
            "lf_finans_percent": 3,
            "price_per_solar_deal": 500,
        },
        "total_price_incl_tax": 78000,
        "num_property_owners": 1,
        "product": {
            "id": "battery-1",
            "name": "Emaldo 15.36 kWh",
            "type": "battery",
            "base_price_incl_tax": 78000,
            "material_cost_eur": 6150,
            "green_tech_deduction_percent": 48.5,
        },
    }
