"""
Markup Splitter

Divides the billable markup between the platform and the partner.
"""

from decimal import Decimal
from typing import Iterable

from ..config import DEFAULTS, DomainDefaults
from ..models import BILLING_ABOVE_COST, MarkupSplit, Organization, ProductProvision

METHOD_ABOVE_COST = "above_cost"
METHOD_MARKUP_SHARE = "markup_share"
METHOD_PRODUCT_PROVISION = "product_provision"


class MarkupSplitter:
    """Splits the billable amount according to the organization's billing model."""

    def __init__(self, defaults: DomainDefaults = DEFAULTS):
        self.defaults = defaults

    def split(
        self,
        organization: Organization,
        billable_amount: Decimal,
        product_id: str | None = None,
        provisions: Iterable[ProductProvision] = (),
    ) -> MarkupSplit:
        """
        above_cost: the platform keeps the whole billable amount.

        fixed: a provision row for (organization, product) sets the platform's
        flat amount; otherwise the platform takes company_markup_share_percent
        of the billable amount. The partner receives the remainder.

        Negative billable amounts are split the same way.
        """
        if organization.billing_model == BILLING_ABOVE_COST:
            return MarkupSplit(
                billing_model=BILLING_ABOVE_COST,
                method=METHOD_ABOVE_COST,
                company_share=billable_amount,
                partner_share=Decimal("0"),
                company_share_percent=Decimal("100"),
            )

        provision = self.find_provision(organization.id, product_id, provisions)
        if provision is not None:
            return MarkupSplit(
                billing_model=organization.billing_model,
                method=METHOD_PRODUCT_PROVISION,
                company_share=provision.provision_amount,
                partner_share=billable_amount - provision.provision_amount,
                provision_amount=provision.provision_amount,
            )

        share_percent = organization.company_markup_share_percent
        if share_percent is None:
            share_percent = self.defaults.markup_share_percent
        company_share = billable_amount * share_percent / Decimal("100")

        return MarkupSplit(
            billing_model=organization.billing_model,
            method=METHOD_MARKUP_SHARE,
            company_share=company_share,
            partner_share=billable_amount - company_share,
            company_share_percent=share_percent,
        )

    @staticmethod
    def find_provision(
        organization_id: str,
        product_id: str | None,
        provisions: Iterable[ProductProvision],
    ) -> ProductProvision | None:
        if product_id is None:
            return None
        for provision in provisions:
            if provision.organization_id == organization_id and provision.product_id == product_id:
                return provision
        return None
