"""
Domain Models for the Partner Billing Engine

These dataclasses provide type-safe representations of all business entities.
All monetary values use Decimal for precision.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

INTEREST_SOLAR = "solar"
INTEREST_BATTERY = "battery"
INTEREST_SOLAR_BATTERY = "solar_battery"
INTEREST_TYPES = (INTEREST_SOLAR, INTEREST_BATTERY, INTEREST_SOLAR_BATTERY)

# Stored contact interests use "sun" for solar
INTEREST_ALIASES = {
    "sun": INTEREST_SOLAR,
    "sun_battery": INTEREST_SOLAR_BATTERY,
}

CREDIT_PENDING = "pending"
CREDIT_APPROVED = "approved"
CREDIT_DENIED = "denied"
CREDIT_STATUSES = (CREDIT_PENDING, CREDIT_APPROVED, CREDIT_DENIED)

BILLING_FIXED = "fixed"
BILLING_ABOVE_COST = "above_cost"
BILLING_MODELS = (BILLING_FIXED, BILLING_ABOVE_COST)

ORG_ACTIVE = "active"
ORG_ARCHIVED = "archived"


# =============================================================================
# PARSING HELPERS
# =============================================================================


def to_decimal(value, default: Decimal | None = None) -> Decimal | None:
    """Convert a raw number to Decimal. None and empty strings give the default."""
    if value is None or value == "":
        return default
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Expected a number, got: {value!r}")
    if not number.is_finite():
        raise ValueError(f"Expected a finite number, got: {value!r}")
    return number


def parse_bool(value) -> bool:
    """Only a real True or the string "true" count as set."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def normalize_interest(value: str | None) -> str | None:
    """Map stored interest names onto the canonical interest types."""
    if value is None:
        return None
    value = str(value).strip().lower()
    return INTEREST_ALIASES.get(value, value)


def parse_date(value) -> date | None:
    """Parse a calendar date from a date, datetime or ISO 8601 string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) == 10:
        return datetime.strptime(text, "%Y-%m-%d").date()
    return parse_timestamp(text).date()


def parse_timestamp(value) -> datetime | None:
    """
    Parse a timestamp into a naive UTC datetime.

    Timestamps from the store carry offsets ("2025-01-01T10:00:00+00:00" or a
    trailing "Z"); aware values are converted to UTC so they compare with dates.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def parse_month(value: str) -> tuple[int, int]:
    """Parse "YYYY-MM" (or "YYYY-MM-DD") into (year, month)."""
    try:
        parts = str(value).strip().split("-")
        year, month = int(parts[0]), int(parts[1])
    except (IndexError, ValueError):
        raise ValueError(f"billing month must be formatted YYYY-MM, got: {value!r}")
    if not 1 <= month <= 12:
        raise ValueError(f"billing month must be formatted YYYY-MM, got: {value!r}")
    return year, month


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass
class CreditRequest:
    """A refund claim by one organization against one lead."""

    organization_id: str
    status: str
    created_at: datetime | None = None

    @property
    def is_approved(self) -> bool:
        return self.status == CREDIT_APPROVED

    @classmethod
    def from_dict(cls, data: dict) -> "CreditRequest":
        return cls(
            organization_id=str(data["organization_id"]),
            status=str(data["status"]).strip().lower(),
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass
class PriceHistoryRecord:
    """Lead prices an organization paid during [effective_from, effective_until)."""

    effective_from: datetime
    effective_until: datetime | None = None  # None = current, open-ended
    price_per_solar_deal: Decimal | None = None
    price_per_battery_deal: Decimal | None = None
    price_per_site_visit: Decimal | None = None

    def contains(self, moment: datetime) -> bool:
        if moment < self.effective_from:
            return False
        return self.effective_until is None or moment < self.effective_until

    @classmethod
    def from_dict(cls, data: dict) -> "PriceHistoryRecord":
        return cls(
            effective_from=parse_timestamp(data["effective_from"]),
            effective_until=parse_timestamp(data.get("effective_until")),
            price_per_solar_deal=to_decimal(data.get("price_per_solar_deal")),
            price_per_battery_deal=to_decimal(data.get("price_per_battery_deal")),
            price_per_site_visit=to_decimal(data.get("price_per_site_visit")),
        )


@dataclass
class CostSegment:
    """An extra cost line subtracted when billing an above-cost partner."""

    name: str
    amount: Decimal
    is_eur: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "CostSegment":
        return cls(
            name=data.get("name", ""),
            amount=to_decimal(data.get("amount"), Decimal("0")),
            is_eur=parse_bool(data.get("is_eur")),
        )


@dataclass
class Organization:
    """A partner company buying leads or installation services."""

    id: str
    name: str
    status: str = ORG_ACTIVE
    price_per_solar_deal: Decimal | None = None
    price_per_battery_deal: Decimal | None = None
    price_per_site_visit: Decimal | None = None
    billing_model: str = BILLING_FIXED
    # None means "not configured"; the engine falls back to DomainDefaults
    company_markup_share_percent: Decimal | None = None
    base_cost_for_billing: Decimal | None = None
    eur_to_sek_rate: Decimal | None = None
    lf_finans_percent: Decimal | None = None
    default_customer_price_incl_tax: Decimal | None = None
    is_sales_consultant: bool = False
    sales_consultant_lead_type: str | None = None
    price_history: list[PriceHistoryRecord] = field(default_factory=list)
    cost_segments: list[CostSegment] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == ORG_ACTIVE

    def sells_lead_type_itself(self, interest_type: str) -> bool:
        """True when the platform sells this lead type for the partner directly."""
        return bool(self.is_sales_consultant) and self.sales_consultant_lead_type == interest_type

    @classmethod
    def from_dict(cls, data: dict) -> "Organization":
        history = [PriceHistoryRecord.from_dict(r) for r in data.get("price_history") or []]
        segments = [CostSegment.from_dict(s) for s in data.get("cost_segments") or []]
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            status=data.get("status") or ORG_ACTIVE,
            price_per_solar_deal=to_decimal(data.get("price_per_solar_deal")),
            price_per_battery_deal=to_decimal(data.get("price_per_battery_deal")),
            price_per_site_visit=to_decimal(data.get("price_per_site_visit")),
            billing_model=data.get("billing_model") or BILLING_FIXED,
            # Support both the stored column names and the descriptive ones
            company_markup_share_percent=to_decimal(
                data.get("company_markup_share_percent", data.get("company_markup_share"))
            ),
            base_cost_for_billing=to_decimal(data.get("base_cost_for_billing")),
            eur_to_sek_rate=to_decimal(data.get("eur_to_sek_rate")),
            lf_finans_percent=to_decimal(data.get("lf_finans_percent")),
            default_customer_price_incl_tax=to_decimal(
                data.get("default_customer_price_incl_tax", data.get("default_customer_price"))
            ),
            is_sales_consultant=parse_bool(data.get("is_sales_consultant")),
            sales_consultant_lead_type=normalize_interest(data.get("sales_consultant_lead_type")),
            price_history=history,
            cost_segments=segments,
        )


@dataclass
class Lead:
    """A contact generated by an opener and sold to one or more organizations."""

    id: str
    interest_type: str
    date_sent: date
    organization_ids: list[str] = field(default_factory=list)
    credit_requests: list[CreditRequest] = field(default_factory=list)
    opener_id: str | None = None

    def has_approved_credit(self, organization_id: str) -> bool:
        return any(
            cr.organization_id == organization_id and cr.is_approved
            for cr in self.credit_requests
        )

    @property
    def latest_credit_status(self) -> str | None:
        """
        Status of the newest credit request.

        Requests carrying created_at are ordered by it; without timestamps the
        input order (newest first) decides.
        """
        if not self.credit_requests:
            return None
        dated = [cr for cr in self.credit_requests if cr.created_at is not None]
        if dated:
            return max(dated, key=lambda cr: cr.created_at).status
        return self.credit_requests[0].status

    @classmethod
    def from_dict(cls, data: dict) -> "Lead":
        if "organization_ids" in data:
            org_ids = [str(o) for o in data["organization_ids"]]
        else:
            # Nested form: organizations: [{"id": ...}, ...]
            org_ids = [str(o["id"]) for o in data.get("organizations") or []]
        # An organization is assigned a lead at most once
        org_ids = list(dict.fromkeys(org_ids))
        credits = [CreditRequest.from_dict(c) for c in data.get("credit_requests") or []]
        return cls(
            id=str(data["id"]),
            interest_type=normalize_interest(data.get("interest_type", data.get("interest"))),
            date_sent=parse_date(data["date_sent"]),
            organization_ids=org_ids,
            credit_requests=credits,
            opener_id=data.get("opener_id"),
        )


@dataclass
class Product:
    """A catalog product sold to end customers."""

    id: str
    name: str
    type: str
    base_price_incl_tax: Decimal
    material_cost_eur: Decimal = Decimal("0")
    green_tech_deduction_percent: Decimal | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            type=normalize_interest(data.get("type")) or INTEREST_BATTERY,
            base_price_incl_tax=to_decimal(
                data.get("base_price_incl_tax", data.get("base_price_incl_moms")), Decimal("0")
            ),
            material_cost_eur=to_decimal(data.get("material_cost_eur"), Decimal("0")),
            green_tech_deduction_percent=to_decimal(data.get("green_tech_deduction_percent")),
        )


@dataclass
class CustomProduct:
    """A one-off product override carried on a sale."""

    name: str
    price_incl_tax: Decimal | None = None
    material_cost_eur: Decimal | None = None
    green_tech_deduction_percent: Decimal | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "CustomProduct":
        return cls(
            name=data.get("name", ""),
            price_incl_tax=to_decimal(data.get("price_incl_tax", data.get("price"))),
            material_cost_eur=to_decimal(data.get("material_cost_eur")),
            green_tech_deduction_percent=to_decimal(data.get("green_tech_deduction_percent")),
        )


@dataclass
class ProductProvision:
    """Flat per-deal provision an organization pays for one product."""

    organization_id: str
    product_id: str
    provision_amount: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "ProductProvision":
        return cls(
            organization_id=str(data["organization_id"]),
            product_id=str(data["product_id"]),
            provision_amount=to_decimal(data.get("provision_amount"), Decimal("0")),
        )


@dataclass
class Sale:
    """A deal a closer made against a lead for one organization."""

    id: str
    lead_id: str
    organization_id: str
    closer_id: str
    pipeline_status: str = "new"
    product_id: str | None = None
    custom_product: CustomProduct | None = None
    num_property_owners: int = 1
    invoiceable_amount: Decimal | None = None
    discount_amount: Decimal = Decimal("0")
    closed_at: datetime | None = None

    @property
    def is_closed_won(self) -> bool:
        return self.pipeline_status == "closed_won"

    @classmethod
    def from_dict(cls, data: dict) -> "Sale":
        custom = None
        if data.get("custom_product_name") or data.get("custom_product_price") is not None:
            custom = CustomProduct(
                name=data.get("custom_product_name") or "",
                price_incl_tax=to_decimal(data.get("custom_product_price")),
                material_cost_eur=to_decimal(data.get("custom_product_material_cost_eur")),
            )
        owners = data.get("num_property_owners")
        return cls(
            id=str(data["id"]),
            lead_id=str(data["lead_id"] if "lead_id" in data else data["contact_id"]),
            organization_id=str(data["organization_id"]),
            closer_id=str(data["closer_id"]),
            pipeline_status=data.get("pipeline_status") or "new",
            product_id=str(data["product_id"]) if data.get("product_id") is not None else None,
            custom_product=custom,
            num_property_owners=int(owners) if owners is not None else 1,
            invoiceable_amount=to_decimal(data.get("invoiceable_amount")),
            discount_amount=to_decimal(data.get("discount_amount"), Decimal("0")),
            closed_at=parse_timestamp(data.get("closed_at")),
        )


@dataclass(frozen=True)
class BillingPeriod:
    """An inclusive range of calendar dates leads are billed for."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"

    @classmethod
    def for_month(cls, month: str) -> "BillingPeriod":
        """The calendar month itself."""
        year, mon = parse_month(month)
        last_day = calendar.monthrange(year, mon)[1]
        return cls(start=date(year, mon, 1), end=date(year, mon, last_day))

    @classmethod
    def for_billing_month(cls, billing_month: str) -> "BillingPeriod":
        """
        The lead period invoiced in a billing month.

        Invoices issued in April cover leads sent in March.
        """
        year, mon = parse_month(billing_month)
        if mon == 1:
            year, mon = year - 1, 12
        else:
            mon -= 1
        return cls.for_month(f"{year:04d}-{mon:02d}")

    @classmethod
    def from_dict(cls, data: dict) -> "BillingPeriod":
        return cls(start=parse_date(data["start"]), end=parse_date(data["end"]))


@dataclass(frozen=True)
class QuotaThresholds:
    """Lead-count thresholds for green/yellow coloring."""

    green: int = 4
    yellow: int = 2

    @classmethod
    def from_dict(cls, data: dict, fallback: "QuotaThresholds | None" = None) -> "QuotaThresholds":
        """Missing thresholds are taken from `fallback` (or the class defaults)."""
        fallback = fallback or cls()
        green = data.get("green", data.get("greenThreshold"))
        yellow = data.get("yellow", data.get("yellowThreshold"))
        return cls(
            green=int(green) if green is not None else fallback.green,
            yellow=int(yellow) if yellow is not None else fallback.yellow,
        )


@dataclass
class CommissionInput:
    """Everything the commission engine needs for one what-if calculation."""

    organization: Organization
    total_price_incl_tax: Decimal | None = None
    # What the customer pays after a full percentage deduction; grossed up
    # to the total when total_price_incl_tax is not given
    price_after_deduction: Decimal | None = None
    num_property_owners: int = 1
    product: Product | None = None
    custom_product: CustomProduct | None = None
    cost_segments: list[CostSegment] | None = None  # None = organization's own
    provisions: list[ProductProvision] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "CommissionInput":
        product = data.get("product")
        custom = data.get("custom_product")
        segments = data.get("cost_segments")
        owners = data.get("num_property_owners")
        return cls(
            organization=Organization.from_dict(data["organization"]),
            total_price_incl_tax=to_decimal(data.get("total_price_incl_tax")),
            price_after_deduction=to_decimal(data.get("price_after_deduction")),
            num_property_owners=int(owners) if owners is not None else 1,
            product=Product.from_dict(product) if product else None,
            custom_product=CustomProduct.from_dict(custom) if custom else None,
            cost_segments=[CostSegment.from_dict(s) for s in segments] if segments is not None else None,
            provisions=[ProductProvision.from_dict(p) for p in data.get("provisions") or []],
        )

    @classmethod
    def from_sale(
        cls,
        sale: Sale,
        organization: Organization,
        products: dict[str, Product] | None = None,
        provisions: list[ProductProvision] | None = None,
    ) -> "CommissionInput":
        """Breakdown input for a recorded sale: its product (or custom product) and owner count."""
        product = (products or {}).get(sale.product_id) if sale.product_id else None
        return cls(
            organization=organization,
            num_property_owners=sale.num_property_owners,
            product=product,
            custom_product=sale.custom_product,
            provisions=list(provisions or []),
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class LeadValuation:
    """Value of one lead for one organization."""

    gross_amount: Decimal = Decimal("0")
    is_credited: bool = False
    is_excluded: bool = False  # platform sells this lead type itself

    @property
    def billable_amount(self) -> Decimal:
        if self.is_credited or self.is_excluded:
            return Decimal("0")
        return self.gross_amount


@dataclass
class OrganizationTotals:
    """Running invoice totals for one organization."""

    organization_id: str
    organization_name: str = ""
    lead_count: int = 0
    gross_value: Decimal = Decimal("0")
    credited_count: int = 0
    credited_value: Decimal = Decimal("0")
    excluded_count: int = 0
    solar_leads: int = 0
    battery_leads: int = 0
    solar_battery_leads: int = 0
    price_per_solar_deal: Decimal = Decimal("0")
    price_per_battery_deal: Decimal = Decimal("0")


@dataclass
class LeadLine:
    """One (lead, organization) line item for export."""

    lead_id: str
    organization_id: str
    organization_name: str
    interest_type: str
    date_sent: date
    price: Decimal
    status: str  # 'billable', 'credited' or 'excluded'
    credit_status: str | None = None


@dataclass
class BillingSummary:
    """Result of folding leads over a billing period."""

    period: BillingPeriod
    per_organization: dict[str, OrganizationTotals] = field(default_factory=dict)
    lines: list[LeadLine] = field(default_factory=list)
    total_value: Decimal = Decimal("0")
    total_credited: Decimal = Decimal("0")
    lead_count: int = 0
    assignment_count: int = 0

    def revenue_for_lead(self, lead_id: str) -> Decimal:
        """Billable revenue of one lead across all its organizations."""
        return sum(
            (line.price for line in self.lines if line.lead_id == lead_id and line.status == "billable"),
            Decimal("0"),
        )

    def invoice_rows(self) -> list[OrganizationTotals]:
        """Organizations with billable leads, highest value first."""
        rows = [t for t in self.per_organization.values() if t.lead_count > 0]
        return sorted(rows, key=lambda t: t.gross_value, reverse=True)


@dataclass
class GreenTechDeduction:
    """Customer-facing green-tech tax deduction."""

    deduction_percent: Decimal
    num_property_owners: int
    max_by_owners: Decimal
    max_by_percent: Decimal
    deduction: Decimal
    binding_bound: str  # 'owners' or 'percent'
    price_after_deduction: Decimal


@dataclass
class CostStack:
    """All costs subtracted from the ex-tax price, in SEK."""

    base_cost: Decimal = Decimal("0")
    material_cost_eur: Decimal = Decimal("0")
    eur_to_sek_rate: Decimal = Decimal("0")
    material_cost_sek: Decimal = Decimal("0")
    lf_finans_percent: Decimal = Decimal("0")
    financing_fee: Decimal = Decimal("0")
    custom_costs_sek: Decimal = Decimal("0")
    total_costs: Decimal = Decimal("0")


@dataclass
class MarkupSplit:
    """How the billable amount is divided between platform and partner."""

    billing_model: str
    method: str  # 'above_cost', 'markup_share' or 'product_provision'
    company_share: Decimal = Decimal("0")
    partner_share: Decimal = Decimal("0")
    company_share_percent: Decimal | None = None
    provision_amount: Decimal | None = None


@dataclass
class Breakdown:
    """Full commission breakdown with every intermediate value."""

    organization_id: str
    product_name: str
    total_price_incl_tax: Decimal
    deduction: GreenTechDeduction
    price_ex_tax: Decimal
    costs: CostStack
    billable_amount: Decimal
    split: MarkupSplit

    @property
    def is_loss(self) -> bool:
        return self.billable_amount < 0


@dataclass
class QuotaProgress:
    """Realized leads against an assigned monthly quota."""

    organization_id: str
    actual_count: int
    color: str
    quota_amount: int | None = None
    remaining: int | None = None
    percent_of_quota: float | None = None
    met: bool | None = None


@dataclass
class CloserCommission:
    """Commission earned by a closer on one closed sale."""

    sale_id: str
    closer_id: str
    invoiceable_amount: Decimal
    base_commission: Decimal
    shortfall: Decimal = Decimal("0")
    shortfall_reduction: Decimal = Decimal("0")
    discount_reduction: Decimal = Decimal("0")
    commission: Decimal = Decimal("0")


@dataclass
class OpenerCommission:
    """Commission earned by an opener over a period."""

    opener_id: str
    qualified_lead_ids: list[str] = field(default_factory=list)
    commission_per_deal: Decimal = Decimal("0")
    commission: Decimal = Decimal("0")


@dataclass
class CompensationSummary:
    """Salaries view for a period."""

    period: BillingPeriod
    openers: list[OpenerCommission] = field(default_factory=list)
    closers: list[CloserCommission] = field(default_factory=list)
    total_opener_commission: Decimal = Decimal("0")
    total_closer_commission: Decimal = Decimal("0")
    employer_cost_percent: Decimal = Decimal("0")
    employer_cost: Decimal = Decimal("0")

    @property
    def total_commission(self) -> Decimal:
        return self.total_opener_commission + self.total_closer_commission

    @property
    def total_with_employer_cost(self) -> Decimal:
        return self.total_commission + self.employer_cost
