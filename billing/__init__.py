"""
PARTNER BILLING ENGINE
Lead pricing, partner invoicing and commission breakdowns
"""

from .config import DomainDefaults
from .engine import CommissionEngine
from .models import BillingPeriod, Breakdown, CommissionInput, Lead, Organization
from .processor import BillingProcessor

__all__ = [
    "BillingProcessor",
    "CommissionEngine",
    "DomainDefaults",
    "BillingPeriod",
    "Breakdown",
    "CommissionInput",
    "Lead",
    "Organization",
]
