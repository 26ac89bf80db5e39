"""
Calculators Package

Provides all calculation components for partner billing.
"""

from .aggregation import BillingAggregator
from .compensation import SalesCompensationCalculator
from .costs import CostStackCalculator
from .deduction import GreenTechDeductionCalculator
from .pricing import PriceResolver
from .quota import QuotaTracker
from .split import MarkupSplitter
from .valuation import LeadValuator

__all__ = [
    "PriceResolver",
    "LeadValuator",
    "BillingAggregator",
    "GreenTechDeductionCalculator",
    "CostStackCalculator",
    "MarkupSplitter",
    "QuotaTracker",
    "SalesCompensationCalculator",
]
