"""
Quota Tracker

Colors realized lead counts against configurable thresholds and assigned
monthly quotas. Used for alerting only, never for billing.
"""

from decimal import ROUND_HALF_UP, Decimal

from ..models import QuotaProgress, QuotaThresholds

GREEN = "green"
YELLOW = "yellow"
RED = "red"


class QuotaTracker:
    """Classifies lead counts for capacity alerting."""

    def __init__(self, thresholds: QuotaThresholds | None = None):
        self.thresholds = thresholds or QuotaThresholds()

    def classify(self, actual_count: int, thresholds: QuotaThresholds | None = None) -> str:
        thresholds = thresholds or self.thresholds
        if actual_count >= thresholds.green:
            return GREEN
        if actual_count >= thresholds.yellow:
            return YELLOW
        return RED

    def progress(
        self,
        organization_id: str,
        actual_count: int,
        quota_amount: int | None = None,
        thresholds: QuotaThresholds | None = None,
    ) -> QuotaProgress:
        """Classification plus progress toward the organization's quota, if one is assigned."""
        result = QuotaProgress(
            organization_id=organization_id,
            actual_count=actual_count,
            color=self.classify(actual_count, thresholds),
            quota_amount=quota_amount,
        )
        if not quota_amount or quota_amount <= 0:
            return result

        pct = Decimal(actual_count) / Decimal(quota_amount) * Decimal("100")
        result.percent_of_quota = float(pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
        result.remaining = max(0, quota_amount - actual_count)
        result.met = actual_count >= quota_amount
        return result
