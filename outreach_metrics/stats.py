"""
Aggregate outreach metrics over a (filtered) campaign collection.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, Iterable

from .models import Campaign, CampaignStatus


def round1(value: float) -> float:
    """Round half away from zero to one decimal place."""
    number = Decimal(str(value))
    if not number.is_finite():
        return float(value)
    with localcontext() as ctx:
        # Enough digits for the integer part plus one decimal
        ctx.prec = max(ctx.prec, number.adjusted() + 3)
        return float(number.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def safe_rate(numerator: float, denominator: float) -> float:
    """Percentage numerator/denominator, 0.0 when the denominator is 0."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100.0


def format_rate(numerator: float, denominator: float) -> str:
    if denominator <= 0:
        return "0%"
    return f"{round1(safe_rate(numerator, denominator)):.1f}%"


@dataclass(frozen=True)
class AggregateStats:
    total_contacted: int = 0
    total_replies: int = 0
    total_positive_replies: int = 0
    lead_rate: str = "0%"

    # Supplemental totals for the summary cards
    total_campaigns: int = 0
    active_campaigns: int = 0
    total_sent: int = 0
    total_bounced: int = 0
    total_unsubscribed: int = 0

    @property
    def lead_rate_value(self) -> float:
        return safe_rate(self.total_positive_replies, self.total_contacted)

    @property
    def reply_rate(self) -> float:
        return safe_rate(self.total_replies, self.total_contacted)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalContacted': self.total_contacted,
            'totalReplies': self.total_replies,
            'totalPositiveReplies': self.total_positive_replies,
            'leadRate': self.lead_rate,
            'totalCampaigns': self.total_campaigns,
            'activeCampaigns': self.active_campaigns,
            'totalSent': self.total_sent,
            'totalBounced': self.total_bounced,
            'totalUnsubscribed': self.total_unsubscribed,
        }


def aggregate(campaigns: Iterable[Campaign]) -> AggregateStats:
    """Calculate aggregated metrics for the summary cards."""
    campaigns = list(campaigns)
    if not campaigns:
        return AggregateStats()

    total_contacted = sum(c.lead_contacted_count for c in campaigns)
    total_replies = sum(c.replied_count for c in campaigns)
    total_positive = sum(c.positive_reply_count for c in campaigns)

    return AggregateStats(
        total_contacted=total_contacted,
        total_replies=total_replies,
        total_positive_replies=total_positive,
        lead_rate=format_rate(total_positive, total_contacted),
        total_campaigns=len(campaigns),
        active_campaigns=sum(1 for c in campaigns if c.status == CampaignStatus.ACTIVE),
        total_sent=sum(c.sent_count for c in campaigns),
        total_bounced=sum(c.bounced_count for c in campaigns),
        total_unsubscribed=sum(c.unsubscribed_count for c in campaigns),
    )
