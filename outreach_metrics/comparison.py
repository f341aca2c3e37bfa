"""
Period-over-period comparison.

Runs the filter + aggregate pipeline over the current window and over the
window of equal length immediately before it, then derives % deltas.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable

from .filters import DateFilterPolicy, filter_campaigns
from .models import STATUS_ALL, Campaign, DateWindow, StatusFilter
from .stats import AggregateStats, aggregate, round1


def previous_window(current: DateWindow) -> DateWindow:
    """
    Window of equal length ending just before current.start.

    The previous window excludes current.start so a record can never land in
    both periods.
    """
    return DateWindow(
        start=current.start - current.length,
        end=current.start,
        end_exclusive=True,
    )


def query_window(current: DateWindow) -> DateWindow:
    """Union of the previous and current windows (what the backend is asked for)."""
    return DateWindow(start=previous_window(current).start, end=current.end)


def delta_percent(current: float, previous: float) -> float:
    """
    Signed % change from previous to current.

    Returns 0.0 when previous is 0, including when current > 0.
    """
    if previous is None or previous <= 0:
        return 0.0
    return round1((current - previous) / previous * 100.0)


def direction(delta: float) -> str:
    if delta > 0:
        return "up"
    if delta < 0:
        return "down"
    return "flat"


def format_delta(delta: float) -> str:
    if delta > 0:
        return f"+{delta:.1f}%"
    return f"{delta:.1f}%"


@dataclass(frozen=True)
class DeltaPercent:
    contacted: float = 0.0
    reply_rate: float = 0.0
    lead_rate: float = 0.0
    positive_replies: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'contacted': self.contacted,
            'replyRate': self.reply_rate,
            'leadRate': self.lead_rate,
            'positiveReplies': self.positive_replies,
        }


@dataclass(frozen=True)
class ComparisonStats:
    current: AggregateStats
    previous: AggregateStats
    delta_percent: DeltaPercent
    current_window: DateWindow
    previous_window: DateWindow

    def to_dict(self) -> Dict[str, Any]:
        result = self.current.to_dict()
        result['previous'] = self.previous.to_dict()
        result['deltaPercent'] = self.delta_percent.to_dict()
        result['currentWindow'] = str(self.current_window)
        result['previousWindow'] = str(self.previous_window)
        return result


def compute_deltas(current: AggregateStats, previous: AggregateStats) -> DeltaPercent:
    return DeltaPercent(
        contacted=delta_percent(current.total_contacted, previous.total_contacted),
        reply_rate=delta_percent(current.reply_rate, previous.reply_rate),
        lead_rate=delta_percent(current.lead_rate_value, previous.lead_rate_value),
        positive_replies=delta_percent(
            current.total_positive_replies, previous.total_positive_replies
        ),
    )


def compare_periods(
    campaigns: Iterable[Campaign],
    current_window: DateWindow,
    status_filter: StatusFilter = STATUS_ALL,
    policy: DateFilterPolicy = DateFilterPolicy.CREATED_AT,
) -> ComparisonStats:
    """
    Compare the current window against the preceding window of equal length.

    Args:
        campaigns: Every campaign fetched for both periods
        current_window: Window selected by the user
        status_filter: Applied identically to both windows
        policy: Date filter policy, applied identically to both windows

    Returns:
        ComparisonStats
    """
    campaigns = list(campaigns)
    prev_window = previous_window(current_window)

    current = aggregate(filter_campaigns(campaigns, status_filter, current_window, policy))
    previous = aggregate(filter_campaigns(campaigns, status_filter, prev_window, policy))

    return ComparisonStats(
        current=current,
        previous=previous,
        delta_percent=compute_deltas(current, previous),
        current_window=current_window,
        previous_window=prev_window,
    )
