"""
Campaign filtering by status and date window.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional

from .models import (
    DATE_FIELDS,
    STATUS_ALL,
    Campaign,
    DateWindow,
    StatusFilter,
    parse_status_filter,
)


class DateFilterPolicy(str, Enum):
    """Which timestamps place a campaign inside a window."""

    CREATED_AT = "created_at"
    ANY_ACTIVITY = "any_activity"


def matches_status(campaign: Campaign, status_filter: StatusFilter) -> bool:
    if status_filter == STATUS_ALL:
        return True
    return campaign.status == status_filter


def matches_window(
    campaign: Campaign,
    window: DateWindow,
    policy: DateFilterPolicy = DateFilterPolicy.CREATED_AT,
) -> bool:
    """Missing or unparsable dates never match a window."""
    if policy == DateFilterPolicy.ANY_ACTIVITY:
        return any(window.contains(campaign.parsed_date(name)) for name in DATE_FIELDS)
    return window.contains(campaign.parsed_date("created_at"))


def filter_campaigns(
    campaigns: Iterable[Campaign],
    status_filter: StatusFilter = STATUS_ALL,
    window: Optional[DateWindow] = None,
    policy: DateFilterPolicy = DateFilterPolicy.CREATED_AT,
) -> List[Campaign]:
    """
    Reduce a campaign collection by status and date window.

    Args:
        campaigns: Normalized campaigns (input order is preserved)
        status_filter: "ALL" or a CampaignStatus (strings are parsed)
        window: Date window, or None for no date filtering
        policy: created_at only, or any of created_at/updated_at/last_activity_date

    Returns:
        New list holding the matching campaigns
    """
    status_filter = parse_status_filter(status_filter)
    policy = DateFilterPolicy(policy)

    result = []
    for campaign in campaigns:
        if not matches_status(campaign, status_filter):
            continue
        if window is not None and not matches_window(campaign, window, policy):
            continue
        result.append(campaign)
    return result
