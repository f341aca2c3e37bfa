"""
Test PeriodComparator: previous window boundaries and delta policy.

Run: python -m pytest tools/testing/test_comparison.py
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from datetime import datetime, timezone

from outreach_metrics.comparison import (
    compare_periods,
    delta_percent,
    direction,
    format_delta,
    previous_window,
    query_window,
)
from outreach_metrics.models import Campaign, DateWindow

MARCH = DateWindow.from_iso_dates("2024-03-01", "2024-03-31")


def make_campaign(cid, created_at, contacted=0, replies=0, positive=0, status="ACTIVE"):
    return Campaign.model_validate({
        "_id": cid,
        "status": status,
        "created_at": created_at,
        "lead_contacted_count": contacted,
        "replied_count": replies,
        "positive_reply_count": positive,
    })


def test_previous_window_has_equal_length_and_no_overlap():
    prev = previous_window(MARCH)

    # 31 days before March 1st 2024 (leap year)
    assert prev.start == datetime(2024, 1, 30, tzinfo=timezone.utc)
    assert prev.end == MARCH.start
    assert prev.end_exclusive
    assert prev.length == MARCH.length
    assert not prev.contains(MARCH.start)
    assert prev.contains(prev.start)
    assert str(prev) == "2024-01-30..2024-02-29"


def test_query_window_spans_both_periods():
    window = query_window(MARCH)
    assert window.start == previous_window(MARCH).start
    assert window.end == MARCH.end


def test_boundary_record_counts_once():
    campaigns = [
        make_campaign("on-start", "2024-03-01T00:00:00Z", contacted=10),
        make_campaign("prev-start", "2024-01-30T00:00:00Z", contacted=4),
        make_campaign("too-old", "2024-01-29T23:59:59Z", contacted=100),
    ]
    stats = compare_periods(campaigns, MARCH)

    assert stats.current.total_contacted == 10
    assert stats.previous.total_contacted == 4


def test_deltas():
    campaigns = [
        make_campaign("cur", "2024-03-10T00:00:00Z", contacted=50, replies=10, positive=10),
        make_campaign("prev", "2024-02-10T00:00:00Z", contacted=40, replies=10, positive=20),
    ]
    stats = compare_periods(campaigns, MARCH)

    assert stats.current.total_contacted == 50
    assert stats.previous.total_contacted == 40
    assert stats.delta_percent.contacted == 25.0
    assert stats.delta_percent.positive_replies == -50.0
    assert stats.delta_percent.reply_rate == -20.0
    assert stats.delta_percent.lead_rate == -60.0
    assert stats.current.lead_rate == "20.0%"
    assert stats.previous.lead_rate == "50.0%"


def test_delta_is_zero_when_previous_is_zero():
    campaigns = [make_campaign("cur", "2024-03-10T00:00:00Z", contacted=50, positive=5)]
    stats = compare_periods(campaigns, MARCH)

    assert stats.previous.total_contacted == 0
    assert stats.delta_percent.contacted == 0
    assert stats.delta_percent.positive_replies == 0
    assert stats.delta_percent.lead_rate == 0
    assert stats.to_dict()['deltaPercent']['contacted'] == 0


def test_delta_percent_policy():
    assert delta_percent(50, 0) == 0.0
    assert delta_percent(0, 0) == 0.0
    assert delta_percent(0, 10) == -100.0
    assert delta_percent(11, 9) == 22.2


def test_status_filter_applies_to_both_windows():
    campaigns = [
        make_campaign("cur-active", "2024-03-10T00:00:00Z", contacted=20, status="ACTIVE"),
        make_campaign("cur-paused", "2024-03-11T00:00:00Z", contacted=99, status="PAUSED"),
        make_campaign("prev-active", "2024-02-10T00:00:00Z", contacted=10, status="ACTIVE"),
        make_campaign("prev-paused", "2024-02-11T00:00:00Z", contacted=77, status="PAUSED"),
    ]
    stats = compare_periods(campaigns, MARCH, "ACTIVE")

    assert stats.current.total_contacted == 20
    assert stats.previous.total_contacted == 10
    assert stats.delta_percent.contacted == 100.0


def test_direction_and_format():
    assert direction(12.5) == "up"
    assert direction(-3.0) == "down"
    assert direction(0.0) == "flat"
    assert format_delta(12.5) == "+12.5%"
    assert format_delta(-3.0) == "-3.0%"
    assert format_delta(0.0) == "0.0%"
