"""
Outreach metrics dashboard core.

Debounced fetch orchestration, status/date filtering, aggregation,
period-over-period comparison and a stable multi-type sort engine.
"""

from .comparison import ComparisonStats, DeltaPercent, compare_periods, previous_window
from .errors import (
    EmptyResultError,
    FetchError,
    MetricsError,
    NetworkError,
    ServerError,
    ValidationError,
)
from .filters import DateFilterPolicy, filter_campaigns
from .models import (
    STATUS_ALL,
    Campaign,
    CampaignStatus,
    DateWindow,
    SortOrder,
    SortSpec,
    Workspace,
)
from .orchestrator import DashboardView, FetchOrchestrator, FetchState, QueryParams
from .sorting import sort_records, toggle_sort
from .stats import AggregateStats, aggregate

__all__ = [
    "AggregateStats",
    "Campaign",
    "CampaignStatus",
    "ComparisonStats",
    "DashboardView",
    "DateFilterPolicy",
    "DateWindow",
    "DeltaPercent",
    "EmptyResultError",
    "FetchError",
    "FetchOrchestrator",
    "FetchState",
    "MetricsError",
    "NetworkError",
    "QueryParams",
    "STATUS_ALL",
    "ServerError",
    "SortOrder",
    "SortSpec",
    "ValidationError",
    "Workspace",
    "aggregate",
    "compare_periods",
    "filter_campaigns",
    "previous_window",
    "sort_records",
    "toggle_sort",
]

__version__ = "0.1.0"
