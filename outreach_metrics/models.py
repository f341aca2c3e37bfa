"""
Outreach metrics data models: Workspace, Campaign, DateWindow, SortSpec.

Campaign and Workspace are validated with pydantic at ingestion. Count fields,
status and timestamps are normalized there so the rest of the pipeline never
has to defend against malformed records.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .errors import ValidationError


class CampaignStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"
    ARCHIVED = "ARCHIVED"
    UNKNOWN = "UNKNOWN"


# Status filter value that passes every campaign
STATUS_ALL = "ALL"

StatusFilter = Union[str, CampaignStatus]

COUNT_FIELDS = (
    "lead_count",
    "completed_lead_count",
    "lead_contacted_count",
    "sent_count",
    "replied_count",
    "positive_reply_count",
    "bounced_count",
    "unsubscribed_count",
)

DATE_FIELDS = ("created_at", "updated_at", "last_activity_date")

# Wire name -> model name (older dashboard payloads)
WIRE_ALIASES = {
    "_id": "id",
    "camp_name": "name",
    "sent_email_count": "sent_count",
}

_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


# ==================== Normalization helpers ====================


def coerce_count(value: Any) -> int:
    """Coerce a raw count to an integer >= 0. Anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0
    return int(number)


def normalize_status(value: Any) -> CampaignStatus:
    if isinstance(value, CampaignStatus):
        return value
    text = str(value).strip().upper() if value is not None else ""
    try:
        return CampaignStatus(text)
    except ValueError:
        return CampaignStatus.UNKNOWN


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a wire timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (trailing Z allowed), date-only strings, epoch
    milliseconds, dates and datetimes.

    Returns:
        datetime, or None if the value is missing or unparsable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text[-1] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def normalize_timestamp(value: Any) -> Optional[Union[datetime, str]]:
    """
    Missing -> None, parsable -> datetime, present but unparsable -> raw text.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = parse_timestamp(value)
    if parsed is not None:
        return parsed
    return str(value)


def to_epoch_ms(value: datetime) -> float:
    return value.timestamp() * 1000.0


def parse_status_filter(value: Any) -> StatusFilter:
    """
    Parse a user supplied status filter.

    Raises:
        ValidationError: If value is neither ALL nor a known status
    """
    if isinstance(value, CampaignStatus):
        return value
    text = str(value).strip().upper() if value is not None else STATUS_ALL
    if text in ("", STATUS_ALL):
        return STATUS_ALL
    try:
        return CampaignStatus(text)
    except ValueError:
        allowed = [STATUS_ALL] + [s.value for s in CampaignStatus]
        raise ValidationError(f"Invalid status filter: {value!r}. Allowed: {allowed}")


# ==================== Records ====================


def _apply_wire_aliases(data: Any) -> Any:
    if not isinstance(data, dict):
        return data
    mapped = dict(data)
    for wire_name, name in WIRE_ALIASES.items():
        if wire_name in mapped and mapped.get(name) is None:
            mapped[name] = mapped[wire_name]
    return mapped


class Workspace(BaseModel):
    """Tenant scope. The id is only ever used as a query key."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = ""

    @model_validator(mode="before")
    @classmethod
    def _map_aliases(cls, data: Any) -> Any:
        return _apply_wire_aliases(data)

    @field_validator("id", mode="before")
    @classmethod
    def _id_not_blank(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            raise ValueError("workspace id must not be empty")
        return str(v).strip()

    @field_validator("name", mode="before")
    @classmethod
    def _name_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class Campaign(BaseModel):
    """Immutable per-fetch snapshot of one campaign's outreach counters."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = ""
    status: CampaignStatus = CampaignStatus.UNKNOWN

    lead_count: int = 0
    completed_lead_count: int = 0
    lead_contacted_count: int = 0
    sent_count: int = 0
    replied_count: int = 0
    positive_reply_count: int = 0
    bounced_count: int = 0
    unsubscribed_count: int = 0

    created_at: Optional[Union[datetime, str]] = None
    updated_at: Optional[Union[datetime, str]] = None
    last_activity_date: Optional[Union[datetime, str]] = None

    @model_validator(mode="before")
    @classmethod
    def _map_aliases(cls, data: Any) -> Any:
        data = _apply_wire_aliases(data)
        if isinstance(data, dict):
            # Missing count keys still go through coercion
            for name in COUNT_FIELDS:
                data.setdefault(name, None)
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _id_not_blank(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            raise ValueError("campaign id must not be empty")
        return str(v).strip()

    @field_validator("name", mode="before")
    @classmethod
    def _name_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> CampaignStatus:
        return normalize_status(v)

    @field_validator(*COUNT_FIELDS, mode="before")
    @classmethod
    def _counts(cls, v: Any) -> int:
        return coerce_count(v)

    @field_validator(*DATE_FIELDS, mode="before")
    @classmethod
    def _dates(cls, v: Any) -> Optional[Union[datetime, str]]:
        return normalize_timestamp(v)

    def parsed_date(self, field_name: str) -> Optional[datetime]:
        """The named date field if it holds a parsed timestamp, else None."""
        value = getattr(self, field_name, None)
        return value if isinstance(value, datetime) else None


# ==================== Windows & sorting ====================


@dataclass(frozen=True)
class DateWindow:
    """
    Date range [start, end], inclusive on both bounds.

    end_exclusive is only set on derived previous-period windows, which stop
    just before the current window's start.
    """
    start: datetime
    end: datetime
    end_exclusive: bool = False

    def __post_init__(self):
        if not isinstance(self.start, datetime) or not isinstance(self.end, datetime):
            raise ValidationError("Date window bounds must be datetimes")
        object.__setattr__(self, "start", _as_utc(self.start))
        object.__setattr__(self, "end", _as_utc(self.end))
        if self.start > self.end:
            raise ValidationError(
                f"Date window start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @classmethod
    def from_dates(cls, start_date: date, end_date: date) -> "DateWindow":
        """Whole calendar days: start 00:00:00 to end 23:59:59.999999 UTC."""
        if start_date > end_date:
            raise ValidationError("start date must be on or before end date")
        return cls(
            start=datetime.combine(start_date, time.min, tzinfo=timezone.utc),
            end=datetime.combine(end_date, time.max, tzinfo=timezone.utc),
        )

    @classmethod
    def from_iso_dates(cls, date_from: str, date_to: str) -> "DateWindow":
        """
        Build a calendar window from YYYY-MM-DD strings.

        Raises:
            ValidationError: On malformed dates or start after end
        """
        date_from = str(date_from or "").strip()
        date_to = str(date_to or "").strip()
        if not _DATE_RE.match(date_from) or not _DATE_RE.match(date_to):
            raise ValidationError("Invalid date format, expected YYYY-MM-DD")
        try:
            start_date = date.fromisoformat(date_from)
            end_date = date.fromisoformat(date_to)
        except ValueError as e:
            raise ValidationError(f"Invalid date: {e}")
        return cls.from_dates(start_date, end_date)

    @classmethod
    def last_n_days(cls, days: int, today: Optional[date] = None) -> "DateWindow":
        """The N calendar days ending today (inclusive)."""
        if days < 1:
            raise ValidationError("days must be >= 1")
        today = today or datetime.now(timezone.utc).date()
        return cls.from_dates(today - timedelta(days=days - 1), today)

    @property
    def length(self) -> timedelta:
        """Span covered, counting both bounds when the end is inclusive."""
        span = self.end - self.start
        if not self.end_exclusive:
            span += timedelta.resolution
        return span

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        if self.end_exclusive:
            return (self.end - timedelta.resolution).date()
        return self.end.date()

    def contains(self, value: Optional[datetime]) -> bool:
        if value is None:
            return False
        value = _as_utc(value)
        if value < self.start:
            return False
        if self.end_exclusive:
            return value < self.end
        return value <= self.end

    def __str__(self) -> str:
        return f"{self.start_date.isoformat()}..{self.end_date.isoformat()}"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Any) -> "SortOrder":
        if isinstance(value, SortOrder):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid sort order: {value!r}. Allowed: ['asc', 'desc']")

    def flipped(self) -> "SortOrder":
        return SortOrder.ASC if self is SortOrder.DESC else SortOrder.DESC


@dataclass(frozen=True)
class SortSpec:
    field: str = "created_at"
    order: SortOrder = SortOrder.DESC
