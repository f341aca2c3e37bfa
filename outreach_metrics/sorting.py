"""
Generic stable sort over heterogeneous record fields.

Records may be mappings (raw API rows) or attribute objects (Campaign models).
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import date
from enum import Enum
from typing import Any, Iterable, List, Tuple

from .models import DATE_FIELDS, WIRE_ALIASES, SortOrder, SortSpec, parse_timestamp, to_epoch_ms

_MISSING = object()

# Key ranks: numbers and dates sort before text when a field mixes both
_RANK_NUMERIC = 0
_RANK_TEXT = 1


def field_value(record: Any, field: str) -> Any:
    """Read a field from a mapping or object; wire aliases are honoured."""
    names = [field] + [model for wire, model in WIRE_ALIASES.items() if wire == field]
    for name in names:
        if isinstance(record, Mapping):
            value = record.get(name, _MISSING)
        else:
            value = getattr(record, name, _MISSING)
        if value is not _MISSING:
            return value
    return None


def sort_key(value: Any, field: str) -> Tuple[int, Any]:
    """
    Comparable key for a defined (non-None) value.

    Date fields compare by epoch milliseconds; an unparsable date is the lowest
    possible value.
    """
    if field in DATE_FIELDS or isinstance(value, date):
        parsed = parse_timestamp(value)
        if parsed is None:
            return (_RANK_NUMERIC, -math.inf)
        return (_RANK_NUMERIC, to_epoch_ms(parsed))
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return (_RANK_NUMERIC, float(value))
    if isinstance(value, (int, float)):
        if math.isnan(value):
            return (_RANK_NUMERIC, -math.inf)
        return (_RANK_NUMERIC, float(value))
    return (_RANK_TEXT, str(value).casefold())


def sort_records(records: Iterable[Any], spec: SortSpec) -> List[Any]:
    """
    Sort records by spec.field in spec.order.

    Stable: records with equal keys keep their input order. Records whose
    value is None (or missing) always come after every defined value,
    whichever the direction. The input is never mutated.
    """
    order = SortOrder.parse(spec.order)

    defined: List[Tuple[Tuple[int, Any], Any]] = []
    undefined: List[Any] = []
    for record in records:
        value = field_value(record, spec.field)
        if value is None:
            undefined.append(record)
        else:
            defined.append((sort_key(value, spec.field), record))

    # sorted() with reverse=True keeps equal elements in input order
    ordered = sorted(defined, key=lambda item: item[0], reverse=(order == SortOrder.DESC))
    return [record for _, record in ordered] + undefined


def toggle_sort(current: SortSpec, field: str) -> SortSpec:
    """Same field flips the order; a new field starts DESC."""
    if field == current.field:
        return SortSpec(field=field, order=SortOrder.parse(current.order).flipped())
    return SortSpec(field=field, order=SortOrder.DESC)
