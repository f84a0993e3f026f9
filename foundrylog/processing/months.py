"""Month grouping keys and month-based filtering."""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from foundrylog.core.models import RawRecord
from foundrylog.core.utils import get_config_value

DEFAULT_CENTURY = "20"


def default_century() -> str:
    """Century prefix for two-digit years, overridable via ``FOUNDRY_CENTURY``."""

    return get_config_value("FOUNDRY_CENTURY", DEFAULT_CENTURY).strip() or DEFAULT_CENTURY


def expand_year(year: str, century: str = DEFAULT_CENTURY) -> str:
    """Prefix two-digit years with ``century``; other lengths pass through."""

    return f"{century}{year}" if len(year) == 2 else year


def month_key(date_string: Optional[str], century: str = DEFAULT_CENTURY) -> Optional[str]:
    """Derive a sortable ``YYYY-MM`` key from a ``day.month.year`` string.

    Only the shape is checked: the string must have exactly three
    dot-separated parts. Values such as month 13 pass through unchanged.

    >>> month_key("05.03.24")
    '2024-03'
    >>> month_key("5.3.2024")
    '2024-03'
    >>> month_key("bad-date") is None
    True
    """

    if not date_string:
        return None
    parts = [part.strip() for part in date_string.strip().split(".")]
    if len(parts) != 3:
        return None
    _, month, year = parts
    return f"{expand_year(year, century)}-{month.zfill(2)}"


def available_months(records: Iterable[RawRecord], century: str = DEFAULT_CENTURY) -> List[str]:
    """Distinct month keys across all records, most recent first."""

    keys = {month_key(record.datum, century) for record in records}
    keys.discard(None)
    return sorted(keys, reverse=True)


def filter_by_months(
    records: Sequence[RawRecord], selected: Iterable[str], century: str = DEFAULT_CENTURY
) -> List[RawRecord]:
    """Keep records whose month key is selected; an empty selection keeps everything."""

    wanted = set(selected)
    if not wanted:
        return list(records)
    return [record for record in records if month_key(record.datum, century) in wanted]
