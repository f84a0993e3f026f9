"""Chart-ready aggregations over enriched records."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from foundrylog.core.models import EnrichedRecord, Material
from foundrylog.core.settings import Settings
from foundrylog.processing.months import DEFAULT_CENTURY, month_key
from foundrylog.processing.normalize import UNMATCHED_BUCKET, bucket_label


@dataclass(frozen=True)
class ChartPoint:
    """One bar or slice in a dashboard chart."""

    name: str
    value: float
    material: Optional[str] = None


@dataclass(frozen=True)
class Summary:
    records: int
    total_tonnes: float
    mean_temperature: Optional[float]
    unknown_material: int


def _round(value: float) -> float:
    return round(value, 3)


def tonnes_by_material(records: Iterable[EnrichedRecord]) -> List[ChartPoint]:
    """Sum rounded tonnes per material in a fixed material order."""

    totals: Dict[str, float] = {material.value: 0.0 for material in Material}
    for record in records:
        if record.tonnes_rounded is not None:
            totals[record.material] = totals.get(record.material, 0.0) + record.tonnes_rounded
    return [
        ChartPoint(name=name, value=_round(value), material=name)
        for name, value in totals.items()
        if value
    ]


def tonnes_by_month(records: Iterable[EnrichedRecord], century: str = DEFAULT_CENTURY) -> List[ChartPoint]:
    """Sum rounded tonnes per month key, oldest month first."""

    totals: Dict[str, float] = {}
    for record in records:
        key = month_key(record.datum, century)
        if key is None or record.tonnes_rounded is None:
            continue
        totals[key] = totals.get(key, 0.0) + record.tonnes_rounded
    return [ChartPoint(name=key, value=_round(totals[key])) for key in sorted(totals)]


def charges_by_bucket(records: Iterable[EnrichedRecord], settings: Settings) -> List[ChartPoint]:
    """Count records per temperature bucket; the unmatched bucket comes last."""

    order = [bucket_label(bucket) for bucket in settings.temp_buckets] + [UNMATCHED_BUCKET]
    counts: Dict[str, int] = {label: 0 for label in order}
    for record in records:
        counts[record.temp_bucket] = counts.get(record.temp_bucket, 0) + 1
    return [ChartPoint(name=label, value=float(count)) for label, count in counts.items()]


def summarize(records: Iterable[EnrichedRecord]) -> Summary:
    """Headline numbers for the dashboard header and the insight prompt."""

    record_list = list(records)
    temperatures = [record.temp_n for record in record_list if record.temp_n is not None]
    total = sum(record.tonnes_rounded for record in record_list if record.tonnes_rounded is not None)
    return Summary(
        records=len(record_list),
        total_tonnes=_round(total),
        mean_temperature=_round(sum(temperatures) / len(temperatures)) if temperatures else None,
        unknown_material=sum(1 for record in record_list if record.material == Material.UNKLAR.value),
    )
