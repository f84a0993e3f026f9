"""Mapping utilities to turn enriched records into table rows."""
from typing import Any, Dict, Iterable, List, Optional

from foundrylog.core.models import EnrichedRecord

UNKNOWN = "unbekannt"

TABLE_HEADERS = [
    "ID",
    "Datum",
    "Ofen",
    "Temperatur",
    "Legierung",
    "Gewicht_kg",
    "Tonnen",
    "Tonnen_gerundet",
    "Material",
    "Temperaturbereich",
    "Bemerkungen",
]


def _clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return " ".join(value.split())


def _format_number(value: Optional[float], digits: int) -> str:
    if value is None:
        return UNKNOWN
    return f"{value:.{digits}f}"


def record_to_row(record: EnrichedRecord, precision: int = 2) -> Dict[str, Any]:
    """Map a single enriched record onto the table headers."""

    return {
        "ID": record.id,
        "Datum": _clean_text(record.datum),
        "Ofen": _clean_text(record.ofen),
        "Temperatur": _format_number(record.temp_n, 0),
        "Legierung": _format_number(record.alloy_n, 1),
        "Gewicht_kg": _format_number(record.weight_n, 0),
        "Tonnen": _format_number(record.tonnes, 3),
        "Tonnen_gerundet": _format_number(record.tonnes_rounded, precision),
        "Material": record.material,
        "Temperaturbereich": record.temp_bucket,
        "Bemerkungen": _clean_text(record.bemerkungen),
    }


def records_to_rows(records: Iterable[EnrichedRecord], precision: int = 2) -> List[Dict[str, Any]]:
    """Convert many records into template-aligned dictionaries."""

    return [record_to_row(record, precision) for record in records]
