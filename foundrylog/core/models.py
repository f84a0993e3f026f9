"""Data models for production-log records extracted from machine protocols."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class RoundingMode(str, Enum):
    """Supported rounding rules for the tonnage column."""

    STANDARD = "standard"
    ALWAYS_UP = "always_up"

    @property
    def label(self) -> str:
        return _ROUNDING_LABELS[self]

    @classmethod
    def parse(cls, value: "RoundingMode | str") -> "RoundingMode":
        """Accept the enum value, its name, or the human label (case-insensitive)."""

        if isinstance(value, cls):
            return value
        lowered = str(value).strip().lower().replace("-", "_")
        for mode in cls:
            if lowered in {mode.value, mode.name.lower(), mode.label.lower()}:
                return mode
        raise ValueError(f"Unknown rounding mode: {value!r}")


_ROUNDING_LABELS = {
    RoundingMode.STANDARD: "Standard (Kaufmännisch)",
    RoundingMode.ALWAYS_UP: "Aufrunden (Always Up)",
}


class Material(str, Enum):
    """Material classes derived from the alloy value."""

    CU = "Cu"
    TOMBAK = "Tombak"
    MESSING = "Messing"
    UNKLAR = "Unklar"


@dataclass(frozen=True)
class RawRecord:
    """A single protocol row as delivered by document extraction.

    Every field is a string because the values come from OCR/AI output and may
    carry units, separators, or other noise.
    """

    id: str
    datum: str = ""
    ofen: str = ""
    temperatur: str = ""
    legierung: str = ""
    gewicht_kg: str = ""
    bemerkungen: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any], fallback_id: str = "") -> "RawRecord":
        """Build a record from a loosely shaped mapping, stringifying values."""

        def _text(key: str, *aliases: str) -> str:
            for name in (key, *aliases):
                value = data.get(name)
                if value is not None:
                    return str(value).strip()
            return ""

        return cls(
            id=_text("id") or fallback_id,
            datum=_text("datum", "date"),
            ofen=_text("ofen", "furnace"),
            temperatur=_text("temperatur", "temperature"),
            legierung=_text("legierung", "alloy"),
            gewicht_kg=_text("gewicht_kg", "gewichtKg", "weight"),
            bemerkungen=_text("bemerkungen", "remarks"),
        )


@dataclass(frozen=True)
class EnrichedRecord(RawRecord):
    """Raw record plus parsed numbers, material class, and temperature bucket.

    Numeric fields are ``None`` when the source text could not be parsed.
    """

    temp_n: Optional[float] = None
    alloy_n: Optional[float] = None
    weight_n: Optional[float] = None
    tonnes: Optional[float] = None
    tonnes_rounded: Optional[float] = None
    material: str = Material.UNKLAR.value
    temp_bucket: str = ""
