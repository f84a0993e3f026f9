"""Turn raw protocol rows into typed, classified records."""
from __future__ import annotations

import logging
import math
import re
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Optional

from foundrylog.core.models import EnrichedRecord, Material, RawRecord, RoundingMode
from foundrylog.core.settings import Settings, SettingsError

logger = logging.getLogger(__name__)

UNMATCHED_BUCKET = "Außerhalb"

_NOT_NUMERIC = re.compile(r"[^\d.,]")
_DOT_THOUSANDS = re.compile(r"\d{1,3}\.\d{3}")

_ROUNDING = {
    RoundingMode.STANDARD: ROUND_HALF_UP,
    RoundingMode.ALWAYS_UP: ROUND_CEILING,
}


def parse_number(text: Optional[str], dot_thousands: bool = False) -> Optional[float]:
    """Convert a noisy numeric string into a float, or ``None`` if impossible.

    Units, spaces, apostrophes, and other characters are dropped. When both
    ``.`` and ``,`` occur, the last one is the decimal separator; a separator
    repeated on its own marks thousands; a single separator is the decimal
    point (``"12,5"`` and ``"12.5"`` both give ``12.5``). With
    ``dot_thousands`` a lone ``.`` followed by exactly three digits is read as
    a thousands separator instead (``"1.236"`` gives ``1236``).
    """

    if text is None:
        return None
    cleaned = _NOT_NUMERIC.sub("", str(text))
    if not any(ch.isdigit() for ch in cleaned):
        return None

    if "." in cleaned and "," in cleaned:
        decimal_sep = "." if cleaned.rfind(".") > cleaned.rfind(",") else ","
        thousands_sep = "," if decimal_sep == "." else "."
        cleaned = cleaned.replace(thousands_sep, "")
    else:
        decimal_sep = "." if "." in cleaned else ","
        if cleaned.count(decimal_sep) > 1:
            cleaned = cleaned.replace(decimal_sep, "")
        elif dot_thousands and _DOT_THOUSANDS.fullmatch(cleaned):
            cleaned = cleaned.replace(".", "")

    # anything after a second decimal separator is noise
    head, sep, tail = cleaned.replace(",", ".").partition(".")
    cleaned = head + sep + tail.replace(".", "")
    if cleaned in {"", "."}:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def round_tonnes(tonnes: Optional[float], mode: RoundingMode | str, precision: int = 2) -> Optional[float]:
    """Round tonnes to ``precision`` decimals using the configured mode.

    ``standard`` rounds half up, ``always_up`` rounds toward the next unit of
    the precision whenever there is any remainder. Unknown values stay unknown.
    """

    try:
        rounding = _ROUNDING[RoundingMode.parse(mode)]
    except ValueError as exc:
        raise SettingsError(str(exc)) from exc
    if tonnes is None:
        return None
    quantum = Decimal(1).scaleb(-precision)
    try:
        return float(Decimal(repr(tonnes)).quantize(quantum, rounding=rounding))
    except InvalidOperation:
        # too many digits for the decimal context; nothing left to round
        return tonnes


def classify_material(alloy: Optional[float], settings: Settings) -> Material:
    """Classify an alloy value against the Tombak threshold and band."""

    if alloy is None:
        return Material.UNKLAR
    if alloy >= settings.tombak_threshold:
        return Material.CU
    if alloy >= settings.messing_below:
        return Material.TOMBAK
    return Material.MESSING


def bucket_label(temperature: float) -> str:
    return f"{temperature:g}°C"


def temperature_bucket(temperature: Optional[float], settings: Settings) -> str:
    """Return the label of the closest bucket within tolerance.

    Equal distances resolve to the earlier configured bucket. Temperatures
    outside every window, or unknown ones, get ``UNMATCHED_BUCKET``.
    """

    if temperature is None:
        return UNMATCHED_BUCKET
    best: Optional[float] = None
    best_distance = math.inf
    for bucket in settings.temp_buckets:
        distance = abs(temperature - bucket)
        if distance <= settings.temp_tolerance and distance < best_distance:
            best, best_distance = bucket, distance
    return bucket_label(best) if best is not None else UNMATCHED_BUCKET


def normalize_record(raw: RawRecord, settings: Settings) -> EnrichedRecord:
    """Parse and classify a single raw record. Never raises for bad data."""

    temp_n = parse_number(raw.temperatur)
    alloy_n = parse_number(raw.legierung)
    weight_n = parse_number(raw.gewicht_kg, dot_thousands=settings.weight_dot_thousands)
    tonnes = weight_n / 1000 if weight_n is not None else None

    return EnrichedRecord(
        id=raw.id,
        datum=raw.datum,
        ofen=raw.ofen,
        temperatur=raw.temperatur,
        legierung=raw.legierung,
        gewicht_kg=raw.gewicht_kg,
        bemerkungen=raw.bemerkungen,
        temp_n=temp_n,
        alloy_n=alloy_n,
        weight_n=weight_n,
        tonnes=tonnes,
        tonnes_rounded=round_tonnes(tonnes, settings.rounding_mode, settings.precision),
        material=classify_material(alloy_n, settings).value,
        temp_bucket=temperature_bucket(temp_n, settings),
    )


def process_raw_data(records: Iterable[RawRecord], settings: Settings) -> List[EnrichedRecord]:
    """Normalize a whole store of raw records from scratch."""

    enriched = [normalize_record(record, settings) for record in records]
    logger.debug("Normalized %d records (rounding=%s)", len(enriched), settings.rounding_mode.value)
    return enriched
