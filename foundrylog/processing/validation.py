"""Plausibility checks that feed the validation view."""
import logging
from typing import Iterable, List, Tuple

from foundrylog.core.models import EnrichedRecord, Material
from foundrylog.processing.months import DEFAULT_CENTURY, month_key
from foundrylog.processing.normalize import UNMATCHED_BUCKET

logger = logging.getLogger(__name__)


def validate_record(record: EnrichedRecord, century: str = DEFAULT_CENTURY) -> List[str]:
    """Return a list of findings for a single enriched record."""

    issues: List[str] = []

    if record.weight_n is None:
        issues.append("unreadable weight")
    elif record.weight_n <= 0:
        issues.append("non-positive weight")

    if record.temp_n is None:
        issues.append("unreadable temperature")
    elif record.temp_bucket == UNMATCHED_BUCKET:
        issues.append("temperature outside all buckets")

    # Material falls back to Unklar exactly when the alloy did not parse.
    if record.material == Material.UNKLAR.value:
        issues.append("unknown material")

    if month_key(record.datum, century) is None:
        issues.append("malformed date")

    return issues


def validation_report(
    records: Iterable[EnrichedRecord], century: str = DEFAULT_CENTURY
) -> List[Tuple[EnrichedRecord, List[str]]]:
    """Pair every flagged record with its findings; clean records are left out."""

    flagged: List[Tuple[EnrichedRecord, List[str]]] = []
    for record in records:
        issues = validate_record(record, century)
        if issues:
            logger.debug("Record %s flagged: %s", record.id, "; ".join(issues))
            flagged.append((record, issues))
    return flagged
