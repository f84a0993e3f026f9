"""Sequential batch extraction with per-document error isolation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from foundrylog.core.models import RawRecord
from foundrylog.core.settings import Settings
from foundrylog.ingestion.extraction import Document, ExtractionError, Extractor

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Records extracted from one upload batch plus alerts for failed documents."""

    documents: int = 0
    records: List[RawRecord] = field(default_factory=list)
    alerts: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.alerts)

    @property
    def message(self) -> str:
        """One human-readable line describing the whole batch."""

        imported = f"Imported {len(self.records)} records from {self.documents - self.failed} of {self.documents} documents"
        if not self.alerts:
            return f"{imported}."
        return f"{imported}. Failed: {'; '.join(self.alerts)}"


async def extract_batch(
    documents: Iterable[Document], extractor: Extractor, settings: Settings
) -> BatchResult:
    """Extract documents one after another, collecting records and failures.

    A failing document is recorded as an alert and does not discard the
    records already extracted from other documents.
    """

    result = BatchResult()
    for document in documents:
        result.documents += 1
        try:
            records = await extractor.extract(document, settings)
        except ExtractionError as exc:
            logger.error("Extraction failed for %s: %s", document.name, exc.reason)
            result.alerts.append(f"{document.name} ({exc.reason})")
            continue
        except Exception:
            logger.exception("Unexpected extraction failure for %s", document.name)
            result.alerts.append(f"{document.name} (unexpected error)")
            continue
        result.records.extend(records)

    logger.info(
        "Batch finished: %d records from %d documents, %d failed",
        len(result.records),
        result.documents,
        result.failed,
    )
    return result


def load_documents(data_dir: Path) -> List[Document]:
    """Read every PDF under ``data_dir`` (sorted by name) into document handles."""

    logger.info("Loading documents from %s", data_dir)
    return [Document.from_path(path) for path in sorted(data_dir.glob("*.pdf"))]
