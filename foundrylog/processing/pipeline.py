"""Session state and batch orchestration for the production dashboard."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from foundrylog.core.models import EnrichedRecord, RawRecord
from foundrylog.core.settings import Settings, SettingsError
from foundrylog.ingestion.extraction import Document, Extractor, VisionExtractor
from foundrylog.ingestion.loader import BatchResult, extract_batch, load_documents
from foundrylog.insights.summarizer import Summarizer, fetch_insight
from foundrylog.processing.months import available_months, default_century, filter_by_months
from foundrylog.processing.normalize import process_raw_data
from foundrylog.reporting.sinks import push_to_google_sheets, write_csv, write_excel
from foundrylog.reporting.templates import records_to_rows

DEFAULT_SERVICE_ACCOUNT_PATHS = [
    Path("secrets/service_account.json"),
    Path("credentials/service_account.json"),
]

logger = logging.getLogger(__name__)


class DashboardState:
    """Owns the raw record store, the settings, and the month selection.

    The raw store only grows: every upload is appended as a single batch.
    Enriched records are always recomputed from the raw store and cached only
    for the exact ``(store version, settings)`` pair they were built with.
    """

    def __init__(self, settings: Optional[Settings] = None, century: Optional[str] = None) -> None:
        self._raw: List[RawRecord] = []
        self._version = 0
        self._settings = settings or Settings()
        self.century = century or default_century()
        self.selected_months: Tuple[str, ...] = ()
        self.insight: Optional[str] = None
        self.last_batch: Optional[BatchResult] = None
        self._insight_for: Optional[Tuple[Any, ...]] = None
        self._cache_key: Optional[Tuple[int, Settings]] = None
        self._cache: Tuple[EnrichedRecord, ...] = ()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def raw_records(self) -> Tuple[RawRecord, ...]:
        return tuple(self._raw)

    def set_settings(self, settings: Settings) -> None:
        if not isinstance(settings, Settings):
            raise SettingsError(f"Expected Settings, got {type(settings).__name__}")
        if settings != self._settings:
            logger.info("Settings changed; records will be reclassified")
        self._settings = settings

    def update_settings(self, **changes: Any) -> Settings:
        """Apply validated changes; invalid values leave the current settings untouched."""

        self.set_settings(self._settings.replace(**changes))
        return self._settings

    def append_records(self, records: Iterable[RawRecord]) -> int:
        """Append a batch of raw records in one step and return how many were added."""

        batch = list(records)
        if not batch:
            return 0
        self._raw = self._raw + batch
        self._version += 1
        logger.info("Appended %d records (store now holds %d)", len(batch), len(self._raw))
        return len(batch)

    @property
    def enriched(self) -> List[EnrichedRecord]:
        key = (self._version, self._settings)
        if self._cache_key != key:
            self._cache = tuple(process_raw_data(self._raw, self._settings))
            self._cache_key = key
        return list(self._cache)

    @property
    def available_months(self) -> List[str]:
        return available_months(self.enriched, self.century)

    def select_months(self, months: Iterable[str]) -> None:
        self.selected_months = tuple(sorted(set(months)))

    @property
    def filtered(self) -> List[EnrichedRecord]:
        return filter_by_months(self.enriched, self.selected_months, self.century)

    def _fingerprint(self) -> Tuple[Any, ...]:
        return (self._version, self._settings, self.selected_months)

    @property
    def insight_is_current(self) -> bool:
        """Whether ``insight`` was computed for the current filtered set."""

        return self._insight_for == self._fingerprint()

    async def upload(self, documents: Sequence[Document], extractor: Extractor) -> BatchResult:
        """Extract a batch of documents and append every successful record at once."""

        result = await extract_batch(documents, extractor, self._settings)
        self.append_records(result.records)
        self.last_batch = result
        return result

    async def refresh_insight(self, summarizer: Summarizer) -> Optional[str]:
        """Recompute the insight for the current filtered set.

        If the filtered set changes while the summarizer runs, the late answer
        is dropped and the previous insight is kept.
        """

        fingerprint = self._fingerprint()
        insight = await fetch_insight(summarizer, self.filtered)
        if self._fingerprint() != fingerprint:
            logger.info("Discarding insight computed for an outdated selection")
            return self.insight
        self.insight = insight
        self._insight_for = fingerprint
        return insight


def _default_service_account_path() -> Optional[Path]:
    for candidate in DEFAULT_SERVICE_ACCOUNT_PATHS:
        if candidate.exists():
            return candidate
    return None


def _resolve_sheets_target(
    spreadsheet_id: Optional[str],
    worksheet_title: str,
    explicit_account_path: Optional[Path],
) -> Dict[str, Any]:
    if not spreadsheet_id:
        raise ValueError("spreadsheet_id is required when sink='sheets'")

    account_path = explicit_account_path or _default_service_account_path()
    if not account_path:
        raise ValueError(
            "Provide --service-account pointing to your Google credentials or place a file at "
            f"{DEFAULT_SERVICE_ACCOUNT_PATHS[0]}"
        )

    return {
        "spreadsheet_id": spreadsheet_id,
        "worksheet_title": worksheet_title,
        "service_account_path": account_path,
    }


def run_pipeline(
    data_dir: Path,
    output_path: Path,
    settings: Settings | None = None,
    sink: str = "csv",
    extractor: Extractor | None = None,
    months: Sequence[str] = (),
    spreadsheet_id: str | None = None,
    worksheet_title: str = "Sheet1",
    service_account_path: Path | None = None,
    excel_path: Path | None = None,
) -> Path:
    """Extract every PDF in a folder, classify the rows, and write a CSV table."""

    logger.info("Pipeline starting for data dir %s", data_dir)
    state = DashboardState(settings=settings)
    documents = load_documents(data_dir)
    result = asyncio.run(state.upload(documents, extractor or VisionExtractor()))
    for alert in result.alerts:
        logger.warning("Alert: %s", alert)

    if not state.raw_records:
        message = (
            f"No records extracted from {data_dir}. "
            "Verify the directory exists and contains readable PDF protocols."
        )
        logger.error(message)
        raise ValueError(message)

    state.select_months(months)
    records = state.filtered
    logger.info("Classified %d records (%d after month filter)", len(state.enriched), len(records))
    rows = records_to_rows(records, state.settings.precision)
    write_csv(rows, output_path)
    logger.info("Wrote CSV output to %s", output_path)

    if sink == "excel":
        excel_target = excel_path or output_path.with_suffix(".xlsx")
        write_excel(rows, excel_target)
        logger.info("Wrote Excel output to %s", excel_target)
    elif sink == "sheets":
        target = _resolve_sheets_target(spreadsheet_id, worksheet_title, service_account_path)
        push_to_google_sheets(rows, **target)
        logger.info(
            "Pushed %d rows to Google Sheets document %s (worksheet %s)",
            len(rows),
            target["spreadsheet_id"],
            target["worksheet_title"],
        )
    return output_path
