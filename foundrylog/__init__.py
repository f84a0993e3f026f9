"""Production-log dashboard for foundry machine protocols."""
from foundrylog.core import (
    EnrichedRecord,
    Material,
    RawRecord,
    RoundingMode,
    Settings,
    SettingsError,
    configure_logging,
)
from foundrylog.ingestion import BatchResult, Document, ExtractionError, VisionExtractor, extract_batch
from foundrylog.insights import InsightSummarizer, fetch_insight
from foundrylog.processing.months import available_months, filter_by_months, month_key
from foundrylog.processing.normalize import UNMATCHED_BUCKET, normalize_record, process_raw_data
from foundrylog.processing.pipeline import DashboardState, run_pipeline
from foundrylog.processing.validation import validate_record
from foundrylog.reporting.sinks import write_csv
from foundrylog.reporting.templates import TABLE_HEADERS, records_to_rows

__all__ = [
    "BatchResult",
    "DashboardState",
    "Document",
    "EnrichedRecord",
    "ExtractionError",
    "InsightSummarizer",
    "Material",
    "RawRecord",
    "RoundingMode",
    "Settings",
    "SettingsError",
    "TABLE_HEADERS",
    "UNMATCHED_BUCKET",
    "VisionExtractor",
    "available_months",
    "configure_logging",
    "extract_batch",
    "fetch_insight",
    "filter_by_months",
    "month_key",
    "normalize_record",
    "process_raw_data",
    "records_to_rows",
    "run_pipeline",
    "validate_record",
    "write_csv",
]
