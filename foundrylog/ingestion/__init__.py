"""Document ingestion: AI extraction and sequential batch loading."""
from foundrylog.ingestion.extraction import Document, ExtractionError, Extractor, VisionExtractor
from foundrylog.ingestion.loader import BatchResult, extract_batch, load_documents

__all__ = [
    "BatchResult",
    "Document",
    "ExtractionError",
    "Extractor",
    "VisionExtractor",
    "extract_batch",
    "load_documents",
]
