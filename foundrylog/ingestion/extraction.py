"""AI-backed extraction of protocol rows from scanned PDF documents."""
from __future__ import annotations

import asyncio
import base64
import json
import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import requests

from foundrylog.core.models import RawRecord
from foundrylog.core.settings import Settings
from foundrylog.core.utils import load_env_file

logger = logging.getLogger(__name__)
DEFAULT_SECRET_FILE = Path(__file__).resolve().parents[2] / "secrets" / "openai.env"
_AI_ENV_LOADED = False


class ExtractionError(RuntimeError):
    """Raised when a document cannot be turned into records."""

    def __init__(self, document: str, reason: str):
        super().__init__(f"{document}: {reason}")
        self.document = document
        self.reason = reason


@dataclass(frozen=True)
class Document:
    """An uploaded document: file name, raw bytes, and MIME type."""

    name: str
    data: bytes
    mime_type: str = "application/pdf"

    @classmethod
    def from_path(cls, path: Path) -> "Document":
        mime, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, data=path.read_bytes(), mime_type=mime or "application/pdf")

    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class Extractor(Protocol):
    """Capability that turns one document into raw candidate records."""

    async def extract(self, document: Document, settings: Settings) -> List[RawRecord]:
        ...


def ensure_ai_env() -> None:
    """Load AI credentials from a local secrets file once per process."""

    global _AI_ENV_LOADED
    if _AI_ENV_LOADED:
        return

    _AI_ENV_LOADED = True
    secret_location = os.getenv("AI_SECRET_FILE")
    path = Path(secret_location).expanduser() if secret_location else DEFAULT_SECRET_FILE
    load_env_file(path)


EXTRACTION_PROMPT = (
    "You read scanned machine protocols from a metal foundry. Return ONLY a JSON object "
    "of the form {\"records\": [...]} with one entry per protocol row. Each entry has the "
    "string fields 'datum' (DD.MM.YY as printed), 'ofen', 'temperatur', 'legierung', "
    "'gewichtKg', and 'bemerkungen'. Copy values exactly as written, including commas, "
    "and use an empty string for unreadable cells. Do not compute or convert anything."
)


class VisionExtractor:
    """Extraction over an OpenAI-compatible chat completions endpoint with file input."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = 180) -> None:
        ensure_ai_env()
        self.api_key = os.getenv("OPENAI_API_KEY")
        self.model = os.getenv("OPENAI_VISION_MODEL") or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.base_url = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
        self.timeout = timeout
        self.session = session or (requests.Session() if self.api_key else None)

    async def extract(self, document: Document, settings: Settings) -> List[RawRecord]:
        """Extract raw records from a document, raising ``ExtractionError`` on failure."""

        if not self.session or not self.api_key:
            raise ExtractionError(document.name, "OPENAI_API_KEY is not configured")
        # requests blocks, so the call runs in a worker thread
        content = await asyncio.to_thread(self._call_model, document, settings)
        return self._parse_records(document, content)

    def _call_model(self, document: Document, settings: Settings) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": EXTRACTION_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self._prompt(settings)},
                        self._content_node(document),
                    ],
                },
            ],
            "temperature": 0,
            "response_format": {"type": "json_object"},
        }
        logger.info("Requesting extraction for %s from model %s", document.name, self.model)
        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()["choices"][0]["message"]["content"]
        except requests.RequestException as exc:
            raise ExtractionError(document.name, f"request failed: {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ExtractionError(document.name, "unexpected response shape") from exc

    def _prompt(self, settings: Settings) -> str:
        targets = ", ".join(f"{bucket:g}" for bucket in settings.temp_buckets)
        return (
            "Extract every production row from this protocol. "
            f"Typical target temperatures are {targets} °C; use them only to read unclear digits."
        )

    def _content_node(self, document: Document) -> Dict[str, Any]:
        if document.mime_type.startswith("image/"):
            return {"type": "image_url", "image_url": {"url": document.data_url()}}
        return {"type": "file", "file": {"filename": document.name, "file_data": document.data_url()}}

    def _parse_records(self, document: Document, content: str) -> List[RawRecord]:
        try:
            parsed = json.loads(content)
        except (TypeError, ValueError) as exc:
            raise ExtractionError(document.name, "model answer is not valid JSON") from exc

        rows = parsed.get("records") if isinstance(parsed, dict) else parsed
        if not isinstance(rows, list):
            raise ExtractionError(document.name, "model answer has no record list")

        stem = Path(document.name).stem
        records = [
            RawRecord.from_dict(row, fallback_id=f"{stem}-{index}")
            for index, row in enumerate(rows, start=1)
            if isinstance(row, dict)
        ]
        logger.info("Extracted %d records from %s", len(records), document.name)
        return records
