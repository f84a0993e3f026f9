"""Short free-text insights over the currently filtered records."""
from __future__ import annotations

import asyncio
import json
import logging
import os
from collections import Counter
from typing import Dict, List, Optional, Protocol, Sequence

import requests

from foundrylog.core.models import EnrichedRecord
from foundrylog.core.utils import get_config_value
from foundrylog.ingestion.extraction import ensure_ai_env
from foundrylog.processing.aggregation import summarize, tonnes_by_material

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    """Capability that turns a set of records into a short summary text."""

    async def summarize(self, records: Sequence[EnrichedRecord]) -> str:
        ...


def _statistics(records: Sequence[EnrichedRecord]) -> Dict[str, object]:
    """Compact numbers sent to the model instead of the full rows."""

    summary = summarize(records)
    return {
        "records": summary.records,
        "total_tonnes": summary.total_tonnes,
        "mean_temperature": summary.mean_temperature,
        "unknown_material": summary.unknown_material,
        "tonnes_by_material": {point.name: point.value for point in tonnes_by_material(records)},
        "charges_by_bucket": dict(Counter(record.temp_bucket for record in records)),
    }


def heuristic_summary(records: Sequence[EnrichedRecord]) -> str:
    """Deterministic one-liner used when AI insights are disabled."""

    if not records:
        return ""
    stats = _statistics(records)
    materials: Dict[str, float] = stats["tonnes_by_material"]  # type: ignore[assignment]
    text = f"{stats['records']} Chargen mit {stats['total_tonnes']:.2f} t"
    if materials:
        leading = max(materials, key=materials.get)
        text += f", überwiegend {leading} ({materials[leading]:.2f} t)"
    if stats["unknown_material"]:
        text += f", {stats['unknown_material']} ohne lesbare Legierung"
    return text + "."


class InsightSummarizer:
    """AI summary of production figures with a deterministic fallback."""

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        ensure_ai_env()
        self.api_key = os.getenv("OPENAI_API_KEY")
        self.model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.base_url = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
        self.disabled = get_config_value("AI_INSIGHTS_DISABLED", "0") == "1"
        self.session = session or (requests.Session() if self.api_key else None)

    async def summarize(self, records: Sequence[EnrichedRecord]) -> str:
        if self.disabled or not self.session or not self.api_key:
            return heuristic_summary(records)
        return await asyncio.to_thread(self._call_model, list(records))

    def _call_model(self, records: List[EnrichedRecord]) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": (
                        "You are a foundry production analyst. Answer with ONE short German sentence "
                        "highlighting the most notable trend or anomaly in the given figures."
                    ),
                },
                {
                    "role": "user",
                    "content": json.dumps(_statistics(records), ensure_ascii=False),
                },
            ],
            "temperature": 0.2,
            "max_tokens": 120,
        }
        response = self.session.post(
            f"{self.base_url}/chat/completions",
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
            json=payload,
            timeout=30,
        )
        response.raise_for_status()
        return response.json()["choices"][0]["message"]["content"].strip()


async def fetch_insight(summarizer: Summarizer, records: Sequence[EnrichedRecord]) -> Optional[str]:
    """Run a summarizer, turning any failure into ``None`` ("no insight")."""

    if not records:
        return None
    try:
        text = await summarizer.summarize(records)
    except Exception as exc:
        logger.warning("Insight generation failed: %s", exc)
        return None
    return text or None
