"""Insight summaries degrade gracefully instead of blocking the dashboard."""
import pytest

from foundrylog.insights.summarizer import InsightSummarizer, fetch_insight, heuristic_summary
from foundrylog.processing.normalize import process_raw_data


@pytest.fixture
def enriched(raw_records, settings):
    return process_raw_data(raw_records, settings)


def test_heuristic_summary_mentions_leading_material(enriched):
    text = heuristic_summary(enriched)
    assert text.startswith("4 Chargen mit 4.72 t")
    assert "überwiegend Tombak" in text
    assert "1 ohne lesbare Legierung" in text


def test_heuristic_summary_empty():
    assert heuristic_summary([]) == ""


@pytest.mark.asyncio
async def test_disabled_summarizer_uses_heuristics(enriched):
    summarizer = InsightSummarizer()
    assert summarizer.disabled
    assert await summarizer.summarize(enriched) == heuristic_summary(enriched)


@pytest.mark.asyncio
async def test_summarizer_calls_model_with_statistics(enriched, monkeypatch):
    monkeypatch.setenv("AI_INSIGHTS_DISABLED", "0")
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    captured = {}

    class Response:
        def raise_for_status(self):
            return None

        def json(self):
            return {"choices": [{"message": {"content": " Tombak dominiert im März. "}}]}

    class Session:
        def post(self, url, **kwargs):
            captured.update(kwargs)
            return Response()

    summarizer = InsightSummarizer(session=Session())
    text = await summarizer.summarize(enriched)

    assert text == "Tombak dominiert im März."
    assert '"records": 4' in captured["json"]["messages"][1]["content"]


@pytest.mark.asyncio
async def test_fetch_insight_turns_failures_into_none(enriched, caplog):
    class Failing:
        async def summarize(self, records):
            raise RuntimeError("quota exceeded")

    caplog.set_level("WARNING")
    assert await fetch_insight(Failing(), enriched) is None
    assert "quota exceeded" in caplog.text


@pytest.mark.asyncio
async def test_fetch_insight_skips_empty_selection():
    class Never:
        async def summarize(self, records):  # pragma: no cover - guardrail
            raise AssertionError("should not be called")

    assert await fetch_insight(Never(), []) is None
