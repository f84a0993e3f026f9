"""Vision extraction adapter and sequential batch loading."""
import json
from pathlib import Path

import pytest
import requests

import foundrylog.ingestion.extraction as extraction
from foundrylog.core.models import RawRecord
from foundrylog.ingestion.extraction import Document, ExtractionError, VisionExtractor
from foundrylog.ingestion.loader import extract_batch, load_documents


class FakeResponse:
    def __init__(self, payload, status_error=None):
        self.payload = payload
        self.status_error = status_error

    def raise_for_status(self):
        if self.status_error:
            raise self.status_error

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        return self.response


def _chat_answer(content: str) -> dict:
    return {"choices": [{"message": {"content": content}}]}


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("OPENAI_BASE_URL", "https://example.com/v1")


@pytest.mark.asyncio
async def test_vision_extractor_maps_rows_to_raw_records(api_key, settings):
    rows = {
        "records": [
            {"datum": "05.03.24", "ofen": "O1", "temperatur": "612", "legierung": "86,5", "gewichtKg": "1.236"},
            {"id": "x-9", "datum": "06.03.24", "temperatur": 570, "bemerkungen": "Nachguss"},
        ]
    }
    session = FakeSession(FakeResponse(_chat_answer(json.dumps(rows))))
    extractor = VisionExtractor(session=session)

    records = await extractor.extract(Document("protokoll_maerz.pdf", b"%PDF-1.4"), settings)

    assert records[0] == RawRecord(
        id="protokoll_maerz-1",
        datum="05.03.24",
        ofen="O1",
        temperatur="612",
        legierung="86,5",
        gewicht_kg="1.236",
    )
    assert records[1].id == "x-9"
    assert records[1].temperatur == "570"
    assert records[1].gewicht_kg == ""

    url, kwargs = session.requests[0]
    assert url == "https://example.com/v1/chat/completions"
    content = kwargs["json"]["messages"][1]["content"]
    assert "570, 610, 650" in content[0]["text"]
    assert content[1]["file"]["file_data"].startswith("data:application/pdf;base64,")


@pytest.mark.asyncio
async def test_vision_extractor_requires_api_key(settings):
    extractor = VisionExtractor()
    with pytest.raises(ExtractionError, match="OPENAI_API_KEY"):
        await extractor.extract(Document("a.pdf", b""), settings)


@pytest.mark.asyncio
async def test_vision_extractor_wraps_http_errors(api_key, settings):
    error = requests.HTTPError("503 Service Unavailable")
    extractor = VisionExtractor(session=FakeSession(FakeResponse({}, status_error=error)))
    with pytest.raises(ExtractionError) as info:
        await extractor.extract(Document("a.pdf", b""), settings)
    assert info.value.document == "a.pdf"


@pytest.mark.asyncio
async def test_vision_extractor_rejects_non_json_answers(api_key, settings):
    extractor = VisionExtractor(session=FakeSession(FakeResponse(_chat_answer("Leider unlesbar."))))
    with pytest.raises(ExtractionError, match="not valid JSON"):
        await extractor.extract(Document("a.pdf", b""), settings)


def test_vision_extractor_reads_secret_file(tmp_path, monkeypatch):
    secret_file = tmp_path / "openai.env"
    secret_file.write_text("OPENAI_API_KEY=from-file\nOPENAI_MODEL=gpt-mini\n", encoding="utf-8")
    monkeypatch.setenv("AI_SECRET_FILE", str(secret_file))
    monkeypatch.delenv("OPENAI_MODEL", raising=False)
    monkeypatch.delenv("OPENAI_VISION_MODEL", raising=False)
    monkeypatch.setattr(extraction, "_AI_ENV_LOADED", False)

    extractor = VisionExtractor()

    assert extractor.api_key == "from-file"
    assert extractor.model == "gpt-mini"


@pytest.mark.asyncio
async def test_extract_batch_keeps_records_when_one_document_fails(settings, fake_extractor_factory):
    first = [RawRecord(id="a1"), RawRecord(id="a2")]
    third = [RawRecord(id="c1")]
    extractor = fake_extractor_factory({"a.pdf": first, "b.pdf": None, "c.pdf": third})
    documents = [Document("a.pdf", b""), Document("b.pdf", b""), Document("c.pdf", b"")]

    result = await extract_batch(documents, extractor, settings)

    assert [record.id for record in result.records] == ["a1", "a2", "c1"]
    assert extractor.calls == ["a.pdf", "b.pdf", "c.pdf"]
    assert result.documents == 3
    assert result.failed == 1
    assert "b.pdf" in result.message
    assert "2 of 3 documents" in result.message


@pytest.mark.asyncio
async def test_extract_batch_reports_unexpected_errors(settings, caplog):
    class Broken:
        async def extract(self, document, settings):
            raise KeyError("boom")

    caplog.set_level("ERROR")
    result = await extract_batch([Document("x.pdf", b"")], Broken(), settings)

    assert result.records == []
    assert result.alerts == ["x.pdf (unexpected error)"]
    assert "x.pdf" in caplog.text


def test_load_documents_reads_pdfs_sorted(tmp_path: Path):
    (tmp_path / "b.pdf").write_bytes(b"%PDF-b")
    (tmp_path / "a.pdf").write_bytes(b"%PDF-a")
    (tmp_path / "notes.txt").write_text("ignore me", encoding="utf-8")

    documents = load_documents(tmp_path)

    assert [document.name for document in documents] == ["a.pdf", "b.pdf"]
    assert documents[0].data == b"%PDF-a"
    assert documents[0].mime_type == "application/pdf"
