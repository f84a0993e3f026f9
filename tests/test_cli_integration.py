"""Integration-style tests that exercise the CLI pipeline entrypoint."""
import csv
import sys
from pathlib import Path

import pytest
from openpyxl import load_workbook

from foundrylog.core.models import RawRecord
from foundrylog.processing import pipeline


@pytest.fixture(autouse=True)
def _reset_argv(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure sys.argv starts clean for each CLI invocation."""

    monkeypatch.setattr(sys, "argv", ["foundrylog.cli"])


@pytest.fixture
def protocol_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_extractor_factory, raw_records) -> Path:
    """A folder with one PDF whose extraction is served by a fake backend."""

    data_dir = tmp_path / "protocols"
    data_dir.mkdir()
    (data_dir / "maerz.pdf").write_bytes(b"%PDF-1.4")
    extractor = fake_extractor_factory({"maerz.pdf": raw_records})
    monkeypatch.setattr(pipeline, "VisionExtractor", lambda: extractor)
    return data_dir


def test_cli_writes_csv_output(tmp_path: Path, protocol_dir: Path, run_cli) -> None:
    csv_output = tmp_path / "records.csv"

    run_cli(["--data-dir", str(protocol_dir), "--output", str(csv_output)])

    with csv_output.open(encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert len(rows) == 4
    assert rows[0]["Tonnen_gerundet"] == "1.24"


def test_cli_applies_setting_overrides(tmp_path: Path, protocol_dir: Path, run_cli) -> None:
    csv_output = tmp_path / "records.csv"

    run_cli(
        [
            "--data-dir",
            str(protocol_dir),
            "--output",
            str(csv_output),
            "--tombak-threshold",
            "90",
            "--rounding-mode",
            "always_up",
            "--months",
            "2024-03",
        ]
    )

    with csv_output.open(encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert [row["Material"] for row in rows] == ["Tombak", "Tombak"]


def test_cli_writes_excel_output(tmp_path: Path, protocol_dir: Path, run_cli) -> None:
    csv_output = tmp_path / "records.csv"
    excel_output = tmp_path / "records.xlsx"

    run_cli(
        [
            "--data-dir",
            str(protocol_dir),
            "--output",
            str(csv_output),
            "--sink",
            "excel",
            "--excel-output",
            str(excel_output),
        ]
    )

    sheet = load_workbook(excel_output).active
    assert sheet.title == "production_records"
    assert sheet.max_row - 1 == 4


def test_cli_rejects_invalid_configuration(protocol_dir: Path, run_cli, monkeypatch) -> None:
    monkeypatch.setenv("FOUNDRY_TEMP_TOLERANCE", "-3")

    with pytest.raises(SystemExit) as info:
        run_cli(["--data-dir", str(protocol_dir)])

    assert info.value.code == 2


def test_cli_reads_dot_as_thousands_when_asked(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_extractor_factory, run_cli
) -> None:
    data_dir = tmp_path / "protocols"
    data_dir.mkdir()
    (data_dir / "april.pdf").write_bytes(b"%PDF-1.4")
    extractor = fake_extractor_factory({"april.pdf": [RawRecord(id="1", datum="02.04.24", gewicht_kg="1.236 kg")]})
    monkeypatch.setattr(pipeline, "VisionExtractor", lambda: extractor)
    csv_output = tmp_path / "records.csv"

    run_cli(["--data-dir", str(data_dir), "--output", str(csv_output), "--dot-thousands"])

    with csv_output.open(encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert rows[0]["Tonnen_gerundet"] == "1.24"
