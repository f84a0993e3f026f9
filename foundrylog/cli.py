"""Command-line entry point that runs the extraction pipeline over a folder of PDFs."""
import argparse
from pathlib import Path

from foundrylog.core.logging import configure_logging
from foundrylog.core.models import RoundingMode
from foundrylog.core.settings import Settings, SettingsError
from foundrylog.processing.pipeline import run_pipeline


def build_parser() -> argparse.ArgumentParser:
    """Create a small argument parser for the CLI entry point."""

    parser = argparse.ArgumentParser(description="Extract and classify foundry production protocols")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path("protocols"),
        help="Folder containing the scanned PDF protocols",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("output/production_records.csv"),
        help="CSV file to write classified records to",
    )
    parser.add_argument(
        "--sink",
        choices=["csv", "sheets", "excel"],
        default="csv",
        help="Where to forward rows after writing the CSV",
    )
    parser.add_argument(
        "--excel-output",
        type=Path,
        default=Path("output/production_records.xlsx"),
        help="Excel file to write when --sink=excel",
    )
    parser.add_argument("--spreadsheet-id", help="Google Sheets spreadsheet ID for the sheets sink")
    parser.add_argument("--worksheet", default="Sheet1", help="Worksheet title inside the Google Sheets document")
    parser.add_argument(
        "--service-account",
        type=Path,
        help="Path to a Google service account JSON key used for Sheets pushes",
    )
    parser.add_argument(
        "--rounding-mode",
        choices=[mode.value for mode in RoundingMode],
        help="Override the configured rounding mode",
    )
    parser.add_argument("--tombak-threshold", type=float, help="Override the Cu/Tombak threshold")
    parser.add_argument(
        "--dot-thousands",
        action="store_true",
        help="Read a lone dot in weights as a thousands separator (1.236 kg = 1236 kg)",
    )
    parser.add_argument(
        "--months",
        nargs="*",
        default=[],
        metavar="YYYY-MM",
        help="Only export records from these months",
    )
    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.rounding_mode:
        overrides["rounding_mode"] = args.rounding_mode
    if args.tombak_threshold is not None:
        overrides["tombak_threshold"] = args.tombak_threshold
    if args.dot_thousands:
        overrides["weight_dot_thousands"] = True
    return Settings.from_config().replace(**overrides)


def main() -> None:
    """Entrypoint for running the pipeline from the command line."""

    configure_logging()
    parser = build_parser()
    args = parser.parse_args()
    try:
        settings = _settings_from_args(args)
    except SettingsError as exc:
        parser.error(str(exc))
    output_path = run_pipeline(
        args.data_dir,
        args.output,
        settings=settings,
        sink=args.sink,
        months=args.months,
        spreadsheet_id=args.spreadsheet_id,
        worksheet_title=args.worksheet,
        service_account_path=args.service_account,
        excel_path=args.excel_output,
    )
    print(f"Wrote {output_path}")


if __name__ == "__main__":
    main()
