"""Streamlit dashboard for uploading protocols and exploring classified records."""
import asyncio
from pathlib import Path
from typing import List

import streamlit as st

# Allow running via "streamlit run foundrylog/ui/dashboard.py" without installing the package
# by ensuring the repository root is on ``sys.path``.
if __package__ in {None, ""}:
    import sys

    sys.path.append(str(Path(__file__).resolve().parents[2]))

from foundrylog.core.logging import configure_logging
from foundrylog.core.models import RoundingMode
from foundrylog.core.settings import Settings, SettingsError
from foundrylog.core.utils import get_config_value
from foundrylog.ingestion.extraction import Document, VisionExtractor, ensure_ai_env
from foundrylog.insights.summarizer import InsightSummarizer
from foundrylog.processing.aggregation import charges_by_bucket, summarize, tonnes_by_material, tonnes_by_month
from foundrylog.processing.pipeline import DashboardState
from foundrylog.processing.validation import validation_report
from foundrylog.reporting.templates import records_to_rows


def _session_state() -> DashboardState:
    """Create the dashboard state once per browser session."""

    if "dashboard" not in st.session_state:
        st.session_state.dashboard = DashboardState(settings=Settings.from_config())
    return st.session_state.dashboard


def _settings_sidebar(state: DashboardState) -> None:
    """Render the settings controls and apply valid changes to the state."""

    current = state.settings
    st.subheader("Einstellungen")
    modes = list(RoundingMode)
    mode = st.radio(
        "Rundung",
        options=modes,
        index=modes.index(current.rounding_mode),
        format_func=lambda value: value.label,
    )
    threshold = st.number_input("Tombak-Schwelle (%)", value=float(current.tombak_threshold), step=0.5)
    band = st.number_input("Tombak-Bandbreite (%)", value=float(current.tombak_band), min_value=0.0, step=0.5)
    buckets_text = st.text_input(
        "Temperaturbereiche (°C)", value=", ".join(f"{bucket:g}" for bucket in current.temp_buckets)
    )
    tolerance = st.number_input("Toleranz (°C)", value=float(current.temp_tolerance), min_value=0.0, step=1.0)
    dot_thousands = st.checkbox(
        "Punkt im Gewicht als Tausendertrennzeichen (1.236 kg = 1236 kg)",
        value=current.weight_dot_thousands,
    )

    try:
        buckets = [part.strip() for part in buckets_text.split(",") if part.strip()]
        state.update_settings(
            rounding_mode=mode,
            tombak_threshold=threshold,
            tombak_band=band,
            temp_buckets=buckets,
            temp_tolerance=tolerance,
            weight_dot_thousands=dot_thousands,
        )
    except SettingsError as exc:
        st.error(f"Ungültige Einstellung: {exc}")


def _upload_sidebar(state: DashboardState) -> None:
    """File selection plus an explicit import button so reruns do not re-import."""

    st.subheader("Import")
    uploads = st.file_uploader("PDF-Maschinenprotokolle", type=["pdf"], accept_multiple_files=True)
    if st.button("Protokolle importieren", type="primary", disabled=not uploads):
        documents = [
            Document(name=upload.name, data=upload.getvalue(), mime_type=upload.type or "application/pdf")
            for upload in uploads
        ]
        with st.spinner("KI extrahiert Maschinendaten..."):
            asyncio.run(state.upload(documents, VisionExtractor()))


def _batch_feedback(state: DashboardState) -> None:
    result = state.last_batch
    if not result:
        return
    if not result.alerts:
        st.success(result.message)
    elif result.records:
        st.warning(result.message)
    else:
        st.error(result.message)


def _insight_banner(state: DashboardState) -> None:
    if state.filtered and not state.insight_is_current:
        with st.spinner("KI analysiert Trends..."):
            asyncio.run(state.refresh_insight(InsightSummarizer()))
    if state.insight and state.insight_is_current:
        st.info(f"✨ {state.insight}")


def _charts_tab(state: DashboardState) -> None:
    records = state.filtered
    summary = summarize(records)
    cols = st.columns(4)
    cols[0].metric("Chargen", summary.records)
    cols[1].metric("Tonnen", f"{summary.total_tonnes:.2f}")
    cols[2].metric(
        "Ø Temperatur", f"{summary.mean_temperature:.0f} °C" if summary.mean_temperature is not None else "–"
    )
    cols[3].metric("Unklar", summary.unknown_material)

    chart_cols = st.columns(2)
    with chart_cols[0]:
        st.caption("Tonnen je Material")
        st.bar_chart({point.name: point.value for point in tonnes_by_material(records)})
    with chart_cols[1]:
        st.caption("Chargen je Temperaturbereich")
        st.bar_chart({point.name: point.value for point in charges_by_bucket(records, state.settings)})
    st.caption("Tonnen je Monat")
    st.bar_chart({point.name: point.value for point in tonnes_by_month(records, state.century)})


def _validation_tab(state: DashboardState) -> None:
    flagged = validation_report(state.filtered, state.century)
    if not flagged:
        st.success("Keine Auffälligkeiten in der aktuellen Auswahl.")
        return
    st.caption(f"{len(flagged)} Einträge mit Auffälligkeiten.")
    rows: List[dict] = []
    for record, issues in flagged:
        row = records_to_rows([record], state.settings.precision)[0]
        rows.append({"Hinweise": "; ".join(issues), **row})
    st.dataframe(rows, use_container_width=True, hide_index=True)


def main() -> None:
    """Launch the production dashboard."""

    configure_logging()
    ensure_ai_env()
    st.set_page_config(page_title="Produktions-Dashboard", layout="wide", initial_sidebar_state="expanded")
    state = _session_state()

    with st.sidebar:
        _settings_sidebar(state)
        _upload_sidebar(state)
        if not get_config_value("OPENAI_API_KEY"):
            st.warning("OPENAI_API_KEY fehlt: PDF-Import nicht möglich.")

    st.title("Produktions-Dashboard")
    _batch_feedback(state)

    if not state.raw_records:
        st.info("Ziehen Sie PDF-Maschinenprotokolle in die Seitenleiste, um die Analyse zu starten.")
        return

    selected = st.multiselect("Monate", options=state.available_months, default=list(state.selected_months))
    state.select_months(selected)
    records = state.filtered
    st.caption(f"{len(records)} Einträge für Auswahl ({len(state.enriched)} gesamt)")
    _insight_banner(state)

    if not records:
        st.info("Keine Daten für den gewählten Zeitraum vorhanden.")
        return

    dashboard_tab, data_tab, validation_tab = st.tabs(["Dashboard", "Daten", "Validierung"])
    with dashboard_tab:
        _charts_tab(state)
    with data_tab:
        st.dataframe(records_to_rows(records, state.settings.precision), use_container_width=True, hide_index=True)
    with validation_tab:
        _validation_tab(state)


if __name__ == "__main__":
    main()
