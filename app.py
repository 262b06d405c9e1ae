"""
Streamlit entry point — Forma 8 order tracker UI.

Presentation layer only:
  1. Status indicator (online / offline) and manual refresh
  2. Editable order table; every changed cell becomes an EditEvent
  3. CSV / Excel download of the merged order set

Contains NO business logic — sync, merge and edits all go through
processing.sync.SyncOrchestrator.
"""

import logging
import tempfile
from pathlib import Path

import pandas as pd
import streamlit as st

from config import settings
from config.schema import EDITABLE_FIELDS, EXPORT_COLUMNS, ORDER_STATUSES
from exceptions import OrderTrackerError
from output.csv_exporter import export_csv, records_to_frame
from processing.reconciler import EditEvent
from processing.state import AppState
from processing.sync import AutoRefresher, SyncOrchestrator, SyncStatus
from storage.order_store import open_store
from utils.excel_formatter import format_and_save
from utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)

_LABEL_TO_FIELD: dict[str, str] = dict(EXPORT_COLUMNS)
_EDITABLE_LABELS: list[str] = [label for label, field_name in EXPORT_COLUMNS if field_name in EDITABLE_FIELDS]


# ═══════════════════════════════════════════════════════════════════════════
# Page configuration
# ═══════════════════════════════════════════════════════════════════════════

st.set_page_config(
    page_title="Seguimiento de Pedidos F8",
    page_icon="📦",
    layout="wide",
)


# ═══════════════════════════════════════════════════════════════════════════
# Core wiring (one orchestrator per server process)
# ═══════════════════════════════════════════════════════════════════════════

@st.cache_resource
def _get_orchestrator() -> SyncOrchestrator:
    """Open the store, run the startup sync, and start the periodic refresh."""
    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    state = AppState(store=open_store(settings.ORDER_DB_PATH))
    orchestrator = SyncOrchestrator(state)
    orchestrator.start()

    refresher = AutoRefresher(orchestrator, settings.REFRESH_INTERVAL_SECONDS)
    refresher.start()
    return orchestrator


orchestrator = _get_orchestrator()


# ═══════════════════════════════════════════════════════════════════════════
# Header: status and refresh
# ═══════════════════════════════════════════════════════════════════════════

st.title("📦 Seguimiento de Pedidos F8")

status_col, refresh_col = st.columns([4, 1])

with refresh_col:
    if st.button("🔄 Actualizar", use_container_width=True):
        with st.spinner("Descargando datos…"):
            result = orchestrator.sync(trigger="manual")
        if result.status is SyncStatus.ONLINE:
            st.toast(result.message)
        else:
            st.toast("Error al actualizar datos", icon="⚠️")

last = orchestrator.last_result
with status_col:
    if last is None or last.status is SyncStatus.ONLINE:
        st.success("🟢 Conectado")
    elif last.status is SyncStatus.OFFLINE:
        st.warning(f"🔴 Offline — {last.message}")
    else:
        st.error(f"⚠️ {last.message}: {last.error}")

    if last is not None:
        st.caption(f"Última sincronización: {last.finished_at:%Y-%m-%d %H:%M} ({last.trigger})")
        if last.merge is not None and last.merge.orphaned_ids:
            st.caption(
                f"{len(last.merge.orphaned_ids)} pedidos locales ya no aparecen en la hoja de origen."
            )


# ═══════════════════════════════════════════════════════════════════════════
# Order table
# ═══════════════════════════════════════════════════════════════════════════

records = orchestrator.state.records

if not records:
    st.info("No hay datos disponibles. Conéctese a internet para cargar los datos iniciales.")
    st.stop()

original = records_to_frame(records)

column_config: dict = {
    "ESTADO": st.column_config.SelectboxColumn("ESTADO", options=ORDER_STATUSES),
    "PORCENTAJE AVANCE": st.column_config.ProgressColumn(
        "PORCENTAJE AVANCE", min_value=0, max_value=100, format="%d%%"
    ),
}

edited = st.data_editor(
    original,
    column_config=column_config,
    disabled=[label for label in original.columns if label not in _EDITABLE_LABELS],
    hide_index=True,
    use_container_width=True,
    key="orders_editor",
)


def _collect_edits(before: pd.DataFrame, after: pd.DataFrame) -> list[EditEvent]:
    """One EditEvent per changed editable cell."""
    events: list[EditEvent] = []
    for row_idx in before.index:
        record_id = str(before.at[row_idx, "FORMA 8 SALMI"])
        for label in _EDITABLE_LABELS:
            old_value = before.at[row_idx, label]
            new_value = after.at[row_idx, label]
            new_text = "" if pd.isna(new_value) else str(new_value)
            if str(old_value) != new_text:
                events.append(EditEvent(record_id, _LABEL_TO_FIELD[label], new_text))
    return events


pending = _collect_edits(original, edited)
if pending:
    failures = 0
    for event in pending:
        try:
            orchestrator.apply_edit(event)
        except OrderTrackerError as exc:
            failures += 1
            logger.error(f"Edit failed for '{event.record_id}': {exc}")
    if failures:
        st.toast("Error al guardar cambios", icon="⚠️")
    else:
        st.toast("Cambios guardados localmente")
    st.rerun()


# ═══════════════════════════════════════════════════════════════════════════
# Export
# ═══════════════════════════════════════════════════════════════════════════

st.divider()
csv_col, excel_col = st.columns(2)

with csv_col:
    st.download_button(
        "📥 Exportar CSV",
        data=export_csv(records).encode("utf-8"),
        file_name=settings.EXPORT_FILENAME,
        mime="text/csv",
        use_container_width=True,
    )

with excel_col:
    with tempfile.TemporaryDirectory() as tmp_dir:
        excel_path = format_and_save(records, Path(tmp_dir) / "pedidos_actualizados.xlsx")
        excel_bytes = excel_path.read_bytes()
    st.download_button(
        "📊 Exportar Excel",
        data=excel_bytes,
        file_name="pedidos_actualizados.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        use_container_width=True,
    )
