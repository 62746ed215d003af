from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
from openpyxl import load_workbook

from order_tracking_status.api.client import ReplayClient
from order_tracking_status.io.paths import derive_output_paths
from order_tracking_status.models import TimelineEvent
from order_tracking_status.pipelines.report_processor import ReportProcessor, latest_event
from order_tracking_status.repository.memory import InMemoryOrderRepository
from order_tracking_status.services.resolution import TrackingResolutionService


def _processor(orders_file, replay_file):
    service = TrackingResolutionService(
        InMemoryOrderRepository.from_json(orders_file),
        ReplayClient(replay_file),
    )
    return ReportProcessor(logging.getLogger("ots.test.report"), service=service)


def _write_input(path: Path, column: str, values) -> Path:
    pd.DataFrame({column: values}).to_excel(path, index=False)
    return path


def _te(code, dt):
    return TimelineEvent(code=code, dscode=code, message="", detalhe="",
                         complement=None, dtshipping=dt, internalcode=None)


def test_latest_event_by_date_then_source_order():
    events = [_te("7", "15/01/2026 14:30"), _te("6", "14/01/2026 08:00")]
    assert latest_event(events).code == "7"
    undated = [_te("1", ""), _te("2", "n/a")]
    assert latest_event(undated).code == "2"
    assert latest_event([]) is None


def test_latest_event_mixes_offset_aware_and_naive_stamps():
    events = [
        _te("5", "2026-01-15T10:00:00-03:00"),
        _te("6", "15/01/2026 12:30"),
        _te("7", "2026-01-15T16:00:00Z"),
    ]
    # 10:00-03:00 is 13:00 UTC, naive 12:30 counts as UTC
    assert latest_event(events).code == "7"
    assert latest_event(events[:2]).code == "5"


def test_process_writes_all_sheets_with_one_row_per_identifier(tmp_path, orders_file, replay_file):
    src = _write_input(
        tmp_path / "entrada.xlsx",
        "cpf",
        ["123.456.789-01", "98765432100", "ninguem@example.com", "11122233344", None],
    )
    processed, _ = derive_output_paths(src)

    summary = _processor(orders_file, replay_file).process(src, processed)

    assert summary["rows"] == 4
    assert summary["results"] == {
        "Localizado": 1, "Em preparação": 1, "Não localizado": 1, "Falha TPL": 1,
    }

    sheets = pd.read_excel(processed, sheet_name=None, dtype=str)
    assert set(sheets) == {"Rastreios", "Não localizados", "Em preparação", "Falhas", "Marker"}

    df = sheets["Rastreios"].fillna("").set_index("Identificador")
    tracked = df.loc["123.456.789-01"]
    assert tracked["Resultado"] == "Localizado"
    assert tracked["Pedido"] == "ENX1-1"
    assert tracked["StatusAtual"] == "Entregue"
    assert tracked["InternalCode"] == "90"
    assert tracked["StatusTransportadora"] == "Entregue"
    assert tracked["Eventos"] == "3"

    awaiting = df.loc["98765432100"]
    assert awaiting["TimelineCode"] == "0"
    assert awaiting["DataStatus"] == "2026-01-08T14:05:09"

    assert df.loc["ninguem@example.com", "code"] == "404"
    failed = df.loc["11122233344"]
    assert failed["Resultado"] == "Falha TPL"
    assert failed["code"] == "404"
    assert "ENX3-1" in failed["Erro"]

    assert len(sheets["Falhas"]) == 1
    assert sheets["Marker"].loc[0, "_ots_marker"] == "ok"
    assert sheets["Marker"].loc[0, "gateway"] == "ReplayClient"


def test_identifier_cells_are_text(tmp_path, orders_file, replay_file):
    src = _write_input(tmp_path / "cpfs.xlsx", "Identificador", ["01234567890"])
    processed, _ = derive_output_paths(src)
    _processor(orders_file, replay_file).process(src, processed)

    ws = load_workbook(processed)["Rastreios"]
    cell = ws.cell(row=2, column=1)
    assert cell.value == "01234567890"
    assert cell.number_format == "@"


def test_missing_identifier_column_yields_empty_report(tmp_path, orders_file, replay_file):
    src = _write_input(tmp_path / "sem_coluna.xlsx", "Nome", ["Ana"])
    processed, _ = derive_output_paths(src)
    summary = _processor(orders_file, replay_file).process(src, processed)
    assert summary["rows"] == 0
    assert pd.read_excel(processed, sheet_name="Rastreios").empty
