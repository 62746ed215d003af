from __future__ import annotations

import datetime as dt
import warnings
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from openpyxl import load_workbook

from order_tracking_status.api.errors import UpstreamUnavailable
from order_tracking_status.io.schema import (
    IDENTIFIER_COLUMN,
    IDENTIFIER_COLUMNS,
    REPORT_COLUMNS,
    RESULT_AWAITING,
    RESULT_COLUMN,
    RESULT_FAILED,
    RESULT_NOT_FOUND,
    RESULT_TRACKED,
    SHEET_ALL,
    SHEET_AWAITING,
    SHEET_FAILED,
    SHEET_MARKER,
    SHEET_NOT_FOUND,
)
from order_tracking_status.models import (
    KIND_AWAITING_DISPATCH,
    KIND_NOT_FOUND,
    TimelineEvent,
    TrackingResult,
)
from order_tracking_status.rules.status_mapper import describe_internal_code

_RESULT_BY_KIND = {
    KIND_NOT_FOUND: RESULT_NOT_FOUND,
    KIND_AWAITING_DISPATCH: RESULT_AWAITING,
}


def _clean_identifier(value: Any) -> str:
    if value is None:
        return ""
    s = str(value).strip()
    if s.lower() in ("nan", "none"):
        return ""
    # CPFs typed as numbers come back as "12345678901.0"
    if s.endswith(".0") and s[:-2].isdigit():
        s = s[:-2]
    return s


def latest_event(events: list[TimelineEvent]) -> Optional[TimelineEvent]:
    """
    The most recent event by `dtshipping`; falls back to the last one in
    source order when no date can be parsed. Naive stamps are read as UTC so
    they compare with offset-aware ones.
    """
    if not events:
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        stamps = pd.to_datetime(
            pd.Series([e.dtshipping for e in events], dtype="object"),
            errors="coerce",
            dayfirst=True,
            format="mixed",
            utc=True,
        )
    if stamps.isna().all():
        return events[-1]
    return events[int(stamps.idxmax())]


class ReportProcessor:
    """Resolves every identifier in a workbook and writes a processed copy."""

    def __init__(self, logger, *, service) -> None:
        self.logger = logger
        self.service = service

    def process(self, input_path: Path, processed_path: Path) -> dict[str, Any]:
        input_path = Path(input_path)
        processed_path = Path(processed_path)

        if not input_path.exists():
            self.logger.error("Input file does not exist: %s", input_path)
            raise FileNotFoundError(input_path)

        df_in = self._read_input(input_path)
        df_out = self.resolve_frame(df_in)

        now_utc = dt.datetime.now(dt.timezone.utc).isoformat()
        marker = self._build_marker(input_path, processed_path, now_utc, df_in, df_out)

        processed_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_workbook(processed_path, df_out, marker)

        self.logger.info("Wrote processed workbook → %s", processed_path)
        counts = df_out[RESULT_COLUMN].value_counts().to_dict() if len(df_out) else {}
        return {
            "output_path": str(processed_path),
            "timestamp_utc": now_utc,
            "rows": len(df_out),
            "results": {str(k): int(v) for k, v in counts.items()},
        }

    def _read_input(self, input_path: Path) -> pd.DataFrame:
        # dtype=str keeps CPF leading zeros intact
        df_in = pd.read_excel(input_path, sheet_name=0, engine="openpyxl", dtype=str)
        self.logger.debug(
            "Opened input workbook: %s (rows=%d, cols=%d)",
            input_path.name, len(df_in), len(df_in.columns),
        )
        return df_in

    @staticmethod
    def identifier_column(df: pd.DataFrame) -> Optional[str]:
        by_folded = {str(c).strip().casefold(): c for c in df.columns}
        for name in IDENTIFIER_COLUMNS:
            col = by_folded.get(name.casefold())
            if col is not None:
                return col
        return None

    def resolve_frame(self, df_in: pd.DataFrame) -> pd.DataFrame:
        col = self.identifier_column(df_in)
        if col is None:
            self.logger.warning(
                "No identifier column found (expected one of %s)", ", ".join(IDENTIFIER_COLUMNS))
            return pd.DataFrame(columns=REPORT_COLUMNS)

        identifiers = [_clean_identifier(v) for v in df_in[col].tolist()]
        identifiers = [i for i in identifiers if i]
        self.logger.info("Resolving %d identifiers from column %r", len(identifiers), col)

        rows = [self._resolve_one(identifier) for identifier in identifiers]
        out = pd.DataFrame(rows, columns=REPORT_COLUMNS)
        out["Eventos"] = pd.to_numeric(out["Eventos"], errors="coerce").fillna(0).astype("int64")
        return out

    def _resolve_one(self, identifier: str) -> dict[str, Any]:
        row: dict[str, Any] = {c: "" for c in REPORT_COLUMNS}
        row[IDENTIFIER_COLUMN] = identifier
        row["Eventos"] = 0
        try:
            result: TrackingResult = self.service.resolve(identifier)
        except UpstreamUnavailable as ex:
            self.logger.warning("TPL failure for row: %s", ex)
            row[RESULT_COLUMN] = RESULT_FAILED
            row["code"] = int(ex.status_code)
            row["Erro"] = str(ex)
            return row

        row[RESULT_COLUMN] = _RESULT_BY_KIND.get(result.kind, RESULT_TRACKED)
        row["code"] = result.code
        row["message"] = result.message or ""
        if result.info is not None:
            row["Pedido"] = result.info.number or ""
            row["Previsao"] = result.info.prediction or ""

        if result.is_not_found:
            return row

        row["Eventos"] = len(result.shippingevents)
        latest = latest_event(result.shippingevents)
        if latest is not None:
            row["StatusAtual"] = latest.dscode or ""
            row["TimelineCode"] = latest.code or ""
            row["DataStatus"] = latest.dtshipping or ""
            row["InternalCode"] = "" if latest.internalcode is None else latest.internalcode
            row["StatusTransportadora"] = describe_internal_code(latest.internalcode)
        return row

    def _build_marker(self, input_path: Path, processed_path: Path, now_utc: str,
                      df_in: pd.DataFrame, df_out: pd.DataFrame) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "_ots_marker": "ok",
                    "input_name": input_path.name,
                    "input_dir": str(input_path.parent),
                    "output_name": processed_path.name,
                    "timestamp_utc": now_utc,
                    "gateway": type(getattr(self.service, "gateway", None)).__name__,
                    "input_rows": len(df_in),
                    "output_rows": len(df_out),
                }
            ]
        )

    def _write_workbook(self, processed_path: Path, df_out: pd.DataFrame, marker: pd.DataFrame) -> None:
        views = {
            SHEET_ALL: df_out,
            SHEET_NOT_FOUND: df_out[df_out[RESULT_COLUMN] == RESULT_NOT_FOUND],
            SHEET_AWAITING: df_out[df_out[RESULT_COLUMN] == RESULT_AWAITING],
            SHEET_FAILED: df_out[df_out[RESULT_COLUMN] == RESULT_FAILED],
        }

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            with pd.ExcelWriter(processed_path, engine="openpyxl", mode="w") as xw:
                for name, frame in views.items():
                    frame.to_excel(xw, sheet_name=name, index=False, na_rep="")
                marker.to_excel(xw, sheet_name=SHEET_MARKER, index=False)

        # identifiers as Excel text so CPFs are not turned into numbers
        wb = load_workbook(processed_path)
        for name in views:
            ws = wb[name]
            header = [c.value for c in ws[1]]
            if IDENTIFIER_COLUMN not in header:
                continue
            col_idx = header.index(IDENTIFIER_COLUMN) + 1
            for r in range(2, ws.max_row + 1):
                cell = ws.cell(row=r, column=col_idx)
                cell.value = _clean_identifier(cell.value)
                cell.number_format = "@"
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            wb.save(processed_path)
