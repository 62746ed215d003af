from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd
import pytest

from order_tracking_status import cli
from order_tracking_status.config.logging_config import ROOT_LOGGER_NAME
from order_tracking_status.io.paths import derive_output_paths

CPF_TRACKED = "12345678901"
CPF_AWAITING = "98765432100"
CPF_UPSTREAM_MISSING = "11122233344"


def run_cli(args):
    return cli.main(args)


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    # no stray .env from the working directory, no handlers left behind
    monkeypatch.chdir(tmp_path)
    for key in ("TPL_BASE_URL", "TPL_API_KEY", "TPL_TOKEN", "TPL_EMAIL", "DATABASE_URL"):
        monkeypatch.delenv(key, raising=False)
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for h in list(root.handlers):
        h.close()
        root.removeHandler(h)
    root.propagate = True


def test_lookup_tracked_prints_timeline(orders_file, replay_file, capsys):
    code = run_cli([
        "lookup", CPF_TRACKED, "--no-console",
        "--orders", str(orders_file), "--replay", str(replay_file),
    ])
    assert code == 0

    body = json.loads(capsys.readouterr().out)
    assert body["code"] == 200
    assert body["info"]["number"] == "ENX1-1"
    assert [e["internalcode"] for e in body["shippingevents"]] == [1, 70, 90]
    assert body["shippingevents"][-1]["complement"] == "Recebido por ANA"


def test_lookup_awaiting_dispatch(orders_file, replay_file, capsys):
    code = run_cli([
        "lookup", "987.654.321-00", "--no-console",
        "--orders", str(orders_file), "--replay", str(replay_file),
    ])
    assert code == 0
    body = json.loads(capsys.readouterr().out)
    assert body["shippingevents"][0]["code"] == "0"
    assert body["shippingevents"][0]["dtshipping"] == "2026-01-08T14:05:09"


def test_lookup_not_found_keeps_portuguese_text(orders_file, replay_file, capsys):
    code = run_cli([
        "lookup", "ninguem@example.com", "--no-console", "--indent", "0",
        "--orders", str(orders_file), "--replay", str(replay_file),
    ])
    assert code == 0
    out = capsys.readouterr().out
    assert "CPF ou e-mail não localizado." in out
    assert json.loads(out)["code"] == 404


def test_lookup_upstream_failure_returns_3(orders_file, replay_file, capsys):
    code = run_cli([
        "lookup", CPF_UPSTREAM_MISSING, "--no-console",
        "--orders", str(orders_file), "--replay", str(replay_file),
    ])
    assert code == 3
    assert capsys.readouterr().out == ""


def test_lookup_without_repository_source_returns_2(replay_file):
    code = run_cli(["lookup", CPF_TRACKED, "--no-console", "--replay", str(replay_file)])
    assert code == 2


def test_lookup_live_without_credentials_returns_2(orders_file):
    code = run_cli(["lookup", CPF_TRACKED, "--no-console", "--orders", str(orders_file)])
    assert code == 2


def test_strict_env_missing_returns_2(orders_file, replay_file):
    code = run_cli([
        "lookup", CPF_TRACKED, "--no-console", "--strict-env",
        "--orders", str(orders_file), "--replay", str(replay_file),
    ])
    assert code == 2


def test_report_missing_input_returns_2(tmp_path: Path):
    code = run_cli(["report", str(tmp_path / "nope.xlsx"), "--no-console"])
    assert code == 2


def test_report_writes_processed_workbook_and_log(tmp_path, orders_file, replay_file):
    src = tmp_path / "identificadores.xlsx"
    pd.DataFrame({"CPF": [CPF_TRACKED, CPF_AWAITING]}).to_excel(src, index=False)

    code = run_cli([
        "report", str(src), "--no-console", "--log-level", "DEBUG",
        "--orders", str(orders_file), "--replay", str(replay_file),
    ])
    assert code == 0

    processed, log = derive_output_paths(src)
    assert processed.exists()
    df = pd.read_excel(processed, sheet_name="Rastreios", dtype=str)
    assert df["Identificador"].tolist() == [CPF_TRACKED, CPF_AWAITING]
    assert log.exists()
    assert "Resolving 2 identifiers" in log.read_text(encoding="utf-8")


def test_report_unreadable_workbook_returns_1(tmp_path, orders_file, replay_file):
    src = tmp_path / "broken.xlsx"
    src.write_text("not a workbook")
    code = run_cli([
        "report", str(src), "--no-console",
        "--orders", str(orders_file), "--replay", str(replay_file),
    ])
    assert code == 1
