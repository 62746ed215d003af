from __future__ import annotations

import json
from pathlib import Path

import pytest

CPF_TRACKED = "12345678901"
CPF_AWAITING = "98765432100"
EMAIL_TRACKED = "ana@example.com"
CPF_UPSTREAM_MISSING = "11122233344"


def orderdetail_body(number, order_id, events):
    return {
        "code": 200,
        "message": "OK",
        "order": {
            "code": 200,
            "message": "OK",
            "info": {"id": order_id, "number": number, "date": "10/01/2026",
                     "prediction": "20/01/2026", "iderp": None},
            "shippingevents": events,
        },
    }


@pytest.fixture
def orders_file(tmp_path: Path) -> Path:
    rows = [
        {"order_id": 1, "cpf": CPF_TRACKED, "email": EMAIL_TRACKED,
         "tracking_code": "ENX1-1", "registered_at": "2026-01-09T10:00:00"},
        {"order_id": 2, "cpf": CPF_AWAITING, "email": "bruno@example.com",
         "tracking_code": None, "registered_at": "2026-01-08T14:05:09"},
        {"order_id": 3, "cpf": CPF_UPSTREAM_MISSING, "email": None,
         "tracking_code": "ENX3-1"},
    ]
    path = tmp_path / "orders.json"
    path.write_text(json.dumps(rows), encoding="utf-8")
    return path


@pytest.fixture
def replay_file(tmp_path: Path) -> Path:
    events = [
        {"internalCode": 1, "info": "Pedido recebido", "date": "10/01/2026 09:00"},
        {"internalCode": 13, "info": "Cancelado", "date": "10/01/2026 09:30"},
        {"internalCode": 70, "info": "Em trânsito", "date": "12/01/2026 18:00"},
        {"internalCode": 70, "info": "Em trânsito", "date": "13/01/2026 07:00"},
        {"internalCode": 90, "info": "Entregue", "complement": "Recebido por ANA",
         "date": "15/01/2026 14:30"},
    ]
    path = tmp_path / "orderdetail.json"
    path.write_text(json.dumps([orderdetail_body("ENX1-1", 1, events)]), encoding="utf-8")
    return path
