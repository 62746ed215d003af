# tests/unit/api/test_normalize.py
import pytest

from order_tracking_status.api.errors import UpstreamProtocolError
from order_tracking_status.api.normalize import (
    order_from_envelope,
    parse_order,
    read_json_body,
    to_int,
)


@pytest.mark.parametrize("body", ["", "   \n", None])
def test_read_json_body_rejects_empty(body):
    with pytest.raises(UpstreamProtocolError) as e:
        read_json_body(body, what="auth")
    assert "empty" in str(e.value)


def test_read_json_body_rejects_html_and_keeps_snippet():
    html = "<html><body>502 Bad Gateway</body></html>" + "x" * 500
    with pytest.raises(UpstreamProtocolError) as e:
        read_json_body(html, what="orderdetail")
    assert e.value.raw_snippet.startswith("<html>")
    assert len(e.value.raw_snippet) == 200
    # snippet is diagnostics only, not part of the message
    assert "<html>" not in str(e.value)


def test_read_json_body_rejects_garbled_json():
    with pytest.raises(UpstreamProtocolError):
        read_json_body('{"token": ', what="auth")


def test_read_json_body_accepts_leading_whitespace_and_arrays():
    assert read_json_body('  \n{"a": 1}', what="x") == {"a": 1}
    assert read_json_body("[1, 2]", what="x") == [1, 2]


@pytest.mark.parametrize("value,expected", [
    (200, 200), ("200", 200), (" 90 ", 90), (70.0, 70), ("70.0", 70),
    (None, None), ("abc", None), (True, None),
])
def test_to_int(value, expected):
    assert to_int(value) == expected


def test_parse_order_maps_info_events_and_envelope():
    order = {
        "code": 200,
        "message": "OK",
        "info": {"id": 8064892, "number": "ENX8064892-1", "date": "10/01/2026",
                 "prediction": "15/01/2026", "iderp": "PED-1"},
        "shippingevents": [
            {"internalCode": "90", "code": "DLV", "info": "Entregue",
             "complement": "Recebido por JOANNA", "date": "15/01/2026 14:30", "final": "1"},
            "garbage",
        ],
    }
    detail = parse_order(order)
    assert detail.code == 200
    assert detail.message == "OK"
    assert detail.info.id == "8064892"
    assert detail.info.number == "ENX8064892-1"
    assert len(detail.events) == 1
    ev = detail.events[0]
    assert ev.internal_code == 90
    assert ev.complement == "Recebido por JOANNA"
    assert ev.final == "1"


def test_parse_order_missing_code_defaults_to_200_and_message_passes_through():
    detail = parse_order({"message": "parcial", "shippingevents": None})
    assert detail.code == 200
    assert detail.message == "parcial"
    assert detail.info is None
    assert detail.events == []


def test_parse_order_keeps_carrier_error_code():
    detail = parse_order({"code": 206, "message": "Volume pendente", "shippingevents": []})
    assert detail.code == 206
    assert detail.message == "Volume pendente"


def test_order_from_envelope():
    assert order_from_envelope({"code": 200, "order": {"info": {}}}) == (200, {"info": {}})
    assert order_from_envelope({"code": "200", "order": {}}) == (200, {})
    assert order_from_envelope({"code": 404, "message": "not found"}) == (404, None)
    assert order_from_envelope({"code": 200, "order": None}) == (200, None)
    assert order_from_envelope([1, 2]) == (None, None)
