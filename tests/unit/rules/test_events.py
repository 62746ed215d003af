from __future__ import annotations

import logging

from order_tracking_status.models import ShippingEvent
from order_tracking_status.rules.events import build_timeline, dedupe_events, to_timeline_event


def _ev(code, info="", date=""):
    return ShippingEvent(internal_code=code, info=info, date=date)


def test_dedupe_keeps_first_seen_per_internal_code_in_source_order():
    events = [
        _ev(90, "entregue 1", "15/01/2026 14:30"),
        _ev(90, "entregue 2", "15/01/2026 15:00"),
        _ev(5, "separando", "10/01/2026 09:00"),
    ]
    out = dedupe_events(events)
    assert [e.internal_code for e in out] == [90, 5]
    # first-seen wins, not the most recent date
    assert out[0].info == "entregue 1"


def test_dedupe_drops_unmapped_and_none_codes():
    events = [_ev(13), _ev(None), _ev(70), _ev(3), _ev(70)]
    out = dedupe_events(events)
    assert [e.internal_code for e in out] == [70]


def test_to_timeline_event_maps_fields():
    ev = ShippingEvent(
        internal_code=75,
        code="OUT",
        info="Saiu para entrega",
        complement="Rota 12",
        date="14/01/2026 08:12",
    )
    te = to_timeline_event(ev)
    assert te.code == "6"
    assert te.dscode == "Saiu para entrega"
    assert te.message == "Seu pedido saiu para entrega e chegará em breve"
    assert te.detalhe == "Saiu para entrega"
    assert te.complement == "Rota 12"
    assert te.dtshipping == "14/01/2026 08:12"
    assert te.internalcode == 75


def test_to_timeline_event_unmapped_is_none():
    assert to_timeline_event(_ev(13)) is None


def test_build_timeline_one_entry_per_distinct_mapped_code():
    events = [_ev(c) for c in (1, 5, 5, 13, 10, 20, 10, 90, 411, 90)]
    out = build_timeline(events)
    codes = [e.internalcode for e in out]
    assert codes == [1, 5, 10, 20, 90]
    assert len(codes) == len(set(codes))


def test_build_timeline_handles_none_and_logs_dropped(caplog):
    assert build_timeline(None) == []

    logger = logging.getLogger("ots.test.events")
    with caplog.at_level(logging.DEBUG, logger="ots.test.events"):
        build_timeline([_ev(13), _ev(90)], logger=logger)
    assert "13 (Pedido cancelado)" in caplog.text
