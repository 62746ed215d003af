# src/order_tracking_status/api/normalize.py
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from order_tracking_status.api.errors import UpstreamProtocolError
from order_tracking_status.models import OrderDetail, OrderInfo, ShippingEvent

SNIPPET_CHARS = 200


def snippet(text: Optional[str], limit: int = SNIPPET_CHARS) -> str:
    if not text:
        return ""
    return text[:limit]


def truncate_for_log(text: Optional[str], limit: int = 2000) -> Optional[str]:
    if text and len(text) > limit:
        return text[:limit] + "..."
    return text


def read_json_body(text: Optional[str], *, what: str) -> Any:
    """
    Decode a TPL response body, refusing anything that is not JSON.

    The TPL sometimes answers with an HTML error page or an empty body under a
    2xx status, so the first non-whitespace character must be `{` or `[`
    before we even try to decode.
    """
    stripped = (text or "").lstrip()
    if not stripped:
        raise UpstreamProtocolError(f"TPL {what}: empty response body")
    if stripped[0] not in "{[":
        raise UpstreamProtocolError(
            f"TPL {what}: response is not JSON", raw_snippet=snippet(stripped))
    try:
        return json.loads(stripped)
    except ValueError as ex:
        raise UpstreamProtocolError(
            f"TPL {what}: invalid JSON ({ex})", raw_snippet=snippet(stripped)
        ) from ex


def to_int(value: Any) -> Optional[int]:
    """Lenient int coercion for codes that arrive as 200, "200" or 200.0."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip().split(".", 1)[0])
    except (TypeError, ValueError):
        return None


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def parse_info(info: Any) -> Optional[OrderInfo]:
    if not isinstance(info, dict):
        return None
    return OrderInfo(
        id=_to_str(info.get("id")),
        number=_to_str(info.get("number")),
        date=_to_str(info.get("date")),
        prediction=_to_str(info.get("prediction")),
        iderp=_to_str(info.get("iderp")),
    )


def parse_event(ev: Dict[str, Any]) -> ShippingEvent:
    return ShippingEvent(
        internal_code=to_int(ev.get("internalCode", ev.get("internalcode"))),
        code=_to_str(ev.get("code")),
        info=_to_str(ev.get("info")),
        complement=_to_str(ev.get("complement")),
        date=_to_str(ev.get("date")),
        final=_to_str(ev.get("final")),
        volume=_to_str(ev.get("volume")),
    )


def parse_events(events: Any) -> List[ShippingEvent]:
    if not isinstance(events, list):
        return []
    return [parse_event(ev) for ev in events if isinstance(ev, dict)]


def parse_order(order: Dict[str, Any]) -> OrderDetail:
    """Build an OrderDetail from the `order` object of an orderdetail body.

    `code`/`message` are taken from the order envelope as-is; a missing code
    means the TPL had nothing to report, i.e. 200.
    """
    code = to_int(order.get("code"))
    return OrderDetail(
        info=parse_info(order.get("info")),
        events=parse_events(order.get("shippingevents")),
        code=200 if code is None else code,
        message=_to_str(order.get("message")),
        raw=order,
    )


def order_from_envelope(payload: Any) -> tuple[Optional[int], Optional[Dict[str, Any]]]:
    """
    Return (envelope code, order object) when the envelope is a success, or
    (code, None) when it is not. A non-object payload yields (None, None).
    """
    if not isinstance(payload, dict):
        return None, None
    code = to_int(payload.get("code"))
    order = payload.get("order")
    if code != 200 or not isinstance(order, dict):
        return code, None
    return code, order
