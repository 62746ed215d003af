# src/order_tracking_status/api/client.py
from __future__ import annotations
from dataclasses import dataclass
from http import HTTPStatus
from pathlib import Path
from typing import Optional, Protocol, Any, List
import json

from order_tracking_status.api.errors import UpstreamLookupError, map_tpl_code
from order_tracking_status.api.normalize import order_from_envelope, parse_order
from order_tracking_status.api.transport import Cancellation
from order_tracking_status.models import OrderDetail


class CarrierGateway(Protocol):
    def fetch_order_detail(
        self,
        number: str,
        order_id: Optional[int] = None,
        cancel: Optional[Cancellation] = None,
    ) -> OrderDetail:
        ...


@dataclass
class ReplayClient:
    """Offline gateway serving recorded `/get/orderdetail` bodies.

    `replay_path` must be a single JSON file holding one body or an array of
    bodies. Each body is indexed by `order.info.number` and `order.info.id`,
    so lookups follow the same number-then-id order as the live client.
    """

    replay_path: Path
    _index: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        self.replay_path = Path(self.replay_path)
        if not self.replay_path.exists():
            raise ValueError(f"Replay file does not exist: {self.replay_path}")
        if not self.replay_path.is_file():
            raise ValueError(
                "ReplayClient requires a single JSON file with one or more orderdetail bodies."
            )

        raw = json.loads(self.replay_path.read_text(encoding="utf-8"))
        entries: List[Any] = raw if isinstance(raw, list) else [raw]

        idx: dict[str, Any] = {}
        for entry in entries:
            for key in self._keys_for(entry):
                idx.setdefault(key, entry)
        self._index = idx

    @staticmethod
    def _keys_for(payload: Any) -> List[str]:
        keys: List[str] = []
        if not isinstance(payload, dict):
            return keys
        order = payload.get("order")
        info = order.get("info") if isinstance(order, dict) else None
        if isinstance(info, dict):
            for field in ("number", "id"):
                value = info.get(field)
                if value not in (None, ""):
                    keys.append(str(value).strip())
        return keys

    def _lookup(self, key: Optional[str]) -> tuple[Optional[int], Optional[OrderDetail]]:
        if key is None or key not in (self._index or {}):
            return int(HTTPStatus.NOT_FOUND), None
        code, order = order_from_envelope(self._index[key])
        if order is None:
            return code, None
        return 200, parse_order(order)

    @property
    def known_numbers(self) -> List[str]:
        return sorted((self._index or {}).keys())

    def fetch_order_detail(
        self,
        number: str,
        order_id: Optional[int] = None,
        cancel: Optional[Cancellation] = None,
    ) -> OrderDetail:
        if cancel is not None:
            cancel.raise_if_cancelled()

        first_code, detail = self._lookup(str(number).strip())
        if detail is not None:
            return detail

        if order_id is not None:
            _, detail = self._lookup(str(order_id))
            if detail is not None:
                return detail

        code = first_code if first_code is not None else int(HTTPStatus.BAD_GATEWAY)
        raise UpstreamLookupError(
            f"replayed orderdetail missing for {number} (code {code})",
            tpl_code=code,
            status_code=map_tpl_code(code),
        )
