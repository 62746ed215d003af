from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional

from order_tracking_status.models import OrderRecord
from order_tracking_status.repository.base import (
    IDENTIFIER_CPF,
    classify_identifier,
    only_digits,
    recency_key,
)


def _parse_dt(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _parse_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class InMemoryOrderRepository:
    """List-backed repository for tests and offline runs (`--orders file.json`)."""

    records: List[OrderRecord] = field(default_factory=list)

    @classmethod
    def from_dicts(cls, rows: Iterable[dict[str, Any]]) -> "InMemoryOrderRepository":
        records = [
            OrderRecord(
                order_id=row.get("order_id"),
                cpf=only_digits(row["cpf"]) if row.get("cpf") else None,
                email=row.get("email"),
                tracking_code=row.get("tracking_code"),
                predicted_delivery_date=_parse_date(row.get("predicted_delivery_date")),
                registered_at=_parse_dt(row.get("registered_at")),
                updated_at=_parse_dt(row.get("updated_at")),
            )
            for row in rows
        ]
        return cls(records)

    @classmethod
    def from_json(cls, path: Path | str) -> "InMemoryOrderRepository":
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        rows = raw if isinstance(raw, list) else [raw]
        return cls.from_dicts(rows)

    def add(self, record: OrderRecord) -> None:
        self.records.append(record)

    def find_by_identifier(self, identifier: str) -> Optional[OrderRecord]:
        kind, value = classify_identifier(identifier)
        if not value:
            return None
        if kind == IDENTIFIER_CPF:
            matches = [r for r in self.records if only_digits(r.cpf or "") == value]
        else:
            matches = [r for r in self.records if (r.email or "").lower() == value]
        if not matches:
            return None
        return max(
            matches,
            key=lambda r: recency_key(r.updated_at, r.registered_at, r.order_id),
        )
