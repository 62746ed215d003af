from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Any, Optional


KIND_NOT_FOUND = "not_found"
KIND_AWAITING_DISPATCH = "awaiting_dispatch"
KIND_TRACKED = "tracked"


@dataclass(frozen=True)
class OrderRecord:
    """A redemption as the repository sees it (read-only for this package)."""
    order_id: Optional[int]
    cpf: Optional[str]
    email: Optional[str]
    tracking_code: Optional[str]
    predicted_delivery_date: Optional[date] = None
    registered_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_tracking_code(self) -> bool:
        return bool((self.tracking_code or "").strip())


@dataclass(frozen=True)
class ShippingEvent:
    # raw TPL event; `date` keeps the carrier's own string format
    internal_code: Optional[int]
    code: Optional[str] = None
    info: Optional[str] = None
    complement: Optional[str] = None
    date: Optional[str] = None
    final: Optional[str] = None
    volume: Optional[str] = None


@dataclass(frozen=True)
class TimelineStatus:
    code: str      # timeline code consumed by the frontend
    title: str
    message: str


@dataclass(frozen=True)
class OrderInfo:
    id: Optional[str] = None
    number: Optional[str] = None
    date: Optional[str] = None
    prediction: Optional[str] = None
    iderp: Optional[str] = None

    @classmethod
    def empty(cls) -> "OrderInfo":
        return cls(id="", number="", date="", prediction="", iderp=None)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OrderDetail:
    """Parsed `/get/orderdetail` order object."""
    info: Optional[OrderInfo]
    events: list[ShippingEvent]
    code: int = 200
    message: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(frozen=True)
class TimelineEvent:
    code: Optional[str]
    dscode: Optional[str]
    message: Optional[str]
    detalhe: Optional[str]
    complement: Optional[str]
    dtshipping: Optional[str]
    internalcode: Optional[int]

    @classmethod
    def placeholder(cls) -> "TimelineEvent":
        return cls(
            code="",
            dscode="",
            message="",
            detalhe="",
            complement=None,
            dtshipping="",
            internalcode=None,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TrackingResult:
    kind: str
    code: int
    message: Optional[str]
    info: Optional[OrderInfo]
    shippingevents: list[TimelineEvent]

    @property
    def is_not_found(self) -> bool:
        return self.kind == KIND_NOT_FOUND

    def to_dict(self) -> dict[str, Any]:
        """Frontend JSON shape; `kind` is internal and not emitted."""
        return {
            "code": self.code,
            "message": self.message,
            "info": self.info.to_dict() if self.info is not None else None,
            "shippingevents": [e.to_dict() for e in self.shippingevents],
        }
