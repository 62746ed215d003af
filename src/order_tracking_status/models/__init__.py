from .env_cfg import EnvCfg
from .tracking import (
    KIND_AWAITING_DISPATCH,
    KIND_NOT_FOUND,
    KIND_TRACKED,
    OrderDetail,
    OrderInfo,
    OrderRecord,
    ShippingEvent,
    TimelineEvent,
    TimelineStatus,
    TrackingResult,
)

__all__ = [
    "EnvCfg",
    "KIND_AWAITING_DISPATCH",
    "KIND_NOT_FOUND",
    "KIND_TRACKED",
    "OrderDetail",
    "OrderInfo",
    "OrderRecord",
    "ShippingEvent",
    "TimelineEvent",
    "TimelineStatus",
    "TrackingResult",
]
