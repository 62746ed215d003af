from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from order_tracking_status.api.client import CarrierGateway
from order_tracking_status.api.errors import RequestCancelled, UpstreamUnavailable
from order_tracking_status.api.transport import Cancellation
from order_tracking_status.models import (
    KIND_AWAITING_DISPATCH,
    KIND_NOT_FOUND,
    KIND_TRACKED,
    OrderInfo,
    OrderRecord,
    TimelineEvent,
    TrackingResult,
)
from order_tracking_status.repository.base import OrderRepository, classify_identifier
from order_tracking_status.rules.events import build_timeline
from order_tracking_status.rules.status_mapper import preparation_status

NOT_FOUND_CODE = 404
NOT_FOUND_MESSAGE = "CPF ou e-mail não localizado."
OK_CODE = 200
OK_MESSAGE = "OK"

# internalcode reported on the synthetic "Em preparação" event; 5 is the TPL's
# "awaiting picking", which also maps to timeline "0".
DEFAULT_PREPARATION_INTERNAL_CODE = 5

DTSHIPPING_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrackingResolutionService:
    """Resolve a CPF or e-mail into the customer tracking timeline.

    Three outcomes, none of them raised:
      - not found: the repository knows no order for the identifier;
      - awaiting dispatch: order found, no tracking code yet;
      - tracked: TPL events filtered, de-duplicated (first seen wins) and
        mapped, keeping the TPL's order.

    Only TPL failures escape, as UpstreamUnavailable subclasses; a cancelled
    request escapes as RequestCancelled.
    """

    def __init__(
        self,
        repository: OrderRepository,
        gateway: CarrierGateway,
        *,
        preparation_internal_code: int = DEFAULT_PREPARATION_INTERNAL_CODE,
        clock: Callable[[], datetime] = _utcnow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.repository = repository
        self.gateway = gateway
        self.preparation_internal_code = preparation_internal_code
        self.clock = clock
        self.logger = logger or logging.getLogger(
            "order_tracking_status.services.resolution")

    def resolve(self, identifier: str, cancel: Optional[Cancellation] = None) -> TrackingResult:
        kind, _ = classify_identifier(identifier)
        if not (identifier or "").strip():
            return self.not_found()

        record = self.repository.find_by_identifier(identifier)
        if record is None:
            self.logger.info("No order for %s identifier", kind)
            return self.not_found()

        if not record.has_tracking_code:
            self.logger.info(
                "Order %s has no tracking code yet; reporting preparation", record.order_id)
            return self.awaiting_dispatch(record)

        return self.tracked(record, cancel)

    # -- outcomes ------------------------------------------------------------

    @staticmethod
    def not_found() -> TrackingResult:
        return TrackingResult(
            kind=KIND_NOT_FOUND,
            code=NOT_FOUND_CODE,
            message=NOT_FOUND_MESSAGE,
            info=OrderInfo.empty(),
            shippingevents=[TimelineEvent.placeholder()],
        )

    def awaiting_dispatch(self, record: OrderRecord) -> TrackingResult:
        status = preparation_status()
        registered = record.registered_at or self.clock()
        event = TimelineEvent(
            code=status.code,
            dscode=status.title,
            message=status.message,
            detalhe="",
            complement=None,
            dtshipping=registered.strftime(DTSHIPPING_FORMAT),
            internalcode=self.preparation_internal_code,
        )
        return TrackingResult(
            kind=KIND_AWAITING_DISPATCH,
            code=OK_CODE,
            message=OK_MESSAGE,
            info=OrderInfo.empty(),
            shippingevents=[event],
        )

    def tracked(self, record: OrderRecord, cancel: Optional[Cancellation] = None) -> TrackingResult:
        tracking_code = (record.tracking_code or "").strip()
        try:
            detail = self.gateway.fetch_order_detail(
                tracking_code, record.order_id, cancel)
        except RequestCancelled:
            self.logger.debug("Lookup for %s cancelled", tracking_code)
            raise
        except UpstreamUnavailable as ex:
            self.logger.warning(
                "TPL unavailable for tracking code %s: %s (status=%s)",
                tracking_code, ex, ex.status_code,
            )
            raise

        timeline = build_timeline(detail.events, logger=self.logger)
        self.logger.info(
            "Tracking code %s: %d TPL events -> %d timeline events",
            tracking_code, len(detail.events), len(timeline),
        )
        return TrackingResult(
            kind=KIND_TRACKED,
            code=detail.code,
            message=detail.message,
            info=detail.info,
            shippingevents=timeline,
        )
