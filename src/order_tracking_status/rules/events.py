# src/order_tracking_status/rules/events.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from order_tracking_status.models import ShippingEvent, TimelineEvent
from order_tracking_status.rules.status_mapper import (
    describe_internal_code,
    is_mapped,
    map_by_internal_code,
)


def dedupe_events(events: Iterable[ShippingEvent]) -> list[ShippingEvent]:
    """
    Keep one event per internal code: the first one seen.

    Source order is preserved; events with unmapped codes are dropped before
    grouping so they never claim a slot.
    """
    seen: set[int] = set()
    out: list[ShippingEvent] = []
    for ev in events:
        if not is_mapped(ev.internal_code):
            continue
        if ev.internal_code in seen:
            continue
        seen.add(ev.internal_code)
        out.append(ev)
    return out


def to_timeline_event(ev: ShippingEvent) -> Optional[TimelineEvent]:
    status = map_by_internal_code(ev.internal_code)
    if status is None:
        return None
    return TimelineEvent(
        code=status.code,
        dscode=status.title,
        message=status.message,
        detalhe=ev.info,
        complement=ev.complement,
        dtshipping=ev.date,
        internalcode=ev.internal_code,
    )


def build_timeline(
    events: Optional[Iterable[ShippingEvent]],
    *,
    logger: Optional[logging.Logger] = None,
) -> list[TimelineEvent]:
    """Filter unmapped, collapse duplicates and map the survivors, in order."""
    raw = list(events or [])
    if logger is not None:
        dropped = sorted({
            ev.internal_code for ev in raw
            if not is_mapped(ev.internal_code) and ev.internal_code is not None
        })
        if dropped:
            logger.debug(
                "Dropping unmapped internal codes: %s",
                ", ".join(f"{c} ({describe_internal_code(c)})" for c in dropped),
            )

    timeline: list[TimelineEvent] = []
    for ev in dedupe_events(raw):
        mapped = to_timeline_event(ev)
        if mapped is not None:
            timeline.append(mapped)
    return timeline
