from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Protocol, Tuple

from order_tracking_status.models import OrderRecord

IDENTIFIER_CPF = "cpf"
IDENTIFIER_EMAIL = "email"

_NON_DIGITS = re.compile(r"\D")


class OrderRepository(Protocol):
    def find_by_identifier(self, identifier: str) -> Optional[OrderRecord]:
        """Return the newest order for a CPF or e-mail, or None."""
        ...


def only_digits(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def classify_identifier(identifier: str) -> Tuple[str, str]:
    """
    Split an identifier into (kind, normalized value).

    Exactly 11 digits after stripping everything else is a CPF ("123.456.789-01"
    included); anything else is an e-mail, compared case-insensitively.
    """
    raw = (identifier or "").strip()
    digits = only_digits(raw)
    if len(digits) == 11:
        return IDENTIFIER_CPF, digits
    return IDENTIFIER_EMAIL, raw.lower()


def recency_key(
    updated_at: Optional[datetime],
    registered_at: Optional[datetime],
    row_id: Optional[int],
) -> Tuple[datetime, int]:
    """Sort key for "most recent wins": update/registration time, then row id."""
    stamp = updated_at or registered_at or datetime.min
    return stamp, row_id if row_id is not None else -1
