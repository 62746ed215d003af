from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from http import HTTPStatus
from typing import Any, Callable, Dict, NamedTuple, Optional
import json
import logging
import time

import requests
import urllib3.exceptions

from .errors import (
    UpstreamAuthError,
    UpstreamConnectionError,
    UpstreamLookupError,
    UpstreamProtocolError,
    UpstreamTimeout,
    map_tpl_code,
)
from .normalize import (
    order_from_envelope,
    parse_order,
    read_json_body,
    snippet,
    truncate_for_log,
)
from .transport import Cancellation, RequestsTransport
from order_tracking_status.models import OrderDetail

AUTH_PATH = "/get/auth"
ORDER_DETAIL_PATH = "/get/orderdetail"

# The TPL documents a 1h token; expire locally a minute early.
DEFAULT_TOKEN_TTL = timedelta(minutes=59)


@dataclass
class TplConfig:
    base_url: str
    timeout_seconds: float = 15.0
    max_retries: int = 3
    token_ttl: timedelta = DEFAULT_TOKEN_TTL


@dataclass
class TplAuth:
    api_key: str
    token: str
    email: str

    def as_body(self) -> Dict[str, str]:
        return {"apikey": self.api_key, "token": self.token, "email": self.email}


class TokenCache:
    """Process-wide holder of the TPL bearer token.

    The (token, expires_at) pair is replaced in a single assignment, so a
    reader never sees a token paired with another token's expiry. Concurrent
    misses may each fetch; the last store wins.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl.total_seconds()
        self._clock = clock
        self._entry: Optional[tuple[str, float]] = None

    def get(self) -> Optional[str]:
        entry = self._entry
        if entry is None:
            return None
        token, expires_at = entry
        if self._clock() < expires_at:
            return token
        return None

    def store(self, token: str) -> None:
        self._entry = (token, self._clock() + self.ttl_seconds)

    def expire(self) -> None:
        self._entry = None

    @property
    def state(self) -> str:
        entry = self._entry
        if entry is None:
            return "absent"
        return "valid" if self._clock() < entry[1] else "expired"


def _is_timeout(ex: requests.ConnectionError) -> bool:
    cause = ex.args[0] if ex.args else None
    reason = getattr(cause, "reason", cause)
    # NewConnectionError subclasses ConnectTimeoutError but is a refusal
    return isinstance(reason, urllib3.exceptions.TimeoutError) and not isinstance(
        reason, urllib3.exceptions.NewConnectionError)


class _Attempt(NamedTuple):
    ok: bool
    code: Optional[int]
    order: Optional[OrderDetail] = None


class TplClient:
    """Gateway to the TPL order-tracking API.

    Responsibilities:
    - authenticate(): obtain the bearer token with apikey/token/email and keep
      it in the injected TokenCache until it expires.
    - fetch_order_detail(number, order_id): look the order up by tracking
      number; only when that fails and an order id is known, retry once by id.

    Transport failures are normalized into the errors in `api.errors`; retry
    and backoff belong to the transport, not to this class.
    """

    def __init__(
        self,
        auth: TplAuth,
        cfg: TplConfig,
        transport: Optional[Any] = None,
        *,
        token_cache: Optional[TokenCache] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.auth = auth
        self.cfg = cfg
        self.transport = transport or RequestsTransport(
            cfg.base_url,
            timeout=cfg.timeout_seconds,
            max_retries=cfg.max_retries,
        )
        self.token_cache = token_cache or TokenCache(cfg.token_ttl)
        self.logger: logging.Logger = logger or logging.getLogger(
            "order_tracking_status.api.tpl"
        )

    # -- transport -----------------------------------------------------------

    def _post(self, path: str, body: Dict[str, Any], cancel: Optional[Cancellation]):
        if cancel is not None:
            cancel.raise_if_cancelled()
        try:
            return self.transport.post(
                path, json=body, headers={"Content-Type": "application/json"})
        except requests.Timeout as ex:
            self.logger.warning("TPL %s timed out: %s", path, ex)
            raise UpstreamTimeout(f"TPL timeout on {path}") from ex
        except requests.ConnectionError as ex:
            # exhausted urllib3 retries surface read timeouts as ConnectionError
            if _is_timeout(ex):
                self.logger.warning("TPL %s timed out after retries: %s", path, ex)
                raise UpstreamTimeout(f"TPL timeout on {path}") from ex
            self.logger.warning("TPL %s transport failure: %s", path, ex)
            raise UpstreamConnectionError(
                f"TPL connection failed on {path}") from ex
        except requests.RequestException as ex:
            self.logger.warning("TPL %s transport failure: %s", path, ex)
            raise UpstreamConnectionError(
                f"TPL connection failed on {path}") from ex

    # -- auth ----------------------------------------------------------------

    def authenticate(self, cancel: Optional[Cancellation] = None) -> str:
        """Return a valid token, fetching a new one only when the cache is empty or stale."""
        cached = self.token_cache.get()
        if cached:
            return cached

        self.logger.debug(
            "Requesting TPL auth token (cache %s)", self.token_cache.state)
        resp = self._post(AUTH_PATH, self.auth.as_body(), cancel)
        status = resp.status_code
        text = resp.text

        if not 200 <= status < 300:
            self.logger.warning(
                "TPL auth rejected status=%s response_body=%s",
                status,
                truncate_for_log(text),
            )
            raise UpstreamAuthError(
                f"TPL auth rejected (status {status})", status_code=status)

        try:
            payload = read_json_body(text, what="auth")
        except UpstreamProtocolError as ex:
            self.logger.warning("%s; snippet=%r", ex, ex.raw_snippet)
            raise

        if not isinstance(payload, dict):
            raise UpstreamProtocolError(
                "TPL auth: response is not a JSON object",
                raw_snippet=snippet(text),
            )

        token = payload.get("token")
        if token is None or not str(token).strip():
            self.logger.warning(
                "TPL auth returned no token (code=%s)", payload.get("code"))
            raise UpstreamAuthError(
                f"TPL auth returned no token (code {payload.get('code')})",
                status_code=HTTPStatus.BAD_GATEWAY,
            )

        # do not publish a token the caller no longer wants
        if cancel is not None:
            cancel.raise_if_cancelled()
        self.token_cache.store(str(token))
        self.logger.debug("TPL token acquired (ttl=%ss)",
                          int(self.token_cache.ttl_seconds))
        return str(token)

    # -- order detail --------------------------------------------------------

    def _post_order_detail(
        self,
        auth_token: str,
        order: Dict[str, str],
        cancel: Optional[Cancellation],
    ) -> _Attempt:
        body = {"auth": auth_token, "order": order}
        self.logger.debug("TPL POST %s order=%s",
                          ORDER_DETAIL_PATH, json.dumps(order))

        resp = self._post(ORDER_DETAIL_PATH, body, cancel)
        status = resp.status_code
        text = resp.text

        if not 200 <= status < 300:
            self.logger.warning(
                "TPL orderdetail order=%s status=%s response_body=%s",
                order, status, truncate_for_log(text),
            )
            return _Attempt(False, status)

        try:
            payload = read_json_body(text, what="orderdetail")
        except UpstreamProtocolError as ex:
            self.logger.warning("%s; order=%s snippet=%r",
                                ex, order, ex.raw_snippet)
            return _Attempt(False, int(HTTPStatus.BAD_GATEWAY))

        self.logger.debug(
            "TPL orderdetail order=%s status=%s response_body=%s",
            order, status, truncate_for_log(text),
        )

        if not isinstance(payload, dict):
            return _Attempt(False, int(HTTPStatus.BAD_GATEWAY))

        code, order_obj = order_from_envelope(payload)
        if order_obj is None:
            self.logger.info(
                "TPL orderdetail order=%s envelope code=%s message=%s",
                order, code, payload.get("message"),
            )
            return _Attempt(False, code)

        return _Attempt(True, 200, parse_order(order_obj))

    def fetch_order_detail(
        self,
        number: str,
        order_id: Optional[int] = None,
        cancel: Optional[Cancellation] = None,
    ) -> OrderDetail:
        """Fetch the order detail for a tracking number.

        Falls back to the internal order id only when the by-number attempt
        fails. When both fail the first attempt's code decides the error.
        """
        if not number or not str(number).strip():
            raise ValueError("tracking number is required")

        auth_token = self.authenticate(cancel)

        first = self._post_order_detail(
            auth_token, {"number": str(number).strip()}, cancel)
        if first.ok and first.order is not None:
            return first.order

        if order_id is not None:
            self.logger.info(
                "TPL lookup by number=%s failed (code=%s); retrying by id=%s",
                number, first.code, order_id,
            )
            second = self._post_order_detail(
                auth_token, {"id": str(order_id)}, cancel)
            if second.ok and second.order is not None:
                return second.order

        code = first.code if first.code is not None else int(HTTPStatus.BAD_GATEWAY)
        raise UpstreamLookupError(
            f"TPL orderdetail failed (code {code})",
            tpl_code=code,
            status_code=map_tpl_code(code),
        )
