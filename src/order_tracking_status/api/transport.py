from __future__ import annotations

import threading
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import RequestCancelled


class Cancellation:
    """Caller-driven cancellation flag shared with the gateway.

    Network calls are blocking, so cancellation is observed between steps:
    before each request and before any shared state is written.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelled("request cancelled by caller")


class RequestsTransport:
    """Requests session bound to the TPL base URL, with retry/backoff.

    This is the resilience boundary: transient statuses (408, 429, 5xx) and
    connection errors are retried here, never in the gateway. After the last
    retry the final response is returned as-is so the gateway can classify it.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
    ) -> None:
        if not base_url:
            raise ValueError("RequestsTransport requires a base_url")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

        retry = Retry(
            total=max_retries,
            read=max_retries,
            connect=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=(408, 429, 500, 502, 503, 504),
            allowed_methods=("GET", "POST"),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def post(self, path: str, *, json: Any = None, headers: Optional[Dict[str, str]] = None):
        return self.session.post(
            self.url_for(path), json=json, headers=headers, timeout=self.timeout)

    def close(self) -> None:
        self.session.close()
