from __future__ import annotations

from http import HTTPStatus
from typing import Optional


class UpstreamUnavailable(RuntimeError):
    """Base for every failure talking to the TPL.

    `status_code` is the HTTP-like status the failure maps to; callers that
    expose an HTTP surface turn all of these into a gateway error.
    """

    status_code: int = HTTPStatus.BAD_GATEWAY
    timeout: bool = False

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = int(status_code)


class UpstreamAuthError(UpstreamUnavailable):
    """The TPL rejected our credentials or answered without a token."""


class UpstreamProtocolError(UpstreamUnavailable):
    """Empty, non-JSON or structurally invalid TPL payload."""

    def __init__(
        self,
        message: str,
        *,
        raw_snippet: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        # diagnostics only; never echoed to end users
        self.raw_snippet = raw_snippet


class UpstreamTimeout(UpstreamUnavailable):
    status_code = HTTPStatus.GATEWAY_TIMEOUT
    timeout = True


class UpstreamConnectionError(UpstreamUnavailable):
    pass


class UpstreamLookupError(UpstreamUnavailable):
    """Order detail could not be fetched by number (nor by id, when given)."""

    def __init__(
        self,
        message: str,
        *,
        tpl_code: Optional[int] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.tpl_code = tpl_code


class RequestCancelled(Exception):
    """The caller gave up; not an upstream failure and never retried."""


def map_tpl_code(tpl_code: Optional[int]) -> HTTPStatus:
    """
    Translate a TPL status code to the HTTP status we report.

    The TPL answers 500 for credential problems, so 500 means Unauthorized here.
    """
    if tpl_code == 404:
        return HTTPStatus.NOT_FOUND
    if tpl_code == 500:
        return HTTPStatus.UNAUTHORIZED
    if tpl_code in (400, 402):
        return HTTPStatus.BAD_REQUEST
    return HTTPStatus.BAD_GATEWAY


__all__ = [
    "UpstreamUnavailable",
    "UpstreamAuthError",
    "UpstreamProtocolError",
    "UpstreamTimeout",
    "UpstreamConnectionError",
    "UpstreamLookupError",
    "RequestCancelled",
    "map_tpl_code",
]
