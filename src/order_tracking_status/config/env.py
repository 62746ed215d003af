# src/order_tracking_status/config/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, TypeVar

from order_tracking_status.models import EnvCfg

try:
    from dotenv import dotenv_values, find_dotenv, load_dotenv  # type: ignore
except Exception as e:  # pragma: no cover
    raise RuntimeError(
        "Missing dependency 'python-dotenv'. Install it with:\n"
        "  pip install python-dotenv"
    ) from e

T = TypeVar("T")


class EnvError(RuntimeError):
    """Raised when required environment variables are missing or malformed."""


REQUIRED_KEYS: Tuple[str, ...] = (
    "TPL_BASE_URL",
    "TPL_API_KEY",
    "TPL_TOKEN",
    "TPL_EMAIL",
)


def load_project_dotenv(start: Optional[Path] = None, *, override: bool = False) -> Path:
    """
    Load the nearest `.env` (python-dotenv search from CWD, then upward from
    `start`). Existing variables win unless `override=True`.
    Returns the resolved path, or Path() when no file was found.
    """
    start_path = Path.cwd() if start is None else Path(start)

    found = find_dotenv(filename=".env", usecwd=True)
    dotenv_path = Path(found) if found else Path()

    if not found:
        for p in (start_path, *start_path.parents):
            candidate = p / ".env"
            if candidate.is_file():
                dotenv_path = candidate
                break

    if not dotenv_path.is_file():
        return Path()

    load_dotenv(dotenv_path=dotenv_path, override=override)
    return dotenv_path.resolve()


def get_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise EnvError(f"Missing required environment variable: {name}")
    return value


def env(name: str, *, default: Optional[T] = None, required: bool = False,
        cast: Optional[Callable[[str], T]] = None):
    """
    Test-friendly accessor: KeyError when `required` and missing, `default`
    when missing otherwise, and `cast` applied to present values.
    """
    raw = os.getenv(name)
    if raw is None or raw == "":
        if required:
            raise KeyError(name)
        return default
    if cast is not None:
        try:
            return cast(raw)
        except (TypeError, ValueError) as ex:
            raise EnvError(f"Invalid value for {name}: {raw!r}") from ex
    return raw


def load_env(
    dotenv_path: Optional[Path] = None,
    *,
    override: bool = False,
    required_keys: Tuple[str, ...] = (),
    strict: bool = False,
) -> Dict[str, str]:
    """
    Load a .env file into the process environment and return what it held.

    `dotenv_path` pins the file; otherwise the nearest one is discovered.
    With `strict=True`, every key in `required_keys` must be set afterwards.
    """
    loaded: Dict[str, str] = {}

    if dotenv_path:
        path = Path(dotenv_path)
        if path.is_file():
            load_dotenv(dotenv_path=path, override=override)
            loaded = {k: v for k, v in dotenv_values(path).items() if v is not None}
    else:
        path = load_project_dotenv(override=override)
        if path and path.is_file():
            loaded = {k: v for k, v in dotenv_values(path).items() if v is not None}

    if strict and required_keys:
        missing = [k for k in required_keys if not os.getenv(k)]
        if missing:
            raise EnvError(
                f"Missing required environment variable(s): {', '.join(missing)}")

    return loaded


def get_app_env(dotenv_path: Path | str | None = ".env", *, strict: bool = True) -> EnvCfg:
    """
    Load the TPL/database settings and return them as an EnvCfg.

    `dotenv_path=None` disables file loading (tests). Process variables are
    never overridden by the file. With `strict=True` missing TPL credentials
    raise EnvError; otherwise they come back as empty strings.
    """
    load_env(
        Path(dotenv_path) if dotenv_path else None,
        override=False,
        required_keys=REQUIRED_KEYS,
        strict=strict,
    )

    return EnvCfg(
        TPL_BASE_URL=env("TPL_BASE_URL", default=""),
        TPL_API_KEY=env("TPL_API_KEY", default=""),
        TPL_TOKEN=env("TPL_TOKEN", default=""),
        TPL_EMAIL=env("TPL_EMAIL", default=""),
        TPL_TIMEOUT_SECONDS=env("TPL_TIMEOUT_SECONDS", default=15.0, cast=float),
        TPL_MAX_RETRIES=env("TPL_MAX_RETRIES", default=3, cast=int),
        TPL_TOKEN_TTL_MINUTES=env("TPL_TOKEN_TTL_MINUTES", default=59, cast=int),
        PREPARATION_INTERNAL_CODE=env("PREPARATION_INTERNAL_CODE", default=5, cast=int),
        DATABASE_URL=env("DATABASE_URL", default=""),
    )


__all__ = [
    "EnvError",
    "REQUIRED_KEYS",
    "load_project_dotenv",
    "load_env",
    "get_required_env",
    "env",
    "get_app_env",
]
