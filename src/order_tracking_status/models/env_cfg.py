from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class EnvCfg:
    """Typed view of the process environment returned by get_app_env()."""
    TPL_BASE_URL: str = ""
    TPL_API_KEY: str = ""
    TPL_TOKEN: str = ""
    TPL_EMAIL: str = ""
    TPL_TIMEOUT_SECONDS: float = 15.0
    TPL_MAX_RETRIES: int = 3
    TPL_TOKEN_TTL_MINUTES: int = 59
    PREPARATION_INTERNAL_CODE: int = 5
    DATABASE_URL: str = ""

    @property
    def has_tpl_credentials(self) -> bool:
        return bool(self.TPL_API_KEY and self.TPL_TOKEN and self.TPL_EMAIL)
