from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from commit_harvester.application.orchestrator import CHANNEL_SIZE, MAX_CONCURRENT, PAGE_SIZE
from commit_harvester.infrastructure.bitbucket_client import BITBUCKET_API_URL, REQUEST_TIMEOUT

DEFAULT_TOTAL = 100

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0, got {value}")
    return value


def _flag(env: Mapping[str, str], name: str) -> bool:
    raw = env.get(name, "").strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class HarvestSettings:
    """
    Runtime settings, read from the environment in one place.
    CLI flags override individual fields in main.py.
    """
    api_url:        str   = BITBUCKET_API_URL
    page_size:      int   = PAGE_SIZE
    channel_size:   int   = CHANNEL_SIZE
    max_concurrent: int   = MAX_CONCURRENT
    http_timeout:   float = REQUEST_TIMEOUT
    output_dir:     str   = "."
    enrich:         bool  = False
    log_level:      str   = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "HarvestSettings":
        """Build settings from HARVEST_* / BITBUCKET_* variables. Raises ValueError on bad values."""
        env = os.environ if environ is None else environ

        timeout_raw = env.get("HARVEST_HTTP_TIMEOUT")
        try:
            http_timeout = float(timeout_raw) if timeout_raw is not None else REQUEST_TIMEOUT
        except ValueError:
            raise ValueError(f"HARVEST_HTTP_TIMEOUT must be a number, got {timeout_raw!r}") from None
        if http_timeout <= 0:
            raise ValueError(f"HARVEST_HTTP_TIMEOUT must be greater than 0, got {http_timeout}")

        return cls(
            api_url        = env.get("BITBUCKET_API_URL", BITBUCKET_API_URL),
            page_size      = _positive_int(env, "HARVEST_PAGE_SIZE", PAGE_SIZE),
            channel_size   = _positive_int(env, "HARVEST_CHANNEL_SIZE", CHANNEL_SIZE),
            max_concurrent = _positive_int(env, "HARVEST_MAX_CONCURRENT", MAX_CONCURRENT),
            http_timeout   = http_timeout,
            output_dir     = env.get("HARVEST_OUTPUT_DIR", "."),
            enrich         = _flag(env, "HARVEST_ENRICH"),
            log_level      = env.get("HARVEST_LOG_LEVEL", "INFO").upper(),
        )
