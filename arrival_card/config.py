from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_PORTAL_URL = "https://allindonesia.imigrasi.go.id/"


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _as_int(name: str, default: int) -> int:
    raw = _optional(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Env var {name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class AppConfig:
    portal_url: str = DEFAULT_PORTAL_URL
    headless: bool = True
    slow_mo_ms: int = 0
    timeout_ms: int = 15000
    navigation_timeout_ms: int = 60000
    transition_timeout_ms: int = 8000
    nav_retry_limit: int = 3
    success_poll_attempts: int = 10
    success_poll_interval_ms: int = 1500
    keep_browser_open: bool = False
    run_deadline_s: int = 0
    runs_dir: Path = Path("runs")
    chromium_executable: str = ""
    locale: str = "en-US"


def load_config() -> AppConfig:
    load_dotenv(override=False)

    return AppConfig(
        portal_url=_optional("PORTAL_URL", DEFAULT_PORTAL_URL),
        headless=_as_bool(os.getenv("HEADLESS"), default=True),
        slow_mo_ms=_as_int("SLOW_MO_MS", 0),
        timeout_ms=_as_int("TIMEOUT_MS", 15000),
        navigation_timeout_ms=_as_int("NAVIGATION_TIMEOUT_MS", 60000),
        transition_timeout_ms=_as_int("TRANSITION_TIMEOUT_MS", 8000),
        nav_retry_limit=_as_int("NAV_RETRY_LIMIT", 3),
        success_poll_attempts=_as_int("SUCCESS_POLL_ATTEMPTS", 10),
        success_poll_interval_ms=_as_int("SUCCESS_POLL_INTERVAL_MS", 1500),
        keep_browser_open=_as_bool(os.getenv("KEEP_BROWSER_OPEN"), default=False),
        run_deadline_s=_as_int("RUN_DEADLINE_S", 0),
        runs_dir=Path(_optional("RUNS_DIR", "runs")),
        chromium_executable=_optional("CHROMIUM_EXECUTABLE"),
        locale=_optional("LOCALE", "en-US"),
    )
