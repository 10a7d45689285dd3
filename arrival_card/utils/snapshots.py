from __future__ import annotations

from datetime import datetime
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page


def _safe_name(label: str) -> str:
    return "".join(ch if ch.isalnum() or ch in {"-", "_"} else "_" for ch in label)


def save_snapshot(page: Page, run_dir: Path | None, label: str, with_html: bool = False) -> Path | None:
    """Full-page screenshot (and optionally the DOM) of the current wizard page."""
    if run_dir is None or page.is_closed():
        return None

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = run_dir / "screenshots" / f"{stamp}_{_safe_name(label)}.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        page.screenshot(path=str(path), full_page=True)
        if with_html:
            path.with_suffix(".html").write_text(page.content(), encoding="utf-8")
    except PlaywrightError:
        return None
    return path
