from __future__ import annotations

import re
from typing import Iterable

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page, TimeoutError as PlaywrightTimeoutError


def _first_non_empty(values: Iterable[str]) -> list[str]:
    return [value for value in values if value and value.strip()]


def resolve_visible(scope: Page | Locator, selector: str) -> Locator | None:
    """Single visible match of `selector`; the portal keeps hidden re-rendered duplicates around."""
    candidates = scope.locator(selector)
    try:
        count = candidates.count()
    except PlaywrightError:
        return None
    for index in range(count):
        candidate = candidates.nth(index)
        try:
            if candidate.is_visible():
                return candidate
        except PlaywrightError:
            continue
    return None


def _texts_pattern(texts: Iterable[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(text) for text in _first_non_empty(texts))
    return re.compile(rf"^\s*({alternatives})\s*$", re.IGNORECASE)


def find_button_by_texts(scope: Page | Locator, texts: Iterable[str], timeout_ms: int = 1200) -> Locator | None:
    pattern = _texts_pattern(texts)
    for locator in (
        scope.get_by_role("button", name=pattern),
        scope.locator("button, [role='button'], a").filter(has_text=pattern),
    ):
        try:
            locator.first.wait_for(state="visible", timeout=timeout_ms)
        except (PlaywrightTimeoutError, PlaywrightError):
            continue
        for index in range(locator.count()):
            candidate = locator.nth(index)
            if candidate.is_visible():
                return candidate
    return None


def try_click(locator: Locator, timeout_ms: int = 2000) -> bool:
    try:
        locator.scroll_into_view_if_needed(timeout=timeout_ms)
        locator.click(timeout=timeout_ms)
        return True
    except (PlaywrightTimeoutError, PlaywrightError):
        return False


def click_button_by_texts(scope: Page | Locator, texts: Iterable[str], timeout_ms: int = 1200) -> bool:
    locator = find_button_by_texts(scope, texts, timeout_ms=timeout_ms)
    if locator is None:
        return False
    return try_click(locator, timeout_ms=max(timeout_ms, 2000))


def blur_active_element(page: Page) -> bool:
    try:
        page.evaluate("() => document.activeElement && document.activeElement.blur && document.activeElement.blur()")
    except PlaywrightError:
        return False
    return True
