from __future__ import annotations

import time

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, TimeoutError as PlaywrightTimeoutError

_READY_JS = """
(selector) => {
  const el = Array.from(document.querySelectorAll(selector)).find((node) => {
    const rect = node.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0;
  });
  if (!el) return false;
  if (el.hasAttribute('disabled') || el.getAttribute('aria-disabled') === 'true') return false;
  const classes = Array.from(el.classList);
  if (classes.some((c) => c.endsWith('-disabled') || c.includes('loading'))) return false;
  if (el.querySelector('[class*="loading"], [class*="spinner"]')) return false;
  const before = el.getBoundingClientRect();
  return new Promise((resolve) => {
    requestAnimationFrame(() => requestAnimationFrame(() => {
      const after = el.getBoundingClientRect();
      resolve(before.x === after.x && before.y === after.y &&
              before.width === after.width && before.height === after.height);
    }));
  });
}
"""

_INTERACTABLE_JS = """
(selector) => {
  const el = Array.from(document.querySelectorAll(selector)).find((node) => {
    const rect = node.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0;
  });
  if (!el) return false;
  for (let node = el; node && node !== document.documentElement; node = node.parentElement) {
    const style = getComputedStyle(node);
    if (style.display === 'none' || style.visibility === 'hidden' || parseFloat(style.opacity) === 0) {
      return false;
    }
  }
  if (el.hasAttribute('disabled') || el.getAttribute('aria-disabled') === 'true') return false;
  if (el.hasAttribute('readonly') && el.tagName !== 'DIV') return false;
  return true;
}
"""

_DOM_STABLE_JS = """
([maxDuration, quietMs]) => new Promise((resolve) => {
  const started = performance.now();
  if (!document.body) {
    resolve(0);
    return;
  }
  let quietTimer = null;
  let capTimer = null;
  let done = false;
  const finish = () => {
    if (done) return;
    done = true;
    observer.disconnect();
    clearTimeout(quietTimer);
    clearTimeout(capTimer);
    resolve(Math.round(performance.now() - started));
  };
  const observer = new MutationObserver(() => {
    clearTimeout(quietTimer);
    quietTimer = setTimeout(finish, quietMs);
  });
  observer.observe(document.body, {childList: true, subtree: true, attributes: true, characterData: true});
  quietTimer = setTimeout(finish, quietMs);
  capTimer = setTimeout(finish, maxDuration);
})
"""


def wait_until_ready(page: Page, selector: str, timeout_ms: int = 3000) -> bool:
    """Element exists, is enabled and not loading, and did not move between two frames."""
    try:
        page.wait_for_function(_READY_JS, arg=selector, timeout=timeout_ms, polling=100)
        return True
    except (PlaywrightTimeoutError, PlaywrightError):
        return False


def wait_until_interactable(page: Page, selector: str, timeout_ms: int = 3000) -> bool:
    try:
        page.wait_for_function(_INTERACTABLE_JS, arg=selector, timeout=timeout_ms, polling=100)
        return True
    except (PlaywrightTimeoutError, PlaywrightError):
        return False


def wait_for_dom_stable(page: Page, max_duration_ms: int = 3000, quiet_ms: int = 200) -> int:
    """Block until the body stops mutating for `quiet_ms`, capped at `max_duration_ms`.

    Returns the elapsed milliseconds. A page that navigates away mid-wait counts as
    settled once the new document answers.
    """
    started = time.monotonic()
    try:
        return int(page.evaluate(_DOM_STABLE_JS, [max_duration_ms, quiet_ms]))
    except PlaywrightError:
        return int((time.monotonic() - started) * 1000)


def poll_until(page: Page, predicate, timeout_ms: int, interval_ms: int = 250) -> bool:
    deadline = time.monotonic() + (timeout_ms / 1000)
    while True:
        if predicate():
            return True
        if time.monotonic() >= deadline:
            return False
        page.wait_for_timeout(interval_ms)
