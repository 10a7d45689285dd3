from __future__ import annotations

import logging
from datetime import datetime

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page, TimeoutError as PlaywrightTimeoutError

from . import portal
from .portal import FieldSpec
from .translator import Translator
from .utils.ui import blur_active_element, resolve_visible, try_click
from .utils.waits import wait_for_dom_stable, wait_until_interactable, wait_until_ready

logger = logging.getLogger("arrival_card.fields")

DATE_FORMATS = ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y")

_ACTIVE_OVERLAY_ATTR = "data-arrival-active-overlay"
_QUESTION_ATTR = "data-arrival-question"

_MARK_OVERLAY_JS = """
([trigger, selectors, attr]) => {
  document.querySelectorAll(`[${attr}]`).forEach((el) => el.removeAttribute(attr));
  const visible = (el) => {
    const rect = el.getBoundingClientRect();
    const style = getComputedStyle(el);
    return rect.width > 0 && rect.height > 0 && style.visibility !== 'hidden' && style.display !== 'none';
  };
  const anchor = trigger.getBoundingClientRect();
  const overlays = selectors
    .flatMap((sel) => Array.from(document.querySelectorAll(sel)))
    .filter((el) => visible(el) && !el.contains(trigger));
  if (!overlays.length) return false;
  const distance = (el) => {
    const rect = el.getBoundingClientRect();
    const dx = Math.max(rect.left - anchor.right, anchor.left - rect.right, 0);
    const dy = Math.max(rect.top - anchor.bottom, anchor.top - rect.bottom, 0);
    return Math.hypot(dx, dy);
  };
  overlays.sort((a, b) => distance(a) - distance(b));
  overlays[0].setAttribute(attr, '1');
  return true;
}
"""

_MARK_QUESTION_JS = """
([fragments, optionSelector, attr, key]) => {
  document.querySelectorAll(`[${attr}="${key}"]`).forEach((el) => el.removeAttribute(attr));
  const textTags = new Set(['LABEL', 'LEGEND', 'P', 'SPAN', 'H1', 'H2', 'H3', 'H4', 'H5', 'H6', 'DIV']);
  const nodes = Array.from(document.querySelectorAll('body *')).filter((el) => {
    if (!textTags.has(el.tagName)) return false;
    if (el.closest(optionSelector)) return false;
    const own = Array.from(el.childNodes)
      .filter((n) => n.nodeType === Node.TEXT_NODE)
      .map((n) => n.textContent)
      .join(' ')
      .trim()
      .toLowerCase();
    return own && fragments.some((f) => own.includes(f));
  });
  for (const heading of nodes) {
    for (let node = heading.parentElement; node && node !== document.body; node = node.parentElement) {
      if (node.querySelector(optionSelector)) {
        node.setAttribute(attr, key);
        return true;
      }
    }
  }
  return false;
}
"""

_OPTION_STATE_JS = """
(el, indicatorSelector) => {
  const input = el.querySelector('input') || (el.tagName === 'INPUT' ? el : null);
  const indicator =
    el.querySelector(indicatorSelector) ||
    Array.from(el.children).find((child) => child.tagName !== 'INPUT' && !child.innerText.trim());
  const nodes = indicator ? [indicator, ...indicator.querySelectorAll('*')] : [el];
  const colours = nodes.map((node) => getComputedStyle(node).backgroundColor);
  return {
    value: input ? (input.value || '') : '',
    text: (el.innerText || '').trim(),
    checked: Boolean((input && input.checked) || el.getAttribute('aria-checked') === 'true'),
    colours,
  };
}
"""

_DISPLAYED_JS = "(el) => (el.value !== undefined && el.value !== '' ? el.value : (el.innerText || '')).trim()"

_SCROLL_RESET_JS = "(el) => { el.scrollTop = 0; }"
_SCROLL_TOP_JS = "(el) => el.scrollTop"
_SCROLL_STEP_JS = (
    "(el) => { const before = el.scrollTop; el.scrollTop += el.clientHeight * 0.8; return el.scrollTop !== before; }"
)
_SCROLL_TO_JS = "(el, top) => { el.scrollTop = top; }"


def _norm(text: str) -> str:
    return " ".join((text or "").split()).upper()


def _read_value(locator: Locator) -> str:
    try:
        return locator.input_value(timeout=2000)
    except (PlaywrightTimeoutError, PlaywrightError):
        return ""


def _locate(page: Page, selector: str, timeout_ms: int = 3000) -> Locator | None:
    locator = resolve_visible(page, selector)
    if locator is not None:
        return locator
    if wait_until_interactable(page, selector, timeout_ms=timeout_ms):
        return resolve_visible(page, selector)
    return None


def _type_into(locator: Locator, value: str, forceful: bool) -> None:
    if forceful:
        locator.fill("")
        locator.press("Control+A")
        locator.press("Delete")
        locator.press_sequentially(value, delay=60)
    else:
        locator.click(click_count=3)
        locator.press("Backspace")
        locator.press_sequentially(value, delay=20)


def fill_text(page: Page, selector: str, value: str) -> bool:
    """Clear-type-verify; a second, more forceful attempt on mismatch."""
    locator = _locate(page, selector)
    if locator is None:
        logger.warning("Text field not found: %s", selector)
        return False

    expected = value.strip()
    if _read_value(locator).strip() == expected:
        return True

    for forceful in (False, True):
        try:
            _type_into(locator, value, forceful=forceful)
        except (PlaywrightTimeoutError, PlaywrightError) as exc:
            logger.info("Typing into %s failed (forceful=%s): %s", selector, forceful, exc)
            continue
        if _read_value(locator).strip() == expected:
            return True

    logger.warning("Value did not stick for %s", selector)
    return False


def fill_textarea(page: Page, selector: str, value: str) -> bool:
    return fill_text(page, selector, value)


def normalize_date(value: str) -> str:
    """ISO, DD-MM-YYYY or DD/MM/YYYY in; DD/MM/YYYY out."""
    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%d/%m/%Y")
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


def fill_date(page: Page, selector: str, value: str) -> bool:
    try:
        formatted = normalize_date(value)
    except ValueError as exc:
        logger.warning("%s (%s)", exc, selector)
        return False
    ok = fill_text(page, selector, formatted)
    if ok and not blur_active_element(page):
        logger.info("Could not blur date field %s; picker may stay open", selector)
    return ok


def choose_option(texts: list[str], value: str) -> tuple[int | None, str]:
    """Pick an option row: exact, then substring either way, then the first row as a fallback."""
    wanted = _norm(value)
    rows = [(index, _norm(text)) for index, text in enumerate(texts) if _norm(text)]
    if not rows:
        return None, "none"

    for index, text in rows:
        if text == wanted:
            return index, "exact"
    if wanted:
        for index, text in rows:
            if wanted in text or text in wanted:
                return index, "substring"
    return rows[0][0], "fallback"


def _option_locator(overlay: Locator) -> Locator:
    for selector in portal.DROPDOWN_OPTION_SELECTORS:
        options = overlay.locator(selector)
        try:
            if options.count() > 0:
                return options
        except PlaywrightError:
            continue
    return overlay.locator(portal.DROPDOWN_OPTION_SELECTORS[0])


def _visible_option_texts(options: Locator) -> list[str]:
    texts = []
    for index in range(options.count()):
        option = options.nth(index)
        try:
            texts.append(option.inner_text(timeout=1000) if option.is_visible() else "")
        except (PlaywrightTimeoutError, PlaywrightError):
            texts.append("")
    return texts


def _open_overlay(page: Page, trigger: Locator) -> Locator | None:
    if not try_click(trigger, timeout_ms=3000):
        return None
    for _ in range(8):
        try:
            handle = trigger.element_handle(timeout=1000)
            marked = page.evaluate(
                _MARK_OVERLAY_JS, [handle, portal.DROPDOWN_OVERLAY_SELECTORS, _ACTIVE_OVERLAY_ATTR]
            )
        except (PlaywrightTimeoutError, PlaywrightError):
            marked = False
        if marked:
            return page.locator(f"[{_ACTIVE_OVERLAY_ATTR}]").first
        page.wait_for_timeout(150)
    return None


def _pick(options: Locator, texts: list[str], value: str, allow_fallback: bool) -> str | None:
    """Click the best row. Returns the clicked row's text, "" when the click failed, None when nothing fits."""
    index, kind = choose_option(texts, value)
    if index is None:
        return None
    if kind == "fallback":
        if not allow_fallback:
            return None
        logger.warning("No option matched %r; falling back to first option %r", value, texts[index].strip())
    return texts[index].strip() if try_click(options.nth(index)) else ""


def _select_via_search(page: Page, trigger: Locator, overlay: Locator, value: str, allow_fallback: bool) -> str | None:
    search = None
    for scope in (overlay, trigger):
        for selector in portal.DROPDOWN_SEARCH_SELECTORS:
            search = resolve_visible(scope, selector)
            if search is not None:
                break
        if search is not None:
            break
    if search is None:
        return None

    try:
        search.fill("")
        search.press_sequentially(value, delay=30)
    except (PlaywrightTimeoutError, PlaywrightError) as exc:
        logger.info("Typing into dropdown search failed: %s", exc)
        return None
    wait_for_dom_stable(page, max_duration_ms=1500)

    options = _option_locator(overlay)
    return _pick(options, _visible_option_texts(options), value, allow_fallback)


def _scan_rows(page: Page, overlay: Locator) -> list[tuple[float, str]]:
    """Every option row in the list with the scroll offset it is visible at, top to bottom."""
    rows: list[tuple[float, str]] = []
    seen: set[str] = set()
    try:
        overlay.evaluate(_SCROLL_RESET_JS)
    except PlaywrightError as exc:
        logger.info("Dropdown list not scrollable: %s", exc)
        return rows
    for _ in range(40):
        try:
            top = overlay.evaluate(_SCROLL_TOP_JS)
        except PlaywrightError:
            top = 0
        for text in _visible_option_texts(_option_locator(overlay)):
            key = _norm(text)
            if key and key not in seen:
                seen.add(key)
                rows.append((top, text))
        try:
            moved = overlay.evaluate(_SCROLL_STEP_JS)
        except PlaywrightError:
            moved = False
        if not moved:
            break
        wait_for_dom_stable(page, max_duration_ms=500, quiet_ms=100)
    return rows


def _select_via_scan(page: Page, overlay: Locator, value: str, allow_fallback: bool) -> str | None:
    """Rank the whole list before clicking, so an exact row further down beats an earlier substring."""
    rows = _scan_rows(page, overlay)
    index, kind = choose_option([text for _, text in rows], value)
    if index is None or (kind == "fallback" and not allow_fallback):
        return None
    top, text = rows[index]
    if kind == "fallback":
        logger.warning("No option matched %r; falling back to first option %r", value, text.strip())

    try:
        overlay.evaluate(_SCROLL_TO_JS, top)
    except PlaywrightError as exc:
        logger.info("Scrolling back to %r failed: %s", text, exc)
        return ""
    wait_for_dom_stable(page, max_duration_ms=500, quiet_ms=100)
    options = _option_locator(overlay)
    for position, shown in enumerate(_visible_option_texts(options)):
        if _norm(shown) == _norm(text):
            return text.strip() if try_click(options.nth(position)) else ""
    logger.info("Option %r no longer visible after scrolling back", text)
    return ""


def _displayed(trigger: Locator) -> str:
    try:
        return trigger.evaluate(_DISPLAYED_JS)
    except PlaywrightError:
        return ""


def _shows_any(trigger: Locator, texts: list[str]) -> bool:
    shown = _norm(_displayed(trigger))
    return bool(shown) and any(_norm(text) == shown for text in texts)


def _close_overlay(page: Page, overlay: Locator) -> None:
    try:
        if overlay.is_visible():
            page.keyboard.press("Escape")
    except PlaywrightError as exc:
        logger.info("Closing dropdown overlay failed: %s", exc)
    if not blur_active_element(page):
        logger.info("Could not blur dropdown after closing it")


def select_dropdown(
    page: Page,
    selector: str,
    value: str,
    translator: Translator | None = None,
    category: str | None = None,
    multi: bool = False,
) -> bool:
    """Searchable custom dropdown: search box first, scrolling scan when the overlay has none."""
    if not value:
        return False
    candidates = translator.candidates(value, category) if translator is not None else [value.strip()]

    if not wait_until_ready(page, selector, timeout_ms=3000):
        logger.info("Dropdown %s not ready; trying anyway", selector)
    trigger = _locate(page, selector)
    if trigger is None:
        logger.warning("Dropdown not found: %s", selector)
        return False

    if not multi and _shows_any(trigger, candidates):
        return True

    for position, candidate in enumerate(candidates):
        allow_fallback = position == len(candidates) - 1
        overlay = _open_overlay(page, trigger)
        if overlay is None:
            logger.warning("Dropdown overlay did not open for %s", selector)
            return False

        picked = _select_via_search(page, trigger, overlay, candidate, allow_fallback)
        if picked is None:
            picked = _select_via_scan(page, overlay, candidate, allow_fallback)

        if picked:
            try:
                overlay.wait_for(state="hidden", timeout=1500)
            except (PlaywrightTimeoutError, PlaywrightError):
                _close_overlay(page, overlay)
            if not blur_active_element(page):
                logger.info("Could not blur dropdown %s", selector)
            if multi or _shows_any(trigger, [picked]):
                return True
            logger.info("Dropdown %s shows %r after picking %r", selector, _displayed(trigger), picked)
        _close_overlay(page, overlay)

    logger.warning("Dropdown %s: no option for %r", selector, value)
    return False


def is_highlight_colour(rgb: str) -> bool:
    """Selected radio indicator: saturated blue."""
    parsed = portal.parse_rgb(rgb)
    if parsed is None or "rgba(0, 0, 0, 0)" in rgb:
        return False
    r, g, b = parsed
    return b >= 160 and b - r >= 80 and g <= 180


def _radio_aliases(value: str) -> tuple[str, ...]:
    key = _norm(value)
    return portal.RADIO_VALUE_ALIASES.get(key, (key,))


def _option_state(option: Locator) -> dict:
    try:
        return option.evaluate(_OPTION_STATE_JS, portal.RADIO_INDICATOR_SELECTOR)
    except PlaywrightError:
        return {"value": "", "text": "", "checked": False, "colours": []}


def _is_selected(state: dict) -> bool:
    return bool(state["checked"]) or any(is_highlight_colour(colour) for colour in state["colours"])


def select_radio(page: Page, question_key: str, value: str) -> bool:
    """Click the option of one question block only; verified by the indicator colour."""
    fragments = portal.RADIO_QUESTIONS.get(question_key)
    if not fragments or not value:
        return False

    try:
        found = page.evaluate(
            _MARK_QUESTION_JS, [list(fragments), portal.RADIO_OPTION_SELECTOR, _QUESTION_ATTR, question_key]
        )
    except PlaywrightError:
        found = False
    if not found:
        logger.warning("Radio question not found: %s", question_key)
        return False

    container = page.locator(f'[{_QUESTION_ATTR}="{question_key}"]').first
    options = container.locator(portal.RADIO_OPTION_SELECTOR)
    aliases = _radio_aliases(value)
    for index in range(options.count()):
        option = options.nth(index)
        state = _option_state(option)
        if _norm(state["value"]) not in aliases and _norm(state["text"]) not in aliases:
            continue
        if _is_selected(state):
            return True
        if not try_click(option):
            continue
        page.wait_for_timeout(150)
        if _is_selected(_option_state(option)):
            return True
        logger.info("Radio %s=%s clicked but indicator not selected", question_key, value)

    logger.warning("Radio %s: option %r not selected", question_key, value)
    return False


def set_checkbox(page: Page, selector: str, checked: bool = True) -> bool:
    locator = _locate(page, selector, timeout_ms=1500)
    if locator is None:
        for fallback in portal.CONSENT_FALLBACK_SELECTORS:
            locator = resolve_visible(page, fallback)
            if locator is not None:
                break
    if locator is None:
        logger.warning("Checkbox not found: %s", selector)
        return False

    try:
        if locator.evaluate("(el) => el.tagName === 'INPUT' && el.type === 'checkbox'"):
            locator.set_checked(checked, timeout=3000)
            return locator.is_checked() == checked
        current = locator.get_attribute("aria-checked") == "true"
        if current != checked:
            locator.click(timeout=3000)
        return (locator.get_attribute("aria-checked") == "true") == checked
    except (PlaywrightTimeoutError, PlaywrightError) as exc:
        logger.warning("Checkbox %s failed: %s", selector, exc)
        return False


def fill_field(page: Page, spec: FieldSpec, value: object, translator: Translator | None = None) -> bool:
    """Dispatch one registry field to its filler."""
    if spec.kind == "checkbox":
        return set_checkbox(page, spec.target, bool(value))
    text = "" if value is None else str(value)
    if not text:
        return False
    if spec.kind == "text":
        return fill_text(page, spec.target, text)
    if spec.kind == "textarea":
        return fill_textarea(page, spec.target, text)
    if spec.kind == "date":
        return fill_date(page, spec.target, text)
    if spec.kind == "dropdown":
        return select_dropdown(page, spec.target, text, translator=translator, category=spec.category)
    if spec.kind == "radio":
        return select_radio(page, spec.target, text)
    raise ValueError(f"Unknown field kind: {spec.kind}")
