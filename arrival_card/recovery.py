from __future__ import annotations

import logging
from typing import Any, Mapping

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from . import portal
from .fields import fill_field
from .models import ApplicantForm, ValidationIssue
from .translator import Translator
from .utils.ui import click_button_by_texts
from .utils.waits import wait_for_dom_stable

logger = logging.getLogger("arrival_card.recovery")

UNKNOWN = "unknown"

_MARK_POPUP_JS = """
([texts, minZ, attr]) => {
  document.querySelectorAll(`[${attr}]`).forEach((el) => el.removeAttribute(attr));
  const candidates = Array.from(document.querySelectorAll('body *')).filter((el) => {
    const style = getComputedStyle(el);
    if (style.position !== 'fixed') return false;
    const z = parseInt(style.zIndex, 10);
    if (Number.isNaN(z) || z < minZ) return false;
    const rect = el.getBoundingClientRect();
    if (rect.width === 0 || rect.height === 0 || style.visibility === 'hidden' || style.display === 'none') return false;
    const text = (el.innerText || '').toLowerCase();
    return texts.some((t) => text.includes(t));
  });
  if (!candidates.length) return false;
  candidates[candidates.length - 1].setAttribute(attr, '1');
  return true;
}
"""

_SCAN_JS = """
(errorTextSelector) => {
  const parseRgb = (value) => {
    const m = /rgba?\\(\\s*(\\d+)\\s*,\\s*(\\d+)\\s*,\\s*(\\d+)/.exec(value || '');
    return m ? [Number(m[1]), Number(m[2]), Number(m[3])] : null;
  };
  const isRed = (value) => {
    const rgb = parseRgb(value);
    return rgb !== null && rgb[0] >= 180 && rgb[1] < 110 && rgb[2] < 110;
  };
  const visible = (el) => {
    const rect = el.getBoundingClientRect();
    const style = getComputedStyle(el);
    return rect.width > 0 && rect.height > 0 && style.visibility !== 'hidden' && style.display !== 'none';
  };
  const nearbyText = (el) => {
    for (let node = el.parentElement, depth = 0; node && depth < 4; node = node.parentElement, depth++) {
      const label = node.querySelector('label, legend, [class*="label"]');
      if (label && label.innerText.trim()) return label.innerText.trim().slice(0, 200);
    }
    return '';
  };
  const describe = (el, message) => {
    const field = el.matches('input, textarea, select') ? el : (el.querySelector('input, textarea, select') || el);
    return {
      id: field.id || el.id || '',
      placeholder: field.getAttribute('placeholder') || '',
      nearby: nearbyText(el),
      message,
      border: getComputedStyle(el).borderTopColor,
    };
  };
  const found = [];
  for (const el of document.querySelectorAll('body *')) {
    if (!visible(el)) continue;
    const style = getComputedStyle(el);
    if (parseFloat(style.borderTopWidth) > 0 && isRed(style.borderTopColor)) {
      if (el.parentElement && found.some((f) => f.el === el.parentElement)) continue;
      found.push({el, info: describe(el, '')});
    }
  }
  for (const el of document.querySelectorAll(errorTextSelector)) {
    if (!visible(el) || el.children.length > 0) continue;
    const text = (el.innerText || '').trim();
    if (!text || text.length > 200 || !isRed(getComputedStyle(el).color)) continue;
    const container = el.parentElement || el;
    found.push({el, info: describe(container, text)});
  }
  return found.map((f) => f.info);
}
"""

_POPUP_ATTR = "data-arrival-blocking-popup"


def is_invalid_red(rgb: str) -> bool:
    parsed = portal.parse_rgb(rgb)
    if parsed is None:
        return False
    r, g, b = parsed
    return r >= 180 and g < 110 and b < 110


def _longest_match(text: str, specs: list[tuple[str, str]]) -> str | None:
    best: tuple[int, str] | None = None
    for key, fragment in specs:
        if fragment and fragment in text and (best is None or len(fragment) > best[0]):
            best = (len(fragment), key)
    return best[1] if best else None


def classify(candidate: Mapping[str, Any]) -> str:
    """Bucket a flagged element by id, then placeholder, then nearby wording."""
    element_id = str(candidate.get("id") or "").lower()
    placeholder = str(candidate.get("placeholder") or "").lower()
    nearby = " ".join(str(candidate.get(name) or "") for name in ("nearby", "message")).lower()

    if element_id:
        match = _longest_match(element_id, [(s.key, s.id_fragment.lower()) for s in portal.FIELD_REGISTRY])
        if match:
            return match
    if placeholder:
        match = _longest_match(placeholder, [(s.key, p) for s in portal.FIELD_REGISTRY for p in s.placeholders])
        if match:
            return match
    if nearby:
        match = _longest_match(nearby, [(s.key, k) for s in portal.FIELD_REGISTRY for k in s.keywords])
        if match:
            return match
    return UNKNOWN


def dismiss_blocking_popup(page: Page) -> bool:
    try:
        present = page.evaluate(
            _MARK_POPUP_JS, [list(portal.INCOMPLETE_POPUP_TEXTS), portal.POPUP_MIN_Z_INDEX, _POPUP_ATTR]
        )
    except PlaywrightError:
        return False
    if not present:
        return False

    popup = page.locator(f"[{_POPUP_ATTR}]").first
    if click_button_by_texts(popup, portal.POPUP_ACK_TEXTS, timeout_ms=1500):
        logger.info("Dismissed incomplete-data popup")
        try:
            popup.wait_for(state="hidden", timeout=2000)
        except PlaywrightError:
            logger.info("Incomplete-data popup still visible after acknowledgement")
        return True
    logger.warning("Incomplete-data popup found but no acknowledgement control")
    return False


def scan(page: Page) -> list[ValidationIssue]:
    try:
        raw = page.evaluate(_SCAN_JS, portal.ERROR_TEXT_SELECTORS)
    except PlaywrightError as exc:
        logger.info("Validation scan failed: %s", exc)
        return []

    issues: list[ValidationIssue] = []
    for candidate in raw:
        field_type = classify(candidate)
        locator = f"#{candidate['id']}" if candidate.get("id") else candidate.get("placeholder") or ""
        description = candidate.get("message") or f"invalid border {candidate.get('border', '')}".strip()
        issues.append(ValidationIssue(field_type=field_type, locator=locator, issue=description))
        if field_type == UNKNOWN:
            logger.info("Unclassified validation error: %s", candidate)
    return issues


def fix(
    page: Page,
    issues: list[ValidationIssue],
    form: ApplicantForm,
    translator: Translator | None = None,
    values: Mapping[str, Any] | None = None,
) -> bool:
    """Re-fill flagged fields. With ``values`` only those keys are touched, using those values."""
    fixed_any = False
    seen: set[str] = set()
    for issue in issues:
        if issue.field_type == UNKNOWN or issue.field_type in seen:
            continue
        seen.add(issue.field_type)
        spec = portal.FIELDS.get(issue.field_type)
        if spec is None:
            continue
        if values is not None:
            if issue.field_type not in values:
                logger.info("Skipping %s, not part of the open form", issue.field_type)
                continue
            value = values[issue.field_type]
        elif spec.value is not None:
            value = spec.value(form)
        else:
            continue
        if fill_field(page, spec, value, translator):
            logger.info("Re-filled %s", issue.field_type)
            fixed_any = True
        else:
            logger.warning("Could not re-fill %s (%s)", issue.field_type, issue.issue)
    return fixed_any


def recover(
    page: Page,
    form: ApplicantForm,
    translator: Translator | None = None,
    values: Mapping[str, Any] | None = None,
) -> bool:
    """Dismiss popup, wait for the DOM to settle, then scan and fix. True when anything changed."""
    dismissed = dismiss_blocking_popup(page)
    wait_for_dom_stable(page, max_duration_ms=2000)
    issues = scan(page)
    if issues:
        logger.info("Validation issues: %s", ", ".join(sorted({issue.field_type for issue in issues})))
    return fix(page, issues, form, translator, values) or dismissed
