from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from .. import portal
from ..config import AppConfig
from ..errors import PortalNavigationError, TransitionError
from ..fields import fill_field
from ..models import ApplicantForm
from ..portal import PageState, detect_state
from ..recovery import recover
from ..translator import Translator
from ..utils.logging_utils import mask_passport
from ..utils.snapshots import save_snapshot
from ..utils.ui import click_button_by_texts, resolve_visible
from ..utils.waits import poll_until, wait_for_dom_stable

FillStep = Callable[[Page, ApplicantForm, Translator, logging.Logger], None]

TEXT_KINDS = {"text", "textarea", "date"}


@dataclass(frozen=True)
class PageNavigator:
    name: str
    state: PageState
    next_states: frozenset[PageState]
    fill: FillStep
    preflight: FillStep | None = None
    forward: tuple[str, ...] = portal.NEXT_TEXTS


def open_portal(page: Page, config: AppConfig, logger: logging.Logger) -> None:
    logger.info("Opening portal %s", config.portal_url)
    try:
        response = page.goto(config.portal_url, wait_until="domcontentloaded", timeout=config.navigation_timeout_ms)
    except PlaywrightError as exc:
        raise PortalNavigationError(f"Navigation failed: {exc}", config.portal_url) from exc
    if response is not None and response.status >= 400:
        raise PortalNavigationError(f"Portal answered HTTP {response.status}", config.portal_url)
    wait_for_dom_stable(page, max_duration_ms=5000)


def enter_wizard(page: Page, config: AppConfig, logger: logging.Logger) -> None:
    """From the landing page to the first wizard page."""
    if detect_state(page) == PageState.PERSONAL_INFO:
        return
    for text in portal.ENTRY_TEXTS:
        if not click_button_by_texts(page, (text,), timeout_ms=800):
            continue
        logger.info("Clicked entry control %r", text)
        if wait_for_states(page, frozenset({PageState.PERSONAL_INFO}), config.transition_timeout_ms) is not None:
            return
    raise PortalNavigationError(
        f"Wizard did not open (page looks like {detect_state(page).value})", page.url or config.portal_url
    )


def fill_fields(
    page: Page,
    form: ApplicantForm,
    keys: Iterable[str],
    translator: Translator,
    logger: logging.Logger,
) -> list[str]:
    """Fill registry fields in order. Returns keys that did not verify."""
    missed = []
    for key in keys:
        spec = portal.field_spec(key)
        value = spec.value(form) if spec.value else None
        if value in (None, ""):
            continue
        shown = mask_passport(str(value)) if key == "passport_number" else value
        if fill_field(page, spec, value, translator):
            logger.info("Filled %s=%s", key, shown)
        else:
            logger.warning("Could not fill %s=%s", key, shown)
            missed.append(key)
    return missed


def refill_empty(
    page: Page,
    form: ApplicantForm,
    keys: Iterable[str],
    translator: Translator,
    logger: logging.Logger,
) -> list[str]:
    """Pre-flight pass: re-fill text-like fields the portal cleared on re-render."""
    refilled = []
    for key in keys:
        spec = portal.field_spec(key)
        if spec.kind not in TEXT_KINDS or spec.value is None:
            continue
        expected = spec.value(form)
        if not expected:
            continue
        locator = resolve_visible(page, spec.target)
        if locator is None:
            continue
        try:
            current = locator.input_value(timeout=1000)
        except PlaywrightError:
            continue
        if current.strip():
            continue
        logger.info("Pre-flight: %s is empty, re-filling", key)
        if fill_field(page, spec, expected, translator):
            refilled.append(key)
    return refilled


def wait_for_states(page: Page, states: frozenset[PageState], timeout_ms: int) -> PageState | None:
    reached: list[PageState] = []

    def _arrived() -> bool:
        state = detect_state(page)
        if state in states:
            reached.append(state)
            return True
        return False

    if poll_until(page, _arrived, timeout_ms=timeout_ms, interval_ms=250):
        return reached[-1]
    return None


def advance(
    page: Page,
    navigator: PageNavigator,
    form: ApplicantForm,
    config: AppConfig,
    logger: logging.Logger,
    translator: Translator | None = None,
    run_dir: Path | None = None,
) -> PageState:
    """Fill one wizard page and move forward, confirming the move against the DOM."""
    translator = translator or Translator()
    logger.info("Page %s: filling", navigator.name)
    navigator.fill(page, form, translator, logger)
    if navigator.preflight is not None:
        navigator.preflight(page, form, translator, logger)

    limit = max(1, config.nav_retry_limit)
    for attempt in range(1, limit + 1):
        if click_button_by_texts(page, navigator.forward, timeout_ms=2000):
            reached = wait_for_states(page, navigator.next_states, config.transition_timeout_ms)
            if reached is not None:
                logger.info("Page %s -> %s (attempt %d)", navigator.name, reached.value, attempt)
                return reached
            logger.warning(
                "Page %s: forward click not confirmed (attempt %d/%d), now %s",
                navigator.name,
                attempt,
                limit,
                detect_state(page).value,
            )
        else:
            logger.warning("Page %s: forward control not found (attempt %d/%d)", navigator.name, attempt, limit)

        save_snapshot(page, run_dir, f"{navigator.name}_attempt_{attempt}")
        if attempt < limit:
            recover(page, form, translator)

    current = detect_state(page)
    raise TransitionError(
        f"Could not leave {navigator.name} after {limit} attempts (still on {current.value})",
        details={"page": navigator.name, "attempts": limit, "state": current.value},
    )
