from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page

from .. import portal
from ..config import AppConfig
from ..errors import GroupTravellerError
from ..fields import fill_field
from ..models import ApplicantForm, FamilyMember
from ..portal import PageState, detect_state
from ..recovery import recover
from ..translator import Translator
from ..utils.logging_utils import mask_passport
from ..utils.snapshots import save_snapshot
from ..utils.ui import click_button_by_texts, try_click
from ..utils.waits import wait_for_dom_stable
from .declaration import fill_consent, fill_customs, fill_health
from .navigation import PageNavigator, fill_fields, wait_for_states

PHASES = ("travel", "declaration")

TRAVEL_LEAD_FIELDS = ("arrival_date", "departure_date", "has_visa_or_kitas")


def _visible_cards(page: Page) -> list[Locator]:
    cards = page.locator(", ".join(portal.TRAVELLER_CARD_SELECTORS))
    visible = []
    try:
        for index in range(cards.count()):
            card = cards.nth(index)
            if card.is_visible():
                visible.append(card)
    except PlaywrightError:
        return []
    return visible


def open_traveller(page: Page, index: int, config: AppConfig, logger: logging.Logger) -> None:
    cards = _visible_cards(page)
    if index >= len(cards):
        raise GroupTravellerError(
            f"Traveller card {index + 1} not found ({len(cards)} cards on page)",
            details={"traveller": index + 1, "cards": len(cards)},
        )
    if not try_click(cards[index], timeout_ms=3000):
        raise GroupTravellerError(f"Traveller card {index + 1} could not be clicked", details={"traveller": index + 1})

    if wait_for_states(page, frozenset({PageState.GROUP_TRAVELLER_FORM}), config.transition_timeout_ms) is None:
        raise GroupTravellerError(
            f"Sub-form for traveller {index + 1} did not open (now {detect_state(page).value})",
            details={"traveller": index + 1},
        )
    logger.info("Traveller %d: sub-form open", index + 1)


def save_traveller(
    page: Page,
    index: int,
    form: ApplicantForm,
    config: AppConfig,
    logger: logging.Logger,
    translator: Translator,
    run_dir: Path | None = None,
    values: Mapping[str, Any] | None = None,
) -> None:
    limit = max(1, config.nav_retry_limit)
    for attempt in range(1, limit + 1):
        if click_button_by_texts(page, portal.SAVE_TEXTS, timeout_ms=2000):
            if wait_for_states(page, frozenset({PageState.GROUP_CARDS}), config.transition_timeout_ms) is not None:
                logger.info("Traveller %d saved", index + 1)
                return
        logger.warning("Traveller %d: save not confirmed (attempt %d/%d)", index + 1, attempt, limit)
        save_snapshot(page, run_dir, f"traveller_{index + 1}_save_{attempt}")
        if attempt < limit:
            recover(page, form, translator, values)

    raise GroupTravellerError(
        f"Traveller {index + 1} sub-form did not return to the card list",
        details={"traveller": index + 1, "attempts": limit},
    )


def _fill_visa(page: Page, has_visa: bool | None, visa_number: str, translator: Translator) -> bool:
    ok = fill_field(page, portal.field_spec("has_visa_or_kitas"), portal.yes_no(has_visa), translator)
    if has_visa and visa_number:
        wait_for_dom_stable(page, max_duration_ms=1500)
        ok = fill_field(page, portal.field_spec("visa_or_kitas_number"), visa_number, translator) and ok
    return ok


def traveller_values(form: ApplicantForm, member: FamilyMember | None, phase: str) -> dict[str, Any]:
    """Field values recovery may re-fill inside one traveller's sub-form."""
    if phase == "declaration":
        return {"has_symptoms": portal.yes_no(form.has_symptoms)}
    if member is None:
        values: dict[str, Any] = {key: portal.field_spec(key).value(form) for key in TRAVEL_LEAD_FIELDS}
        if form.has_visa_or_kitas:
            values["visa_or_kitas_number"] = form.visa_or_kitas_number
        return values
    values = {"has_visa_or_kitas": portal.yes_no(member.has_visa_or_kitas)}
    if member.has_visa_or_kitas:
        values["visa_or_kitas_number"] = member.visa_or_kitas_number
    return values


def fill_traveller(
    page: Page,
    form: ApplicantForm,
    member: FamilyMember | None,
    phase: str,
    translator: Translator,
    logger: logging.Logger,
) -> None:
    """Lead gets dates and visa; dependents only their own visa answer."""
    if phase == "declaration":
        fill_health(page, form, translator, logger)
        return

    if member is None:
        fill_fields(page, form, TRAVEL_LEAD_FIELDS, translator, logger)
        if form.has_visa_or_kitas:
            wait_for_dom_stable(page, max_duration_ms=1500)
            fill_fields(page, form, ("visa_or_kitas_number",), translator, logger)
        return

    if not _fill_visa(page, member.has_visa_or_kitas, member.visa_or_kitas_number, translator):
        logger.warning("Visa answer for %s did not verify", mask_passport(member.passport_number))


def run_group_flow(
    page: Page,
    form: ApplicantForm,
    config: AppConfig,
    logger: logging.Logger,
    phase: str,
    translator: Translator | None = None,
    run_dir: Path | None = None,
) -> int:
    """Visit every traveller card in order, lead first. Aborts on the first traveller that fails."""
    if phase not in PHASES:
        raise ValueError(f"Unknown group phase: {phase}")
    translator = translator or Translator()
    travellers: list[FamilyMember | None] = [None, *form.family_members]
    logger.info("Group %s: %d travellers", phase, len(travellers))

    for index, member in enumerate(travellers):
        open_traveller(page, index, config, logger)
        fill_traveller(page, form, member, phase, translator, logger)
        save_traveller(page, index, form, config, logger, translator, run_dir, traveller_values(form, member, phase))

    if phase == "declaration":
        fill_customs(page, form, translator, logger)
        fill_consent(page, form, translator, logger)

    return len(travellers)


def _no_fill(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    return None


TRAVEL_CARDS_NAVIGATOR = PageNavigator(
    name="group-travel",
    state=PageState.GROUP_CARDS,
    next_states=frozenset({PageState.TRANSPORT_ADDRESS}),
    fill=_no_fill,
)
