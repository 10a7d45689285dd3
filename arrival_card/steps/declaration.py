from __future__ import annotations

import logging

from playwright.sync_api import Page

from .. import portal
from ..errors import FieldFillError
from ..fields import fill_text, select_dropdown, set_checkbox
from ..models import ApplicantForm, DeclaredGood
from ..translator import Translator
from ..utils.ui import click_button_by_texts
from ..utils.waits import wait_for_dom_stable
from .navigation import fill_fields, refill_empty

CUSTOMS_QUESTIONS = ("has_quarantine_items", "has_goods_to_declare", "has_technology_devices")


def fill_health(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    fill_fields(page, form, ("has_symptoms",), translator, logger)
    if form.has_symptoms and form.selected_symptoms:
        wait_for_dom_stable(page, max_duration_ms=1000)
        for symptom in form.selected_symptoms:
            if not set_checkbox(page, portal.symptom_selector(symptom), True):
                logger.warning("Symptom checkbox not ticked: %s", symptom)

    for country in form.countries_visited:
        if not select_dropdown(
            page, portal.COUNTRIES_VISITED_SELECTOR, country, translator=translator, category="country", multi=True
        ):
            logger.warning("Country visited not selected: %s", country)


def _fill_goods_row(page: Page, index: int, item: DeclaredGood, translator: Translator) -> list[str]:
    sel = portal.declared_good_selector
    results = {
        "description": fill_text(page, sel(index, "description"), item.description),
        "quantity": fill_text(page, sel(index, "quantity"), item.quantity),
        "value": fill_text(page, sel(index, "value"), item.value),
        "currency": select_dropdown(page, sel(index, "currency"), item.currency, translator=translator, category="currency"),
    }
    return [name for name, ok in results.items() if not ok]


def fill_declared_goods(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    for index, item in enumerate(form.declared_goods):
        if not click_button_by_texts(page, portal.ADD_GOODS_TEXTS, timeout_ms=2000):
            raise FieldFillError(f"Add-goods control not found for item {index + 1}", details={"item": index + 1})
        wait_for_dom_stable(page, max_duration_ms=1500)
        missed = _fill_goods_row(page, index, item, translator)
        if missed:
            logger.warning("Declared goods item %d: unfilled %s", index + 1, missed)
        else:
            logger.info("Declared goods item %d: %s", index + 1, item.description)


def fill_customs(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    fill_fields(page, form, CUSTOMS_QUESTIONS, translator, logger)
    if form.has_goods_to_declare:
        wait_for_dom_stable(page, max_duration_ms=1000)
        fill_declared_goods(page, form, translator, logger)
    fill_fields(page, form, ("baggage_count",), translator, logger)


def fill_consent(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    fill_fields(page, form, ("consent_accurate",), translator, logger)


def fill_declaration(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    fill_health(page, form, translator, logger)
    fill_customs(page, form, translator, logger)
    fill_consent(page, form, translator, logger)


def preflight_declaration(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    refill_empty(page, form, ("baggage_count",), translator, logger)
