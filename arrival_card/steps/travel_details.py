from __future__ import annotations

import logging

from playwright.sync_api import Page

from ..models import ApplicantForm
from ..portal import PageState
from ..translator import Translator
from ..utils.waits import wait_for_dom_stable
from .navigation import PageNavigator, fill_fields, refill_empty

DATE_FIELDS = ("arrival_date", "departure_date")


def fill_travel_details(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    fill_fields(page, form, DATE_FIELDS + ("has_visa_or_kitas",), translator, logger)
    if form.has_visa_or_kitas:
        # The visa number input only exists after "Yes" is picked.
        wait_for_dom_stable(page, max_duration_ms=1500)
        fill_fields(page, form, ("visa_or_kitas_number",), translator, logger)


def preflight_travel_details(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    keys = DATE_FIELDS + (("visa_or_kitas_number",) if form.has_visa_or_kitas else ())
    refill_empty(page, form, keys, translator, logger)


NAVIGATOR = PageNavigator(
    name="travel-details",
    state=PageState.TRAVEL_DETAILS,
    next_states=frozenset({PageState.TRANSPORT_ADDRESS}),
    fill=fill_travel_details,
    preflight=preflight_travel_details,
)
