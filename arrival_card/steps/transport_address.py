from __future__ import annotations

import logging

from playwright.sync_api import Page

from ..models import ApplicantForm
from ..portal import PageState
from ..translator import Translator
from ..utils.waits import wait_for_dom_stable
from .navigation import PageNavigator, fill_fields

AIR_FIELDS = ("place_of_arrival", "type_of_air_transport", "flight_name", "flight_number")
SEA_FIELDS = ("place_of_arrival", "type_of_vessel", "vessel_name")


def transport_fields(form: ApplicantForm) -> tuple[str, ...]:
    mode_fields = SEA_FIELDS if form.mode_of_transport == "SEA" else AIR_FIELDS
    return ("purpose_of_travel",) + mode_fields + ("address_in_indonesia",)


def fill_transport_address(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    fill_fields(page, form, ("mode_of_transport",), translator, logger)
    wait_for_dom_stable(page, max_duration_ms=1500)
    fill_fields(page, form, transport_fields(form), translator, logger)


NAVIGATOR = PageNavigator(
    name="transport-address",
    state=PageState.TRANSPORT_ADDRESS,
    next_states=frozenset({PageState.DECLARATION, PageState.GROUP_CARDS}),
    fill=fill_transport_address,
)
