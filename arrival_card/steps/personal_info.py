from __future__ import annotations

import logging

from playwright.sync_api import Page

from .. import portal
from ..errors import GroupTravellerError
from ..fields import fill_date, fill_text, select_dropdown
from ..models import ApplicantForm, FamilyMember
from ..portal import PageState
from ..translator import Translator
from ..utils.logging_utils import mask_passport
from ..utils.ui import click_button_by_texts
from ..utils.waits import wait_for_dom_stable
from .navigation import PageNavigator, fill_fields, refill_empty

FIELD_ORDER = (
    "passport_number",
    "full_passport_name",
    "nationality",
    "date_of_birth",
    "country_of_birth",
    "gender",
    "passport_expiry_date",
    "mobile_number",
    "email",
)


def _fill_member_row(page: Page, index: int, member: FamilyMember, translator: Translator, logger: logging.Logger) -> None:
    sel = portal.family_member_selector
    results = {
        "passport": fill_text(page, sel(index, "passportNumber"), member.passport_number),
        "name": fill_text(page, sel(index, "fullName"), member.full_passport_name),
        "nationality": select_dropdown(
            page, sel(index, "nationality"), member.nationality, translator=translator, category="country"
        ),
    }
    if member.date_of_birth:
        results["dob"] = fill_date(page, sel(index, "dateOfBirth"), member.date_of_birth)
    if member.passport_expiry_date:
        results["expiry"] = fill_date(page, sel(index, "passportExpiry"), member.passport_expiry_date)

    missed = [name for name, ok in results.items() if not ok]
    if missed:
        logger.warning("Family member %d (%s): unfilled %s", index + 1, mask_passport(member.passport_number), missed)
    else:
        logger.info("Family member %d (%s) added", index + 1, mask_passport(member.passport_number))


def add_family_members(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    for index, member in enumerate(form.family_members):
        if not click_button_by_texts(page, portal.ADD_TRAVELLER_TEXTS, timeout_ms=2000):
            raise GroupTravellerError(
                f"Add-traveller control not found for family member {index + 1}",
                details={"traveller": index + 2},
            )
        wait_for_dom_stable(page, max_duration_ms=1500)
        _fill_member_row(page, index, member, translator, logger)


def fill_personal_info(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    fill_fields(page, form, FIELD_ORDER, translator, logger)
    if form.is_group:
        add_family_members(page, form, translator, logger)


def preflight_personal_info(page: Page, form: ApplicantForm, translator: Translator, logger: logging.Logger) -> None:
    refill_empty(page, form, FIELD_ORDER, translator, logger)


NAVIGATOR = PageNavigator(
    name="personal-info",
    state=PageState.PERSONAL_INFO,
    next_states=frozenset({PageState.TRAVEL_DETAILS, PageState.GROUP_CARDS}),
    fill=fill_personal_info,
    preflight=preflight_personal_info,
)
