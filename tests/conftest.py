from __future__ import annotations

import logging

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from arrival_card.config import AppConfig
from arrival_card.models import ApplicantForm

APPLICANT = {
    "passportNumber": "X1234567",
    "fullPassportName": "Jane Doe",
    "nationality": "United States",
    "dateOfBirth": "1990-04-12",
    "countryOfBirth": "United States",
    "gender": "Female",
    "passportExpiryDate": "2031-01-01",
    "mobileNumber": "+15551234567",
    "email": "jane@example.com",
    "arrivalDate": "2026-12-20",
    "departureDate": "2026-12-27",
    "hasVisaOrKitas": False,
    "modeOfTransport": "AIR",
    "purposeOfTravel": "Holiday / Sightseeing",
    "placeOfArrival": "DPS",
    "typeOfAirTransport": "Commercial Flight",
    "flightName": "Singapore Airlines",
    "flightNumber": "SQ938",
    "addressInIndonesia": "Jl. Pantai Kuta No. 1, Badung, Bali",
    "hasSymptoms": False,
    "hasQuarantineItems": False,
    "hasGoodsToDeclarate": False,
    "hasTechnologyDevices": False,
    "baggageCount": "2",
    "consentAccurate": True,
}


@pytest.fixture
def applicant_data() -> dict:
    return dict(APPLICANT)


@pytest.fixture
def form(applicant_data) -> ApplicantForm:
    return ApplicantForm.from_dict(applicant_data)


@pytest.fixture
def group_form(applicant_data) -> ApplicantForm:
    applicant_data["familyMembers"] = [
        {"passportNumber": "Y7654321", "fullPassportName": "John Doe", "nationality": "United States"},
        {"passportNumber": "Z1112223", "fullPassportName": "Jimmy Doe", "nationality": "United States"},
    ]
    return ApplicantForm.from_dict(applicant_data)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(transition_timeout_ms=600, nav_retry_limit=2, success_poll_attempts=2, success_poll_interval_ms=50)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("arrival_card.tests")


@pytest.fixture(scope="session")
def browser():
    playwright = sync_playwright().start()
    try:
        browser = playwright.chromium.launch(headless=True)
    except PlaywrightError as exc:
        playwright.stop()
        pytest.skip(f"Chromium not available: {exc}")
    yield browser
    browser.close()
    playwright.stop()


@pytest.fixture
def page(browser):
    context = browser.new_context(viewport={"width": 1200, "height": 800})
    context.set_default_timeout(5000)
    page = context.new_page()
    yield page
    context.close()
