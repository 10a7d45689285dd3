from __future__ import annotations

from types import SimpleNamespace

import pytest

from arrival_card import automation
from arrival_card.config import AppConfig
from arrival_card.errors import ExtractionError, RunDeadlineExceeded
from arrival_card.models import ApplicantForm, SubmissionArtifact
from arrival_card.portal import PageState
from arrival_card.steps import group

MILESTONES = [
    ("initialization", 5),
    ("navigation", 10),
    ("personal-info", 25),
    ("travel-details", 40),
    ("transport", 55),
    ("declaration", 70),
    ("submission", 85),
    ("qr-extraction", 95),
    ("complete", 100),
]

INDIVIDUAL_ROUTE = {
    "personal-info": PageState.TRAVEL_DETAILS,
    "travel-details": PageState.TRANSPORT_ADDRESS,
    "transport-address": PageState.DECLARATION,
}

GROUP_ROUTE = {
    "personal-info": PageState.GROUP_CARDS,
    "group-travel": PageState.TRANSPORT_ADDRESS,
    "transport-address": PageState.GROUP_CARDS,
}


class FakeWizard:
    def __init__(self, monkeypatch, route):
        self.calls = []
        self.closed = False
        session = SimpleNamespace(page=SimpleNamespace(url="https://portal/"))
        monkeypatch.setattr(automation, "start_browser", lambda config, logger=None: session)
        monkeypatch.setattr(automation, "close_browser", self._close)
        monkeypatch.setattr(automation, "open_portal", lambda page, config, logger: self.calls.append("open"))
        monkeypatch.setattr(automation, "enter_wizard", lambda page, config, logger: self.calls.append("enter"))
        monkeypatch.setattr(automation, "advance", self._advance(route))
        monkeypatch.setattr(group, "run_group_flow", self._group)
        monkeypatch.setattr(automation, "fill_declaration", lambda page, form, translator, logger: self.calls.append("declaration"))
        monkeypatch.setattr(automation, "preflight_declaration", lambda page, form, translator, logger: None)
        monkeypatch.setattr(
            automation, "submit_declaration", lambda page, form, config, logger, translator=None, run_dir=None: self.calls.append("submit")
        )
        monkeypatch.setattr(automation, "extract_artifact", lambda page, form, logger: self.artifact)
        self.artifact = SubmissionArtifact(image_data="data:image/png;base64,AAAA", arrival_card_number="2412345678")

    def _close(self, session):
        self.closed = True

    def _advance(self, route):
        def advance(page, navigator, form, config, logger, translator=None, run_dir=None):
            self.calls.append(navigator.name)
            return route[navigator.name]

        return advance

    def _group(self, page, form, config, logger, phase, translator=None, run_dir=None):
        self.calls.append(f"group-{phase}")
        return form.traveller_count


def test_individual_run_succeeds_with_ordered_milestones(monkeypatch, form, config):
    wizard = FakeWizard(monkeypatch, INDIVIDUAL_ROUTE)
    events = []

    result = automation.submit_arrival_card(form, config, on_progress=events.append)

    assert result.ok
    assert result.to_dict()["submissionDetails"]["referenceNumber"] == "2412345678"
    assert [(e.step, e.progress) for e in events] == MILESTONES
    assert wizard.calls == [
        "open", "enter", "personal-info", "travel-details", "transport-address", "declaration", "submit",
    ]
    assert wizard.closed


def test_group_run_routes_through_traveller_cards(monkeypatch, group_form, config):
    wizard = FakeWizard(monkeypatch, GROUP_ROUTE)
    events = []

    result = automation.submit_arrival_card(group_form, config, on_progress=events.append)

    assert result.ok
    assert wizard.calls == [
        "open", "enter", "personal-info", "group-travel", "group-travel", "transport-address", "group-declaration", "submit",
    ]
    assert "family-members" in [e.step for e in events]


def test_invalid_form_never_launches_browser(monkeypatch, applicant_data, config):
    applicant_data["passportNumber"] = ""

    monkeypatch.setattr(automation, "start_browser", lambda config, logger=None: pytest.fail("browser launched"))
    payload = automation.submit_arrival_card(ApplicantForm.from_dict(applicant_data), config).to_dict()

    assert payload["success"] is False
    assert payload["error"]["code"] == "INVALID_FORM_DATA"
    assert payload["error"]["step"] == "validation"
    assert "passportNumber: required" in payload["error"]["details"]["problems"]
    assert payload["fallbackUrl"] == config.portal_url


def test_step_failure_becomes_structured_result(monkeypatch, form, config):
    wizard = FakeWizard(monkeypatch, INDIVIDUAL_ROUTE)

    def no_qr(page, form, logger):
        raise ExtractionError("Success page has no QR code graphic")

    monkeypatch.setattr(automation, "extract_artifact", no_qr)
    payload = automation.submit_arrival_card(form, config).to_dict()

    assert payload["error"]["code"] == "QR_EXTRACTION_FAILED"
    assert payload["error"]["step"] == "qr_extraction"
    assert wizard.closed


def test_unexpected_exception_is_wrapped(monkeypatch, form, config):
    wizard = FakeWizard(monkeypatch, INDIVIDUAL_ROUTE)

    def broken(page, form, config, logger, translator=None, run_dir=None):
        raise KeyError("boom")

    monkeypatch.setattr(automation, "submit_declaration", broken)
    payload = automation.submit_arrival_card(form, config).to_dict()

    assert payload["error"]["code"] == "AUTOMATION_ERROR"
    assert payload["error"]["message"].startswith("Unexpected error")
    assert payload["error"]["details"] == {"type": "KeyError"}
    assert wizard.closed


def test_keep_browser_open_skips_close(monkeypatch, form):
    wizard = FakeWizard(monkeypatch, INDIVIDUAL_ROUTE)
    automation.submit_arrival_card(form, AppConfig(keep_browser_open=True))
    assert not wizard.closed


def test_run_clock():
    automation.RunClock(0).check("anything")

    clock = automation.RunClock(5)
    clock.started -= 10
    with pytest.raises(RunDeadlineExceeded) as excinfo:
        clock.check("submission")
    assert excinfo.value.details["phase"] == "submission"
