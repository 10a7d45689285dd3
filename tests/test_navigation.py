from __future__ import annotations

import pytest

from arrival_card.errors import ErrorCode, TransitionError
from arrival_card.portal import PageState
from arrival_card.steps import navigation
from arrival_card.steps.navigation import PageNavigator, advance


class FakePage:
    url = "https://portal/personal"

    def wait_for_timeout(self, timeout):
        return None


def _navigator(calls):
    def fill(page, form, translator, logger):
        calls.append("fill")

    def preflight(page, form, translator, logger):
        calls.append("preflight")

    return PageNavigator(
        name="personal-info",
        state=PageState.PERSONAL_INFO,
        next_states=frozenset({PageState.TRAVEL_DETAILS}),
        fill=fill,
        preflight=preflight,
    )


@pytest.fixture
def patched(monkeypatch):
    calls = []
    outcomes = []
    monkeypatch.setattr(navigation, "click_button_by_texts", lambda page, texts, timeout_ms=0: calls.append("click") or True)
    monkeypatch.setattr(navigation, "wait_for_states", lambda page, states, timeout_ms: outcomes.pop(0) if outcomes else None)
    monkeypatch.setattr(navigation, "recover", lambda page, form, translator=None: calls.append("recover") or True)
    monkeypatch.setattr(navigation, "detect_state", lambda page: PageState.PERSONAL_INFO)
    return calls, outcomes


def test_advance_retries_after_recovery(patched, form, config, logger):
    calls, outcomes = patched
    outcomes.extend([None, PageState.TRAVEL_DETAILS])

    reached = advance(FakePage(), _navigator(calls), form, config, logger)

    assert reached == PageState.TRAVEL_DETAILS
    assert calls == ["fill", "preflight", "click", "recover", "click"]


def test_advance_raises_after_retry_limit(patched, form, config, logger):
    calls, _ = patched

    with pytest.raises(TransitionError) as excinfo:
        advance(FakePage(), _navigator(calls), form, config, logger)

    error = excinfo.value
    assert error.code == ErrorCode.VALIDATION_ERROR
    assert error.details == {"page": "personal-info", "attempts": 2, "state": "personal_info"}
    assert calls.count("click") == 2
    assert calls.count("recover") == 1


def test_advance_counts_missing_forward_control_as_attempt(monkeypatch, form, config, logger):
    calls = []
    monkeypatch.setattr(navigation, "click_button_by_texts", lambda page, texts, timeout_ms=0: False)
    monkeypatch.setattr(navigation, "recover", lambda page, form, translator=None: calls.append("recover") or False)
    monkeypatch.setattr(navigation, "detect_state", lambda page: PageState.UNKNOWN)

    with pytest.raises(TransitionError):
        advance(FakePage(), _navigator(calls), form, config, logger)
    assert calls == ["fill", "preflight", "recover"]


def test_fill_fields_skips_empty_values_and_reports_misses(monkeypatch, form, logger):
    filled = []

    def fake_fill(page, spec, value, translator=None):
        filled.append((spec.key, value))
        return spec.key != "email"

    monkeypatch.setattr(navigation, "fill_field", fake_fill)
    missed = navigation.fill_fields(FakePage(), form, ("passport_number", "email", "visa_or_kitas_number"), None, logger)

    assert filled == [("passport_number", "X1234567"), ("email", "jane@example.com")]
    assert missed == ["email"]
