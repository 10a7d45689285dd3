from __future__ import annotations

import pytest

from arrival_card import recovery
from arrival_card.errors import GroupTravellerError
from arrival_card.models import ApplicantForm, ValidationIssue
from arrival_card.portal import PageState
from arrival_card.steps import group


@pytest.fixture
def recorded(monkeypatch):
    calls = []
    monkeypatch.setattr(group, "open_traveller", lambda page, index, config, logger: calls.append(("open", index)))
    monkeypatch.setattr(
        group,
        "fill_traveller",
        lambda page, form, member, phase, translator, logger: calls.append(
            ("fill", member.passport_number if member else "lead", phase)
        ),
    )
    monkeypatch.setattr(
        group,
        "save_traveller",
        lambda page, index, form, config, logger, translator, run_dir=None, values=None: calls.append(("save", index)),
    )
    monkeypatch.setattr(group, "fill_customs", lambda page, form, translator, logger: calls.append(("customs",)))
    monkeypatch.setattr(group, "fill_consent", lambda page, form, translator, logger: calls.append(("consent",)))
    return calls


def test_travel_phase_visits_every_traveller_in_order(recorded, group_form, config, logger):
    count = group.run_group_flow(object(), group_form, config, logger, "travel")

    assert count == 3
    assert recorded == [
        ("open", 0), ("fill", "lead", "travel"), ("save", 0),
        ("open", 1), ("fill", "Y7654321", "travel"), ("save", 1),
        ("open", 2), ("fill", "Z1112223", "travel"), ("save", 2),
    ]


def test_declaration_phase_finishes_with_shared_questions(recorded, group_form, config, logger):
    group.run_group_flow(object(), group_form, config, logger, "declaration")
    assert recorded[-2:] == [("customs",), ("consent",)]


def test_first_failing_traveller_aborts_the_flow(recorded, monkeypatch, group_form, config, logger):
    def open_traveller(page, index, config, logger):
        if index == 1:
            raise GroupTravellerError("Traveller card 2 not found", details={"traveller": 2})
        recorded.append(("open", index))

    monkeypatch.setattr(group, "open_traveller", open_traveller)
    with pytest.raises(GroupTravellerError):
        group.run_group_flow(object(), group_form, config, logger, "travel")
    assert ("fill", "Y7654321", "travel") not in recorded
    assert recorded[-1] == ("save", 0)


def test_unknown_phase_rejected(group_form, config, logger):
    with pytest.raises(ValueError):
        group.run_group_flow(object(), group_form, config, logger, "transport")


@pytest.fixture
def visa_group_form(applicant_data) -> ApplicantForm:
    applicant_data.update(hasVisaOrKitas=True, visaOrKitasNumber="LEADVISA")
    applicant_data["familyMembers"] = [
        {
            "passportNumber": "Y7654321",
            "fullPassportName": "John Doe",
            "nationality": "United States",
            "hasVisaOrKitas": True,
            "visaOrKitasNumber": "DEPVISA",
        },
    ]
    return ApplicantForm.from_dict(applicant_data)


def test_dependent_values_cover_only_their_own_visa(visa_group_form):
    member = visa_group_form.family_members[0]
    assert group.traveller_values(visa_group_form, member, "travel") == {
        "has_visa_or_kitas": "Yes",
        "visa_or_kitas_number": "DEPVISA",
    }


def test_lead_values_include_dates_and_visa(visa_group_form):
    values = group.traveller_values(visa_group_form, None, "travel")
    assert values["arrival_date"] == "2026-12-20"
    assert values["visa_or_kitas_number"] == "LEADVISA"


def test_declaration_values_only_cover_health(visa_group_form):
    assert group.traveller_values(visa_group_form, visa_group_form.family_members[0], "declaration") == {
        "has_symptoms": "No",
    }


def test_retrying_a_dependent_save_refills_with_the_dependents_values(monkeypatch, visa_group_form, config, logger):
    states = iter([None, PageState.GROUP_CARDS])
    filled = []
    monkeypatch.setattr(group, "click_button_by_texts", lambda page, texts, timeout_ms=0: True)
    monkeypatch.setattr(group, "wait_for_states", lambda page, states_, timeout_ms: next(states))
    monkeypatch.setattr(group, "save_snapshot", lambda page, run_dir, name, with_html=False: None)
    monkeypatch.setattr(recovery, "dismiss_blocking_popup", lambda page: False)
    monkeypatch.setattr(recovery, "wait_for_dom_stable", lambda page, max_duration_ms=0: None)
    monkeypatch.setattr(
        recovery,
        "scan",
        lambda page: [
            ValidationIssue(field_type="visa_or_kitas_number", locator="#visaNumber_1", issue="required"),
            ValidationIssue(field_type="passport_number", locator="#passportNumber", issue="required"),
        ],
    )
    monkeypatch.setattr(
        recovery, "fill_field", lambda page, spec, value, translator=None: filled.append((spec.key, value)) or True
    )

    member = visa_group_form.family_members[0]
    values = group.traveller_values(visa_group_form, member, "travel")
    group.save_traveller(object(), 1, visa_group_form, config, logger, None, None, values)

    assert filled == [("visa_or_kitas_number", "DEPVISA")]
