from __future__ import annotations

import pytest

from arrival_card.errors import ExtractionError
from arrival_card.models import (
    ApplicantForm,
    AutomationResult,
    ProgressReporter,
    SubmissionArtifact,
)


def test_from_dict_reads_camel_case_payload(form):
    assert form.passport_number == "X1234567"
    assert form.mode_of_transport == "AIR"
    assert form.has_goods_to_declare is False
    assert form.baggage_count == "2"
    assert form.is_group is False
    assert form.traveller_count == 1
    assert form.validate() == []


def test_from_dict_accepts_string_flags_and_both_goods_spellings(applicant_data):
    applicant_data.pop("hasGoodsToDeclarate")
    applicant_data["hasGoodsToDeclare"] = "yes"
    applicant_data["hasVisaOrKitas"] = "false"
    applicant_data["declaredGoods"] = [{"description": "Camera", "quantity": "1", "value": "900", "currency": "usd"}]
    form = ApplicantForm.from_dict(applicant_data)

    assert form.has_goods_to_declare is True
    assert form.has_visa_or_kitas is False
    assert form.declared_goods[0].currency == "USD"


def test_group_form_counts_lead_and_dependents(group_form):
    assert group_form.is_group
    assert group_form.traveller_count == 3
    assert group_form.family_members[1].full_passport_name == "Jimmy Doe"


def test_validate_reports_each_problem(applicant_data):
    applicant_data.update(
        {
            "passportNumber": "",
            "arrivalDate": "20/12/2026",
            "flightNumber": "",
            "hasVisaOrKitas": True,
            "hasGoodsToDeclarate": True,
            "consentAccurate": False,
        }
    )
    problems = ApplicantForm.from_dict(applicant_data).validate()

    assert "passportNumber: required" in problems
    assert any(p.startswith("arrivalDate: expected YYYY-MM-DD") for p in problems)
    assert "flightNumber: required for AIR" in problems
    assert any(p.startswith("visaOrKitasNumber") for p in problems)
    assert "declaredGoods: at least one item required" in problems
    assert "consentAccurate: consent required" in problems


def test_validate_requires_vessel_for_sea(applicant_data):
    applicant_data["modeOfTransport"] = "sea"
    problems = ApplicantForm.from_dict(applicant_data).validate()
    assert problems == ["vesselName: required for SEA"]


def test_validate_rejects_unknown_transport_and_missing_answers(applicant_data):
    applicant_data["modeOfTransport"] = "rail"
    applicant_data.pop("hasTechnologyDevices")
    problems = ApplicantForm.from_dict(applicant_data).validate()
    assert "modeOfTransport: unsupported 'RAIL'" in problems
    assert "hasTechnologyDevices: answer required" in problems


def test_progress_never_goes_backwards():
    seen = []
    reporter = ProgressReporter(seen.append)
    reporter.report("personal-info", 25, "a")
    reporter.report("navigation", 10, "b")
    reporter.report("complete", 140, "c")

    assert [event.progress for event in seen] == [25, 25, 100]
    assert [event.step for event in reporter.events] == ["personal-info", "navigation", "complete"]


def test_success_result_shape():
    artifact = SubmissionArtifact(
        image_data="data:image/png;base64,AAAA",
        arrival_card_number="2412345678",
        passenger_name="JANE DOE",
        passport_number="X1234567",
        nationality="UNITED STATES",
        arrival_date="2026-12-20",
        width=200,
        height=200,
    )
    payload = AutomationResult.succeeded(artifact).to_dict()

    assert payload["success"] is True
    assert payload["qrCode"] == {"imageData": "data:image/png;base64,AAAA", "format": "png", "size": {"width": 200, "height": 200}}
    details = payload["submissionDetails"]
    assert details["submissionId"] == details["referenceNumber"] == "2412345678"
    assert details["status"] == "completed"
    assert details["passengerName"] == "JANE DOE"
    assert payload["message"] == "Arrival card submitted successfully"


def test_failure_result_shape():
    error = ExtractionError("Success page has no QR code graphic", details={"selectors": 6})
    payload = AutomationResult.failed(error, "https://portal.example/").to_dict()

    assert payload == {
        "success": False,
        "error": {
            "code": "QR_EXTRACTION_FAILED",
            "message": "Success page has no QR code graphic",
            "step": "qr_extraction",
            "details": {"selectors": 6},
        },
        "fallbackUrl": "https://portal.example/",
    }


@pytest.mark.parametrize("bad", [None, "", "no"])
def test_consent_must_be_truthy(applicant_data, bad):
    applicant_data["consentAccurate"] = bad
    assert "consentAccurate: consent required" in ApplicantForm.from_dict(applicant_data).validate()
