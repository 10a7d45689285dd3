from __future__ import annotations

import pytest

from arrival_card.fields import choose_option, is_highlight_colour, normalize_date
from arrival_card.portal import PageState, field_spec, parse_rgb, state_from_landmarks
from arrival_card.recovery import UNKNOWN, classify, is_invalid_red


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2026-12-20", "20/12/2026"),
        ("20-12-2026", "20/12/2026"),
        ("20/12/2026", "20/12/2026"),
        (" 1990-04-02 ", "02/04/1990"),
    ],
)
def test_normalize_date(raw, expected):
    assert normalize_date(raw) == expected


def test_normalize_date_rejects_unknown_format():
    with pytest.raises(ValueError):
        normalize_date("Dec 20 2026")


def test_choose_option_prefers_exact_over_substring():
    assert choose_option(["SOUTH KOREA", "KOREA"], "Korea") == (1, "exact")


def test_choose_option_substring_either_direction():
    assert choose_option(["GA - GARUDA INDONESIA", "SQ - SINGAPORE AIRLINES"], "Singapore Airlines") == (1, "substring")
    assert choose_option(["JERMAN"], "jerman (germany)") == (0, "substring")


def test_choose_option_fallback_and_empty():
    assert choose_option(["", "FRANCE", "JAPAN"], "Zimbabwe") == (1, "fallback")
    assert choose_option(["", "  "], "Zimbabwe") == (None, "none")


def test_highlight_colour_is_saturated_blue():
    assert is_highlight_colour("rgb(24, 144, 255)")
    assert is_highlight_colour("rgba(22, 119, 255, 1)")
    assert not is_highlight_colour("rgb(255, 255, 255)")
    assert not is_highlight_colour("rgba(0, 0, 0, 0)")
    assert not is_highlight_colour("transparent")


def test_invalid_red():
    assert is_invalid_red("rgb(255, 77, 79)")
    assert is_invalid_red("rgb(220, 38, 38)")
    assert not is_invalid_red("rgb(217, 217, 217)")
    assert not is_invalid_red("")


def test_parse_rgb():
    assert parse_rgb("rgba(1, 2, 3, 0.5)") == (1, 2, 3)
    assert parse_rgb("none") is None


@pytest.mark.parametrize(
    "candidate, expected",
    [
        ({"id": "passportNumber_input"}, "passport_number"),
        ({"id": "arrivalDate"}, "arrival_date"),
        ({"placeholder": "Enter flight number"}, "flight_number"),
        ({"nearby": "Tanggal Kedatangan", "message": "wajib diisi"}, "arrival_date"),
        ({"nearby": "Visa Number"}, "visa_or_kitas_number"),
        ({"message": "Something went wrong"}, UNKNOWN),
        ({}, UNKNOWN),
    ],
)
def test_classify(candidate, expected):
    assert classify(candidate) == expected


def test_classify_prefers_id_over_wording():
    assert classify({"id": "email", "nearby": "Passport Number"}) == "email"


def test_field_spec_id_fragment():
    assert field_spec("flight_number").id_fragment == "flightNumber"
    assert field_spec("gender").id_fragment == ""


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        ({"url": "https://portal/", "headings": ["personal information"]}, PageState.PERSONAL_INFO),
        ({"url": "https://portal/personal", "headings": ["travel details"]}, PageState.TRAVEL_DETAILS),
        ({"url": "https://portal/", "headings": ["transportation and address"]}, PageState.TRANSPORT_ADDRESS),
        ({"url": "https://portal/", "headings": ["deklarasi"]}, PageState.DECLARATION),
        ({"url": "https://portal/", "headings": ["travel details"], "card_count": 3}, PageState.GROUP_CARDS),
        ({"url": "https://portal/group/2", "headings": [], "has_save": True}, PageState.GROUP_TRAVELLER_FORM),
        (
            {"url": "https://portal/", "headings": [], "has_qr": True, "body_text": "submitted successfully"},
            PageState.SUBMITTED,
        ),
        ({"url": "https://portal/transport", "headings": []}, PageState.TRANSPORT_ADDRESS),
        ({"url": "https://portal/", "headings": []}, PageState.UNKNOWN),
    ],
)
def test_state_from_landmarks(kwargs, expected):
    assert state_from_landmarks(**kwargs) == expected


def test_success_text_without_qr_is_not_submitted():
    state = state_from_landmarks("https://portal/", ["personal information"], body_text="saved successfully")
    assert state == PageState.PERSONAL_INFO


def test_success_url_without_qr_awaits_the_qr():
    state = state_from_landmarks("https://portal/arrival-card/success", [], body_text="arrival card submitted")
    assert state == PageState.AWAITING_QR


def test_success_text_with_view_qr_link_awaits_the_qr():
    state = state_from_landmarks(
        "https://portal/", [], has_view_qr=True, body_text="submitted successfully\nview qr code"
    )
    assert state == PageState.AWAITING_QR


def test_success_url_with_qr_is_submitted():
    state = state_from_landmarks("https://portal/arrival-card/success", [], has_qr=True)
    assert state == PageState.SUBMITTED
