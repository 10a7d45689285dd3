from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from .models import ApplicantForm


class PageState(str, Enum):
    PERSONAL_INFO = "personal_info"
    TRAVEL_DETAILS = "travel_details"
    TRANSPORT_ADDRESS = "transport_address"
    DECLARATION = "declaration"
    GROUP_CARDS = "group_cards"
    GROUP_TRAVELLER_FORM = "group_traveller_form"
    SUBMITTED = "submitted"
    AWAITING_QR = "awaiting_qr"
    UNKNOWN = "unknown"


GROUP_URL_FRAGMENT = "/group"

URL_FRAGMENTS = {
    PageState.PERSONAL_INFO: ("/personal", "/informasi-pribadi"),
    PageState.TRAVEL_DETAILS: ("/travel", "/perjalanan"),
    PageState.TRANSPORT_ADDRESS: ("/transport", "/transportasi"),
    PageState.DECLARATION: ("/declaration", "/deklarasi"),
    PageState.SUBMITTED: ("/success", "/berhasil", "/arrival-card/result"),
}

HEADINGS = {
    PageState.PERSONAL_INFO: ("personal information", "informasi pribadi", "data pribadi"),
    PageState.TRAVEL_DETAILS: ("travel details", "detail perjalanan", "informasi perjalanan"),
    PageState.TRANSPORT_ADDRESS: ("transportation and address", "transportasi dan alamat"),
    PageState.DECLARATION: ("declaration", "deklarasi"),
    PageState.GROUP_TRAVELLER_FORM: ("traveller details", "traveler details", "detail pelaku perjalanan"),
}

HEADING_SELECTOR = "h1, h2, h3, h4, legend, [role='heading'], [class*='step-title'], [class*='page-title']"

TRAVELLER_CARD_SELECTORS = [
    "[data-traveller-index]",
    "[class*='traveller-card']",
    "[class*='traveler-card']",
    "[class*='member-card']",
]

ENTRY_TEXTS = ("Submit Arrival Card", "Arrival Card", "Isi Kartu Kedatangan", "Kartu Kedatangan", "Start", "Mulai")
ADD_TRAVELLER_TEXTS = ("Add Traveller", "Add Traveler", "Add Family Member", "Tambah Pelaku Perjalanan", "Tambah")
ADD_GOODS_TEXTS = ("Add Goods", "Add Item", "Tambah Barang", "Tambah")
NEXT_TEXTS = ("Next", "Selanjutnya", "Lanjut", "Berikutnya")
SUBMIT_TEXTS = ("Submit", "Kirim")
SAVE_TEXTS = ("Save", "Simpan")

DROPDOWN_OVERLAY_SELECTORS = [
    "[role='listbox']",
    ".ant-select-dropdown:not(.ant-select-dropdown-hidden)",
    "[class*='select__menu']",
    "[class*='dropdown-menu']",
]
DROPDOWN_SEARCH_SELECTORS = [
    "input[type='search']",
    "input[placeholder*='Search' i]",
    "input[placeholder*='Cari' i]",
    "input[type='text']",
]
DROPDOWN_OPTION_SELECTORS = [
    "[role='option']",
    ".ant-select-item-option",
    "[class*='select__option']",
    "li",
]

RADIO_OPTION_SELECTOR = (
    "[role='radio'], label:has(input[type='radio']), label:has(input[readonly]), "
    "div:has(> input[readonly]), div:has(> input[type='hidden'])"
)
RADIO_INDICATOR_SELECTOR = "[class*='indicator' i], [class*='radio' i], [class*='circle' i], [class*='dot' i]"

RADIO_QUESTIONS = {
    "gender": ("gender", "jenis kelamin"),
    "visa": ("visa", "kitas", "kitap"),
    "transport_mode": ("mode of transport", "moda transportasi", "jenis transportasi"),
    "symptoms": ("symptom", "gejala"),
    "quarantine": ("animals, fish, plants", "quarantine", "hewan, ikan, tumbuhan", "karantina"),
    "goods": ("goods to declare", "goods that must be declared", "barang yang wajib", "barang bawaan"),
    "technology": ("mobile phones", "handheld", "imei", "telepon seluler", "perangkat elektronik"),
}

RADIO_VALUE_ALIASES = {
    "YES": ("YES", "YA"),
    "NO": ("NO", "TIDAK"),
    "MALE": ("MALE", "LAKI-LAKI", "PRIA"),
    "FEMALE": ("FEMALE", "PEREMPUAN", "WANITA"),
    "AIR": ("AIR", "UDARA"),
    "SEA": ("SEA", "LAUT"),
}

INCOMPLETE_POPUP_TEXTS = ("incomplete data", "data belum lengkap", "data tidak lengkap")
POPUP_ACK_TEXTS = ("OK", "Oke", "Mengerti", "Understood", "Close", "Tutup")
POPUP_MIN_Z_INDEX = 1000

CONFIRM_DIALOG_SELECTORS = [
    "[role='dialog']",
    "[role='alertdialog']",
    ".ant-modal",
    "[class*='modal']",
    "[class*='dialog']",
]
CONFIRM_TEXTS = ("are you sure", "apakah anda yakin", "confirm submission", "konfirmasi")
CONFIRM_AFFIRMATIVE_TEXTS = ("Yes", "Ya", "Confirm", "Konfirmasi", "Submit", "Kirim", "OK")

QR_SELECTORS = [
    "#myqrcode canvas",
    "#myqrcode img",
    "[class*='qr' i] canvas",
    "[id*='qr' i] canvas",
    "canvas[id*='qr' i]",
    "img[alt*='QR' i]",
    "img[src*='qr' i]",
    "svg[class*='qr' i]",
    "[class*='qr' i] img",
    "[class*='qr' i] svg",
]
# Capture only, never a success landmark.
QR_FALLBACK_SELECTORS = ["canvas"]
DOWNLOAD_QR_TEXTS = ("Download", "Download QR", "Unduh", "Unduh QR")
VIEW_QR_TEXTS = ("View QR Code", "Lihat QR Code", "Lihat Kode QR", "Show QR")
SUCCESS_TEXTS = ("successfully", "berhasil", "arrival card number", "nomor kartu kedatangan")

CONSENT_FALLBACK_SELECTORS = [
    "input[type='checkbox'][name*='consent' i]",
    "input[type='checkbox'][id*='agree' i]",
    "input[type='checkbox']",
]

RGB_PATTERN = re.compile(r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)")

ERROR_TEXT_SELECTORS = "[class*='error'], [class*='invalid'], [role='alert'], small, span, p"


@dataclass(frozen=True)
class FieldSpec:
    """One logical wizard field: how to find it, fill it and recognise it in an error."""

    key: str
    kind: str
    target: str
    placeholders: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    category: str | None = None
    value: Callable[[ApplicantForm], object] | None = None

    @property
    def id_fragment(self) -> str:
        if self.target.startswith('[id^="') and self.target.endswith('"]'):
            return self.target[len('[id^="'):-2]
        return ""


def parse_rgb(value: str) -> tuple[int, int, int] | None:
    match = RGB_PATTERN.search(value or "")
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def _prefix(id_fragment: str) -> str:
    return f'[id^="{id_fragment}"]'


def yes_no(flag: bool | None) -> str:
    return "Yes" if flag else "No"


FIELD_REGISTRY: tuple[FieldSpec, ...] = (
    FieldSpec("passport_number", "text", _prefix("passportNumber"),
              ("passport number", "nomor paspor"), ("passport number", "nomor paspor", "no. paspor"),
              value=lambda f: f.passport_number),
    FieldSpec("full_passport_name", "text", _prefix("fullName"),
              ("full name", "nama lengkap"), ("full name", "nama lengkap", "name as in passport"),
              value=lambda f: f.full_passport_name),
    FieldSpec("nationality", "dropdown", _prefix("nationality"),
              ("nationality", "kewarganegaraan"), ("nationality", "kewarganegaraan"),
              category="country", value=lambda f: f.nationality),
    FieldSpec("date_of_birth", "date", _prefix("dateOfBirth"),
              ("date of birth", "tanggal lahir"), ("date of birth", "tanggal lahir"),
              value=lambda f: f.date_of_birth),
    FieldSpec("country_of_birth", "dropdown", _prefix("countryOfBirth"),
              ("country of birth", "negara kelahiran"), ("country of birth", "negara kelahiran", "tempat lahir"),
              category="country", value=lambda f: f.country_of_birth),
    FieldSpec("gender", "radio", "gender", keywords=("gender", "jenis kelamin"),
              value=lambda f: f.gender),
    FieldSpec("passport_expiry_date", "date", _prefix("passportExpiry"),
              ("expiry", "berlaku"), ("expiry date", "masa berlaku", "tanggal kedaluwarsa"),
              value=lambda f: f.passport_expiry_date),
    FieldSpec("mobile_number", "text", _prefix("mobileNumber"),
              ("mobile", "nomor telepon", "nomor ponsel"), ("mobile number", "nomor telepon", "nomor ponsel"),
              value=lambda f: f.mobile_number),
    FieldSpec("email", "text", _prefix("email"),
              ("email",), ("email", "surel"),
              value=lambda f: f.email),
    FieldSpec("arrival_date", "date", _prefix("arrivalDate"),
              ("arrival date", "tanggal kedatangan"), ("arrival date", "tanggal kedatangan"),
              value=lambda f: f.arrival_date),
    FieldSpec("departure_date", "date", _prefix("departureDate"),
              ("departure date", "tanggal keberangkatan"), ("departure date", "tanggal keberangkatan"),
              value=lambda f: f.departure_date),
    FieldSpec("has_visa_or_kitas", "radio", "visa", keywords=("visa", "kitas"),
              value=lambda f: yes_no(f.has_visa_or_kitas)),
    FieldSpec("visa_or_kitas_number", "text", _prefix("visaNumber"),
              ("visa number", "nomor visa"), ("visa number", "kitas number", "nomor visa", "nomor kitas"),
              value=lambda f: f.visa_or_kitas_number),
    FieldSpec("mode_of_transport", "radio", "transport_mode", keywords=("mode of transport", "moda transportasi"),
              value=lambda f: f.mode_of_transport),
    FieldSpec("purpose_of_travel", "dropdown", _prefix("purposeOfTravel"),
              ("purpose", "tujuan"), ("purpose of travel", "tujuan perjalanan", "tujuan kunjungan"),
              category="purpose", value=lambda f: f.purpose_of_travel),
    FieldSpec("place_of_arrival", "dropdown", _prefix("placeOfArrival"),
              ("place of arrival", "tempat kedatangan"), ("place of arrival", "tempat kedatangan", "port of arrival"),
              category="airport", value=lambda f: f.place_of_arrival),
    FieldSpec("type_of_air_transport", "dropdown", _prefix("typeOfAirTransport"),
              ("type of air transport", "jenis angkutan udara"), ("type of air transport", "jenis angkutan udara"),
              category="air_transport_type", value=lambda f: f.type_of_air_transport),
    FieldSpec("flight_name", "dropdown", _prefix("flightName"),
              ("flight name", "airline", "maskapai"), ("flight name", "airline", "maskapai", "nama penerbangan"),
              category="airline", value=lambda f: f.flight_name),
    FieldSpec("flight_number", "text", _prefix("flightNumber"),
              ("flight number", "nomor penerbangan"), ("flight number", "nomor penerbangan"),
              value=lambda f: f.flight_number),
    FieldSpec("type_of_vessel", "dropdown", _prefix("typeOfVessel"),
              ("type of vessel", "jenis kapal"), ("type of vessel", "jenis kapal"),
              value=lambda f: f.type_of_vessel),
    FieldSpec("vessel_name", "text", _prefix("vesselName"),
              ("vessel name", "nama kapal"), ("vessel name", "nama kapal"),
              value=lambda f: f.vessel_name),
    FieldSpec("address_in_indonesia", "textarea", _prefix("address"),
              ("address", "alamat"), ("address in indonesia", "alamat di indonesia", "alamat"),
              value=lambda f: f.address_in_indonesia),
    FieldSpec("has_symptoms", "radio", "symptoms", keywords=("symptom", "gejala"),
              value=lambda f: yes_no(f.has_symptoms)),
    FieldSpec("has_quarantine_items", "radio", "quarantine", keywords=("quarantine", "karantina"),
              value=lambda f: yes_no(f.has_quarantine_items)),
    FieldSpec("has_goods_to_declare", "radio", "goods", keywords=("goods to declare", "barang yang wajib"),
              value=lambda f: yes_no(f.has_goods_to_declare)),
    FieldSpec("has_technology_devices", "radio", "technology", keywords=("mobile phones", "telepon seluler", "imei"),
              value=lambda f: yes_no(f.has_technology_devices)),
    FieldSpec("baggage_count", "text", _prefix("baggage"),
              ("baggage", "bagasi"), ("number of baggage", "jumlah bagasi", "baggage"),
              value=lambda f: f.baggage_count),
    FieldSpec("consent_accurate", "checkbox", _prefix("consent"),
              keywords=("i hereby declare", "saya menyatakan", "consent"),
              value=lambda f: f.consent_accurate),
)

FIELDS = {spec.key: spec for spec in FIELD_REGISTRY}


def field_spec(key: str) -> FieldSpec:
    return FIELDS[key]


def family_member_selector(index: int, name: str) -> str:
    return _prefix(f"familyMembers_{index}_{name}")


def declared_good_selector(index: int, name: str) -> str:
    return _prefix(f"declaredGoods_{index}_{name}")


COUNTRIES_VISITED_SELECTOR = _prefix("countriesVisited")


def symptom_selector(symptom: str) -> str:
    return f"input[type='checkbox'][value='{symptom}' i]"


_LANDMARKS_JS = """
([headingSelector, cardSelectors, qrSelectors, saveTexts, viewQrTexts]) => {
  const visible = (el) => {
    const rect = el.getBoundingClientRect();
    const style = getComputedStyle(el);
    return rect.width > 0 && rect.height > 0 && style.visibility !== 'hidden' && style.display !== 'none';
  };
  const headings = Array.from(document.querySelectorAll(headingSelector))
    .filter(visible)
    .map((el) => (el.innerText || '').trim().toLowerCase())
    .filter(Boolean);
  const cards = cardSelectors
    .flatMap((sel) => Array.from(document.querySelectorAll(sel)))
    .filter(visible).length;
  const qr = qrSelectors
    .flatMap((sel) => Array.from(document.querySelectorAll(sel)))
    .some(visible);
  const wanted = saveTexts.map((t) => t.toLowerCase());
  const save = Array.from(document.querySelectorAll('button, [role="button"]'))
    .filter(visible)
    .some((el) => wanted.includes((el.innerText || '').trim().toLowerCase()));
  const viewWanted = viewQrTexts.map((t) => t.toLowerCase());
  const viewQr = Array.from(document.querySelectorAll('button, [role="button"], a'))
    .filter(visible)
    .some((el) => viewWanted.includes((el.innerText || '').trim().toLowerCase()));
  const body = (document.body ? document.body.innerText : '').toLowerCase();
  return {headings, cards, qr, save, viewQr, body: body.slice(0, 5000)};
}
"""


def state_from_landmarks(
    url: str,
    headings: list[str],
    card_count: int = 0,
    has_qr: bool = False,
    has_save: bool = False,
    body_text: str = "",
    has_view_qr: bool = False,
) -> PageState:
    """SUBMITTED needs a visible QR; a success page without one is AWAITING_QR."""
    lowered_url = url.lower()
    body = body_text.lower()
    success_url = _url_matches(lowered_url, PageState.SUBMITTED)
    success_text = any(text in body for text in SUCCESS_TEXTS)

    if has_qr and (success_text or success_url):
        return PageState.SUBMITTED
    if success_url or (success_text and has_view_qr):
        return PageState.AWAITING_QR

    if card_count > 0:
        return PageState.GROUP_CARDS
    if GROUP_URL_FRAGMENT in lowered_url and has_save:
        return PageState.GROUP_TRAVELLER_FORM
    if _heading_matches(headings, PageState.GROUP_TRAVELLER_FORM) and has_save:
        return PageState.GROUP_TRAVELLER_FORM

    # Most specific first.
    for state in (PageState.TRANSPORT_ADDRESS, PageState.TRAVEL_DETAILS, PageState.PERSONAL_INFO, PageState.DECLARATION):
        if _heading_matches(headings, state):
            return state
    for state in (PageState.TRANSPORT_ADDRESS, PageState.TRAVEL_DETAILS, PageState.PERSONAL_INFO, PageState.DECLARATION):
        if _url_matches(lowered_url, state):
            return state
    return PageState.UNKNOWN


def _heading_matches(headings: list[str], state: PageState) -> bool:
    fragments = HEADINGS.get(state, ())
    return any(fragment in heading for heading in headings for fragment in fragments)


def _url_matches(url: str, state: PageState) -> bool:
    return any(fragment in url for fragment in URL_FRAGMENTS.get(state, ()))


def detect_state(page: Page) -> PageState:
    """Re-derive the wizard page from the live DOM. Never cached."""
    try:
        landmarks = page.evaluate(
            _LANDMARKS_JS,
            [HEADING_SELECTOR, TRAVELLER_CARD_SELECTORS, QR_SELECTORS, list(SAVE_TEXTS), list(VIEW_QR_TEXTS)],
        )
    except PlaywrightError:
        return PageState.UNKNOWN
    return state_from_landmarks(
        page.url,
        landmarks["headings"],
        card_count=landmarks["cards"],
        has_qr=landmarks["qr"],
        has_save=landmarks["save"],
        has_view_qr=landmarks["viewQr"],
        body_text=landmarks["body"],
    )
