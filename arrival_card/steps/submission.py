from __future__ import annotations

import base64
import logging
import re
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page, TimeoutError as PlaywrightTimeoutError

from .. import portal
from ..config import AppConfig
from ..errors import ExtractionError, SubmissionError
from ..models import ApplicantForm, SubmissionArtifact
from ..portal import PageState, detect_state
from ..recovery import recover
from ..translator import COUNTRIES, Translator
from ..utils.snapshots import save_snapshot
from ..utils.ui import click_button_by_texts, find_button_by_texts, resolve_visible, try_click
from ..utils.waits import poll_until

ARRIVAL_CARD_NUMBER = re.compile(r"\b(\d{10})\b")
PASSPORT_LABEL = re.compile(
    r"(?:passport\s*(?:number|no\.?)?|nomor\s+paspor|no\.?\s*paspor)\s*[:\-]?\s*([A-Z0-9]{5,15})\b",
    re.IGNORECASE,
)
_DATE = r"(\d{2}[/-]\d{2}[/-]\d{4}|\d{4}-\d{2}-\d{2})"
ARRIVAL_LABEL = re.compile(rf"(?:arrival\s+date|date\s+of\s+arrival|tanggal\s+kedatangan)\s*[:\-]?\s*{_DATE}", re.IGNORECASE)
DEPARTURE_LABEL = re.compile(
    rf"(?:departure\s+date|date\s+of\s+departure|tanggal\s+keberangkatan)\s*[:\-]?\s*{_DATE}", re.IGNORECASE
)
ALL_CAPS_SEGMENT = re.compile(r"^[A-Z][A-Z .,'\-]{1,58}[A-Z.]$")

NOT_A_NAME = {
    "ARRIVAL CARD",
    "ALL INDONESIA",
    "QR CODE",
    "SUCCESS",
    "BERHASIL",
    "DOWNLOAD",
    "UNDUH",
    "VIEW QR CODE",
    "LIHAT QR CODE",
    "OK",
}

LABEL_WORDS = re.compile(r"\b(NUMBER|DATE|NOMOR|TANGGAL|PASSPORT|PASPOR|NATIONALITY|KEWARGANEGARAAN|NAME|NAMA|STATUS)\b")

KNOWN_NATIONALITIES = frozenset(COUNTRIES) | frozenset(COUNTRIES.values())

_SERIALIZE_QR_JS = """
(el) => {
  const rect = el.getBoundingClientRect();
  const size = {width: Math.round(rect.width) || 256, height: Math.round(rect.height) || 256};
  try {
    if (el.tagName === 'CANVAS') {
      return {dataUrl: el.toDataURL('image/png'), ...size};
    }
    if (el.tagName === 'IMG' && el.src && el.src.startsWith('data:image/png')) {
      return {dataUrl: el.src, width: el.naturalWidth || size.width, height: el.naturalHeight || size.height};
    }
  } catch (err) {
    return {dataUrl: '', ...size};
  }
  return {dataUrl: '', ...size};
}
"""


def parse_success_text(text: str) -> dict[str, str]:
    """Reference fields from the success page text. Missing fields come back empty."""
    details = {
        "arrival_card_number": "",
        "passenger_name": "",
        "passport_number": "",
        "nationality": "",
        "arrival_date": "",
        "departure_date": "",
    }
    if not text:
        return details

    match = ARRIVAL_CARD_NUMBER.search(text)
    if match:
        details["arrival_card_number"] = match.group(1)
    match = PASSPORT_LABEL.search(text)
    if match:
        details["passport_number"] = match.group(1).upper()
    match = ARRIVAL_LABEL.search(text)
    if match:
        details["arrival_date"] = match.group(1)
    match = DEPARTURE_LABEL.search(text)
    if match:
        details["departure_date"] = match.group(1)

    for line in (raw.strip() for raw in text.splitlines()):
        if not line or not ALL_CAPS_SEGMENT.match(line) or line in NOT_A_NAME or LABEL_WORDS.search(line):
            continue
        if not details["nationality"] and line in KNOWN_NATIONALITIES:
            details["nationality"] = line
        elif not details["passenger_name"] and line not in KNOWN_NATIONALITIES:
            details["passenger_name"] = line
    return details


def _confirmation_dialog(page: Page) -> Locator | None:
    wording = re.compile("|".join(re.escape(text) for text in portal.CONFIRM_TEXTS), re.IGNORECASE)
    for selector in portal.CONFIRM_DIALOG_SELECTORS:
        dialogs = page.locator(selector).filter(has_text=wording)
        try:
            for index in range(dialogs.count()):
                dialog = dialogs.nth(index)
                if dialog.is_visible():
                    return dialog
        except PlaywrightError:
            continue
    return None


def handle_confirmation(page: Page, logger: logging.Logger, timeout_ms: int = 3000) -> bool:
    """Click the affirmative control inside the confirmation dialog, if one shows up."""
    found: list[Locator] = []

    def _dialog_visible() -> bool:
        dialog = _confirmation_dialog(page)
        if dialog is not None:
            found.append(dialog)
        return dialog is not None

    if not poll_until(page, _dialog_visible, timeout_ms=timeout_ms, interval_ms=200):
        return False

    dialog = found[-1]
    if click_button_by_texts(dialog, portal.CONFIRM_AFFIRMATIVE_TEXTS, timeout_ms=1500):
        logger.info("Confirmation dialog accepted")
        return True
    raise SubmissionError("Confirmation dialog has no affirmative control")


def wait_for_success(page: Page, config: AppConfig, logger: logging.Logger) -> bool:
    """Poll for the QR page; a success page still waiting on its QR gets the view-QR link clicked once."""
    followed_qr_link = False
    for attempt in range(1, config.success_poll_attempts + 1):
        state = detect_state(page)
        if state == PageState.SUBMITTED:
            logger.info("Success page detected (poll %d)", attempt)
            return True
        if state == PageState.AWAITING_QR and not followed_qr_link:
            link = find_button_by_texts(page, portal.VIEW_QR_TEXTS, timeout_ms=300)
            if link is not None and try_click(link):
                followed_qr_link = True
                logger.info("Followed view-QR link")
        page.wait_for_timeout(config.success_poll_interval_ms)
    return detect_state(page) == PageState.SUBMITTED


def submit_declaration(
    page: Page,
    form: ApplicantForm,
    config: AppConfig,
    logger: logging.Logger,
    translator: Translator | None = None,
    run_dir: Path | None = None,
) -> None:
    translator = translator or Translator()
    limit = max(1, config.nav_retry_limit)
    for attempt in range(1, limit + 1):
        if not click_button_by_texts(page, portal.SUBMIT_TEXTS, timeout_ms=3000):
            raise SubmissionError("Submit control not found", details={"attempt": attempt})
        logger.info("Submit clicked (attempt %d/%d)", attempt, limit)
        handle_confirmation(page, logger)

        if wait_for_success(page, config, logger):
            return
        if detect_state(page) == PageState.AWAITING_QR:
            logger.warning("Submission accepted but the QR code never appeared")
            return

        logger.warning("No success page after submit (attempt %d/%d)", attempt, limit)
        save_snapshot(page, run_dir, f"submit_attempt_{attempt}", with_html=True)
        if attempt < limit and not recover(page, form, translator):
            logger.warning("Nothing to fix after failed submit")

    raise SubmissionError(
        f"Submission not confirmed after {limit} attempts",
        details={"attempts": limit, "state": detect_state(page).value},
    )


def _png_data_url(raw: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(raw).decode("ascii")


def _download_qr(page: Page, logger: logging.Logger) -> str:
    button = find_button_by_texts(page, portal.DOWNLOAD_QR_TEXTS, timeout_ms=500)
    if button is None:
        return ""
    try:
        with page.expect_download(timeout=15000) as download_info:
            button.click(timeout=3000)
        download = download_info.value
        path = download.path()
    except (PlaywrightTimeoutError, PlaywrightError) as exc:
        logger.info("QR download failed: %s", exc)
        return ""
    if path is None or not download.suggested_filename.lower().endswith(".png"):
        return ""
    return _png_data_url(Path(path).read_bytes())


def capture_qr(page: Page, logger: logging.Logger) -> tuple[str, int, int]:
    """QR graphic as a PNG data URL: canvas/img data first, then the download button, then a screenshot."""
    for selector in (*portal.QR_SELECTORS, *portal.QR_FALLBACK_SELECTORS):
        element = resolve_visible(page, selector)
        if element is None:
            continue
        try:
            serialized = element.evaluate(_SERIALIZE_QR_JS)
        except PlaywrightError:
            continue
        width, height = int(serialized["width"]), int(serialized["height"])
        if serialized["dataUrl"].startswith("data:image/png;base64,") and len(serialized["dataUrl"]) > 100:
            return serialized["dataUrl"], width, height

        downloaded = _download_qr(page, logger)
        if downloaded:
            return downloaded, width, height

        try:
            return _png_data_url(element.screenshot(timeout=5000)), width, height
        except PlaywrightError as exc:
            logger.info("QR element screenshot failed for %s: %s", selector, exc)
    raise ExtractionError("Success page has no QR code graphic")


def extract_artifact(page: Page, form: ApplicantForm, logger: logging.Logger) -> SubmissionArtifact:
    image_data, width, height = capture_qr(page, logger)
    try:
        text = page.inner_text("body", timeout=5000)
    except PlaywrightError:
        text = ""
    details = parse_success_text(text)
    if not details["arrival_card_number"]:
        logger.warning("Arrival card number not found on success page")

    return SubmissionArtifact(
        image_data=image_data,
        width=width,
        height=height,
        arrival_card_number=details["arrival_card_number"],
        passenger_name=details["passenger_name"] or form.full_passport_name.upper(),
        passport_number=details["passport_number"] or form.passport_number,
        nationality=details["nationality"] or form.nationality.upper(),
        arrival_date=details["arrival_date"] or form.arrival_date,
        departure_date=details["departure_date"] or form.departure_date,
    )
