from __future__ import annotations

import logging
import time
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from .browser import BrowserSession, close_browser, start_browser
from .config import AppConfig, load_config
from .errors import AutomationError, ErrorCode, RunDeadlineExceeded
from .models import ApplicantForm, AutomationResult, ProgressCallback, ProgressReporter, SubmissionArtifact
from .portal import PageState
from .steps import group, personal_info, transport_address, travel_details
from .steps.declaration import fill_declaration, preflight_declaration
from .steps.navigation import advance, enter_wizard, open_portal
from .steps.submission import extract_artifact, submit_declaration
from .translator import Translator
from .utils.logging_utils import mask_passport
from .utils.snapshots import save_snapshot


class RunClock:
    """Soft deadline checked between wizard phases. Zero disables it."""

    def __init__(self, limit_s: int) -> None:
        self.limit_s = limit_s
        self.started = time.monotonic()

    @property
    def elapsed_s(self) -> float:
        return time.monotonic() - self.started

    def check(self, phase: str) -> None:
        if self.limit_s > 0 and self.elapsed_s > self.limit_s:
            raise RunDeadlineExceeded(
                f"Run exceeded {self.limit_s}s before {phase}",
                details={"phase": phase, "elapsed_s": round(self.elapsed_s, 1)},
            )


def _run_wizard(
    page: Page,
    form: ApplicantForm,
    config: AppConfig,
    logger: logging.Logger,
    reporter: ProgressReporter,
    clock: RunClock,
    translator: Translator,
    run_dir: Path | None,
) -> SubmissionArtifact:
    enter_wizard(page, config, logger)

    reporter.report("personal-info", 25, "Filling personal information...")
    reached = advance(page, personal_info.NAVIGATOR, form, config, logger, translator, run_dir)
    clock.check("travel-details")

    reporter.report("travel-details", 40, "Filling travel details...")
    if reached == PageState.GROUP_CARDS:
        reporter.report("family-members", 45, f"Filling travel details for {form.traveller_count} travellers...")
        group.run_group_flow(page, form, config, logger, "travel", translator, run_dir)
        advance(page, group.TRAVEL_CARDS_NAVIGATOR, form, config, logger, translator, run_dir)
    else:
        if form.is_group:
            logger.warning("Portal did not open the group flow for %d travellers", form.traveller_count)
        advance(page, travel_details.NAVIGATOR, form, config, logger, translator, run_dir)
    clock.check("transport")

    reporter.report("transport", 55, "Filling transportation and address...")
    reached = advance(page, transport_address.NAVIGATOR, form, config, logger, translator, run_dir)
    clock.check("declaration")

    reporter.report("declaration", 70, "Completing declaration...")
    if reached == PageState.GROUP_CARDS:
        group.run_group_flow(page, form, config, logger, "declaration", translator, run_dir)
    else:
        fill_declaration(page, form, translator, logger)
        preflight_declaration(page, form, translator, logger)
    clock.check("submission")

    reporter.report("submission", 85, "Submitting declaration...")
    submit_declaration(page, form, config, logger, translator, run_dir)

    reporter.report("qr-extraction", 95, "Extracting QR code...")
    return extract_artifact(page, form, logger)


def _release(session: BrowserSession, config: AppConfig, logger: logging.Logger) -> None:
    if config.keep_browser_open:
        logger.info("Browser left open for inspection (KEEP_BROWSER_OPEN)")
        return
    try:
        close_browser(session)
        logger.info("Browser closed")
    except PlaywrightError as exc:
        logger.error("Failed to close browser: %s", exc)


def submit_arrival_card(
    form: ApplicantForm,
    config: AppConfig | None = None,
    on_progress: ProgressCallback | None = None,
    logger: logging.Logger | None = None,
    run_dir: Path | None = None,
    translator: Translator | None = None,
) -> AutomationResult:
    """Drive the whole wizard for one applicant (and dependents) and return the QR artifact or the failure."""
    config = config or load_config()
    logger = logger or logging.getLogger("arrival_card")
    translator = translator or Translator()
    reporter = ProgressReporter(on_progress, logger)

    problems = form.validate()
    if problems:
        logger.error("Form rejected before launch: %s", "; ".join(problems))
        error = AutomationError(
            "Invalid form data",
            code=ErrorCode.INVALID_FORM_DATA,
            step="validation",
            details={"problems": problems},
        )
        return AutomationResult.failed(error, config.portal_url)

    logger.info(
        "Starting arrival card for passport %s, %d traveller(s)",
        mask_passport(form.passport_number),
        form.traveller_count,
    )
    clock = RunClock(config.run_deadline_s)
    session: BrowserSession | None = None
    try:
        reporter.report("initialization", 5, "Starting browser...")
        session = start_browser(config, logger)

        reporter.report("navigation", 10, "Opening arrival card portal...")
        open_portal(session.page, config, logger)
        clock.check("personal-info")

        artifact = _run_wizard(session.page, form, config, logger, reporter, clock, translator, run_dir)
        reporter.report("complete", 100, "Arrival card submitted successfully!")
        logger.info("Completed in %.1fs, arrival card %s", clock.elapsed_s, artifact.arrival_card_number or "?")
        return AutomationResult.succeeded(artifact)
    except AutomationError as exc:
        logger.error("Automation failed [%s at %s]: %s", exc.code, exc.step, exc.message)
        if session is not None:
            shot = save_snapshot(session.page, run_dir, "fatal_error", with_html=True)
            if shot is not None:
                logger.error("Fatal screenshot: %s", shot)
        return AutomationResult.failed(exc, config.portal_url)
    except Exception as exc:
        logger.exception("Unexpected failure: %s", exc)
        if session is not None:
            save_snapshot(session.page, run_dir, "unexpected_error", with_html=True)
        error = AutomationError(f"Unexpected error: {exc}", details={"type": type(exc).__name__})
        return AutomationResult.failed(error, config.portal_url)
    finally:
        if session is not None:
            _release(session, config, logger)
