from __future__ import annotations

import logging
from dataclasses import dataclass

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from .config import AppConfig
from .errors import BrowserLaunchError

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

BASE_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--no-first-run",
    "--no-zygote",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-renderer-backgrounding",
    "--disable-backgrounding-occluded-windows",
    "--disable-hang-monitor",
    "--disable-sync",
]

HEADLESS_ARGS = [
    "--disable-gpu",
    "--disable-extensions",
    "--disable-features=TranslateUI",
    "--disable-blink-features=AutomationControlled",
]


@dataclass
class BrowserSession:
    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page


def launch_args(headless: bool) -> list[str]:
    return BASE_ARGS + (HEADLESS_ARGS if headless else [])


def _abandon(
    playwright: Playwright | None,
    browser: Browser | None,
    context: BrowserContext | None,
    logger: logging.Logger,
) -> None:
    for resource in (context, browser):
        if resource is None:
            continue
        try:
            resource.close()
        except PlaywrightError as exc:
            logger.warning("Cleanup after failed launch: %s", exc)
    if playwright is not None:
        playwright.stop()


def start_browser(config: AppConfig, logger: logging.Logger | None = None) -> BrowserSession:
    """Launch Chromium with one context and page. Anything created before a failure is torn down."""
    logger = logger or logging.getLogger("arrival_card")
    launch_options = {
        "headless": config.headless,
        "slow_mo": config.slow_mo_ms,
        "args": launch_args(config.headless),
    }
    if config.chromium_executable:
        launch_options["executable_path"] = config.chromium_executable

    playwright = browser = context = None
    try:
        playwright = sync_playwright().start()
        browser = playwright.chromium.launch(**launch_options)
        context = browser.new_context(
            user_agent=USER_AGENT,
            locale=config.locale,
            viewport={"width": 1366, "height": 900},
            accept_downloads=True,
        )
        context.set_default_timeout(config.timeout_ms)
        context.set_default_navigation_timeout(config.navigation_timeout_ms)
        page = context.new_page()
    except PlaywrightError as exc:
        _abandon(playwright, browser, context, logger)
        raise BrowserLaunchError(f"Browser launch failed: {exc}", details=str(exc)) from exc

    logger.info("Browser started headless=%s", config.headless)
    return BrowserSession(playwright=playwright, browser=browser, context=context, page=page)


def close_browser(session: BrowserSession) -> None:
    try:
        session.context.close()
        session.browser.close()
    finally:
        session.playwright.stop()
