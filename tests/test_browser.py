from __future__ import annotations

import pytest
from playwright.sync_api import Error as PlaywrightError

from arrival_card import browser
from arrival_card.config import AppConfig
from arrival_card.errors import BrowserLaunchError, ErrorCode


class FakeContext:
    def __init__(self, log, fail_on=None):
        self.log = log
        self.fail_on = fail_on

    def set_default_timeout(self, ms):
        if self.fail_on == "timeout":
            raise PlaywrightError("context gone")

    def set_default_navigation_timeout(self, ms):
        return None

    def new_page(self):
        if self.fail_on == "page":
            raise PlaywrightError("Target page, context or browser has been closed")
        return "page"

    def close(self):
        self.log.append("context.close")


class FakeBrowser:
    def __init__(self, log, fail_on=None):
        self.log = log
        self.fail_on = fail_on

    def new_context(self, **options):
        if self.fail_on == "context":
            raise PlaywrightError("Browser closed unexpectedly")
        return FakeContext(self.log, self.fail_on)

    def close(self):
        self.log.append("browser.close")


class FakePlaywright:
    def __init__(self, log, fail_on=None):
        self.log = log
        self.fail_on = fail_on
        self.chromium = self

    def launch(self, **options):
        if self.fail_on == "launch":
            raise PlaywrightError("Executable doesn't exist")
        return FakeBrowser(self.log, self.fail_on)

    def stop(self):
        self.log.append("playwright.stop")


def _install(monkeypatch, log, fail_on=None, start_error=None):
    class Starter:
        def start(self):
            if start_error is not None:
                raise start_error
            return FakePlaywright(log, fail_on)

    monkeypatch.setattr(browser, "sync_playwright", lambda: Starter())


def test_launch_args_add_headless_flags():
    assert "--disable-gpu" in browser.launch_args(True)
    assert "--disable-gpu" not in browser.launch_args(False)


def test_successful_start_keeps_everything_open(monkeypatch):
    log = []
    _install(monkeypatch, log)
    session = browser.start_browser(AppConfig())
    assert session.page == "page"
    assert log == []


@pytest.mark.parametrize(
    "fail_on, cleaned",
    [
        ("launch", ["playwright.stop"]),
        ("context", ["browser.close", "playwright.stop"]),
        ("timeout", ["context.close", "browser.close", "playwright.stop"]),
        ("page", ["context.close", "browser.close", "playwright.stop"]),
    ],
)
def test_failed_start_tears_down_what_was_created(monkeypatch, fail_on, cleaned):
    log = []
    _install(monkeypatch, log, fail_on=fail_on)

    with pytest.raises(BrowserLaunchError) as excinfo:
        browser.start_browser(AppConfig())

    assert log == cleaned
    assert excinfo.value.code == ErrorCode.BROWSER_LAUNCH_ERROR
    assert excinfo.value.details["hints"]


def test_driver_start_failure_is_a_launch_error(monkeypatch):
    log = []
    _install(monkeypatch, log, start_error=PlaywrightError("Driver not found"))

    with pytest.raises(BrowserLaunchError) as excinfo:
        browser.start_browser(AppConfig())

    assert "Driver not found" in excinfo.value.message
    assert log == []
