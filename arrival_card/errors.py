from __future__ import annotations

from typing import Any


class ErrorCode:
    BROWSER_LAUNCH_ERROR = "BROWSER_LAUNCH_ERROR"
    NAVIGATION_FAILED = "NAVIGATION_FAILED"
    FORM_FILL_ERROR = "FORM_FILL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    GROUP_TRAVELLER_FAILED = "GROUP_TRAVELLER_FAILED"
    SUBMISSION_FAILED = "SUBMISSION_FAILED"
    QR_EXTRACTION_FAILED = "QR_EXTRACTION_FAILED"
    RUN_DEADLINE_EXCEEDED = "RUN_DEADLINE_EXCEEDED"
    INVALID_FORM_DATA = "INVALID_FORM_DATA"
    AUTOMATION_ERROR = "AUTOMATION_ERROR"


class AutomationError(Exception):
    code = ErrorCode.AUTOMATION_ERROR
    step = "submission"

    def __init__(self, message: str, *, code: str | None = None, step: str | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if step is not None:
            self.step = step
        self.details = details


class BrowserLaunchError(AutomationError):
    code = ErrorCode.BROWSER_LAUNCH_ERROR
    step = "navigation"

    HINTS = (
        "Run `playwright install chromium` to download the browser binary",
        "On Debian/Ubuntu run `playwright install-deps chromium` for system libraries",
        "Set CHROMIUM_EXECUTABLE to an existing Chrome/Chromium binary",
    )

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message, details={"cause": details, "hints": list(self.HINTS)})


class PortalNavigationError(AutomationError):
    code = ErrorCode.NAVIGATION_FAILED
    step = "navigation"

    def __init__(self, message: str, url: str) -> None:
        super().__init__(f"{message} url={url}", details={"url": url})
        self.url = url


class FieldFillError(AutomationError):
    """Single field could not be located, filled or verified. Recovered locally."""

    code = ErrorCode.FORM_FILL_ERROR
    step = "form_fill"


class TransitionError(AutomationError):
    code = ErrorCode.VALIDATION_ERROR
    step = "form_fill"


class GroupTravellerError(AutomationError):
    code = ErrorCode.GROUP_TRAVELLER_FAILED
    step = "form_fill"


class SubmissionError(AutomationError):
    code = ErrorCode.SUBMISSION_FAILED
    step = "submission"


class ExtractionError(AutomationError):
    code = ErrorCode.QR_EXTRACTION_FAILED
    step = "qr_extraction"


class RunDeadlineExceeded(AutomationError):
    code = ErrorCode.RUN_DEADLINE_EXCEEDED
    step = "submission"
