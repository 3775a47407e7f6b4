"""Error taxonomy and classification."""

from ox_runner.errors.classifier import (
    classify,
    classify_appium_init_error,
    classify_selenium_init_error,
)
from ox_runner.errors.codes import ErrorCode
from ox_runner.errors.location import resolve_location
from ox_runner.errors.record import AutomationError, ErrorContext, ErrorRecord

__all__ = [
    "AutomationError",
    "ErrorCode",
    "ErrorContext",
    "ErrorRecord",
    "classify",
    "classify_appium_init_error",
    "classify_selenium_init_error",
    "resolve_location",
]
