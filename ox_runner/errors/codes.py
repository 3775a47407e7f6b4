"""Canonical error taxonomy shared by every driver and module."""

from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable failure category, independent of the vendor's own error naming."""

    SCRIPT_ERROR = "SCRIPT_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    ASSERT_ERROR = "ASSERT_ERROR"
    VERIFY_ERROR = "VERIFY_ERROR"
    RUNTIME_ERROR = "RUNTIME_ERROR"

    ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"
    FRAME_NOT_FOUND = "FRAME_NOT_FOUND"
    UNKNOWN_COMMAND_ERROR = "UNKNOWN_COMMAND_ERROR"
    STALE_ELEMENT_REFERENCE = "STALE_ELEMENT_REFERENCE"
    ELEMENT_NOT_VISIBLE = "ELEMENT_NOT_VISIBLE"
    LOCATOR_MATCHES_MULTIPLE_ELEMENTS = "LOCATOR_MATCHES_MULTIPLE_ELEMENTS"
    ELEMENT_STILL_EXISTS = "ELEMENT_STILL_EXISTS"
    BROWSER_JS_EXECUTE_ERROR = "BROWSER_JS_EXECUTE_ERROR"
    TIMEOUT = "TIMEOUT"
    WINDOW_NOT_FOUND = "WINDOW_NOT_FOUND"
    UNEXPECTED_ALERT_OPEN = "UNEXPECTED_ALERT_OPEN"
    NO_ALERT_OPEN_ERROR = "NO_ALERT_OPEN_ERROR"

    # Driver protocol codes without a broader category
    NO_SUCH_DRIVER = "NO_SUCH_DRIVER"
    INVALID_ELEMENT_STATE = "INVALID_ELEMENT_STATE"
    ELEMENT_IS_NOT_SELECTABLE = "ELEMENT_IS_NOT_SELECTABLE"
    INVALID_COOKIE_DOMAIN = "INVALID_COOKIE_DOMAIN"
    UNABLE_TO_SET_COOKIE = "UNABLE_TO_SET_COOKIE"
    INVALID_ELEMENT_COORDINATES = "INVALID_ELEMENT_COORDINATES"
    IME_NOT_AVAILABLE = "IME_NOT_AVAILABLE"
    IME_ENGINE_ACTIVATION_FAILED = "IME_ENGINE_ACTIVATION_FAILED"
    INVALID_SELECTOR = "INVALID_SELECTOR"
    SESSION_NOT_CREATED = "SESSION_NOT_CREATED"
    ELEMENT_NOT_SCROLLABLE = "ELEMENT_NOT_SCROLLABLE"
    SELECTOR_TIMEOUT_ERROR = "SELECTOR_TIMEOUT_ERROR"
    NO_SESSION_ID_ERROR = "NO_SESSION_ID_ERROR"
    GRID_API_ERROR = "GRID_API_ERROR"

    # Session initialization
    CHROME_BINARY_NOT_FOUND = "CHROME_BINARY_NOT_FOUND"
    DEVICE_NOT_FOUND = "DEVICE_NOT_FOUND"
    INVALID_CAPABILITIES = "INVALID_CAPABILITIES"
    BROWSER_CONFIGURATION_ERROR = "BROWSER_CONFIGURATION_ERROR"
    APPIUM_UNREACHABLE_ERROR = "APPIUM_UNREACHABLE_ERROR"
    SELENIUM_UNREACHABLE_ERROR = "SELENIUM_UNREACHABLE_ERROR"
    APPIUM_RUNTIME_ERROR = "APPIUM_RUNTIME_ERROR"
    SELENIUM_RUNTIME_ERROR = "SELENIUM_RUNTIME_ERROR"

    MODULE_NOT_INITIALIZED_ERROR = "MODULE_NOT_INITIALIZED_ERROR"
    PARAMETERS_ERROR = "PARAMETERS_ERROR"
    NOT_IMPLEMENTED_ERROR = "NOT_IMPLEMENTED_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
