"""Lookup tables from vendor error names to canonical error codes.

The classifier consults them in rank order: driver, assertion, runtime.
"""

from collections.abc import Mapping

from ox_runner.errors.codes import ErrorCode

# WebdriverIO names, W3C wire error strings, and Selenium-for-Python class names
DRIVER_ERRORS: Mapping[str, ErrorCode] = {
    "Unknown": ErrorCode.UNKNOWN_ERROR,
    "UnknownError": ErrorCode.UNKNOWN_ERROR,
    "unknown error": ErrorCode.UNKNOWN_ERROR,
    "NoSuchDriver": ErrorCode.NO_SUCH_DRIVER,
    "invalid session id": ErrorCode.NO_SUCH_DRIVER,
    "InvalidSessionIdException": ErrorCode.NO_SUCH_DRIVER,
    "NoSuchElement": ErrorCode.ELEMENT_NOT_FOUND,
    "no such element": ErrorCode.ELEMENT_NOT_FOUND,
    "NoSuchElementException": ErrorCode.ELEMENT_NOT_FOUND,
    "XPathLookupError": ErrorCode.ELEMENT_NOT_FOUND,
    "NoSuchFrame": ErrorCode.FRAME_NOT_FOUND,
    "no such frame": ErrorCode.FRAME_NOT_FOUND,
    "NoSuchFrameException": ErrorCode.FRAME_NOT_FOUND,
    "UnknownCommand": ErrorCode.UNKNOWN_COMMAND_ERROR,
    "unknown command": ErrorCode.UNKNOWN_COMMAND_ERROR,
    "unknown method": ErrorCode.UNKNOWN_COMMAND_ERROR,
    "UnknownMethodException": ErrorCode.UNKNOWN_COMMAND_ERROR,
    "StaleElementReference": ErrorCode.STALE_ELEMENT_REFERENCE,
    "stale element reference": ErrorCode.STALE_ELEMENT_REFERENCE,
    "StaleElementReferenceException": ErrorCode.STALE_ELEMENT_REFERENCE,
    "ElementNotVisible": ErrorCode.ELEMENT_NOT_VISIBLE,
    "ElementNotVisibleException": ErrorCode.ELEMENT_NOT_VISIBLE,
    "element not interactable": ErrorCode.ELEMENT_NOT_VISIBLE,
    "ElementNotInteractableException": ErrorCode.ELEMENT_NOT_VISIBLE,
    "InvalidElementState": ErrorCode.INVALID_ELEMENT_STATE,
    "invalid element state": ErrorCode.INVALID_ELEMENT_STATE,
    "InvalidElementStateException": ErrorCode.INVALID_ELEMENT_STATE,
    "ElementIsNotSelectable": ErrorCode.ELEMENT_IS_NOT_SELECTABLE,
    "ElementNotSelectableException": ErrorCode.ELEMENT_IS_NOT_SELECTABLE,
    "JavaScriptError": ErrorCode.BROWSER_JS_EXECUTE_ERROR,
    "javascript error": ErrorCode.BROWSER_JS_EXECUTE_ERROR,
    "JavascriptException": ErrorCode.BROWSER_JS_EXECUTE_ERROR,
    "Timeout": ErrorCode.TIMEOUT,
    "timeout": ErrorCode.TIMEOUT,
    "TimeoutException": ErrorCode.TIMEOUT,
    "WaitForTimeoutError": ErrorCode.TIMEOUT,
    "WaitUntilTimeoutError": ErrorCode.TIMEOUT,
    # FIXME: script timeouts deserve their own category
    "ScriptTimeout": ErrorCode.UNKNOWN_ERROR,
    "script timeout": ErrorCode.UNKNOWN_ERROR,
    "NoSuchWindow": ErrorCode.WINDOW_NOT_FOUND,
    "no such window": ErrorCode.WINDOW_NOT_FOUND,
    "NoSuchWindowException": ErrorCode.WINDOW_NOT_FOUND,
    "InvalidCookieDomain": ErrorCode.INVALID_COOKIE_DOMAIN,
    "invalid cookie domain": ErrorCode.INVALID_COOKIE_DOMAIN,
    "InvalidCookieDomainException": ErrorCode.INVALID_COOKIE_DOMAIN,
    "UnableToSetCookie": ErrorCode.UNABLE_TO_SET_COOKIE,
    "unable to set cookie": ErrorCode.UNABLE_TO_SET_COOKIE,
    "UnableToSetCookieException": ErrorCode.UNABLE_TO_SET_COOKIE,
    "UnexpectedAlertOpen": ErrorCode.UNEXPECTED_ALERT_OPEN,
    "unexpected alert open": ErrorCode.UNEXPECTED_ALERT_OPEN,
    "UnexpectedAlertPresentException": ErrorCode.UNEXPECTED_ALERT_OPEN,
    "NoAlertOpenError": ErrorCode.NO_ALERT_OPEN_ERROR,
    "no such alert": ErrorCode.NO_ALERT_OPEN_ERROR,
    "NoAlertPresentException": ErrorCode.NO_ALERT_OPEN_ERROR,
    "InvalidElementCoordinates": ErrorCode.INVALID_ELEMENT_COORDINATES,
    "InvalidCoordinatesException": ErrorCode.INVALID_ELEMENT_COORDINATES,
    "IMENotAvailable": ErrorCode.IME_NOT_AVAILABLE,
    "ImeNotAvailableException": ErrorCode.IME_NOT_AVAILABLE,
    "IMEEngineActivationFailed": ErrorCode.IME_ENGINE_ACTIVATION_FAILED,
    "ImeActivationFailedException": ErrorCode.IME_ENGINE_ACTIVATION_FAILED,
    "InvalidSelector": ErrorCode.INVALID_SELECTOR,
    "invalid selector": ErrorCode.INVALID_SELECTOR,
    "InvalidSelectorException": ErrorCode.INVALID_SELECTOR,
    "SessionNotCreatedException": ErrorCode.SESSION_NOT_CREATED,
    "session not created": ErrorCode.SESSION_NOT_CREATED,
    "ElementNotScrollable": ErrorCode.ELEMENT_NOT_SCROLLABLE,
    "SelectorTimeoutError": ErrorCode.SELECTOR_TIMEOUT_ERROR,
    "NoSessionIdError": ErrorCode.NO_SESSION_ID_ERROR,
    "GridApiError": ErrorCode.GRID_API_ERROR,
}

ASSERTION_ERRORS: Mapping[str, ErrorCode] = {
    "AssertionError": ErrorCode.ASSERT_ERROR,
}

RUNTIME_ERRORS: Mapping[str, ErrorCode] = {
    "ReferenceError": ErrorCode.SCRIPT_ERROR,
    "TypeError": ErrorCode.SCRIPT_ERROR,
    "NameError": ErrorCode.SCRIPT_ERROR,
    "UnboundLocalError": ErrorCode.SCRIPT_ERROR,
    "AttributeError": ErrorCode.SCRIPT_ERROR,
}
