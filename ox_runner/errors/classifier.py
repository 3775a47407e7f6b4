"""Normalize raw driver, assertion and runtime errors into ``ErrorRecord``s."""

import logging
import pprint
import re
import socket
import traceback
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ox_runner.errors.codes import ErrorCode
from ox_runner.errors.location import error_field, resolve_location
from ox_runner.errors.record import AutomationError, ErrorContext, ErrorRecord
from ox_runner.errors.tables import (
    ASSERTION_ERRORS,
    DRIVER_ERRORS,
    RUNTIME_ERRORS,
)

log = logging.getLogger(__name__)

ORIGINAL_ERROR_PREFIX = "Original error: "
PROMISE_REJECTED_PREFIX = "Promise was rejected with the following reason: "
IE_ZOOM_ERROR = re.compile(
    r"(Unexpected error launching Internet Explorer\. Browser zoom level was set to"
    r" \d+%\. It should be set to \d+%)"
)
ANDROID_DEVICE_MISSING = "Could not find a connected Android device"
CHROME_BINARY_MISSING = "cannot find Chrome binary"

INIT_CONTEXT = ErrorContext(command="init")


def classify(raw: Any, context: ErrorContext | None = None) -> ErrorRecord:
    """Classify any raw error. Never raises.

    Records (and ``AutomationError``s carrying one) are returned unchanged,
    so classifying twice is a no-op. Anything that matches no table becomes
    ``UNKNOWN_ERROR`` with a dump of the input in ``data``.
    """
    try:
        return _classify(raw, context or ErrorContext())
    except Exception:
        log.debug("Falling back to UNKNOWN_ERROR", exc_info=True)
        return ErrorRecord(
            type=ErrorCode.UNKNOWN_ERROR,
            message=None,
            data=_dump(raw),
            is_fatal=True,
        )


def discriminator(raw: Any) -> str:
    """Key used to look ``raw`` up in the error tables.

    Explicit code first, then the named type, then the Python type name.
    """
    if isinstance(raw, Mapping):
        for key in ("code", "type", "name"):
            value = raw.get(key)
            if isinstance(value, str) and value:
                return value
    elif isinstance(raw, BaseException):
        # NameError.name is the missing identifier, so only codes are trusted
        code = getattr(raw, "code", None)
        if isinstance(code, str) and code:
            return code
    return type(raw).__name__


def error_message(raw: Any) -> str | None:
    """Human readable message of ``raw``, if it carries one."""
    if isinstance(raw, str):
        return raw or None
    if isinstance(raw, BaseException):
        return str(raw) or None
    message = error_field(raw, "message")
    return str(message) if message is not None else None


def classify_selenium_init_error(raw: Any) -> ErrorRecord:
    """Classify a failure to open the primary (browser) driver session."""
    message = error_message(raw) or ""
    location = resolve_location(raw)

    if match := IE_ZOOM_ERROR.search(message):
        return ErrorRecord(
            type=ErrorCode.BROWSER_CONFIGURATION_ERROR,
            message=match.group(1),
            location=location,
        )
    if record := _transport_error(
        raw, message, "Selenium", ErrorCode.SELENIUM_UNREACHABLE_ERROR
    ):
        return record

    key = discriminator(raw)
    if DRIVER_ERRORS.get(key) is ErrorCode.SESSION_NOT_CREATED and (
        "capabilit" in message.lower()
    ):
        return ErrorRecord(
            type=ErrorCode.INVALID_CAPABILITIES, message=message, location=location
        )
    if key == "RuntimeError":
        return ErrorRecord(
            type=ErrorCode.SELENIUM_RUNTIME_ERROR, message=message, location=location
        )
    return classify(raw, INIT_CONTEXT)


def classify_appium_init_error(raw: Any) -> ErrorRecord:
    """Classify a failure to open the secondary (mobile automation) session."""
    message = error_message(raw) or ""
    location = resolve_location(raw)

    if record := _transport_error(
        raw, message, "Appium", ErrorCode.APPIUM_UNREACHABLE_ERROR
    ):
        return record

    status_message = _nested_status_message(raw)
    if ANDROID_DEVICE_MISSING in message or ANDROID_DEVICE_MISSING in status_message:
        return ErrorRecord(
            type=ErrorCode.DEVICE_NOT_FOUND,
            message=ANDROID_DEVICE_MISSING,
            location=location,
        )
    if discriminator(raw) == "RuntimeError":
        return ErrorRecord(
            type=ErrorCode.APPIUM_RUNTIME_ERROR,
            message=_strip_original_error(message) or message,
            location=location,
        )
    return classify(raw, INIT_CONTEXT)


def _classify(raw: Any, context: ErrorContext) -> ErrorRecord:
    if (record := _as_record(raw)) is not None:
        return record

    key = discriminator(raw)
    message = error_message(raw)
    location = resolve_location(raw)

    code = _lookup(DRIVER_ERRORS, raw, key)
    if code is not None:
        if key == "WaitUntilTimeoutError" and message:
            message = message.removeprefix(PROMISE_REJECTED_PREFIX)
        return _record(code, message, context, location=location)

    if key == "RuntimeError" and (nested := _nested_stack(raw)) is not None:
        if message == "unknown error: NoSuchElement":
            return _record(
                ErrorCode.ELEMENT_NOT_FOUND, None, context, location=location
            )
        if message and message.startswith("Element is not displayed"):
            return _record(
                ErrorCode.ELEMENT_NOT_VISIBLE, None, context, location=location
            )
        nested_code = DRIVER_ERRORS.get(str(error_field(nested, "type")))
        if nested_code is not None:
            return _record(nested_code, message, context, location=location)

    if _lookup(ASSERTION_ERRORS, raw, key) is not None:
        if context.is_verify:
            return _record(ErrorCode.VERIFY_ERROR, message, context, location=location)
        return _record(ErrorCode.ASSERT_ERROR, message, context, location=location)

    if (code := _lookup(RUNTIME_ERRORS, raw, key)) is not None:
        return _record(
            code,
            _prefixed(key, message),
            context,
            data=_stack_dump(raw),
            location=location,
        )

    if message and (original := _strip_original_error(message)) is not None:
        return _record(ErrorCode.RUNTIME_ERROR, original, context, location=location)

    return _record(
        ErrorCode.UNKNOWN_ERROR,
        _prefixed(key, message),
        context,
        data=_dump(raw),
        location=location,
    )


def _as_record(raw: Any) -> ErrorRecord | None:
    if isinstance(raw, ErrorRecord):
        return raw
    if isinstance(raw, AutomationError):
        if raw.record.location is None and (location := resolve_location(raw)):
            return raw.record.model_copy(update={"location": location})
        return raw.record
    if (
        isinstance(raw, Mapping)
        and "type" in raw
        and "message" in raw
        and ("isFatal" in raw or "is_fatal" in raw)
        and isinstance(raw["type"], str)
        and raw["type"] in ErrorCode.__members__
    ):
        try:
            return ErrorRecord.model_validate(raw)
        except ValidationError:
            return None
    return None


def _lookup(table: Mapping[str, ErrorCode], raw: Any, key: str) -> ErrorCode | None:
    if (code := table.get(key)) is not None:
        return code
    if isinstance(raw, BaseException):
        # Subclasses classify like their closest mapped base class
        for cls in type(raw).__mro__[1:]:
            if (code := table.get(cls.__name__)) is not None:
                return code
    return None


def _record(
    code: ErrorCode,
    message: str | None,
    context: ErrorContext,
    *,
    data: Any = None,
    location: str | None = None,
) -> ErrorRecord:
    return ErrorRecord(
        type=code,
        message=message,
        data=data,
        is_fatal=_is_fatal(code, context),
        location=location,
    )


def _is_fatal(code: ErrorCode, context: ErrorContext) -> bool:
    if context.is_init:
        return True
    return code is not ErrorCode.VERIFY_ERROR


def _transport_error(
    raw: Any, message: str, server: str, code: ErrorCode
) -> ErrorRecord | None:
    location = resolve_location(raw)
    if CHROME_BINARY_MISSING in message:
        return ErrorRecord(
            type=ErrorCode.CHROME_BINARY_NOT_FOUND,
            message="Cannot find Chrome binary",
            location=location,
        )
    if isinstance(raw, ConnectionRefusedError) or "ECONNREFUSED" in message:
        return ErrorRecord(
            type=code, message=f"Couldn't connect to {server} server", location=location
        )
    if isinstance(raw, socket.gaierror) or "ENOTFOUND" in message:
        return ErrorRecord(
            type=code,
            message=f"Couldn't resolve {server} server address",
            location=location,
        )
    return None


def _nested_stack(raw: Any) -> Any:
    nested = error_field(raw, "selenium_stack")
    if nested is None:
        nested = error_field(raw, "seleniumStack")
    return nested


def _nested_status_message(raw: Any) -> str:
    nested = _nested_stack(raw)
    if nested is None:
        return ""
    status = error_field(nested, "org_status_message")
    if status is None:
        status = error_field(nested, "orgStatusMessage")
    return str(status) if status is not None else ""


def _strip_original_error(message: str) -> str | None:
    _, found, original = message.partition(ORIGINAL_ERROR_PREFIX)
    return original if found else None


def _prefixed(key: str, message: str | None) -> str:
    return f"{key}: {message}" if message else key


def _stack_dump(raw: Any) -> str | None:
    if isinstance(raw, BaseException):
        return "".join(traceback.format_exception(raw))
    stack = error_field(raw, "stack")
    if stack is None:
        return None
    return stack if isinstance(stack, str) else pprint.pformat(stack)


def _dump(raw: Any) -> str:
    try:
        if isinstance(raw, BaseException):
            return "".join(traceback.format_exception(raw))
        return pprint.pformat(raw)
    except Exception:
        return object.__repr__(raw)
