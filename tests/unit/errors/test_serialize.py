"""Tests for worker-side error serialization."""

from ox_runner.errors.classifier import classify
from ox_runner.errors.codes import ErrorCode
from ox_runner.errors.record import AutomationError
from ox_runner.errors.serialize import serialize_error


class NoSuchElementException(Exception):
    """Driver exception carrying a nested driver stack."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.selenium_stack = {"type": "NoSuchElement"}


def fail_in_step() -> None:
    """Raise a NameError from a step-like function."""
    raise NameError("name 'cart' is not defined")


def test_none_is_kept() -> None:
    """No error serializes to None."""
    assert serialize_error(None) is None


def test_string_error() -> None:
    """String errors become a generic error payload."""
    assert serialize_error("boom") == {"name": "Error", "message": "boom", "stack": []}


def test_exception_has_innermost_frame_first() -> None:
    """Stack frames are ordered innermost first."""
    try:
        fail_in_step()
    except NameError as e:
        payload = serialize_error(e)

    assert payload is not None
    assert payload["name"] == "NameError"
    assert payload["message"] == "name 'cart' is not defined"
    assert len(payload["stack"]) == 2
    assert payload["stack"][0]["file"] == __file__
    assert payload["stack"][0]["line"] == fail_in_step.__code__.co_firstlineno + 2
    assert payload["stack"][0]["col"] > 0


def test_serialized_exception_classifies_like_the_exception() -> None:
    """The payload is classified on the orchestrator like the raw error."""
    try:
        fail_in_step()
    except NameError as e:
        expected = classify(e)
        record = classify(serialize_error(e))

    assert record.type is expected.type is ErrorCode.SCRIPT_ERROR
    assert record.message == expected.message
    assert record.location == expected.location


def test_nested_driver_stack_is_kept() -> None:
    """A nested driver stack crosses the process boundary."""
    payload = serialize_error(NoSuchElementException("not found"))

    assert payload is not None
    assert payload["selenium_stack"] == {"type": "NoSuchElement"}


def test_automation_error_keeps_record_shape() -> None:
    """AutomationErrors serialize to their canonical record."""
    try:
        raise AutomationError.of(ErrorCode.ELEMENT_NOT_FOUND, "no login button")
    except AutomationError as e:
        error = e
        payload = serialize_error(e)

    assert payload is not None
    assert payload["type"] == "ELEMENT_NOT_FOUND"
    assert payload["isFatal"] is True
    assert payload["location"].startswith(f"{__file__}:")
    assert classify(payload) == classify(error)
