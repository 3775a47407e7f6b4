"""Convert worker-side exceptions into JSON-safe payloads."""

import traceback
from collections.abc import Mapping
from typing import Any

from ox_runner.errors.record import AutomationError

NESTED_STACK_ATTRIBUTES = ("selenium_stack", "seleniumStack")


def serialize_error(error: BaseException | str | None) -> dict[str, Any] | None:
    """Describe ``error`` so that it can cross the process boundary.

    ``AutomationError``s keep their canonical record shape. Other exceptions
    become ``{name, message, stack}`` with the innermost frame first.
    """
    if error is None:
        return None
    if isinstance(error, str):
        return {"name": "Error", "message": error, "stack": []}

    frames = traceback.extract_tb(error.__traceback__)
    stack = [
        {
            "file": frame.filename,
            "line": frame.lineno,
            "col": frame.colno + 1 if frame.colno is not None else 0,
        }
        for frame in reversed(frames)
    ]

    if isinstance(error, AutomationError):
        record = error.record.model_dump(mode="json", by_alias=True)
        if record["location"] is None and stack:
            top = stack[0]
            record["location"] = f"{top['file']}:{top['line']}:{top['col']}"
        return record

    payload: dict[str, Any] = {
        "name": type(error).__name__,
        "message": str(error),
        "stack": stack,
    }
    if isinstance(code := getattr(error, "code", None), str):
        payload["code"] = code
    for attribute in NESTED_STACK_ATTRIBUTES:
        if isinstance(nested := getattr(error, attribute, None), Mapping):
            payload["selenium_stack"] = dict(nested)
            break
    return payload
