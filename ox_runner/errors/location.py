"""Resolve the source location of an error from its stack."""

import logging
import re
import traceback
from collections.abc import Mapping, Sequence
from typing import Any

log = logging.getLogger(__name__)

# "    at fn (/path/file.js:10:3)" or "    at /path/file.js:10:3"
ENGINE_FRAME = re.compile(
    r"^\s*at\s+(?:.*?\()?(?P<file>[^()\s]+?):(?P<line>\d+):(?P<col>\d+)\)?\s*$"
)
# '  File "/path/file.py", line 10, in fn'
PYTHON_FRAME = re.compile(r'^\s*File "(?P<file>[^"]+)", line (?P<line>\d+)')


def resolve_location(raw: Any) -> str | None:
    """Return ``"<file>:<line>:<col>"`` for the innermost frame of ``raw``.

    An explicit ``location`` wins; otherwise the stack is parsed. Returns
    ``None`` when there is neither, or when the stack cannot be parsed.
    """
    try:
        if (location := error_field(raw, "location")) and isinstance(location, str):
            return location

        if isinstance(raw, BaseException) and raw.__traceback__ is not None:
            return _from_frames(traceback.extract_tb(raw.__traceback__))

        stack = error_field(raw, "stack")
        if isinstance(stack, str):
            return _from_text(stack)
        if isinstance(stack, Sequence) and stack:
            return _from_frames(stack)
    except (AttributeError, IndexError, KeyError, TypeError, ValueError):
        log.debug("Cannot resolve location from stack", exc_info=True)
    return None


def error_field(raw: Any, name: str) -> Any:
    """Read ``name`` from a mapping or an attribute of any other object."""
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def _format(file: Any, line: Any, col: Any) -> str | None:
    if not file or line is None:
        return None
    return f"{file}:{int(line)}:{int(col) if col is not None else 0}"


def _from_frames(frames: Sequence[Any]) -> str | None:
    """Innermost frame is first, except in a ``StackSummary`` where it is last."""
    if not frames:
        return None
    if isinstance(frames, traceback.StackSummary):
        frame = frames[-1]
        col = frame.colno + 1 if frame.colno is not None else None
        return _format(frame.filename, frame.lineno, col)

    frame = frames[0]
    if isinstance(frame, Mapping):
        return _format(
            frame.get("file") or frame.get("fileName") or frame.get("filename"),
            _first(frame, "line", "lineNumber", "lineno"),
            _first(frame, "col", "column", "columnNumber", "colno"),
        )
    return _format(
        getattr(frame, "filename", None),
        getattr(frame, "lineno", None),
        getattr(frame, "colno", None),
    )


def _first(frame: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if frame.get(key) is not None:
            return frame[key]
    return None


def _from_text(stack: str) -> str | None:
    lines = stack.splitlines()
    for line in lines:
        if match := ENGINE_FRAME.match(line):
            return _format(match["file"], match["line"], match["col"])

    python_frames = [m for line in lines if (m := PYTHON_FRAME.match(line))]
    if python_frames:
        innermost = python_frames[-1]
        return _format(innermost["file"], innermost["line"], None)
    return None
