"""Fixtures for module tests spawning real worker processes."""

import sys
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

FAKE_WORKER = Path(__file__).parent / "fixtures" / "fake_worker.py"


@pytest.fixture
def fake_worker() -> Callable[..., Sequence[str]]:
    """Build the command line of a fake worker in the given mode."""

    def command(mode: str, count: int = 3) -> Sequence[str]:
        return [sys.executable, str(FAKE_WORKER), mode, str(count)]

    return command
