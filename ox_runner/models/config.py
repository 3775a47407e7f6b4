"""Configuration for a runner and the engine it drives."""

import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_STEP_TIMEOUT_MS = 30000


def default_worker_command() -> list[str]:
    """Command line that starts a worker with the current interpreter."""
    return [sys.executable, "-m", "ox_runner.worker"]


class EngineOptions(BaseModel):
    """Options handed to the engine; every field has the engine default."""

    backtrace: bool = False
    fail_fast: bool = False
    fail_ambiguous_definitions: bool = False
    ignore_undefined_definitions: bool = False
    name: Sequence[str] = Field(default_factory=list)
    profile: Sequence[str] = Field(default_factory=list)
    require: Sequence[str] = Field(default_factory=list)
    # "defined", "random" or "random:<seed>"
    order: str = "defined"
    strict: bool = False
    tag_expression: str = ""
    tags_in_title: bool = False
    timeout: int = DEFAULT_STEP_TIMEOUT_MS
    extra: dict[str, Any] = Field(default_factory=dict)


class RunnerConfig(BaseModel):
    """Configuration for a single test execution."""

    cwd: Path | None = None
    specs: Sequence[str] = Field(default_factory=list)
    engine: str = "scripted"
    engine_options: EngineOptions = Field(default_factory=EngineOptions)
    worker_command: Sequence[str] = Field(default_factory=default_worker_command)
    dispose_timeout: float = 5.0
    invoke_timeout: float | None = None
