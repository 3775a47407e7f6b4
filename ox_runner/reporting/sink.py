"""Callbacks through which results are pushed to a reporter."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ox_runner.models.config import RunnerConfig
from ox_runner.models.result import CaseResult, StepResult, SuiteResult


@dataclass(frozen=True, kw_only=True)
class ReporterSink:
    """Optional reporter callbacks; an unset slot is simply not called.

    Results are handed over at callback time only and remain owned by the
    aggregator, so reporters must treat them as read-only snapshots.
    """

    on_runner_start: (
        Callable[[str, RunnerConfig, Mapping[str, Any]], None] | None
    ) = None
    on_runner_end: Callable[[str, BaseException | None], None] | None = None
    on_suite_start: Callable[[str, str, SuiteResult], None] | None = None
    on_suite_end: Callable[[str, str, SuiteResult], None] | None = None
    on_case_start: Callable[[str, str, CaseResult], None] | None = None
    on_case_end: Callable[[str, str, CaseResult], None] | None = None
    on_step_start: Callable[[str, str, str, StepResult], None] | None = None
    on_step_end: Callable[[str, str, str, StepResult], None] | None = None
