"""Models for the suite -> case -> step result tree."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, TypeAlias

from ox_runner.errors.record import ErrorRecord

Status: TypeAlias = Literal["passed", "failed"]

StepStatus: TypeAlias = Literal[
    "passed",
    "failed",
    "skipped",
    "pending",
    "undefined",
    "ambiguous",
    "unknown",
]


@dataclass(kw_only=True)
class StepResult:
    """Result of a single step, closed when its "after" event arrives."""

    name: str
    location: str
    start_time: datetime
    end_time: datetime | None = None
    duration: float | None = None
    status: StepStatus | None = None
    failure: ErrorRecord | None = None
    transaction: str | None = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass(kw_only=True)
class CaseResult:
    """Result of a scenario; status is rolled up from its steps."""

    name: str
    tags: Sequence[str]
    location: str
    start_time: datetime
    end_time: datetime | None = None
    duration: float | None = None
    status: Status | None = None
    steps: list[StepResult] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass(kw_only=True)
class SuiteResult:
    """Result of a feature; status is rolled up from its cases."""

    name: str
    tags: Sequence[str]
    location: str
    start_time: datetime
    end_time: datetime | None = None
    duration: float | None = None
    status: Status | None = None
    cases: list[CaseResult] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.end_time is None
