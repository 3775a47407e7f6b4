"""Reduce lifecycle events into the suite -> case -> step result tree."""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ox_runner.errors.classifier import classify
from ox_runner.errors.record import ErrorContext
from ox_runner.models.events import (
    COMMAND_AFTER,
    COMMAND_BEFORE,
    FEATURE_AFTER,
    FEATURE_BEFORE,
    SCENARIO_AFTER,
    SCENARIO_BEFORE,
    STEP_AFTER,
    STEP_BEFORE,
    CommandEvent,
    FeatureEvent,
    ScenarioEvent,
    StepEvent,
    StepFinishedEvent,
    Tag,
)
from ox_runner.models.result import CaseResult, Status, StepResult, SuiteResult
from ox_runner.reporting.context import SessionContext
from ox_runner.reporting.events import EventBus
from ox_runner.reporting.sink import ReporterSink

log = logging.getLogger(__name__)

TRANSACTION_COMMAND = "transaction"


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def tag_names(tags: Iterable[Tag]) -> list[str]:
    """Flatten engine tags into their names, order preserved."""
    return [tag.name for tag in tags]


def rollup(statuses: Iterable[str | None]) -> Status:
    """Failed if any child failed, passed otherwise."""
    return "failed" if any(status == "failed" for status in statuses) else "passed"


@dataclass(kw_only=True)
class ResultAggregator:
    """Builds the result tree of one session and forwards it to a sink.

    Suites are keyed by ``<uri>:<feature line>``, cases by
    ``<uri>:<resolved scenario line>`` (see ``ScenarioEvent.case_line``) and
    steps by ``<uri>:<step line>`` within their case. "after" events that do
    not match an open node are ignored.
    """

    context: SessionContext
    events: EventBus = field(repr=False)
    sink: ReporterSink = field(default_factory=ReporterSink)
    clock: Callable[[], datetime] = utc_now

    _suites: dict[str, SuiteResult] = field(default_factory=dict, init=False)
    _cases: dict[str, CaseResult] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self.events.subscribe(FEATURE_BEFORE, self.on_feature_before)
        self.events.subscribe(FEATURE_AFTER, self.on_feature_after)
        self.events.subscribe(SCENARIO_BEFORE, self.on_scenario_before)
        self.events.subscribe(SCENARIO_AFTER, self.on_scenario_after)
        self.events.subscribe(STEP_BEFORE, self.on_step_before)
        self.events.subscribe(STEP_AFTER, self.on_step_after)
        self.events.subscribe(COMMAND_BEFORE, self.on_command_before)
        self.events.subscribe(COMMAND_AFTER, self.on_command_after)

    @property
    def suites(self) -> Sequence[SuiteResult]:
        """Suites in the order their features started."""
        return list(self._suites.values())

    def on_feature_before(self, event: FeatureEvent) -> None:
        key = f"{event.uri}:{event.feature.location.line}"
        if key in self._suites:
            log.debug("Ignoring repeated feature:before for %s", key)
            return

        suite = SuiteResult(
            name=event.feature.name,
            tags=tag_names(event.feature.tags),
            location=key,
            start_time=self.clock(),
        )
        self._suites[key] = suite

        if self.sink.on_suite_start is not None:
            self.sink.on_suite_start(self.context.runner_id, event.uri, suite)

    def on_feature_after(self, event: FeatureEvent) -> None:
        key = f"{event.uri}:{event.feature.location.line}"
        suite = self._suites.get(key)
        if suite is None or not suite.is_open:
            log.debug("Ignoring feature:after without open suite %s", key)
            return

        self._close(suite)
        suite.status = rollup(case.status for case in suite.cases)

        if self.sink.on_suite_end is not None:
            self.sink.on_suite_end(self.context.runner_id, event.uri, suite)

    def on_scenario_before(self, event: ScenarioEvent) -> None:
        suite_key = f"{event.uri}:{event.feature.location.line}"
        suite = self._suites.get(suite_key)
        if suite is None or not suite.is_open:
            log.warning("Ignoring scenario:before outside open suite %s", suite_key)
            return

        key = f"{event.uri}:{event.case_line}"
        if (existing := self._cases.get(key)) is not None and existing.is_open:
            log.debug("Ignoring repeated scenario:before for %s", key)
            return

        case = CaseResult(
            name=event.scenario.name,
            tags=tag_names(event.scenario.tags),
            location=key,
            start_time=self.clock(),
        )
        suite.cases.append(case)
        self._cases[key] = case
        self.context.transaction_name = None

        if self.sink.on_case_start is not None:
            self.sink.on_case_start(self.context.runner_id, event.uri, case)

    def on_scenario_after(self, event: ScenarioEvent) -> None:
        case = self._open_case(event)
        if case is None:
            log.debug(
                "Ignoring scenario:after without open case %s:%d",
                event.uri,
                event.case_line,
            )
            return

        self._close(case)
        case.status = rollup(step.status for step in case.steps)

        if self.sink.on_case_end is not None:
            self.sink.on_case_end(self.context.runner_id, event.uri, case)

    def on_step_before(self, event: StepEvent) -> None:
        case = self._open_case(event)
        if case is None:
            log.warning(
                "Ignoring step:before outside open case %s:%d",
                event.uri,
                event.case_line,
            )
            return

        step = StepResult(
            name=event.step.text,
            location=f"{event.uri}:{event.step.location.line}",
            start_time=self.clock(),
        )
        case.steps.append(step)
        self.context.failed_command = None

        if self.sink.on_step_start is not None:
            self.sink.on_step_start(
                self.context.runner_id, event.uri, case.location, step
            )

    def on_step_after(self, event: StepFinishedEvent) -> None:
        case = self._open_case(event)
        key = f"{event.uri}:{event.step.location.line}"
        step = self._open_step(case, key) if case is not None else None
        if case is None or step is None:
            log.debug("Ignoring step:after without open step %s", key)
            return

        self._close(step)
        step.status = event.result.status
        step.transaction = self.context.transaction_name
        if event.result.exception is not None:
            step.failure = classify(
                event.result.exception, self.context.failed_command
            )

        if self.sink.on_step_end is not None:
            self.sink.on_step_end(
                self.context.runner_id, event.uri, case.location, step
            )

    def on_command_before(self, event: CommandEvent) -> None:
        if event.command == TRANSACTION_COMMAND and event.args:
            self.context.transaction_name = str(event.args[0])

    def on_command_after(self, event: CommandEvent) -> None:
        if event.error is not None:
            self.context.failed_command = ErrorContext(
                module=event.module, command=event.command
            )
        log.debug("Command %s.%s finished", event.module, event.command)

    def _open_case(self, event: ScenarioEvent) -> CaseResult | None:
        case = self._cases.get(f"{event.uri}:{event.case_line}")
        if case is None or not case.is_open:
            return None
        return case

    @staticmethod
    def _open_step(case: CaseResult, key: str) -> StepResult | None:
        for step in reversed(case.steps):
            if step.location == key and step.is_open:
                return step
        return None

    def _close(self, node: SuiteResult | CaseResult | StepResult) -> None:
        node.end_time = self.clock()
        node.duration = (node.end_time - node.start_time).total_seconds()
