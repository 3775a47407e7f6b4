"""Payload models for the lifecycle events published by test engines.

Each event name carries exactly one payload model:

- ``feature:before`` / ``feature:after``: ``FeatureEvent``
- ``scenario:before`` / ``scenario:after``: ``ScenarioEvent``
- ``step:before``: ``StepEvent``
- ``step:after``: ``StepFinishedEvent``
- ``command:before`` / ``command:after``: ``CommandEvent``

Scenario and step events carry ``source_location``, the scenario location as
resolved by the engine (for example the example row of an outline). When an
engine cannot resolve it, the first declared scenario location is used.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import Field

from ox_runner.models.base import Model
from ox_runner.models.result import StepStatus

FEATURE_BEFORE = "feature:before"
FEATURE_AFTER = "feature:after"
SCENARIO_BEFORE = "scenario:before"
SCENARIO_AFTER = "scenario:after"
STEP_BEFORE = "step:before"
STEP_AFTER = "step:after"
COMMAND_BEFORE = "command:before"
COMMAND_AFTER = "command:after"


class SourceLocation(Model):
    """A position inside a spec file."""

    line: int
    column: int | None = None


class Tag(Model):
    """Engine tag; everything but the name is discarded when stored."""

    name: str


class Feature(Model):
    """Feature as declared in a spec file."""

    name: str
    location: SourceLocation
    tags: Sequence[Tag] = Field(default_factory=list)


class Scenario(Model):
    """Scenario as declared in a spec file."""

    name: str
    tags: Sequence[Tag] = Field(default_factory=list)
    locations: Sequence[SourceLocation] = Field(default_factory=list)


class Step(Model):
    """Step as declared in a spec file."""

    text: str
    location: SourceLocation


class StepOutcome(Model):
    """Outcome reported by the engine for a finished step."""

    status: StepStatus
    duration: float | None = None
    exception: Any = None


class FeatureEvent(Model):
    """Payload of ``feature:before`` and ``feature:after``."""

    uri: str
    feature: Feature


class ScenarioEvent(Model):
    """Payload of ``scenario:before`` and ``scenario:after``."""

    uri: str
    feature: Feature
    scenario: Scenario
    source_location: SourceLocation | None = None

    @property
    def case_line(self) -> int:
        """Line used to key the scenario's case, identical for before and after."""
        if self.source_location is not None:
            return self.source_location.line
        if self.scenario.locations:
            return self.scenario.locations[0].line
        return 1


class StepEvent(ScenarioEvent):
    """Payload of ``step:before``."""

    step: Step


class StepFinishedEvent(StepEvent):
    """Payload of ``step:after``."""

    result: StepOutcome


class CommandEvent(Model):
    """Payload of ``command:before`` and ``command:after`` from automation modules."""

    module: str
    command: str
    args: Sequence[Any] = Field(default_factory=list)
    error: Any = None
    duration: float | None = None


EVENT_PAYLOADS: Mapping[str, type[Model]] = {
    FEATURE_BEFORE: FeatureEvent,
    FEATURE_AFTER: FeatureEvent,
    SCENARIO_BEFORE: ScenarioEvent,
    SCENARIO_AFTER: ScenarioEvent,
    STEP_BEFORE: StepEvent,
    STEP_AFTER: StepFinishedEvent,
    COMMAND_BEFORE: CommandEvent,
    COMMAND_AFTER: CommandEvent,
}
