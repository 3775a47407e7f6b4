"""Engine that replays YAML feature scripts as lifecycle events.

Each spec file describes one feature::

    feature: Checkout
    line: 1
    tags: ["@smoke"]
    scenarios:
      - name: Pay by card
        line: 4
        steps:
          - text: Given a cart with one item
            line: 5
          - text: When the card is declined
            line: 6
            command: {module: web, name: click}
            raises: NameError
            message: name 'card' is not defined

A step passes unless it declares another ``status`` or an exception to
``raise``. Steps after a failed step are skipped.
"""

import asyncio
import builtins
import logging
import random
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field

from ox_runner.engines.base import EngineEvents
from ox_runner.models.base import Model
from ox_runner.models.config import EngineOptions
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
    Feature,
    FeatureEvent,
    Scenario,
    ScenarioEvent,
    SourceLocation,
    Step,
    StepEvent,
    StepFinishedEvent,
    StepOutcome,
    Tag,
)
from ox_runner.models.result import StepStatus

log = logging.getLogger(__name__)


class CommandScript(Model):
    """Automation command issued by a step."""

    module: str
    name: str
    args: Sequence[Any] = Field(default_factory=list)


class StepScript(Model):
    """Scripted step."""

    text: str
    line: int
    status: StepStatus = "passed"
    raises: str | None = None
    message: str = ""
    command: CommandScript | None = None


class ScenarioScript(Model):
    """Scripted scenario."""

    name: str
    line: int
    tags: Sequence[str] = Field(default_factory=list)
    steps: Sequence[StepScript] = Field(default_factory=list)


class FeatureScript(Model):
    """Scripted feature, one per spec file."""

    feature: str
    line: int = 1
    tags: Sequence[str] = Field(default_factory=list)
    scenarios: Sequence[ScenarioScript] = Field(default_factory=list)


async def load_feature_script(path: Path) -> FeatureScript:
    """Load and validate a feature script.

    Raises:
        FileNotFoundError: If the script does not exist

    """
    content = await asyncio.to_thread(path.read_text)
    return FeatureScript.model_validate(yaml.safe_load(content))


def build_exception(name: str, message: str) -> Exception:
    """Instantiate the builtin exception ``name``, or a new class of that name."""
    exc_cls = getattr(builtins, name, None)
    if not (isinstance(exc_cls, type) and issubclass(exc_cls, Exception)):
        exc_cls = type(name, (Exception,), {})
    return exc_cls(message)


def ordered(items: Sequence[Any], order: str) -> list[Any]:
    """Apply the ``defined``, ``random`` or ``random:<seed>`` order."""
    result = list(items)
    kind, _, seed = order.partition(":")
    if kind == "random":
        random.Random(seed or None).shuffle(result)
    return result


@dataclass(kw_only=True)
class ScriptedEngine:
    """Replays feature scripts through the lifecycle event stream."""

    async def run(
        self,
        specs: Sequence[str],
        capabilities: Mapping[str, Any],
        options: EngineOptions,
        events: EngineEvents,
    ) -> dict[str, int]:
        """Run every spec and return scenario counts."""
        scripts = [(spec, await load_feature_script(Path(spec))) for spec in specs]
        name_filters = [re.compile(pattern) for pattern in options.name]
        summary = {"features": 0, "scenarios": 0, "failed": 0}

        for uri, script in ordered(scripts, options.order):
            feature = Feature(
                name=script.feature,
                location=SourceLocation(line=script.line),
                tags=[Tag(name=tag) for tag in script.tags],
            )
            events.emit(FEATURE_BEFORE, FeatureEvent(uri=uri, feature=feature))
            summary["features"] += 1

            stop = False
            for scenario in script.scenarios:
                if name_filters and not any(
                    f.search(scenario.name) for f in name_filters
                ):
                    continue
                summary["scenarios"] += 1
                if not self._run_scenario(uri, feature, scenario, events):
                    summary["failed"] += 1
                    stop = options.fail_fast
                if stop:
                    break

            events.emit(FEATURE_AFTER, FeatureEvent(uri=uri, feature=feature))
            if stop:
                log.info("Stopping after first failure")
                break

        return summary

    async def dispose(self) -> None:
        log.debug("Scripted engine disposed")

    def _run_scenario(
        self,
        uri: str,
        feature: Feature,
        script: ScenarioScript,
        events: EngineEvents,
    ) -> bool:
        log.info("Running scenario: %s", script.name)
        scenario = Scenario(
            name=script.name,
            tags=[Tag(name=tag) for tag in script.tags],
            locations=[SourceLocation(line=script.line)],
        )
        source_location = SourceLocation(line=script.line)
        base = ScenarioEvent(
            uri=uri,
            feature=feature,
            scenario=scenario,
            source_location=source_location,
        )
        events.emit(SCENARIO_BEFORE, base)

        passed = True
        for step_script in script.steps:
            step = Step(
                text=step_script.text,
                location=SourceLocation(line=step_script.line),
            )
            step_event = StepEvent(**base.model_dump(), step=step)
            events.emit(STEP_BEFORE, step_event)

            if passed:
                outcome = self._execute(step_script, events)
            else:
                outcome = StepOutcome(status="skipped")
            passed = passed and outcome.status != "failed"

            events.emit(
                STEP_AFTER,
                StepFinishedEvent(**step_event.model_dump(), result=outcome),
            )

        events.emit(SCENARIO_AFTER, base)
        return passed

    def _execute(self, script: StepScript, events: EngineEvents) -> StepOutcome:
        command = script.command
        if command is not None:
            events.emit(
                COMMAND_BEFORE,
                CommandEvent(
                    module=command.module, command=command.name, args=command.args
                ),
            )

        try:
            if script.raises is not None:
                raise build_exception(script.raises, script.message)
        except Exception as error:
            if command is not None:
                events.emit(
                    COMMAND_AFTER,
                    CommandEvent(
                        module=command.module, command=command.name, error=error
                    ),
                )
            return StepOutcome(status="failed", exception=error)

        if command is not None:
            events.emit(
                COMMAND_AFTER,
                CommandEvent(module=command.module, command=command.name),
            )
        return StepOutcome(status=script.status)
