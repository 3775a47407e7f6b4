"""End-to-end tests running the real worker with the scripted engine."""

import sys
from collections.abc import Callable, Sequence
from typing import TypeAlias
from pathlib import Path
from unittest.mock import Mock

import pytest
import yaml

from ox_runner.errors.codes import ErrorCode
from ox_runner.models.config import EngineOptions, RunnerConfig
from ox_runner.reporting.sink import ReporterSink
from ox_runner.runner import Runner
from ox_runner.worker.channel import ProcessExitError, WorkerInvocationError

CommandFactory: TypeAlias = Callable[..., Sequence[str]]

CAPABILITIES = {"browserName": "chrome"}


@pytest.fixture
def specs_dir(tmp_path: Path) -> Path:
    """Write a feature with a passing and a failing scenario."""
    feature = {
        "feature": "Cart",
        "line": 1,
        "scenarios": [
            {
                "name": "A",
                "line": 3,
                "steps": [
                    {"text": "Given an empty cart", "line": 4},
                    {"text": "When I add an item", "line": 5},
                ],
            },
            {
                "name": "B",
                "line": 7,
                "steps": [
                    {"text": "Given an empty cart", "line": 8},
                    {
                        "text": "When I add a missing item",
                        "line": 9,
                        "raises": "NameError",
                        "message": "name 'item' is not defined",
                    },
                ],
            },
        ],
    }
    (tmp_path / "features").mkdir()
    (tmp_path / "features" / "cart.yaml").write_text(yaml.safe_dump(feature))
    return tmp_path


@pytest.fixture
def sink() -> Mock:
    """Create mock sink implementing every callback."""
    return Mock(spec=ReporterSink)


async def test_results_of_a_real_run(specs_dir: Path, sink: Mock) -> None:
    """Passing and failing cases roll up into a failed suite."""
    on_log = Mock()
    config = RunnerConfig(cwd=specs_dir, specs=["features/*.yaml"])

    async with Runner() as runner:
        await runner.init(config, CAPABILITIES, sink, on_log=on_log)
        result = await runner.run()

    assert result == {"features": 1, "scenarios": 2, "failed": 1}
    [suite] = runner.suites
    case_a, case_b = suite.cases
    assert case_a.status == "passed"
    assert case_b.status == "failed"
    assert case_b.steps[1].failure is not None
    assert case_b.steps[1].failure.type is ErrorCode.SCRIPT_ERROR
    assert case_b.steps[1].failure.message == "NameError: name 'item' is not defined"
    assert suite.status == "failed"
    assert suite.location == f"{specs_dir / 'features' / 'cart.yaml'}:1"

    sink.on_runner_end.assert_called_once_with(runner.id, None)
    assert sink.on_case_end.call_count == 2
    messages = [call.args[0].msg for call in on_log.call_args_list]
    assert "Running scenario: B" in messages


async def test_unknown_engine_fails_init(specs_dir: Path) -> None:
    """Init failures in the worker propagate to the caller."""
    config = RunnerConfig(cwd=specs_dir, specs=["features/*.yaml"], engine="nope")

    async with Runner() as runner:
        with pytest.raises(WorkerInvocationError) as exc_info:
            await runner.init(config, CAPABILITIES)

    assert exc_info.value.error["name"] == "EngineNotFoundError"


async def test_missing_spec_is_reported_not_raised(
    specs_dir: Path, sink: Mock
) -> None:
    """A failing run is reported through the sink."""
    config = RunnerConfig(cwd=specs_dir, specs=["features/missing.yaml"])

    async with Runner() as runner:
        await runner.init(config, CAPABILITIES, sink)
        result = await runner.run()

    assert result is None
    [runner_id, error] = sink.on_runner_end.call_args.args
    assert runner_id == runner.id
    assert isinstance(error, WorkerInvocationError)
    assert error.error["name"] == "FileNotFoundError"


async def test_worker_crash_during_run(
    specs_dir: Path, sink: Mock, fake_worker: CommandFactory
) -> None:
    """A worker dying mid-run ends the run with a process exit error."""
    config = RunnerConfig(
        cwd=specs_dir,
        specs=["features/*.yaml"],
        worker_command=fake_worker("crash-on-run"),
    )

    async with Runner() as runner:
        await runner.init(config, CAPABILITIES, sink)
        result = await runner.run()

    assert result is None
    error = sink.on_runner_end.call_args.args[1]
    assert isinstance(error, ProcessExitError)
    assert error.status == 3


async def test_name_filter_reaches_engine(specs_dir: Path) -> None:
    """Engine options are handed to the engine in the worker."""
    config = RunnerConfig(
        cwd=specs_dir,
        specs=["features/*.yaml"],
        engine_options=EngineOptions(name=["^A$"]),
        worker_command=[
            sys.executable, "-m", "ox_runner.worker", "--log-level", "DEBUG"
        ],
    )

    async with Runner() as runner:
        await runner.init(config, CAPABILITIES)
        result = await runner.run()

    assert result == {"features": 1, "scenarios": 1, "failed": 0}
    assert [case.name for case in runner.suites[0].cases] == ["A"]
