"""Runs one test execution in a worker process and collects its results."""

import glob
import logging
import os
import re
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from types import TracebackType
from typing import Any, Self

from ox_runner.models.config import RunnerConfig
from ox_runner.models.result import SuiteResult
from ox_runner.reporting.aggregator import ResultAggregator, utc_now
from ox_runner.reporting.context import SessionContext
from ox_runner.reporting.events import EventBus
from ox_runner.reporting.sink import ReporterSink
from ox_runner.worker.channel import (
    DEFAULT_DISPOSE_TIMEOUT,
    LogSink,
    WorkerChannel,
    relay_log,
)
from ox_runner.worker.methods import WorkerMethod

log = logging.getLogger(__name__)

GLOB_CHARS = re.compile(r"[*?\[]")


class RunnerState(StrEnum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    DISPOSED = "disposed"


class RunnerStateError(Exception):
    """Raised when a runner operation is called in the wrong state."""


def resolve_spec_files(
    specs: Sequence[str], cwd: Path | str | None = None
) -> list[str]:
    """Resolve spec entries to absolute file paths.

    Entries containing glob characters expand to their sorted matches,
    ``**`` included. Entry order is kept and duplicates are not removed.

    Args:
        specs: File paths or glob patterns, relative to ``cwd``
        cwd: Base directory of relative entries, the process cwd if None

    Returns:
        Absolute paths of the spec files

    """
    base = Path(cwd) if cwd is not None else Path.cwd()
    files: list[str] = []

    for spec in specs:
        path = os.path.abspath(base / spec)
        if GLOB_CHARS.search(spec):
            files.extend(sorted(glob.glob(path, recursive=True)))
        else:
            files.append(path)

    return files


@dataclass(kw_only=True)
class Runner:
    """Drives one worker through init, run and dispose.

    Lifecycle events from the worker feed a ``ResultAggregator`` that
    reports to the sink given to ``init``. ``run`` never raises for a failed
    execution: the error is handed to the sink's ``on_runner_end`` instead.
    """

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    channel_factory: Callable[..., WorkerChannel] = WorkerChannel
    clock: Callable[[], datetime] = utc_now

    state: RunnerState = field(default=RunnerState.UNINITIALIZED, init=False)
    context: SessionContext = field(init=False)
    events: EventBus = field(default_factory=EventBus, init=False)

    _config: RunnerConfig | None = field(default=None, init=False)
    _capabilities: Mapping[str, Any] = field(default_factory=dict, init=False)
    _sink: ReporterSink = field(default_factory=ReporterSink, init=False)
    _aggregator: ResultAggregator | None = field(default=None, init=False)
    _channel: WorkerChannel | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.context = SessionContext(runner_id=self.id)

    @property
    def suites(self) -> Sequence[SuiteResult]:
        """Results collected so far."""
        if self._aggregator is None:
            return []
        return self._aggregator.suites

    async def init(
        self,
        config: RunnerConfig,
        capabilities: Mapping[str, Any],
        sink: ReporterSink | None = None,
        on_log: LogSink | None = None,
    ) -> None:
        """Start the worker and initialize its engine.

        Args:
            config: Runner configuration; spec entries are resolved here
            capabilities: Capabilities handed to the engine on ``run``
            sink: Reporter callbacks
            on_log: Receives worker log messages, relayed to ``logging``
                if None

        Raises:
            RunnerStateError: If the runner was already initialized
            SpawnError: If the worker cannot be started
            WorkerInvocationError: If the worker fails to initialize

        """
        if self.state is not RunnerState.UNINITIALIZED:
            raise RunnerStateError("Runner is already initialized")
        self.state = RunnerState.INITIALIZED

        specs = resolve_spec_files(config.specs, config.cwd)
        self._config = config.model_copy(update={"specs": specs})
        self._capabilities = dict(capabilities)
        self._sink = sink or ReporterSink()
        self._aggregator = ResultAggregator(
            context=self.context,
            events=self.events,
            sink=self._sink,
            clock=self.clock,
        )

        log.info("Starting worker for runner %s (%d spec(s))", self.id, len(specs))
        self._channel = self.channel_factory(
            command=config.worker_command,
            cwd=config.cwd,
            on_log=on_log or relay_log,
            on_event=self.events.publish,
        )
        await self._channel.start()
        await self._channel.invoke(
            WorkerMethod.INIT,
            [self.id, self._config.model_dump(mode="json")],
            timeout=config.invoke_timeout,
        )

    async def run(self) -> Any:
        """Execute the specs and return the engine's summary.

        Returns:
            The engine's return value, or None if the execution failed

        Raises:
            RunnerStateError: If the runner is not initialized, or already ran

        """
        if self.state is not RunnerState.INITIALIZED:
            raise RunnerStateError(f"Cannot run a runner in state {self.state}")
        if self._config is None or self._channel is None:
            raise RunnerStateError("Runner has no worker to run")
        self.state = RunnerState.RUNNING

        if self._sink.on_runner_start is not None:
            self._sink.on_runner_start(self.id, self._config, self._capabilities)

        retval = None
        error: BaseException | None = None
        try:
            retval = await self._channel.invoke(
                WorkerMethod.RUN,
                [self._capabilities],
                timeout=self._config.invoke_timeout,
            )
        except Exception as e:
            log.error("Run of runner %s failed: %s", self.id, e)
            error = e

        if self._sink.on_runner_end is not None:
            self._sink.on_runner_end(self.id, error)
        return retval

    async def dispose(self) -> None:
        """Shut the worker down. Safe to call any number of times."""
        if self.state is RunnerState.DISPOSED:
            return
        self.state = RunnerState.DISPOSED

        if self._channel is not None:
            timeout = (
                self._config.dispose_timeout
                if self._config is not None
                else DEFAULT_DISPOSE_TIMEOUT
            )
            await self._channel.dispose(timeout)
        log.debug("Runner %s disposed", self.id)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose()
