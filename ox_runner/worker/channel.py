"""Orchestrator side of the worker protocol."""

import asyncio
import itertools
import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, TypeAlias

from pydantic import ValidationError

from ox_runner.models.messages import (
    EventMessage,
    ExitMessage,
    InvokeMessage,
    InvokeResultMessage,
    LogMessage,
    Message,
    worker_message_adapter,
)
from ox_runner.worker.methods import WorkerMethod

log = logging.getLogger(__name__)

STREAM_LIMIT = 16 * 1024 * 1024
DEFAULT_DISPOSE_TIMEOUT = 5.0

LOG_LEVELS: Mapping[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

LogSink: TypeAlias = Callable[[LogMessage], None]
EventSink: TypeAlias = Callable[[str, Mapping[str, Any]], None]


class WorkerState(StrEnum):
    """Lifecycle of a worker channel; states only ever move forward."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    RUNNING = "running"
    DISPOSING = "disposing"
    TERMINATED = "terminated"


STATE_ORDER: Sequence[WorkerState] = list(WorkerState)


class SpawnError(Exception):
    """Raised when the worker process cannot be created."""


class ProcessExitError(Exception):
    """Raised for invocations that were pending when the worker exited."""

    def __init__(self, status: int | None) -> None:
        super().__init__(f"Worker process exited with status {status}")
        self.status = status


class WorkerInvocationError(Exception):
    """Raised when the worker reports a failed invocation."""

    def __init__(self, method: str, error: Any) -> None:
        message = error.get("message") if isinstance(error, Mapping) else error
        super().__init__(f"Worker method '{method}' failed: {message}")
        self.method = method
        self.error = error


class WorkerStateError(Exception):
    """Raised when an operation is not allowed in the channel's state."""


def relay_log(message: LogMessage) -> None:
    """Re-emit a worker log message on the ``ox_runner.worker.<src>`` logger."""
    logger = logging.getLogger(f"ox_runner.worker.{message.src}")
    level = LOG_LEVELS.get(message.level, logging.INFO)
    if message.err is not None:
        logger.log(level, "%s (%s)", message.msg, message.err)
    else:
        logger.log(level, "%s", message.msg)


@dataclass(kw_only=True)
class WorkerChannel:
    """Owns one worker process and correlates invocations with their results.

    Every invocation carries a ``callId`` unique for the channel's lifetime;
    results are matched by that id, whatever order they arrive in. When the
    worker exits, every pending invocation fails with ``ProcessExitError``.
    """

    command: Sequence[str]
    cwd: Path | None = None
    on_log: LogSink = relay_log
    on_event: EventSink | None = None

    state: WorkerState = field(default=WorkerState.NOT_STARTED, init=False)
    exit_status: int | None = field(default=None, init=False)

    _process: asyncio.subprocess.Process | None = field(default=None, init=False)
    _reader_task: asyncio.Task[None] | None = field(default=None, init=False)
    _dispose_task: asyncio.Task[None] | None = field(default=None, init=False)
    _pending: dict[int, asyncio.Future[Any]] = field(default_factory=dict, init=False)
    _call_ids: Iterator[int] = field(
        default_factory=lambda: itertools.count(1), init=False
    )

    async def start(self) -> None:
        """Spawn the worker process.

        Raises:
            WorkerStateError: If the channel was already started
            SpawnError: If the process cannot be created

        """
        if self.state is not WorkerState.NOT_STARTED:
            raise WorkerStateError(f"Cannot start a worker in state {self.state}")
        self._advance(WorkerState.STARTING)

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                cwd=self.cwd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT,
            )
        except (OSError, ValueError) as e:
            self._advance(WorkerState.TERMINATED)
            raise SpawnError(f"Cannot start worker {list(self.command)}: {e}") from e

        log.debug("Worker started with pid %d", self._process.pid)
        if self._process.stdout is None:
            raise SpawnError("Worker started without an output pipe")
        self._reader_task = asyncio.create_task(
            self._read_messages(self._process, self._process.stdout)
        )
        self._advance(WorkerState.READY)

    async def invoke(
        self,
        method: str,
        args: Sequence[Any] = (),
        *,
        timeout: float | None = None,
    ) -> Any:
        """Invoke ``method`` on the worker and wait for its return value.

        Args:
            method: Name of the worker method
            args: Positional arguments, JSON-serializable
            timeout: Seconds to wait for the result, forever if None

        Returns:
            The value returned by the worker method

        Raises:
            WorkerInvocationError: If the worker method failed
            ProcessExitError: If the worker exited before answering
            TimeoutError: If no result arrived within ``timeout``
            WorkerStateError: If the channel is not started, is shutting
                down, or ``run`` was already invoked

        """
        if self.exit_status is not None:
            raise ProcessExitError(self.exit_status)
        if self.state not in (WorkerState.READY, WorkerState.RUNNING):
            raise WorkerStateError(f"Cannot invoke '{method}' in state {self.state}")
        if method == WorkerMethod.RUN:
            if self.state is WorkerState.RUNNING:
                raise WorkerStateError("A worker runs only once")
            self._advance(WorkerState.RUNNING)

        call_id = next(self._call_ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[call_id] = future
        self._send(InvokeMessage(call_id=call_id, method=str(method), args=list(args)))

        try:
            async with asyncio.timeout(timeout):
                return await future
        finally:
            self._pending.pop(call_id, None)

    async def dispose(self, timeout: float = DEFAULT_DISPOSE_TIMEOUT) -> None:
        """Ask the worker to exit, killing it after ``timeout`` seconds.

        Calling it again waits for the first disposal and does nothing else.
        Cancelling the caller does not interrupt the disposal.
        """
        if self._dispose_task is None:
            self._dispose_task = asyncio.create_task(self._dispose(timeout))
        await asyncio.shield(self._dispose_task)

    async def _dispose(self, timeout: float) -> None:
        process = self._process
        if process is None or self.state is WorkerState.TERMINATED:
            self._advance(WorkerState.TERMINATED)
            return

        self._advance(WorkerState.DISPOSING)
        self._send(ExitMessage(status=0))
        if process.stdin is not None:
            process.stdin.close()

        try:
            async with asyncio.timeout(timeout):
                await process.wait()
        except TimeoutError:
            log.warning("Worker did not exit within %.1fs, killing it", timeout)
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

        if self._reader_task is not None:
            await self._reader_task
        self._fail_pending(process.returncode)
        self._advance(WorkerState.TERMINATED)
        log.debug("Worker terminated with status %s", process.returncode)

    async def _read_messages(
        self, process: asyncio.subprocess.Process, stdout: asyncio.StreamReader
    ) -> None:
        try:
            while line := await stdout.readline():
                try:
                    message = worker_message_adapter.validate_json(line)
                except ValidationError:
                    log.warning("Ignoring malformed worker output: %r", line[:200])
                    continue
                self._dispatch(message)
        except (ConnectionError, ValueError) as e:
            log.error("Worker output stream failed: %s", e)
            try:
                process.kill()
            except ProcessLookupError:
                pass

        self.exit_status = await process.wait()
        self._fail_pending(self.exit_status)
        if self.state is not WorkerState.DISPOSING:
            log.warning("Worker exited unexpectedly with status %s", self.exit_status)
            self._advance(WorkerState.TERMINATED)

    def _dispatch(
        self, message: InvokeResultMessage | LogMessage | EventMessage
    ) -> None:
        if isinstance(message, InvokeResultMessage):
            future = self._pending.get(message.call_id)
            if future is None or future.done():
                log.debug("Ignoring result of unknown call %d", message.call_id)
            elif message.error is not None:
                future.set_exception(
                    WorkerInvocationError(message.method, message.error)
                )
            else:
                future.set_result(message.retval)
        elif isinstance(message, LogMessage):
            try:
                self.on_log(message)
            except Exception:
                log.exception("Log sink failed")
        elif self.on_event is not None:
            try:
                self.on_event(message.name, message.payload)
            except Exception:
                log.exception("Listener of %s failed", message.name)

    def _send(self, message: Message) -> None:
        stdin = self._process.stdin if self._process is not None else None
        if stdin is None or stdin.is_closing():
            return
        try:
            stdin.write(message.to_line())
        except (ConnectionError, RuntimeError):
            # The exit handler settles the invocation
            log.debug("Dropping %s message, worker input is closed", message.type)

    def _fail_pending(self, status: int | None) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(ProcessExitError(status))
        self._pending.clear()

    def _advance(self, state: WorkerState) -> None:
        if STATE_ORDER.index(state) < STATE_ORDER.index(self.state):
            raise WorkerStateError(f"Cannot go from {self.state} to {state}")
        self.state = state
