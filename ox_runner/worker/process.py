"""Worker process main loop.

The orchestrator talks to the worker over stdin and the original stdout,
one JSON message per line. Once started, file descriptor 1 points at stderr
so that anything the engine prints cannot corrupt the protocol stream.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, BinaryIO

from pydantic import ValidationError

from ox_runner.errors.serialize import serialize_error
from ox_runner.models.messages import (
    EventMessage,
    ExitMessage,
    InvokeMessage,
    InvokeResultMessage,
    LogLevel,
    LogMessage,
    Message,
    orchestrator_message_adapter,
)
from ox_runner.worker.methods import (
    Handler,
    ScenarioWorker,
    UnknownMethodError,
    WorkerMethod,
    dispatch_table,
)

log = logging.getLogger(__name__)

STREAM_LIMIT = 16 * 1024 * 1024


def log_level(levelno: int) -> LogLevel:
    """Map a ``logging`` level onto the levels carried by ``log`` messages."""
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARN"
    if levelno >= logging.INFO:
        return "INFO"
    return "DEBUG"


class IpcLogHandler(logging.Handler):
    """Relays log records to the orchestrator as ``log`` messages."""

    def __init__(self, process: "WorkerProcess") -> None:
        super().__init__()
        self.process = process

    def emit(self, record: logging.LogRecord) -> None:
        try:
            error = record.exc_info[1] if record.exc_info else None
            self.process.send(
                LogMessage(
                    time=datetime.fromtimestamp(record.created, timezone.utc),
                    level=log_level(record.levelno),
                    msg=record.getMessage(),
                    src=record.name,
                    err=serialize_error(error),
                )
            )
        except Exception:
            self.handleError(record)


@dataclass(kw_only=True)
class WorkerProcess:
    """Serves invocations read from the orchestrator until told to exit."""

    output: BinaryIO

    worker: ScenarioWorker = field(init=False)
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    def __post_init__(self) -> None:
        self.worker = ScenarioWorker(send_event=self.send_event)

    def send(self, message: Message) -> None:
        """Write ``message`` to the orchestrator; a closed stream is ignored."""
        self._write(message.to_line())

    def send_event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.send(EventMessage(name=name, payload=payload))

    async def serve(self, reader: asyncio.StreamReader) -> int:
        """Dispatch messages from ``reader`` and return the exit status.

        Each invocation runs in its own task, so results may be sent in a
        different order than the invocations arrived.
        """
        handlers = dispatch_table(self.worker)
        status = 0

        while line := await reader.readline():
            try:
                message = orchestrator_message_adapter.validate_json(line)
            except ValidationError as e:
                log.warning("Ignoring malformed message: %s", e)
                continue

            if isinstance(message, ExitMessage):
                status = message.status or 0
                log.debug("Exit requested with status %d", status)
                break

            task = asyncio.create_task(self._invoke(handlers, message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            log.debug("Input closed")

        await self.shutdown()
        return status

    async def shutdown(self) -> None:
        """Cancel outstanding invocations and dispose the engine."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

        try:
            await self.worker.dispose()
        except Exception:
            log.exception("Failed to dispose the engine")

    async def _invoke(
        self, handlers: Mapping[WorkerMethod, Handler], message: InvokeMessage
    ) -> None:
        try:
            try:
                method = WorkerMethod(message.method)
            except ValueError:
                raise UnknownMethodError(message.method) from None
            retval = await handlers[method](*message.args)
            result = InvokeResultMessage(
                call_id=message.call_id, method=message.method, retval=retval
            )
            line = result.to_line()
        except Exception as e:
            log.debug("Invocation of %s failed", message.method, exc_info=True)
            line = InvokeResultMessage(
                call_id=message.call_id,
                method=message.method,
                error=serialize_error(e),
            ).to_line()

        self._write(line)

    def _write(self, line: bytes) -> None:
        try:
            self.output.write(line)
            self.output.flush()
        except (OSError, ValueError):
            # The orchestrator is gone, nobody is left to read
            pass

    async def run(self) -> int:
        """Serve stdin until exit, end of input or SIGINT."""
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader(limit=STREAM_LIMIT)
        await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(reader), sys.stdin
        )
        # An interrupt shuts down like a closed input
        loop.add_signal_handler(signal.SIGINT, reader.feed_eof)
        return await self.serve(reader)


def main() -> None:
    """Entry point of ``python -m ox_runner.worker``."""
    parser = argparse.ArgumentParser(description="ox-runner worker process")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Minimum level of the log records relayed to the orchestrator",
    )
    args = parser.parse_args()

    sys.stdout.flush()
    output = os.fdopen(os.dup(sys.stdout.fileno()), "wb")
    os.dup2(sys.stderr.fileno(), sys.stdout.fileno())

    process = WorkerProcess(output=output)
    logging.basicConfig(level=args.log_level, handlers=[IpcLogHandler(process)])

    sys.exit(asyncio.run(process.run()))
