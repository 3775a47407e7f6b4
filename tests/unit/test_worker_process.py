"""Tests for the worker process loop."""

import asyncio
import io
import json
import logging
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import yaml

from ox_runner.models.config import RunnerConfig
from ox_runner.models.messages import ExitMessage, InvokeMessage
from ox_runner.worker.methods import dispatch_table
from ox_runner.worker.process import IpcLogHandler, WorkerProcess


def messages(output: io.BytesIO, kind: str) -> list[dict[str, Any]]:
    """Decode the messages of one type written by the worker."""
    decoded = [json.loads(line) for line in output.getvalue().splitlines()]
    return [message for message in decoded if message["type"] == kind]


async def wait_for_results(output: io.BytesIO, count: int) -> list[dict[str, Any]]:
    """Wait until the worker answered ``count`` invocations."""
    async with asyncio.timeout(5):
        while len(results := messages(output, "invoke:result")) < count:
            await asyncio.sleep(0.01)
    return results


@pytest.fixture
def output() -> io.BytesIO:
    """Create the stream the worker writes to."""
    return io.BytesIO()


@pytest.fixture
def process(output: io.BytesIO) -> WorkerProcess:
    """Create worker process writing to the output buffer."""
    return WorkerProcess(output=output)


@pytest.fixture
async def reader() -> asyncio.StreamReader:
    """Create the stream the worker reads from."""
    return asyncio.StreamReader()


def invoke(reader: asyncio.StreamReader, call_id: int, method: str, *args: Any) -> None:
    """Feed an invocation to the worker."""
    reader.feed_data(
        InvokeMessage(call_id=call_id, method=method, args=list(args)).to_line()
    )


async def test_unknown_method_is_rejected(
    process: WorkerProcess, reader: asyncio.StreamReader, output: io.BytesIO
) -> None:
    """Unknown methods are answered with a typed error."""
    serving = asyncio.create_task(process.serve(reader))
    invoke(reader, 1, "explode")

    [result] = await wait_for_results(output, 1)
    reader.feed_eof()

    assert await serving == 0
    assert result["callId"] == 1
    assert result["error"]["name"] == "UnknownMethodError"
    assert "Available methods" in result["error"]["message"]


async def test_run_before_init(
    process: WorkerProcess, reader: asyncio.StreamReader, output: io.BytesIO
) -> None:
    """Running an uninitialized worker fails with a classified error."""
    serving = asyncio.create_task(process.serve(reader))
    invoke(reader, 1, "run", {})

    [result] = await wait_for_results(output, 1)
    reader.feed_eof()
    await serving

    assert result["error"]["type"] == "MODULE_NOT_INITIALIZED_ERROR"


async def test_init_and_run_scripted_engine(
    process: WorkerProcess,
    reader: asyncio.StreamReader,
    output: io.BytesIO,
    tmp_path: Path,
) -> None:
    """The engine runs the specs and its events are sent to the orchestrator."""
    spec = tmp_path / "cart.yaml"
    spec.write_text(
        yaml.safe_dump(
            {
                "feature": "Cart",
                "scenarios": [
                    {"name": "Add", "line": 2, "steps": [{"text": "Add", "line": 3}]}
                ],
            }
        )
    )
    config = RunnerConfig(specs=[str(spec)]).model_dump(mode="json")
    serving = asyncio.create_task(process.serve(reader))

    invoke(reader, 1, "init", "runner-1", config)
    await wait_for_results(output, 1)
    invoke(reader, 2, "run", {"browserName": "chrome"})
    results = await wait_for_results(output, 2)
    reader.feed_data(ExitMessage(status=0).to_line())

    assert await serving == 0
    assert results[1]["retval"] == {"features": 1, "scenarios": 1, "failed": 0}
    assert [event["name"] for event in messages(output, "event")] == [
        "feature:before",
        "scenario:before",
        "step:before",
        "step:after",
        "scenario:after",
        "feature:after",
    ]
    assert process.worker.engine is None


async def test_exit_status_is_returned(
    process: WorkerProcess, reader: asyncio.StreamReader
) -> None:
    """The requested exit status becomes the serve result."""
    reader.feed_data(b"not json\n")
    reader.feed_data(ExitMessage(status=4).to_line())

    assert await process.serve(reader) == 4


async def test_end_of_input_exits_cleanly(
    process: WorkerProcess, reader: asyncio.StreamReader
) -> None:
    """Closed input shuts the worker down with status 0."""
    reader.feed_eof()

    assert await process.serve(reader) == 0


def test_closed_output_is_ignored() -> None:
    """Sending after the orchestrator went away does not raise."""
    output = io.BytesIO()
    output.close()

    WorkerProcess(output=output).send(ExitMessage())


def test_log_handler_relays_records(
    process: WorkerProcess, output: io.BytesIO
) -> None:
    """Log records become log messages carrying the serialized error."""
    logger = logging.getLogger("ox_runner.tests.relay")
    logger.propagate = False
    handler = IpcLogHandler(process)
    logger.addHandler(handler)
    try:
        try:
            raise ValueError("bad selector")
        except ValueError:
            logger.warning("Retrying %s", "click", exc_info=True)
    finally:
        logger.removeHandler(handler)

    [message] = messages(output, "log")
    assert message["level"] == "WARN"
    assert message["msg"] == "Retrying click"
    assert message["src"] == "ox_runner.tests.relay"
    assert message["err"]["name"] == "ValueError"


def test_dispatch_table_requires_every_method() -> None:
    """Workers missing a method are rejected at startup."""
    with pytest.raises(TypeError, match="run"):
        dispatch_table(Mock(spec=["init", "dispose"]))
