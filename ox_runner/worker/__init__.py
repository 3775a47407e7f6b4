"""Worker process hosting the test engine, and the channel that drives it."""

from ox_runner.worker.channel import (
    ProcessExitError,
    SpawnError,
    WorkerChannel,
    WorkerInvocationError,
    WorkerState,
    WorkerStateError,
    relay_log,
)
from ox_runner.worker.methods import UnknownMethodError, WorkerMethod

__all__ = [
    "ProcessExitError",
    "SpawnError",
    "UnknownMethodError",
    "WorkerChannel",
    "WorkerInvocationError",
    "WorkerMethod",
    "WorkerState",
    "WorkerStateError",
    "relay_log",
]
