"""Messages exchanged with the worker process, one JSON object per line."""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Annotated, Any, Literal, TypeAlias

from pydantic import ConfigDict, Field, TypeAdapter

from ox_runner.models.base import Model

LogLevel: TypeAlias = Literal["DEBUG", "INFO", "WARN", "ERROR"]


class Message(Model):
    """Base for IPC messages; field aliases are the wire names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_line(self) -> bytes:
        """Encode the message as a newline-terminated JSON line."""
        return self.model_dump_json(by_alias=True).encode() + b"\n"


class InvokeMessage(Message):
    """Orchestrator -> worker: call a worker method."""

    type: Literal["invoke"] = "invoke"
    call_id: int = Field(alias="callId")
    method: str
    args: Sequence[Any] = Field(default_factory=list)


class ExitMessage(Message):
    """Orchestrator -> worker: request a graceful shutdown."""

    type: Literal["exit"] = "exit"
    status: int | None = None


class InvokeResultMessage(Message):
    """Worker -> orchestrator: outcome of an invocation."""

    type: Literal["invoke:result"] = "invoke:result"
    call_id: int = Field(alias="callId")
    method: str
    error: Any = None
    retval: Any = None


class LogMessage(Message):
    """Worker -> orchestrator: a log record, not tied to any invocation."""

    type: Literal["log"] = "log"
    time: datetime
    level: LogLevel
    msg: str
    src: str
    err: Any = None


class EventMessage(Message):
    """Worker -> orchestrator: a lifecycle event published by the engine."""

    type: Literal["event"] = "event"
    name: str
    payload: Mapping[str, Any] = Field(default_factory=dict)


WorkerMessage = Annotated[
    InvokeResultMessage | LogMessage | EventMessage,
    Field(discriminator="type"),
]

OrchestratorMessage = Annotated[
    InvokeMessage | ExitMessage,
    Field(discriminator="type"),
]

worker_message_adapter: TypeAdapter[WorkerMessage] = TypeAdapter(WorkerMessage)
orchestrator_message_adapter: TypeAdapter[OrchestratorMessage] = TypeAdapter(
    OrchestratorMessage
)
