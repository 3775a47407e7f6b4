"""Contract between the worker and the test engine it drives."""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from ox_runner.errors.serialize import serialize_error
from ox_runner.models.base import Model
from ox_runner.models.config import EngineOptions
from ox_runner.models.events import EVENT_PAYLOADS, CommandEvent, StepFinishedEvent
from ox_runner.reporting.events import UnknownEventError


@dataclass(frozen=True, kw_only=True)
class EngineEvents:
    """Publishes lifecycle events from the engine to the orchestrator."""

    send: Callable[[str, Mapping[str, Any]], None]

    def emit(self, name: str, payload: Model | Mapping[str, Any]) -> None:
        """Validate ``payload`` against the model of ``name`` and send it.

        Raises:
            UnknownEventError: If ``name`` is not a lifecycle event
            pydantic.ValidationError: If the payload does not fit the event

        """
        model_cls = EVENT_PAYLOADS.get(name)
        if model_cls is None:
            raise UnknownEventError(f"Unknown event '{name}'")
        event = (
            payload
            if isinstance(payload, model_cls)
            else model_cls.model_validate(payload)
        )
        self.send(name, _serialized_errors(event).model_dump(mode="json"))


def _serialized_errors(event: Model) -> Model:
    """Replace exceptions carried by ``event`` with their serialized form."""
    if isinstance(event, StepFinishedEvent) and isinstance(
        event.result.exception, BaseException
    ):
        result = event.result.model_copy(
            update={"exception": serialize_error(event.result.exception)}
        )
        return event.model_copy(update={"result": result})
    if isinstance(event, CommandEvent) and isinstance(event.error, BaseException):
        return event.model_copy(update={"error": serialize_error(event.error)})
    return event


class Engine(Protocol):
    """A test engine, instantiated once per worker."""

    async def run(
        self,
        specs: Sequence[str],
        capabilities: Mapping[str, Any],
        options: EngineOptions,
        events: EngineEvents,
    ) -> Any:
        """Execute ``specs`` and return a JSON-serializable summary.

        Args:
            specs: Absolute paths of the spec files to execute
            capabilities: Resolved capabilities of the automation session
            options: Engine options
            events: Emitter for lifecycle events

        """

    async def dispose(self) -> None:
        """Release everything the engine holds."""
