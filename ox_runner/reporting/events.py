"""Subscription registry for lifecycle events."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from pydantic import ValidationError

from ox_runner.models.base import Model
from ox_runner.models.events import EVENT_PAYLOADS

log = logging.getLogger(__name__)

Listener: TypeAlias = Callable[[Any], None]


class UnknownEventError(Exception):
    """Raised when subscribing to an event name that is not defined."""


@dataclass(kw_only=True)
class EventBus:
    """Routes lifecycle events to the listeners subscribed to them.

    Payloads are validated against the model registered for the event name
    before any listener sees them.
    """

    _listeners: dict[str, list[Listener]] = field(default_factory=dict, init=False)

    def subscribe(self, name: str, listener: Listener) -> None:
        """Register ``listener`` for ``name``."""
        if name not in EVENT_PAYLOADS:
            raise UnknownEventError(
                f"Unknown event '{name}'. Available events: {sorted(EVENT_PAYLOADS)}"
            )
        self._listeners.setdefault(name, []).append(listener)

    def publish(self, name: str, payload: Model | Mapping[str, Any]) -> None:
        """Deliver ``payload`` to every listener of ``name``, in order.

        Unknown event names and invalid payloads are logged and dropped.
        """
        model_cls = EVENT_PAYLOADS.get(name)
        if model_cls is None:
            log.warning("Dropping unknown event %s", name)
            return

        try:
            event = (
                payload
                if isinstance(payload, model_cls)
                else model_cls.model_validate(payload)
            )
        except ValidationError as e:
            log.warning("Dropping malformed %s event: %s", name, e)
            return

        for listener in self._listeners.get(name, ()):
            listener(event)
