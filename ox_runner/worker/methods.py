"""Methods the orchestrator may invoke on a worker."""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeAlias

from ox_runner.engines.base import Engine, EngineEvents
from ox_runner.engines.loading import load_engine
from ox_runner.errors.codes import ErrorCode
from ox_runner.errors.record import AutomationError
from ox_runner.models.config import RunnerConfig

log = logging.getLogger(__name__)

Handler: TypeAlias = Callable[..., Awaitable[Any]]


class WorkerMethod(StrEnum):
    INIT = "init"
    RUN = "run"
    DISPOSE = "dispose"


class UnknownMethodError(Exception):
    """Raised when an invocation names a method the worker does not serve."""

    def __init__(self, method: str) -> None:
        super().__init__(
            f"Unknown worker method '{method}'. "
            f"Available methods: {[m.value for m in WorkerMethod]}"
        )
        self.method = method


@dataclass(kw_only=True)
class ScenarioWorker:
    """Worker-side state: the configuration and the engine instance."""

    send_event: Callable[[str, Mapping[str, Any]], None]

    runner_id: str | None = None
    config: RunnerConfig | None = None
    engine: Engine | None = None

    async def init(self, runner_id: str, config: Mapping[str, Any]) -> None:
        """Validate the configuration and instantiate the engine.

        Args:
            runner_id: Identifier of the runner that owns this worker
            config: Serialized ``RunnerConfig`` with resolved spec paths

        Raises:
            EngineNotFoundError: If the configured engine cannot be loaded

        """
        self.runner_id = runner_id
        self.config = RunnerConfig.model_validate(config)
        engine_cls = load_engine(self.config.engine)
        self.engine = engine_cls()
        log.info(
            "Worker initialized: runner=%s engine=%s specs=%d",
            runner_id,
            self.config.engine,
            len(self.config.specs),
        )

    async def run(self, capabilities: Mapping[str, Any]) -> Any:
        """Run the configured specs and return the engine's summary."""
        if self.engine is None or self.config is None:
            raise AutomationError.of(
                ErrorCode.MODULE_NOT_INITIALIZED_ERROR,
                "Worker must be initialized before running",
            )

        events = EngineEvents(send=self.send_event)
        return await self.engine.run(
            self.config.specs, capabilities, self.config.engine_options, events
        )

    async def dispose(self) -> None:
        engine, self.engine = self.engine, None
        if engine is not None:
            await engine.dispose()


def dispatch_table(worker: ScenarioWorker) -> Mapping[WorkerMethod, Handler]:
    """Map every ``WorkerMethod`` to its handler on ``worker``.

    Raises:
        TypeError: If the worker does not implement one of the methods

    """
    table: dict[WorkerMethod, Handler] = {}
    for method in WorkerMethod:
        handler = getattr(worker, method.value, None)
        if not callable(handler):
            raise TypeError(f"{type(worker).__name__} does not implement '{method}'")
        table[method] = handler
    return table
