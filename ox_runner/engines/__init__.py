"""Test engines that run inside the worker process."""

from ox_runner.engines.base import Engine, EngineEvents
from ox_runner.engines.loading import EngineNotFoundError, load_engine

__all__ = ["Engine", "EngineEvents", "EngineNotFoundError", "load_engine"]
