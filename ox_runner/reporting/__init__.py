"""Result aggregation and reporter callbacks."""

from ox_runner.reporting.aggregator import ResultAggregator
from ox_runner.reporting.context import SessionContext
from ox_runner.reporting.events import EventBus, UnknownEventError
from ox_runner.reporting.sink import ReporterSink

__all__ = [
    "EventBus",
    "ReporterSink",
    "ResultAggregator",
    "SessionContext",
    "UnknownEventError",
]
