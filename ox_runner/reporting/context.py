"""Per-session state shared between the runner and its aggregator."""

from dataclasses import dataclass

from ox_runner.errors.record import ErrorContext


@dataclass(kw_only=True)
class SessionContext:
    """State of one test execution, owned by its runner."""

    runner_id: str
    # Name set by the last ``transaction`` command of the current case,
    # recorded on every step that finishes under it
    transaction_name: str | None = None
    # Command that failed during the current step, used to classify its error
    failed_command: ErrorContext | None = None
