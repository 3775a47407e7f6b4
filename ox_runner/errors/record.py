"""Canonical error record and the exception that carries one."""

from dataclasses import dataclass
from typing import Any

from pydantic import ConfigDict, Field

from ox_runner.errors.codes import ErrorCode
from ox_runner.models.base import Model


class ErrorRecord(Model):
    """Classified failure attached to a step result.

    ``location`` is ``"<file>:<line>:<col>"`` or ``None``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: ErrorCode
    message: str | None = None
    data: Any = None
    is_fatal: bool = Field(default=True, alias="isFatal")
    location: str | None = None


@dataclass(frozen=True, kw_only=True)
class ErrorContext:
    """Where an error was raised: the automation module and its command."""

    module: str | None = None
    command: str | None = None

    @property
    def is_init(self) -> bool:
        return self.command == "init"

    @property
    def is_verify(self) -> bool:
        """Commands of the ``verify`` module, or any ``verify*`` command."""
        if self.module == "verify":
            return True
        return self.command is not None and self.command.startswith("verify")


class AutomationError(Exception):
    """Raised by automation modules with an already classified record."""

    def __init__(self, record: ErrorRecord) -> None:
        super().__init__(record.message or record.type.value)
        self.record = record

    @classmethod
    def of(
        cls,
        code: ErrorCode,
        message: str | None = None,
        *,
        data: Any = None,
        is_fatal: bool = True,
    ) -> "AutomationError":
        """Build the error from record fields."""
        return cls(
            ErrorRecord(type=code, message=message, data=data, is_fatal=is_fatal)
        )
