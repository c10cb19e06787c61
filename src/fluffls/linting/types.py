"""Value types shared by the linting pipeline."""

from __future__ import annotations

import dataclasses
from enum import Enum


class _StrEnum(str, Enum):
    """String-valued enum that behaves like str at runtime."""

    def __str__(self) -> str:
        return str(self.value)


class RunTrigger(_StrEnum):
    """When documents are linted."""

    ON_SAVE = "onSave"
    ON_TYPE = "onType"
    OFF = "off"

    @classmethod
    def from_setting(cls, value: object) -> RunTrigger:
        """Map a client setting to a trigger; anything unrecognised disables linting."""
        if value == cls.ON_TYPE.value:
            return cls.ON_TYPE
        if value == cls.ON_SAVE.value:
            return cls.ON_SAVE
        return cls.OFF


class ToolCommand(_StrEnum):
    """Sub-command passed to the analysis tool."""

    LINT = "lint"


class RunStatus(_StrEnum):
    """Outcome of a single tool invocation."""

    SUCCEEDED = "succeeded"
    TOOL_UNAVAILABLE = "tool-unavailable"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class LintDocument:
    """Snapshot of a document at the moment an event was seen."""

    uri: str  # Identity used for delayers and diagnostics
    path: str  # File system path used for attribution and saved-file runs
    language_id: str
    text: str
    version: int | None = None


@dataclasses.dataclass(frozen=True)
class RunOptions:
    """Input selection for a tool run.

    With ``content`` set the text goes to stdin and ``target_path`` only
    attributes the result; otherwise the tool reads ``target_path`` itself.
    """

    target_path: str | None = None
    content: str | None = None


@dataclasses.dataclass(frozen=True)
class RunResult:
    """Result of a tool run."""

    status: RunStatus
    lines: tuple[str, ...] = ()
    message: str | None = None
    return_code: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.SUCCEEDED

    @classmethod
    def tool_unavailable(cls) -> RunResult:
        return cls(status=RunStatus.TOOL_UNAVAILABLE)

    @classmethod
    def failed(cls, message: str, return_code: int | None = None) -> RunResult:
        return cls(status=RunStatus.FAILED, message=message, return_code=return_code)
