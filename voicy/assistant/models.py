"""Intent and command result types shared by parsers, handlers and the session."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

UNKNOWN_INTENT = "Unknown"

TAKE_SCREENSHOT = "TakeScreenshot"
GET_TIME = "GetTime"
OPEN_FOLDER = "OpenFolder"

FOLDER_NAME = "FolderName"


@dataclass(frozen=True)
class IntentResult:
    name: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Intent name must not be empty")
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    @classmethod
    def unknown(cls) -> IntentResult:
        return cls(UNKNOWN_INTENT)

    @property
    def is_unknown(self) -> bool:
        return self.name == UNKNOWN_INTENT

    def __hash__(self) -> int:
        return hash((self.name, tuple(sorted(self.parameters.items()))))

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "parameters": dict(self.parameters)}


@dataclass(frozen=True)
class CommandResult:
    success: bool = True
    failure_reason: str | None = None
    spoken_output: str | None = None

    def __post_init__(self) -> None:
        if self.success and self.failure_reason is not None:
            raise ValueError("Successful results cannot carry a failure reason")
        if not self.success and not self.failure_reason:
            raise ValueError("Failed results require a failure reason")

    @classmethod
    def ok(cls, spoken_output: str | None = None) -> CommandResult:
        return cls(success=True, spoken_output=spoken_output)

    @classmethod
    def fail(cls, reason: str) -> CommandResult:
        return cls(success=False, failure_reason=reason)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "failure_reason": self.failure_reason,
            "spoken_output": self.spoken_output,
        }
