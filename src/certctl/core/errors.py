from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ScriptError(Exception):
    message: str
    code: int
    kind: str = "generic_error"

    def __str__(self) -> str:
        return self.message


class InternalError(RuntimeError):
    """Base class for engine faults raised before or outside check execution."""


class RegistryError(InternalError):
    """Raised when a check or group cannot be registered."""


class SelectorError(InternalError):
    """Raised when a selection input is invalid."""


class LabelExpressionError(SelectorError):
    """Raised when a label filter expression cannot be parsed."""


class ConfigError(InternalError):
    """Raised when engine configuration is missing or malformed."""


class ClaimError(InternalError):
    """Raised when a claim document cannot be read, built or written."""


class RunInterrupted(BaseException):
    """Raised inside the engine thread when SIGTERM arrives."""


class CheckAborted(Exception):
    """Raised by ``Check.abort`` to stop the whole run from inside a check body."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
