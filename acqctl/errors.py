"""Error taxonomy shared by the acquisition controller."""
from __future__ import annotations

from typing import Iterable, Optional


def _with_choices(message: str, label: str, choices: Optional[Iterable[str]]) -> str:
    available = ", ".join(sorted(choices or ()))
    if available:
        return f"{message}. Available {label}: {available}"
    return message


class AcquisitionError(RuntimeError):
    """Base class for every failure that aborts the current run."""


class UsageError(AcquisitionError):
    """Raised when the flag combination does not describe an operation."""


class UnknownConfigKey(AcquisitionError):
    """Raised when a ``name=value`` pair names an unregistered key."""

    def __init__(self, name: str, choices: Optional[Iterable[str]] = None) -> None:
        super().__init__(_with_choices(f"Unknown configuration key '{name}'", "keys", choices))
        self.name = name


class InvalidConfigValue(AcquisitionError):
    """Raised when a value does not parse for its key or is refused by a device."""

    def __init__(self, key: str, value: str, reason: str) -> None:
        super().__init__(f"Invalid value '{value}' for '{key}': {reason}")
        self.key = key
        self.value = value
        self.reason = reason


class UnknownInputFormat(AcquisitionError):
    def __init__(self, name: str, choices: Optional[Iterable[str]] = None) -> None:
        super().__init__(_with_choices(f"Input format '{name}' not found", "input formats", choices))
        self.name = name


class NoMatchingInputFormat(AcquisitionError):
    def __init__(self, path: str) -> None:
        super().__init__(f"File '{path}' is not in any recognised input format")
        self.path = path


class UnknownOutputFormat(AcquisitionError):
    def __init__(self, name: str, choices: Optional[Iterable[str]] = None) -> None:
        super().__init__(_with_choices(f"Output format '{name}' not found", "output formats", choices))
        self.name = name


class DriverNotFound(AcquisitionError):
    def __init__(self, name: str, choices: Optional[Iterable[str]] = None) -> None:
        super().__init__(_with_choices(f"Driver '{name}' not found", "drivers", choices))
        self.name = name


class DeviceOpenFailed(AcquisitionError):
    """Raised when a scan finds nothing to open or the open call fails."""


class DeviceRuntimeError(AcquisitionError):
    """Raised by a device or pipeline stage while data is being captured."""


class SessionLoadError(AcquisitionError):
    """Raised when a file cannot be loaded as a previously saved session."""


__all__ = [
    "AcquisitionError",
    "DeviceOpenFailed",
    "DeviceRuntimeError",
    "DriverNotFound",
    "InvalidConfigValue",
    "NoMatchingInputFormat",
    "SessionLoadError",
    "UnknownConfigKey",
    "UnknownInputFormat",
    "UnknownOutputFormat",
    "UsageError",
]
