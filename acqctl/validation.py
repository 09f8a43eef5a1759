"""Gatekeeping for command-line flag combinations."""
from __future__ import annotations

from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional

from .errors import UsageError

CAPTURE_FLAGS = ("set", "time", "samples", "frames", "continuous")
RECOGNISED_FLAGS = (
    "version",
    "loglevel",
    "driver",
    "config",
    "input_file",
    "input_format",
    "output_format",
    "channels",
    "channel_group",
    "scan",
    "time",
    "samples",
    "frames",
    "continuous",
    "set",
    "pipeline",
    "settings",
)


class Operation(Enum):
    VERSION = "version"
    SCAN = "scan"
    CAPTURE = "capture"
    REPLAY = "replay"


def present_flags(args: Any, names: Iterable[str] = RECOGNISED_FLAGS) -> FrozenSet[str]:
    """Return the names of flags in *args* that were given on the command line."""

    present = set()
    for name in names:
        value = getattr(args, name, None)
        if value is None or value is False:
            continue
        present.add(name)
    return frozenset(present)


class ArgumentValidator:
    """Decide whether a set of flags describes an executable operation.

    This is the only gate in front of resource acquisition: nothing is opened
    before :meth:`validate` returns.
    """

    def decide(self, flags: Iterable[str]) -> Optional[Operation]:
        """Return the operation for *flags*, or ``None`` when they must be rejected."""

        given = frozenset(flags)
        if "version" in given:
            return Operation.VERSION
        if "scan" in given and "driver" not in given:
            return Operation.SCAN
        if "input_file" in given:
            return Operation.REPLAY
        if "driver" in given:
            if "scan" in given:
                return Operation.SCAN
            if given.intersection(CAPTURE_FLAGS):
                return Operation.CAPTURE
        return None

    def validate(self, args: Any) -> Operation:
        operation = self.decide(present_flags(args))
        if operation is None:
            raise UsageError("No operation requested: use --version, --scan, --input-file, "
                             "or --driver with one of --set/--time/--samples/--frames/--continuous")
        return operation


__all__ = ["ArgumentValidator", "CAPTURE_FLAGS", "Operation", "present_flags"]
