"""Shared CLI helpers: logging setup and listings printed to standard output."""
from __future__ import annotations

import logging
from typing import Iterable, Optional, TextIO

from ..constants import DEFAULT_LOGLEVEL, LOGLEVELS, PROGRAM_NAME, VERSION
from ..hardware.device import Device, describe_device
from ..hardware.registry import DriverRegistry
from ..inputs.registry import InputFormatRegistry
from ..outputs.registry import OutputFormatRegistry

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'


def resolve_loglevel(value: Optional[int]) -> int:
    """Map the 0..5 verbosity scale to a :mod:`logging` level, clamping out-of-range values."""

    if value is None:
        value = DEFAULT_LOGLEVEL
    value = min(max(int(value), min(LOGLEVELS)), max(LOGLEVELS))
    return LOGLEVELS[value]


def configure_logging(verbosity: Optional[int]) -> None:
    level = resolve_loglevel(verbosity)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def print_version(
    out: TextIO,
    drivers: DriverRegistry,
    input_formats: InputFormatRegistry,
    output_formats: OutputFormatRegistry,
) -> None:
    """Print the program version and every registered driver and format."""

    lines = [f"{PROGRAM_NAME} {VERSION}", "Supported hardware drivers:"]
    lines.extend(f"  {name:<20} {driver.longname}" for name, driver in drivers.items())
    lines.append("")
    lines.append("Supported input formats:")
    lines.extend(f"  {name:<20} {fmt.description}" for name, fmt in input_formats.items())
    lines.append("")
    lines.append("Supported output formats:")
    lines.extend(f"  {name:<20} {fmt.description}" for name, fmt in output_formats.items())
    lines.append("")
    out.write("\n".join(lines) + "\n")


def print_devices(out: TextIO, devices: Iterable[Device]) -> int:
    count = 0
    for device in devices:
        out.write(describe_device(device) + "\n")
        count += 1
    return count


__all__ = ["LOG_FORMAT", "configure_logging", "print_devices", "print_version", "resolve_loglevel"]
