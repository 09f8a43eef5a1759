"""Name-keyed registry of output formats."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Type

from ..errors import UnknownOutputFormat
from ..hardware.device import Device
from .formatters import AnalogFormatter, BitsFormatter, CsvFormatter, HexFormatter, OutputFormatter


@dataclass(frozen=True, slots=True)
class OutputFormat:
    """Factory producing one :class:`OutputFormatter` per run."""

    name: str
    description: str
    formatter: Type[OutputFormatter]

    def create(self, device: Device, options: Optional[Dict[str, str]] = None) -> OutputFormatter:
        return self.formatter(device, options)


class OutputFormatRegistry:
    def __init__(self, formats: Optional[Iterable[OutputFormat]] = None) -> None:
        self._formats: Dict[str, OutputFormat] = {}
        for output_format in formats or ():
            self.register(output_format)

    def register(self, output_format: OutputFormat) -> None:
        self._formats[output_format.name.lower()] = output_format

    def get(self, name: str) -> Optional[OutputFormat]:
        return self._formats.get(name.strip().lower())

    def resolve(self, name: str) -> OutputFormat:
        output_format = self.get(name)
        if output_format is None:
            raise UnknownOutputFormat(name, self._formats)
        return output_format

    def items(self) -> List[Tuple[str, OutputFormat]]:
        return list(self._formats.items())


def default_output_formats() -> OutputFormatRegistry:
    return OutputFormatRegistry(
        [
            OutputFormat("analog", "ASCII analog data values and units", AnalogFormatter),
            OutputFormat("bits", "ASCII logic data as 0/1 digits", BitsFormatter),
            OutputFormat("csv", "Comma-separated values", CsvFormatter),
            OutputFormat("hex", "Hexadecimal digits", HexFormatter),
        ]
    )


__all__ = ["OutputFormat", "OutputFormatRegistry", "default_output_formats"]
