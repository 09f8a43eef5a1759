"""Output formats turning packets into text."""
from __future__ import annotations

from .formatters import AnalogFormatter, BitsFormatter, CsvFormatter, HexFormatter, OutputFormatter
from .registry import OutputFormat, OutputFormatRegistry, default_output_formats

__all__ = [
    "AnalogFormatter",
    "BitsFormatter",
    "CsvFormatter",
    "HexFormatter",
    "OutputFormat",
    "OutputFormatRegistry",
    "OutputFormatter",
    "default_output_formats",
]
