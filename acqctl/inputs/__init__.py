"""Input formats and file-backed virtual devices."""
from __future__ import annotations

from .base import DEFAULT_CHUNK_SIZE, Decoder, InputFileDevice, InputFormat, file_chunks
from .formats import BinaryFormat, CsvFormat, VcdFormat
from .registry import InputFormatRegistry, default_input_formats
from .session import load_session

__all__ = [
    "BinaryFormat",
    "CsvFormat",
    "DEFAULT_CHUNK_SIZE",
    "Decoder",
    "InputFileDevice",
    "InputFormat",
    "InputFormatRegistry",
    "VcdFormat",
    "default_input_formats",
    "file_chunks",
    "load_session",
]
