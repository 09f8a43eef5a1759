"""Name-keyed registry of input formats with first-match probing."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import NoMatchingInputFormat, UnknownInputFormat
from .base import InputFormat
from .formats import BinaryFormat, CsvFormat, VcdFormat

logger = logging.getLogger(__name__)


class InputFormatRegistry:
    """Container that maps format names to input formats in registration order."""

    def __init__(self, formats: Optional[Iterable[InputFormat]] = None) -> None:
        self._formats: Dict[str, InputFormat] = {}
        for input_format in formats or ():
            self.register(input_format)

    def register(self, input_format: InputFormat) -> None:
        self._formats[input_format.name.lower()] = input_format

    def get(self, name: str) -> Optional[InputFormat]:
        return self._formats.get(name.strip().lower())

    def resolve(self, name: str) -> InputFormat:
        input_format = self.get(name)
        if input_format is None:
            raise UnknownInputFormat(name, self._formats)
        return input_format

    def match(self, path: Path) -> InputFormat:
        """Return the first registered format whose probe accepts *path*."""

        for name, input_format in self._formats.items():
            if input_format.matches(path):
                logger.debug("Input file %s matched format '%s'", path, name)
                return input_format
        raise NoMatchingInputFormat(str(path))

    def items(self) -> List[Tuple[str, InputFormat]]:
        return list(self._formats.items())


def default_input_formats() -> InputFormatRegistry:
    return InputFormatRegistry([BinaryFormat(), CsvFormat(), VcdFormat()])


__all__ = ["InputFormatRegistry", "default_input_formats"]
