"""Built-in input formats: raw binary, CSV logic columns and VCD."""
from __future__ import annotations

import codecs
import logging
from fractions import Fraction
from pathlib import Path
from typing import Dict, List, Optional

from .. import packets
from ..errors import DeviceRuntimeError
from .base import Decoder, InputFormat, option_int, read_head

logger = logging.getLogger(__name__)

CSV_COMMENT_PREFIXES = ("#", ";")
VCD_KEYWORDS = (b"$date", b"$version", b"$timescale", b"$scope", b"$comment", b"$var")
_TIMESCALE_UNITS = {
    "s": Fraction(1),
    "ms": Fraction(1, 10**3),
    "us": Fraction(1, 10**6),
    "ns": Fraction(1, 10**9),
    "ps": Fraction(1, 10**12),
    "fs": Fraction(1, 10**15),
}


class BinaryDecoder(Decoder):
    """Packed logic samples, ``unitsize`` bytes per sample."""

    def __init__(self, options: Optional[Dict[str, str]] = None) -> None:
        super().__init__(options)
        count = option_int(self.options, "numchannels", 8) or 8
        names = self.options.get("names")
        labels = names.split(",") if names else [f"D{i}" for i in range(count)]
        self.channels = self.logic_channels(labels[:count] + [f"D{i}" for i in range(len(labels), count)])
        self._buffer = bytearray()

    def send(self, chunk: bytes) -> None:
        self._buffer.extend(chunk)
        size = self.unitsize
        usable = len(self._buffer) - len(self._buffer) % size
        if usable and self._emit is not None:
            data = bytes(self._buffer[:usable])
            del self._buffer[:usable]
            self._emit(packets.logic(data, size))

    def end(self) -> None:
        if self._buffer:
            logger.warning("Discarding %d trailing byte(s) that do not form a full sample", len(self._buffer))
            self._buffer.clear()


class BinaryFormat(InputFormat):
    name = "binary"
    description = "Raw binary logic data"

    def create_decoder(self, options: Optional[Dict[str, str]] = None) -> Decoder:
        return BinaryDecoder(options)


class CsvDecoder(Decoder):
    """One sample per line, one ``0``/``1`` column per logic channel."""

    def __init__(self, options: Optional[Dict[str, str]] = None) -> None:
        super().__init__(options)
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._text = ""
        self._line_number = 0

    def send(self, chunk: bytes) -> None:
        self._text += self._utf8.decode(chunk)
        *lines, self._text = self._text.split("\n")
        self._consume(lines)

    def end(self) -> None:
        self._text += self._utf8.decode(b"", final=True)
        if self._text.strip():
            self._consume([self._text])
        self._text = ""

    def _consume(self, lines: List[str]) -> None:
        samples: List[int] = []
        for raw in lines:
            self._line_number += 1
            line = raw.strip()
            if not line or line.startswith(CSV_COMMENT_PREFIXES):
                continue
            fields = [field.strip() for field in line.split(",")]
            if self.channels is None:
                if _is_logic_row(fields):
                    self.channels = self.logic_channels([f"D{i}" for i in range(len(fields))])
                else:
                    self.channels = self.logic_channels(fields)
                    continue
            if len(fields) != len(self.channels) or not _is_logic_row(fields):
                raise DeviceRuntimeError(f"CSV line {self._line_number}: expected {len(self.channels)} 0/1 columns")
            value = 0
            for bit, field in enumerate(fields):
                if field == "1":
                    value |= 1 << bit
            samples.append(value)
        self._push_samples(samples)


class CsvFormat(InputFormat):
    name = "csv"
    description = "Comma-separated logic columns"

    def matches(self, path: Path) -> bool:
        if path.suffix.lower() != ".csv":
            return False
        text = read_head(path).decode("utf-8", errors="replace")
        rows = [line.strip() for line in text.splitlines() if line.strip() and not line.strip().startswith(CSV_COMMENT_PREFIXES)]
        return any(_is_logic_row([f.strip() for f in row.split(",")]) for row in rows[:2])

    def create_decoder(self, options: Optional[Dict[str, str]] = None) -> Decoder:
        return CsvDecoder(options)


def _is_logic_row(fields: List[str]) -> bool:
    return bool(fields) and all(field in ("0", "1") for field in fields)


class VcdDecoder(Decoder):
    """Single-bit wires from a Value Change Dump.

    Every ``#<time>`` marker closes the previous timestamp and emits one
    sample carrying the state reached at that time.
    """

    def __init__(self, options: Optional[Dict[str, str]] = None) -> None:
        super().__init__(options)
        self._text = ""
        self._block: Optional[List[str]] = None
        self._names: List[str] = []
        self._ids: Dict[str, int] = {}
        self._state = 0
        self._have_time = False
        self._pending: List[int] = []

    def send(self, chunk: bytes) -> None:
        self._text += chunk.decode("ascii", errors="replace")
        tokens = self._text.split()
        if tokens and not self._text[-1].isspace():
            self._text = tokens.pop()
        else:
            self._text = ""
        self._consume(tokens)

    def end(self) -> None:
        tail = self._text.split()
        self._text = ""
        self._consume(tail)
        if self._have_time:
            self._pending.append(self._state)
            self._have_time = False
        self._flush()

    def _consume(self, tokens: List[str]) -> None:
        for token in tokens:
            if self._block is not None:
                if token == "$end":
                    self._handle_block(self._block)
                    self._block = None
                else:
                    self._block.append(token)
                continue
            if self.channels is None:
                if token.startswith("$"):
                    self._block = [token]
                continue
            self._handle_body(token)
        self._flush()

    def _handle_block(self, block: List[str]) -> None:
        keyword = block[0]
        if keyword == "$timescale" and self.samplerate is None:
            self.samplerate = _samplerate_from_timescale("".join(block[1:]))
        elif keyword == "$var" and len(block) >= 5 and block[2] == "1":
            self._ids[block[3]] = len(self._names)
            self._names.append(block[4])
        elif keyword == "$enddefinitions":
            self.channels = self.logic_channels(self._names)
            logger.debug("VCD header declared %d channel(s)", len(self._names))

    def _handle_body(self, token: str) -> None:
        if token.startswith("#"):
            if self._have_time:
                self._pending.append(self._state)
            self._have_time = True
            return
        if token == "$comment":
            self._block = [token]
            return
        if token.startswith("$"):
            return
        if token[0] in "01xXzZ" and len(token) > 1:
            index = self._ids.get(token[1:])
            if index is None:
                return
            if token[0] == "1":
                self._state |= 1 << index
            else:
                self._state &= ~(1 << index)

    def _flush(self) -> None:
        samples, self._pending = self._pending, []
        self._push_samples(samples)


def _samplerate_from_timescale(text: str) -> Optional[int]:
    digits = "".join(ch for ch in text if ch.isdigit())
    unit = text[len(digits):].strip().lower()
    if not digits or unit not in _TIMESCALE_UNITS:
        return None
    period = int(digits) * _TIMESCALE_UNITS[unit]
    return int(1 / period) if period else None


class VcdFormat(InputFormat):
    name = "vcd"
    description = "Value Change Dump data"

    def matches(self, path: Path) -> bool:
        head = read_head(path, 64).lstrip()
        return head.startswith(VCD_KEYWORDS)

    def create_decoder(self, options: Optional[Dict[str, str]] = None) -> Decoder:
        return VcdDecoder(options)


__all__ = ["BinaryFormat", "CsvFormat", "VcdFormat"]
