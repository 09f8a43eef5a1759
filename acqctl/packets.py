"""Data units moved from a device to the output formatter."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence, Tuple


class PacketType(Enum):
    HEADER = "header"
    META = "meta"
    LOGIC = "logic"
    ANALOG = "analog"
    FRAME_BEGIN = "frame_begin"
    FRAME_END = "frame_end"
    END = "end"


@dataclass(frozen=True, slots=True)
class Packet:
    """A single unit of captured data in arrival order.

    ``LOGIC`` packets carry ``data`` as packed samples of ``unitsize`` bytes,
    bit *n* of each sample holding logic channel *n*. ``ANALOG`` packets carry
    one value per sample for every channel named in ``channels``.
    """

    type: PacketType
    data: bytes = b""
    unitsize: int = 1
    values: Tuple[Tuple[float, ...], ...] = field(default_factory=tuple)
    channels: Tuple[str, ...] = field(default_factory=tuple)
    unit: Optional[str] = None
    samplerate: Optional[int] = None
    started_at: Optional[datetime] = None

    @property
    def num_samples(self) -> int:
        if self.type is PacketType.LOGIC:
            return len(self.data) // max(self.unitsize, 1)
        if self.type is PacketType.ANALOG:
            return len(self.values[0]) if self.values else 0
        return 0

    def samples(self) -> Sequence[int]:
        """Return the logic samples of this packet as integers."""

        size = max(self.unitsize, 1)
        return [
            int.from_bytes(self.data[offset:offset + size], "little")
            for offset in range(0, len(self.data) - size + 1, size)
        ]


def header(samplerate: Optional[int] = None) -> Packet:
    return Packet(PacketType.HEADER, samplerate=samplerate, started_at=datetime.now())


def logic(data: bytes, unitsize: int = 1) -> Packet:
    return Packet(PacketType.LOGIC, data=bytes(data), unitsize=unitsize)


def analog(channels: Sequence[str], values: Sequence[Sequence[float]], unit: Optional[str] = None) -> Packet:
    return Packet(
        PacketType.ANALOG,
        channels=tuple(channels),
        values=tuple(tuple(float(v) for v in series) for series in values),
        unit=unit,
    )


def samplerate_meta(samplerate: int) -> Packet:
    return Packet(PacketType.META, samplerate=samplerate)


FRAME_BEGIN = Packet(PacketType.FRAME_BEGIN)
FRAME_END = Packet(PacketType.FRAME_END)
END = Packet(PacketType.END)


__all__ = [
    "END",
    "FRAME_BEGIN",
    "FRAME_END",
    "Packet",
    "PacketType",
    "analog",
    "header",
    "logic",
    "samplerate_meta",
]
