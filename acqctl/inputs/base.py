"""Streaming decoders and the file-backed virtual device they feed."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from ..errors import InvalidConfigValue
from ..hardware.device import BaseDevice, Channel, ChannelType, DeviceInfo, FailureSink, PacketSink
from .. import packets
from ..packets import Packet

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024
INPUT_DRIVER_NAME = "input"


def file_chunks(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield the contents of *path* in *chunk_size* byte reads."""

    with path.open("rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                return
            yield chunk


def option_int(options: Dict[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = options.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidConfigValue(name, raw, "expected an integer") from None
    if value <= 0:
        raise InvalidConfigValue(name, raw, "must be greater than 0")
    return value


class Decoder:
    """Incremental decoder turning file bytes into logic packets.

    ``channels`` stays ``None`` until enough input has been seen to know the
    device layout; the owning device polls :attr:`ready` after every chunk.
    """

    def __init__(self, options: Optional[Dict[str, str]] = None) -> None:
        self.options: Dict[str, str] = dict(options or {})
        self.channels: Optional[List[Channel]] = None
        self.samplerate: Optional[int] = option_int(self.options, "samplerate", None)
        self._emit: Optional[PacketSink] = None

    @property
    def ready(self) -> bool:
        return self.channels is not None

    @property
    def unitsize(self) -> int:
        count = len(self.channels or [])
        return max((count + 7) // 8, 1)

    def bind(self, emit: PacketSink) -> None:
        self._emit = emit

    def send(self, chunk: bytes) -> None:
        raise NotImplementedError

    def end(self) -> None:
        """Flush buffered input once the file is exhausted."""

    def _push_samples(self, samples: List[int]) -> None:
        if not samples or self._emit is None:
            return
        size = self.unitsize
        data = b"".join(sample.to_bytes(size, "little") for sample in samples)
        self._emit(packets.logic(data, size))

    @staticmethod
    def logic_channels(names: List[str]) -> List[Channel]:
        return [Channel(index=i, name=name, type=ChannelType.LOGIC) for i, name in enumerate(names)]


class InputFileDevice(BaseDevice):
    """Virtual device replaying a file through a :class:`Decoder`."""

    def __init__(
        self,
        source: str,
        decoder: Decoder,
        chunks: Iterator[bytes],
        format_name: str,
    ) -> None:
        super().__init__(DeviceInfo(driver=INPUT_DRIVER_NAME, model=format_name, conn=source), [])
        self.source = source
        self.format_name = format_name
        self._decoder = decoder
        self._chunks = chunks
        self._sink: Optional[PacketSink] = None
        self._pending: List[Packet] = []
        self._header_sent = False
        self._finished = False
        self._stopping = False
        decoder.bind(self._deliver)

    def prime(self) -> bool:
        """Feed chunks until the decoder knows its channels.

        Returns ``True`` once the device identity is resolvable. Reading stops
        at that point; remaining input is consumed by :meth:`load`.
        """

        while not self._decoder.ready:
            chunk = next(self._chunks, None)
            if chunk is None:
                break
            self._decoder.send(chunk)
        if self._decoder.ready and not self._channels:
            self._channels = list(self._decoder.channels or [])
            logger.debug("Primed %s input from %s with %d channel(s)", self.format_name, self.source, len(self._channels))
        return self._decoder.ready

    def start_acquisition(self, emit: PacketSink, fail: FailureSink) -> None:
        self._sink = emit
        pending, self._pending = self._pending, []
        for packet in pending:
            emit(packet)

    def stop_acquisition(self) -> None:
        self._stopping = True

    @property
    def finished(self) -> bool:
        return self._finished

    def load(self) -> None:
        """Push the rest of the file through the decoder, ending with ``END``."""

        while self.feed_next():
            pass

    def feed_next(self) -> bool:
        """Feed one chunk; returns ``False`` once ``END`` has been delivered."""

        if self._finished:
            return False
        if not self.prime():
            self._finish()
            return False
        chunk = None if self._stopping else next(self._chunks, None)
        if chunk is None:
            self._decoder.end()
            self._finish()
            return False
        self._decoder.send(chunk)
        return True

    def close(self) -> None:
        close = getattr(self._chunks, "close", None)
        if callable(close):
            close()
        super().close()

    def _finish(self) -> None:
        if not self._header_sent:
            self._deliver(packets.header(self._decoder.samplerate))
        self._deliver(packets.END)
        self._finished = True

    def _deliver(self, packet: Packet) -> None:
        if not self._header_sent and packet.type is not packets.PacketType.HEADER:
            self._header_sent = True
            self._forward(packets.header(self._decoder.samplerate))
            if self._decoder.samplerate:
                self._forward(packets.samplerate_meta(self._decoder.samplerate))
        elif packet.type is packets.PacketType.HEADER:
            self._header_sent = True
        self._forward(packet)

    def _forward(self, packet: Packet) -> None:
        if self._sink is None:
            self._pending.append(packet)
        else:
            self._sink(packet)


class InputFormat:
    """Base class for registered input formats."""

    name: str = ""
    description: str = ""

    def matches(self, path: Path) -> bool:
        return False

    def create_decoder(self, options: Optional[Dict[str, str]] = None) -> Decoder:
        raise NotImplementedError

    def open(
        self,
        path: Path,
        options: Optional[Dict[str, str]] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> InputFileDevice:
        decoder = self.create_decoder(options)
        return InputFileDevice(str(path), decoder, file_chunks(path, chunk_size), self.name)


def read_head(path: Path, size: int = 512) -> bytes:
    with path.open("rb") as handle:
        return handle.read(size)


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "Decoder",
    "InputFileDevice",
    "InputFormat",
    "file_chunks",
    "option_int",
    "read_head",
]
