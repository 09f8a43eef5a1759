"""Built-in text output formatters."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ..constants import DEFAULT_LINE_WIDTH, PROGRAM_NAME, VERSION
from ..errors import InvalidConfigValue
from ..hardware.device import ChannelType, Device
from ..packets import Packet


class OutputFormatter:
    """Stateful converter bound to one device for the whole run.

    :meth:`receive` is called for every packet in arrival order and returns the
    text produced for it, which may be empty.
    """

    accepted_options: Sequence[str] = ()

    def __init__(self, device: Device, options: Optional[Dict[str, str]] = None) -> None:
        self.device = device
        self.options: Dict[str, str] = dict(options or {})
        for name in self.options:
            if name not in self.accepted_options:
                allowed = ", ".join(self.accepted_options) or "none"
                raise InvalidConfigValue(name, self.options[name], f"unknown output option (accepted: {allowed})")
        self.samplerate: Optional[int] = None

    def logic_channels(self) -> List[tuple[int, str]]:
        return [
            (channel.index, channel.name)
            for channel in self.device.channels
            if channel.type is ChannelType.LOGIC and channel.enabled
        ]

    def analog_channel_names(self) -> List[str]:
        return [
            channel.name
            for channel in self.device.channels
            if channel.type is ChannelType.ANALOG and channel.enabled
        ]

    def receive(self, packet: Packet) -> str:
        if packet.samplerate:
            self.samplerate = packet.samplerate
        handler = getattr(self, f"on_{packet.type.value}", None)
        if handler is None:
            return ""
        return handler(packet) or ""

    def _int_option(self, name: str, default: int) -> int:
        raw = self.options.get(name)
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            raise InvalidConfigValue(name, raw, "expected an integer") from None
        if value <= 0:
            raise InvalidConfigValue(name, raw, "must be greater than 0")
        return value


class _ChannelLineFormatter(OutputFormatter):
    """One line per enabled logic channel, wrapped every ``width`` samples."""

    accepted_options = ("width",)
    group = 8

    def __init__(self, device: Device, options: Optional[Dict[str, str]] = None) -> None:
        super().__init__(device, options)
        self.width = self._int_option("width", DEFAULT_LINE_WIDTH)
        self._channels: Optional[List[tuple[int, str]]] = None
        self._lines: Dict[int, List[str]] = {}
        self._buffered = 0

    def on_logic(self, packet: Packet) -> str:
        if self._channels is None:
            self._channels = self.logic_channels()
            self._lines = {index: [] for index, _ in self._channels}
        if not self._channels:
            return ""
        out: List[str] = []
        for sample in packet.samples():
            for index, _ in self._channels:
                self._lines[index].append("1" if sample >> index & 1 else "0")
            self._buffered += 1
            if self._buffered >= self.width:
                out.append(self._flush())
        return "".join(out)

    def on_frame_begin(self, packet: Packet) -> str:
        return self._flush() + "FRAME-BEGIN\n"

    def on_frame_end(self, packet: Packet) -> str:
        return self._flush() + "FRAME-END\n"

    def on_end(self, packet: Packet) -> str:
        return self._flush()

    def _flush(self) -> str:
        if not self._buffered or not self._channels:
            return ""
        rows = []
        for index, name in self._channels:
            bits = "".join(self._lines[index])
            self._lines[index] = []
            groups = [bits[pos:pos + self.group] for pos in range(0, len(bits), self.group)]
            rows.append(f"{name}:{' '.join(self.render(group) for group in groups)}\n")
        self._buffered = 0
        return "".join(rows)

    def render(self, bits: str) -> str:
        return bits


class BitsFormatter(_ChannelLineFormatter):
    pass


class HexFormatter(_ChannelLineFormatter):
    """Like ``bits`` but every eight samples are printed as two hex digits."""

    def render(self, bits: str) -> str:
        padded = bits.ljust(self.group, "0")
        return f"{int(padded, 2):02x}"


class CsvFormatter(OutputFormatter):
    accepted_options = ("separator", "header")

    def __init__(self, device: Device, options: Optional[Dict[str, str]] = None) -> None:
        super().__init__(device, options)
        self.separator = self.options.get("separator", ",") or ","
        self.header = self.options.get("header", "1").lower() not in ("0", "false", "no", "off")
        self._channels: Optional[List[tuple[int, str]]] = None

    def on_header(self, packet: Packet) -> str:
        self._channels = self.logic_channels()
        if not self.header:
            return ""
        lines = [f"; CSV generated by {PROGRAM_NAME} {VERSION}\n"]
        if packet.samplerate:
            lines.append(f"; Samplerate: {packet.samplerate} Hz\n")
        lines.append(self.separator.join(name for _, name in self._channels) + "\n")
        return "".join(lines)

    def on_logic(self, packet: Packet) -> str:
        if self._channels is None:
            self._channels = self.logic_channels()
        if not self._channels:
            return ""
        rows = [
            self.separator.join("1" if sample >> index & 1 else "0" for index, _ in self._channels) + "\n"
            for sample in packet.samples()
        ]
        return "".join(rows)


class AnalogFormatter(OutputFormatter):
    accepted_options = ("digits",)

    def __init__(self, device: Device, options: Optional[Dict[str, str]] = None) -> None:
        super().__init__(device, options)
        self.digits = self._int_option("digits", 6)

    def on_analog(self, packet: Packet) -> str:
        enabled = set(self.analog_channel_names())
        unit = f" {packet.unit}" if packet.unit else ""
        lines: List[str] = []
        for position in range(packet.num_samples):
            for name, series in zip(packet.channels, packet.values):
                if name in enabled:
                    lines.append(f"{name}: {series[position]:.{self.digits}g}{unit}\n")
        return "".join(lines)


__all__ = [
    "AnalogFormatter",
    "BitsFormatter",
    "CsvFormatter",
    "HexFormatter",
    "OutputFormatter",
]
