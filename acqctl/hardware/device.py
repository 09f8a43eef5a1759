"""Device model shared by hardware drivers and file-backed virtual devices."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from ..errors import InvalidConfigValue
from ..keys import ConfigKey, ConfigOption, DataType
from ..packets import Packet

logger = logging.getLogger(__name__)

PacketSink = Callable[[Packet], None]
FailureSink = Callable[[BaseException], None]


class ChannelType(Enum):
    LOGIC = "logic"
    ANALOG = "analog"


@dataclass(slots=True)
class Channel:
    """A named, individually enableable input of a device."""

    index: int
    name: str
    type: ChannelType = ChannelType.LOGIC
    enabled: bool = True


@dataclass(slots=True)
class DeviceInfo:
    """Metadata describing a discovered instrument."""

    driver: str
    vendor: str = ""
    model: str = ""
    version: str = ""
    serial: Optional[str] = None
    conn: Optional[str] = None


class Device(Protocol):
    """Interface the controller requires from an opened device."""

    info: DeviceInfo

    @property
    def channels(self) -> List[Channel]:  # pragma: no cover - protocol signature
        ...

    def open(self) -> None:  # pragma: no cover - protocol signature
        ...

    def close(self) -> None:  # pragma: no cover - protocol signature
        ...

    def apply(self, option: ConfigOption) -> None:  # pragma: no cover - protocol signature
        ...

    def start_acquisition(self, emit: PacketSink, fail: FailureSink) -> None:  # pragma: no cover
        ...

    def stop_acquisition(self) -> None:  # pragma: no cover - protocol signature
        ...


class BaseDevice:
    """Channel bookkeeping and typed configuration storage for concrete devices.

    Subclasses declare the keys they understand in *supported* (key -> default
    value) and may restrict enumerated keys through *allowed_values*.
    """

    def __init__(
        self,
        info: DeviceInfo,
        channels: Iterable[Channel],
        supported: Optional[Mapping[ConfigKey, Any]] = None,
        allowed_values: Optional[Mapping[ConfigKey, Sequence[str]]] = None,
    ) -> None:
        self.info = info
        self._channels: List[Channel] = list(channels)
        self._config: Dict[ConfigKey, Any] = dict(supported or {})
        self._allowed: Dict[ConfigKey, Sequence[str]] = dict(allowed_values or {})
        self._opened = False

    @property
    def channels(self) -> List[Channel]:
        return self._channels

    @property
    def is_open(self) -> bool:
        return self._opened

    def logic_channels(self) -> List[Channel]:
        return [ch for ch in self._channels if ch.type is ChannelType.LOGIC]

    def analog_channels(self) -> List[Channel]:
        return [ch for ch in self._channels if ch.type is ChannelType.ANALOG]

    def open(self) -> None:
        self._opened = True
        logger.debug("Opened %s device %s", self.info.driver, self.info.model or self.info.serial)

    def close(self) -> None:
        if self._opened:
            logger.debug("Closed %s device %s", self.info.driver, self.info.model or self.info.serial)
        self._opened = False

    def config_get(self, key: ConfigKey) -> Any:
        return self._config.get(key)

    def config_set(self, key: ConfigKey, value: Any) -> None:
        """Store *value* for *key*; strings are parsed with the key's type."""

        if key not in self._config:
            raise InvalidConfigValue(key.name, str(value), f"not supported by {self.info.driver} device")
        if isinstance(value, str) and key.datatype is not DataType.STRING:
            value = key.parse_value(value)
        allowed = self._allowed.get(key)
        if allowed is not None and value not in allowed:
            choices = ", ".join(allowed)
            raise InvalidConfigValue(key.name, str(value), f"expected one of {choices}")
        self._config[key] = value
        logger.debug("Set %s=%r on %s device", key.name, value, self.info.driver)

    def apply(self, option: ConfigOption) -> None:
        self.config_set(option.key, option.value)

    def start_acquisition(self, emit: PacketSink, fail: FailureSink) -> None:
        raise NotImplementedError

    def stop_acquisition(self) -> None:
        raise NotImplementedError


def describe_device(device: Device) -> str:
    """Return the one-line scan summary for *device*."""

    info = device.info
    parts: List[str] = [f"{info.driver} -"]
    parts.extend(part for part in (info.vendor, info.model, info.version) if part)
    channels = device.channels
    line = " ".join(parts) + f" with {len(channels)} channels:"
    names = " ".join(channel.name for channel in channels)
    return f"{line} {names}" if names else line


def build_channels(prefix: str, count: int, channel_type: ChannelType, start_index: int = 0) -> List[Channel]:
    return [
        Channel(index=start_index + offset, name=f"{prefix}{offset}", type=channel_type)
        for offset in range(count)
    ]


__all__ = [
    "BaseDevice",
    "Channel",
    "ChannelType",
    "Device",
    "DeviceInfo",
    "FailureSink",
    "PacketSink",
    "build_channels",
    "describe_device",
]
