"""Apply command-line device settings to an opened device."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, List, Optional, Sequence, Tuple

from .hardware.device import Device
from .keys import DEFAULT_KEYS, LIMIT_FRAMES, LIMIT_MSEC, LIMIT_SAMPLES, ConfigKey, ConfigKeyRegistry, ConfigOption

logger = logging.getLogger(__name__)

LIMIT_FLAGS: Tuple[Tuple[str, ConfigKey], ...] = (
    ("time", LIMIT_MSEC),
    ("samples", LIMIT_SAMPLES),
    ("frames", LIMIT_FRAMES),
)


def parse_channel_selection(text: Optional[str]) -> Optional[FrozenSet[str]]:
    """Parse a comma-separated channel list; ``None`` means no selection."""

    if text is None:
        return None
    return frozenset(name.strip() for name in text.split(",") if name.strip())


@dataclass(frozen=True, slots=True)
class DeviceSettings:
    """Everything the configurator applies, parsed before any device is touched."""

    channels: Optional[FrozenSet[str]] = None
    limits: Tuple[ConfigOption, ...] = ()
    options: Tuple[ConfigOption, ...] = ()
    set_only: bool = False
    channel_group: Optional[str] = None

    @classmethod
    def from_args(cls, args: Any, keys: ConfigKeyRegistry = DEFAULT_KEYS) -> "DeviceSettings":
        limits: List[ConfigOption] = []
        for flag, key in LIMIT_FLAGS:
            raw = getattr(args, flag, None)
            if raw is not None:
                limits.append(ConfigOption(key, key.parse_value(str(raw))))
        return cls(
            channels=parse_channel_selection(getattr(args, "channels", None)),
            limits=tuple(limits),
            options=tuple(keys.parse_options(getattr(args, "config", None))),
            set_only=bool(getattr(args, "set", False)),
            channel_group=getattr(args, "channel_group", None),
        )


class DeviceConfigurator:
    """Applies channel selection, limits and free-form options, in that order."""

    def __init__(self, settings: DeviceSettings) -> None:
        self._settings = settings

    @property
    def settings(self) -> DeviceSettings:
        return self._settings

    def apply(self, device: Device, *, hardware: bool = True) -> None:
        """Configure *device*; limits and options only apply to hardware devices."""

        settings = self._settings
        if settings.channel_group:
            logger.info("Channel group '%s' requested; channel groups are not used", settings.channel_group)
        if settings.channels is not None:
            self.select_channels(device, settings.channels)
        if not hardware:
            if settings.limits or settings.options:
                logger.info("Ignoring limits and --config options for file input")
            return
        self.apply_options(device, settings.limits)
        # Options are applied after limits and win on conflict.
        self.apply_options(device, settings.options)

    @staticmethod
    def select_channels(device: Device, names: FrozenSet[str]) -> None:
        for channel in device.channels:
            channel.enabled = channel.name in names
        enabled = [channel.name for channel in device.channels if channel.enabled]
        logger.debug("Enabled channels: %s", ", ".join(enabled) or "<none>")

    @staticmethod
    def apply_options(device: Device, options: Sequence[ConfigOption]) -> None:
        for option in options:
            device.apply(option)


__all__ = ["DeviceConfigurator", "DeviceSettings", "LIMIT_FLAGS", "parse_channel_selection"]
