"""Command-line acquisition controller for instruments and capture files."""
from __future__ import annotations

from .config import AppConfig, load_config
from .constants import VERSION
from .errors import AcquisitionError
from .keys import DEFAULT_KEYS, ConfigKey, ConfigOption
from .packets import Packet, PacketType
from .resolver import FileReplay, LiveDevice, Pipeline, SourceResolver
from .session import Session
from .stream import CancellationToken, StreamDriver

__version__ = VERSION

__all__ = [
    "AcquisitionError",
    "AppConfig",
    "CancellationToken",
    "ConfigKey",
    "ConfigOption",
    "DEFAULT_KEYS",
    "FileReplay",
    "LiveDevice",
    "Packet",
    "PacketType",
    "Pipeline",
    "Session",
    "SourceResolver",
    "StreamDriver",
    "__version__",
    "load_config",
]
