"""Configuration keys and the ``name=value`` grammar used on the command line."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import InvalidConfigValue, UnknownConfigKey

PAIR_SEPARATOR = ":"
VALUE_SEPARATOR = "="
UINT64_LIMIT = 2**64

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kKmMgG]?)\s*([A-Za-z]*)\s*$")
_SIZE_MULTIPLIERS = {"": 1, "k": 1_000, "K": 1_000, "m": 1_000_000, "M": 1_000_000, "g": 1_000_000_000, "G": 1_000_000_000}
_TRUE_WORDS = {"", "1", "true", "yes", "on", "y"}
_FALSE_WORDS = {"0", "false", "no", "off", "n"}


class DataType(Enum):
    UINT64 = "uint64"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"
    ENUM = "enum"


@dataclass(frozen=True, slots=True)
class ConfigKey:
    """A named, typed setting that a device may accept."""

    name: str
    datatype: DataType
    description: str = ""
    unit: Optional[str] = None

    def parse_value(self, text: str) -> Any:
        """Parse *text* according to this key's declared type."""

        raw = text.strip()
        if self.datatype is DataType.UINT64:
            return self._parse_size(raw, text)
        if self.datatype is DataType.FLOAT:
            try:
                return float(raw)
            except ValueError:
                raise InvalidConfigValue(self.name, text, "expected a number") from None
        if self.datatype is DataType.BOOL:
            lowered = raw.lower()
            if lowered in _TRUE_WORDS:
                return True
            if lowered in _FALSE_WORDS:
                return False
            raise InvalidConfigValue(self.name, text, "expected a boolean")
        if not raw:
            raise InvalidConfigValue(self.name, text, "value must not be empty")
        return raw

    def _parse_size(self, raw: str, original: str) -> int:
        match = _SIZE_PATTERN.match(raw)
        if match is None:
            raise InvalidConfigValue(self.name, original, "expected an unsigned integer")
        number, prefix, unit = match.groups()
        if unit and (self.unit is None or unit.lower() != self.unit.lower()):
            raise InvalidConfigValue(self.name, original, f"unexpected unit '{unit}'")
        multiplier = _SIZE_MULTIPLIERS[prefix]
        if "." in number:
            scaled = Fraction(number) * multiplier
            if scaled.denominator != 1:
                raise InvalidConfigValue(self.name, original, "expected a whole number")
            value = scaled.numerator
        else:
            value = int(number) * multiplier
        if value >= UINT64_LIMIT:
            raise InvalidConfigValue(self.name, original, "value does not fit in 64 bits")
        return value


@dataclass(frozen=True, slots=True)
class ConfigOption:
    """A concrete (key, value) pair ready to be applied to a device."""

    key: ConfigKey
    value: Any

    @property
    def name(self) -> str:
        return self.key.name


SAMPLERATE = ConfigKey("samplerate", DataType.UINT64, "Sample rate", unit="Hz")
LIMIT_SAMPLES = ConfigKey("limit_samples", DataType.UINT64, "Sample limit")
LIMIT_MSEC = ConfigKey("limit_msec", DataType.UINT64, "Time limit (ms)")
LIMIT_FRAMES = ConfigKey("limit_frames", DataType.UINT64, "Frame limit")
PATTERN = ConfigKey("pattern", DataType.ENUM, "Pattern generator mode")
AMPLITUDE = ConfigKey("amplitude", DataType.FLOAT, "Analog amplitude")
NUM_LOGIC_CHANNELS = ConfigKey("num_logic_channels", DataType.UINT64, "Number of logic channels")
NUM_ANALOG_CHANNELS = ConfigKey("num_analog_channels", DataType.UINT64, "Number of analog channels")
CONTINUOUS = ConfigKey("continuous", DataType.BOOL, "Continuous sampling")
CONN = ConfigKey("conn", DataType.STRING, "Connection string")
AVERAGING = ConfigKey("averaging", DataType.BOOL, "Averaging")

BUILTIN_KEYS: Tuple[ConfigKey, ...] = (
    SAMPLERATE,
    LIMIT_SAMPLES,
    LIMIT_MSEC,
    LIMIT_FRAMES,
    PATTERN,
    AMPLITUDE,
    NUM_LOGIC_CHANNELS,
    NUM_ANALOG_CHANNELS,
    CONTINUOUS,
    CONN,
    AVERAGING,
)


class ConfigKeyRegistry:
    """Maps key names to :class:`ConfigKey` definitions."""

    def __init__(self, keys: Iterable[ConfigKey]) -> None:
        self._keys: Dict[str, ConfigKey] = {key.name: key for key in keys}

    def resolve(self, name: str) -> ConfigKey:
        key = self._keys.get(name.strip())
        if key is None:
            raise UnknownConfigKey(name, self._keys)
        return key

    def parse_pair(self, pair: str) -> ConfigOption:
        """Parse a single ``name=value`` string into a :class:`ConfigOption`."""

        name, value = split_pair(pair)
        key = self.resolve(name)
        return ConfigOption(key, key.parse_value(value))

    def parse_options(self, text: Optional[str]) -> List[ConfigOption]:
        """Parse a colon-separated list of pairs, preserving textual order."""

        return [self.parse_pair(pair) for pair in split_segments(text)]


DEFAULT_KEYS = ConfigKeyRegistry(BUILTIN_KEYS)


@dataclass(frozen=True, slots=True)
class DriverSpec:
    """Driver name plus the options to hand to its scan."""

    name: str
    options: Tuple[ConfigOption, ...] = field(default_factory=tuple)

    @property
    def scan_options(self) -> Dict[ConfigKey, Any]:
        # Later duplicates win, matching application order.
        return {option.key: option.value for option in self.options}


def split_segments(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [segment for segment in text.split(PAIR_SEPARATOR) if segment.strip()]


def split_pair(pair: str) -> Tuple[str, str]:
    """Split *pair* on its first ``=``; a missing ``=`` yields an empty value."""

    name, _, value = pair.partition(VALUE_SEPARATOR)
    return name.strip(), value


def split_spec(text: str) -> Tuple[str, Dict[str, str]]:
    """Split ``name[:key=value...]`` into the name and raw string options."""

    head, _, rest = text.partition(PAIR_SEPARATOR)
    options: Dict[str, str] = {}
    for segment in split_segments(rest):
        key, value = split_pair(segment)
        options[key] = value
    return head.strip(), options


def parse_options(text: Optional[str], registry: ConfigKeyRegistry = DEFAULT_KEYS) -> List[ConfigOption]:
    return registry.parse_options(text)


def parse_driver_spec(spec: str, registry: ConfigKeyRegistry = DEFAULT_KEYS) -> DriverSpec:
    """Parse ``driver[:key=value[:key=value...]]``."""

    name, _, rest = spec.partition(PAIR_SEPARATOR)
    name = name.strip()
    if not name:
        raise InvalidConfigValue("driver", spec, "driver name must not be empty")
    return DriverSpec(name=name, options=tuple(registry.parse_options(rest)))


__all__ = [
    "BUILTIN_KEYS",
    "ConfigKey",
    "ConfigKeyRegistry",
    "ConfigOption",
    "DataType",
    "DEFAULT_KEYS",
    "DriverSpec",
    "LIMIT_FRAMES",
    "LIMIT_MSEC",
    "LIMIT_SAMPLES",
    "SAMPLERATE",
    "parse_driver_spec",
    "parse_options",
    "split_pair",
    "split_spec",
]
