"""Configuration management for the acquisition controller."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import DEFAULT_LINE_WIDTH, DEFAULT_LOGLEVEL, DEFAULT_OUTPUT_FORMAT, DEFAULT_QUEUE_SIZE, LOGLEVELS
from .inputs.base import DEFAULT_CHUNK_SIZE


def _coerce_int(value: Any, default: int, minimum: int) -> int:
    try:
        candidate = int(value)
    except (TypeError, ValueError):
        return default
    return max(candidate, minimum)


@dataclass(slots=True)
class OutputConfig:
    """Defaults for the output formatter."""

    default_format: str = DEFAULT_OUTPUT_FORMAT
    bits_width: int = DEFAULT_LINE_WIDTH
    hex_width: int = DEFAULT_LINE_WIDTH
    csv_separator: str = ","

    def __post_init__(self) -> None:
        self.default_format = (self.default_format or DEFAULT_OUTPUT_FORMAT).strip().lower()
        self.bits_width = _coerce_int(self.bits_width, DEFAULT_LINE_WIDTH, 1)
        self.hex_width = _coerce_int(self.hex_width, DEFAULT_LINE_WIDTH, 1)
        if not self.csv_separator:
            self.csv_separator = ","

    def format_options(self, name: str) -> Dict[str, str]:
        """Return file-level defaults for the formatter called *name*."""

        if name == "bits":
            return {"width": str(self.bits_width)}
        if name == "hex":
            return {"width": str(self.hex_width)}
        if name == "csv":
            return {"separator": self.csv_separator}
        return {}


@dataclass(slots=True)
class InputConfig:
    """File replay behaviour."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    try_session_first: bool = True

    def __post_init__(self) -> None:
        self.chunk_size = _coerce_int(self.chunk_size, DEFAULT_CHUNK_SIZE, 1)


@dataclass(slots=True)
class CaptureConfig:
    '''Runtime behaviour of live capture.'''

    default_loglevel: int = DEFAULT_LOGLEVEL
    queue_size: int = DEFAULT_QUEUE_SIZE

    def __post_init__(self) -> None:
        level = _coerce_int(self.default_loglevel, DEFAULT_LOGLEVEL, 0)
        self.default_loglevel = min(level, max(LOGLEVELS))
        self.queue_size = _coerce_int(self.queue_size, DEFAULT_QUEUE_SIZE, 1)


@dataclass(slots=True)
class AppConfig:
    """Top-level application configuration bundle."""

    output: OutputConfig = field(default_factory=OutputConfig)
    input: InputConfig = field(default_factory=InputConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        """Create a configuration instance from a nested dictionary."""

        def _section(name: str, factory: Any) -> Any:
            data = payload.get(name, {}) if payload else {}
            if isinstance(data, dict):
                return factory(**data)
            raise TypeError(f"Expected mapping for section '{name}', got {type(data).__name__}")

        return cls(
            output=_section("output", OutputConfig),
            input=_section("input", InputConfig),
            capture=_section("capture", CaptureConfig),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return a serialisable representation of the configuration."""

        def _asdict(obj: Any) -> Dict[str, Any]:
            return {field: getattr(obj, field) for field in obj.__dataclass_fields__}  # type: ignore[attr-defined]

        return {
            'output': _asdict(self.output),
            'input': _asdict(self.input),
            'capture': _asdict(self.capture),
        }


def load_config(path: Optional[Path]) -> AppConfig:
    """Load configuration from *path* if provided, otherwise return defaults."""

    if path is None:
        return AppConfig()
    resolved = path.expanduser()
    if not resolved.exists():
        return AppConfig()
    payload: Dict[str, Any]
    suffix = resolved.suffix.lower()
    if suffix in {".json", ".jsn"}:
        payload = _load_json(resolved)
    elif suffix in {".toml", ".tml"}:
        payload = _load_toml(resolved)
    elif suffix in {".yaml", ".yml"}:
        payload = _load_yaml(resolved)
    else:
        raise ValueError(f"Unsupported configuration format: {resolved.suffix}")
    return AppConfig.from_dict(payload)


def _load_json(path: Path) -> Dict[str, Any]:
    import json

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _load_toml(path: Path) -> Dict[str, Any]:
    import tomllib

    with path.open("rb") as handle:
        return tomllib.load(handle)


def _load_yaml(path: Path) -> Dict[str, Any]:
    import yaml

    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}
