"""Decide which acquisition source to construct and open it."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .config import InputConfig
from .errors import AcquisitionError, DeviceOpenFailed, SessionLoadError
from .hardware.device import Device
from .hardware.registry import DriverRegistry
from .inputs.base import InputFileDevice
from .inputs.registry import InputFormatRegistry
from .inputs.session import load_session
from .keys import DEFAULT_KEYS, ConfigKeyRegistry, DriverSpec, parse_driver_spec, split_spec
from .validation import Operation

logger = logging.getLogger(__name__)

SOURCE_STAGE = "source"
LEGACY_OUTPUT_STAGE = "legacy-output"
TEXT_SINK_STAGE = "text-sink"
DEFAULT_PIPELINE_STAGES = (SOURCE_STAGE, LEGACY_OUTPUT_STAGE, TEXT_SINK_STAGE)


@dataclass(frozen=True, slots=True)
class LiveDevice:
    driver: DriverSpec


@dataclass(frozen=True, slots=True)
class FileReplay:
    path: Path
    format_name: Optional[str] = None
    format_options: Tuple[Tuple[str, str], ...] = ()

    @property
    def options(self) -> Dict[str, str]:
        return dict(self.format_options)


@dataclass(frozen=True, slots=True)
class Pipeline:
    """A source wrapped in an ordered list of typed processing stages."""

    source: Union[LiveDevice, FileReplay]
    stages: Tuple[str, ...] = field(default=DEFAULT_PIPELINE_STAGES)


AcquisitionSpec = Union[LiveDevice, FileReplay, Pipeline]


def build_spec(args: Any, operation: Operation, keys: ConfigKeyRegistry = DEFAULT_KEYS) -> AcquisitionSpec:
    """Build the immutable acquisition description for a validated *args*."""

    source: Union[LiveDevice, FileReplay]
    if operation is Operation.REPLAY:
        format_name: Optional[str] = None
        format_options: Dict[str, str] = {}
        if getattr(args, "input_format", None):
            format_name, format_options = split_spec(args.input_format)
        source = FileReplay(Path(args.input_file), format_name, tuple(format_options.items()))
    elif operation in (Operation.CAPTURE, Operation.SCAN) and getattr(args, "driver", None):
        source = LiveDevice(parse_driver_spec(args.driver, keys))
    else:
        raise AcquisitionError(f"Operation '{operation.value}' does not acquire data")
    if getattr(args, "pipeline", False) and operation is not Operation.SCAN:
        return Pipeline(source)
    return source


class SourceResolver:
    """Turns an :class:`AcquisitionSpec` into an opened device."""

    def __init__(
        self,
        drivers: DriverRegistry,
        input_formats: InputFormatRegistry,
        input_config: Optional[InputConfig] = None,
    ) -> None:
        self._drivers = drivers
        self._input_formats = input_formats
        self._input_config = input_config or InputConfig()

    def scan_all(self) -> List[Device]:
        """Run a scan without options on every registered driver."""

        found: List[Device] = []
        for name, driver in self._drivers.items():
            devices = driver.scan({})
            logger.info("Driver '%s' found %d device(s)", name, len(devices))
            found.extend(devices)
        return found

    def scan(self, spec: DriverSpec) -> List[Device]:
        driver = self._drivers.resolve(spec.name)
        devices = driver.scan(spec.scan_options)
        logger.info("Driver '%s' found %d device(s)", spec.name, len(devices))
        return devices

    def resolve(self, spec: AcquisitionSpec) -> Device:
        if isinstance(spec, Pipeline):
            return self.resolve(spec.source)
        if isinstance(spec, FileReplay):
            return self.open_file(spec)
        return self.open_device(spec)

    def open_device(self, spec: LiveDevice) -> Device:
        devices = self.scan(spec.driver)
        if not devices:
            raise DeviceOpenFailed(f"No devices found for driver '{spec.driver.name}'")
        device = devices[0]
        try:
            device.open()
        except AcquisitionError:
            raise
        except Exception as exc:
            raise DeviceOpenFailed(f"Failed to open {spec.driver.name} device: {exc}") from exc
        return device

    def open_file(self, spec: FileReplay) -> InputFileDevice:
        path = spec.path.expanduser()
        if not path.is_file():
            raise DeviceOpenFailed(f"Input file '{path}' not found")
        chunk_size = self._input_config.chunk_size
        try:
            device = self._open_reader(path, spec, chunk_size)
        except OSError as exc:
            raise DeviceOpenFailed(f"Failed to read input file '{path}': {exc}") from exc
        try:
            ready = device.prime()
        except Exception:
            device.close()
            raise
        if not ready:
            device.close()
            raise DeviceOpenFailed(f"Could not determine channels of '{path}' as {device.format_name}")
        device.open()
        return device

    def _open_reader(self, path: Path, spec: FileReplay, chunk_size: int) -> InputFileDevice:
        if spec.format_name:
            input_format = self._input_formats.resolve(spec.format_name)
            return input_format.open(path, spec.options, chunk_size)
        if self._input_config.try_session_first:
            try:
                return load_session(path, chunk_size)
            except SessionLoadError as exc:
                logger.debug("Not a saved session, probing formats: %s", exc)
        input_format = self._input_formats.match(path)
        return input_format.open(path, spec.options, chunk_size)


__all__ = [
    "AcquisitionSpec",
    "DEFAULT_PIPELINE_STAGES",
    "FileReplay",
    "LiveDevice",
    "Pipeline",
    "SourceResolver",
    "build_spec",
]
