"""Command-line entry point for acquiring, replaying and formatting captured data."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

import yaml

from ..config import AppConfig, load_config
from ..configurator import DeviceConfigurator, DeviceSettings
from ..constants import EXIT_FAILURE, EXIT_OK, PROGRAM_NAME
from ..errors import AcquisitionError, UsageError
from ..hardware.registry import DriverRegistry, default_drivers
from ..inputs.base import InputFileDevice
from ..inputs.registry import InputFormatRegistry, default_input_formats
from ..keys import DEFAULT_KEYS, parse_driver_spec, split_spec
from ..outputs.registry import OutputFormatRegistry, default_output_formats
from ..resolver import Pipeline, SourceResolver, build_spec
from ..stream import StreamDriver
from ..validation import ArgumentValidator, Operation
from .common import configure_logging, print_devices, print_version

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description='Acquire data from a device or replay a capture file, printing it in a chosen output format.',
    )
    parser.add_argument('-V', '--version', action='store_true', help='Show version and supported drivers/formats.')
    parser.add_argument('-l', '--loglevel', type=int, help='Log verbosity 0 (none) to 5 (spew); default 2.')
    parser.add_argument('-d', '--driver', type=str, help='Driver to use, e.g. demo:num_logic_channels=4.')
    parser.add_argument('-c', '--config', type=str, help='Device settings as key=value[:key=value...].')
    parser.add_argument('-i', '--input-file', type=str, help='Load input from file.')
    parser.add_argument('-I', '--input-format', type=str, help='Input format, optionally name:key=value...')
    parser.add_argument('-O', '--output-format', type=str, help='Output format, optionally name:key=value...')
    parser.add_argument('-p', '--channels', type=str, help='Comma-separated list of channels to enable.')
    parser.add_argument('-g', '--channel-group', type=str, help='Channel group (accepted, not used).')
    parser.add_argument('--scan', action='store_true', help='Scan for devices and list them.')
    parser.add_argument('--time', type=str, help='How long to sample, in milliseconds.')
    parser.add_argument('--samples', type=str, help='Number of samples to acquire.')
    parser.add_argument('--frames', type=str, help='Number of frames to acquire.')
    parser.add_argument('--continuous', action='store_true', help='Sample until interrupted with Ctrl-C.')
    parser.add_argument('--set', action='store_true', help='Apply device settings and exit without capturing.')
    parser.add_argument('--pipeline', action='store_true', help='Run the capture through the stage pipeline.')
    parser.add_argument('--settings', type=str, help='Application defaults file (.toml, .json or .yaml).')
    return parser


def _load_settings(args: argparse.Namespace) -> AppConfig:
    path = Path(args.settings) if args.settings else None
    return load_config(path)


def run(
    args: argparse.Namespace,
    operation: Operation,
    config: AppConfig,
    out: TextIO,
    *,
    drivers: DriverRegistry,
    input_formats: InputFormatRegistry,
    output_formats: OutputFormatRegistry,
) -> int:
    """Execute a validated *operation*; errors propagate as :class:`AcquisitionError`."""

    if operation is Operation.VERSION:
        print_version(out, drivers, input_formats, output_formats)
        return EXIT_OK

    resolver = SourceResolver(drivers, input_formats, config.input)
    if operation is Operation.SCAN:
        if args.driver:
            devices = resolver.scan(parse_driver_spec(args.driver, DEFAULT_KEYS))
        else:
            devices = resolver.scan_all()
        if not print_devices(out, devices):
            logger.warning('No devices found')
        return EXIT_OK

    settings = DeviceSettings.from_args(args, DEFAULT_KEYS)
    format_name, format_options = split_spec(args.output_format or config.output.default_format)
    output_format = output_formats.resolve(format_name)
    formatter_options = {**config.output.format_options(output_format.name), **format_options}
    spec = build_spec(args, operation, DEFAULT_KEYS)

    device = resolver.resolve(spec)
    try:
        DeviceConfigurator(settings).apply(device, hardware=not isinstance(device, InputFileDevice))
        if settings.set_only:
            logger.info('Settings applied; closing device without capturing')
            device.close()
            return EXIT_OK
        formatter = output_format.create(device, formatter_options)
    except Exception:
        device.close()
        raise

    driver = StreamDriver(
        device,
        formatter,
        out,
        continuous=bool(args.continuous),
        queue_size=config.capture.queue_size,
    )
    driver.run(stages=spec.stages if isinstance(spec, Pipeline) else None)
    return EXIT_OK


def main(
    argv: list[str] | None = None,
    *,
    stdout: Optional[TextIO] = None,
    drivers: Optional[DriverRegistry] = None,
    input_formats: Optional[InputFormatRegistry] = None,
    output_formats: Optional[OutputFormatRegistry] = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    out = stdout or sys.stdout

    try:
        operation = ArgumentValidator().validate(args)
    except UsageError:
        parser.print_help(file=out)
        return EXIT_FAILURE

    try:
        config = _load_settings(args)
    except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        print(f'Error: failed to load settings: {exc}', file=sys.stderr)
        return EXIT_FAILURE

    configure_logging(args.loglevel if args.loglevel is not None else config.capture.default_loglevel)

    try:
        return run(
            args,
            operation,
            config,
            out,
            drivers=drivers if drivers is not None else default_drivers(),
            input_formats=input_formats if input_formats is not None else default_input_formats(),
            output_formats=output_formats if output_formats is not None else default_output_formats(),
        )
    except AcquisitionError as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return EXIT_FAILURE


if __name__ == '__main__':
    raise SystemExit(main(sys.argv[1:]))
