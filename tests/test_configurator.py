from __future__ import annotations

from argparse import Namespace

import pytest

from acqctl.configurator import DeviceConfigurator, DeviceSettings, parse_channel_selection
from acqctl.errors import InvalidConfigValue
from acqctl.hardware.demo import DemoDevice
from acqctl.keys import LIMIT_MSEC, LIMIT_SAMPLES, PATTERN, SAMPLERATE


def _args(**overrides) -> Namespace:
    values = dict(channels=None, time=None, samples=None, frames=None, config=None, set=False, channel_group=None)
    values.update(overrides)
    return Namespace(**values)


def _enabled(device: DemoDevice) -> list[str]:
    return [channel.name for channel in device.channels if channel.enabled]


def test_channel_selection_enables_exactly_the_named_channels() -> None:
    device = DemoDevice(num_logic=4, num_analog=1)
    settings = DeviceSettings.from_args(_args(channels="D0,D2"))

    DeviceConfigurator(settings).apply(device)

    assert _enabled(device) == ["D0", "D2"]


def test_duplicate_channel_names_are_idempotent() -> None:
    device = DemoDevice(num_logic=4, num_analog=0)

    DeviceConfigurator(DeviceSettings.from_args(_args(channels="D0,D0,D3"))).apply(device)

    assert _enabled(device) == ["D0", "D3"]


def test_without_selection_all_channels_stay_enabled() -> None:
    device = DemoDevice(num_logic=2, num_analog=1)

    DeviceConfigurator(DeviceSettings.from_args(_args())).apply(device)

    assert _enabled(device) == ["D0", "D1", "A0"]


def test_parse_channel_selection_strips_blanks() -> None:
    assert parse_channel_selection(" D0, ,D1 ") == frozenset({"D0", "D1"})
    assert parse_channel_selection(None) is None


def test_config_options_override_limit_flags() -> None:
    device = DemoDevice()
    settings = DeviceSettings.from_args(_args(samples="100", config="limit_samples=10:samplerate=1M"))

    DeviceConfigurator(settings).apply(device)

    assert device.config_get(LIMIT_SAMPLES) == 10
    assert device.config_get(SAMPLERATE) == 1_000_000


def test_time_limit_maps_to_limit_msec() -> None:
    device = DemoDevice()

    DeviceConfigurator(DeviceSettings.from_args(_args(time="250"))).apply(device)

    assert device.config_get(LIMIT_MSEC) == 250


def test_limits_and_options_are_skipped_for_file_devices() -> None:
    device = DemoDevice(num_logic=2, num_analog=0)
    settings = DeviceSettings.from_args(_args(channels="D1", samples="5", config="pattern=square"))

    DeviceConfigurator(settings).apply(device, hardware=False)

    assert _enabled(device) == ["D1"]
    assert device.config_get(LIMIT_SAMPLES) == 0
    assert device.config_get(PATTERN) == "incremental"


def test_device_refuses_unsupported_key_and_disallowed_value() -> None:
    device = DemoDevice()

    with pytest.raises(InvalidConfigValue, match="not supported by demo device"):
        DeviceConfigurator(DeviceSettings.from_args(_args(config="averaging=1"))).apply(device)
    with pytest.raises(InvalidConfigValue, match="expected one of"):
        DeviceConfigurator(DeviceSettings.from_args(_args(config="pattern=sawtooth"))).apply(device)


def test_settings_are_parsed_before_any_device_is_touched() -> None:
    with pytest.raises(InvalidConfigValue):
        DeviceSettings.from_args(_args(samples="lots"))
    settings = DeviceSettings.from_args(_args(set=True, channel_group="probe-a"))
    assert settings.set_only is True
    assert settings.channel_group == "probe-a"
