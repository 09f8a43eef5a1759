from __future__ import annotations

from acqctl.hardware import DemoDriver, default_drivers, describe_device
from acqctl.keys import AMPLITUDE, LIMIT_MSEC, LIMIT_SAMPLES, NUM_ANALOG_CHANNELS, NUM_LOGIC_CHANNELS, PATTERN, SAMPLERATE


def test_scan_builds_device_from_options() -> None:
    devices = DemoDriver().scan({NUM_LOGIC_CHANNELS: 3, NUM_ANALOG_CHANNELS: 0, SAMPLERATE: 5000})

    assert len(devices) == 1
    device = devices[0]
    assert [channel.name for channel in device.channels] == ["D0", "D1", "D2"]
    assert device.config_get(SAMPLERATE) == 5000


def test_describe_device_summary_line() -> None:
    device = DemoDriver().scan({NUM_LOGIC_CHANNELS: 2, NUM_ANALOG_CHANNELS: 1})[0]

    assert describe_device(device) == "demo - Demo device with 3 channels: D0 D1 A0"


def test_sample_budget_uses_smallest_limit() -> None:
    device = DemoDriver().scan()[0]
    assert device.sample_budget() is None

    device.config_set(SAMPLERATE, 1000)
    device.config_set(LIMIT_MSEC, 50)
    device.config_set(LIMIT_SAMPLES, 100)
    assert device.sample_budget() == 50


def test_string_values_are_parsed_and_patterns_render() -> None:
    device = DemoDriver().scan({NUM_LOGIC_CHANNELS: 4})[0]
    device.config_set(AMPLITUDE, "2.5")
    device.config_set(PATTERN, "all-high")

    assert device.config_get(AMPLITUDE) == 2.5
    assert device._logic_chunk(0, 2) == bytes([0x0F, 0x0F])


def test_default_registry_lists_demo_driver() -> None:
    registry = default_drivers()

    assert [name for name, _ in registry.items()] == ["demo"]
    assert registry.resolve("DEMO").longname == "Demo driver and pattern generator"
