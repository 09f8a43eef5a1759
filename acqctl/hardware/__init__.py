"""Hardware abstraction helpers."""
from __future__ import annotations

from .demo import DemoDevice, DemoDriver
from .device import BaseDevice, Channel, ChannelType, Device, DeviceInfo, describe_device
from .registry import Driver, DriverRegistry, default_drivers

__all__ = [
    "BaseDevice",
    "Channel",
    "ChannelType",
    "DemoDevice",
    "DemoDriver",
    "Device",
    "DeviceInfo",
    "Driver",
    "DriverRegistry",
    "default_drivers",
    "describe_device",
]
