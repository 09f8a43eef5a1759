"""Name-keyed registry of hardware drivers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from ..errors import DriverNotFound
from ..keys import ConfigKey
from .demo import DemoDriver
from .device import Device

logger = logging.getLogger(__name__)


class Driver(Protocol):
    """Collaborator able to discover device instances."""

    name: str
    longname: str

    def scan(self, options: Optional[Mapping[ConfigKey, Any]] = None) -> List[Device]:  # pragma: no cover
        ...


class DriverRegistry:
    """Container that maps driver names to drivers in registration order."""

    def __init__(self, drivers: Optional[Iterable[Driver]] = None) -> None:
        self._drivers: Dict[str, Driver] = {}
        for driver in drivers or ():
            self.register(driver)

    def register(self, driver: Driver) -> None:
        self._drivers[driver.name.lower()] = driver

    def get(self, name: str) -> Optional[Driver]:
        return self._drivers.get(name.strip().lower())

    def resolve(self, name: str) -> Driver:
        driver = self.get(name)
        if driver is None:
            raise DriverNotFound(name, self._drivers)
        return driver

    def items(self) -> List[Tuple[str, Driver]]:
        return list(self._drivers.items())


def default_drivers() -> DriverRegistry:
    """Return a registry populated with the built-in drivers."""

    return DriverRegistry([DemoDriver()])


__all__ = ["Driver", "DriverRegistry", "default_drivers"]
