"""Capture session moving packets from devices to registered callbacks."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from queue import Empty, Full, Queue
from typing import Callable, List, Set

from .constants import DEFAULT_QUEUE_SIZE
from .errors import DeviceRuntimeError
from .hardware.device import Device
from .packets import Packet, PacketType

logger = logging.getLogger(__name__)

DatafeedCallback = Callable[[Device, Packet], None]
POLL_INTERVAL_S = 0.1


@dataclass(slots=True)
class _Failure:
    device: Device
    error: BaseException


class Session:
    """Owns the devices of one run and delivers their packets in arrival order.

    Devices that acquire on their own thread push packets into a bounded queue
    which :meth:`run` drains on the calling thread; callbacks therefore always
    run on the thread that called :meth:`run`. In synchronous mode packets are
    dispatched as soon as the device produces them.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._devices: List[Device] = []
        self._callbacks: List[DatafeedCallback] = []
        self._queue: "Queue[object]" = Queue(maxsize=max(queue_size, 1))
        self._active: Set[int] = set()
        self._running = False
        self._stop_requested = threading.Event()
        self._lock = threading.Lock()
        self._synchronous = False
        self._draining = False

    def add_device(self, device: Device) -> None:
        self._devices.append(device)

    def add_callback(self, callback: DatafeedCallback) -> None:
        self._callbacks.append(callback)

    def start(self, synchronous: bool = False) -> None:
        if self._running:
            return
        self._synchronous = synchronous
        self._stop_requested.clear()
        self._running = True
        for device in self._devices:
            self._active.add(id(device))
            device.start_acquisition(self._emitter(device), self._failer(device))
        logger.debug("Session started with %d device(s)", len(self._devices))

    def run(self) -> None:
        """Block until every device has sent ``END``, or raise on a device failure."""

        if self._synchronous:
            return
        self._draining = True
        try:
            while self._active:
                try:
                    item = self._queue.get(timeout=POLL_INTERVAL_S)
                except Empty:
                    continue
                if isinstance(item, _Failure):
                    self._active.discard(id(item.device))
                    raise DeviceRuntimeError(f"{item.device.info.driver} device failed: {item.error}") from item.error
                device, packet = item  # type: ignore[misc]
                self.dispatch(device, packet)
        finally:
            self._draining = False

    def stop(self) -> bool:
        """Ask every device to stop; returns ``False`` when already stopped."""

        with self._lock:
            if not self._running:
                return False
            self._running = False
            self._stop_requested.set()
        for device in self._devices:
            device.stop_acquisition()
        logger.debug("Session stopped")
        return True

    def dispatch(self, device: Device, packet: Packet) -> None:
        if packet.type is PacketType.END:
            self._active.discard(id(device))
        for callback in self._callbacks:
            callback(device, packet)

    def _emitter(self, device: Device) -> Callable[[Packet], None]:
        if self._synchronous:
            return lambda packet: self.dispatch(device, packet)
        return lambda packet: self._put((device, packet))

    def _failer(self, device: Device) -> Callable[[BaseException], None]:
        def _fail(error: BaseException) -> None:
            if self._synchronous:
                raise DeviceRuntimeError(f"{device.info.driver} device failed: {error}") from error
            self._put(_Failure(device, error))

        return _fail

    def _put(self, item: object) -> None:
        while True:
            try:
                self._queue.put(item, timeout=POLL_INTERVAL_S)
                return
            except Full:
                # Nobody will drain the queue once stopped outside run().
                if self._stop_requested.is_set() and (not self._active or not self._draining):
                    return


__all__ = ["DatafeedCallback", "Session"]
