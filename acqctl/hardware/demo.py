"""Simulated logic/analog instrument used for bench runs and tests."""
from __future__ import annotations

import logging
import math
import random
import threading
import time
from typing import Any, Dict, List, Mapping, Optional

from ..keys import (
    AMPLITUDE,
    LIMIT_FRAMES,
    LIMIT_MSEC,
    LIMIT_SAMPLES,
    NUM_ANALOG_CHANNELS,
    NUM_LOGIC_CHANNELS,
    PATTERN,
    SAMPLERATE,
    ConfigKey,
)
from .. import packets
from .device import BaseDevice, ChannelType, DeviceInfo, FailureSink, PacketSink, build_channels

logger = logging.getLogger(__name__)

DRIVER_NAME = "demo"
DEFAULT_SAMPLERATE = 200_000
DEFAULT_LOGIC_CHANNELS = 8
DEFAULT_ANALOG_CHANNELS = 2
DEFAULT_FRAME_SAMPLES = 64
CHUNK_SAMPLES = 512
ANALOG_PERIOD = 32
LOGIC_PATTERNS = ("incremental", "square", "random", "all-low", "all-high")


class DemoDevice(BaseDevice):
    """In-memory pattern generator that acquires on a worker thread."""

    def __init__(self, num_logic: int = DEFAULT_LOGIC_CHANNELS, num_analog: int = DEFAULT_ANALOG_CHANNELS) -> None:
        channels = build_channels("D", num_logic, ChannelType.LOGIC)
        channels += build_channels("A", num_analog, ChannelType.ANALOG, start_index=num_logic)
        super().__init__(
            DeviceInfo(driver=DRIVER_NAME, model="Demo device"),
            channels,
            supported={
                SAMPLERATE: DEFAULT_SAMPLERATE,
                LIMIT_SAMPLES: 0,
                LIMIT_MSEC: 0,
                LIMIT_FRAMES: 0,
                PATTERN: LOGIC_PATTERNS[0],
                AMPLITUDE: 1.0,
            },
            allowed_values={PATTERN: LOGIC_PATTERNS},
        )
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._rng = random.Random(267)

    @property
    def unitsize(self) -> int:
        return max((len(self.logic_channels()) + 7) // 8, 1)

    def sample_budget(self) -> Optional[int]:
        """Samples to produce per frame, or ``None`` when no limit applies."""

        limits: List[int] = []
        samples = int(self.config_get(LIMIT_SAMPLES) or 0)
        msec = int(self.config_get(LIMIT_MSEC) or 0)
        if samples:
            limits.append(samples)
        if msec:
            limits.append(max(int(self.config_get(SAMPLERATE)) * msec // 1000, 1))
        if not limits:
            return DEFAULT_FRAME_SAMPLES if self.config_get(LIMIT_FRAMES) else None
        return min(limits)

    def start_acquisition(self, emit: PacketSink, fail: FailureSink) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, args=(emit, fail), name="demo-acquisition", daemon=True
        )
        self._thread.start()

    def stop_acquisition(self) -> None:
        self._stop.set()

    def close(self) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        super().close()

    def _run(self, emit: PacketSink, fail: FailureSink) -> None:
        try:
            samplerate = int(self.config_get(SAMPLERATE))
            emit(packets.header(samplerate))
            emit(packets.samplerate_meta(samplerate))
            frames = int(self.config_get(LIMIT_FRAMES) or 0)
            budget = self.sample_budget()
            if frames:
                for _ in range(frames):
                    if self._stop.is_set():
                        break
                    emit(packets.FRAME_BEGIN)
                    self._produce(emit, budget, samplerate)
                    emit(packets.FRAME_END)
            else:
                self._produce(emit, budget, samplerate)
            emit(packets.END)
        except Exception as exc:  # pylint: disable=broad-except
            fail(exc)

    def _produce(self, emit: PacketSink, budget: Optional[int], samplerate: int) -> None:
        sent = 0
        started = time.monotonic()
        while not self._stop.is_set():
            if budget is not None and sent >= budget:
                return
            if budget is None:
                due = int((time.monotonic() - started) * samplerate) - sent
                if due <= 0:
                    self._stop.wait(0.01)
                    continue
                count = min(due, CHUNK_SAMPLES)
            else:
                count = min(budget - sent, CHUNK_SAMPLES)
            emit(packets.logic(self._logic_chunk(sent, count), self.unitsize))
            analog_channels = [ch for ch in self.analog_channels() if ch.enabled]
            if analog_channels:
                emit(self._analog_chunk(analog_channels, sent, count))
            sent += count

    def _logic_chunk(self, offset: int, count: int) -> bytes:
        pattern = self.config_get(PATTERN)
        size = self.unitsize
        mask = (1 << len(self.logic_channels())) - 1
        data = bytearray()
        for position in range(offset, offset + count):
            if pattern == "incremental":
                value = position & mask
            elif pattern == "square":
                value = mask if position % 2 else 0
            elif pattern == "random":
                value = self._rng.getrandbits(size * 8) & mask
            elif pattern == "all-high":
                value = mask
            else:
                value = 0
            data += value.to_bytes(size, "little")
        return bytes(data)

    def _analog_chunk(self, channels, offset: int, count: int) -> packets.Packet:
        amplitude = float(self.config_get(AMPLITUDE))
        series = []
        for number, _channel in enumerate(channels):
            phase = number * math.pi / 2
            series.append(
                [
                    amplitude * math.sin(2 * math.pi * (position % ANALOG_PERIOD) / ANALOG_PERIOD + phase)
                    for position in range(offset, offset + count)
                ]
            )
        return packets.analog([ch.name for ch in channels], series, unit="V")


class DemoDriver:
    """Driver that always discovers exactly one :class:`DemoDevice`."""

    name = DRIVER_NAME
    longname = "Demo driver and pattern generator"

    def scan(self, options: Optional[Mapping[ConfigKey, Any]] = None) -> List[DemoDevice]:
        options = dict(options or {})
        num_logic = int(options.get(NUM_LOGIC_CHANNELS, DEFAULT_LOGIC_CHANNELS))
        num_analog = int(options.get(NUM_ANALOG_CHANNELS, DEFAULT_ANALOG_CHANNELS))
        device = DemoDevice(num_logic=num_logic, num_analog=num_analog)
        scan_time: Dict[ConfigKey, Any] = {
            key: value for key, value in options.items() if key not in (NUM_LOGIC_CHANNELS, NUM_ANALOG_CHANNELS)
        }
        for key, value in scan_time.items():
            device.config_set(key, value)
        logger.debug("demo scan found 1 device (%d logic, %d analog)", num_logic, num_analog)
        return [device]


__all__ = ["DemoDevice", "DemoDriver", "LOGIC_PATTERNS"]
