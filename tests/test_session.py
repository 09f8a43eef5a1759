from __future__ import annotations

import threading
from typing import List

import pytest

from acqctl import packets
from acqctl.errors import DeviceRuntimeError
from acqctl.hardware.demo import DemoDevice
from acqctl.hardware.device import BaseDevice, DeviceInfo
from acqctl.keys import LIMIT_FRAMES, LIMIT_SAMPLES
from acqctl.packets import PacketType
from acqctl.session import Session


class FailingDevice(BaseDevice):
    def __init__(self) -> None:
        super().__init__(DeviceInfo(driver="broken"), [])
        self.stop_calls = 0

    def start_acquisition(self, emit, fail) -> None:
        def _worker() -> None:
            emit(packets.header())
            fail(IOError("usb transfer failed"))

        threading.Thread(target=_worker, daemon=True).start()

    def stop_acquisition(self) -> None:
        self.stop_calls += 1


def _run(device, queue_size: int = 64) -> List[packets.Packet]:
    received: List[packets.Packet] = []
    session = Session(queue_size=queue_size)
    session.add_device(device)
    session.add_callback(lambda _device, packet: received.append(packet))
    session.start()
    try:
        session.run()
    finally:
        session.stop()
        device.close()
    return received


def test_run_delivers_packets_in_order_until_end() -> None:
    device = DemoDevice(num_logic=8, num_analog=0)
    device.config_set(LIMIT_SAMPLES, 1500)

    received = _run(device, queue_size=1)

    assert received[0].type is PacketType.HEADER
    assert received[1].type is PacketType.META
    assert received[-1].type is PacketType.END
    samples = [s for packet in received if packet.type is PacketType.LOGIC for s in packet.samples()]
    assert samples == [position & 0xFF for position in range(1500)]


def test_frames_are_wrapped_in_markers() -> None:
    device = DemoDevice(num_logic=4, num_analog=1)
    device.config_set(LIMIT_FRAMES, 2)

    received = _run(device)
    types = [packet.type for packet in received]

    assert types.count(PacketType.FRAME_BEGIN) == 2
    assert types.count(PacketType.FRAME_END) == 2
    assert PacketType.ANALOG in types
    logic = [packet for packet in received if packet.type is PacketType.LOGIC]
    assert sum(packet.num_samples for packet in logic) == 2 * 64


def test_device_failure_is_raised_from_run() -> None:
    device = FailingDevice()

    with pytest.raises(DeviceRuntimeError, match="usb transfer failed"):
        _run(device)
    assert device.stop_calls == 1


def test_stop_is_idempotent() -> None:
    session = Session()
    device = DemoDevice()
    session.add_device(device)

    assert session.stop() is False
    session.start()
    assert session.stop() is True
    assert session.stop() is False
    device.close()


def test_synchronous_mode_dispatches_immediately() -> None:
    received: List[packets.Packet] = []
    session = Session()
    session.add_callback(lambda _device, packet: received.append(packet))

    session.start(synchronous=True)
    session.dispatch(DemoDevice(), packets.END)
    session.run()

    assert received == [packets.END]
