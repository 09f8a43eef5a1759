from __future__ import annotations

import io
import signal
import threading
from pathlib import Path

import pytest

from acqctl import packets
from acqctl.errors import DeviceRuntimeError
from acqctl.hardware.demo import DemoDevice
from acqctl.hardware.device import BaseDevice, DeviceInfo
from acqctl.inputs.formats import CsvFormat
from acqctl.keys import LIMIT_SAMPLES
from acqctl.outputs import default_output_formats
from acqctl.resolver import DEFAULT_PIPELINE_STAGES
from acqctl.stream import CancellationToken, StreamDriver, interrupt_handler


class FailingDevice(BaseDevice):
    def __init__(self) -> None:
        super().__init__(DeviceInfo(driver="broken"), [])
        self.closed = False

    def start_acquisition(self, emit, fail) -> None:
        threading.Thread(target=fail, args=(IOError("lost connection"),), daemon=True).start()

    def stop_acquisition(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True
        super().close()


def _csv_device(tmp_path: Path):
    path = tmp_path / "capture.csv"
    path.write_text("0,1\n1,1\n1,0\n", encoding="utf-8")
    device = CsvFormat().open(path)
    device.prime()
    device.open()
    return device


def _bits(device):
    return default_output_formats().resolve("bits").create(device)


def test_cancellation_token_fires_callback_once() -> None:
    calls = []
    token = CancellationToken()
    token.bind(lambda: calls.append("stop"))

    assert token.request() is True
    assert token.request() is False
    assert calls == ["stop"]
    assert token.requested is True


def test_bind_after_request_stops_immediately() -> None:
    calls = []
    token = CancellationToken()

    assert token.request() is True
    token.bind(lambda: calls.append("stop"))
    token.request()

    assert calls == ["stop"]


def test_two_interrupts_reach_stop_once() -> None:
    calls = []
    token = CancellationToken()
    token.bind(lambda: calls.append("stop"))
    previous = signal.getsignal(signal.SIGINT)

    with interrupt_handler(token):
        handler = signal.getsignal(signal.SIGINT)
        handler(signal.SIGINT, None)
        handler(signal.SIGINT, None)

    assert calls == ["stop"]
    assert signal.getsignal(signal.SIGINT) == previous


def test_file_replay_writes_formatted_text_and_closes(tmp_path: Path) -> None:
    device = _csv_device(tmp_path)
    out = io.StringIO()

    StreamDriver(device, _bits(device), out).run()

    assert out.getvalue() == "D0:011\nD1:110\n"
    assert device.is_open is False


def test_live_capture_stops_at_limit() -> None:
    device = DemoDevice(num_logic=2, num_analog=0)
    device.config_set(LIMIT_SAMPLES, 4)
    device.open()
    out = io.StringIO()

    StreamDriver(device, _bits(device), out).run()

    assert out.getvalue() == "D0:0101\nD1:0011\n"
    assert device.is_open is False


def test_continuous_capture_runs_until_cancelled() -> None:
    device = DemoDevice(num_logic=1, num_analog=0)
    device.open()
    out = io.StringIO()
    token = CancellationToken()
    timer = threading.Timer(0.2, token.request)

    driver = StreamDriver(device, _bits(device), out, continuous=True, token=token, handle_signals=False)
    timer.start()
    try:
        driver.run()
    finally:
        timer.cancel()

    assert token.requested is True
    assert out.getvalue().startswith("D0:")
    assert device.is_open is False


def test_device_is_closed_when_capture_fails() -> None:
    device = FailingDevice()
    device.open()

    with pytest.raises(DeviceRuntimeError, match="lost connection"):
        StreamDriver(device, _bits(device), io.StringIO()).run()
    assert device.closed is True


def test_pipeline_variant_matches_direct_replay(tmp_path: Path) -> None:
    device = _csv_device(tmp_path)
    out = io.StringIO()

    StreamDriver(device, _bits(device), out).run(stages=DEFAULT_PIPELINE_STAGES)

    assert out.getvalue() == "D0:011\nD1:110\n"
    assert device.is_open is False


def test_formatter_sees_every_packet_in_order() -> None:
    seen = []

    class Recorder:
        def receive(self, packet):
            seen.append(packet.type)
            return ""

    device = DemoDevice(num_logic=1, num_analog=0)
    device.config_set(LIMIT_SAMPLES, 1024)
    device.open()

    StreamDriver(device, Recorder(), io.StringIO()).run()

    assert seen[0] is packets.PacketType.HEADER
    assert seen[-1] is packets.PacketType.END
    assert seen.count(packets.PacketType.LOGIC) == 2
