from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Iterator, List

import pytest

from acqctl.errors import DeviceRuntimeError, NoMatchingInputFormat, SessionLoadError, UnknownInputFormat
from acqctl.inputs import InputFileDevice, InputFormatRegistry, default_input_formats, load_session
from acqctl.inputs.formats import BinaryFormat, CsvFormat, VcdDecoder, VcdFormat
from acqctl.packets import Packet, PacketType

VCD_TEXT = """$date today $end
$timescale 1 us $end
$scope module top $end
$var wire 1 ! clk $end
$var wire 1 " data $end
$upscope $end
$enddefinitions $end
#0
0!
1"
#1
1!
#2
0!
0"
"""


def _collect(device: InputFileDevice) -> List[Packet]:
    received: List[Packet] = []
    device.start_acquisition(received.append, lambda exc: None)
    device.load()
    return received


def _samples(received: List[Packet]) -> List[int]:
    return [sample for packet in received if packet.type is PacketType.LOGIC for sample in packet.samples()]


def _write_session(path: Path, *, version: str = "2", members=None, metadata: str | None = None) -> Path:
    if metadata is None:
        metadata = (
            "[global]\nsigrok version=0.2.0\n\n"
            "[device 1]\ncapturefile=logic-1\ntotal probes=3\nsamplerate=1 MHz\n"
            "probe1=CLK\nprobe2=MOSI\nprobe3=CS\nunitsize=1\n"
        )
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("version", version)
        archive.writestr("metadata", metadata)
        for name, data in (members or {"logic-1-1": b"\x01\x02", "logic-1-2": b"\x04"}).items():
            archive.writestr(name, data)
    return path


def test_csv_with_header_row(tmp_path: Path) -> None:
    path = tmp_path / "capture.csv"
    path.write_text("# exported\nclk,data\n0,1\n1,1\n1,0\n", encoding="utf-8")

    device = CsvFormat().open(path, chunk_size=4)
    assert device.prime() is True
    received = _collect(device)

    assert [channel.name for channel in device.channels] == ["clk", "data"]
    assert _samples(received) == [0b10, 0b11, 0b01]
    assert received[0].type is PacketType.HEADER
    assert received[-1].type is PacketType.END


def test_csv_header_survives_multibyte_split_across_chunks(tmp_path: Path) -> None:
    path = tmp_path / "accents.csv"
    path.write_text("témp,x\n1,0\n0,1\n", encoding="utf-8")

    device = CsvFormat().open(path, chunk_size=2)
    assert device.prime() is True
    received = _collect(device)

    assert [channel.name for channel in device.channels] == ["témp", "x"]
    assert _samples(received) == [0b01, 0b10]


def test_csv_rejects_malformed_rows(tmp_path: Path) -> None:
    path = tmp_path / "broken.csv"
    path.write_text("0,1\n0,1,1\n", encoding="utf-8")

    device = CsvFormat().open(path, chunk_size=4)
    device.prime()
    with pytest.raises(DeviceRuntimeError, match="line 2"):
        _collect(device)


def test_vcd_decodes_value_changes_per_timestamp(tmp_path: Path) -> None:
    path = tmp_path / "capture.vcd"
    path.write_text(VCD_TEXT, encoding="ascii")

    device = VcdFormat().open(path, chunk_size=7)
    assert device.prime() is True
    received = _collect(device)

    assert [channel.name for channel in device.channels] == ["clk", "data"]
    assert _samples(received) == [0b10, 0b11, 0b00]
    assert received[0].samplerate == 1_000_000


def test_priming_stops_reading_once_channels_are_known() -> None:
    header = VCD_TEXT.split("#0")[0].encode("ascii")
    body = b"#0\n1!\n#5\n0!\n"
    reads: List[bytes] = []

    def chunks() -> Iterator[bytes]:
        for chunk in (header, body[:6], body[6:]):
            reads.append(chunk)
            yield chunk

    device = InputFileDevice("memory", VcdDecoder(), chunks(), "vcd")

    assert device.prime() is True
    assert reads == [header]
    received = _collect(device)
    assert len(reads) == 3
    assert _samples(received) == [0b01, 0b00]


def test_binary_uses_numchannels_option(tmp_path: Path) -> None:
    path = tmp_path / "raw.bin"
    path.write_bytes(bytes([0x01, 0x00, 0xFF, 0x03, 0x07]))

    device = BinaryFormat().open(path, {"numchannels": "12"}, chunk_size=2)
    device.prime()
    received = _collect(device)

    assert len(device.channels) == 12
    assert _samples(received) == [0x0001, 0x03FF]


def test_match_picks_first_matching_format(tmp_path: Path) -> None:
    path = tmp_path / "capture.vcd"
    path.write_text(VCD_TEXT, encoding="ascii")
    calls: List[str] = []

    class Probe(VcdFormat):
        def __init__(self, name: str, result: bool) -> None:
            self.name = name
            self.result = result

        def matches(self, path: Path) -> bool:
            calls.append(self.name)
            return self.result

    registry = InputFormatRegistry([Probe("first", False), Probe("second", True), Probe("third", True)])

    assert registry.match(path).name == "second"
    assert registry.match(path).name == "second"
    assert calls == ["first", "second", "first", "second"]


def test_match_and_resolve_errors(tmp_path: Path) -> None:
    path = tmp_path / "unknown.dat"
    path.write_bytes(b"\x00\x01\x02")
    registry = default_input_formats()

    with pytest.raises(NoMatchingInputFormat):
        registry.match(path)
    with pytest.raises(UnknownInputFormat, match="Available input formats: binary, csv, vcd"):
        registry.resolve("wav")


def test_default_formats_detect_csv_and_vcd(tmp_path: Path) -> None:
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("a,b\n0,1\n", encoding="utf-8")
    vcd_path = tmp_path / "data.vcd"
    vcd_path.write_text(VCD_TEXT, encoding="ascii")
    registry = default_input_formats()

    assert registry.match(csv_path).name == "csv"
    assert registry.match(vcd_path).name == "vcd"


def test_load_session_concatenates_members(tmp_path: Path) -> None:
    path = _write_session(tmp_path / "saved.sr", members={"logic-1-2": b"\x04", "logic-1-1": b"\x01\x02"})

    device = load_session(path)
    assert device.prime() is True
    received = _collect(device)

    assert device.format_name == "session"
    assert [channel.name for channel in device.channels] == ["CLK", "MOSI", "CS"]
    assert _samples(received) == [1, 2, 4]
    assert received[0].samplerate == 1_000_000


def test_load_session_rejects_non_sessions(tmp_path: Path) -> None:
    plain = tmp_path / "plain.sr"
    plain.write_bytes(b"not a zip")

    with pytest.raises(SessionLoadError):
        load_session(plain)
    with pytest.raises(SessionLoadError, match="version"):
        load_session(_write_session(tmp_path / "old.sr", version="1"))
    with pytest.raises(SessionLoadError, match="device 1"):
        load_session(_write_session(tmp_path / "empty.sr", metadata="[global]\n"))
