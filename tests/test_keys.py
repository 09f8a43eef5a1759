from __future__ import annotations

import pytest

from acqctl.errors import InvalidConfigValue, UnknownConfigKey
from acqctl.keys import (
    CONTINUOUS,
    DEFAULT_KEYS,
    LIMIT_SAMPLES,
    NUM_LOGIC_CHANNELS,
    SAMPLERATE,
    parse_driver_spec,
    split_pair,
    split_spec,
)


def test_parse_pair_returns_typed_value() -> None:
    option = DEFAULT_KEYS.parse_pair("samplerate=1000000")

    assert option.key is SAMPLERATE
    assert option.value == 1_000_000


@pytest.mark.parametrize(
    "text, expected",
    [("1M", 1_000_000), ("250kHz", 250_000), ("2.5k", 2_500), ("100 Hz", 100)],
)
def test_samplerate_accepts_prefixes_and_unit(text: str, expected: int) -> None:
    assert SAMPLERATE.parse_value(text) == expected


def test_unknown_key_is_rejected_with_choices() -> None:
    with pytest.raises(UnknownConfigKey) as excinfo:
        DEFAULT_KEYS.parse_pair("bogus=1")

    assert excinfo.value.name == "bogus"
    assert "samplerate" in str(excinfo.value)


def test_non_numeric_value_is_rejected() -> None:
    with pytest.raises(InvalidConfigValue) as excinfo:
        DEFAULT_KEYS.parse_pair("samplerate=abc")

    assert excinfo.value.key == "samplerate"
    assert "abc" in str(excinfo.value)


def test_unit_is_only_accepted_for_keys_that_declare_it() -> None:
    with pytest.raises(InvalidConfigValue):
        LIMIT_SAMPLES.parse_value("10Hz")
    with pytest.raises(InvalidConfigValue):
        LIMIT_SAMPLES.parse_value("1.5")


def test_bool_key_treats_missing_value_as_true() -> None:
    assert DEFAULT_KEYS.parse_pair("continuous").value is True
    assert CONTINUOUS.parse_value("off") is False
    with pytest.raises(InvalidConfigValue):
        CONTINUOUS.parse_value("maybe")


def test_parse_options_preserves_order_and_skips_empty_segments() -> None:
    options = DEFAULT_KEYS.parse_options("limit_samples=5::samplerate=1k:")

    assert [option.name for option in options] == ["limit_samples", "samplerate"]
    assert [option.value for option in options] == [5, 1000]
    assert DEFAULT_KEYS.parse_options(None) == []


def test_split_pair_uses_first_equals_sign() -> None:
    assert split_pair("conn=tcp/host=a") == ("conn", "tcp/host=a")
    assert split_pair("continuous") == ("continuous", "")


def test_split_spec_separates_name_and_raw_options() -> None:
    assert split_spec("bits:width=32") == ("bits", {"width": "32"})
    assert split_spec("hex") == ("hex", {})


def test_parse_driver_spec_with_scan_options() -> None:
    spec = parse_driver_spec("demo:num_logic_channels=4:conn=usb")

    assert spec.name == "demo"
    assert spec.scan_options[NUM_LOGIC_CHANNELS] == 4
    assert [option.name for option in spec.options] == ["num_logic_channels", "conn"]


def test_parse_driver_spec_rejects_unknown_key_and_empty_name() -> None:
    with pytest.raises(UnknownConfigKey):
        parse_driver_spec("demo:frobnicate=1")
    with pytest.raises(InvalidConfigValue):
        parse_driver_spec(":samplerate=1")


def test_large_integers_are_parsed_exactly() -> None:
    option = DEFAULT_KEYS.parse_pair("limit_samples=9007199254740993")

    assert option.value == 9_007_199_254_740_993
    assert LIMIT_SAMPLES.parse_value("18446744073709551615") == 2**64 - 1
    assert SAMPLERATE.parse_value("1.000000001G") == 1_000_000_001


@pytest.mark.parametrize("text", ["18446744073709551616", "18446744073709552k", "1.5"])
def test_out_of_range_or_fractional_sizes_are_rejected(text: str) -> None:
    with pytest.raises(InvalidConfigValue):
        DEFAULT_KEYS.parse_pair(f"limit_samples={text}")
