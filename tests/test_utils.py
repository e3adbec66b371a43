"""
Tests for utility functions.
"""
import pytest

from fdc_sdk.exceptions import InvalidRequest
from fdc_sdk.utils import (
    to_utf8_hex_string, from_utf8_hex_string, hex_to_bytes, bytes_to_hex, is_hex_string
)


def test_tag_encoding_is_right_padded():
    tag = to_utf8_hex_string("testBTC")
    assert tag == "0x" + "74657374425443" + "0" * 50
    assert len(tag) == 66


def test_tag_encoding_known_value():
    assert to_utf8_hex_string("EVMTransaction") == (
        "0x45564d5472616e73616374696f6e000000000000000000000000000000000000"
    )


def test_tag_of_exactly_32_bytes():
    tag = to_utf8_hex_string("x" * 32)
    assert tag == "0x" + "78" * 32


def test_tag_too_long():
    with pytest.raises(InvalidRequest, match="maximum is 32") as exc_info:
        to_utf8_hex_string("x" * 33)
    assert exc_info.value.stage == "build"


def test_tag_round_trip():
    assert from_utf8_hex_string(to_utf8_hex_string("PublicWeb2")) == "PublicWeb2"
    assert from_utf8_hex_string(hex_to_bytes(to_utf8_hex_string("testETH"))) == "testETH"


def test_hex_conversions():
    assert hex_to_bytes("0x0102") == b"\x01\x02"
    assert hex_to_bytes("0102") == b"\x01\x02"
    assert hex_to_bytes(b"\x01") == b"\x01"
    assert bytes_to_hex(b"\x01\x02") == "0x0102"
    assert bytes_to_hex("0102") == "0x0102"

    with pytest.raises(ValueError):
        hex_to_bytes("0xzz")


@pytest.mark.parametrize("value,expected", [
    ("0x", True),
    ("0xabcdef", True),
    ("abcdef", False),
    ("0xabc", False),
    ("0xgg", False),
    (None, False),
    (123, False),
])
def test_is_hex_string(value, expected):
    assert is_hex_string(value) is expected
