"""
Utility functions for the FDC SDK.
"""
from typing import Union

from .exceptions import InvalidRequest

# Attestation type and source id tags are bytes32 values
TAG_WIDTH_BYTES = 32


def to_utf8_hex_string(value: str) -> str:
    """
    Encode a tag as a 0x-prefixed, right-padded bytes32 hex string.

    Args:
        value: Tag such as "EVMTransaction" or "testETH"

    Returns:
        Hex string with exactly 64 hex digits after the prefix

    Raises:
        InvalidRequest: If the UTF-8 encoding is longer than 32 bytes
    """
    raw = value.encode("utf-8")
    if len(raw) > TAG_WIDTH_BYTES:
        raise InvalidRequest(
            f"Tag '{value}' is {len(raw)} bytes long, maximum is {TAG_WIDTH_BYTES}"
        )
    return "0x" + raw.hex().ljust(TAG_WIDTH_BYTES * 2, "0")


def from_utf8_hex_string(value: Union[str, bytes]) -> str:
    """Decode a padded bytes32 tag back into its string form."""
    raw = hex_to_bytes(value) if isinstance(value, str) else value
    return raw.rstrip(b"\x00").decode("utf-8")


def hex_to_bytes(value: Union[str, bytes]) -> bytes:
    """
    Convert a hex string (with or without 0x prefix) to bytes.

    Raises:
        ValueError: If the string is not valid hex
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)


def bytes_to_hex(value: Union[str, bytes]) -> str:
    """Convert bytes to a 0x-prefixed lowercase hex string."""
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return "0x" + bytes(value).hex()


def is_hex_string(value: object) -> bool:
    if not isinstance(value, str) or not value.startswith("0x"):
        return False
    try:
        bytes.fromhex(value[2:])
    except ValueError:
        return False
    return True
