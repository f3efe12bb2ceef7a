"""Parsing utilities for common data transformations."""

from decimal import Decimal

from typing import Any

from eth_utils import decode_hex, encode_hex

GWEI = 10**9
"""Wei per Gwei"""

ETHER = 10**18
"""Wei per Ether"""


def parse_hex_int(hex_value: str | None, default: int = 0) -> int:
    """Parse hex string to integer.

    Args:
        hex_value: Hex-encoded string or None
        default: Default value if hex_value is None

    Returns:
        int: Parsed integer value

    Example:
        >>> parse_hex_int("0xff")
        255
        >>> parse_hex_int(None, 0)
        0
    """
    if hex_value is None:
        return default
    return int(hex_value, 16)


def parse_bytes(value: Any) -> bytes:
    """Normalise a JSON byte field to raw bytes.

    Accepts `0x`-prefixed hex, bare hex, a list of byte values, or bytes.
    None and the empty string give empty bytes.

    Raises:
        ValueError: If the value cannot be decoded.

    Example:
        >>> parse_bytes("0x0102")
        b'\\x01\\x02'
        >>> parse_bytes([1, 2])
        b'\\x01\\x02'
    """
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        if value in {"", "0x", "0X"}:
            return b""
        try:
            return decode_hex(value)
        except (ValueError, TypeError) as e:
            msg = f"invalid hex string {value!r}"
            raise ValueError(msg) from e
    if isinstance(value, list):
        if not all(isinstance(b, int) and 0 <= b <= 255 for b in value):
            msg = "byte arrays must contain integers between 0 and 255"
            raise ValueError(msg)
        return bytes(value)
    msg = f"cannot decode {type(value).__name__} as bytes"
    raise ValueError(msg)


def to_hex(value: bytes) -> str:
    """Encode bytes as a `0x`-prefixed lowercase hex string."""
    return encode_hex(value)


def gwei_to_wei(gwei: int) -> int:
    """Convert Gwei to Wei (multiply by 1e9)."""
    return gwei * GWEI


def wei_to_gwei(wei: int) -> int:
    """Convert Wei to whole Gwei, rounding down."""
    return wei // GWEI


def ether_to_wei(ether: str | Decimal | int) -> int:
    """Convert an Ether amount given as text or Decimal to Wei.

    Raises:
        ValueError: If the amount is negative or has more than 18 decimals.

    Example:
        >>> ether_to_wei("32")
        32000000000000000000
        >>> ether_to_wei("0.5")
        500000000000000000
    """
    try:
        amount = Decimal(ether) * ETHER
    except ArithmeticError as e:
        msg = f"invalid Ether amount {ether!r}"
        raise ValueError(msg) from e
    if amount < 0 or amount != amount.to_integral_value():
        msg = f"invalid Ether amount {ether!r}"
        raise ValueError(msg)
    return int(amount)


def format_wei(wei: int) -> str:
    """Format a Wei amount in Ether for humans.

    Example:
        >>> format_wei(32000000000000000000)
        '32 Ether'
    """
    ether = (Decimal(wei) / ETHER).normalize()
    return f"{ether:f} Ether"


def format_gwei(gwei: int) -> str:
    """Format a Gwei amount in Ether for humans."""
    return format_wei(gwei_to_wei(gwei))


__all__ = [
    "ETHER",
    "GWEI",
    "ether_to_wei",
    "format_gwei",
    "format_wei",
    "gwei_to_wei",
    "parse_bytes",
    "parse_hex_int",
    "to_hex",
    "wei_to_gwei",
]
