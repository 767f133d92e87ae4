"""
Numeric and hex encoding helpers.

Script numbers follow the minimal-push convention of the script language:
little-endian magnitude with the sign carried in the high bit of the last
byte.
"""

from __future__ import annotations

import string
from decimal import Decimal, InvalidOperation

from sbitcore.constants import COIN

HEX_DIGITS = frozenset(string.hexdigits)

Amount = Decimal | int | str | float


class MalformedInputError(ValueError):
    """Raised for hex, address or numeric input that cannot be encoded exactly."""


def encode_script_number(n: int) -> bytes:
    """
    Encode an integer as a minimal script number.

    Zero encodes as the empty byte string. If the high bit of the most
    significant magnitude byte is already set, an extra byte carries the sign
    (0x00 or 0x80); otherwise a negative number sets that high bit in place.
    """
    if not isinstance(n, int) or isinstance(n, bool):
        raise MalformedInputError(f"Script number must be an integer, got {n!r}")
    if n == 0:
        return b""

    negative = n < 0
    magnitude = abs(n)
    result = bytearray()
    while magnitude:
        result.append(magnitude & 0xFF)
        magnitude >>= 8

    if result[-1] & 0x80:
        result.append(0x80 if negative else 0x00)
    elif negative:
        result[-1] |= 0x80

    return bytes(result)


def decode_script_number(data: bytes) -> int:
    """Decode a script number produced by encode_script_number."""
    if not data:
        return 0
    magnitude = bytearray(data)
    negative = bool(magnitude[-1] & 0x80)
    magnitude[-1] &= 0x7F
    value = int.from_bytes(magnitude, "little")
    return -value if negative else value


def decode_hex(hex_string: str) -> bytes:
    """
    Strictly decode a hex string into bytes.

    A leading "0x" is accepted. Odd-length input or any non-hex character is
    rejected instead of being silently truncated.
    """
    if not isinstance(hex_string, str):
        raise MalformedInputError(f"Expected hex string, got {type(hex_string).__name__}")

    digits = hex_string[2:] if hex_string[:2] in ("0x", "0X") else hex_string
    if len(digits) % 2:
        raise MalformedInputError(f"Hex string has odd length {len(digits)}")

    bad = set(digits) - HEX_DIGITS
    if bad:
        raise MalformedInputError(f"Invalid hex characters: {''.join(sorted(bad))!r}")

    return bytes.fromhex(digits)


def to_decimal(amount: Amount) -> Decimal:
    """Convert a caller-supplied coin amount to an exact non-negative Decimal."""
    if isinstance(amount, bool):
        raise MalformedInputError(f"Invalid amount: {amount!r}")
    try:
        # floats go through str() so 0.01 stays 0.01 rather than its binary expansion
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise MalformedInputError(f"Invalid amount: {amount!r}") from e

    if not value.is_finite():
        raise MalformedInputError(f"Amount must be finite, got {amount!r}")
    if value < 0:
        raise MalformedInputError(f"Amount must not be negative, got {amount!r}")
    return value


def to_base_units(amount: Amount) -> int:
    """
    Convert coins to integer smallest units.

    Raises MalformedInputError if the amount has more precision than the
    smallest unit can represent.
    """
    scaled = to_decimal(amount) * COIN
    if scaled != scaled.to_integral_value():
        raise MalformedInputError(f"Amount {amount!r} is not a whole number of base units")
    return int(scaled)


def from_base_units(value: int) -> Decimal:
    """Convert smallest units to coins."""
    return Decimal(value) / COIN


def encode_varint(value: int) -> bytes:
    """Encode integer as Bitcoin CompactSize varint."""
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Read a varint and return (value, new_offset)."""
    first = data[offset]
    offset += 1

    if first < 0xFD:
        return first, offset
    if first == 0xFD:
        return int.from_bytes(data[offset : offset + 2], "little"), offset + 2
    if first == 0xFE:
        return int.from_bytes(data[offset : offset + 4], "little"), offset + 4
    return int.from_bytes(data[offset : offset + 8], "little"), offset + 8
