"""Binary key layout shared by public and private keys.

A key buffer carries two integers, each prefixed by its byte length as an unsigned 32-bit big-endian number:

    [len(first)][first][len(second)][second]

Integers are written as minimal big-endian two's-complement bytes. Public keys carry (E, N) and private keys
(D, N).

Typical usage example:

    buf = encode_key(23227, n)
    e, n = decode_key(buf)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
LENGTH_SIZE: int = 4
MAX_FIELD_LENGTH: int = 2**32 - 1


class MalformedKeyError(ValueError):
    """Raised when a key buffer does not match its own length fields."""


def bytes_to_integer(data: bytes) -> int:
    """Converts a byte string to an integer, reading it as signed big-endian.

    Args:
        data: The bytes to convert. An empty string reads as 0.

    Returns:
        The representative integer.
    """
    return int.from_bytes(data, byteorder="big", signed=True)


def integer_to_bytes(value: int) -> bytes:
    """Converts an integer to its minimal signed big-endian byte representation.

    Non-negative values whose top bit would be set gain a leading zero byte, so the result always reads back with
    `bytes_to_integer`.

    Args:
        value: The integer to convert.

    Returns:
        The representative bytes, at least one byte long.
    """
    magnitude = value if value >= 0 else ~value
    length = (magnitude.bit_length() + 8) // 8
    return value.to_bytes(length, byteorder="big", signed=True)


def _field(value: int) -> bytes:
    raw = integer_to_bytes(value)
    if len(raw) > MAX_FIELD_LENGTH:
        raise ValueError("Integer too large for a key field.")
    return len(raw).to_bytes(LENGTH_SIZE, byteorder="big") + raw


def encode_key(first: int, second: int) -> bytes:
    """Packs an exponent and a modulus into a key buffer.

    Args:
        first: The exponent, E for public keys or D for private keys.
        second: The modulus N.

    Returns:
        The length-prefixed key buffer.
    """
    return _field(first) + _field(second)


def _read_field(data: bytes, offset: int, name: str) -> tuple[int, int]:
    end = offset + LENGTH_SIZE
    if len(data) < end:
        raise MalformedKeyError(f"Key buffer ends inside the {name} length field.")
    length = int.from_bytes(data[offset:end], byteorder="big", signed=False)
    if len(data) - end < length:
        raise MalformedKeyError(f"Key buffer declares {length} bytes for {name} but only {len(data) - end} remain.")
    return bytes_to_integer(data[end:end + length]), end + length


def decode_key(data: bytes) -> tuple[int, int]:
    """Unpacks a key buffer.

    Args:
        data: The key buffer, as produced by `encode_key`.

    Returns:
        The (first, second) integers, i.e. (E, N) or (D, N).

    Raises:
        MalformedKeyError: If the buffer is truncated or carries bytes past the second field.
    """
    first, offset = _read_field(data, 0, "exponent")
    second, offset = _read_field(data, offset, "modulus")
    if offset != len(data):
        raise MalformedKeyError(f"Key buffer has {len(data) - offset} trailing bytes.")
    return first, second
