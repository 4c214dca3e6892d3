"""Canonical big-endian byte encoding for non-negative integers.

Integers are written with no leading zero byte. Zero is written as the
empty byte string. Decoding accepts leading zeros and the empty string.
"""


def num_bytes(value: int) -> int:
    """Number of bytes in the canonical encoding of *value*."""
    return (value.bit_length() + 7) // 8


def bn2bin(value: int) -> bytes:
    if value < 0:
        raise ValueError("cannot encode a negative integer")
    return value.to_bytes(num_bytes(value), byteorder='big')


def bin2bn(data) -> int:
    """Decode a bytes-like object as an unsigned big-endian integer.

    Raises TypeError for anything that does not support the buffer
    protocol (``str`` included).
    """
    if isinstance(data, str):
        raise TypeError("expected a bytes-like object, got str")
    return int.from_bytes(memoryview(data).tobytes(), byteorder='big')
