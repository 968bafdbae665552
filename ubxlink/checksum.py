"""Fletcher-style checksum used by the UBX binary protocol."""

from __future__ import annotations

from typing import Iterable, Union

BytesLike = Union[bytes, bytearray, memoryview, Iterable[int]]


def calculate_checksum(data: BytesLike) -> tuple[int, int]:
    """Return the two 8-bit checksum bytes ``(ck_a, ck_b)`` of *data*.

    *data* is the part of a frame that is covered by the checksum: class id,
    message id, the two length bytes and the payload.
    """
    ck_a = 0
    ck_b = 0
    for byte in bytes(data):
        ck_a = (ck_a + byte) & 0xFF
        ck_b = (ck_b + ck_a) & 0xFF
    return ck_a, ck_b


def checksum_value(data: BytesLike) -> int:
    """Return the checksum as the 16-bit value read little-endian from the wire."""
    ck_a, ck_b = calculate_checksum(data)
    return ck_a | (ck_b << 8)