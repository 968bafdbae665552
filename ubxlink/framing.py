"""Framing of UBX messages: finding frames in a byte stream and building them."""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from .checksum import calculate_checksum, checksum_value
from .messages import Options, can_decode, decode, encode

T = TypeVar("T")

MAX_PAYLOAD_LENGTH = 0xFFFF


class WriterOverflowError(ValueError):
    """Raised when a frame does not fit in the space left in a :class:`Writer`."""


class Reader:
    """Decodes UBX frames from a buffer of received bytes.

    Bytes that are skipped while searching for a frame (for example NMEA
    sentences sharing the same link) are collected in :attr:`extra_data`.
    """

    def __init__(self, data: bytes | bytearray | memoryview, options: Optional[Options] = None) -> None:
        self._data = bytes(data)
        self._pos = 0
        self._found = False
        self.options = options if options is not None else Options()
        self._extra = bytearray()

    @property
    def _count(self) -> int:
        return len(self._data) - self._pos

    def search(self) -> int:
        """Move to the start of the next frame and return that position."""
        if self._found:
            self.next()
        sync_a = self.options.sync_a
        sync_b = self.options.sync_b
        while self._count > 0:
            if self._data[self._pos] == sync_a and (
                self._count == 1 or self._data[self._pos + 1] == sync_b
            ):
                break
            self._extra.append(self._data[self._pos])
            self._pos += 1
        return self._pos

    def found(self) -> bool:
        """Whether a complete frame with a valid header starts at the position."""
        if self._found:
            return True
        wrapper = self.options.wrapper_length()
        if self._count < wrapper:
            return False
        if (
            self._data[self._pos] != self.options.sync_a
            or self._data[self._pos + 1] != self.options.sync_b
        ):
            return False
        if self._count < self.length + wrapper:
            return False
        self._found = True
        return True

    def next(self) -> int:
        """Skip past the current frame, using its declared length."""
        if self.found():
            self._pos += self.length + self.options.wrapper_length()
        self._found = False
        return self._pos

    @property
    def pos(self) -> int:
        """Current position in the buffer."""
        return self._pos

    @property
    def end(self) -> int:
        """Position one past the last byte of the buffer."""
        return len(self._data)

    def remaining(self) -> bytes:
        """The bytes from the current position to the end of the buffer."""
        return self._data[self._pos:]

    @property
    def class_id(self) -> int:
        return self._data[self._pos + 2]

    @property
    def message_id(self) -> int:
        return self._data[self._pos + 3]

    @property
    def length(self) -> int:
        """Payload length declared in the current frame's header."""
        return (self._data[self._pos + 5] << 8) + self._data[self._pos + 4]

    @property
    def payload(self) -> bytes:
        start = self._pos + self.options.header_length
        return self._data[start:start + self.length]

    @property
    def checksum(self) -> int:
        """Checksum stored in the current frame, read little-endian."""
        start = self._pos + self.options.header_length + self.length
        return int.from_bytes(self._data[start:start + 2], "little")

    @property
    def extra_data(self) -> bytes:
        """Bytes skipped while searching for frames."""
        return bytes(self._extra)

    def read(self, message_type: type[T], search: bool = False) -> Optional[T]:
        """Decode the current frame as *message_type*.

        Returns ``None`` if no complete frame is found, the type cannot decode
        the frame's ids, or the checksum does not match.  A payload too short
        for the type raises :class:`ValueError`.
        """
        if search:
            self.search()
        if not self.found():
            return None
        if not can_decode(message_type, self.class_id, self.message_id):
            return None
        covered = self._data[self._pos + 2:self._pos + 2 + self.length + 4]
        if checksum_value(covered) != self.checksum:
            return None
        return decode(message_type, self.payload)

    def has_type(self, message_type: type) -> bool:
        """Whether *message_type* can decode the current frame."""
        if not self.found():
            return False
        return can_decode(message_type, self.class_id, self.message_id)

    def is_message(self, class_id: int, message_id: int) -> bool:
        """Whether the current frame has the given class and message id."""
        if not self.found():
            return False
        return self.class_id == class_id and self.message_id == message_id


class Writer:
    """Encodes UBX messages into frames, within a fixed amount of space."""

    def __init__(self, size: int, options: Optional[Options] = None) -> None:
        if size < 0:
            raise ValueError(f"size must not be negative, got {size}")
        self._buffer = bytearray()
        self._size = size
        self.options = options if options is not None else Options()

    @property
    def size(self) -> int:
        """Number of bytes of space left."""
        return self._size

    @property
    def data(self) -> bytes:
        """All frames written so far."""
        return bytes(self._buffer)

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        return len(self._buffer)

    def write(
        self,
        message: Any,
        class_id: Optional[int] = None,
        message_id: Optional[int] = None,
    ) -> bytes:
        """Encode *message* as a frame and append it; return the frame.

        The ids default to the message type's ``CLASS_ID`` and ``MESSAGE_ID``.
        """
        if class_id is None:
            class_id = type(message).CLASS_ID
        if message_id is None:
            message_id = type(message).MESSAGE_ID
        return self.write_payload(encode(message), class_id, message_id)

    def write_payload(
        self,
        payload: bytes | bytearray | memoryview,
        class_id: int,
        message_id: int,
    ) -> bytes:
        """Wrap an encoded payload with header and checksum and append it."""
        body = bytes(payload)
        length = len(body)
        if length > MAX_PAYLOAD_LENGTH:
            raise ValueError(f"payload of {length} bytes exceeds {MAX_PAYLOAD_LENGTH}")
        if not (0 <= class_id <= 0xFF and 0 <= message_id <= 0xFF):
            raise ValueError("class and message id must be in [0, 255]")
        if self._size < length + self.options.wrapper_length():
            raise WriterOverflowError(
                f"no room for message 0x{class_id:02x} / 0x{message_id:02x} "
                f"({length} bytes of payload, {self._size} bytes left)"
            )
        header = bytes(
            (
                self.options.sync_a,
                self.options.sync_b,
                class_id,
                message_id,
                length & 0xFF,
                (length >> 8) & 0xFF,
            )
        )
        ck_a, ck_b = calculate_checksum(header[2:] + body)
        frame = header + body + bytes((ck_a, ck_b))
        self._buffer += frame
        self._size -= self.options.header_length + length + self.options.checksum_length
        return frame