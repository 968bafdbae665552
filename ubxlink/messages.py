"""Message registry and payload serialization for UBX messages.

A message type is usually a dataclass with a ``FORMAT`` class attribute: a
:mod:`struct` format string (without byte-order prefix) whose items map, in
order, onto the dataclass fields.  All values are little-endian on the wire.
Types whose payload has a variable layout may instead provide a
``to_payload()`` method and a ``from_payload(payload)`` classmethod.

Types are bound to their class and message ids with :func:`declare_message`;
one type can decode several ids (e.g. ACK-ACK and ACK-NAK) through
:func:`add_key`.
"""

from __future__ import annotations

import dataclasses
import struct
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, TypeVar

DEFAULT_SYNC_A = 0xB5
DEFAULT_SYNC_B = 0x62
HEADER_LENGTH = 6
CHECKSUM_LENGTH = 2

T = TypeVar("T")

_keys: dict[type, list[tuple[int, int]]] = {}


@dataclass
class Options:
    """Framing parameters used when encoding and decoding messages."""

    sync_a: int = DEFAULT_SYNC_A
    sync_b: int = DEFAULT_SYNC_B
    header_length: int = HEADER_LENGTH
    checksum_length: int = CHECKSUM_LENGTH

    def wrapper_length(self) -> int:
        """Number of bytes in the header and checksum together."""
        return self.header_length + self.checksum_length


def _check_id(value: int, what: str) -> int:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{what} must be in [0, 255], got {value}")
    return value


def add_key(message_type: type, class_id: int, message_id: int) -> None:
    """Record that *message_type* can decode messages with the given ids."""
    key = (_check_id(class_id, "class id"), _check_id(message_id, "message id"))
    _keys.setdefault(message_type, []).append(key)


def can_decode(message_type: type, class_id: int, message_id: int) -> bool:
    """Whether *message_type* was declared for the given class and message id."""
    return (class_id, message_id) in _keys.get(message_type, ())


def declare_message(class_id: int, message_id: int) -> Callable[[type[T]], type[T]]:
    """Class decorator binding a message type to its class and message id.

    The first declaration also sets ``CLASS_ID`` and ``MESSAGE_ID`` on the
    type, which are the ids used when encoding it.
    """

    def decorate(message_type: type[T]) -> type[T]:
        add_key(message_type, class_id, message_id)
        if "CLASS_ID" not in vars(message_type):
            setattr(message_type, "CLASS_ID", class_id)
            setattr(message_type, "MESSAGE_ID", message_id)
        return message_type

    return decorate


@lru_cache(maxsize=None)
def _struct_for(fmt: str) -> tuple[struct.Struct, int]:
    layout = struct.Struct("<" + fmt)
    return layout, len(layout.unpack(bytes(layout.size)))


def _layout(message_type: type) -> struct.Struct:
    fmt = getattr(message_type, "FORMAT", None)
    if fmt is None or not dataclasses.is_dataclass(message_type):
        raise TypeError(
            f"{message_type.__name__} is neither a dataclass with FORMAT "
            "nor a type with to_payload/from_payload"
        )
    layout, count = _struct_for(fmt)
    field_count = len(dataclasses.fields(message_type))
    if count != field_count:
        raise TypeError(
            f"{message_type.__name__}: FORMAT has {count} items "
            f"but the type has {field_count} fields"
        )
    return layout


def encode(message: Any) -> bytes:
    """Serialize the payload of *message* (no header or checksum)."""
    to_payload = getattr(message, "to_payload", None)
    if callable(to_payload):
        return bytes(to_payload())
    layout = _layout(type(message))
    values = [getattr(message, f.name) for f in dataclasses.fields(message)]
    try:
        return layout.pack(*values)
    except struct.error as exc:
        raise ValueError(f"cannot encode {type(message).__name__}: {exc}") from exc


def serialized_length(message: Any) -> int:
    """Length in bytes of the encoded payload of *message*."""
    if callable(getattr(message, "to_payload", None)):
        return len(encode(message))
    return _layout(type(message)).size


def decode(message_type: type[T], payload: bytes | bytearray | memoryview) -> T:
    """Build a *message_type* instance from an encoded payload.

    Bytes beyond the fixed layout are ignored; a payload that is too short
    raises :class:`ValueError`.
    """
    data = bytes(payload)
    from_payload = getattr(message_type, "from_payload", None)
    if callable(from_payload):
        return from_payload(data)
    layout = _layout(message_type)
    if len(data) < layout.size:
        raise ValueError(
            f"payload of {len(data)} bytes is too short for "
            f"{message_type.__name__} ({layout.size} bytes)"
        )
    return message_type(*layout.unpack_from(data))