"""Dispatch of decoded UBX messages and NMEA sentences to callbacks."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, Optional, TypeVar

from .framing import Reader

logger = logging.getLogger(__name__)

T = TypeVar("T")

MessageCallback = Callable[[Any], None]
NmeaCallback = Callable[[str], None]


class CallbackHandler(Generic[T]):
    """Decodes one message type from frames and hands it to a callback.

    Every call to :meth:`handle` wakes the threads blocked in :meth:`wait`,
    whether or not the frame could be decoded.
    """

    def __init__(
        self,
        message_type: type[T],
        func: Optional[Callable[[T], None]] = None,
    ) -> None:
        self.message_type = message_type
        self._func = func
        self.debug = 1
        self._condition = threading.Condition()
        self._message: Optional[T] = None

    @property
    def message(self) -> Optional[T]:
        """The last message decoded successfully, or ``None``."""
        return self._message

    def handle(self, reader: Reader) -> None:
        """Decode the reader's current frame and call the callback on success."""
        with self._condition:
            try:
                try:
                    message = reader.read(self.message_type)
                except ValueError as exc:
                    if self.debug >= 2:
                        logger.debug(
                            "U-Blox decoder error for 0x%02x / 0x%02x (%d bytes): %s",
                            reader.class_id,
                            reader.message_id,
                            reader.length,
                            exc,
                        )
                    return
                if message is None:
                    if self.debug >= 2:
                        logger.debug(
                            "U-Blox decoder error for 0x%02x / 0x%02x (%d bytes)",
                            reader.class_id,
                            reader.message_id,
                            reader.length,
                        )
                    return
                self._message = message
                if self._func is not None:
                    self._func(message)
            finally:
                self._condition.notify_all()

    def wait(self, timeout: float) -> bool:
        """Block until the next frame is handled; ``False`` on timeout."""
        with self._condition:
            return self._condition.wait(timeout)


class CallbackHandlers:
    """Callback handlers for incoming UBX messages, keyed by class and message id."""

    def __init__(self, debug: int = 1) -> None:
        self.debug = debug
        self._handlers: dict[tuple[int, int], list[CallbackHandler[Any]]] = {}
        self._lock = threading.RLock()
        self._nmea_callback: Optional[NmeaCallback] = None

    def __len__(self) -> int:
        with self._lock:
            return sum(len(handlers) for handlers in self._handlers.values())

    def insert(
        self,
        message_type: type[T],
        callback: Optional[Callable[[T], None]] = None,
        message_id: Optional[int] = None,
    ) -> CallbackHandler[T]:
        """Add a handler for *message_type* and return it.

        The handler is keyed by the type's ``CLASS_ID`` and by *message_id*,
        which defaults to the type's ``MESSAGE_ID``.  A *message_id* is given
        for types shared by several messages of one class, such as ACK or INF.
        """
        if message_id is None:
            message_id = message_type.MESSAGE_ID  # type: ignore[attr-defined]
        key = (message_type.CLASS_ID, message_id)  # type: ignore[attr-defined]
        handler = CallbackHandler(message_type, callback)
        handler.debug = self.debug
        with self._lock:
            self._handlers.setdefault(key, []).append(handler)
        return handler

    def _remove(self, handler: CallbackHandler[Any]) -> None:
        with self._lock:
            for key, handlers in list(self._handlers.items()):
                if handler in handlers:
                    handlers.remove(handler)
                    if not handlers:
                        del self._handlers[key]
                    return

    def set_nmea_callback(self, callback: Optional[NmeaCallback]) -> None:
        """Set the callback that receives each complete NMEA sentence."""
        with self._lock:
            self._nmea_callback = callback

    def handle(self, reader: Reader) -> None:
        """Pass the reader's current frame to every handler for its ids."""
        with self._lock:
            key = (reader.class_id, reader.message_id)
            for handler in list(self._handlers.get(key, ())):
                handler.handle(reader)

    def handle_nmea(self, reader: Reader) -> None:
        """Pass the NMEA sentences among the reader's skipped bytes to the callback.

        A sentence runs from ``$`` up to and including the next newline;
        text without a terminating newline is not delivered.
        """
        with self._lock:
            callback = self._nmea_callback
            if callback is None:
                return
            buffer = reader.extra_data.decode("latin-1")
            start = buffer.find("$")
            end = buffer.find("\n", start) if start != -1 else -1
            while start != -1 and end != -1:
                callback(buffer[start:end + 1])
                start = buffer.find("$", end + 1)
                end = buffer.find("\n", start) if start != -1 else -1

    def read(self, message_type: type[T], timeout: float) -> Optional[T]:
        """Wait up to *timeout* seconds for the next *message_type* message.

        Returns the message, or ``None`` if none was decoded in time.
        """
        handler = self.insert(message_type)
        try:
            if handler.wait(timeout):
                return handler.message
            return None
        finally:
            self._remove(handler)

    def read_callback(self, data: bytes | bytearray | memoryview) -> int:
        """Dispatch every complete frame in *data*; return the bytes consumed.

        The bytes from the returned position on (an incomplete frame) should
        be kept and offered again once more data has arrived.
        """
        reader = Reader(data)
        while reader.search() != reader.end and reader.found():
            if self.debug >= 3:
                size = reader.length + reader.options.wrapper_length()
                frame = reader.remaining()[:size]
                logger.debug(
                    "U-blox: reading %d bytes\n%s",
                    size,
                    " ".join(f"{byte:x}" for byte in frame),
                )
            self.handle(reader)
        self.handle_nmea(reader)
        return reader.pos