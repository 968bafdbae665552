"""Byte transports to a receiver and a background worker that reads from them."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Optional, Protocol, Union

import serial

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 8192
READ_TIMEOUT = 0.1

ReadCallback = Callable[[bytes], int]
RawDataCallback = Callable[[bytes], None]


class Transport(Protocol):
    """A byte link to a receiver.

    ``read`` returns the bytes available (possibly none after a short wait)
    and raises :class:`EOFError` or :class:`OSError` once the link is gone.
    """

    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> None: ...

    def close(self) -> None: ...


class SerialTransport:
    """Transport over a serial port."""

    def __init__(self, port: serial.Serial) -> None:
        self._serial = port

    @property
    def name(self) -> str:
        return self._serial.port

    @property
    def baudrate(self) -> int:
        return self._serial.baudrate

    @baudrate.setter
    def baudrate(self, value: int) -> None:
        self._serial.baudrate = value

    def read(self, size: int) -> bytes:
        waiting = self._serial.in_waiting
        return self._serial.read(max(1, min(size, waiting)))

    def write(self, data: bytes) -> None:
        self._serial.write(data)
        self._serial.flush()

    def close(self) -> None:
        self._serial.close()


class SocketTransport:
    """Transport over a connected TCP or UDP socket."""

    def __init__(self, sock: socket.socket, stream: bool = True) -> None:
        self._sock = sock
        self._stream = stream
        self._sock.settimeout(READ_TIMEOUT)

    def read(self, size: int) -> bytes:
        try:
            data = self._sock.recv(size)
        except socket.timeout:
            return b""
        if not data and self._stream:
            raise EOFError("connection closed by peer")
        return data

    def write(self, data: bytes) -> None:
        if self._stream:
            self._sock.sendall(data)
        else:
            self._sock.send(data)

    def close(self) -> None:
        self._sock.close()


def open_serial(port: str) -> SerialTransport:
    """Open the serial device *port* in raw mode."""
    try:
        device = serial.Serial(port, timeout=READ_TIMEOUT)
    except (serial.SerialException, OSError, ValueError) as exc:
        raise ConnectionError(f"U-Blox: Could not open serial port :{port} {exc}") from exc
    logger.info("U-Blox: Opened serial port %s", port)
    return SerialTransport(device)


def _open_socket(host: str, port: Union[str, int], kind: int) -> SocketTransport:
    try:
        infos = socket.getaddrinfo(host, port, type=kind)
    except (OSError, UnicodeError) as exc:
        raise ConnectionError(f"U-Blox: Could not resolve {host} {port} {exc}") from exc
    if not infos:
        raise ConnectionError(f"U-Blox: Could not resolve {host} {port}")
    family, socktype, proto, _, address = infos[0]
    sock = socket.socket(family, socktype, proto)
    try:
        sock.connect(address)
    except OSError as exc:
        sock.close()
        raise ConnectionError(f"U-Blox: Could not connect to {host}:{port}: {exc}") from exc
    logger.info("U-Blox: Connected to %s:%s.", host, port)
    return SocketTransport(sock, stream=kind == socket.SOCK_STREAM)


def open_tcp(host: str, port: Union[str, int]) -> SocketTransport:
    """Resolve *host* and *port* and connect over TCP."""
    return _open_socket(host, port, socket.SOCK_STREAM)


def open_udp(host: str, port: Union[str, int]) -> SocketTransport:
    """Resolve *host* and *port* and connect a UDP socket to them."""
    return _open_socket(host, port, socket.SOCK_DGRAM)


class AsyncWorker:
    """Reads a transport on a background thread and feeds a read callback.

    Received bytes are buffered; the read callback gets the whole buffer and
    returns how many bytes it consumed, and the rest is kept for next time.
    """

    def __init__(
        self,
        transport: Transport,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        debug: int = 1,
    ) -> None:
        if buffer_size <= 0:
            raise ValueError(f"buffer size must be positive, got {buffer_size}")
        self._transport = transport
        self.buffer_size = buffer_size
        self.debug = debug
        self._callback: Optional[ReadCallback] = None
        self._raw_callback: Optional[RawDataCallback] = None
        self._buffer = bytearray()
        self._write_lock = threading.Lock()
        self._condition = threading.Condition()
        self._open = True
        self._thread = threading.Thread(target=self._run, name="ubx-reader", daemon=True)
        self._thread.start()

    def __enter__(self) -> "AsyncWorker":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def set_callback(self, callback: Optional[ReadCallback]) -> None:
        """Set the callback that consumes buffered bytes."""
        self._callback = callback

    def set_raw_data_callback(self, callback: Optional[RawDataCallback]) -> None:
        """Set a callback that receives every chunk of bytes as it arrives."""
        self._raw_callback = callback

    def send(self, data: bytes | bytearray | memoryview) -> bool:
        """Write *data* to the transport; ``False`` if it is closed or fails."""
        if not self._open:
            return False
        payload = bytes(data)
        with self._write_lock:
            try:
                self._transport.write(payload)
            except OSError as exc:
                logger.error("U-Blox: write failed: %s", exc)
                return False
        if self.debug >= 2:
            logger.debug(
                "U-Blox sent %d bytes: %s",
                len(payload),
                " ".join(f"{byte:02x}" for byte in payload),
            )
        return True

    def wait(self, timeout: float) -> bool:
        """Block until more data has been processed; ``False`` on timeout."""
        with self._condition:
            if not self._open:
                return False
            return self._condition.wait(timeout)

    def is_open(self) -> bool:
        """Whether the transport is still open."""
        return self._open

    def close(self) -> None:
        """Stop reading and close the transport."""
        was_open = self._open
        self._open = False
        if was_open:
            try:
                self._transport.close()
            except OSError as exc:
                logger.warning("U-Blox: error while closing: %s", exc)
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        with self._condition:
            self._condition.notify_all()

    def _run(self) -> None:
        while self._open:
            try:
                chunk = self._transport.read(self.buffer_size)
            except (OSError, EOFError) as exc:
                if self._open:
                    logger.error("U-Blox: read failed, closing: %s", exc)
                self._open = False
                with self._condition:
                    self._condition.notify_all()
                break
            if chunk:
                self._process(bytes(chunk))

    def _process(self, chunk: bytes) -> None:
        raw_callback = self._raw_callback
        if raw_callback is not None:
            try:
                raw_callback(chunk)
            except Exception:
                logger.exception("U-Blox: raw data callback failed")
        self._buffer += chunk
        callback = self._callback
        if callback is not None:
            try:
                consumed = callback(bytes(self._buffer))
            except Exception:
                logger.exception("U-Blox: read callback failed")
                consumed = 0
            del self._buffer[:consumed]
        excess = len(self._buffer) - self.buffer_size
        if excess > 0:
            logger.warning("U-Blox: read buffer full, dropping %d bytes", excess)
            del self._buffer[:excess]
        with self._condition:
            self._condition.notify_all()