"""Communication with and configuration of a u-blox receiver."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, Union

from .acks import (
    ACK_ACK_ID,
    ACK_NACK_ID,
    AckMessage,
    AckTracker,
    UpdSosAckMessage,
)
from .callback import CallbackHandlers
from .connection import (
    DEFAULT_BUFFER_SIZE,
    AsyncWorker,
    RawDataCallback,
    open_serial,
    open_tcp,
    open_udp,
)
from .framing import Writer
from .messages import declare_message

T = TypeVar("T")

BAUDRATES = (4800, 9600, 19200, 38400, 57600, 115200, 230400, 460800)
SET_BAUDRATE_SLEEP = 0.5
DEFAULT_ACK_TIMEOUT = 1.0
WRITER_SIZE = 2056

_CFG_CLASS_ID = 0x06
_UPD_CLASS_ID = 0x09

_NAV_BBR_HOT_START = 0x0000
_RESET_MODE_GNSS_STOP = 0x08


@declare_message(_CFG_CLASS_ID, 0x01)
@dataclass
class _CfgMsg:
    """UBX-CFG-MSG for the current port: send rate of one message."""

    FORMAT = "BBB"

    msg_class: int = 0
    msg_id: int = 0
    rate: int = 0


@declare_message(_CFG_CLASS_ID, 0x04)
@dataclass
class _CfgRst:
    """UBX-CFG-RST: reset or stop the receiver."""

    FORMAT = "HBB"

    nav_bbr_mask: int = 0
    reset_mode: int = 0
    reserved1: int = 0


@declare_message(_UPD_CLASS_ID, 0x14)
@dataclass
class _UpdSos:
    """UBX-UPD-SOS command; the default command creates a flash backup."""

    FORMAT = "B3s"

    cmd: int = 0
    reserved1: bytes = b"\x00\x00\x00"


class Gps:
    """Handles communication with and configuration of a u-blox device."""

    def __init__(self, debug: int = 1, logger: Optional[logging.Logger] = None) -> None:
        self.debug = debug
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.ack_timeout = DEFAULT_ACK_TIMEOUT
        self._worker: Optional[Any] = None
        self._configured = False
        self._save_on_shutdown = False
        self._config_on_startup = True
        self._callbacks = CallbackHandlers(debug)
        self._acks = AckTracker(debug)
        self._host = ""
        self._port = ""
        self._subscribe_acks()

    def __enter__(self) -> "Gps":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def set_save_on_shutdown(self, save_on_shutdown: bool) -> None:
        """Save the battery-backed RAM to flash when the link is closed."""
        self._save_on_shutdown = save_on_shutdown

    def set_config_on_startup(self, config_on_startup: bool) -> None:
        """Enable or disable the initial configuration of the device."""
        self._config_on_startup = config_on_startup

    def set_worker(self, worker: Any) -> None:
        """Attach the I/O worker; ignored if one is already attached."""
        if self._worker is not None:
            return
        self._worker = worker
        worker.set_callback(self._callbacks.read_callback)
        self._configured = worker is not None

    def _subscribe_acks(self) -> None:
        self.subscribe_id(AckMessage, self._acks.process_nack, ACK_NACK_ID)
        self.subscribe_id(AckMessage, self._acks.process_ack, ACK_ACK_ID)
        self.subscribe(UpdSosAckMessage, self._acks.process_upd_sos_ack)

    def initialize_tcp(self, host: str, port: Union[str, int]) -> None:
        """Connect to the device over TCP."""
        self._host = host
        self._port = str(port)
        transport = open_tcp(host, port)
        if self._worker is not None:
            transport.close()
            return
        self.set_worker(AsyncWorker(transport, DEFAULT_BUFFER_SIZE, self.debug))

    def initialize_udp(self, host: str, port: Union[str, int]) -> None:
        """Connect to the device over UDP."""
        self._host = host
        self._port = str(port)
        transport = open_udp(host, port)
        if self._worker is not None:
            transport.close()
            return
        self.set_worker(AsyncWorker(transport, DEFAULT_BUFFER_SIZE, self.debug))

    def initialize_serial(self, port: str, baudrate: int) -> None:
        """Open a serial port and step its baud rate up to *baudrate*.

        Raises :class:`ConnectionError` if the port cannot be opened or the
        baud rate cannot be reached while configuring on startup.
        """
        self._port = port
        transport = open_serial(port)
        if self._worker is not None:
            transport.close()
            return
        self.set_worker(AsyncWorker(transport, DEFAULT_BUFFER_SIZE, self.debug))
        self._configured = False

        current = transport.baudrate
        for fixed in BAUDRATES:
            if current == baudrate:
                break
            # Don't step down, unless the desired baudrate is lower
            if current > fixed and baudrate > fixed:
                continue
            transport.baudrate = fixed
            time.sleep(SET_BAUDRATE_SLEEP)
            current = transport.baudrate
            self.logger.debug("U-Blox: Set baudrate to %u", current)

        if self._config_on_startup:
            self._configured = current == baudrate
            if not self._configured:
                raise ConnectionError("Could not configure serial baud rate")
        else:
            self._configured = True

    def subscribe(
        self,
        message_type: type[T],
        callback: Callable[[T], None],
        rate: Optional[int] = None,
    ) -> bool:
        """Register *callback* for *message_type*.

        When *rate* is given the device is first told to send the message at
        that rate; if it does not acknowledge, nothing is registered and
        ``False`` is returned.
        """
        if rate is not None:
            if not self.set_rate(
                message_type.CLASS_ID,  # type: ignore[attr-defined]
                message_type.MESSAGE_ID,  # type: ignore[attr-defined]
                rate,
            ):
                return False
        self._callbacks.insert(message_type, callback)
        return True

    def subscribe_id(
        self, message_type: type[T], callback: Callable[[T], None], message_id: int
    ) -> None:
        """Register *callback* for a type shared by several message ids."""
        self._callbacks.insert(message_type, callback, message_id)

    def subscribe_nmea(self, callback: Callable[[str], None]) -> None:
        """Register a callback for NMEA sentences on the link."""
        self._callbacks.set_nmea_callback(callback)

    def read(self, message_type: type[T], timeout: Optional[float] = None) -> Optional[T]:
        """Wait for the next *message_type* message; ``None`` on timeout."""
        if self._worker is None:
            return None
        return self._callbacks.read(
            message_type, self.ack_timeout if timeout is None else timeout
        )

    def poll(self, class_id: int, message_id: int, payload: bytes = b"") -> bool:
        """Send a poll request with the given ids and payload."""
        if self._worker is None:
            return False
        writer = Writer(WRITER_SIZE)
        try:
            frame = writer.write_payload(payload, class_id, message_id)
        except ValueError as exc:
            self.logger.error("Failed to encode poll 0x%02x / 0x%02x: %s", class_id, message_id, exc)
            return False
        self._worker.send(frame)
        return True

    def poll_message(
        self,
        message_type: type[T],
        payload: bytes = b"",
        timeout: Optional[float] = None,
    ) -> Optional[T]:
        """Poll *message_type* and return the reply, or ``None``."""
        if not self.poll(
            message_type.CLASS_ID,  # type: ignore[attr-defined]
            message_type.MESSAGE_ID,  # type: ignore[attr-defined]
            payload,
        ):
            return None
        return self.read(message_type, timeout)

    def configure(self, message: Any, wait: bool = True) -> bool:
        """Send a configuration message.

        Returns ``True`` if it was sent and, when *wait* is set, acknowledged.
        """
        if self._worker is None:
            return False
        self._acks.reset()
        message_type = type(message)
        writer = Writer(WRITER_SIZE)
        try:
            frame = writer.write(message)
        except (ValueError, TypeError) as exc:
            self.logger.error(
                "Failed to encode config message 0x%02x / 0x%02x: %s",
                message_type.CLASS_ID,
                message_type.MESSAGE_ID,
                exc,
            )
            return False
        self._worker.send(frame)
        if not wait:
            return True
        return self.wait_for_acknowledge(
            self.ack_timeout, message_type.CLASS_ID, message_type.MESSAGE_ID
        )

    def wait_for_acknowledge(self, timeout: float, class_id: int, msg_id: int) -> bool:
        """Wait up to *timeout* seconds for an ACK of the given message."""
        if self._worker is None:
            return False
        return self._acks.wait_for(timeout, class_id, msg_id)

    def set_rate(self, class_id: int, message_id: int, rate: int) -> bool:
        """Set the rate at which the device sends the given message."""
        if self.debug >= 2:
            self.logger.debug("Setting rate 0x%02x, 0x%02x, %u", class_id, message_id, rate)
        return self.configure(_CfgMsg(class_id, message_id, rate))

    def send_rtcm(self, data: bytes) -> bool:
        """Forward RTCM correction data to the device."""
        if self._worker is None:
            return False
        return bool(self._worker.send(data))

    def set_raw_data_callback(self, callback: Optional[RawDataCallback]) -> None:
        """Set a callback receiving every chunk of raw bytes read."""
        if self._worker is None:
            return
        self._worker.set_raw_data_callback(callback)

    def is_initialized(self) -> bool:
        """Whether an I/O worker is attached."""
        return self._worker is not None

    def is_configured(self) -> bool:
        """Whether the link is initialized and configured."""
        return self.is_initialized() and self._configured

    def _save_bbr_on_shutdown(self) -> bool:
        rst = _CfgRst(_NAV_BBR_HOT_START, _RESET_MODE_GNSS_STOP)
        if not self.configure(rst):
            return False
        return self.configure(_UpdSos())

    def close(self) -> None:
        """Close the link, saving the BBR to flash first if requested."""
        if self._save_on_shutdown and self._worker is not None:
            if self._save_bbr_on_shutdown():
                self.logger.info("U-Blox Flash BBR saved")
            else:
                self.logger.info("U-Blox Flash BBR failed to save")
        worker = self._worker
        self._worker = None
        self._configured = False
        if worker is not None:
            worker.close()