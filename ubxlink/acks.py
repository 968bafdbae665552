"""Tracking of ACK/NACK replies to configuration messages."""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .messages import add_key, declare_message

logger = logging.getLogger(__name__)

ACK_CLASS_ID = 0x05
ACK_NACK_ID = 0x00
ACK_ACK_ID = 0x01

UPD_CLASS_ID = 0x09
UPD_SOS_ID = 0x14

Waiter = Callable[[float], object]


class AckType(enum.Enum):
    """Kind of acknowledgement; ``WAIT`` means a reply is still expected."""

    NACK = 0
    ACK = 1
    WAIT = 2


@dataclass(frozen=True)
class Ack:
    """The last acknowledgement received from the device."""

    type: AckType
    class_id: int
    msg_id: int


@declare_message(ACK_CLASS_ID, ACK_NACK_ID)
@dataclass
class AckMessage:
    """UBX-ACK-ACK / UBX-ACK-NAK: the ids of the message being answered."""

    FORMAT = "BB"

    cls_id: int = 0
    msg_id: int = 0


add_key(AckMessage, ACK_CLASS_ID, ACK_ACK_ID)


@declare_message(UPD_CLASS_ID, UPD_SOS_ID)
@dataclass
class UpdSosAckMessage:
    """UBX-UPD-SOS acknowledgement of a backup creation request."""

    FORMAT = "B3sB3s"

    CMD_BACKUP_CREATE_ACK = 2
    BACKUP_CREATE_NACK = 0
    BACKUP_CREATE_ACK = 1

    cmd: int = CMD_BACKUP_CREATE_ACK
    reserved0: bytes = b"\x00\x00\x00"
    response: int = BACKUP_CREATE_NACK
    reserved1: bytes = b"\x00\x00\x00"


class AckTracker:
    """Holds the last acknowledgement and lets threads wait for a specific one."""

    def __init__(self, debug: int = 1) -> None:
        self.debug = debug
        self._condition = threading.Condition()
        self._ack = Ack(AckType.NACK, 0, 0)

    @property
    def last(self) -> Ack:
        """The most recently stored acknowledgement."""
        with self._condition:
            return self._ack

    def _store(self, ack: Ack) -> None:
        with self._condition:
            self._ack = ack
            self._condition.notify_all()

    def reset(self) -> None:
        """Mark that a reply is awaited, clearing any previous acknowledgement."""
        self._store(Ack(AckType.WAIT, 0, 0))

    def process_ack(self, message: AckMessage) -> None:
        """Record a UBX-ACK-ACK message."""
        self._store(Ack(AckType.ACK, message.cls_id, message.msg_id))
        if self.debug >= 2:
            logger.debug(
                "U-blox: received ACK: 0x%02x / 0x%02x", message.cls_id, message.msg_id
            )

    def process_nack(self, message: AckMessage) -> None:
        """Record a UBX-ACK-NAK message."""
        self._store(Ack(AckType.NACK, message.cls_id, message.msg_id))
        logger.error(
            "U-blox: received NACK: 0x%02x / 0x%02x", message.cls_id, message.msg_id
        )

    def process_upd_sos_ack(self, message: UpdSosAckMessage) -> None:
        """Record the reply to a backup creation request; other commands are ignored."""
        if message.cmd != UpdSosAckMessage.CMD_BACKUP_CREATE_ACK:
            return
        ack_type = (
            AckType.ACK
            if message.response == UpdSosAckMessage.BACKUP_CREATE_ACK
            else AckType.NACK
        )
        self._store(
            Ack(ack_type, UpdSosAckMessage.CLASS_ID, UpdSosAckMessage.MESSAGE_ID)
        )
        if ack_type is AckType.ACK:
            if self.debug >= 2:
                logger.debug("U-blox: received UPD SOS Backup ACK")
        else:
            logger.error("U-blox: received UPD SOS Backup NACK")

    @staticmethod
    def _pending(ack: Ack, class_id: int, msg_id: int) -> bool:
        return (
            ack.class_id != class_id
            or ack.msg_id != msg_id
            or ack.type is AckType.WAIT
        )

    def wait_for(
        self,
        timeout: float,
        class_id: int,
        msg_id: int,
        waiter: Optional[Waiter] = None,
    ) -> bool:
        """Wait up to *timeout* seconds for a reply to the given message.

        Returns ``True`` only if an ACK for *class_id* / *msg_id* arrived;
        a NACK for it or a timeout gives ``False``.  When *waiter* is given it
        is called with the remaining time instead of blocking on this tracker,
        e.g. to wait for the I/O worker to process more data.
        """
        if self.debug >= 2:
            logger.debug("Waiting for ACK 0x%02x / 0x%02x", class_id, msg_id)
        deadline = time.monotonic() + timeout
        ack = self.last
        while self._pending(ack, class_id, msg_id):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if waiter is not None:
                waiter(remaining)
            else:
                with self._condition:
                    if self._pending(self._ack, class_id, msg_id):
                        self._condition.wait(remaining)
            ack = self.last
        return (
            ack.type is AckType.ACK
            and ack.class_id == class_id
            and ack.msg_id == msg_id
        )