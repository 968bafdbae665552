import threading
import time

import pytest

from ubxlink.acks import (
    Ack,
    AckMessage,
    AckTracker,
    AckType,
    UpdSosAckMessage,
)
from ubxlink.framing import Reader, Writer
from ubxlink.messages import can_decode, decode, encode


def test_ack_message_decodes_both_ids():
    assert can_decode(AckMessage, 0x05, 0x00)
    assert can_decode(AckMessage, 0x05, 0x01)
    assert not can_decode(AckMessage, 0x05, 0x02)


def test_ack_frame_wire_bytes():
    writer = Writer(64)
    frame = writer.write(AckMessage(cls_id=0x06, msg_id=0x00), 0x05, 0x01)
    assert frame == bytes([0xB5, 0x62, 0x05, 0x01, 0x02, 0x00, 0x06, 0x00, 0x0E, 0x37])


def test_ack_frame_round_trip_through_reader():
    writer = Writer(64)
    writer.write(AckMessage(cls_id=0x06, msg_id=0x08), 0x05, 0x01)
    reader = Reader(writer.data)
    message = reader.read(AckMessage, True)
    assert message == AckMessage(cls_id=0x06, msg_id=0x08)


def test_upd_sos_ack_round_trip():
    original = UpdSosAckMessage(response=UpdSosAckMessage.BACKUP_CREATE_ACK)
    payload = encode(original)
    assert len(payload) == 8
    assert decode(UpdSosAckMessage, payload) == original


def test_reset_sets_wait_state():
    tracker = AckTracker()
    tracker.reset()
    assert tracker.last == Ack(AckType.WAIT, 0, 0)


def test_process_ack_and_nack():
    tracker = AckTracker()
    tracker.process_ack(AckMessage(cls_id=0x06, msg_id=0x01))
    assert tracker.last == Ack(AckType.ACK, 0x06, 0x01)
    tracker.process_nack(AckMessage(cls_id=0x06, msg_id=0x24))
    assert tracker.last == Ack(AckType.NACK, 0x06, 0x24)


@pytest.mark.parametrize(
    "response, expected",
    [
        (UpdSosAckMessage.BACKUP_CREATE_ACK, AckType.ACK),
        (UpdSosAckMessage.BACKUP_CREATE_NACK, AckType.NACK),
    ],
)
def test_process_upd_sos_ack(response, expected):
    tracker = AckTracker()
    tracker.reset()
    tracker.process_upd_sos_ack(UpdSosAckMessage(response=response))
    assert tracker.last == Ack(
        expected, UpdSosAckMessage.CLASS_ID, UpdSosAckMessage.MESSAGE_ID
    )


def test_upd_sos_other_command_ignored():
    tracker = AckTracker()
    tracker.reset()
    tracker.process_upd_sos_ack(UpdSosAckMessage(cmd=0, response=1))
    assert tracker.last.type is AckType.WAIT


def test_wait_for_existing_ack():
    tracker = AckTracker()
    tracker.process_ack(AckMessage(cls_id=0x06, msg_id=0x01))
    assert tracker.wait_for(1.0, 0x06, 0x01) is True


def test_wait_for_nack_is_false():
    tracker = AckTracker()
    tracker.process_nack(AckMessage(cls_id=0x06, msg_id=0x01))
    start = time.monotonic()
    assert tracker.wait_for(1.0, 0x06, 0x01) is False
    assert time.monotonic() - start < 0.5


def test_wait_for_times_out():
    tracker = AckTracker()
    tracker.reset()
    start = time.monotonic()
    assert tracker.wait_for(0.1, 0x06, 0x01) is False
    elapsed = time.monotonic() - start
    assert 0.05 <= elapsed < 1.0


def test_wait_for_other_message_ack_is_false():
    tracker = AckTracker()
    tracker.process_ack(AckMessage(cls_id=0x06, msg_id=0x08))
    assert tracker.wait_for(0.05, 0x06, 0x01) is False


def test_wait_for_uses_waiter():
    tracker = AckTracker()
    tracker.reset()
    calls = []

    def waiter(remaining):
        calls.append(remaining)
        tracker.process_ack(AckMessage(cls_id=0x06, msg_id=0x01))

    assert tracker.wait_for(1.0, 0x06, 0x01, waiter) is True
    assert len(calls) == 1
    assert 0 < calls[0] <= 1.0


def test_wait_for_ack_from_other_thread():
    tracker = AckTracker()
    tracker.reset()

    def deliver():
        time.sleep(0.05)
        tracker.process_ack(AckMessage(cls_id=0x06, msg_id=0x01))

    thread = threading.Thread(target=deliver)
    thread.start()
    try:
        assert tracker.wait_for(2.0, 0x06, 0x01) is True
    finally:
        thread.join()