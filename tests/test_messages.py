from dataclasses import dataclass, field

import pytest

from ubxlink.messages import (
    Options,
    add_key,
    can_decode,
    declare_message,
    decode,
    encode,
    serialized_length,
)


@declare_message(0x05, 0x01)
@dataclass
class AckSample:
    FORMAT = "BB"
    cls_id: int = 0
    msg_id: int = 0


add_key(AckSample, 0x05, 0x00)


@declare_message(0x06, 0x08)
@dataclass
class RateSample:
    FORMAT = "HHH"
    meas_rate: int = 0
    nav_rate: int = 0
    time_ref: int = 0


@declare_message(0x10, 0x02)
@dataclass
class VariableSample:
    values: list = field(default_factory=list)

    def to_payload(self) -> bytes:
        return b"".join(v.to_bytes(4, "little") for v in self.values)

    @classmethod
    def from_payload(cls, payload: bytes) -> "VariableSample":
        return cls(
            [int.from_bytes(payload[i : i + 4], "little") for i in range(0, len(payload), 4)]
        )


@dataclass
class Undeclared:
    FORMAT = "B"
    value: int = 0


@dataclass
class BadLayout:
    FORMAT = "BBB"
    only: int = 0


def test_options_defaults():
    options = Options()
    assert (options.sync_a, options.sync_b) == (0xB5, 0x62)
    assert options.header_length == 6
    assert options.checksum_length == 2
    assert options.wrapper_length() == 8


def test_wrapper_length_follows_options():
    options = Options(header_length=4, checksum_length=1)
    assert options.wrapper_length() == options.header_length + options.checksum_length


def test_declare_sets_ids_from_first_declaration():
    assert AckSample.CLASS_ID == 0x05
    assert AckSample.MESSAGE_ID == 0x01


def test_can_decode_declared_and_added_keys():
    assert can_decode(AckSample, 0x05, 0x01)
    assert can_decode(AckSample, 0x05, 0x00)
    assert not can_decode(AckSample, 0x05, 0x02)
    assert not can_decode(RateSample, 0x05, 0x01)


def test_undeclared_type_decodes_nothing():
    assert not can_decode(Undeclared, 0x00, 0x00)


def test_add_key_rejects_out_of_range_ids():
    with pytest.raises(ValueError):
        add_key(Undeclared, 256, 0)
    with pytest.raises(ValueError):
        add_key(Undeclared, 0, -1)


def test_encode_fixed_layout():
    assert encode(AckSample(cls_id=6, msg_id=0)) == bytes([6, 0])
    assert serialized_length(AckSample()) == 2


def test_encode_is_little_endian():
    payload = encode(RateSample(meas_rate=0x0102, nav_rate=1, time_ref=0))
    assert payload[:2] == bytes([0x02, 0x01])
    assert serialized_length(RateSample()) == len(payload)


def test_round_trip_fixed_layout():
    message = RateSample(meas_rate=200, nav_rate=5, time_ref=1)
    assert decode(RateSample, encode(message)) == message


def test_decode_ignores_trailing_bytes():
    message = AckSample(cls_id=6, msg_id=1)
    assert decode(AckSample, encode(message) + b"\xff\xff") == message


def test_decode_short_payload_raises():
    with pytest.raises(ValueError):
        decode(RateSample, b"\x01\x02")


def test_encode_out_of_range_value_raises():
    with pytest.raises(ValueError):
        encode(AckSample(cls_id=300))


def test_custom_payload_round_trip():
    message = VariableSample([1, 70000, 0xFFFFFFFF])
    payload = encode(message)
    assert serialized_length(message) == len(payload) == 12
    assert decode(VariableSample, payload) == message


def test_mismatched_layout_raises_type_error():
    with pytest.raises(TypeError):
        encode(BadLayout())


def test_plain_object_cannot_be_encoded():
    with pytest.raises(TypeError):
        encode(object())