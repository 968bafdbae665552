import pytest

from ubxlink.checksum import calculate_checksum, checksum_value

# ACK-ACK acknowledging CFG-PRT: B5 62 05 01 02 00 06 00 0E 37
ACK_BODY = bytes([0x05, 0x01, 0x02, 0x00, 0x06, 0x00])


def test_known_frame_checksum():
    assert calculate_checksum(ACK_BODY) == (0x0E, 0x37)


def test_known_frame_checksum_value_is_little_endian():
    assert checksum_value(ACK_BODY) == 0x370E


def test_empty_data_has_zero_checksum():
    assert calculate_checksum(b"") == (0, 0)
    assert checksum_value(b"") == 0


@pytest.mark.parametrize(
    "data", [ACK_BODY, bytearray(ACK_BODY), memoryview(ACK_BODY), list(ACK_BODY)]
)
def test_accepts_bytes_like_inputs(data):
    assert calculate_checksum(data) == calculate_checksum(ACK_BODY)


def test_results_stay_within_a_byte():
    ck_a, ck_b = calculate_checksum(bytes([0xFF]) * 1000)
    assert 0 <= ck_a <= 0xFF
    assert 0 <= ck_b <= 0xFF


def test_trailing_zero_keeps_ck_a_and_adds_it_to_ck_b():
    ck_a, ck_b = calculate_checksum(ACK_BODY)
    ck_a2, ck_b2 = calculate_checksum(ACK_BODY + b"\x00")
    assert ck_a2 == ck_a
    assert ck_b2 == (ck_b + ck_a) & 0xFF


def test_checksum_value_combines_both_bytes():
    data = bytes(range(50))
    ck_a, ck_b = calculate_checksum(data)
    assert checksum_value(data) == ck_a | (ck_b << 8)


def test_order_of_bytes_matters():
    assert calculate_checksum(b"\x01\x02") != calculate_checksum(b"\x02\x01")
    assert calculate_checksum(b"\x01\x02")[0] == calculate_checksum(b"\x02\x01")[0]