import pytest

from ultramesh.errors import FrameTooLong, IncompleteFrame
from ultramesh.fec import text_to_hamming_stream
from ultramesh.modems.framing import (
    Packet,
    build_frame_bits,
    decode_frame_bits,
    expected_frame_bits,
    frame_bit_length,
)


def test_header_layout():
    bits = build_frame_bits("1A2B", "00FF", b"hi")
    assert len(bits) == 40 + 2 * 14
    assert bits[:16] == [0, 0, 0, 1, 1, 0, 1, 0, 0, 0, 1, 0, 1, 0, 1, 1]
    assert bits[16:32] == [0] * 8 + [1] * 8
    assert bits[32:40] == [0, 0, 0, 0, 0, 0, 1, 0]
    assert bits[40:] == text_to_hamming_stream(b"hi")


def test_decode_exact_length():
    bits = build_frame_bits("0002", "0001", b"HELLO")
    packet = decode_frame_bits(bits, received_at=1.5)
    assert packet == Packet("0002", "0001", b"HELLO", corrections=0, received_at=1.5)


def test_trailing_bits_ignored():
    bits = build_frame_bits("FFFF", "0A0B", b"PING") + [1, 0, 1]
    packet = decode_frame_bits(bits)
    assert packet.target == "FFFF"
    assert packet.sender == "0A0B"
    assert packet.payload == b"PING"


def test_corrections_reported():
    bits = build_frame_bits("0002", "0001", b"OK")
    bits[40] ^= 1
    bits[40 + 7 + 6] ^= 1
    packet = decode_frame_bits(bits)
    assert packet.payload == b"OK"
    assert packet.corrections == 2


def test_empty_payload():
    bits = build_frame_bits("0000", "1234", b"")
    assert len(bits) == 40
    assert decode_frame_bits(bits).payload == b""


def test_short_header_raises():
    with pytest.raises(IncompleteFrame):
        decode_frame_bits([0, 1] * 19)


def test_short_body_raises():
    bits = build_frame_bits("0002", "0001", b"HELLO")
    with pytest.raises(IncompleteFrame):
        decode_frame_bits(bits[:-1])


def test_expected_length():
    bits = build_frame_bits("0002", "0001", b"abc")
    assert expected_frame_bits(bits[:39]) is None
    assert expected_frame_bits(bits[:40]) == frame_bit_length(3) == 82


def test_max_payload():
    payload = bytes(range(255))
    bits = build_frame_bits("0002", "0001", payload)
    assert len(bits) == 3610
    assert decode_frame_bits(bits).payload == payload
    with pytest.raises(FrameTooLong):
        build_frame_bits("0002", "0001", payload + b"!")
