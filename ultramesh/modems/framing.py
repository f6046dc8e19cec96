"""
Bit-level framing.

    target:16 | sender:16 | len:8 | Hamming(7,4)(payload)

All header fields are unsigned, MSB first. The preamble is a tone, not bits,
so it does not appear here.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..errors import FrameTooLong, IncompleteFrame
from ..fec import BITS_PER_BYTE, hamming_stream_to_text, text_to_hamming_stream
from ..identity import id_to_int, int_to_id
from .imodem import HEADER_BITS, MAX_LENGTH_FIELD


@dataclass(frozen=True)
class Packet:
    target: str
    sender: str
    payload: bytes
    corrections: int = 0
    received_at: Optional[float] = None


def _int_to_bits(value: int, width: int) -> List[int]:
    return [(value >> shift) & 1 for shift in range(width - 1, -1, -1)]


def _bits_to_int(bits: Sequence[int]) -> int:
    out = 0
    for b in bits:
        out = (out << 1) | (int(b) & 1)
    return out


def frame_bit_length(payload_len: int) -> int:
    return HEADER_BITS + BITS_PER_BYTE * payload_len


def build_frame_bits(target: str, sender: str, payload: bytes) -> List[int]:
    if len(payload) > MAX_LENGTH_FIELD:
        raise FrameTooLong(f"payload is {len(payload)} bytes, length field holds {MAX_LENGTH_FIELD}")
    bits = _int_to_bits(id_to_int(target), 16)
    bits += _int_to_bits(id_to_int(sender), 16)
    bits += _int_to_bits(len(payload), 8)
    bits += text_to_hamming_stream(payload)
    return bits


def expected_frame_bits(bits: Sequence[int]) -> Optional[int]:
    """Total frame length announced by the header, None until the header is in."""
    if len(bits) < HEADER_BITS:
        return None
    return frame_bit_length(_bits_to_int(bits[32:40]))


def decode_frame_bits(bits: Sequence[int], received_at: Optional[float] = None) -> Packet:
    if len(bits) < HEADER_BITS:
        raise IncompleteFrame(f"{len(bits)} bits, header needs {HEADER_BITS}")
    length = _bits_to_int(bits[32:40])
    needed = frame_bit_length(length)
    if len(bits) < needed:
        raise IncompleteFrame(f"{len(bits)} bits, frame of {length} bytes needs {needed}")

    decoded = hamming_stream_to_text(bits[HEADER_BITS:needed])
    return Packet(
        target=int_to_id(_bits_to_int(bits[0:16])),
        sender=int_to_id(_bits_to_int(bits[16:32])),
        payload=decoded.decoded_text,
        corrections=decoded.corrections,
        received_at=received_at,
    )
