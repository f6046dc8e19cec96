"""
Hamming(7,4) forward error correction.

Codeword bit order is p1 p2 d1 p3 d2 d3 d4 (positions 1..7, parity at the
powers of two). A byte travels as two codewords, high nibble first, so every
payload byte costs 14 bits on the air.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

BITS_PER_BLOCK = 7
BITS_PER_BYTE = 2 * BITS_PER_BLOCK


@dataclass(frozen=True)
class Decoded:
    value: int
    corrected: bool


@dataclass(frozen=True)
class StreamDecode:
    decoded_text: bytes
    corrections: int


def encode_nibble(value: int) -> Tuple[int, ...]:
    if not 0 <= value <= 0x0F:
        raise ValueError(f"nibble out of range: {value}")
    d1 = (value >> 3) & 1
    d2 = (value >> 2) & 1
    d3 = (value >> 1) & 1
    d4 = value & 1
    p1 = d1 ^ d2 ^ d4
    p2 = d1 ^ d3 ^ d4
    p3 = d2 ^ d3 ^ d4
    return (p1, p2, d1, p3, d2, d3, d4)


def decode_block(bits: Sequence[int]) -> Decoded:
    """
    Syndrome-decode one 7-bit block.

    A non-zero syndrome always flips the addressed bit, so two or more errors
    in a block are "corrected" into the wrong nibble. The channel's expected
    bit error rate makes that acceptable.
    """
    if len(bits) < BITS_PER_BLOCK:
        return Decoded(0, False)
    b = [int(x) & 1 for x in bits[:BITS_PER_BLOCK]]
    syndrome = (
        ((b[3] ^ b[4] ^ b[5] ^ b[6]) << 2)
        | ((b[1] ^ b[2] ^ b[5] ^ b[6]) << 1)
        | (b[0] ^ b[2] ^ b[4] ^ b[6])
    )
    corrected = False
    if syndrome:
        b[syndrome - 1] ^= 1
        corrected = True
    return Decoded((b[2] << 3) | (b[4] << 2) | (b[5] << 1) | b[6], corrected)


def text_to_hamming_stream(data: bytes) -> List[int]:
    out: List[int] = []
    for byte in data:
        out.extend(encode_nibble((byte >> 4) & 0x0F))
        out.extend(encode_nibble(byte & 0x0F))
    return out


def hamming_stream_to_text(bits: Iterable[int]) -> StreamDecode:
    stream = list(bits)
    text = bytearray()
    corrections = 0
    # trailing partial group is dropped
    for i in range(0, len(stream) - BITS_PER_BYTE + 1, BITS_PER_BYTE):
        hi = decode_block(stream[i:i + BITS_PER_BLOCK])
        lo = decode_block(stream[i + BITS_PER_BLOCK:i + BITS_PER_BYTE])
        corrections += int(hi.corrected) + int(lo.corrected)
        text.append((hi.value << 4) | lo.value)
    return StreamDecode(bytes(text), corrections)
