from .hamming import (
    BITS_PER_BLOCK,
    BITS_PER_BYTE,
    Decoded,
    StreamDecode,
    decode_block,
    encode_nibble,
    hamming_stream_to_text,
    text_to_hamming_stream,
)

__all__ = [
    "BITS_PER_BLOCK",
    "BITS_PER_BYTE",
    "Decoded",
    "StreamDecode",
    "decode_block",
    "encode_nibble",
    "hamming_stream_to_text",
    "text_to_hamming_stream",
]
