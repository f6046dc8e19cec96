"""Device identities: 16-bit values rendered as four upper-case hex digits."""
from __future__ import annotations

import random
import string
from typing import Optional

BROADCAST = "0000"
DISCOVERY = "FFFF"


def int_to_id(value: int) -> str:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"device id out of range: {value}")
    return f"{value:04X}"


def id_to_int(device_id: str) -> int:
    return int(normalize_id(device_id), 16)


def normalize_id(device_id: str) -> str:
    text = str(device_id).strip()
    if not 1 <= len(text) <= 4 or not all(c in string.hexdigits for c in text):
        raise ValueError(f"device id must be 1-4 hex digits: {device_id!r}")
    return int_to_id(int(text, 16))


def generate_device_id(rng: Optional[random.Random] = None) -> str:
    # Never hands out one of the reserved ids.
    rng = rng or random.SystemRandom()
    return int_to_id(rng.randint(0x0001, 0xFFFE))


def is_reserved(device_id: str) -> bool:
    return normalize_id(device_id) in (BROADCAST, DISCOVERY)
