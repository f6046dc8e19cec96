from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Protocol, runtime_checkable

from ..fec import BITS_PER_BYTE

if TYPE_CHECKING:
    from .framing import Packet

HEADER_BITS = 40
MAX_LENGTH_FIELD = 0xFF


class Symbol(Enum):
    """Instantaneous classification of the three-tone channel."""
    NONE = "none"
    PREAMBLE = "P"
    ZERO = "0"
    ONE = "1"

    @property
    def is_data(self) -> bool:
        return self in (Symbol.ZERO, Symbol.ONE)

    @property
    def bit(self) -> int:
        if not self.is_data:
            raise ValueError(f"{self} carries no bit")
        return 1 if self is Symbol.ONE else 0


@dataclass(frozen=True)
class ModemConfig:
    sample_rate_hz: int = 48000

    # three-tone keying, all above the audible band
    freq_preamble: float = 18000.0
    freq_zero: float = 18800.0
    freq_one: float = 19600.0

    # TX timing (seconds)
    bit_duration: float = 0.050
    ramp_time: float = 0.010
    preamble_slots: int = 4
    lead_in: float = 0.1            # lets the output pipeline settle before the first slot
    cleanup_margin: float = 0.2
    amplitude: float = 0.8          # float PCM, full scale == 1.0

    # RX analysis
    fft_size: int = 2048
    smoothing: float = 0.2          # spectral averaging between polls, 0..1
    noise_floor_db: float = -85.0
    busy_threshold_db: float = -70.0

    # debounce
    min_hold: int = 3
    sync_holdoff: int = 10
    bit_holdoff: int = 2

    # 40 header bits + 14 coded bits per byte for a full 255-byte payload
    max_frame_bits: int = HEADER_BITS + BITS_PER_BYTE * MAX_LENGTH_FIELD
    collect_timeout: float = 0.0    # seconds without an accepted symbol; 0 disables
    # Accept a held data tone again after this many slot durations. 0 keeps
    # reception purely edge-triggered, so runs of equal bits collapse to one.
    repeat_after_slots: float = 0.0

    def __post_init__(self) -> None:
        nyquist = self.sample_rate_hz / 2.0
        for name in ("freq_preamble", "freq_zero", "freq_one"):
            f = getattr(self, name)
            if not 0.0 < f < nyquist:
                raise ValueError(f"{name}={f} must be in (0, {nyquist})")
        if len({self.freq_preamble, self.freq_zero, self.freq_one}) != 3:
            raise ValueError("tone frequencies must be distinct")
        if self.bit_duration <= 0:
            raise ValueError("bit_duration must be > 0")
        if not 0.0 <= 2 * self.ramp_time <= self.bit_duration:
            raise ValueError("ramp_time must fit twice into bit_duration")
        if self.preamble_slots < 1:
            raise ValueError("preamble_slots must be >= 1")
        if not 0.0 < self.amplitude <= 1.0:
            raise ValueError("amplitude must be in (0, 1]")
        if self.fft_size < 32 or self.fft_size & (self.fft_size - 1):
            raise ValueError("fft_size must be a power of two >= 32")
        if not 0.0 <= self.smoothing < 1.0:
            raise ValueError("smoothing must be in [0, 1)")
        if self.min_hold < 1:
            raise ValueError("min_hold must be >= 1")
        if self.max_frame_bits < HEADER_BITS:
            raise ValueError(f"max_frame_bits must be >= {HEADER_BITS}")
        if self.collect_timeout < 0:
            raise ValueError("collect_timeout must be >= 0")
        if self.repeat_after_slots < 0:
            raise ValueError("repeat_after_slots must be >= 0")

    @property
    def max_payload_bytes(self) -> int:
        return min(MAX_LENGTH_FIELD, (self.max_frame_bits - HEADER_BITS) // BITS_PER_BYTE)

    @property
    def slot_samples(self) -> int:
        return int(round(self.bit_duration * self.sample_rate_hz))

    def bin_index(self, freq: float) -> int:
        return int(freq * self.fft_size // self.sample_rate_hz)


@runtime_checkable
class IModem(Protocol):
    """
    Half-duplex acoustic modem.

    transmit() only schedules audio on the channel timeline and returns;
    poll() is one step of the receive loop and must not block.
    """

    def transmit(self, target: str, sender: str, payload: bytes) -> bool: ...
    def start_listening(self) -> bool: ...
    def stop_listening(self) -> None: ...
    def poll(self) -> List["Packet"]: ...
    def is_channel_busy(self) -> bool: ...
