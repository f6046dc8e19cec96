"""
In-memory broadcast medium.

Every node attached to the same LoopbackChannel hears the sum of everything
scheduled on it. The clock only moves when the host calls advance(), which
makes runs deterministic.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from ..errors import AudioDeviceError
from .interface import FloatBlock


class LoopbackChannel:

    def __init__(self,
                 sample_rate_hz: int = 48000,
                 noise_amplitude: float = 0.0,
                 seed: Optional[int] = None,
                 history_samples: int = 1 << 16,
                 fail_input: bool = False) -> None:
        self.sample_rate_hz = int(sample_rate_hz)
        self.noise_amplitude = float(noise_amplitude)
        self.fail_input = fail_input
        self._rng = np.random.default_rng(seed)
        self._history = int(history_samples)
        self._now = 0
        self._segments: List[Tuple[int, np.ndarray]] = []
        self.input_open = False

    # ---------------------------------------------------------------- clock
    def current_time(self) -> float:
        return self._now / self.sample_rate_hz

    def advance(self, count: int) -> None:
        self._now += int(count)
        horizon = self._now - self._history
        self._segments = [(s, p) for s, p in self._segments if s + p.size > horizon]

    def advance_time(self, seconds: float) -> None:
        self.advance(int(round(seconds * self.sample_rate_hz)))

    # ---------------------------------------------------------------- TX
    def schedule(self, pcm: FloatBlock, start_time: float) -> None:
        start = max(int(round(start_time * self.sample_rate_hz)), self._now)
        self._segments.append((start, np.asarray(pcm, dtype=np.float32)))

    def pending_until(self) -> float:
        """Channel time at which the last scheduled segment ends."""
        if not self._segments:
            return self.current_time()
        return max(s + p.size for s, p in self._segments) / self.sample_rate_hz

    # ---------------------------------------------------------------- RX
    def open_input(self) -> None:
        if self.fail_input:
            raise AudioDeviceError("loopback input configured to fail")
        self.input_open = True

    def close_input(self) -> None:
        self.input_open = False

    def capture(self, count: int) -> FloatBlock:
        count = int(count)
        start = self._now - count
        out = np.zeros(count, dtype=np.float32)
        for seg_start, pcm in self._segments:
            lo = max(start, seg_start)
            hi = min(self._now, seg_start + pcm.size)
            if lo >= hi:
                continue
            out[lo - start:hi - start] += pcm[lo - seg_start:hi - seg_start]
        if self.noise_amplitude:
            out += (self._rng.standard_normal(count) * self.noise_amplitude).astype(np.float32)
        return out
