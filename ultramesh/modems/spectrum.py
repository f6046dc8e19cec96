from __future__ import annotations

from typing import Optional

import numpy as np

# Floor for log10 on silent bins.
_MIN_MAGNITUDE = 1e-12


class SpectrumAnalyser:
    """
    Frequency-domain view of the most recent `fft_size` channel samples.

    Blackman window, magnitude normalised by the FFT size, exponential
    averaging between successive frames and a dB read-out, so a full-scale
    sine lands around -14 dB and silence far below any sensible threshold.
    """

    def __init__(self, fft_size: int, smoothing: float = 0.2) -> None:
        self.fft_size = int(fft_size)
        self.smoothing = float(smoothing)
        self._window = np.blackman(self.fft_size).astype(np.float64)
        self._smoothed: Optional[np.ndarray] = None

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def reset(self) -> None:
        self._smoothed = None

    def _magnitude(self, samples: np.ndarray) -> np.ndarray:
        x = np.zeros(self.fft_size, dtype=np.float64)
        seg = np.asarray(samples, dtype=np.float64)[-self.fft_size:]
        x[self.fft_size - seg.size:] = seg
        spectrum = np.fft.rfft(x * self._window)[: self.bin_count]
        return np.abs(spectrum) / self.fft_size

    def frequency_data(self, samples: np.ndarray) -> np.ndarray:
        """Smoothed dB spectrum; advances the averaging state."""
        mag = self._magnitude(samples)
        if self._smoothed is None or self.smoothing == 0.0:
            self._smoothed = mag
        else:
            self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * mag
        return 20.0 * np.log10(np.maximum(self._smoothed, _MIN_MAGNITUDE))

    def snapshot(self, samples: np.ndarray) -> np.ndarray:
        """Unsmoothed dB spectrum; leaves the averaging state alone."""
        return 20.0 * np.log10(np.maximum(self._magnitude(samples), _MIN_MAGNITUDE))
