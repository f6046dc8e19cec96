"""
Sound-card channel backed by PortAudio through `sounddevice`.

The playback callback mixes scheduled segments against a running output
sample counter, which is the channel clock. The capture callback keeps a ring
of the most recent input samples for the analyser. Both callbacks run on the
PortAudio thread; they share state with the sampling loop under one lock.
"""
from __future__ import annotations

import importlib
import threading
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from ..errors import AudioDeviceError
from .interface import FloatBlock


def _load_sounddevice() -> Any:
    try:
        return importlib.import_module("sounddevice")
    except (ImportError, OSError) as exc:
        # OSError: the wheel imports but libportaudio is missing
        raise AudioDeviceError(f"sounddevice/PortAudio unavailable: {exc}") from exc


class SoundDeviceChannel:

    def __init__(self,
                 sample_rate_hz: int = 48000,
                 block_size: int = 1024,
                 ring_samples: int = 1 << 14,
                 input_device: Optional[int] = None,
                 output_device: Optional[int] = None,
                 logger: Optional[Callable[[str, object], None]] = None) -> None:
        self.sample_rate_hz = int(sample_rate_hz)
        self.block_size = int(block_size)
        self.input_device = input_device
        self.output_device = output_device
        self.log = logger or (lambda level, payload: None)

        self._lock = threading.Lock()
        self._ring = np.zeros(int(ring_samples), dtype=np.float32)
        self._segments: List[Tuple[int, np.ndarray]] = []
        self._out_pos = 0

        self._in_stream: Any = None
        self._out_stream: Any = None

    # ---------------------------------------------------------------- clock
    def current_time(self) -> float:
        self._ensure_output()
        with self._lock:
            return self._out_pos / self.sample_rate_hz

    # ---------------------------------------------------------------- TX
    def schedule(self, pcm: FloatBlock, start_time: float) -> None:
        self._ensure_output()
        start = int(round(start_time * self.sample_rate_hz))
        with self._lock:
            self._segments.append((max(start, self._out_pos), np.asarray(pcm, dtype=np.float32)))

    def _ensure_output(self) -> None:
        if self._out_stream is not None:
            return
        sd = _load_sounddevice()
        try:
            stream = sd.OutputStream(
                samplerate=self.sample_rate_hz,
                blocksize=self.block_size,
                channels=1,
                dtype="float32",
                device=self.output_device,
                callback=self._output_callback,
            )
            stream.start()
        except Exception as exc:
            raise AudioDeviceError(f"cannot open output device: {exc}") from exc
        self._out_stream = stream
        self.log("info", f"[DSP]: output open at {self.sample_rate_hz} Hz")

    def _output_callback(self, outdata, frames, time_info, status) -> None:
        if status:
            self.log("warn", f"[DSP]: output status {status}")
        buf = np.zeros(frames, dtype=np.float32)
        with self._lock:
            start = self._out_pos
            end = start + frames
            keep: List[Tuple[int, np.ndarray]] = []
            for seg_start, pcm in self._segments:
                lo = max(start, seg_start)
                hi = min(end, seg_start + pcm.size)
                if lo < hi:
                    buf[lo - start:hi - start] += pcm[lo - seg_start:hi - seg_start]
                if seg_start + pcm.size > end:
                    keep.append((seg_start, pcm))
            self._segments = keep
            self._out_pos = end
        outdata[:, 0] = np.clip(buf, -1.0, 1.0)

    # ---------------------------------------------------------------- RX
    def open_input(self) -> None:
        if self._in_stream is not None:
            return
        sd = _load_sounddevice()
        try:
            # AGC / noise suppression would eat the tones; PortAudio applies none.
            stream = sd.InputStream(
                samplerate=self.sample_rate_hz,
                blocksize=self.block_size,
                channels=1,
                dtype="float32",
                device=self.input_device,
                callback=self._input_callback,
            )
            stream.start()
        except Exception as exc:
            raise AudioDeviceError(f"cannot open input device: {exc}") from exc
        self._in_stream = stream

    def close_input(self) -> None:
        if self._in_stream is not None:
            self._in_stream.stop()
            self._in_stream.close()
            self._in_stream = None

    def _input_callback(self, indata, frames, time_info, status) -> None:
        if status:
            self.log("warn", f"[DSP]: input status {status}")
        with self._lock:
            block = indata[:, 0]
            n = min(block.size, self._ring.size)
            self._ring = np.roll(self._ring, -n)
            self._ring[-n:] = block[-n:]

    def capture(self, count: int) -> FloatBlock:
        with self._lock:
            return self._ring[-int(count):].copy()

    # ---------------------------------------------------------------- lifecycle
    def close(self) -> None:
        self.close_input()
        if self._out_stream is not None:
            self._out_stream.stop()
            self._out_stream.close()
            self._out_stream = None
