from __future__ import annotations

import math
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..errors import AudioDeviceError, FrameTooLong
from ..timers import TimerQueue
from ..transport.interface import IAcousticChannel
from .framing import Packet, build_frame_bits
from .imodem import IModem, ModemConfig, Symbol
from .receiver import SymbolReceiver
from .spectrum import SpectrumAnalyser


class ThreeToneModem(IModem):
    """
    Three-tone FSK modem for the near-ultrasonic band.

    One tone marks the preamble, the other two carry 0 and 1. TX renders the
    whole frame with a phase-continuous oscillator and raised-cosine ramps at
    every slot edge, then hands it to the channel timeline. RX reads the
    spectrum at the three tone bins once per poll() and drives the
    SymbolReceiver.
    """

    def __init__(self,
                 channel: IAcousticChannel,
                 cfg: Optional[ModemConfig] = None,
                 timers: Optional[TimerQueue] = None,
                 logger: Optional[Callable[[str, object], None]] = None,
                 on_corrections: Optional[Callable[[int], None]] = None) -> None:
        self.log = logger or (lambda level, payload: None)
        self.channel = channel
        self.timers = timers
        self.cfg = ModemConfig(sample_rate_hz=channel.sample_rate_hz) if cfg is None else cfg
        if self.cfg.sample_rate_hz != channel.sample_rate_hz:
            raise ValueError(
                f"modem runs at {self.cfg.sample_rate_hz} Hz, channel at {channel.sample_rate_hz} Hz")

        self.analyser = SpectrumAnalyser(self.cfg.fft_size, self.cfg.smoothing)
        self.receiver = SymbolReceiver(self.cfg, logger=self.log, on_corrections=on_corrections)
        self.listening = False

        self._bin_preamble = self.cfg.bin_index(self.cfg.freq_preamble)
        self._bin_zero = self.cfg.bin_index(self.cfg.freq_zero)
        self._bin_one = self.cfg.bin_index(self.cfg.freq_one)

        self._metric_tx_frames = 0

        self.log("info", {
            "event": "cfg",
            "modem": "tone3",
            "sample_rate_hz": self.cfg.sample_rate_hz,
            "tones": [self.cfg.freq_preamble, self.cfg.freq_zero, self.cfg.freq_one],
            "bit_duration": self.cfg.bit_duration,
            "max_payload_bytes": self.cfg.max_payload_bytes,
        })

    # ---------------------------------------------------------------- TX
    def transmit(self, target: str, sender: str, payload: bytes) -> bool:
        if len(payload) > self.cfg.max_payload_bytes:
            raise FrameTooLong(
                f"payload is {len(payload)} bytes, limit is {self.cfg.max_payload_bytes}")

        if self.is_channel_busy():
            self.log("info", "[MAC]: Channel Busy.")
            return False

        bits = build_frame_bits(target, sender, payload)
        pcm = self.synthesize(bits)
        t0 = self.channel.current_time() + self.cfg.lead_in
        self.channel.schedule(pcm, t0)

        duration = pcm.size / self.cfg.sample_rate_hz
        if self.timers is not None:
            self.timers.call_later(self.cfg.lead_in + duration + self.cfg.cleanup_margin,
                                   self.log, "info", "[TX]: Complete.")
        self._metric_tx_frames += 1
        self.log("metric", {
            "event": "frame_tx",
            "target": target,
            "sender": sender,
            "len": len(payload),
            "bits": len(bits),
            "start": t0,
            "duration": duration,
            "frames": self._metric_tx_frames,
        })
        return True

    def synthesize(self, bits: Sequence[int]) -> np.ndarray:
        """Float PCM for preamble + `bits`, one ramped slot per bit."""
        cfg = self.cfg
        slot = cfg.slot_samples
        freqs = [cfg.freq_preamble] + [cfg.freq_one if b else cfg.freq_zero for b in bits]
        lengths = [slot * cfg.preamble_slots] + [slot] * len(bits)

        inst_freq = np.repeat(np.asarray(freqs, dtype=np.float64), lengths)
        phase = 2.0 * math.pi * np.cumsum(inst_freq) / cfg.sample_rate_hz
        envelope = np.concatenate([self._envelope(n) for n in lengths])
        return (cfg.amplitude * envelope * np.sin(phase)).astype(np.float32)

    def _envelope(self, n: int) -> np.ndarray:
        env = np.ones(n, dtype=np.float64)
        ramp = int(round(self.cfg.ramp_time * self.cfg.sample_rate_hz))
        ramp = min(ramp, n // 2)
        if ramp > 0:
            rise = 0.5 - 0.5 * np.cos(math.pi * np.arange(ramp) / ramp)
            env[:ramp] = rise
            env[n - ramp:] = rise[::-1]
        return env

    # ---------------------------------------------------------------- RX
    def start_listening(self) -> bool:
        if self.listening:
            return True
        try:
            self.channel.open_input()
        except AudioDeviceError as exc:
            self.log("error", f"[ERR]: Mic Denied. ({exc})")
            return False
        self.analyser.reset()
        self.receiver.reset()
        self.listening = True
        self.log("info", "[RX]: Listening...")
        return True

    def stop_listening(self) -> None:
        if not self.listening:
            return
        self.listening = False
        self.channel.close_input()
        self.receiver.reset()
        self.log("info", "[RX]: Stopped.")

    def poll(self) -> List[Packet]:
        if not self.listening:
            return []
        db = self.analyser.frequency_data(self.channel.capture(self.cfg.fft_size))
        packet = self.receiver.feed(self.classify(db), self.channel.current_time())
        return [packet] if packet is not None else []

    def classify(self, db: np.ndarray) -> Symbol:
        floor = self.cfg.noise_floor_db
        p = db[self._bin_preamble]
        z = db[self._bin_zero]
        o = db[self._bin_one]
        if p > floor:
            return Symbol.PREAMBLE
        if o > floor and o > z:
            return Symbol.ONE
        if z > floor and z > o:
            return Symbol.ZERO
        return Symbol.NONE

    def is_channel_busy(self) -> bool:
        # Without an open microphone there is nothing to sense.
        if not self.listening:
            return False
        db = self.analyser.snapshot(self.channel.capture(self.cfg.fft_size))
        return max(db[self._bin_zero], db[self._bin_one]) > self.cfg.busy_threshold_db
