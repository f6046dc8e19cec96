"""
Receiver synchronisation state machine.

Raw classifications arrive once per sampling step. A symbol only counts once
it has held for `min_hold` consecutive steps; after an accept the hold counter
is pushed negative so one long tone is not read as a run of repeats. Data bits
are edge-triggered: a stable data symbol is appended only when it differs
from the previously accepted symbol, unless `repeat_after_slots` is set, in
which case a tone that is still held one slot later counts again.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, List, Optional

from ..errors import IncompleteFrame
from .framing import Packet, decode_frame_bits, expected_frame_bits
from .imodem import ModemConfig, Symbol


class RxMode(Enum):
    IDLE = auto()
    COLLECTING = auto()


@dataclass
class ReceiverState:
    mode: RxMode = RxMode.IDLE
    bits: List[int] = field(default_factory=list)
    last_accepted: Symbol = Symbol.NONE
    candidate: Symbol = Symbol.NONE
    hold: int = 0
    last_accept_at: float = 0.0


class SymbolReceiver:

    def __init__(self,
                 cfg: ModemConfig,
                 logger: Optional[Callable[[str, object], None]] = None,
                 on_corrections: Optional[Callable[[int], None]] = None) -> None:
        self.cfg = cfg
        self.log = logger or (lambda level, payload: None)
        self.on_corrections = on_corrections or (lambda count: None)
        self.state = ReceiverState()

        self._metric_frames_decoded = 0
        self._metric_frames_dropped = 0

    @property
    def mode(self) -> RxMode:
        return self.state.mode

    def reset(self) -> None:
        self.state = ReceiverState()

    def feed(self, raw: Symbol, now: float) -> Optional[Packet]:
        st = self.state

        if (st.mode is RxMode.COLLECTING and self.cfg.collect_timeout
                and now - st.last_accept_at > self.cfg.collect_timeout):
            self.log("debug", f"[RX]: collection abandoned after {len(st.bits)} bits")
            self._metric_frames_dropped += 1
            self.reset()
            st = self.state

        if raw is Symbol.NONE:
            st.hold = 0
            st.candidate = Symbol.NONE
            return None

        if raw is not st.candidate:
            st.candidate = raw
            # a change of tone keeps any refractory bias
            st.hold = min(st.hold, 0)
        st.hold += 1
        if st.hold < self.cfg.min_hold:
            return None

        if st.mode is RxMode.IDLE:
            if raw is Symbol.PREAMBLE:
                self._sync(now)
            return None

        if raw is Symbol.PREAMBLE:
            # preamble after data has started is a new frame
            if st.bits:
                self.log("debug", f"[RX]: re-sync, discarding {len(st.bits)} bits")
                self._metric_frames_dropped += 1
                self._sync(now)
            return None

        if raw is st.last_accepted and not self._repeat_due(now):
            return None

        st.bits.append(raw.bit)
        st.last_accepted = raw
        st.hold = -self.cfg.bit_holdoff
        st.last_accept_at = now

        expected = expected_frame_bits(st.bits)
        if expected is not None and len(st.bits) >= expected:
            return self._finish(now)
        if len(st.bits) >= self.cfg.max_frame_bits:
            return self._finish(now)
        return None

    def _repeat_due(self, now: float) -> bool:
        if not self.cfg.repeat_after_slots:
            return False
        window = self.cfg.repeat_after_slots * self.cfg.bit_duration
        return now - self.state.last_accept_at >= window - 1e-6

    def _sync(self, now: float) -> None:
        st = self.state
        st.mode = RxMode.COLLECTING
        st.bits = []
        st.last_accepted = Symbol.PREAMBLE
        st.hold = -self.cfg.sync_holdoff
        st.last_accept_at = now
        self.log("info", "[RX]: Sync...")

    def _finish(self, now: float) -> Optional[Packet]:
        bits = self.state.bits
        self.reset()
        try:
            packet = decode_frame_bits(bits, received_at=now)
        except IncompleteFrame as exc:
            self._metric_frames_dropped += 1
            self.log("debug", f"[RX]: frame dropped: {exc}")
            return None

        self._metric_frames_decoded += 1
        if packet.corrections:
            self.on_corrections(packet.corrections)
        self.log("metric", {
            "event": "frame_rx",
            "target": packet.target,
            "sender": packet.sender,
            "len": len(packet.payload),
            "corrections": packet.corrections,
            "frames": self._metric_frames_decoded,
            "dropped": self._metric_frames_dropped,
        })
        return packet
