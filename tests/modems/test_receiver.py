"""
SymbolReceiver driven with synthetic classifications, one per sampling step.
"""
from typing import Iterable, List

import pytest

from ultramesh.modems import ModemConfig, Symbol
from ultramesh.modems.framing import build_frame_bits
from ultramesh.modems.receiver import RxMode, SymbolReceiver

P, Z, O, N = Symbol.PREAMBLE, Symbol.ZERO, Symbol.ONE, Symbol.NONE

STEP = 0.01


class Feeder:
    def __init__(self, cfg: ModemConfig = None):
        self.logs = []
        self.corrections = []
        self.rx = SymbolReceiver(cfg or ModemConfig(),
                                 logger=lambda level, payload: self.logs.append((level, payload)),
                                 on_corrections=self.corrections.append)
        self.t = 0.0
        self.packets = []

    def feed(self, symbols: Iterable[Symbol]) -> None:
        for s in symbols:
            self.t += STEP
            packet = self.rx.feed(s, self.t)
            if packet is not None:
                self.packets.append(packet)

    def hold(self, symbol: Symbol, steps: int) -> None:
        self.feed([symbol] * steps)

    def sync(self) -> None:
        # long enough to clear the sync holdoff
        self.hold(P, 20)

    def bits(self, bits: List[int], steps: int = 5) -> None:
        for b in bits:
            self.hold(O if b else Z, steps)


def alternating(n: int, first: int = 0) -> List[int]:
    return [(first + i) % 2 for i in range(n)]


class TestSync:

    def test_idle_ignores_data(self):
        f = Feeder()
        f.bits([0, 1, 0, 1])
        assert f.rx.mode is RxMode.IDLE
        assert f.rx.state.bits == []

    def test_preamble_needs_min_hold(self):
        f = Feeder()
        f.hold(P, 2)
        assert f.rx.mode is RxMode.IDLE
        f.hold(P, 1)
        assert f.rx.mode is RxMode.COLLECTING
        assert ("info", "[RX]: Sync...") in f.logs

    def test_noise_breaks_hold(self):
        f = Feeder()
        f.feed([P, P, N, P, P, N])
        assert f.rx.mode is RxMode.IDLE

    def test_holdoff_after_sync(self):
        f = Feeder()
        f.hold(P, 3)
        # hold is now -10; a data tone right away needs 13 steps to count
        f.hold(O, 12)
        assert f.rx.state.bits == []
        f.hold(O, 1)
        assert f.rx.state.bits == [1]


class TestCollect:

    def test_alternating_bits(self):
        f = Feeder()
        f.sync()
        f.bits(alternating(12))
        assert f.rx.state.bits == alternating(12)

    def test_debounce_rejects_glitches(self):
        f = Feeder()
        f.sync()
        f.bits([0])
        f.feed([O, O, Z, Z, Z, Z, Z])
        f.feed([O, N, O, O])
        assert f.rx.state.bits == [0]

    def test_repeated_symbol_collapses(self):
        f = Feeder()
        f.sync()
        f.bits([1, 1, 1, 0, 0, 1])
        assert f.rx.state.bits == [1, 0, 1]

    def test_gap_does_not_split_a_tone(self):
        f = Feeder()
        f.sync()
        f.bits([1])
        f.hold(N, 4)
        f.bits([1])
        assert f.rx.state.bits == [1]

    def test_preamble_with_no_bits_keeps_collecting(self):
        f = Feeder()
        f.sync()
        f.sync()
        assert f.rx.mode is RxMode.COLLECTING
        assert not any("re-sync" in str(m) for _, m in f.logs)

    def test_preamble_mid_frame_resyncs(self):
        f = Feeder()
        f.sync()
        f.bits(alternating(6))
        f.hold(P, 6)
        assert f.rx.mode is RxMode.COLLECTING
        assert f.rx.state.bits == []
        assert any("re-sync" in str(m) for _, m in f.logs)

    def test_max_frame_bits_forces_decode(self):
        cfg = ModemConfig(max_frame_bits=48)
        f = Feeder(cfg)
        f.sync()
        # header declares 0x55 bytes, far beyond the bound
        f.bits(alternating(48, first=0))
        assert f.rx.mode is RxMode.IDLE
        assert f.packets == []
        assert any("frame dropped" in str(m) for _, m in f.logs)

    def test_collect_timeout(self):
        cfg = ModemConfig(collect_timeout=0.5)
        f = Feeder(cfg)
        f.sync()
        f.bits([0, 1])
        f.hold(N, 60)
        assert f.rx.mode is RxMode.IDLE
        assert f.rx.state.bits == []

    def test_no_timeout_by_default(self):
        f = Feeder()
        f.sync()
        f.bits([0, 1])
        f.hold(N, 600)
        assert f.rx.mode is RxMode.COLLECTING
        assert f.rx.state.bits == [0, 1]


class TestRepeat:
    """repeat_after_slots re-reads a held tone once per slot duration."""

    def cfg(self):
        # 5 steps of 10 ms per 50 ms slot
        return ModemConfig(repeat_after_slots=1.0)

    def test_held_tone_counts_once_per_slot(self):
        f = Feeder(self.cfg())
        f.sync()
        f.bits([1, 1, 1, 0, 0, 1])
        assert f.rx.state.bits == [1, 1, 1, 0, 0, 1]

    def test_whole_frame_decodes(self):
        f = Feeder(self.cfg())
        f.sync()
        f.bits(build_frame_bits("0002", "0001", b"hello"))
        assert len(f.packets) == 1
        packet = f.packets[0]
        assert (packet.target, packet.sender, packet.payload) == ("0002", "0001", b"hello")
        # decoded on the third step of the last slot
        assert packet.received_at == pytest.approx(f.t - 2 * STEP)
        assert f.rx.mode is RxMode.IDLE

    def test_corrections_callback(self):
        f = Feeder(self.cfg())
        bits = build_frame_bits("0002", "0001", b"hi")
        bits[45] ^= 1
        f.sync()
        f.bits(bits)
        assert f.packets[0].payload == b"hi"
        assert f.corrections == [1]
        metric = [p for level, p in f.logs if level == "metric"][-1]
        assert metric["event"] == "frame_rx"
        assert metric["corrections"] == 1


def test_reset_clears_state():
    f = Feeder()
    f.sync()
    f.bits([1, 0])
    f.rx.reset()
    assert f.rx.mode is RxMode.IDLE
    assert f.rx.state.bits == []
