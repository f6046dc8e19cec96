"""
Pytest configuration for UltraMesh tests.

Fixtures for key material, the in-memory acoustic channel and a scripted
modem that lets engine tests run without any audio.
"""
import random
import sys
from pathlib import Path
from typing import List, Tuple

import pytest

# Ensure ultramesh package is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from ultramesh.crypto import KeyExchange, SessionKeyStore
from ultramesh.engine import HostCallbacks, UltraMeshEngine
from ultramesh.modems import ModemConfig
from ultramesh.modems.framing import Packet
from ultramesh.timers import TimerQueue
from ultramesh.transport import LoopbackChannel

# Settings under which whole frames survive a trip through the loopback
# channel: short analysis window, and held tones re-read once per slot.
OTA_MODEM = dict(fft_size=1024, repeat_after_slots=1.0)

# Loopback samples per receive-loop step (5 ms at 48 kHz).
HOP = 240


class ManualClock:
    def __init__(self, start: float = 0.0) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class ScriptedModem:
    """
    IModem stand-in. transmit() records (target, sender, payload) and, when
    linked to a medium, delivers the frame to every other attached engine.
    """

    def __init__(self, busy: bool = False) -> None:
        self.busy = busy
        self.sent: List[Tuple[str, str, bytes]] = []
        self.medium: "Medium | None" = None
        self.listening = False

    def transmit(self, target: str, sender: str, payload: bytes) -> bool:
        if self.busy:
            return False
        self.sent.append((target, sender, payload))
        if self.medium is not None:
            self.medium.broadcast(self, Packet(target, sender, payload))
        return True

    def start_listening(self) -> bool:
        self.listening = True
        return True

    def stop_listening(self) -> None:
        self.listening = False

    def poll(self) -> List[Packet]:
        return []

    def is_channel_busy(self) -> bool:
        return self.busy


class Medium:
    """Queues frames per listener; deliver() hands them to the engines."""

    def __init__(self) -> None:
        self.members: List[Tuple[ScriptedModem, UltraMeshEngine]] = []
        self.queue: List[Tuple[UltraMeshEngine, Packet]] = []
        self.tamper = None

    def attach(self, modem: ScriptedModem, engine: UltraMeshEngine) -> None:
        modem.medium = self
        self.members.append((modem, engine))

    def broadcast(self, source: ScriptedModem, packet: Packet) -> None:
        if self.tamper is not None:
            packet = self.tamper(packet)
        for modem, engine in self.members:
            if modem is not source:
                self.queue.append((engine, packet))

    def deliver(self) -> int:
        count = 0
        while self.queue:
            engine, packet = self.queue.pop(0)
            engine.feed_packet(packet)
            count += 1
        return count


class Recorder:
    """HostCallbacks sink that keeps everything it is handed."""

    def __init__(self) -> None:
        self.logs: List[Tuple[str, object]] = []
        self.messages = []
        self.events = []
        self.corrections: List[int] = []

    def callbacks(self, confirm=None) -> HostCallbacks:
        return HostCallbacks(
            on_log=lambda level, payload: self.logs.append((level, payload)),
            on_corrections=self.corrections.append,
            on_message=self.messages.append,
            on_event=lambda event_type, details: self.events.append((event_type, details)),
            confirm=confirm,
        )

    def event_types(self) -> List[str]:
        return [e for e, _ in self.events]


def make_engine(device_id: str, modem=None, clock=None, recorder=None, **kwargs):
    modem = modem or ScriptedModem()
    clock = clock or ManualClock()
    recorder = recorder or Recorder()
    timers = TimerQueue(clock=clock)
    engine = UltraMeshEngine(
        device_id,
        modem,
        kwargs.pop("key_exchange", None) or KeyExchange(),
        SessionKeyStore(),
        timers,
        callbacks=recorder.callbacks(kwargs.pop("confirm", None)),
        rng=kwargs.pop("rng", random.Random(7)),
        **kwargs,
    )
    return engine, modem, recorder, timers


def settle(pair, rounds: int = 6, step: float = 2.5) -> None:
    """Let a linked pair exchange frames and fire due timers until quiet."""
    for _ in range(rounds):
        pair["medium"].deliver()
        pair["clock"].advance(step)
        pair["a_timers"].run_due()
        pair["b_timers"].run_due()
    pair["medium"].deliver()


def run_loopback(channel: LoopbackChannel, nodes, seconds: float, until=None) -> None:
    """Advance the shared channel one hop at a time, ticking every node."""
    steps = int(seconds * channel.sample_rate_hz / HOP)
    for _ in range(steps):
        channel.advance(HOP)
        for node in nodes:
            node.tick()
        if until is not None and until():
            return


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def alice_bob_keys():
    """Two independent X25519 identities."""
    return KeyExchange(), KeyExchange()


@pytest.fixture
def loopback():
    return LoopbackChannel(sample_rate_hz=48000, seed=1234)


@pytest.fixture
def ota_config():
    return ModemConfig(**OTA_MODEM)


@pytest.fixture
def linked_pair(clock):
    """Two engines, 0001 and 0002, sharing a scripted medium and one clock."""
    medium = Medium()
    a, a_modem, a_rec, a_timers = make_engine("0001", clock=clock)
    b, b_modem, b_rec, b_timers = make_engine("0002", clock=clock)
    medium.attach(a_modem, a)
    medium.attach(b_modem, b)
    return {
        "medium": medium,
        "clock": clock,
        "a": a, "a_modem": a_modem, "a_rec": a_rec, "a_timers": a_timers,
        "b": b, "b_modem": b_modem, "b_rec": b_rec, "b_timers": b_timers,
    }


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "requires_audio: mark test as requiring a PortAudio device"
    )
    config.addinivalue_line(
        "markers", "slow: over-the-air loopback runs of several simulated seconds"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests that need a sound card if none is available."""
    audio_available = False
    try:
        import sounddevice
        sounddevice.query_devices(kind="input")
        audio_available = True
    except Exception:
        pass

    if not audio_available:
        skip_audio = pytest.mark.skip(reason="no PortAudio input device available")
        for item in items:
            if "requires_audio" in item.keywords:
                item.add_marker(skip_audio)
