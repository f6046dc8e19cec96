"""
A single UltraMesh node: identity, modem, crypto, engine and timers wired to
one acoustic channel, plus the cooperative sampling loop that drives them.
"""
from __future__ import annotations

import random
import threading
import time
from typing import List, Optional

from .config import NodeConfig
from .crypto import KeyExchange, SessionKeyStore
from .engine import HostCallbacks, UltraMeshEngine
from .identity import generate_device_id, normalize_id
from .modems import ThreeToneModem
from .modems.framing import Packet
from .protocol import Peer
from .timers import TimerQueue
from .transport.interface import IAcousticChannel


class Node:

    def __init__(self,
                 channel: IAcousticChannel,
                 config: Optional[NodeConfig] = None,
                 callbacks: Optional[HostCallbacks] = None,
                 device_id: Optional[str] = None,
                 key_exchange: Optional[KeyExchange] = None,
                 rng: Optional[random.Random] = None) -> None:
        self.config = config or NodeConfig()
        self.callbacks = callbacks or HostCallbacks()
        self.channel = channel

        if device_id is not None:
            self.device_id = normalize_id(device_id)
        elif self.config.device_id is not None:
            self.device_id = self.config.device_id
        else:
            self.device_id = generate_device_id(rng)

        # timer callbacks and the receive loop share the channel clock
        self.timers = TimerQueue(clock=channel.current_time)
        self.modem = ThreeToneModem(
            channel,
            cfg=self.config.modem,
            timers=self.timers,
            logger=self._log,
            on_corrections=self._on_corrections,
        )
        self.key_exchange = key_exchange or KeyExchange(debug_callback=lambda msg: self._log("debug", msg))
        self.keys = SessionKeyStore()
        self.engine = UltraMeshEngine(
            self.device_id,
            self.modem,
            self.key_exchange,
            self.keys,
            self.timers,
            callbacks=self.callbacks,
            ack_jitter_ms=self.config.ack_jitter_ms,
            handshake_timeout_ms=self.config.handshake_timeout_ms,
            rng=rng,
        )
        self._log("info", f"[Node] Identity assigned: {self.device_id}")

    def _log(self, level: str, payload: object) -> None:
        self.callbacks.on_log(level, payload)

    def _on_corrections(self, count: int) -> None:
        self._log("info", f"[Node] FEC repaired {count} bits.")
        self.callbacks.on_corrections(count)

    # === Lifecycle ===

    def start(self) -> bool:
        """Open the microphone. False if the device could not be acquired."""
        return self.modem.start_listening()

    def stop(self) -> None:
        self.modem.stop_listening()

    @property
    def listening(self) -> bool:
        return self.modem.listening

    # === Sampling loop ===

    def tick(self) -> List[Packet]:
        """One receive-loop step: sample, dispatch decoded frames, run due timers."""
        packets = self.modem.poll()
        for packet in packets:
            self.engine.feed_packet(packet)
        self.timers.run_due()
        return packets

    def run_forever(self, stop_event: Optional[threading.Event] = None,
                    duration: Optional[float] = None) -> None:
        deadline = None if duration is None else time.monotonic() + duration
        while not (stop_event and stop_event.is_set()):
            if deadline is not None and time.monotonic() >= deadline:
                break
            self.tick()
            time.sleep(self.config.poll_interval)

    # === Host intents ===

    def send_message(self, target: str, text: str) -> None:
        self.engine.send_message(target, text)

    def scan(self) -> None:
        self.engine.scan()

    def initiate_handshake(self, peer_id: str, interactive: bool = True) -> bool:
        return self.engine.initiate_handshake(peer_id, interactive=interactive)

    @property
    def peers(self) -> List[Peer]:
        return self.engine.peers

    def is_secure(self, peer_id: str) -> bool:
        return self.engine.is_secure(peer_id)
