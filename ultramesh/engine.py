"""
UltraMesh Engine - executes session protocol actions.

The engine bridges the pure SessionProtocol to concrete implementations:
- Modem (ThreeToneModem or any IModem)
- Crypto (KeyExchange, SessionKeyStore, AuthenticatedChannel)
- Timers (TimerQueue)
- Host callbacks (HostCallbacks)

Inbound packets and host intents become events; the returned actions are
executed in order. Key derivation completes inside the action that requests
it, so a session key is stored before the next packet is dispatched.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .crypto import AuthenticatedChannel, KeyExchange, SessionKeyStore
from .errors import ChannelBusy, DecryptionError, InvalidPeerKey
from .identity import normalize_id
from .modems.framing import Packet
from .modems.imodem import IModem
from .protocol import (
    SessionProtocol,
    NodeState,
    Peer,
    Event,
    Action,
    InboundMessage,
    Security,
    # Events
    PacketReceived,
    SessionEstablished,
    SessionFailed,
    AppSendText,
    StartScan,
    InitiateHandshake,
    TimerExpired,
    # Actions
    Transmit,
    TransmitAfterJitter,
    DeriveSession,
    EncryptAndTransmit,
    DecryptAndDeliver,
    TimerStart,
    TimerCancel,
    AppDeliver,
    AppNotify,
    Log,
)
from .timers import TimerHandle, TimerQueue

DECRYPTION_ERROR_TEXT = "Decryption Error"


def _no_log(level: str, payload: object) -> None:
    pass


@dataclass
class HostCallbacks:
    """Presentation-layer sinks. Every field is optional."""
    on_log: Callable[[str, object], None] = _no_log
    on_corrections: Callable[[int], None] = lambda count: None
    on_message: Callable[[InboundMessage], None] = lambda message: None
    on_event: Callable[[str, Dict[str, Any]], None] = lambda event_type, details: None
    confirm: Optional[Callable[[str], bool]] = None


class UltraMeshEngine:
    """
    Usage:
        engine = UltraMeshEngine(device_id, modem, KeyExchange(), SessionKeyStore(), timers)
        engine.callbacks.on_message = lambda m: print(m.sender, m.text)
        for packet in modem.poll():
            engine.feed_packet(packet)
        engine.send_message("1A2B", "hello")
    """

    def __init__(
        self,
        device_id: str,
        modem: IModem,
        key_exchange: KeyExchange,
        keys: SessionKeyStore,
        timers: TimerQueue,
        callbacks: Optional[HostCallbacks] = None,
        ack_jitter_ms: int = 2000,
        handshake_timeout_ms: int = 15_000,
        rng: Optional[random.Random] = None,
    ):
        self._modem = modem
        self._kx = key_exchange
        self._keys = keys
        self._aead = AuthenticatedChannel(keys)
        self._timers = timers
        self._rng = rng or random.Random()
        self.callbacks = callbacks or HostCallbacks()

        self._state = NodeState(
            device_id=normalize_id(device_id),
            public_key_hex=key_exchange.local_public_key().hex(),
            ack_jitter_ms=ack_jitter_ms,
            handshake_timeout_ms=handshake_timeout_ms,
        )
        self._active_timers: Dict[str, TimerHandle] = {}

    # === Properties ===

    @property
    def state(self) -> NodeState:
        return self._state

    @property
    def device_id(self) -> str:
        return self._state.device_id

    @property
    def peers(self) -> List[Peer]:
        return self._state.known_peers()

    def is_secure(self, peer_id: str) -> bool:
        return self._state.is_secure(normalize_id(peer_id))

    # === Event Feeding ===

    def feed_event(self, event: Event) -> None:
        """
        Run one protocol step and execute its actions.

        Raises ChannelBusy if a host-initiated transmission was refused by
        carrier sense. The step is then undone: the previous state is
        restored and the actions after the refused one are skipped.
        """
        previous = self._state
        new_state, actions = SessionProtocol.step(previous, event)
        self._state = new_state

        for action in actions:
            if not self._execute(action):
                self._state = previous
                target = getattr(action, "target", None)
                raise ChannelBusy(f"channel busy, transmission to {target} refused")

    def feed_packet(self, packet: Packet) -> None:
        self.feed_event(PacketReceived(packet))

    # === Host Intents ===

    def send_message(self, target: str, text: str) -> None:
        """Send text, encrypted when `target` is a secure peer."""
        self.feed_event(AppSendText(normalize_id(target), text))

    def scan(self) -> None:
        self.feed_event(StartScan())

    def initiate_handshake(self, peer_id: str, interactive: bool = True) -> bool:
        """Send KEY_REQ. Returns False if the host's confirm prompt declined."""
        peer_id = normalize_id(peer_id)
        confirm = self.callbacks.confirm
        if interactive and confirm is not None and not confirm(f"Start Secure Handshake with {peer_id}?"):
            self._log("info", f"[Engine] Handshake with {peer_id} cancelled by user")
            return False
        self.feed_event(InitiateHandshake(peer_id))
        return True

    # === Action Execution ===

    def _log(self, level: str, message: object) -> None:
        self.callbacks.on_log(level, message)

    def _transmit(self, target: str, payload: bytes, user_initiated: bool) -> bool:
        if self._modem.transmit(target, self._state.device_id, payload):
            self._log("debug", f"[Engine] Transmitting {len(payload)} bytes to {target}")
            return True
        if not user_initiated:
            self._log("warn", f"[Engine] Channel busy, reply to {target} dropped")
            return True
        return False

    def _execute(self, action: Action) -> bool:
        """Execute a single action. False only for a refused host transmission."""

        match action:
            case Log(level, message):
                self._log(level, message)

            case Transmit(target, payload, user_initiated):
                return self._transmit(target, payload, user_initiated)

            case TransmitAfterJitter(target, payload, max_delay_ms):
                delay = self._rng.uniform(0, max_delay_ms) / 1000.0
                self._timers.call_later(delay, self._transmit, target, payload, False)
                self._log("debug", f"[Engine] Reply to {target} in {delay * 1000:.0f}ms")

            case DeriveSession(peer_id, public_key_hex, reply):
                try:
                    try:
                        raw = bytes.fromhex(public_key_hex)
                    except ValueError as e:
                        raise InvalidPeerKey(f"public key is not hex: {e}") from e
                    key = self._kx.derive_session_key(raw)
                except InvalidPeerKey as e:
                    self.feed_event(SessionFailed(peer_id, str(e)))
                    return True
                self._keys.put(peer_id, key)
                self.feed_event(SessionEstablished(peer_id, reply))

            case EncryptAndTransmit(target, plaintext):
                wire = self._aead.encrypt(target, plaintext)
                return self._transmit(target, wire.encode("ascii"), True)

            case DecryptAndDeliver(sender, target, wire, received_at):
                try:
                    plaintext = self._aead.decrypt(sender, wire)
                    message = InboundMessage(sender, target, plaintext.decode("utf-8", errors="replace"),
                                             Security.SECURE, received_at)
                except DecryptionError as e:
                    self._log("warn", f"[Engine] Decrypt from {sender} failed: {e}")
                    message = InboundMessage(sender, target, DECRYPTION_ERROR_TEXT,
                                             Security.DECRYPT_ERROR, received_at)
                self.callbacks.on_message(message)

            case AppDeliver(message):
                self.callbacks.on_message(message)

            case AppNotify(event_type, details):
                self._log("info", f"[Engine] App event: {event_type} {details}")
                self.callbacks.on_event(event_type, details)

            case TimerStart(timer_id, duration_ms):
                previous = self._active_timers.pop(timer_id, None)
                if previous is not None:
                    previous.cancel()
                self._active_timers[timer_id] = self._timers.call_later(
                    duration_ms / 1000.0, self._fire_timer, timer_id)
                self._log("debug", f"[Engine] Timer requested: {timer_id} ({duration_ms}ms)")

            case TimerCancel(timer_id):
                handle = self._active_timers.pop(timer_id, None)
                if handle is not None:
                    handle.cancel()
                    self._log("debug", f"[Engine] Timer cancelled: {timer_id}")

            case _:
                self._log("warn", f"[Engine] Unknown action: {action}")

        return True

    def _fire_timer(self, timer_id: str) -> None:
        self._active_timers.pop(timer_id, None)
        self.feed_event(TimerExpired(timer_id))
