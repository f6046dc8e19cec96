"""
Events are inputs to the session state machine.

Inbound packets come from the modem, session results come back from the
engine's crypto step, the rest are host intents and timers.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..modems.framing import Packet


@dataclass(frozen=True)
class Event:
    """Base class for all protocol events."""
    pass


# === Link Events ===

@dataclass(frozen=True)
class PacketReceived(Event):
    """The modem decoded a frame."""
    packet: Packet


# === Crypto Results ===

@dataclass(frozen=True)
class SessionEstablished(Event):
    """A session key for `peer_id` is now in the key store."""
    peer_id: str
    reply: bool  # True when answering a KEY_REQ


@dataclass(frozen=True)
class SessionFailed(Event):
    """Key derivation for `peer_id` failed; nothing was stored."""
    peer_id: str
    reason: str


# === Application Events ===

@dataclass(frozen=True)
class AppSendText(Event):
    target: str
    text: str


@dataclass(frozen=True)
class StartScan(Event):
    """Broadcast a discovery probe."""
    pass


@dataclass(frozen=True)
class InitiateHandshake(Event):
    peer_id: str


# === Timer Events ===

@dataclass(frozen=True)
class TimerExpired(Event):
    timer_id: str  # e.g. "handshake_timeout:1A2B"
