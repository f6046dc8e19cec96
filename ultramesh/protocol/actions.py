"""
Actions are outputs from the session state machine.

The engine executes them against the modem, the crypto objects, the timer
queue and the host callbacks.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .messages import InboundMessage


@dataclass(frozen=True)
class Action:
    """Base class for all protocol actions."""
    pass


# === Link Actions ===

@dataclass(frozen=True)
class Transmit(Action):
    """Send `payload` to `target` now."""
    target: str
    payload: bytes
    user_initiated: bool = False  # refusal is raised to the host instead of logged


@dataclass(frozen=True)
class TransmitAfterJitter(Action):
    """Send after a uniform random delay in [0, max_delay_ms]."""
    target: str
    payload: bytes
    max_delay_ms: int


# === Crypto Actions ===

@dataclass(frozen=True)
class DeriveSession(Action):
    """Derive and store a session key from the peer's hex public key."""
    peer_id: str
    public_key_hex: str
    reply: bool


@dataclass(frozen=True)
class EncryptAndTransmit(Action):
    target: str
    plaintext: bytes


@dataclass(frozen=True)
class DecryptAndDeliver(Action):
    sender: str
    target: str
    wire: str
    received_at: Optional[float] = None


# === Timer Actions ===

@dataclass(frozen=True)
class TimerStart(Action):
    """Start or restart a timer."""
    timer_id: str
    duration_ms: int


@dataclass(frozen=True)
class TimerCancel(Action):
    timer_id: str


# === Application Callbacks ===

@dataclass(frozen=True)
class AppDeliver(Action):
    message: InboundMessage


@dataclass(frozen=True)
class AppNotify(Action):
    """Notify the host of a protocol event."""
    event_type: str  # "peer_discovered", "peer_secure", "handshake_failed", ...
    details: dict[str, Any] = field(default_factory=dict)


# === Logging ===

@dataclass(frozen=True)
class Log(Action):
    level: str  # "debug", "info", "warn", "error"
    message: str
