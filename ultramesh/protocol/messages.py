"""
Control-plane payloads and inbound deliveries.

A decoded packet payload is classified exactly once into one of the
ControlMessage kinds below; the state machine then matches on the kind.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

PING = b"PING"
ACK = b"ACK"
KEY_REQ_PREFIX = b"KEY_REQ:"
KEY_ACK_PREFIX = b"KEY_ACK:"


@dataclass(frozen=True)
class ControlMessage:
    """Base class for payload kinds."""
    pass


@dataclass(frozen=True)
class Ping(ControlMessage):
    pass


@dataclass(frozen=True)
class Ack(ControlMessage):
    pass


@dataclass(frozen=True)
class KeyRequest(ControlMessage):
    public_key_hex: str


@dataclass(frozen=True)
class KeyAck(ControlMessage):
    public_key_hex: str


@dataclass(frozen=True)
class Data(ControlMessage):
    """Anything else: open text or an encrypted wire string."""
    raw: bytes

    @property
    def text(self) -> str:
        return self.raw.decode("utf-8", errors="replace")


def decode_payload(payload: bytes) -> ControlMessage:
    if payload == PING:
        return Ping()
    if payload == ACK:
        return Ack()
    if payload.startswith(KEY_REQ_PREFIX):
        return KeyRequest(payload[len(KEY_REQ_PREFIX):].decode("ascii", errors="replace"))
    if payload.startswith(KEY_ACK_PREFIX):
        return KeyAck(payload[len(KEY_ACK_PREFIX):].decode("ascii", errors="replace"))
    return Data(payload)


def encode_payload(message: ControlMessage) -> bytes:
    match message:
        case Ping():
            return PING
        case Ack():
            return ACK
        case KeyRequest(public_key_hex):
            return KEY_REQ_PREFIX + public_key_hex.encode("ascii")
        case KeyAck(public_key_hex):
            return KEY_ACK_PREFIX + public_key_hex.encode("ascii")
        case Data(raw):
            return raw
    raise TypeError(f"not a control message: {message!r}")


class Security(Enum):
    SECURE = "secure"                  # decrypted with the peer's session key
    OPEN = "open"                      # plaintext from a peer without a session
    UNENCRYPTED = "unencrypted"        # plaintext from a peer that has a session
    DECRYPT_ERROR = "decrypt_error"    # integrity check failed


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    target: str
    text: str
    security: Security
    received_at: Optional[float] = None
