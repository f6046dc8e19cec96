"""
UltraMesh session protocol - pure functional state machine.

SessionProtocol.step() takes state and event and returns the new state plus
the actions the engine must execute.
"""
from .state import NodeState, Peer
from .messages import (
    ControlMessage,
    Ping,
    Ack,
    KeyRequest,
    KeyAck,
    Data,
    InboundMessage,
    Security,
    decode_payload,
    encode_payload,
)
from .events import (
    Event,
    PacketReceived,
    SessionEstablished,
    SessionFailed,
    AppSendText,
    StartScan,
    InitiateHandshake,
    TimerExpired,
)
from .actions import (
    Action,
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
from .machine import SessionProtocol, handshake_timer_id

__all__ = [
    # State
    "NodeState",
    "Peer",
    # Payloads
    "ControlMessage",
    "Ping",
    "Ack",
    "KeyRequest",
    "KeyAck",
    "Data",
    "InboundMessage",
    "Security",
    "decode_payload",
    "encode_payload",
    # Events
    "Event",
    "PacketReceived",
    "SessionEstablished",
    "SessionFailed",
    "AppSendText",
    "StartScan",
    "InitiateHandshake",
    "TimerExpired",
    # Actions
    "Action",
    "Transmit",
    "TransmitAfterJitter",
    "DeriveSession",
    "EncryptAndTransmit",
    "DecryptAndDeliver",
    "TimerStart",
    "TimerCancel",
    "AppDeliver",
    "AppNotify",
    "Log",
    # Protocol
    "SessionProtocol",
    "handshake_timer_id",
]
