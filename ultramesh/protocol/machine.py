"""
Session / discovery state machine.

Implemented as a pure function:
    step(state, event) -> (new_state, actions)

No I/O, no randomness, no clock. The engine executes the returned actions
and feeds crypto results back in as events.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Callable

from ..crypto.channel import SEPARATOR
from ..identity import BROADCAST, DISCOVERY
from .state import NodeState, Peer
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
from .messages import (
    Ack,
    Data,
    InboundMessage,
    KeyAck,
    KeyRequest,
    Ping,
    Security,
    decode_payload,
    encode_payload,
)

StepResult = tuple[NodeState, list[Action]]

HANDSHAKE_TIMER_PREFIX = "handshake_timeout:"


def handshake_timer_id(peer_id: str) -> str:
    return HANDSHAKE_TIMER_PREFIX + peer_id


class SessionProtocol:
    """
    Usage:
        state = NodeState(device_id="1A2B", public_key_hex=kx.local_public_key().hex())
        state, actions = SessionProtocol.step(state, PacketReceived(packet))
        # engine executes actions...
    """

    @staticmethod
    def step(state: NodeState, event: Event) -> StepResult:
        handler = _HANDLERS.get(type(event))
        if handler:
            return handler(state, event)
        return (state, [])


# =============================================================================
# Inbound packets
# =============================================================================

def _register_peer(state: NodeState, peer_id: str) -> StepResult:
    if state.is_known(peer_id):
        return (state, [])
    return (
        state.with_peer(Peer(peer_id)),
        [
            Log("info", f"[SessionProtocol] Peer discovered: {peer_id}"),
            AppNotify("peer_discovered", {"peer": peer_id}),
        ]
    )


def _handle_packet(state: NodeState, event: PacketReceived) -> StepResult:
    packet = event.packet
    me = state.device_id
    sender = packet.sender

    if sender == me:
        # our own transmission heard back through the shared medium
        return (state, [Log("debug", f"[SessionProtocol] Ignoring own frame to {packet.target}")])

    message = decode_payload(packet.payload)
    for_me = packet.target == me

    if packet.target == DISCOVERY:
        if isinstance(message, Ping):
            return (
                state,
                [
                    Log("info", f"[SessionProtocol] Discovery probe from {sender}"),
                    TransmitAfterJitter(sender, encode_payload(Ack()), state.ack_jitter_ms),
                ]
            )
        return (state, [])

    match message:
        case Ack() if for_me:
            return _register_peer(state, sender)

        case KeyRequest(public_key_hex) if for_me:
            return (
                state,
                [
                    Log("info", f"[SessionProtocol] Handshake request from {sender}"),
                    DeriveSession(sender, public_key_hex, reply=True),
                ]
            )

        case KeyAck(public_key_hex) if for_me:
            return (
                state,
                [
                    Log("info", f"[SessionProtocol] Handshake reply from {sender}"),
                    DeriveSession(sender, public_key_hex, reply=False),
                ]
            )

        case Data(raw) if for_me and SEPARATOR.encode() in raw and state.is_secure(sender):
            return (
                state,
                [DecryptAndDeliver(sender, packet.target, raw.decode("ascii", errors="replace"),
                                   packet.received_at)]
            )

    if for_me or packet.target == BROADCAST:
        # a secure peer sending plaintext is a downgrade worth flagging
        security = Security.UNENCRYPTED if state.is_secure(sender) else Security.OPEN
        text = packet.payload.decode("utf-8", errors="replace")
        new_state, actions = _register_peer(state, sender)
        return (
            new_state,
            [AppDeliver(InboundMessage(sender, packet.target, text, security, packet.received_at))]
            + actions
        )

    return (state, [])


# =============================================================================
# Crypto results
# =============================================================================

def _handle_session_established(state: NodeState, event: SessionEstablished) -> StepResult:
    peer_id = event.peer_id
    was_pending = peer_id in state.pending_handshakes
    new_state = replace(
        state.with_peer(Peer(peer_id, secure=True)),
        pending_handshakes=state.pending_handshakes - {peer_id},
    )

    actions: list[Action] = []
    if was_pending:
        actions.append(TimerCancel(handshake_timer_id(peer_id)))
    if event.reply:
        actions.append(Log("info", f"[SessionProtocol] Secure handshake established with {peer_id}"))
    else:
        actions.append(Log("info", f"[SessionProtocol] Connection to {peer_id} is now encrypted"))
    actions.append(AppNotify("peer_secure", {"peer": peer_id,
                                             "role": "responder" if event.reply else "initiator"}))
    if event.reply:
        # the requester's last slot is still on the air when its frame decodes
        actions.append(TransmitAfterJitter(peer_id, encode_payload(KeyAck(state.public_key_hex)),
                                           state.ack_jitter_ms))
    return (new_state, actions)


def _handle_session_failed(state: NodeState, event: SessionFailed) -> StepResult:
    return (
        state,
        [
            Log("error", f"[SessionProtocol] Handshake with {event.peer_id} failed: {event.reason}"),
            AppNotify("handshake_failed", {"peer": event.peer_id, "reason": event.reason}),
        ]
    )


# =============================================================================
# Host intents
# =============================================================================

def _handle_app_send(state: NodeState, event: AppSendText) -> StepResult:
    plaintext = event.text.encode("utf-8")
    if state.is_secure(event.target):
        return (state, [EncryptAndTransmit(event.target, plaintext)])
    return (state, [Transmit(event.target, plaintext, user_initiated=True)])


def _handle_start_scan(state: NodeState, event: StartScan) -> StepResult:
    return (
        state,
        [
            Log("info", "[SessionProtocol] Scanning for peers"),
            Transmit(DISCOVERY, encode_payload(Ping()), user_initiated=True),
        ]
    )


def _handle_initiate_handshake(state: NodeState, event: InitiateHandshake) -> StepResult:
    peer_id = event.peer_id
    actions: list[Action] = [
        Log("info", f"[SessionProtocol] Requesting secure session with {peer_id}"),
        Transmit(peer_id, encode_payload(KeyRequest(state.public_key_hex)), user_initiated=True),
    ]
    if state.handshake_timeout_ms > 0:
        actions.append(TimerStart(handshake_timer_id(peer_id), state.handshake_timeout_ms))
    return (
        replace(state, pending_handshakes=state.pending_handshakes | {peer_id}),
        actions,
    )


def _handle_timer_expired(state: NodeState, event: TimerExpired) -> StepResult:
    if event.timer_id.startswith(HANDSHAKE_TIMER_PREFIX):
        peer_id = event.timer_id[len(HANDSHAKE_TIMER_PREFIX):]
        if peer_id not in state.pending_handshakes:
            return (state, [])
        # no automatic retry; the host decides whether to try again
        return (
            replace(state, pending_handshakes=state.pending_handshakes - {peer_id}),
            [
                Log("warn", f"[SessionProtocol] No handshake reply from {peer_id}"),
                AppNotify("handshake_timeout", {"peer": peer_id}),
            ]
        )

    return (state, [Log("warn", f"[SessionProtocol] Unknown timer expired: {event.timer_id}")])


# =============================================================================
# Handler dispatch table
# =============================================================================

_HANDLERS: dict[type, Callable[[NodeState, Event], StepResult]] = {
    PacketReceived: _handle_packet,
    SessionEstablished: _handle_session_established,
    SessionFailed: _handle_session_failed,
    AppSendText: _handle_app_send,
    StartScan: _handle_start_scan,
    InitiateHandshake: _handle_initiate_handshake,
    TimerExpired: _handle_timer_expired,
}
