"""
Node protocol state.

NodeState is immutable; every transition produces a new instance. Session
keys are not part of it: a peer only becomes `secure` when the engine reports
that its key has been stored.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional


@dataclass(frozen=True)
class Peer:
    id: str
    secure: bool = False


@dataclass(frozen=True)
class NodeState:

    # Local identity
    device_id: str
    public_key_hex: str

    # Known peers by id
    peers: Dict[str, Peer] = field(default_factory=dict)

    # Peers we sent KEY_REQ to and have not heard KEY_ACK from
    pending_handshakes: FrozenSet[str] = frozenset()

    # Configuration
    ack_jitter_ms: int = 2000
    handshake_timeout_ms: int = 15_000     # 0 disables the timeout notification

    def peer(self, peer_id: str) -> Optional[Peer]:
        return self.peers.get(peer_id)

    def is_known(self, peer_id: str) -> bool:
        return peer_id in self.peers

    def is_secure(self, peer_id: str) -> bool:
        p = self.peers.get(peer_id)
        return bool(p and p.secure)

    def known_peers(self) -> List[Peer]:
        return list(self.peers.values())

    def with_peer(self, peer: Peer) -> "NodeState":
        peers = dict(self.peers)
        peers[peer.id] = peer
        return replace(self, peers=peers)
