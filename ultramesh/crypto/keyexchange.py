"""
X25519 key agreement for per-peer session keys.

The shared secret goes through HKDF-SHA256 (the hash of the Noise suite
25519_ChaChaPoly_SHA256) to produce a 256-bit ChaCha20-Poly1305 key.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterator, Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..errors import InvalidPeerKey

PUBLIC_KEY_LEN = 32
SESSION_KEY_LEN = 32
_HKDF_INFO = b"ultramesh session v1"


class KeyExchange:
    """Holds the process' single X25519 keypair. Stateless otherwise."""

    def __init__(self, private_key: Optional[X25519PrivateKey] = None,
                 debug_callback: Optional[Callable[[str], None]] = None) -> None:
        self._private = private_key or X25519PrivateKey.generate()
        self.debug = debug_callback or (lambda *a, **k: None)
        self._public_raw = self._private.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.debug(f"[KeyExchange] local_pub={self._public_raw.hex()}")

    @classmethod
    def from_private_bytes(cls, data: bytes, **kwargs) -> "KeyExchange":
        return cls(X25519PrivateKey.from_private_bytes(data), **kwargs)

    def local_public_key(self) -> bytes:
        return self._public_raw

    def derive_session_key(self, peer_public_key_raw: bytes) -> bytes:
        if len(peer_public_key_raw) != PUBLIC_KEY_LEN:
            raise InvalidPeerKey(
                f"public key must be {PUBLIC_KEY_LEN} bytes, got {len(peer_public_key_raw)}")
        try:
            peer = X25519PublicKey.from_public_bytes(bytes(peer_public_key_raw))
            shared = self._private.exchange(peer)
        except ValueError as exc:
            # low-order points yield an all-zero secret, which exchange() rejects
            raise InvalidPeerKey(f"unusable public key: {exc}") from exc

        key = HKDF(
            algorithm=hashes.SHA256(),
            length=SESSION_KEY_LEN,
            salt=None,
            info=_HKDF_INFO,
        ).derive(shared)
        self.debug(f"[KeyExchange] derived session key for peer_pub={bytes(peer_public_key_raw).hex()}")
        return key


class SessionKeyStore:
    """peer id -> session key. Written only after a successful derivation."""

    def __init__(self) -> None:
        self._keys: Dict[str, bytes] = {}

    def put(self, peer_id: str, key: bytes) -> None:
        if len(key) != SESSION_KEY_LEN:
            raise ValueError(f"session key must be {SESSION_KEY_LEN} bytes")
        self._keys[peer_id] = bytes(key)

    def get(self, peer_id: str) -> Optional[bytes]:
        return self._keys.get(peer_id)

    def peers(self) -> Iterator[str]:
        return iter(list(self._keys))

    def __contains__(self, peer_id: object) -> bool:
        return peer_id in self._keys

    def __len__(self) -> int:
        return len(self._keys)
