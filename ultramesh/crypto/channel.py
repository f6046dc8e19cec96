from __future__ import annotations

import os
from typing import Callable, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from ..errors import MalformedCiphertext, NoSession, TamperDetected
from .keyexchange import SessionKeyStore

NONCE_LEN = 12
TAG_LEN = 16
SEPARATOR = ":"


class AuthenticatedChannel:
    """
    Per-peer AEAD over the session key store.

    Every encrypt() draws a fresh random 96-bit nonce; the wire form is
    `hex(nonce):hex(ciphertext||tag)`.
    """

    def __init__(self, keys: SessionKeyStore,
                 debug_callback: Optional[Callable[[str], None]] = None) -> None:
        self.keys = keys
        self.debug = debug_callback or (lambda *a, **k: None)

    def _cipher(self, peer_id: str) -> ChaCha20Poly1305:
        key = self.keys.get(peer_id)
        if key is None:
            raise NoSession(f"no secure session with {peer_id}; handshake required")
        return ChaCha20Poly1305(key)

    def encrypt(self, peer_id: str, plaintext: bytes) -> str:
        cipher = self._cipher(peer_id)
        nonce = os.urandom(NONCE_LEN)
        ciphertext = cipher.encrypt(nonce, bytes(plaintext), None)
        self.debug(f"[AEAD] encrypt to {peer_id}: {len(plaintext)} -> {len(ciphertext)} bytes")
        return nonce.hex() + SEPARATOR + ciphertext.hex()

    def decrypt(self, peer_id: str, wire: str) -> bytes:
        cipher = self._cipher(peer_id)
        parts = wire.split(SEPARATOR)
        if len(parts) != 2:
            raise MalformedCiphertext(f"expected 2 fields, got {len(parts)}")
        try:
            nonce = bytes.fromhex(parts[0])
            ciphertext = bytes.fromhex(parts[1])
        except ValueError as exc:
            raise MalformedCiphertext(f"non-hex field: {exc}") from exc
        if len(nonce) != NONCE_LEN:
            raise MalformedCiphertext(f"nonce must be {NONCE_LEN} bytes, got {len(nonce)}")
        if len(ciphertext) < TAG_LEN:
            raise MalformedCiphertext(f"ciphertext shorter than the {TAG_LEN}-byte tag")
        try:
            plaintext = cipher.decrypt(nonce, ciphertext, None)
        except InvalidTag as exc:
            raise TamperDetected(f"authentication failed for message from {peer_id}") from exc
        self.debug(f"[AEAD] decrypt from {peer_id}: {len(ciphertext)} -> {len(plaintext)} bytes")
        return plaintext
