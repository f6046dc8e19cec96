"""
UltraMesh exception hierarchy.

Link-layer conditions that are normal on a lossy broadcast medium
(IncompleteFrame) are caught inside the receiver; the rest surface at the
seam where a caller can act on them.
"""
from __future__ import annotations


class UltraMeshError(Exception):
    """Base class for all UltraMesh errors."""


class ChannelBusy(UltraMeshError):
    """Carrier sense refused a transmission."""


class FrameTooLong(UltraMeshError, ValueError):
    """Payload does not fit the frame length field / frame bit budget."""


class IncompleteFrame(UltraMeshError):
    """Bit buffer too short for the header or the declared payload."""


class InvalidPeerKey(UltraMeshError):
    """Received public key is not a usable point on the curve."""


class NoSession(UltraMeshError):
    """No session key exists for the peer."""


class DecryptionError(UltraMeshError):
    """Base for failures while opening an authenticated message."""


class MalformedCiphertext(DecryptionError):
    """Wire string is not `<hex nonce>:<hex ciphertext>`."""


class TamperDetected(DecryptionError):
    """Authentication tag did not verify."""


class AudioDeviceError(UltraMeshError):
    """Audio device could not be acquired or failed while open."""
