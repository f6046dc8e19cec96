import pytest

from ultramesh.crypto import NONCE_LEN, SEPARATOR, TAG_LEN, AuthenticatedChannel, SessionKeyStore
from ultramesh.errors import DecryptionError, MalformedCiphertext, NoSession, TamperDetected


@pytest.fixture
def pair(alice_bob_keys):
    """Alice (0001) and Bob (0002) channels sharing one session key."""
    alice_kx, bob_kx = alice_bob_keys
    alice_keys, bob_keys = SessionKeyStore(), SessionKeyStore()
    alice_keys.put("0002", alice_kx.derive_session_key(bob_kx.local_public_key()))
    bob_keys.put("0001", bob_kx.derive_session_key(alice_kx.local_public_key()))
    return AuthenticatedChannel(alice_keys), AuthenticatedChannel(bob_keys)


def flip_hex(text: str, index: int, mask: int = 0x1) -> str:
    nibble = int(text[index], 16) ^ mask
    return text[:index] + format(nibble, "x") + text[index + 1:]


def test_round_trip(pair):
    alice, bob = pair
    wire = alice.encrypt("0002", b"hello")
    assert bob.decrypt("0001", wire) == b"hello"


def test_wire_format(pair):
    alice, _ = pair
    wire = alice.encrypt("0002", b"hello")
    nonce_hex, ct_hex = wire.split(SEPARATOR)
    assert len(nonce_hex) == 2 * NONCE_LEN
    assert len(ct_hex) == 2 * (5 + TAG_LEN)
    assert len(wire) == 2 * NONCE_LEN + 1 + 2 * (5 + TAG_LEN)
    assert wire == wire.lower()


def test_fresh_nonce_each_time(pair):
    alice, _ = pair
    assert alice.encrypt("0002", b"same") != alice.encrypt("0002", b"same")


def test_no_session(pair):
    alice, bob = pair
    with pytest.raises(NoSession):
        alice.encrypt("0003", b"hi")
    with pytest.raises(NoSession):
        bob.decrypt("0003", "00:00")


@pytest.mark.parametrize("wire", [
    "no separator here",
    "aa:bb:cc",
    "zz" * 12 + ":00",
    "00" * 11 + ":" + "00" * 20,
    "00" * 12 + ":",
    "00" * 12 + ":" + "00" * 15,
])
def test_malformed(pair, wire):
    _, bob = pair
    with pytest.raises(MalformedCiphertext):
        bob.decrypt("0001", wire)


# "hello" is 5 bytes, so the field holds 10 ciphertext and 32 tag hex digits
@pytest.mark.parametrize("index", range(2 * (5 + TAG_LEN)))
@pytest.mark.parametrize("mask", [0x1, 0x8])
def test_bit_flip_in_ciphertext(pair, index, mask):
    alice, bob = pair
    wire = alice.encrypt("0002", b"hello")
    nonce_hex, ct_hex = wire.split(SEPARATOR)
    tampered = nonce_hex + SEPARATOR + flip_hex(ct_hex, index, mask)
    with pytest.raises(TamperDetected):
        bob.decrypt("0001", tampered)


def test_bit_flip_in_nonce(pair):
    alice, bob = pair
    wire = alice.encrypt("0002", b"hello")
    with pytest.raises(TamperDetected):
        bob.decrypt("0001", flip_hex(wire, 0))


def test_wrong_key(pair, alice_bob_keys):
    alice, _ = pair
    eve_keys = SessionKeyStore()
    eve_keys.put("0001", b"\x00" * 32)
    wire = alice.encrypt("0002", b"hello")
    with pytest.raises(DecryptionError):
        AuthenticatedChannel(eve_keys).decrypt("0001", wire)
