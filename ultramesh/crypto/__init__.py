from .keyexchange import KeyExchange, SessionKeyStore, PUBLIC_KEY_LEN, SESSION_KEY_LEN
from .channel import AuthenticatedChannel, NONCE_LEN, SEPARATOR, TAG_LEN

__all__ = [
    "AuthenticatedChannel",
    "KeyExchange",
    "SessionKeyStore",
    "PUBLIC_KEY_LEN",
    "SESSION_KEY_LEN",
    "NONCE_LEN",
    "SEPARATOR",
    "TAG_LEN",
]
