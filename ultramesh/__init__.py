from .config import NodeConfig, config_from_dict, load_config
from .crypto import AuthenticatedChannel, KeyExchange, SessionKeyStore
from .engine import HostCallbacks, UltraMeshEngine
from .identity import BROADCAST, DISCOVERY, generate_device_id
from .modems import ModemConfig, Packet, Symbol, ThreeToneModem
from .node import Node
from .protocol import InboundMessage, NodeState, Peer, Security, SessionProtocol
from .timers import TimerQueue
from .transport import LoopbackChannel, SoundDeviceChannel

__all__ = [
    "AuthenticatedChannel",
    "BROADCAST",
    "DISCOVERY",
    "HostCallbacks",
    "InboundMessage",
    "KeyExchange",
    "LoopbackChannel",
    "ModemConfig",
    "Node",
    "NodeConfig",
    "NodeState",
    "Packet",
    "Peer",
    "Security",
    "SessionKeyStore",
    "SessionProtocol",
    "SoundDeviceChannel",
    "Symbol",
    "ThreeToneModem",
    "TimerQueue",
    "UltraMeshEngine",
    "config_from_dict",
    "generate_device_id",
    "load_config",
]

__version__ = "0.1.0"
