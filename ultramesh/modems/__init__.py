from .imodem import IModem, ModemConfig, Symbol
from .framing import Packet
from .tone3 import ThreeToneModem

__all__ = [
    "IModem",
    "ModemConfig",
    "Packet",
    "Symbol",
    "ThreeToneModem",
]
