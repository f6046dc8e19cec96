"""
UltraMesh acoustic channels.

The modem talks to the shared audio space through IAcousticChannel.
"""
from .interface import IAcousticChannel, FloatBlock
from .loopback import LoopbackChannel
from .audio import SoundDeviceChannel

__all__ = [
    "IAcousticChannel",
    "FloatBlock",
    "LoopbackChannel",
    "SoundDeviceChannel",
]
