"""
Acoustic channel interface.

The channel is the shared audio space: a timeline onto which a node
schedules float PCM for playback, and a microphone view of what is currently
audible. Times are seconds on the channel's own clock.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np
import numpy.typing as npt

FloatBlock = npt.NDArray[np.float32]


@runtime_checkable
class IAcousticChannel(Protocol):

    sample_rate_hz: int

    def current_time(self) -> float:
        """Current position of the playback/capture clock, in seconds."""
        ...

    # === TX Path ===

    def schedule(self, pcm: FloatBlock, start_time: float) -> None:
        """
        Queue `pcm` to be played starting at `start_time`.

        Returns immediately. A start time already in the past plays as soon as
        possible.
        """
        ...

    # === RX Path ===

    def open_input(self) -> None:
        """Acquire the microphone. Raises AudioDeviceError on failure."""
        ...

    def close_input(self) -> None:
        ...

    def capture(self, count: int) -> FloatBlock:
        """The most recent `count` captured samples, oldest first."""
        ...
