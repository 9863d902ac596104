"""Frame sink interface."""

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray


class FrameSink(ABC):
    """
    Append-only destination for palette-indexed animation frames.

    Frames are written in call order and cannot be reordered or revisited.
    """

    @abstractmethod
    def write_frame(self, indices: NDArray[np.uint8], delay_ms: int) -> None:
        """
        Append one frame.

        Args:
            indices: Palette indices, shape [height, width]
            delay_ms: Display duration in milliseconds
        """
        pass
