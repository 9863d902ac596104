"""
Raster renderer turning a frame sequence into palette-indexed images.

Keeps one persistent raster of per-pixel state in a flat numpy buffer and,
for every frame in order:
1. decays the existing state (decay mode only)
2. merges the frame's pixel deltas
3. maps each cell through the colour ramp
4. hands the palette-index buffer to the frame sink

Accumulation policies:
- AgeAccumulation: cell holds the frame number it was last touched
- DecayAccumulation: cell holds a decaying running total of event counts
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Literal, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from tqdm import tqdm

from ..frames.storage import Frame
from .colormaps import ColourRamp, LookupPolicy
from .exporters.base import FrameSink

logger = logging.getLogger(__name__)

RenderMode = Literal["age", "decay"]

RENDER_MODES: Tuple[str, ...] = ("age", "decay")

DEFAULT_LOOKUP: Dict[str, str] = {
    "age": "scale",
    "decay": "threshold",
}

DEFAULT_DECAY_FACTOR = 0.95

# Decayed values below this are treated as zero
NEGLIGIBLE_VALUE = 1e-3


class AccumulationPolicy(ABC):
    """
    Per-pixel state over a flat raster of ``size`` cells.

    Subclasses define the sentinel for untouched cells and how deltas are
    folded into the state.
    """

    def __init__(self, size: int):
        self.size = size

    @abstractmethod
    def decay(self) -> None:
        """Apply per-frame decay to existing state."""
        pass

    @abstractmethod
    def merge(self, frame_number: int, pixels: NDArray[np.int64], magnitudes: NDArray[np.int64]) -> None:
        """Fold one frame's in-range deltas into the state."""
        pass

    @abstractmethod
    def touched(self) -> NDArray[np.bool_]:
        """Mask of cells that have received at least one delta."""
        pass

    @abstractmethod
    def values(self, frame_number: int) -> NDArray:
        """Per-cell values fed to the colour ramp for ``frame_number``."""
        pass


class AgeAccumulation(AccumulationPolicy):
    """Cells remember when they were last touched; colour shows how long ago."""

    def __init__(self, size: int):
        super().__init__(size)
        self.state = np.full(size, -1, dtype=np.int64)

    def decay(self) -> None:
        # Age grows implicitly as the frame number advances
        pass

    def merge(self, frame_number, pixels, magnitudes) -> None:
        self.state[pixels] = frame_number

    def touched(self) -> NDArray[np.bool_]:
        return self.state >= 0

    def values(self, frame_number: int) -> NDArray[np.int64]:
        return frame_number - self.state


class DecayAccumulation(AccumulationPolicy):
    """Cells hold a running total that is multiplied by ``decay_factor`` each frame."""

    def __init__(self, size: int, decay_factor: float = DEFAULT_DECAY_FACTOR):
        super().__init__(size)
        if not 0.0 < decay_factor < 1.0:
            raise ValueError(f"decay_factor must be in (0, 1), got {decay_factor}")
        self.decay_factor = decay_factor
        self.state = np.full(size, np.nan, dtype=np.float64)

    def decay(self) -> None:
        # NaN compares False, so untouched cells are left alone
        positive = self.state > 0.0
        self.state[positive] *= self.decay_factor
        self.state[positive & (self.state < NEGLIGIBLE_VALUE)] = 0.0

    def merge(self, frame_number, pixels, magnitudes) -> None:
        current = self.state[pixels]
        self.state[pixels] = np.where(np.isnan(current), 0.0, current)
        np.add.at(self.state, pixels, magnitudes.astype(np.float64))

    def touched(self) -> NDArray[np.bool_]:
        return ~np.isnan(self.state)

    def values(self, frame_number: int) -> NDArray[np.float64]:
        return self.state


def create_accumulator(
    mode: str,
    size: int,
    decay_factor: float = DEFAULT_DECAY_FACTOR,
) -> AccumulationPolicy:
    """Factory for accumulation policies ("age" or "decay")."""
    if mode == "age":
        return AgeAccumulation(size)
    elif mode == "decay":
        return DecayAccumulation(size, decay_factor=decay_factor)
    else:
        raise ValueError(f"Unknown render mode: {mode}. Must be 'age' or 'decay'")


class RasterRenderer:
    """
    Frame-ordered state machine producing palette-indexed rasters.

    Frames must arrive in increasing, contiguous order; the raster state is
    owned by the renderer and lives for one rendering pass.

    Example:
        ```python
        renderer = RasterRenderer(width=3600, height=1800, ramp=ColourRamp.red_fade())
        with GIFSink(Path("out.gif"), 3600, 1800, ramp.sink_palette()) as sink:
            renderer.render(load_frames(Path("frames.txt")), sink)
        ```
    """

    def __init__(
        self,
        width: int,
        height: int,
        ramp: ColourRamp,
        mode: RenderMode = "age",
        lookup: Optional[LookupPolicy] = None,
        decay_factor: float = DEFAULT_DECAY_FACTOR,
        frame_delay_ms: int = 33,
    ):
        """
        Initialize renderer.

        Args:
            width: Raster width in pixels
            height: Raster height in pixels
            ramp: Colour ramp used for every frame
            mode: "age" or "decay" accumulation
            lookup: Ramp lookup policy (defaults per mode)
            decay_factor: Per-frame multiplier in decay mode
            frame_delay_ms: Display duration of each emitted frame
        """
        if mode not in RENDER_MODES:
            raise ValueError(f"Unknown render mode: {mode}. Must be 'age' or 'decay'")

        self.width = width
        self.height = height
        self.size = width * height
        self.ramp = ramp
        self.mode = mode
        self.lookup = lookup or DEFAULT_LOOKUP[mode]
        self.frame_delay_ms = frame_delay_ms

        self.accumulator = create_accumulator(mode, self.size, decay_factor=decay_factor)
        self.last_frame: Optional[int] = None
        self.frames_rendered = 0
        self.dropped_deltas = 0

    def _check_order(self, frame_number: int) -> None:
        if self.last_frame is not None and frame_number != self.last_frame + 1:
            raise ValueError(
                f"Frame {frame_number} received after frame {self.last_frame}; "
                f"frames must be consumed in contiguous increasing order"
            )

    def render_frame(self, frame: Frame) -> NDArray[np.uint8]:
        """
        Advance the raster by one frame.

        Returns:
            Palette indices, shape [height, width]
        """
        self._check_order(frame.frame_number)

        self.accumulator.decay()

        if frame.deltas:
            deltas = np.asarray(frame.deltas, dtype=np.int64).reshape(-1, 2)
            pixels, magnitudes = deltas[:, 0], deltas[:, 1]
            in_range = (pixels >= 0) & (pixels < self.size)
            self.dropped_deltas += int((~in_range).sum())
            if in_range.any():
                self.accumulator.merge(frame.frame_number, pixels[in_range], magnitudes[in_range])

        indices = self.ramp.index_array(
            self.accumulator.values(frame.frame_number),
            self.accumulator.touched(),
            lookup=self.lookup,
        )

        self.last_frame = frame.frame_number
        self.frames_rendered += 1
        return indices.reshape(self.height, self.width)

    def render(
        self,
        frames: Iterable[Frame],
        sink: FrameSink,
        show_progress: bool = False,
    ) -> int:
        """
        Render every frame into ``sink`` in consumption order.

        Args:
            frames: Frame iterator (consumed once, start to end)
            sink: Destination for palette-indexed frames
            show_progress: Show a tqdm progress bar

        Returns:
            Number of frames emitted
        """
        iterator = frames
        if show_progress:
            iterator = tqdm(iterator, desc="Rendering frames", unit="frame")

        emitted = 0
        for frame in iterator:
            indices = self.render_frame(frame)
            sink.write_frame(indices, self.frame_delay_ms)
            emitted += 1
            logger.debug(f"Wrote frame {frame.frame_number}")

        if self.dropped_deltas:
            logger.info(f"Dropped {self.dropped_deltas:,} out-of-range pixel deltas")
        logger.info(f"Rendered {emitted:,} frames ({self.width}x{self.height}, mode={self.mode})")
        return emitted
