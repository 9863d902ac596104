"""
Colour ramps mapping accumulated pixel values to palette indices.

A ramp is a small step table: an empty/background colour followed by up to
254 ``(threshold, colour)`` steps. Palette index 0 is always the empty
colour; step ``i`` occupies palette index ``i + 1``.

Ramp files are CSV text:
    R,G,B                 <- empty colour
    threshold,R,G,B       <- one line per step
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Literal, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

RGB = Tuple[int, int, int]
LookupPolicy = Literal["exact", "scale", "threshold"]

LOOKUP_POLICIES: Tuple[str, ...] = ("exact", "scale", "threshold")

# Index 0 is reserved for the empty colour within a 256-entry palette
MAX_STEPS = 254
PALETTE_ENTRIES = 256


@dataclass(frozen=True)
class ColourStep:
    """One ramp step."""

    threshold: int
    colour: RGB


def _validate_colour(colour: Sequence[int], where: str) -> RGB:
    if len(colour) != 3:
        raise ValueError(f"{where}: colour must have 3 components, got {len(colour)}")
    for component in colour:
        if not 0 <= component <= 255:
            raise ValueError(f"{where}: colour component {component} outside 0..255")
    return int(colour[0]), int(colour[1]), int(colour[2])


class ColourRamp:
    """
    Ordered mapping from accumulated value to palette index.

    Three lookup policies are available:
    - "exact": the first step whose threshold equals the value exactly
    - "scale": ``max(1, 255 - value)``, clamped to 1 above 255
    - "threshold": the step with the greatest threshold <= value

    Pixels that were never touched always map to index 0.

    Example:
        ```python
        ramp = ColourRamp.from_file(Path("ramp.csv"))
        ramp.index_for(None)              # 0
        ramp.index_for(3, lookup="scale")  # 252
        image = ramp.index_array(values, touched, lookup="threshold")
        ```
    """

    def __init__(
        self,
        empty_colour: Sequence[int],
        steps: Iterable[ColourStep],
        pad_colour: Optional[Sequence[int]] = None,
    ):
        self.empty_colour = _validate_colour(empty_colour, "empty colour")
        self.steps: List[ColourStep] = list(steps)
        self.pad_colour: Optional[RGB] = (
            None if pad_colour is None else _validate_colour(pad_colour, "pad colour")
        )

        if len(self.steps) > MAX_STEPS:
            raise ValueError(
                f"Colour ramp has {len(self.steps)} steps; at most {MAX_STEPS} fit in the palette"
            )
        for i, step in enumerate(self.steps):
            _validate_colour(step.colour, f"step {i + 1}")

        thresholds = np.array([step.threshold for step in self.steps], dtype=np.float64)
        self._thresholds = thresholds

        # exact: unique thresholds with the palette index of their first step
        self._exact_keys, first = np.unique(thresholds, return_index=True)
        self._exact_index = first.astype(np.int64) + 1

        # threshold: steps sorted by threshold, ties kept in file order
        self._order = np.argsort(thresholds, kind="stable")
        self._sorted_thresholds = thresholds[self._order]

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f"ColourRamp(empty={self.empty_colour}, steps={len(self.steps)})"

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_lines(cls, lines: Iterable[str], source: str = "<ramp>") -> "ColourRamp":
        """
        Parse ramp text.

        Raises:
            ValueError: On non-numeric fields, wrong field counts, colours
                outside 0..255 or more than 254 steps
        """
        empty: Optional[RGB] = None
        steps: List[ColourStep] = []

        for line_number, line in enumerate(lines, start=1):
            text = line.strip()
            if not text:
                continue
            where = f"{source}:{line_number}"
            try:
                values = [int(field.strip()) for field in text.split(",")]
            except ValueError:
                raise ValueError(f"{where}: non-numeric field in {text!r}")

            if empty is None:
                if len(values) != 3:
                    raise ValueError(f"{where}: first line must be R,G,B, got {len(values)} fields")
                empty = _validate_colour(values, where)
            else:
                if len(values) != 4:
                    raise ValueError(
                        f"{where}: step lines must be threshold,R,G,B, got {len(values)} fields"
                    )
                steps.append(ColourStep(values[0], _validate_colour(values[1:], where)))

        if empty is None:
            raise ValueError(f"{source}: colour ramp is empty")

        return cls(empty, steps)

    @classmethod
    def from_text(cls, text: str) -> "ColourRamp":
        return cls.from_lines(text.splitlines())

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ColourRamp":
        """
        Load a ramp file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is malformed
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as fh:
            return cls.from_lines(fh, source=str(path))

    @classmethod
    def red_fade(cls) -> "ColourRamp":
        """Built-in ramp: black background, palette index i is (i, 0, 0) up to 255."""
        steps = [ColourStep(i, (i, 0, 0)) for i in range(1, MAX_STEPS + 1)]
        return cls((0, 0, 0), steps, pad_colour=(255, 0, 0))

    # -------------------------------------------------------------------------
    # Palette
    # -------------------------------------------------------------------------

    def palette(self) -> bytes:
        """Flattened RGB bytes: empty colour then each step's colour."""
        flat = list(self.empty_colour)
        for step in self.steps:
            flat.extend(step.colour)
        return bytes(flat)

    def sink_palette(self) -> bytes:
        """
        Palette padded to 256 entries with ``pad_colour``, or by repeating
        the last colour when the ramp has none.

        The "scale" policy can produce index 255 regardless of the number of
        steps, so image sinks get a full table.
        """
        palette = self.palette()
        last = palette[-3:] if self.pad_colour is None else bytes(self.pad_colour)
        missing = PALETTE_ENTRIES - len(palette) // 3
        return palette + last * missing

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def index_array(
        self,
        values: NDArray,
        touched: NDArray[np.bool_],
        lookup: LookupPolicy = "threshold",
    ) -> NDArray[np.uint8]:
        """
        Map a raster of values to palette indices.

        Args:
            values: Accumulated values, any shape
            touched: Mask of cells that hold a value (False -> index 0)
            lookup: Lookup policy

        Returns:
            uint8 array of the same shape as ``values``
        """
        out = np.zeros(values.shape, dtype=np.uint8)
        if not touched.any():
            return out

        v = values[touched].astype(np.float64)

        if lookup == "scale":
            idx = np.where(v <= 255.0, np.maximum(1.0, 255.0 - v), 1.0).astype(np.int64)

        elif lookup == "exact":
            idx = np.zeros(v.shape, dtype=np.int64)
            if len(self._exact_keys):
                pos = np.clip(np.searchsorted(self._exact_keys, v), 0, len(self._exact_keys) - 1)
                match = self._exact_keys[pos] == v
                idx = np.where(match, self._exact_index[pos], 0)

        elif lookup == "threshold":
            idx = np.zeros(v.shape, dtype=np.int64)
            if len(self._sorted_thresholds):
                pos = np.searchsorted(self._sorted_thresholds, v, side="right")
                step = self._order[np.maximum(pos - 1, 0)] + 1
                idx = np.where(pos == 0, 0, step)

        else:
            raise ValueError(
                f"Unknown lookup policy: {lookup}. Must be one of {', '.join(LOOKUP_POLICIES)}"
            )

        out[touched] = idx.astype(np.uint8)
        return out

    def index_for(self, value: Optional[float], lookup: LookupPolicy = "threshold") -> int:
        """Palette index for a single value; None means never touched."""
        if value is None:
            return 0
        values = np.array([value], dtype=np.float64)
        return int(self.index_array(values, np.ones(1, dtype=bool), lookup)[0])


def load_colour_ramp(path: Optional[Union[str, Path]]) -> ColourRamp:
    """Load a ramp file, or the built-in red fade when ``path`` is None."""
    if path is None:
        return ColourRamp.red_fade()
    return ColourRamp.from_file(path)
