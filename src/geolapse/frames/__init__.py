"""Temporal binning and frame store persistence."""

from .storage import (
    MAX_MAGNITUDE,
    Frame,
    FrameStore,
    FrameStoreHeader,
    FrameStoreReader,
    load_frames,
    save_frames,
    write_frames,
    iter_frames,
    read_frames,
)
from .binner import DEFAULT_EPOCH, IngestStats, TemporalBinner

__all__ = [
    "MAX_MAGNITUDE",
    "Frame",
    "FrameStore",
    "FrameStoreHeader",
    "FrameStoreReader",
    "load_frames",
    "save_frames",
    "write_frames",
    "iter_frames",
    "read_frames",
    "DEFAULT_EPOCH",
    "IngestStats",
    "TemporalBinner",
]
