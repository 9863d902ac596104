"""
Temporal binning of point events into frames.

Events are grouped by ``(timestamp - epoch) // seconds_per_frame`` and each
frame keeps a sparse ``pixel -> count`` mapping. Memory grows with the
number of distinct (frame, pixel) pairs touched, not with the number of
events.

Events are projected in batches through ``Projection.project_many``; the
timestamp integrity checks run on every event before projection, so an
event outside the view cannot hide a bad timestamp.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import numpy as np
from numpy.typing import NDArray
from tqdm import tqdm

from ..projection import Projection
from ..sources import PointEvent
from .storage import MAX_MAGNITUDE, Frame, FrameStore, FrameStoreHeader

logger = logging.getLogger(__name__)

# 1st March 2005, midnight UTC. The edit feeds contain nothing earlier.
DEFAULT_EPOCH = 1109635200

DEFAULT_PROGRESS_EVERY = 10_000_000
DEFAULT_BATCH_SIZE = 65536


@dataclass
class IngestStats:
    """Counters threaded through one ingest pass."""

    events_seen: int = 0
    events_binned: int = 0
    missing_coordinates: int = 0
    outside_view: int = 0

    @property
    def events_dropped(self) -> int:
        return self.missing_coordinates + self.outside_view


class TemporalBinner:
    """
    Groups events into frame buckets by elapsed time since an epoch.

    Example:
        ```python
        binner = TemporalBinner(epoch=DEFAULT_EPOCH, seconds_per_frame=86400)
        stats = binner.ingest(read_point_csv(Path("nodes.csv")), projection)
        store = binner.to_frame_store(header)
        ```
    """

    def __init__(
        self,
        epoch: int = DEFAULT_EPOCH,
        seconds_per_frame: int = 86400,
        require_sorted: bool = False,
    ):
        """
        Initialize temporal binner.

        Args:
            epoch: Earliest permitted timestamp (seconds since Unix epoch)
            seconds_per_frame: Duration of one frame in seconds
            require_sorted: Reject timestamps lower than the previous one
        """
        if seconds_per_frame < 1:
            raise ValueError(f"seconds_per_frame must be >= 1, got {seconds_per_frame}")

        self.epoch = epoch
        self.seconds_per_frame = seconds_per_frame
        self.require_sorted = require_sorted

        self.first_frame: Optional[int] = None
        self.last_frame: Optional[int] = None

        self._buckets: Dict[int, Dict[int, int]] = {}
        self._last_timestamp: Optional[int] = None

    def frame_number(self, timestamp: int) -> int:
        """
        Frame number for a timestamp.

        Raises:
            ValueError: If the timestamp precedes the epoch
        """
        if timestamp < self.epoch:
            raise ValueError(
                f"Timestamp {timestamp} is before the epoch {self.epoch}; "
                f"the event feed is expected to start after it"
            )
        return (timestamp - self.epoch) // self.seconds_per_frame

    # -------------------------------------------------------------------------
    # Integrity checks
    # -------------------------------------------------------------------------

    def _check_order(self, timestamps: NDArray[np.int64]) -> None:
        """Reject a timestamp lower than its predecessor when sorted input is required."""
        if not self.require_sorted or len(timestamps) == 0:
            return

        start = timestamps[0] if self._last_timestamp is None else self._last_timestamp
        previous = np.concatenate(([start], timestamps[:-1]))
        backwards = np.flatnonzero(timestamps < previous)
        if len(backwards):
            i = backwards[0]
            raise ValueError(
                f"Timestamp {int(timestamps[i])} is earlier than the previous timestamp "
                f"{int(previous[i])} in a stream that must be sorted"
            )
        self._last_timestamp = int(timestamps[-1])

    def _check_epoch(self, timestamps: NDArray[np.int64]) -> None:
        early = np.flatnonzero(timestamps < self.epoch)
        if len(early):
            self.frame_number(int(timestamps[early[0]]))

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def _record(self, frame_no: int, pixel_index: int, count: int = 1) -> None:
        if self.first_frame is None or frame_no < self.first_frame:
            self.first_frame = frame_no
        if self.last_frame is None or frame_no > self.last_frame:
            self.last_frame = frame_no

        bucket = self._buckets.setdefault(frame_no, {})
        bucket[pixel_index] = min(bucket.get(pixel_index, 0) + count, MAX_MAGNITUDE)

    def add(self, timestamp: int, pixel_index: int) -> int:
        """
        Record one event at ``pixel_index``.

        Returns:
            Frame number the event was binned into
        """
        self._check_order(np.array([timestamp], dtype=np.int64))
        frame_no = self.frame_number(timestamp)
        self._record(frame_no, pixel_index)
        return frame_no

    def _ingest_batch(
        self,
        batch: List[PointEvent],
        projection: Projection,
        stats: IngestStats,
    ) -> None:
        timestamps = np.array([event.timestamp for event in batch], dtype=np.int64)
        latitudes = np.array(
            [np.nan if event.latitude is None else event.latitude for event in batch],
            dtype=np.float64,
        )
        longitudes = np.array(
            [np.nan if event.longitude is None else event.longitude for event in batch],
            dtype=np.float64,
        )

        self._check_order(timestamps)

        located = ~(np.isnan(latitudes) | np.isnan(longitudes))
        stats.missing_coordinates += int((~located).sum())
        if not located.any():
            return

        timestamps = timestamps[located]
        self._check_epoch(timestamps)

        pixels = projection.project_many(latitudes[located], longitudes[located])
        inside = pixels >= 0
        stats.outside_view += int((~inside).sum())
        stats.events_binned += int(inside.sum())
        if not inside.any():
            return

        frames = (timestamps[inside] - self.epoch) // self.seconds_per_frame
        pairs, counts = np.unique(
            np.stack([frames, pixels[inside]], axis=1), axis=0, return_counts=True
        )
        for (frame_no, pixel), count in zip(pairs.tolist(), counts.tolist()):
            self._record(frame_no, pixel, count)

    def ingest(
        self,
        events: Iterable[PointEvent],
        projection: Projection,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
        show_progress: bool = False,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> IngestStats:
        """
        Project and bin a stream of events.

        Events without coordinates, or whose coordinates fall outside the
        view, are counted and skipped. Every located event is checked
        against the epoch, and with ``require_sorted`` every event is
        checked against its predecessor, before any projection happens.

        Args:
            events: Point event iterator
            projection: Projection onto the output raster
            progress_every: Log progress every N events (0 disables)
            show_progress: Show a tqdm progress bar
            batch_size: Events projected per vectorised batch

        Returns:
            Counters for this pass
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        stats = IngestStats()

        iterator = events
        if show_progress:
            iterator = tqdm(iterator, desc="Ingesting events", unit="ev")

        batch: List[PointEvent] = []
        for event in iterator:
            batch.append(event)
            stats.events_seen += 1

            checkpoint = bool(progress_every) and stats.events_seen % progress_every == 0
            if len(batch) >= batch_size or checkpoint:
                self._ingest_batch(batch, projection, stats)
                batch = []

            if checkpoint:
                logger.info(
                    f"Processed {stats.events_seen:,} events "
                    f"({stats.events_binned:,} binned, {stats.events_dropped:,} dropped)"
                )

        if batch:
            self._ingest_batch(batch, projection, stats)

        logger.info(
            f"Ingest complete: {stats.events_seen:,} events, {stats.events_binned:,} binned, "
            f"{stats.missing_coordinates:,} without coordinates, {stats.outside_view:,} outside view"
        )
        return stats

    @property
    def num_frames(self) -> int:
        if self.first_frame is None or self.last_frame is None:
            return 0
        return self.last_frame - self.first_frame + 1

    @property
    def num_deltas(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())

    def to_frame_store(self, header: Optional[FrameStoreHeader] = None) -> FrameStore:
        """
        Materialize the contiguous frame sequence.

        Emits one frame per frame number in ``[first_frame, last_frame]``,
        with an empty delta list where nothing was recorded. Buckets are
        released as they are emitted, so the binner is empty afterwards and
        a second call returns an empty store.
        """
        store = FrameStore(header=header)
        if self.first_frame is None or self.last_frame is None:
            return store

        for frame_no in range(self.first_frame, self.last_frame + 1):
            bucket = self._buckets.pop(frame_no, None)
            deltas = sorted(bucket.items()) if bucket else []
            store.frames.append(Frame(frame_no, deltas))

        logger.info(
            f"Built {len(store.frames):,} frames ({self.first_frame}..{self.last_frame}) "
            f"with {store.num_deltas:,} pixel deltas"
        )
        self.first_frame = None
        self.last_frame = None
        return store
