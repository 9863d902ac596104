"""
Two-phase time-lapse pipeline orchestrator.

Coordinates all components:
- Phase 1 (ingest): event source -> projection -> temporal binner -> frame store
- Phase 2 (render): frame store -> raster renderer -> GIF sink

The frame store is the only handoff between phases, so each phase can run
on its own (``ingest`` / ``render_file``) or back to back (``run``).
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from .config import GeolapseConfig
from .frames import (
    Frame,
    FrameStore,
    FrameStoreHeader,
    FrameStoreReader,
    IngestStats,
    TemporalBinner,
    save_frames,
)
from .projection import Projection, create_projection
from .sources import PointEvent
from .visualization import GIFSink, RasterRenderer, load_colour_ramp

logger = logging.getLogger(__name__)


class TimelapsePipeline:
    """
    Time-lapse generation pipeline.

    Example:
        ```python
        config = load_config(Path("world.yaml"))
        pipeline = TimelapsePipeline(config)
        store = pipeline.ingest(read_point_csv(Path("nodes.csv")))
        pipeline.render(store, Path("world.gif"))
        ```
    """

    def __init__(self, config: GeolapseConfig, show_progress: bool = False):
        """
        Initialize pipeline.

        Args:
            config: Complete geolapse configuration
            show_progress: Show tqdm progress bars for both phases
        """
        self.config = config
        self.show_progress = show_progress
        self.last_ingest: Optional[IngestStats] = None

        self.stats: Dict[str, Any] = {
            "ingest_time": 0.0,
            "render_time": 0.0,
            "frames_rendered": 0,
        }

    def build_projection(self) -> Projection:
        view = self.config.view
        return create_projection(view.projection, view.view_box, view.height)

    def build_header(self, projection: Projection) -> FrameStoreHeader:
        left, bottom, right, top = projection.view.as_tuple()
        return FrameStoreHeader(
            height=projection.height,
            width=projection.width,
            seconds_per_frame=self.config.timing.seconds_per_frame,
            left=left,
            bottom=bottom,
            right=right,
            top=top,
            projection=projection.kind,
            epoch=self.config.timing.epoch,
        )

    # -------------------------------------------------------------------------
    # Phase 1
    # -------------------------------------------------------------------------

    def ingest(
        self,
        events: Iterable[PointEvent],
        frames_path: Optional[Union[str, Path]] = None,
    ) -> FrameStore:
        """
        Bin an event stream into a frame store, optionally persisting it.

        Raises:
            ValueError: If an event precedes the epoch, or arrives out of
                order when sorted input is required
            OSError: If ``frames_path`` cannot be written
        """
        start_time = time.time()

        projection = self.build_projection()
        logger.info(f"Ingesting events onto {projection}")

        binner = TemporalBinner(
            epoch=self.config.timing.epoch,
            seconds_per_frame=self.config.timing.seconds_per_frame,
            require_sorted=self.config.ingest.require_sorted,
        )
        self.last_ingest = binner.ingest(
            events,
            projection,
            progress_every=self.config.ingest.progress_every,
            batch_size=self.config.ingest.batch_size,
            show_progress=self.show_progress,
        )
        store = binner.to_frame_store(self.build_header(projection))

        if frames_path is not None:
            save_frames(store, frames_path)
            logger.info(f"Wrote {len(store):,} frames to {frames_path}")

        self.stats["ingest_time"] = time.time() - start_time
        return store

    # -------------------------------------------------------------------------
    # Phase 2
    # -------------------------------------------------------------------------

    def render(
        self,
        frames: Union[FrameStore, Iterable[Frame]],
        output_path: Union[str, Path],
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> int:
        """
        Render frames into an animated GIF.

        Raster dimensions come from the frame store header when available,
        otherwise from ``width``/``height`` or the configured view.

        Returns:
            Number of frames written

        Raises:
            OSError: If the output cannot be created or the ramp file read
            ValueError: On a malformed colour ramp or out-of-order frames
        """
        start_time = time.time()

        header = frames.header if isinstance(frames, FrameStore) else None
        if width is None or height is None:
            if header is not None:
                width, height = header.width, header.height
            else:
                projection = self.build_projection()
                width, height = projection.width, projection.height

        render_config = self.config.render
        ramp = load_colour_ramp(render_config.colour_ramp)
        renderer = RasterRenderer(
            width=width,
            height=height,
            ramp=ramp,
            mode=render_config.mode,
            lookup=render_config.lookup,
            decay_factor=render_config.decay_factor,
            frame_delay_ms=self.config.timing.frame_delay_ms,
        )

        logger.info(f"Rendering {width}x{height} animation to {output_path}")
        with GIFSink(output_path, width, height, ramp.sink_palette(), loop=render_config.loop) as sink:
            emitted = renderer.render(frames, sink, show_progress=self.show_progress)

        self.stats["render_time"] = time.time() - start_time
        self.stats["frames_rendered"] = emitted
        return emitted

    def render_file(self, frames_path: Union[str, Path], output_path: Union[str, Path]) -> int:
        """
        Render a persisted frame file, streaming one frame at a time.

        Raises:
            ValueError: If the frame file has no metadata header
        """
        with FrameStoreReader(frames_path) as reader:
            if reader.header is None:
                raise ValueError(f"Frame file {frames_path} has no metadata header")
            return self.render(
                reader.frames(),
                output_path,
                width=reader.header.width,
                height=reader.header.height,
            )

    def run(
        self,
        events: Iterable[PointEvent],
        output_path: Union[str, Path],
        frames_path: Optional[Union[str, Path]] = None,
    ) -> int:
        """Ingest then render, end to end."""
        store = self.ingest(events, frames_path=frames_path)
        return self.render(store, output_path)
