"""
geolapse: time-lapse animations of geolocated point events.

Bins a stream of (timestamp, latitude, longitude) events into per-frame
pixel deltas and renders them as a palette-based animated GIF.

Example:
    ```python
    from geolapse import GeolapseConfig, TimelapsePipeline
    from geolapse.sources import read_point_csv

    pipeline = TimelapsePipeline(GeolapseConfig())
    pipeline.run(read_point_csv(Path("nodes.csv")), Path("nodes.gif"))
    ```
"""

from .config import GeolapseConfig, load_config
from .frames import Frame, FrameStore, FrameStoreHeader, TemporalBinner, load_frames, save_frames
from .pipeline import TimelapsePipeline
from .projection import ViewBox, create_projection
from .sources import PointEvent, read_point_csv

__version__ = "0.1.0"

__all__ = [
    "GeolapseConfig",
    "load_config",
    "Frame",
    "FrameStore",
    "FrameStoreHeader",
    "TemporalBinner",
    "load_frames",
    "save_frames",
    "TimelapsePipeline",
    "ViewBox",
    "create_projection",
    "PointEvent",
    "read_point_csv",
]
