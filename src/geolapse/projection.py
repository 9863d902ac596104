"""
Geographic-to-pixel projections.

Maps (latitude, longitude) pairs onto linear pixel indices of a raster that
covers a ViewBox. Two projections are supported:
- EquirectangularProjection: linear lon/lat mapping over the ViewBox
- OrthographicProjection: azimuthal view centred on the ViewBox centroid

Both are pure: the view parameters are captured at construction and
``project`` has no side effects.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from pyproj import Transformer

ProjectionKind = Literal["equirectangular", "orthographic"]

PROJECTION_KINDS: Tuple[str, ...] = ("equirectangular", "orthographic")

# Mean earth radius for the spherical orthographic view
EARTH_RADIUS_M = 6371000.0


@dataclass(frozen=True)
class ViewBox:
    """Geographic rectangle being rendered, in degrees."""

    left: float
    bottom: float
    right: float
    top: float

    def __post_init__(self) -> None:
        if not self.right > self.left:
            raise ValueError(
                f"Invalid view box: right ({self.right}) must be > left ({self.left})"
            )
        if not self.top > self.bottom:
            raise ValueError(
                f"Invalid view box: top ({self.top}) must be > bottom ({self.bottom})"
            )

    @classmethod
    def from_string(cls, text: str) -> "ViewBox":
        """Parse ``left,bottom,right,top``."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Bounding box must be 'left,bottom,right,top', got {text!r}")
        try:
            left, bottom, right, top = (float(p) for p in parts)
        except ValueError:
            raise ValueError(f"Bounding box values must be numeric, got {text!r}")
        return cls(left, bottom, right, top)

    @property
    def span_x(self) -> float:
        return self.right - self.left

    @property
    def span_y(self) -> float:
        return self.top - self.bottom

    @property
    def centroid(self) -> Tuple[float, float]:
        """(latitude, longitude) of the box centre."""
        return (self.bottom + self.top) / 2.0, (self.left + self.right) / 2.0

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.left, self.bottom, self.right, self.top

    def raster_size(self, height: int) -> Tuple[int, int]:
        """
        Derive raster (width, height) for a target raster height.

        Width keeps the box aspect ratio in degrees, so the whole world
        ``[-180, -90, 180, 90]`` gives ``width == 2 * height``.
        """
        if height < 1:
            raise ValueError(f"Raster height must be >= 1, got {height}")
        width = max(1, int(round(height * self.span_x / self.span_y)))
        return width, height


class Projection(ABC):
    """
    Abstract geographic-to-pixel projection.

    Implementations return a row-major pixel index in ``[0, width*height)``
    or ``None`` when the coordinate falls outside the view.
    """

    kind: str

    def __init__(self, view: ViewBox, width: int, height: int):
        if width < 1 or height < 1:
            raise ValueError(f"Raster dimensions must be positive, got {width}x{height}")
        self.view = view
        self.width = width
        self.height = height

    @property
    def size(self) -> int:
        """Number of raster cells."""
        return self.width * self.height

    @abstractmethod
    def project(self, latitude: float, longitude: float) -> Optional[int]:
        """Map a coordinate to a pixel index, or None if outside the view."""
        pass

    @abstractmethod
    def project_many(
        self, latitudes: NDArray[np.float64], longitudes: NDArray[np.float64]
    ) -> NDArray[np.int64]:
        """Vectorised ``project``; outside-view points map to -1."""
        pass

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(view={self.view.as_tuple()}, "
            f"width={self.width}, height={self.height})"
        )


class EquirectangularProjection(Projection):
    """
    Linear lon/lat projection over the ViewBox.

    Edges are exclusive: a coordinate lying exactly on any of the four
    ViewBox edges is outside the view.
    """

    kind = "equirectangular"

    def project(self, latitude: float, longitude: float) -> Optional[int]:
        view = self.view
        if not (view.bottom < latitude < view.top and view.left < longitude < view.right):
            return None

        x = int(((longitude - view.left) / view.span_x) * self.width)
        y = int(((view.top - latitude) / view.span_y) * self.height)

        # Float rounding can push a point just inside an edge onto the next cell
        x = min(x, self.width - 1)
        y = min(y, self.height - 1)

        return y * self.width + x

    def project_many(
        self, latitudes: NDArray[np.float64], longitudes: NDArray[np.float64]
    ) -> NDArray[np.int64]:
        lat = np.asarray(latitudes, dtype=np.float64)
        lon = np.asarray(longitudes, dtype=np.float64)
        view = self.view

        inside = (lat > view.bottom) & (lat < view.top) & (lon > view.left) & (lon < view.right)

        x = ((lon - view.left) / view.span_x * self.width).astype(np.int64, copy=False)
        y = ((view.top - lat) / view.span_y * self.height).astype(np.int64, copy=False)
        x = np.clip(x, 0, self.width - 1)
        y = np.clip(y, 0, self.height - 1)

        return np.where(inside, y * self.width + x, -1)


class OrthographicProjection(Projection):
    """
    Orthographic (azimuthal) projection centred on the ViewBox centroid.

    The raster is fitted to the visible disc of the sphere, so its centre
    pixel is the centroid and the horizon touches the raster edges. Points
    on the far hemisphere are outside the view.

    Example:
        ```python
        view = ViewBox(-30.0, 30.0, 40.0, 70.0)
        projection = OrthographicProjection(view, width=512, height=512)
        projection.project(50.0, 5.0)   # centre pixel
        projection.project(-50.0, -175.0)  # None (far side)
        ```
    """

    kind = "orthographic"

    def __init__(self, view: ViewBox, width: int, height: int):
        super().__init__(view, width, height)
        self.center_lat, self.center_lon = view.centroid
        self._sin_lat0 = math.sin(math.radians(self.center_lat))
        self._cos_lat0 = math.cos(math.radians(self.center_lat))
        self._transformer = Transformer.from_crs(
            "EPSG:4326",
            f"+proj=ortho +lat_0={self.center_lat} +lon_0={self.center_lon} "
            f"+R={EARTH_RADIUS_M} +units=m +no_defs",
            always_xy=True,
        )

    def _cos_angular_distance(self, lat, lon):
        """Cosine of the great-circle angle between a point and the centre."""
        phi = np.radians(lat)
        dlam = np.radians(lon - self.center_lon)
        return self._sin_lat0 * np.sin(phi) + self._cos_lat0 * np.cos(phi) * np.cos(dlam)

    def _to_pixels(self, x, y):
        px = (x + EARTH_RADIUS_M) / (2.0 * EARTH_RADIUS_M) * self.width
        py = (EARTH_RADIUS_M - y) / (2.0 * EARTH_RADIUS_M) * self.height
        return px, py

    def project(self, latitude: float, longitude: float) -> Optional[int]:
        if not (-90.0 <= latitude <= 90.0):
            return None
        if float(self._cos_angular_distance(latitude, longitude)) <= 0.0:
            return None

        x, y = self._transformer.transform(longitude, latitude)
        if not (math.isfinite(x) and math.isfinite(y)):
            return None

        px, py = self._to_pixels(x, y)
        if not (0.0 <= px < self.width and 0.0 <= py < self.height):
            return None

        return int(py) * self.width + int(px)

    def project_many(
        self, latitudes: NDArray[np.float64], longitudes: NDArray[np.float64]
    ) -> NDArray[np.int64]:
        lat = np.asarray(latitudes, dtype=np.float64)
        lon = np.asarray(longitudes, dtype=np.float64)
        result = np.full(lat.shape, -1, dtype=np.int64)

        visible = (np.abs(lat) <= 90.0) & (self._cos_angular_distance(lat, lon) > 0.0)
        if not visible.any():
            return result

        x, y = self._transformer.transform(lon[visible], lat[visible])
        px, py = self._to_pixels(np.asarray(x), np.asarray(y))
        ok = (
            np.isfinite(px) & np.isfinite(py)
            & (px >= 0.0) & (px < self.width)
            & (py >= 0.0) & (py < self.height)
        )

        indices = np.full(px.shape, -1, dtype=np.int64)
        indices[ok] = py[ok].astype(np.int64) * self.width + px[ok].astype(np.int64)
        result[visible] = indices
        return result


def create_projection(kind: str, view: ViewBox, height: int) -> Projection:
    """
    Factory function for projections.

    Args:
        kind: "equirectangular" or "orthographic"
        view: Geographic view box
        height: Raster height in pixels (width is derived from the view)

    Returns:
        Projection instance
    """
    width, height = view.raster_size(height)

    if kind == "equirectangular":
        return EquirectangularProjection(view, width, height)
    elif kind == "orthographic":
        return OrthographicProjection(view, width, height)
    else:
        raise ValueError(
            f"Unknown projection: {kind}. Must be one of {', '.join(PROJECTION_KINDS)}"
        )
