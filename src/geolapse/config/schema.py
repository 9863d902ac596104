"""
Configuration schemas for geolapse using Pydantic.

Provides validated configuration models for each stage:
- View: bounding box, raster height and projection
- Timing: epoch, frame duration and playback delay
- Ingest: progress reporting and ordering requirements
- Render: accumulation mode, ramp lookup and colour ramp file
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..frames.binner import DEFAULT_BATCH_SIZE, DEFAULT_EPOCH, DEFAULT_PROGRESS_EVERY
from ..projection import ViewBox


class ViewConfig(BaseModel):
    """Geographic view and raster resolution."""

    model_config = ConfigDict(validate_assignment=True)

    bbox: tuple[float, float, float, float] = (-180.0, -90.0, 180.0, 90.0)
    height: int = Field(default=1800, ge=1, le=0xFFFF)
    projection: Literal["equirectangular", "orthographic"] = "equirectangular"

    @field_validator("bbox", mode="before")
    @classmethod
    def parse_bbox(cls, v):
        if isinstance(v, str):
            return ViewBox.from_string(v).as_tuple()
        return v

    @field_validator("bbox")
    @classmethod
    def validate_bbox(cls, v: tuple[float, float, float, float]) -> tuple[float, float, float, float]:
        left, bottom, right, top = v
        if not right > left:
            raise ValueError(f"Invalid bbox {v}: right must be > left")
        if not top > bottom:
            raise ValueError(f"Invalid bbox {v}: top must be > bottom")
        if left < -180.0 or right > 180.0 or bottom < -90.0 or top > 90.0:
            raise ValueError(f"Invalid bbox {v}: must lie within [-180, -90, 180, 90]")
        return v

    @property
    def view_box(self) -> ViewBox:
        return ViewBox(*self.bbox)


class TimingConfig(BaseModel):
    """Temporal binning and playback timing."""

    model_config = ConfigDict(validate_assignment=True)

    epoch: int = DEFAULT_EPOCH
    seconds_per_frame: int = Field(default=86400, ge=1)
    frame_delay_ms: int = Field(default=33, ge=0)


class IngestConfig(BaseModel):
    """Ingest pass options."""

    model_config = ConfigDict(validate_assignment=True)

    progress_every: int = Field(default=DEFAULT_PROGRESS_EVERY, ge=0)
    require_sorted: bool = False
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)


class RenderConfig(BaseModel):
    """Raster rendering options."""

    model_config = ConfigDict(validate_assignment=True)

    mode: Literal["age", "decay"] = "age"
    lookup: Optional[Literal["exact", "scale", "threshold"]] = None
    decay_factor: float = Field(default=0.95, gt=0.0, lt=1.0)
    colour_ramp: Optional[Path] = None
    loop: Optional[int] = Field(default=0, ge=0)


class GeolapseConfig(BaseModel):
    """
    Complete geolapse configuration.

    Every section has defaults, so an empty YAML document is a valid
    configuration for a whole-world, one-frame-per-day animation.
    """

    model_config = ConfigDict(validate_assignment=True)

    view: ViewConfig = Field(default_factory=ViewConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
