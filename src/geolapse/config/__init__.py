"""Configuration system for geolapse."""

from .schema import GeolapseConfig, ViewConfig, TimingConfig, IngestConfig, RenderConfig
from .loader import load_config, save_config, substitute_params

__all__ = [
    "GeolapseConfig",
    "ViewConfig",
    "TimingConfig",
    "IngestConfig",
    "RenderConfig",
    "load_config",
    "save_config",
    "substitute_params",
]
