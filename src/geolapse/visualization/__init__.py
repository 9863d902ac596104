"""
Rendering of frame sequences into palette-indexed animations.

Key components:
- Colour ramps: ColourRamp, load_colour_ramp
- Renderer: RasterRenderer with age or decay accumulation
- Sinks: FrameSink, GIFSink

Example:
    ```python
    from geolapse.visualization import ColourRamp, RasterRenderer, GIFSink

    ramp = ColourRamp.red_fade()
    renderer = RasterRenderer(width=720, height=360, ramp=ramp)
    with GIFSink(Path("out.gif"), 720, 360, ramp.sink_palette()) as sink:
        renderer.render(frames, sink)
    ```
"""

from .colormaps import ColourRamp, ColourStep, LOOKUP_POLICIES, MAX_STEPS, load_colour_ramp
from .renderer import (
    AccumulationPolicy,
    AgeAccumulation,
    DecayAccumulation,
    RasterRenderer,
    RENDER_MODES,
    create_accumulator,
)
from .exporters import FrameSink, GIFSink

__all__ = [
    # Colour ramps
    "ColourRamp",
    "ColourStep",
    "LOOKUP_POLICIES",
    "MAX_STEPS",
    "load_colour_ramp",
    # Rendering
    "AccumulationPolicy",
    "AgeAccumulation",
    "DecayAccumulation",
    "RasterRenderer",
    "RENDER_MODES",
    "create_accumulator",
    # Sinks
    "FrameSink",
    "GIFSink",
]
