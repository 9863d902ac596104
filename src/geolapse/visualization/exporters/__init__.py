"""Frame sinks for rendered animations."""

from .base import FrameSink
from .gif import GIFSink

__all__ = [
    "FrameSink",
    "GIFSink",
]
