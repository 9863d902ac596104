"""
Streaming animated GIF sink.

Writes one frame at a time through Pillow's GIF encoder so that only the
current frame is ever held in memory, regardless of animation length.
"""

from pathlib import Path
from typing import BinaryIO, Optional, Union

import numpy as np
from numpy.typing import NDArray
from PIL import GifImagePlugin, Image

from .base import FrameSink

GIF_TRAILER = b";"


class GIFSink(FrameSink):
    """
    Animated GIF writer with a single global palette.

    The header, palette and loop extension are written on open; each
    ``write_frame`` call appends one image; the trailer is written and the
    file closed on exit, whether or not rendering succeeded.

    Example:
        ```python
        with GIFSink(Path("out.gif"), width=360, height=180, palette=ramp.sink_palette()) as sink:
            sink.write_frame(indices, delay_ms=33)
        ```
    """

    def __init__(
        self,
        output_path: Union[str, Path],
        width: int,
        height: int,
        palette: bytes,
        loop: Optional[int] = 0,
    ):
        """
        Initialize GIF sink.

        Args:
            output_path: Output GIF path
            width: Frame width in pixels
            height: Frame height in pixels
            palette: Flattened RGB palette, at most 256 entries
            loop: Number of repeats (0 = infinite, None = play once)
        """
        if not 1 <= width <= 0xFFFF or not 1 <= height <= 0xFFFF:
            raise ValueError(f"GIF dimensions must be within 1..65535, got {width}x{height}")
        if len(palette) % 3 != 0 or len(palette) > 768:
            raise ValueError(f"Palette must hold at most 256 RGB entries, got {len(palette)} bytes")

        self.output_path = Path(output_path)
        self.width = width
        self.height = height
        self.palette = bytes(palette)
        self.loop = loop

        self.frames_written = 0
        self._fh: Optional[BinaryIO] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _palette_image(self, data: Optional[bytes] = None) -> Image.Image:
        if data is None:
            image = Image.new("P", (self.width, self.height), 0)
        else:
            image = Image.frombytes("P", (self.width, self.height), data)
        image.putpalette(self.palette)
        return image

    def open(self) -> None:
        """
        Create the file and write the GIF header.

        Raises:
            OSError: If the output file cannot be created
        """
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self.output_path, "wb")

        info = {} if self.loop is None else {"loop": self.loop}
        header, _ = GifImagePlugin.getheader(self._palette_image(), info=info)
        for chunk in header:
            self._fh.write(chunk)

    def write_frame(self, indices: NDArray[np.uint8], delay_ms: int) -> None:
        if self._fh is None:
            raise RuntimeError("GIF sink not opened. Use context manager or call open()")

        indices = np.ascontiguousarray(indices, dtype=np.uint8)
        if indices.shape != (self.height, self.width):
            raise ValueError(
                f"Expected frame shape ({self.height}, {self.width}), got {indices.shape}"
            )

        frame = self._palette_image(indices.tobytes())
        for chunk in GifImagePlugin.getdata(frame, offset=(0, 0), duration=delay_ms):
            self._fh.write(chunk)
        self.frames_written += 1

    def close(self) -> None:
        """Write the trailer and close the file."""
        if self._fh is not None:
            try:
                self._fh.write(GIF_TRAILER)
            finally:
                self._fh.close()
                self._fh = None
