"""
Frame store and its text persistence format.

A frame store is a contiguous run of frames, each holding the per-pixel
deltas recorded during one time bucket. It is the handoff artifact between
ingestion and rendering, so it can be written to disk and read back by a
separate invocation.

Schema:
    # geolapse-frames
    # version=1
    # height=<int>
    # width=<int>
    # seconds_per_frame=<int>
    # left=<float>
    # bottom=<float>
    # right=<float>
    # top=<float>
    # projection=<kind>
    # epoch=<int>
    <blank line>
    <frame_number>,<pixel>,<magnitude>,<pixel>,<magnitude>,...
    ...

Design principles:
- Streaming reads: frames can be iterated one at a time
- Strict parsing: a malformed line aborts the read, there is no recovery
"""

from dataclasses import dataclass, field, fields
from itertools import chain
from pathlib import Path
from typing import Dict, IO, Iterator, List, Optional, Tuple, Union

from ..projection import ViewBox

FORMAT_VERSION = 1
FORMAT_MARKER = "geolapse-frames"
METADATA_PREFIX = "#"

# Per-pixel magnitudes saturate at this value instead of overflowing
MAX_MAGNITUDE = 0xFFFF

Delta = Tuple[int, int]


@dataclass
class Frame:
    """Pixel deltas recorded against one frame number."""

    frame_number: int
    deltas: List[Delta] = field(default_factory=list)

    def as_dict(self) -> Dict[int, int]:
        return dict(self.deltas)


@dataclass(frozen=True)
class FrameStoreHeader:
    """Metadata describing the raster a frame store was binned for."""

    height: int
    width: int
    seconds_per_frame: int
    left: float
    bottom: float
    right: float
    top: float
    projection: str
    epoch: int
    version: int = FORMAT_VERSION

    @property
    def view(self) -> ViewBox:
        return ViewBox(self.left, self.bottom, self.right, self.top)

    def to_lines(self) -> List[str]:
        lines = [f"{METADATA_PREFIX} {FORMAT_MARKER}", f"{METADATA_PREFIX} version={self.version}"]
        for name in (
            "height", "width", "seconds_per_frame",
            "left", "bottom", "right", "top",
            "projection", "epoch",
        ):
            lines.append(f"{METADATA_PREFIX} {name}={getattr(self, name)}")
        return lines

    @classmethod
    def from_metadata(cls, metadata: Dict[str, str]) -> "FrameStoreHeader":
        """Build a header from parsed ``key=value`` metadata lines."""
        types = {f.name: f.type for f in fields(cls)}
        missing = [name for name in types if name not in metadata and name != "version"]
        if missing:
            raise ValueError(f"Frame file header is missing: {', '.join(missing)}")

        values = {}
        for name in types:
            if name not in metadata:
                continue
            raw = metadata[name]
            try:
                if name in ("left", "bottom", "right", "top"):
                    values[name] = float(raw)
                elif name == "projection":
                    values[name] = raw
                else:
                    values[name] = int(raw)
            except ValueError:
                raise ValueError(f"Invalid header value for {name}: {raw!r}")

        version = values.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(
                f"Unsupported frame file version {version} (expected {FORMAT_VERSION})"
            )
        return cls(**values)


@dataclass
class FrameStore:
    """
    Ordered, gap-free sequence of frames.

    Frame numbers run contiguously from ``first_frame`` to ``last_frame``;
    frames without activity carry an empty delta list.
    """

    header: Optional[FrameStoreHeader]
    frames: List[Frame] = field(default_factory=list)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def first_frame(self) -> Optional[int]:
        return self.frames[0].frame_number if self.frames else None

    @property
    def last_frame(self) -> Optional[int]:
        return self.frames[-1].frame_number if self.frames else None

    @property
    def num_deltas(self) -> int:
        return sum(len(frame.deltas) for frame in self.frames)

    def as_mapping(self) -> Dict[int, Dict[int, int]]:
        """Frame number -> {pixel: magnitude}, ignoring delta order."""
        return {frame.frame_number: frame.as_dict() for frame in self.frames}


# =============================================================================
# Writing
# =============================================================================


def format_frame(frame: Frame) -> str:
    """Render one frame as ``frame,pixel,magnitude,...``."""
    parts = [str(frame.frame_number)]
    for pixel, magnitude in frame.deltas:
        parts.append(str(pixel))
        parts.append(str(magnitude))
    return ",".join(parts)


def write_frames(store: FrameStore, fh: IO[str]) -> None:
    """Serialize a frame store to an open text stream."""
    if store.header is not None:
        for line in store.header.to_lines():
            fh.write(line + "\n")
        fh.write("\n")

    for frame in store.frames:
        fh.write(format_frame(frame) + "\n")


def save_frames(store: FrameStore, path: Union[str, Path]) -> None:
    """
    Write a frame store to ``path``.

    Raises:
        OSError: If the file cannot be created
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        write_frames(store, fh)


# =============================================================================
# Reading
# =============================================================================


def parse_frame_line(line: str, line_number: int = 0) -> Frame:
    """
    Parse one ``frame,pixel,magnitude,...`` line.

    Raises:
        ValueError: If a field is not a non-negative integer or a
            pixel/magnitude pair is incomplete
    """
    raw_fields = line.strip().split(",")
    try:
        values = [int(value) for value in raw_fields]
    except ValueError:
        raise ValueError(f"Line {line_number}: non-numeric field in frame line {line.strip()!r}")

    if (len(values) - 1) % 2 != 0:
        raise ValueError(
            f"Line {line_number}: expected frame number followed by pixel,magnitude pairs, "
            f"got {len(values)} fields"
        )
    if any(value < 0 for value in values):
        raise ValueError(f"Line {line_number}: negative value in frame line {line.strip()!r}")

    frame_number = values[0]
    merged: Dict[int, int] = {}
    for i in range(1, len(values), 2):
        pixel, magnitude = values[i], values[i + 1]
        merged[pixel] = min(merged.get(pixel, 0) + magnitude, MAX_MAGNITUDE)

    return Frame(frame_number, list(merged.items()))


def _is_metadata(line: str) -> bool:
    stripped = line.strip()
    return not stripped or stripped.startswith(METADATA_PREFIX)


def iter_frames(lines: Iterator[str], start_line: int = 1) -> Iterator[Frame]:
    """
    Lazily parse frames from text lines, skipping metadata and blank lines.

    Args:
        lines: Iterator of text lines (e.g. an open file)
        start_line: Line number of the first line, for error messages

    Raises:
        ValueError: On a malformed line, or when frame numbers are not
            strictly contiguous
    """
    previous: Optional[int] = None
    for line_number, line in enumerate(lines, start=start_line):
        if _is_metadata(line):
            continue
        frame = parse_frame_line(line, line_number)
        if previous is not None and frame.frame_number != previous + 1:
            raise ValueError(
                f"Line {line_number}: frame {frame.frame_number} does not follow frame {previous}"
            )
        previous = frame.frame_number
        yield frame


def _read_header(fh: IO[str]) -> Tuple[Optional[FrameStoreHeader], Optional[str], int]:
    """
    Consume the metadata block at the top of a frame stream.

    Returns:
        (header or None, first frame line or None, its line number)
    """
    metadata: Dict[str, str] = {}
    pending: Optional[str] = None
    line_number = 0

    for line in fh:
        line_number += 1
        if not _is_metadata(line):
            pending = line
            break
        body = line.strip()[len(METADATA_PREFIX):].strip()
        if "=" in body:
            key, value = body.split("=", 1)
            metadata[key.strip()] = value.strip()

    header = FrameStoreHeader.from_metadata(metadata) if metadata else None
    return header, pending, line_number


def read_frames(fh: IO[str]) -> FrameStore:
    """Parse a whole frame stream (header and frames) from an open text stream."""
    header, pending, line_number = _read_header(fh)
    store = FrameStore(header=header)
    if pending is not None:
        store.frames.extend(iter_frames(chain([pending], fh), start_line=line_number))
    return store


class FrameStoreReader:
    """
    Streaming reader for frame files.

    The header is parsed on open; frames are parsed lazily so a render pass
    holds at most one frame in memory.

    Example:
        ```python
        with FrameStoreReader(Path("frames.txt")) as reader:
            print(reader.header)
            for frame in reader.frames():
                ...
        ```
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.header: Optional[FrameStoreHeader] = None
        self._fh: Optional[IO[str]] = None
        self._pending: Optional[str] = None
        self._line_number = 0

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def open(self) -> None:
        """Open the file and parse its metadata header."""
        self._fh = open(self.path, "r", encoding="utf-8")
        try:
            self.header, self._pending, self._line_number = _read_header(self._fh)
        except ValueError:
            self.close()
            raise

    def frames(self) -> Iterator[Frame]:
        """Yield frames in file order."""
        if self._fh is None:
            raise RuntimeError("Frame file not opened. Use context manager or call open()")

        if self._pending is None:
            return iter(())

        return iter_frames(chain([self._pending], self._fh), start_line=self._line_number)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


def load_frames(path: Union[str, Path]) -> FrameStore:
    """
    Read a whole frame file into memory.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the header or any frame line is malformed
    """
    with open(path, "r", encoding="utf-8") as fh:
        return read_frames(fh)
