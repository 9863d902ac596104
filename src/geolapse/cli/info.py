"""
Info command for the geolapse CLI.

Displays the header and summary statistics of a frame file.
"""

from argparse import ArgumentParser, Namespace
from pathlib import Path

from .base import CLICommand


class InfoCommand(CLICommand):
    """Command to display frame file information."""

    @property
    def name(self) -> str:
        return "info"

    @property
    def help(self) -> str:
        return "Display frame file information"

    @property
    def description(self) -> str:
        return """
Display information about a geolapse frame file.

Examples:
  geolapse info --frames nodes.frames
        """

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument(
            "--frames", type=Path, required=True, metavar="PATH", help="Frame file to inspect"
        )

    def execute(self, args: Namespace) -> int:
        if not self.validate_file_exists(args.frames, "Frame file"):
            return 1

        try:
            return self._print_frame_info(args.frames)
        except (OSError, ValueError) as e:
            return self.error(f"Failed to read frame file: {e}")

    def _print_frame_info(self, frames_path: Path) -> int:
        from geolapse.frames import FrameStoreReader

        num_frames = 0
        num_deltas = 0
        busiest = (None, 0)
        first_frame = last_frame = None

        with FrameStoreReader(frames_path) as reader:
            header = reader.header
            for frame in reader.frames():
                if first_frame is None:
                    first_frame = frame.frame_number
                last_frame = frame.frame_number
                num_frames += 1
                num_deltas += len(frame.deltas)
                if len(frame.deltas) > busiest[1]:
                    busiest = (frame.frame_number, len(frame.deltas))

        print("=" * 60)
        print(f"GEOLAPSE FRAMES: {frames_path.name}")
        print("=" * 60)

        if header is not None:
            print("\nHeader:")
            print(f"  Version: {header.version}")
            print(f"  Raster: {header.width}x{header.height}")
            print(f"  View: {header.left}, {header.bottom}, {header.right}, {header.top}")
            print(f"  Projection: {header.projection}")
            print(f"  Seconds per frame: {header.seconds_per_frame}")
            print(f"  Epoch: {header.epoch}")
        else:
            print("\nHeader: (none)")

        print("\nFrames:")
        print(f"  Count: {num_frames:,}")
        if num_frames:
            print(f"  Range: {first_frame}..{last_frame}")
            print(f"  Pixel deltas: {num_deltas:,}")
            print(f"  Busiest frame: {busiest[0]} ({busiest[1]:,} pixels)")

        file_size_mb = frames_path.stat().st_size / (1024**2)
        print("\nStorage:")
        print(f"  File size: {file_size_mb:.2f} MB")
        print("=" * 60)

        return 0
