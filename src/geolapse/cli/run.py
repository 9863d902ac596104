"""
Run command for the geolapse CLI.

End-to-end: ingest a point event file and render the animation.
"""

from argparse import ArgumentParser, Namespace
from pathlib import Path
import sys
import time

from .base import ConfigurableCommand


class RunCommand(ConfigurableCommand):
    """Command running ingest and render back to back."""

    @property
    def name(self) -> str:
        return "run"

    @property
    def help(self) -> str:
        return "Ingest events and render the animation in one go"

    @property
    def description(self) -> str:
        return """
Ingest point events and render the animated GIF in a single invocation.
Use --frames to also keep the intermediate frame file.

Examples:
  geolapse run --input nodes.csv --output nodes.gif --height 900 \\
      --seconds-per-frame 86400

  geolapse run --config configs/europe.yaml --input nodes.csv \\
      --output europe.gif --frames europe.frames
        """

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument(
            "--input", type=Path, required=True, metavar="PATH",
            help="Point event CSV (timestamp,lat,lon)",
        )
        parser.add_argument(
            "--output", type=Path, required=True, metavar="PATH", help="GIF file to write"
        )
        parser.add_argument(
            "--frames", type=Path, metavar="PATH", help="Also write the intermediate frame file"
        )
        self.add_config_arguments(parser)

    def execute(self, args: Namespace) -> int:
        self.setup_logging(args.verbose)

        config = self.prepare_config(args)
        if config is None:
            return 1

        if not self.validate_file_exists(args.input, "Input file"):
            return 1

        from geolapse.pipeline import TimelapsePipeline
        from geolapse.sources import read_point_csv

        print(f"Parsing {args.input}")
        start_time = time.time()

        try:
            pipeline = TimelapsePipeline(config, show_progress=args.verbose)
            emitted = pipeline.run(read_point_csv(args.input), args.output, frames_path=args.frames)
        except KeyboardInterrupt:
            print("\n\nRun interrupted by user", file=sys.stderr)
            return 130
        except (OSError, ValueError) as e:
            return self.error(str(e))

        elapsed = time.time() - start_time
        print(f"Wrote {emitted:,} frames to {args.output} in {elapsed:.2f}s")
        print("\nFinished")
        return 0
