"""
Ingest command for the geolapse CLI.

Bins a point event file into an intermediate frame file.
"""

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Any
import sys
import time

from .base import ConfigurableCommand


class IngestCommand(ConfigurableCommand):
    """Command to turn a point event CSV into a frame file."""

    @property
    def name(self) -> str:
        return "ingest"

    @property
    def help(self) -> str:
        return "Bin point events into a frame file"

    @property
    def description(self) -> str:
        return """
Bin timestamped point events into per-frame pixel deltas and write the
intermediate frame file consumed by 'geolapse render'.

Examples:
  # Whole world, one frame per day
  geolapse ingest --input nodes.csv --output nodes.frames --height 1800

  # Europe, one frame per week, from a config file
  geolapse ingest --config configs/europe.yaml --input nodes.csv \\
      --output europe.frames --seconds-per-frame 604800
        """

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument(
            "--input", type=Path, required=True, metavar="PATH",
            help="Point event CSV (timestamp,lat,lon)",
        )
        parser.add_argument(
            "--output", type=Path, required=True, metavar="PATH", help="Frame file to write"
        )
        self.add_config_arguments(parser, render=False)

    def execute(self, args: Namespace) -> int:
        self.setup_logging(args.verbose)

        config = self.prepare_config(args)
        if config is None:
            return 1

        if not self.validate_file_exists(args.input, "Input file"):
            return 1

        try:
            return self._run_ingest(config, args.input, args.output, args.verbose)
        except KeyboardInterrupt:
            print("\n\nIngest interrupted by user", file=sys.stderr)
            return 130
        except (OSError, ValueError) as e:
            return self.error(str(e))

    def _run_ingest(self, config: Any, input_path: Path, output_path: Path, verbose: bool) -> int:
        from geolapse.pipeline import TimelapsePipeline
        from geolapse.sources import read_point_csv

        print(f"Parsing {input_path}")
        start_time = time.time()

        pipeline = TimelapsePipeline(config, show_progress=verbose)
        store = pipeline.ingest(read_point_csv(input_path), frames_path=output_path)

        elapsed = time.time() - start_time
        stats = pipeline.last_ingest

        print("\n" + "=" * 60)
        print("INGEST COMPLETE")
        print("=" * 60)
        print(f"Frames: {len(store):,} ({store.first_frame}..{store.last_frame})")
        print(f"Events: {stats.events_seen:,} seen, {stats.events_binned:,} binned, "
              f"{stats.events_dropped:,} dropped")
        print(f"Output: {output_path}")
        print(f"Total time: {elapsed:.2f}s")
        print("=" * 60)

        return 0
