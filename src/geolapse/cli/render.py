"""
Render command for the geolapse CLI.

Renders an intermediate frame file into an animated GIF.
"""

from argparse import ArgumentParser, Namespace
from pathlib import Path
import sys
import time

from .base import ConfigurableCommand


class RenderCommand(ConfigurableCommand):
    """Command to render a frame file into an animation."""

    @property
    def name(self) -> str:
        return "render"

    @property
    def help(self) -> str:
        return "Render a frame file into an animated GIF"

    @property
    def description(self) -> str:
        return """
Render a frame file produced by 'geolapse ingest' into an animated GIF.
Raster size is taken from the frame file header.

Examples:
  # Presence/age rendering with the built-in red ramp
  geolapse render --frames nodes.frames --output nodes.gif

  # Decaying activity with a custom ramp
  geolapse render --frames nodes.frames --output nodes.gif \\
      --mode decay --colour-ramp ramps/heat.csv
        """

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument(
            "--frames", type=Path, required=True, metavar="PATH", help="Frame file to render"
        )
        parser.add_argument(
            "--output", type=Path, required=True, metavar="PATH", help="GIF file to write"
        )
        self.add_config_arguments(parser, ingest=False)

    def execute(self, args: Namespace) -> int:
        self.setup_logging(args.verbose)

        config = self.prepare_config(args)
        if config is None:
            return 1

        if not self.validate_file_exists(args.frames, "Frame file"):
            return 1

        from geolapse.pipeline import TimelapsePipeline

        print(f"Creating image {args.output}")
        start_time = time.time()

        try:
            pipeline = TimelapsePipeline(config, show_progress=args.verbose)
            emitted = pipeline.render_file(args.frames, args.output)
        except KeyboardInterrupt:
            print("\n\nRender interrupted by user", file=sys.stderr)
            return 130
        except (OSError, ValueError) as e:
            return self.error(str(e))

        elapsed = time.time() - start_time
        print(f"Wrote {emitted:,} frames to {args.output} in {elapsed:.2f}s")
        return 0
