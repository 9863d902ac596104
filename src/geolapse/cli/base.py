"""
Base command class for the geolapse CLI.

Provides abstract interface and shared functionality for CLI commands.
"""

from abc import ABC, abstractmethod
from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import sys

from ..projection import PROJECTION_KINDS


class CLICommand(ABC):
    """
    Abstract base class for CLI commands.

    Subclasses implement specific commands (ingest, render, run, info).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Command name (e.g., 'ingest')."""
        pass

    @property
    @abstractmethod
    def help(self) -> str:
        """Short help text for command."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Detailed command description."""
        pass

    @abstractmethod
    def add_arguments(self, parser: ArgumentParser) -> None:
        """Add command-specific arguments to parser."""
        pass

    @abstractmethod
    def execute(self, args: Namespace) -> int:
        """
        Execute the command.

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def error(self, message: str, exit_code: int = 1) -> int:
        """Print error message and return exit code."""
        print(f"Error: {message}", file=sys.stderr)
        return exit_code

    def validate_file_exists(self, path: Path, description: str = "File") -> bool:
        """Check that a file exists, printing an error if not."""
        if not path.exists():
            print(f"Error: {description} not found: {path}", file=sys.stderr)
            return False
        return True

    def setup_logging(self, verbose: bool) -> None:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            force=True,
        )


class ConfigurableCommand(CLICommand):
    """
    Base class for commands that load and apply configuration.

    Provides shared view/timing/render options and applies them as
    overrides on top of the YAML configuration.
    """

    def add_config_arguments(self, parser: ArgumentParser, render: bool = True, ingest: bool = True) -> None:
        """Add the configuration file and override options."""
        parser.add_argument(
            "--config", type=Path, metavar="PATH", help="Path to YAML configuration file"
        )

        override_group = parser.add_argument_group("configuration overrides")

        if ingest:
            override_group.add_argument(
                "--height", type=int, metavar="PX", help="Raster height in pixels"
            )
            override_group.add_argument(
                "--seconds-per-frame", type=int, metavar="N", help="Seconds of events per frame"
            )
            override_group.add_argument(
                "--bbox",
                type=str,
                metavar="L,B,R,T",
                help="Bounding box as left,bottom,right,top in degrees",
            )
            override_group.add_argument(
                "--projection", choices=PROJECTION_KINDS, help="Projection kind"
            )
            override_group.add_argument(
                "--epoch", type=int, metavar="SECONDS", help="Earliest permitted timestamp"
            )
            override_group.add_argument(
                "--require-sorted",
                action="store_true",
                default=None,
                help="Fail on timestamps that go backwards",
            )

        if render:
            override_group.add_argument(
                "--colour-ramp", type=Path, metavar="PATH", help="Colour ramp CSV file"
            )
            override_group.add_argument(
                "--mode", choices=("age", "decay"), help="Pixel accumulation mode"
            )
            override_group.add_argument(
                "--lookup", choices=("exact", "scale", "threshold"), help="Colour ramp lookup policy"
            )
            override_group.add_argument(
                "--decay-factor", type=float, metavar="F", help="Per-frame decay multiplier"
            )
            override_group.add_argument(
                "--frame-delay", type=int, metavar="MS", help="Display time per frame in milliseconds"
            )

        parser.add_argument(
            "--verbose", action="store_true", help="Print detailed progress information"
        )

    def collect_overrides(self, args: Namespace) -> Dict[str, Any]:
        """Map parsed arguments onto dotted config paths."""
        return {
            "view.height": getattr(args, "height", None),
            "view.bbox": getattr(args, "bbox", None),
            "view.projection": getattr(args, "projection", None),
            "timing.seconds_per_frame": getattr(args, "seconds_per_frame", None),
            "timing.epoch": getattr(args, "epoch", None),
            "timing.frame_delay_ms": getattr(args, "frame_delay", None),
            "ingest.require_sorted": getattr(args, "require_sorted", None),
            "render.colour_ramp": getattr(args, "colour_ramp", None),
            "render.mode": getattr(args, "mode", None),
            "render.lookup": getattr(args, "lookup", None),
            "render.decay_factor": getattr(args, "decay_factor", None),
        }

    def load_config(self, config_path: Optional[Path], verbose: bool = False) -> Optional[Any]:
        """
        Load configuration from YAML, or defaults when no path is given.

        Returns:
            Loaded GeolapseConfig or None on error
        """
        from geolapse.config import GeolapseConfig, load_config

        if config_path is None:
            return GeolapseConfig()

        if not self.validate_file_exists(config_path, "Configuration file"):
            return None

        if verbose:
            print(f"Loading configuration from: {config_path}")

        try:
            return load_config(config_path)
        except Exception as e:
            print(f"Error: Failed to load configuration: {e}", file=sys.stderr)
            return None

    def apply_overrides(self, config: Any, overrides: Dict[str, Any], verbose: bool = False) -> None:
        """
        Apply CLI overrides to configuration.

        Example:
            >>> command.apply_overrides(config, {"view.height": 900})
        """
        for path, value in overrides.items():
            if value is None:
                continue

            parts = path.split(".")
            obj = config
            for part in parts[:-1]:
                obj = getattr(obj, part)

            setattr(obj, parts[-1], value)

            if verbose:
                print(f"  Override: {path} = {value}")

    def prepare_config(self, args: Namespace) -> Optional[Any]:
        """Load the config and apply CLI overrides; prints and returns None on error."""
        config = self.load_config(args.config, verbose=args.verbose)
        if config is None:
            return None

        try:
            self.apply_overrides(config, self.collect_overrides(args), verbose=args.verbose)
        except ValueError as e:
            print(f"Error: Invalid option: {e}", file=sys.stderr)
            return None

        return config
