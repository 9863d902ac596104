"""
geolapse CLI package.

Provides modular command implementations for the geolapse CLI.
"""

from argparse import ArgumentParser, RawDescriptionHelpFormatter
from typing import List, Optional

from .base import CLICommand, ConfigurableCommand
from .ingest import IngestCommand
from .render import RenderCommand
from .run import RunCommand
from .info import InfoCommand

COMMANDS = (IngestCommand, RenderCommand, RunCommand, InfoCommand)


def build_parser() -> ArgumentParser:
    """Build the top-level parser with one sub-command per command class."""
    parser = ArgumentParser(
        prog="geolapse",
        description="Render time-lapse animations of geolocated point events.",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    for command_cls in COMMANDS:
        command = command_cls()
        sub = subparsers.add_parser(
            command.name,
            help=command.help,
            description=command.description,
            formatter_class=RawDescriptionHelpFormatter,
        )
        command.add_arguments(sub)
        sub.set_defaults(handler=command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.handler.execute(args)


__all__ = [
    "CLICommand",
    "ConfigurableCommand",
    "IngestCommand",
    "RenderCommand",
    "RunCommand",
    "InfoCommand",
    "build_parser",
    "main",
]
