"""Command line entry point: ``docserver [--help|-h] [<directory>]``."""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from .app import create_app
from .errors import DirectoryNotFound, DocserverError
from .server import ServerConfig, serve


class ArgumentParser(argparse.ArgumentParser):
    """Reports usage errors on stderr with exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="docserver",
        description="Serve a directory, rendering Markdown files in the browser.",
        add_help=False,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help message.")
    parser.add_argument(
        "directory",
        nargs="?",
        help="The directory to serve (default: current directory).",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Bind exactly this port instead of a random free one.",
    )
    parser.add_argument(
        "--no-browser",
        dest="open_browser",
        action="store_false",
        help="Do not open a browser window.",
    )
    return parser


def resolve_directory(arg: Optional[str]) -> Path:
    """Absolute served root for the directory argument, ``~`` expanded."""
    directory = Path((arg or os.getcwd()).strip()).expanduser().resolve()
    if not directory.is_dir():
        raise DirectoryNotFound(directory)
    return directory


def configure_logging(level=logging.INFO):
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    access = logging.getLogger("docserver.access")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    access.addHandler(handler)
    access.propagate = False


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.help:
        parser.print_help(sys.stderr)
        return 1

    try:
        directory = resolve_directory(args.directory)
    except DocserverError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging()
    config = ServerConfig(port=args.port, open_browser=args.open_browser)
    try:
        return serve(create_app(directory), config)
    except DocserverError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
