"""Command-line interface for generating RPC clients from interface sources.

Interface sources are Python files with `@rpc_client` classes, and *.capnp schemas.
"""

from __future__ import annotations

import argparse
import logging
import os.path
from collections.abc import Sequence

from rpc_client_generator.errors import ValidationError
from rpc_client_generator.run import PyrightValidationError, run

logger = logging.getLogger(__name__)


def _add_recursive_argument(parser: argparse.ArgumentParser):
    """Add a recursive argument to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the argument to.
    """
    parser.add_argument(
        "-r",
        "--recursive",
        dest="recursive",
        default=False,
        action="store_true",
        help="recursively search for interface sources with a given glob expression.",
    )


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate RPC clients for interface sources.")

    parser.add_argument(
        "-c",
        "--clean",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions that match files to clean up once all clients were generated.",
    )

    parser.add_argument(
        "-p",
        "--paths",
        type=str,
        nargs="+",
        default=["**/*.py", "**/*.capnp"],
        help="path or glob expressions that match *.py or *.capnp interface sources.",
    )

    parser.add_argument(
        "-e",
        "--excludes",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions to exclude from path matches.",
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default="",
        help="directory to write all generated clients; defaults to alongside each source if omitted.",
    )

    parser.add_argument(
        "-I",
        "--import-path",
        dest="import_paths",
        type=str,
        nargs="+",
        default=[],
        help="additional import paths for resolving absolute schema imports (e.g., /capnp/c++.capnp).",
    )

    parser.add_argument(
        "--no-format",
        dest="skip_format",
        default=False,
        action="store_true",
        help="skip ruff formatting of generated clients.",
    )

    parser.add_argument(
        "--no-pyright",
        dest="skip_pyright",
        default=False,
        action="store_true",
        help="skip pyright validation of generated clients.",
    )

    _add_recursive_argument(parser)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the client generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code, 1 if an interface source is invalid or the generated clients fail validation.
    """
    logging.basicConfig(level=logging.INFO)

    root_directory = os.getcwd()
    logging.info("Working from root directory: %s", root_directory)

    parser = setup_parser()
    args = parser.parse_args(argv)

    try:
        run(args, root_directory)
    except (ValidationError, SyntaxError) as e:
        logger.error("Client generation failed: %s", e)
        return 1
    except PyrightValidationError:
        # Already logged with pyright's output.
        return 1

    return 0
