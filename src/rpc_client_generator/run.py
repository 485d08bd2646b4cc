"""Top-level module for client generation."""

from __future__ import annotations

import argparse
import glob
import logging
import os.path
import subprocess
import tempfile
from pathlib import Path

from rpc_client_generator.frontend.capnp_schema import SchemaReader, load_schemas, module_name_for
from rpc_client_generator.frontend.python_source import read_interface_file
from rpc_client_generator.generator import generate_module
from rpc_client_generator.model import InterfaceDecl, ItemDecl

logger = logging.getLogger(__name__)

PY_SUFFIX = ".py"
CAPNP_SUFFIX = ".capnp"
CLIENT_SUFFIX = "_client"

INPUT_SUFFIXES = (PY_SUFFIX, CAPNP_SUFFIX)


class PyrightValidationError(Exception):
    """Raised when pyright validation finds type errors in generated clients."""

    pass


def output_file_name(path: str) -> str:
    """Name of the client module generated for an interface source.

    E.g. `pinger.py` becomes `pinger_client.py`, and `addressbook.capnp` becomes
    `addressbook_capnp_client.py`.
    """
    if path.endswith(CAPNP_SUFFIX):
        return f"{module_name_for(path)}{CLIENT_SUFFIX}{PY_SUFFIX}"

    stem = os.path.splitext(os.path.basename(path))[0]
    return f"{stem}{CLIENT_SUFFIX}{PY_SUFFIX}"


def validate_with_pyright(output_files: list[str]) -> None:
    """Validate generated client modules using pyright.

    Args:
        output_files: The generated modules.

    Raises:
        PyrightValidationError: If pyright finds any type errors.
    """
    if not output_files:
        logger.warning("No client files found to validate")
        return

    logger.info(f"Validating {len(output_files)} generated client file(s) with pyright...")

    try:
        result = subprocess.run(
            ["pyright"] + output_files,
            capture_output=True,
            text=True,
            check=False,
        )

        error_count = result.stdout.count(" error:")

        if error_count > 0 or result.returncode != 0:
            error_msg = f"Pyright validation failed with {error_count} error(s):\n\n{result.stdout}"
            logger.error(error_msg)
            raise PyrightValidationError(error_msg)

        logger.info("Pyright validation passed - no type errors found")

    except FileNotFoundError:
        logger.error("pyright not found. Please install pyright: pip install pyright")
        raise PyrightValidationError("pyright command not found. Please install pyright.")
    except subprocess.SubprocessError as e:
        error_msg = f"Error running pyright: {e}"
        logger.error(error_msg)
        raise PyrightValidationError(error_msg)


def format_outputs(raw_input: str) -> str:
    """Formats raw input using ruff.

    Args:
        raw_input (str): The unformatted input.

    Returns:
        str: The formatted outputs, or the raw input if ruff is unavailable or fails.
    """
    try:
        with tempfile.NamedTemporaryFile(mode="w", suffix=PY_SUFFIX, delete=False, encoding="utf-8") as f:
            temp_path = Path(f.name)
            f.write(raw_input)

        try:
            # Run ruff check --fix to fix import ordering
            subprocess.run(
                ["ruff", "check", "--fix", "--select", "I", str(temp_path)],
                capture_output=True,
                check=False,  # Don't raise on non-zero exit
            )

            subprocess.run(
                ["ruff", "format", str(temp_path)],
                capture_output=True,
                check=True,
            )

            return temp_path.read_text(encoding="utf-8")

        finally:
            temp_path.unlink(missing_ok=True)

    except FileNotFoundError:
        logger.warning("ruff not found, writing unformatted output.")
        return raw_input
    except subprocess.CalledProcessError as e:
        logger.error(f"Ruff formatting failed: {e}")
        logger.error(f"Stdout: {e.stdout.decode('utf-8', errors='replace')}")
        logger.error(f"Stderr: {e.stderr.decode('utf-8', errors='replace')}")
        # Return unformatted output on error
        return raw_input


def find_input_paths(patterns: list[str], root_directory: str, recursive: bool) -> set[str]:
    """Expand files, directories and glob expressions into interface sources.

    Args:
        patterns (list[str]): Paths or glob expressions, relative to the root directory.
        root_directory (str): The directory, from which the generator is executed.
        recursive (bool): Whether directories are searched recursively and `**` globs are expanded.

    Returns:
        set[str]: Paths of `.py` and `.capnp` files.
    """
    search_paths: set[str] = set()

    for pattern in patterns:
        search_path = os.path.join(root_directory, pattern)

        # If recursive flag is set and path is a directory, find all interface sources recursively
        if recursive and os.path.isdir(search_path):
            for root, _, files in os.walk(search_path):
                for file in files:
                    if file.endswith(INPUT_SUFFIXES):
                        search_paths.add(os.path.join(root, file))
        # If path is a directory without recursive flag, find only direct children
        elif os.path.isdir(search_path):
            for file in os.listdir(search_path):
                file_path = os.path.join(search_path, file)
                if os.path.isfile(file_path) and file.endswith(INPUT_SUFFIXES):
                    search_paths.add(file_path)
        # Otherwise use glob for patterns or specific files
        else:
            matches = glob.glob(search_path, recursive=recursive)
            search_paths = search_paths.union(m for m in matches if m.endswith(INPUT_SUFFIXES))

    return search_paths


def generate_sources(
    paths: list[str],
    import_paths: list[str] | None = None,
) -> dict[str, str]:
    """Generate the client module source for every interface source that declares interfaces.

    Args:
        paths (list[str]): Interface sources (`.py` or `.capnp`).
        import_paths (list[str] | None, optional): Additional import paths for capnproto schemas.
            Defaults to None.

    Raises:
        ValidationError: If any interface is invalid. Nothing is returned in that case.

    Returns:
        dict[str, str]: Generated module source by input path, for inputs with interfaces.
    """
    items_by_path: dict[str, list[InterfaceDecl | ItemDecl]] = {}

    capnp_paths = [p for p in paths if p.endswith(CAPNP_SUFFIX)]
    if capnp_paths:
        module_registry = load_schemas(capnp_paths, import_paths)
        for path, module in module_registry.values():
            items_by_path[path] = list(SchemaReader(module, module_registry).read_interfaces())

    for path in paths:
        if path.endswith(PY_SUFFIX):
            items_by_path[path] = read_interface_file(path)

    sources: dict[str, str] = {}
    for path in sorted(items_by_path):
        items = items_by_path[path]
        if not items:
            logger.debug("No interfaces in '%s', skipping.", path)
            continue

        sources[path] = generate_module(items, os.path.basename(path))

    return sources


def run(args: argparse.Namespace, root_directory: str):
    """Run the client generator on a set of paths that point to interface sources.

    Every source is generated before any file is removed or written, so that an invalid interface leaves
    all outputs, including those matched by `clean`, untouched. Cleaned files are never read as inputs.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the client generator.
        root_directory (str): The directory, from which the generator is executed.
    """
    paths: list[str] = args.paths
    excludes: list[str] = args.excludes
    clean: list[str] = args.clean
    output_dir: str = getattr(args, "output_dir", "")
    import_paths: list[str] = getattr(args, "import_paths", [])
    skip_format: bool = getattr(args, "skip_format", False)
    skip_pyright: bool = getattr(args, "skip_pyright", False)

    cleanup_paths: set[str] = set()
    for c in clean:
        cleanup_directory = os.path.join(root_directory, c)
        cleanup_paths = cleanup_paths.union(glob.glob(cleanup_directory, recursive=args.recursive))

    excluded_paths: set[str] = set()
    for exclude in excludes:
        exclude_path = os.path.join(root_directory, exclude)
        # Handle both specific files and glob patterns
        if os.path.isfile(exclude_path):
            excluded_paths.add(exclude_path)
        else:
            excluded_paths = excluded_paths.union(glob.glob(exclude_path, recursive=args.recursive))

    # The `valid_paths` contain the automatically detected search paths, except for specifically excluded paths.
    valid_paths = sorted(find_input_paths(paths, root_directory, args.recursive) - excluded_paths - cleanup_paths)

    absolute_import_paths = [os.path.join(root_directory, p) for p in import_paths]

    sources = generate_sources(valid_paths, absolute_import_paths)

    for cleanup_path in cleanup_paths:
        os.remove(cleanup_path)

    # Preserve the directory structure below the common base of all inputs
    common_base = None
    if output_dir and sources:
        source_dirs = [os.path.dirname(os.path.abspath(p)) for p in sources]
        common_base = os.path.commonpath(source_dirs)

    output_files = []
    for path, source in sources.items():
        if output_dir and common_base is not None:
            rel_dir = os.path.relpath(os.path.dirname(os.path.abspath(path)), common_base)
            output_directory = os.path.normpath(os.path.join(output_dir, rel_dir))
            os.makedirs(output_directory, exist_ok=True)
        else:
            # No output_dir specified: place clients next to interface sources
            output_directory = os.path.dirname(path)

        output_file_path = os.path.join(output_directory, output_file_name(path))

        if not skip_format:
            source = format_outputs(source)

        with open(output_file_path, "w", encoding="utf8") as output_file:
            output_file.write(source)

        logger.info("Wrote client to '%s'.", output_file_path)
        output_files.append(output_file_path)

    if not skip_pyright:
        validate_with_pyright(output_files)
