"""imgbuild CLI entry points.

This module maps the -i/-n/-o flags, or a YAML build spec, onto the
build pipeline and turns domain errors into exit codes.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from core.config import ImageBuildConfig
from core.constants import SUPPORTED_OS_TYPES
from core.errors import (
    ImageBuildConfigError,
    ImageBuildError,
    ImageBuildSpecError,
    ImageBuildValidationError,
    ImageToolError,
)
from core.logging_config import get_logger
from pipeline.build_spec_execution import execute_build_spec_file
from pipeline.image_build import build_image
from pipeline.validation import validate_request

_LOGGER = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="imgbuild",
        description="Convert a qcow2/vmdk/raw disk image into a compressed ZFS image and manifest",
        add_help=False,
    )
    parser.add_argument("-i", dest="image", metavar="PATH", help="Source disk image")
    parser.add_argument("-n", dest="name", metavar="NAME", help="Output base name")
    parser.add_argument(
        "-o",
        dest="os_type",
        metavar="OS",
        help=f"Guest OS type, one of: {', '.join(SUPPORTED_OS_TYPES)}",
    )
    parser.add_argument(
        "-d",
        "--output-dir",
        dest="output_dir",
        help="Override IMGBUILD_OUTPUT_DIR for this command",
    )
    parser.add_argument(
        "--spec",
        dest="spec_file",
        help="Run the builds listed in a YAML build spec instead of -i/-n/-o",
    )
    parser.add_argument("-h", dest="show_help", action="store_true", help="Show usage and exit")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the imgbuild CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.show_help:
        parser.print_help(sys.stderr)
        return 1
    try:
        config = _build_config(args.output_dir)
        if args.spec_file:
            return _run_build_spec_command(config, args)
        return _run_build_command(config, args)
    except (ImageBuildValidationError, ImageBuildSpecError, ImageBuildConfigError) as error:
        print(f"imgbuild: {error}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1
    except ImageToolError as error:
        print(f"imgbuild: {error}", file=sys.stderr)
        return _tool_exit_code(error)
    except ImageBuildError as error:
        _LOGGER.error("build_failed", error=str(error))
        print(f"imgbuild: {error}", file=sys.stderr)
        return 1


def _build_config(output_dir: str | None) -> ImageBuildConfig:
    """Build config with optional output-dir override.

    Args:
        output_dir: Optional override path.

    Returns:
        Validated runtime config.
    """
    config = ImageBuildConfig.from_env()
    if output_dir:
        config = replace(config, output_dir=Path(output_dir).expanduser().resolve())
    return config


def _run_build_command(config: ImageBuildConfig, args: argparse.Namespace) -> int:
    """Handle a single flag-driven build.

    Args:
        config: Runtime config.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    request = validate_request(args.image, args.name, args.os_type, config.output_dir)
    result = build_image(request, config)
    for row in result.to_rows():
        print(row)
    return 0


def _run_build_spec_command(config: ImageBuildConfig, args: argparse.Namespace) -> int:
    """Handle a batch build from a YAML build spec."""
    if args.image or args.name or args.os_type:
        raise ImageBuildValidationError("--spec cannot be combined with -i, -n or -o.")
    results = execute_build_spec_file(config, args.spec_file)
    for result in results:
        for row in result.to_rows():
            print(row)
    return 0


def _tool_exit_code(error: ImageToolError) -> int:
    if error.returncode is not None and error.returncode > 0:
        return error.returncode
    return 1
