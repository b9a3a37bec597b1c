"""Input validation for image builds.

This module checks required arguments, the source image file and the OS
tag before any external tool runs.
"""

from __future__ import annotations

import os
from pathlib import Path

from core.constants import SUPPORTED_OS_TYPES
from core.errors import ImageBuildValidationError
from core.types import BuildRequest


def validate_request(
    image_path: str | None,
    name: str | None,
    os_type: str | None,
    output_dir: Path,
) -> BuildRequest:
    """Validate raw build arguments into a request.

    Args:
        image_path: Source image path.
        name: Output base name.
        os_type: OS tag, matched case-insensitively.
        output_dir: Directory receiving build artifacts.

    Returns:
        Validated build request with a lowercase OS tag.

    Raises:
        ImageBuildValidationError: If any argument or the source file is invalid.
    """
    raw_image = _required_argument(image_path, "-i")
    raw_name = _required_argument(name, "-n")
    raw_os = _required_argument(os_type, "-o")
    return BuildRequest(
        image_path=validate_source_file(raw_image),
        name=_validate_name(raw_name.strip()),
        os_type=normalize_os_type(raw_os),
        output_dir=output_dir,
    )


def validate_source_file(raw_path: str) -> Path:
    """Check that a source image exists, is readable and is a regular file."""
    path = Path(raw_path).expanduser()
    if not path.exists():
        raise ImageBuildValidationError(f"Source image {path} does not exist.")
    if not os.access(path, os.R_OK):
        raise ImageBuildValidationError(
            f"Source image {path} is not readable. Check file permissions."
        )
    if not path.is_file():
        raise ImageBuildValidationError(f"Source image {path} is not a regular file.")
    return path.resolve()


def normalize_os_type(raw_os: str) -> str:
    """Return the lowercase OS tag or fail for tags outside the supported set."""
    os_type = raw_os.strip().lower()
    if os_type not in SUPPORTED_OS_TYPES:
        supported_rows = ", ".join(SUPPORTED_OS_TYPES)
        raise ImageBuildValidationError(
            f"Unsupported OS type '{raw_os}'. Use one of: {supported_rows}."
        )
    return os_type


def _required_argument(value: str | None, flag: str) -> str:
    if value is None or not value.strip():
        raise ImageBuildValidationError(f"Missing required argument {flag}.")
    return value


def _validate_name(raw_name: str) -> str:
    if "/" in raw_name or raw_name in {".", ".."}:
        raise ImageBuildValidationError(
            f"Invalid name '{raw_name}': it is used as a file name and must not contain '/'."
        )
    return raw_name
