"""imgbuild exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each pipeline step raises a specific error type for debuggability.
"""

from __future__ import annotations


class ImageBuildError(Exception):
    """Base exception for all imgbuild failures."""


class ImageBuildConfigError(ImageBuildError):
    """Raised for invalid runtime configuration."""


class ImageBuildValidationError(ImageBuildError):
    """Raised when command-line input or the source file is unusable."""


class ImageBuildSpecError(ImageBuildError):
    """Raised for invalid or unsupported YAML build specs."""


class ImageBuildDependencyError(ImageBuildError):
    """Raised when a required external executable is missing."""


class ImageBuildCollisionError(ImageBuildError):
    """Raised when output artifact names are already taken."""


class ImageInspectionError(ImageBuildError):
    """Raised when image introspection output cannot be used."""


class ImageProvisionError(ImageBuildError):
    """Raised when the VM manager reports an unusable machine."""


class ImageToolError(ImageBuildError):
    """Raised when an external tool exits with a failure status."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class ImageToolTimeoutError(ImageToolError):
    """Raised when an external tool exceeds its deadline."""
