"""Runtime configuration model for imgbuild.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    DEFAULT_MANIFEST_HELPER_COMMAND,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_QEMU_IMG_COMMAND,
    DEFAULT_VMADM_COMMAND,
    DEFAULT_ZFS_COMMAND,
)
from core.errors import ImageBuildConfigError


@dataclass(frozen=True)
class ImageBuildConfig:
    """Validated runtime configuration.

    Attributes:
        output_dir: Directory receiving archives, manifests and the VM payload.
        qemu_img_command: Image introspection and conversion executable.
        vmadm_command: VM manager executable.
        zfs_command: ZFS snapshot and send executable.
        manifest_helper_command: Executable that renders image manifests.
        command_timeout_seconds: Deadline applied to every external command.
    """

    output_dir: Path
    qemu_img_command: str = DEFAULT_QEMU_IMG_COMMAND
    vmadm_command: str = DEFAULT_VMADM_COMMAND
    zfs_command: str = DEFAULT_ZFS_COMMAND
    manifest_helper_command: str = DEFAULT_MANIFEST_HELPER_COMMAND
    command_timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "ImageBuildConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ImageBuildConfigError: If environment values are invalid.
        """
        output_dir_value = os.getenv("IMGBUILD_OUTPUT_DIR", str(DEFAULT_OUTPUT_DIR))
        timeout_value = os.getenv(
            "IMGBUILD_COMMAND_TIMEOUT", str(DEFAULT_COMMAND_TIMEOUT_SECONDS)
        )
        return cls(
            output_dir=Path(output_dir_value).expanduser().resolve(),
            qemu_img_command=_command_from_env("IMGBUILD_QEMU_IMG", DEFAULT_QEMU_IMG_COMMAND),
            vmadm_command=_command_from_env("IMGBUILD_VMADM", DEFAULT_VMADM_COMMAND),
            zfs_command=_command_from_env("IMGBUILD_ZFS", DEFAULT_ZFS_COMMAND),
            manifest_helper_command=_command_from_env(
                "IMGBUILD_MANIFEST_HELPER", DEFAULT_MANIFEST_HELPER_COMMAND
            ),
            command_timeout_seconds=_parse_timeout(timeout_value),
        )


def _command_from_env(variable_name: str, default_value: str) -> str:
    raw_value = os.getenv(variable_name)
    if raw_value is None:
        return default_value
    stripped = raw_value.strip()
    if not stripped:
        raise ImageBuildConfigError(
            f"Invalid {variable_name} value: expected an executable name or path, "
            "got an empty string. Unset the variable to use the default."
        )
    return stripped


def _parse_timeout(raw_value: str) -> int:
    """Parse the command timeout environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed positive timeout in seconds.

    Raises:
        ImageBuildConfigError: If value is not a positive integer.
    """
    try:
        timeout = int(raw_value)
    except ValueError as error:
        raise ImageBuildConfigError(
            "Invalid IMGBUILD_COMMAND_TIMEOUT value: "
            f"expected integer seconds, got '{raw_value}'. "
            "Set IMGBUILD_COMMAND_TIMEOUT to a positive number."
        ) from error
    if timeout <= 0:
        raise ImageBuildConfigError(
            f"Invalid IMGBUILD_COMMAND_TIMEOUT value: expected a positive number, got {timeout}."
        )
    return timeout
