"""Manifest helper invocation."""

from __future__ import annotations

from pathlib import Path

from core.logging_config import get_logger
from tools.process import CommandRunner

_LOGGER = get_logger(__name__)


def write_manifest(
    runner: CommandRunner,
    helper_command: str,
    *,
    archive_path: Path,
    name: str,
    size_mb: int,
    timestamp: str,
    os_type: str,
    manifest_path: Path,
) -> Path:
    """Run the manifest helper and store its stdout verbatim."""
    result = runner.run(
        [
            helper_command,
            "-f",
            str(archive_path),
            "-n",
            name,
            "-s",
            str(size_mb),
            "-t",
            timestamp,
            "-o",
            os_type,
        ]
    )
    manifest_path.write_text(result.stdout, encoding="utf-8")
    _LOGGER.info("manifest_written", manifest_path=str(manifest_path))
    return manifest_path
