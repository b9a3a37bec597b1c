"""ZFS snapshot and archive helpers."""

from __future__ import annotations

import gzip
from pathlib import Path

from core.constants import SNAPSHOT_NAME_PREFIX
from core.errors import ImageBuildCollisionError
from core.logging_config import get_logger
from tools.process import CommandRunner

_LOGGER = get_logger(__name__)


def snapshot_name(disk_dataset: str, timestamp: str) -> str:
    """Return the snapshot name for a dataset and build timestamp."""
    return f"{disk_dataset}@{SNAPSHOT_NAME_PREFIX}{timestamp}"


def create_snapshot(
    runner: CommandRunner,
    zfs_command: str,
    disk_dataset: str,
    timestamp: str,
) -> str:
    """Snapshot a dataset and return the snapshot name."""
    snapshot = snapshot_name(disk_dataset, timestamp)
    runner.run([zfs_command, "snapshot", snapshot])
    _LOGGER.info("snapshot_created", snapshot=snapshot)
    return snapshot


def archive_snapshot(
    runner: CommandRunner,
    zfs_command: str,
    snapshot: str,
    archive_path: Path,
) -> Path:
    """Stream `zfs send` of a snapshot into a new gzip file.

    The archive is created exclusively and removed again when the send
    fails, so a failed run never leaves a truncated archive behind.
    """
    try:
        sink = gzip.open(archive_path, "xb")
    except FileExistsError as error:
        raise ImageBuildCollisionError(
            f"Archive {archive_path} already exists. Remove it or choose another name."
        ) from error
    try:
        with sink:
            runner.stream([zfs_command, "send", snapshot], sink)
    except BaseException:
        archive_path.unlink(missing_ok=True)
        raise
    _LOGGER.info(
        "archive_written",
        snapshot=snapshot,
        archive_path=str(archive_path),
        archive_bytes=archive_path.stat().st_size,
    )
    return archive_path
