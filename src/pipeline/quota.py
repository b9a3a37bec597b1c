"""Disk quota arithmetic for the conversion VM."""

from __future__ import annotations

from core.constants import QUOTA_HEADROOM_GB


def compute_quota_gb(size_bytes: int) -> int:
    """Return the VM quota in GB for a source virtual size.

    Whole gigabytes of the source, floored, plus a fixed headroom.

    Args:
        size_bytes: Source virtual size in bytes.

    Returns:
        Quota in gigabytes.
    """
    return size_bytes // 1024 // 1024 // 1024 + QUOTA_HEADROOM_GB
