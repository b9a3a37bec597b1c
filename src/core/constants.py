"""Core constants used across imgbuild modules.

This module centralizes the fixed VM shape and artifact naming values.
Keeping values here avoids magic literals in pipeline steps.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_OUTPUT_DIR = Path(".")
DEFAULT_QEMU_IMG_COMMAND = "qemu-img"
DEFAULT_VMADM_COMMAND = "vmadm"
DEFAULT_ZFS_COMMAND = "zfs"
DEFAULT_MANIFEST_HELPER_COMMAND = "create-manifest"
DEFAULT_COMMAND_TIMEOUT_SECONDS = 3600
SUPPORTED_OS_TYPES = ("bsd", "illumos", "linux", "other", "smartos", "windows")
BUILD_TIMESTAMP_FORMAT = "%Y%m%d%H"
QUOTA_HEADROOM_GB = 10
VM_BRAND = "kvm"
VM_RAM_MB = 4096
VM_MAX_PHYSICAL_MEMORY_MB = 4096
VM_DISK_MODEL = "virtio"
VM_PAYLOAD_FILE_NAME = "blank.json"
CONVERT_TARGET_FORMAT = "host_device"
SNAPSHOT_NAME_PREFIX = "dataset-"
ARCHIVE_SUFFIX = ".zfs.gz"
MANIFEST_SUFFIX = ".json"
STREAM_CHUNK_SIZE = 1024 * 1024
BUILD_SPEC_VERSION = 1
