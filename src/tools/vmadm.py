"""vmadm helpers for the ephemeral conversion VM.

The VM uuid is chosen by the caller and written into the create payload,
so the machine is read back through `vmadm get` JSON instead of scraping
the human-readable confirmation line.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.constants import (
    VM_BRAND,
    VM_DISK_MODEL,
    VM_MAX_PHYSICAL_MEMORY_MB,
    VM_RAM_MB,
)
from core.errors import ImageProvisionError
from core.logging_config import get_logger
from core.types import ProvisionedVm
from tools.process import CommandRunner

_LOGGER = get_logger(__name__)


def build_vm_payload(*, vm_uuid: str, name: str, quota_gb: int, disk_size_mb: int) -> dict[str, Any]:
    """Build the fixed-shape VM payload for `vmadm create`."""
    return {
        "uuid": vm_uuid,
        "brand": VM_BRAND,
        "alias": name,
        "hostname": name,
        "autoboot": False,
        "ram": VM_RAM_MB,
        "max_physical_memory": VM_MAX_PHYSICAL_MEMORY_MB,
        "quota": quota_gb,
        "disks": [
            {
                "boot": True,
                "model": VM_DISK_MODEL,
                "size": disk_size_mb,
            }
        ],
    }


def write_vm_payload(payload_path: Path, payload: dict[str, Any]) -> None:
    """Write the VM payload file consumed by `vmadm create -f`."""
    payload_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def create_vm(runner: CommandRunner, vmadm_command: str, payload_path: Path) -> None:
    """Create a VM from a payload file."""
    runner.run([vmadm_command, "create", "-f", str(payload_path)])


def get_vm(runner: CommandRunner, vmadm_command: str, vm_uuid: str) -> ProvisionedVm:
    """Read the boot disk of a VM from `vmadm get` JSON.

    Raises:
        ImageToolError: If vmadm cannot find the VM.
        ImageProvisionError: If the payload has no usable boot disk.
    """
    result = runner.run([vmadm_command, "get", vm_uuid])
    try:
        payload = json.loads(result.stdout)
    except json.JSONDecodeError as error:
        raise ImageProvisionError(
            f"vmadm get returned invalid JSON for VM {vm_uuid}: {error.msg}."
        ) from error
    disk = _first_disk(payload, vm_uuid)
    block_device = disk.get("path")
    disk_dataset = disk.get("zfs_filesystem")
    if not isinstance(block_device, str) or not block_device:
        raise ImageProvisionError(f"VM {vm_uuid} boot disk has no block device path.")
    if not isinstance(disk_dataset, str) or not disk_dataset:
        raise ImageProvisionError(f"VM {vm_uuid} boot disk has no zfs_filesystem.")
    return ProvisionedVm(uuid=vm_uuid, block_device=block_device, disk_dataset=disk_dataset)


def delete_vm(runner: CommandRunner, vmadm_command: str, vm_uuid: str) -> None:
    """Destroy a VM and its volumes."""
    runner.run([vmadm_command, "delete", vm_uuid])
    _LOGGER.info("vm_deleted", vm_uuid=vm_uuid)


def _first_disk(payload: object, vm_uuid: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ImageProvisionError(f"vmadm get returned no object for VM {vm_uuid}.")
    disks = payload.get("disks")
    if not isinstance(disks, list) or not disks or not isinstance(disks[0], dict):
        raise ImageProvisionError(
            f"VM {vm_uuid} has no disks. Check that the create payload was accepted."
        )
    return disks[0]
