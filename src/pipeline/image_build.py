"""Image build orchestration.

This module runs one build as a flat sequence of steps. Each step takes the
current BuildContext and returns an updated copy. The conversion VM lives
inside a context manager that deletes it whether or not later steps fail.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, TypeVar

from core.config import ImageBuildConfig
from core.constants import (
    ARCHIVE_SUFFIX,
    BUILD_TIMESTAMP_FORMAT,
    MANIFEST_SUFFIX,
    VM_PAYLOAD_FILE_NAME,
)
from core.errors import (
    ImageBuildCollisionError,
    ImageBuildConfigError,
    ImageBuildError,
    ImageToolTimeoutError,
)
from core.logging_config import get_logger
from core.types import BuildContext, BuildRequest, BuildResult, ProvisionedVm
from pipeline.quota import compute_quota_gb
from tools.manifest_helper import write_manifest
from tools.process import CommandRunner, SubprocessRunner
from tools.qemu_img import convert_to_device, inspect_image
from tools.vmadm import build_vm_payload, create_vm, delete_vm, get_vm, write_vm_payload
from tools.zfs import archive_snapshot, create_snapshot

_LOGGER = get_logger(__name__)
_T = TypeVar("_T")


@dataclass(frozen=True)
class BuildEnvironment:
    """Configured tools shared by every step of one build."""

    config: ImageBuildConfig
    runner: CommandRunner


def build_image(
    request: BuildRequest,
    config: ImageBuildConfig,
    *,
    runner: CommandRunner | None = None,
    now: datetime | None = None,
) -> BuildResult:
    """Convert one source image into an archived ZFS stream plus manifest.

    Args:
        request: Validated build request.
        config: Runtime configuration.
        runner: Optional command runner; subprocess-backed when omitted.
        now: Optional build time; current UTC time when omitted.

    Returns:
        Paths and identifiers of the finished build.

    Raises:
        ImageBuildError: If any step fails. The conversion VM is deleted first.
    """
    environment = BuildEnvironment(
        config=config,
        runner=runner or SubprocessRunner(config.command_timeout_seconds),
    )
    _ensure_output_dir(request)
    context = BuildContext(request=request, timestamp=build_timestamp(now))
    context = inspect_source(environment, context)
    context = assign_quota(context)
    with ephemeral_vm(environment, context) as vm:
        context = replace(context, vm=vm)
        context = convert_source(environment, context)
        context = snapshot_disk(environment, context)
        context = archive_disk(environment, context)
        context = emit_manifest(environment, context)
    return _build_result(context)


def build_timestamp(now: datetime | None = None) -> str:
    """Return the hour-granularity build timestamp used in artifact names."""
    moment = now or datetime.now(timezone.utc)
    return moment.strftime(BUILD_TIMESTAMP_FORMAT)


def inspect_source(environment: BuildEnvironment, context: BuildContext) -> BuildContext:
    """Read virtual size and format of the source image."""
    source = inspect_image(
        environment.runner,
        environment.config.qemu_img_command,
        context.request.image_path,
    )
    return replace(context, source=source)


def assign_quota(context: BuildContext) -> BuildContext:
    """Derive the VM quota from the inspected source size."""
    source = _require(context.source, "source")
    return replace(context, quota_gb=compute_quota_gb(source.size_bytes))


@contextmanager
def ephemeral_vm(environment: BuildEnvironment, context: BuildContext) -> Iterator[ProvisionedVm]:
    """Provision the conversion VM and always destroy it on exit.

    The VM payload file is removed on exit as well. When the body fails,
    a failing delete is logged and the original error propagates.
    """
    source = _require(context.source, "source")
    quota_gb = _require(context.quota_gb, "quota_gb")
    vm_uuid = str(uuid.uuid4())
    payload_path = context.request.output_dir / VM_PAYLOAD_FILE_NAME
    payload = build_vm_payload(
        vm_uuid=vm_uuid,
        name=context.request.name,
        quota_gb=quota_gb,
        disk_size_mb=source.size_mb,
    )
    vmadm_command = environment.config.vmadm_command
    try:
        write_vm_payload(payload_path, payload)
        try:
            create_vm(environment.runner, vmadm_command, payload_path)
        except ImageToolTimeoutError:
            # the VM may exist under the uuid we chose
            _delete_after_failure(environment, vm_uuid)
            raise
        try:
            vm = get_vm(environment.runner, vmadm_command, vm_uuid)
            _LOGGER.info(
                "vm_provisioned",
                vm_uuid=vm.uuid,
                quota_gb=quota_gb,
                disk_size_mb=source.size_mb,
                block_device=vm.block_device,
            )
            yield vm
        except BaseException:
            _delete_after_failure(environment, vm_uuid)
            raise
        delete_vm(environment.runner, vmadm_command, vm_uuid)
    finally:
        payload_path.unlink(missing_ok=True)


def convert_source(environment: BuildEnvironment, context: BuildContext) -> BuildContext:
    """Write the source image onto the VM boot disk."""
    source = _require(context.source, "source")
    vm = _require(context.vm, "vm")
    convert_to_device(
        environment.runner,
        environment.config.qemu_img_command,
        source,
        vm.block_device,
    )
    return context


def snapshot_disk(environment: BuildEnvironment, context: BuildContext) -> BuildContext:
    """Snapshot the converted disk after checking output names are free."""
    vm = _require(context.vm, "vm")
    archive_path, manifest_path = artifact_paths(context)
    taken = [str(path) for path in (archive_path, manifest_path) if path.exists()]
    if taken:
        raise ImageBuildCollisionError(
            f"Build {context.artifact_stem} already produced {', '.join(taken)}. "
            "Use another name or wait for the next build hour."
        )
    snapshot = create_snapshot(
        environment.runner,
        environment.config.zfs_command,
        vm.disk_dataset,
        context.timestamp,
    )
    return replace(context, snapshot=snapshot)


def archive_disk(environment: BuildEnvironment, context: BuildContext) -> BuildContext:
    """Serialize the snapshot into the compressed archive."""
    snapshot = _require(context.snapshot, "snapshot")
    archive_path, _ = artifact_paths(context)
    archive_snapshot(
        environment.runner,
        environment.config.zfs_command,
        snapshot,
        archive_path,
    )
    return replace(context, archive_path=archive_path)


def emit_manifest(environment: BuildEnvironment, context: BuildContext) -> BuildContext:
    """Render the image manifest for the archive."""
    source = _require(context.source, "source")
    archive_path = _require(context.archive_path, "archive_path")
    _, manifest_path = artifact_paths(context)
    write_manifest(
        environment.runner,
        environment.config.manifest_helper_command,
        archive_path=archive_path,
        name=context.request.name,
        size_mb=source.size_mb,
        timestamp=context.timestamp,
        os_type=context.request.os_type,
        manifest_path=manifest_path,
    )
    return replace(context, manifest_path=manifest_path)


def artifact_paths(context: BuildContext) -> tuple[Path, Path]:
    """Return archive and manifest paths for a build context."""
    output_dir = context.request.output_dir
    return (
        output_dir / f"{context.artifact_stem}{ARCHIVE_SUFFIX}",
        output_dir / f"{context.artifact_stem}{MANIFEST_SUFFIX}",
    )


def _delete_after_failure(environment: BuildEnvironment, vm_uuid: str) -> None:
    try:
        delete_vm(environment.runner, environment.config.vmadm_command, vm_uuid)
    except ImageBuildError as error:
        _LOGGER.error("vm_delete_failed", vm_uuid=vm_uuid, error=str(error))


def _ensure_output_dir(request: BuildRequest) -> None:
    try:
        request.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise ImageBuildConfigError(
            f"Cannot create output directory {request.output_dir}: {error}."
        ) from error


def _build_result(context: BuildContext) -> BuildResult:
    source = _require(context.source, "source")
    vm = _require(context.vm, "vm")
    return BuildResult(
        archive_path=_require(context.archive_path, "archive_path"),
        manifest_path=_require(context.manifest_path, "manifest_path"),
        vm_uuid=vm.uuid,
        snapshot=_require(context.snapshot, "snapshot"),
        quota_gb=_require(context.quota_gb, "quota_gb"),
        size_mb=source.size_mb,
        timestamp=context.timestamp,
    )


def _require(value: _T | None, field_name: str) -> _T:
    if value is None:
        raise ImageBuildError(f"Build step ran before '{field_name}' was set.")
    return value
