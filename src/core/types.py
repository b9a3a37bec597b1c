"""Shared typed models.

This module defines immutable data models passed between the validator,
the pipeline steps, the build-spec engine and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class BuildRequest:
    """One validated image build request.

    Attributes:
        image_path: Source disk image on local disk.
        name: Output base name, also used as VM alias and hostname.
        os_type: Lowercase OS classification from the supported set.
        output_dir: Directory receiving the archive and manifest.
    """

    image_path: Path
    name: str
    os_type: str
    output_dir: Path


@dataclass(frozen=True)
class SourceImage:
    """Inspected source image facts.

    Attributes:
        path: Source image path.
        size_bytes: Virtual disk size reported by the image tool.
        format: Format tag passed to the converter.
    """

    path: Path
    size_bytes: int
    format: str

    @property
    def size_mb(self) -> int:
        """Virtual size in whole megabytes."""
        return self.size_bytes // 1024 // 1024


@dataclass(frozen=True)
class ProvisionedVm:
    """Ephemeral conversion target returned by the VM manager.

    Attributes:
        uuid: VM identifier.
        block_device: Raw block device of the boot disk.
        disk_dataset: ZFS volume backing the boot disk.
    """

    uuid: str
    block_device: str
    disk_dataset: str


@dataclass(frozen=True)
class BuildContext:
    """State threaded through pipeline steps.

    Each step returns an updated copy rather than mutating shared state.
    """

    request: BuildRequest
    timestamp: str
    source: SourceImage | None = None
    quota_gb: int | None = None
    vm: ProvisionedVm | None = None
    snapshot: str | None = None
    archive_path: Path | None = None
    manifest_path: Path | None = None

    @property
    def artifact_stem(self) -> str:
        """Base file name shared by the archive and manifest."""
        return f"{self.request.name}-{self.timestamp}"


@dataclass(frozen=True)
class BuildResult:
    """Final outputs of one successful build.

    Attributes:
        archive_path: Compressed ZFS stream on local disk.
        manifest_path: Manifest rendered by the helper.
        vm_uuid: Identifier of the (deleted) conversion VM.
        snapshot: ZFS snapshot that was archived.
        quota_gb: Quota assigned to the conversion VM.
        size_mb: Source virtual size in megabytes.
        timestamp: Build timestamp used in artifact names.
    """

    archive_path: Path
    manifest_path: Path
    vm_uuid: str
    snapshot: str
    quota_gb: int
    size_mb: int
    timestamp: str

    def to_rows(self) -> tuple[str, ...]:
        """Render printable key=value rows."""
        return (
            f"archive={self.archive_path}",
            f"manifest={self.manifest_path}",
            f"vm_uuid={self.vm_uuid}",
            f"snapshot={self.snapshot}",
            f"quota_gb={self.quota_gb}",
            f"size_mb={self.size_mb}",
            f"timestamp={self.timestamp}",
        )
