"""qemu-img inspection and conversion helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from core.constants import CONVERT_TARGET_FORMAT
from core.errors import ImageInspectionError
from core.logging_config import get_logger
from core.types import SourceImage
from tools.process import CommandRunner

_LOGGER = get_logger(__name__)


def inspect_image(runner: CommandRunner, qemu_img_command: str, image_path: Path) -> SourceImage:
    """Read virtual size and format of a disk image.

    Args:
        runner: Command runner.
        qemu_img_command: qemu-img executable.
        image_path: Validated source image path.

    Returns:
        Inspected source image facts.

    Raises:
        ImageToolError: If qemu-img cannot read the image.
        ImageInspectionError: If the JSON payload lacks required fields.
    """
    result = runner.run([qemu_img_command, "info", "--output", "json", str(image_path)])
    payload = _parse_info_payload(result.stdout, image_path)
    source = SourceImage(
        path=image_path,
        size_bytes=_read_virtual_size(payload, image_path),
        format=_read_format(payload, image_path),
    )
    _LOGGER.info(
        "image_inspected",
        image_path=str(image_path),
        size_bytes=source.size_bytes,
        size_mb=source.size_mb,
        format=source.format,
    )
    return source


def convert_to_device(
    runner: CommandRunner,
    qemu_img_command: str,
    source: SourceImage,
    block_device: str,
) -> None:
    """Write the source image onto a raw block device.

    The copy is destructive and not resumable; a failure leaves the
    device partially written.
    """
    runner.run(
        [
            qemu_img_command,
            "convert",
            "-f",
            source.format,
            "-O",
            CONVERT_TARGET_FORMAT,
            str(source.path),
            block_device,
        ]
    )
    _LOGGER.info(
        "image_converted",
        image_path=str(source.path),
        format=source.format,
        block_device=block_device,
    )


def _parse_info_payload(raw_output: str, image_path: Path) -> Mapping[str, Any]:
    try:
        payload = json.loads(raw_output)
    except json.JSONDecodeError as error:
        raise ImageInspectionError(
            f"qemu-img info returned invalid JSON for {image_path}: {error.msg}."
        ) from error
    if not isinstance(payload, dict):
        raise ImageInspectionError(
            f"qemu-img info returned {type(payload).__name__} for {image_path}; expected an object."
        )
    return payload


def _read_virtual_size(payload: Mapping[str, Any], image_path: Path) -> int:
    size = payload.get("virtual-size")
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise ImageInspectionError(
            f"qemu-img info reported no usable virtual-size for {image_path}: {size!r}."
        )
    return size


def _read_format(payload: Mapping[str, Any], image_path: Path) -> str:
    # raw images carry no format-specific block
    format_specific = payload.get("format-specific")
    if isinstance(format_specific, dict):
        inner_type = format_specific.get("type")
        if isinstance(inner_type, str) and inner_type.strip():
            return inner_type.strip()
    outer_format = payload.get("format")
    if isinstance(outer_format, str) and outer_format.strip():
        return outer_format.strip()
    raise ImageInspectionError(f"qemu-img info reported no format for {image_path}.")
