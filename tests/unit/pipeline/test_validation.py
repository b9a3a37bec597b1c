"""Unit tests for build input validation."""

from __future__ import annotations

import pytest

from core.errors import ImageBuildValidationError
from pipeline.validation import normalize_os_type, validate_request


@pytest.fixture
def source_image(tmp_path):
    image_path = tmp_path / "disk.qcow2"
    image_path.write_bytes(b"QFI\xfb")
    return image_path


def test_validate_request_returns_normalized_request(source_image, tmp_path) -> None:
    """Valid input should produce a request with a lowercase OS tag."""
    request = validate_request(str(source_image), "Ubuntu", "Linux", tmp_path)

    assert (
        request.image_path == source_image.resolve()
        and request.name == "Ubuntu"
        and request.os_type == "linux"
        and request.output_dir == tmp_path
    )


@pytest.mark.parametrize(
    ("image", "name", "os_type", "flag"),
    [
        (None, "Ubuntu", "linux", "-i"),
        ("disk.qcow2", None, "linux", "-n"),
        ("disk.qcow2", "Ubuntu", None, "-o"),
        ("disk.qcow2", "  ", "linux", "-n"),
    ],
)
def test_validate_request_reports_missing_argument(image, name, os_type, flag, tmp_path) -> None:
    """Each missing required argument should be named in the error."""
    with pytest.raises(ImageBuildValidationError, match=f"Missing required argument {flag}"):
        validate_request(image, name, os_type, tmp_path)


def test_validate_request_rejects_missing_file(tmp_path) -> None:
    """A source path that does not exist should fail."""
    with pytest.raises(ImageBuildValidationError, match="does not exist"):
        validate_request(str(tmp_path / "absent.qcow2"), "Ubuntu", "linux", tmp_path)


def test_validate_request_rejects_unreadable_file(source_image, tmp_path, monkeypatch) -> None:
    """A source file without read permission should fail."""
    monkeypatch.setattr("pipeline.validation.os.access", lambda path, mode: False)

    with pytest.raises(ImageBuildValidationError, match="not readable"):
        validate_request(str(source_image), "Ubuntu", "linux", tmp_path)


def test_validate_request_rejects_directory(tmp_path) -> None:
    """A directory is not a usable source image."""
    with pytest.raises(ImageBuildValidationError, match="not a regular file"):
        validate_request(str(tmp_path), "Ubuntu", "linux", tmp_path)


def test_validate_request_rejects_name_with_separator(source_image, tmp_path) -> None:
    """Names become file names and must not contain path separators."""
    with pytest.raises(ImageBuildValidationError):
        validate_request(str(source_image), "../Ubuntu", "linux", tmp_path)


@pytest.mark.parametrize("raw_os", ["bsd", "ILLUMOS", "Linux", "other", "SmartOS", "windows"])
def test_normalize_os_type_accepts_supported_tags(raw_os: str) -> None:
    """Supported OS tags should match regardless of case."""
    assert normalize_os_type(raw_os) == raw_os.lower()


@pytest.mark.parametrize("raw_os", ["macos", "solaris", "lin ux", ""])
def test_normalize_os_type_rejects_unknown_tags(raw_os: str) -> None:
    """Unsupported OS tags are a hard validation failure."""
    with pytest.raises(ImageBuildValidationError):
        normalize_os_type(raw_os)


def test_validate_request_keeps_surrounding_spaces_in_path(tmp_path) -> None:
    """The source path should be used exactly as given."""
    image_path = tmp_path / " disk.qcow2 "
    image_path.write_bytes(b"QFI\xfb")

    request = validate_request(str(image_path), " Ubuntu ", "linux", tmp_path)

    assert request.image_path == image_path.resolve() and request.name == "Ubuntu"
