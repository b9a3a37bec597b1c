"""Unit tests for build-spec parsing."""

from __future__ import annotations

import pytest

from core.build_spec import load_build_spec
from core.errors import ImageBuildSpecError
from tests.fixture_paths import fixture_path


def test_load_build_spec_valid_batch_parses_builds() -> None:
    """Valid build spec should parse entries in order with defaults."""
    spec = load_build_spec(str(fixture_path("build_spec/valid_batch.yaml")))

    assert (
        tuple(entry.name for entry in spec.builds) == ("Ubuntu", "Win2019")
        and spec.defaults.os_type == "linux"
        and spec.builds[1].os_type == "windows"
        and spec.base_dir == fixture_path("build_spec")
    )


def test_load_build_spec_unknown_entry_key_raises_error() -> None:
    """Unknown build entry fields should be rejected."""
    with pytest.raises(ImageBuildSpecError):
        load_build_spec(str(fixture_path("build_spec/invalid_entry_key.yaml")))


def test_load_build_spec_unsupported_version_raises_error() -> None:
    """Only version 1 build specs should be accepted."""
    with pytest.raises(ImageBuildSpecError):
        load_build_spec(str(fixture_path("build_spec/invalid_version.yaml")))


def test_load_build_spec_empty_builds_raises_error(tmp_path) -> None:
    """A build spec with an empty builds list should be rejected."""
    spec_file = tmp_path / "empty.yaml"
    spec_file.write_text("version: 1\nbuilds: []\n", encoding="utf-8")

    with pytest.raises(ImageBuildSpecError):
        load_build_spec(str(spec_file))


def test_load_build_spec_missing_name_raises_error(tmp_path) -> None:
    """Each build must name its output."""
    spec_file = tmp_path / "no_name.yaml"
    spec_file.write_text("version: 1\nbuilds:\n  - image: disk.qcow2\n", encoding="utf-8")

    with pytest.raises(ImageBuildSpecError):
        load_build_spec(str(spec_file))


def test_load_build_spec_missing_file_raises_error(tmp_path) -> None:
    """A missing build spec should fail with a spec error."""
    with pytest.raises(ImageBuildSpecError):
        load_build_spec(str(tmp_path / "absent.yaml"))


def test_load_build_spec_invalid_yaml_raises_error(tmp_path) -> None:
    """Malformed YAML should be reported as a spec error."""
    spec_file = tmp_path / "broken.yaml"
    spec_file.write_text("version: 1\nbuilds: [\n", encoding="utf-8")

    with pytest.raises(ImageBuildSpecError):
        load_build_spec(str(spec_file))
