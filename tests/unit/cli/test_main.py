"""Unit tests for CLI command handling."""

from __future__ import annotations

import pytest

from cli.main import main
from tests.fake_runner import FakeRunner


@pytest.fixture
def fake_runner(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr("pipeline.image_build.SubprocessRunner", lambda timeout_seconds: runner)
    return runner


@pytest.fixture
def source_image(tmp_path):
    image_path = tmp_path / "disk.qcow2"
    image_path.write_bytes(b"QFI\xfb")
    return image_path


def test_cli_help_exits_non_zero(capsys: pytest.CaptureFixture[str]) -> None:
    """-h should print usage and exit non-zero."""
    exit_code = main(["-h"])

    assert exit_code == 1 and "usage: imgbuild" in capsys.readouterr().err


@pytest.mark.parametrize(
    ("argv", "flag"),
    [
        (["-n", "Ubuntu", "-o", "linux"], "-i"),
        (["-i", "disk.qcow2", "-o", "linux"], "-n"),
        (["-i", "disk.qcow2", "-n", "Ubuntu"], "-o"),
    ],
)
def test_cli_missing_flag_prints_usage(
    argv: list[str],
    flag: str,
    fake_runner: FakeRunner,
    tmp_path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Each missing required flag should exit non-zero with usage."""
    exit_code = main([*argv, "-d", str(tmp_path)])
    error_output = capsys.readouterr().err

    assert (
        exit_code == 1
        and f"Missing required argument {flag}" in error_output
        and "usage: imgbuild" in error_output
        and fake_runner.calls == []
    )


def test_cli_rejects_directory_source_before_tools(
    fake_runner: FakeRunner,
    tmp_path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A directory source should fail before any external tool runs."""
    exit_code = main(["-i", str(tmp_path), "-n", "Ubuntu", "-o", "linux", "-d", str(tmp_path)])

    assert (
        exit_code == 1
        and "not a regular file" in capsys.readouterr().err
        and fake_runner.calls == []
    )


def test_cli_rejects_missing_source_before_tools(
    fake_runner: FakeRunner,
    tmp_path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A missing source should fail before any external tool runs."""
    missing = tmp_path / "absent.qcow2"

    exit_code = main(["-i", str(missing), "-n", "Ubuntu", "-o", "linux", "-d", str(tmp_path)])

    assert exit_code == 1 and "does not exist" in capsys.readouterr().err and fake_runner.calls == []


def test_cli_rejects_unsupported_os(
    fake_runner: FakeRunner,
    source_image,
    tmp_path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """An OS tag outside the supported set should abort the build."""
    exit_code = main(["-i", str(source_image), "-n", "Ubuntu", "-o", "macos", "-d", str(tmp_path)])

    assert (
        exit_code == 1
        and "Unsupported OS type 'macos'" in capsys.readouterr().err
        and fake_runner.calls == []
    )


def test_cli_build_prints_result_rows(
    fake_runner: FakeRunner,
    source_image,
    tmp_path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A successful build should print key=value result rows."""
    exit_code = main(["-i", str(source_image), "-n", "Ubuntu", "-o", "LINUX", "-d", str(tmp_path)])
    output = capsys.readouterr().out.strip().splitlines()

    assert (
        exit_code == 0
        and output[0].startswith("archive=")
        and output[0].endswith(".zfs.gz")
        and output[1].startswith("manifest=")
        and "quota_gb=15" in output
    )


def test_cli_propagates_tool_exit_code(
    monkeypatch: pytest.MonkeyPatch,
    source_image,
    tmp_path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """An external tool failure should exit with the tool's status."""
    runner = FakeRunner(failures={"qemu-img info": 3})
    monkeypatch.setattr("pipeline.image_build.SubprocessRunner", lambda timeout_seconds: runner)

    exit_code = main(["-i", str(source_image), "-n", "Ubuntu", "-o", "linux", "-d", str(tmp_path)])

    assert exit_code == 3 and "qemu-img info" in capsys.readouterr().err


def test_cli_rejects_spec_mixed_with_flags(
    fake_runner: FakeRunner,
    source_image,
    tmp_path,
) -> None:
    """--spec cannot be combined with single-build flags."""
    spec_file = tmp_path / "builds.yaml"
    spec_file.write_text("version: 1\nbuilds: []\n", encoding="utf-8")

    exit_code = main(["--spec", str(spec_file), "-i", str(source_image)])

    assert exit_code == 1 and fake_runner.calls == []


def test_cli_reports_invalid_config(
    monkeypatch: pytest.MonkeyPatch,
    source_image,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Invalid environment configuration should exit non-zero."""
    monkeypatch.setenv("IMGBUILD_COMMAND_TIMEOUT", "soon")

    exit_code = main(["-i", str(source_image), "-n", "Ubuntu", "-o", "linux"])

    assert exit_code == 1 and "IMGBUILD_COMMAND_TIMEOUT" in capsys.readouterr().err
