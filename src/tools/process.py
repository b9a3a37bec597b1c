"""Subprocess execution with deadlines and traceable failures.

Every external command in the build goes through a CommandRunner so the
pipeline can be exercised with a scripted fake instead of real tools.
"""

from __future__ import annotations

import shlex
import subprocess
import tempfile
import threading
from dataclasses import dataclass
from typing import BinaryIO, Protocol, Sequence

from core.constants import STREAM_CHUNK_SIZE
from core.errors import ImageBuildDependencyError, ImageToolError, ImageToolTimeoutError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Captured output of one finished command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


class CommandRunner(Protocol):
    """Command execution contract consumed by tool adapters."""

    def run(self, args: Sequence[str]) -> CommandResult: ...

    def stream(self, args: Sequence[str], sink: BinaryIO) -> None: ...


class SubprocessRunner:
    """Run external commands as child processes with a fixed deadline."""

    def __init__(self, timeout_seconds: int) -> None:
        self._timeout_seconds = max(1, int(timeout_seconds))

    def run(self, args: Sequence[str]) -> CommandResult:
        """Run a command to completion and capture its text output.

        Args:
            args: Command and arguments.

        Returns:
            Captured command result with a zero return code.

        Raises:
            ImageBuildDependencyError: If the executable cannot be found.
            ImageToolTimeoutError: If the command exceeds the deadline.
            ImageToolError: If the command exits non-zero.
        """
        command_args = tuple(str(part) for part in args)
        _LOGGER.debug("command_started", command=format_command(command_args))
        try:
            completed = subprocess.run(
                command_args,
                capture_output=True,
                text=True,
                check=False,
                timeout=self._timeout_seconds,
            )
        except FileNotFoundError as error:
            raise _missing_executable(command_args) from error
        except subprocess.TimeoutExpired as error:
            raise ImageToolTimeoutError(
                f"Command '{format_command(command_args)}' did not finish within "
                f"{self._timeout_seconds}s. Raise IMGBUILD_COMMAND_TIMEOUT if the image is large."
            ) from error
        except OSError as error:
            raise ImageToolError(
                f"Failed to start '{format_command(command_args)}': {error}."
            ) from error
        result = CommandResult(
            args=command_args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        return check_result(result)

    def stream(self, args: Sequence[str], sink: BinaryIO) -> None:
        """Copy a command's stdout into a binary sink chunk by chunk.

        A watchdog kills the child once the deadline passes, even when it
        stalls without writing, and an interrupted copy kills it as well.
        """
        command_args = tuple(str(part) for part in args)
        _LOGGER.debug("command_started", command=format_command(command_args))
        with tempfile.TemporaryFile() as stderr_file:
            try:
                process = subprocess.Popen(
                    command_args, stdout=subprocess.PIPE, stderr=stderr_file
                )
            except FileNotFoundError as error:
                raise _missing_executable(command_args) from error
            expired = threading.Event()
            watchdog = threading.Timer(
                self._timeout_seconds, _expire_process, args=(process, expired)
            )
            watchdog.start()
            with process:
                try:
                    _copy_stdout(process, sink)
                    returncode = process.wait()
                except BaseException:
                    process.kill()
                    raise
                finally:
                    watchdog.cancel()
            if expired.is_set():
                raise ImageToolTimeoutError(
                    f"Command '{format_command(command_args)}' did not finish within "
                    f"{self._timeout_seconds}s. Raise IMGBUILD_COMMAND_TIMEOUT if the image is large."
                )
            stderr_file.seek(0)
            stderr_text = stderr_file.read().decode("utf-8", errors="replace")
        check_result(
            CommandResult(args=command_args, returncode=returncode, stdout="", stderr=stderr_text)
        )


def _expire_process(process: subprocess.Popen[bytes], expired: threading.Event) -> None:
    expired.set()
    process.kill()


def _copy_stdout(process: subprocess.Popen[bytes], sink: BinaryIO) -> None:
    source = process.stdout
    if source is None:
        return
    while True:
        chunk = source.read(STREAM_CHUNK_SIZE)
        if not chunk:
            return
        sink.write(chunk)


def check_result(result: CommandResult) -> CommandResult:
    """Raise a tool error for a non-zero exit, else return the result."""
    if result.returncode == 0:
        return result
    command = format_command(result.args)
    _LOGGER.error(
        "command_failed",
        command=command,
        returncode=result.returncode,
        stderr=result.stderr.strip(),
    )
    detail = result.stderr.strip() or result.stdout.strip() or "no output"
    raise ImageToolError(
        f"Command '{command}' failed (exit={result.returncode}): {detail}",
        returncode=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr,
    )


def format_command(args: Sequence[str]) -> str:
    """Render a command line for logs and error messages."""
    return " ".join(shlex.quote(str(part)) for part in args)


def _missing_executable(args: Sequence[str]) -> ImageBuildDependencyError:
    executable = args[0] if args else "<empty>"
    return ImageBuildDependencyError(
        f"Executable '{executable}' not found in PATH. Install it or point the matching "
        "IMGBUILD_* variable at its location."
    )
