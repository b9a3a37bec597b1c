"""Build-spec execution engine.

This module maps validated build-spec entries to the same validation and
build path the flag-driven CLI uses. Builds run in order and the first
failure stops the batch.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from core.build_spec import BuildSpec, BuildSpecEntry, load_build_spec
from core.config import ImageBuildConfig
from core.errors import ImageBuildSpecError
from core.types import BuildRequest, BuildResult
from pipeline.image_build import build_image
from pipeline.validation import validate_request
from tools.process import CommandRunner


def execute_build_spec_file(
    config: ImageBuildConfig,
    spec_file: str,
    *,
    runner: CommandRunner | None = None,
    now: datetime | None = None,
) -> tuple[BuildResult, ...]:
    """Load and execute a build-spec file."""
    spec = load_build_spec(spec_file)
    return execute_build_spec(config, spec, runner=runner, now=now)


def execute_build_spec(
    config: ImageBuildConfig,
    spec: BuildSpec,
    *,
    runner: CommandRunner | None = None,
    now: datetime | None = None,
) -> tuple[BuildResult, ...]:
    """Execute a parsed build-spec and return one result per build."""
    execution_config = _apply_defaults(config, spec)
    requests = tuple(_build_request(execution_config, spec, entry) for entry in spec.builds)
    return tuple(
        build_image(request, execution_config, runner=runner, now=now) for request in requests
    )


def _apply_defaults(config: ImageBuildConfig, spec: BuildSpec) -> ImageBuildConfig:
    if spec.defaults.output_dir is None:
        return config
    output_dir = (spec.base_dir / spec.defaults.output_dir).expanduser().resolve()
    return replace(config, output_dir=output_dir)


def _build_request(
    config: ImageBuildConfig,
    spec: BuildSpec,
    entry: BuildSpecEntry,
) -> BuildRequest:
    os_type = entry.os_type or spec.defaults.os_type
    if os_type is None:
        raise ImageBuildSpecError(
            f"Build '{entry.name}' has no 'os' and the spec defines no default os."
        )
    image_path = spec.base_dir / entry.image
    return validate_request(str(image_path), entry.name, os_type, config.output_dir)
