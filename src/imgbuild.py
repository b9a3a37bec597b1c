"""Public SDK surface for imgbuild.

This module provides a stable import path for scripted builds.
It re-exports the build entry points and typed models.
"""

from __future__ import annotations

from core.build_spec import BuildSpec, load_build_spec
from core.config import ImageBuildConfig
from core.types import BuildRequest, BuildResult, SourceImage
from pipeline.build_spec_execution import execute_build_spec, execute_build_spec_file
from pipeline.image_build import build_image
from pipeline.quota import compute_quota_gb
from pipeline.validation import validate_request

__all__ = [
    "BuildRequest",
    "BuildResult",
    "BuildSpec",
    "ImageBuildConfig",
    "SourceImage",
    "build_image",
    "compute_quota_gb",
    "execute_build_spec",
    "execute_build_spec_file",
    "load_build_spec",
    "validate_request",
]
